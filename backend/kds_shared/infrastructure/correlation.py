"""
Request context for log lines.

Every API request is tagged with an id (taken from X-Request-ID or
generated) and, when the caller is a station display, the station it
renders (X-KDS-Station). Both end up on every log record emitted while
the request is handled.
"""

import uuid
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

REQUEST_ID_HEADER = "X-Request-ID"
STATION_HEADER = "X-KDS-Station"


@dataclass(frozen=True)
class RequestContext:
    request_id: str = ""
    station: str = ""


_current: ContextVar[RequestContext] = ContextVar("kds_request", default=RequestContext())


def current_context() -> RequestContext:
    return _current.get()


def get_request_id() -> str:
    return _current.get().request_id


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Bind a RequestContext for the duration of the request and echo the id back."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        context = RequestContext(
            request_id=request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex,
            station=(request.headers.get(STATION_HEADER) or "").upper()[:16],
        )
        request.state.request_id = context.request_id
        token = _current.set(context)
        try:
            response = await call_next(request)
        finally:
            _current.reset(token)
        response.headers[REQUEST_ID_HEADER] = context.request_id
        return response


class RequestContextFilter:
    """Copies the bound request id and station onto each log record."""

    def filter(self, record) -> bool:
        context = _current.get()
        record.request_id = context.request_id
        record.station = context.station
        return True

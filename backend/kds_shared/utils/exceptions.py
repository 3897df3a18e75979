"""
HTTP errors raised by the KDS services.

Every error logs itself with its keyword context when raised, so routers
never log on the way out:

    raise TicketNotFoundError(ticket_id)
    raise InvalidTransitionError("Ticket", "NEW", "COMPLETED", ticket_id=7)
"""

from typing import Any

from fastapi import HTTPException, status

from kds_shared.config.logging import get_logger

logger = get_logger(__name__)


class KdsError(HTTPException):
    """Base class; subclasses pick ``http_status`` and ``log_level``."""

    http_status = status.HTTP_400_BAD_REQUEST
    log_level = "warning"

    def __init__(self, detail: Any, log_message: str | None = None, **log_context: Any):
        getattr(logger, self.log_level)(
            log_message or str(detail), status_code=self.http_status, **log_context
        )
        super().__init__(status_code=self.http_status, detail=detail)


# 404


class NotFoundError(KdsError):
    http_status = status.HTTP_404_NOT_FOUND

    def __init__(self, entity: str, entity_id: int | str | None = None, **log_context: Any):
        detail = f"{entity} {entity_id} not found" if entity_id is not None else f"{entity} not found"
        super().__init__(detail, entity=entity, entity_id=entity_id, **log_context)


class TicketNotFoundError(NotFoundError):
    def __init__(self, ticket_id: int | None = None, **log_context: Any):
        super().__init__("Ticket", ticket_id, **log_context)


class OrderNotFoundError(NotFoundError):
    def __init__(self, order_id: int | None = None, **log_context: Any):
        super().__init__("Order", order_id, **log_context)


# 403


class InsufficientRoleError(KdsError):
    """The caller is authenticated but none of its roles may do this."""

    http_status = status.HTTP_403_FORBIDDEN

    def __init__(self, required_roles: list[str], **log_context: Any):
        super().__init__(
            f"Requires one of the roles: {', '.join(required_roles)}",
            required_roles=required_roles,
            **log_context,
        )


# 400


class ValidationError(KdsError):
    """Bad input that schema validation cannot catch (unknown status, unavailable menu item)."""


class InvalidStateError(ValidationError):
    """The ticket's current status does not allow the operation."""

    def __init__(
        self,
        entity: str,
        current_state: str,
        expected_states: list[str] | None = None,
        **log_context: Any,
    ):
        detail = f"{entity} is {current_state}"
        if expected_states:
            detail += f"; operation needs one of {', '.join(expected_states)}"
        super().__init__(detail, entity=entity, current_state=current_state, **log_context)


class InvalidTransitionError(ValidationError):
    def __init__(self, entity: str, from_status: str, to_status: str, **log_context: Any):
        super().__init__(
            f"{entity} cannot move from {from_status} to {to_status}",
            entity=entity,
            from_status=from_status,
            to_status=to_status,
            **log_context,
        )


class DuplicateEntityError(ValidationError):
    def __init__(self, entity: str, identifier: str | None = None, **log_context: Any):
        detail = f"{entity} '{identifier}' already exists" if identifier else f"{entity} already exists"
        super().__init__(detail, entity=entity, identifier=identifier, **log_context)


# 409


class ConflictingTransitionError(KdsError):
    """
    Compare-and-set lost: the ticket is no longer in the expected status.

    The detail carries the stored status so the display can refresh and
    retry. Nothing was written when this is raised.
    """

    http_status = status.HTTP_409_CONFLICT

    def __init__(
        self,
        ticket_id: int,
        expected_status: str,
        current_status: str | None,
        **log_context: Any,
    ):
        self.ticket_id = ticket_id
        self.expected_status = expected_status
        self.current_status = current_status
        message = f"Ticket {ticket_id} is {current_status}, not {expected_status}; refresh and retry"
        super().__init__(
            {
                "message": message,
                "ticket_id": ticket_id,
                "expected_status": expected_status,
                "current_status": current_status,
                "retriable": True,
            },
            log_message=message,
            ticket_id=ticket_id,
            **log_context,
        )


# 500


class DatabaseError(KdsError):
    http_status = status.HTTP_500_INTERNAL_SERVER_ERROR
    log_level = "error"

    def __init__(self, operation: str, **log_context: Any):
        super().__init__(f"Database error during {operation}", operation=operation, **log_context)

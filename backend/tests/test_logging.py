"""
Tests for keyword-field logging and the request context filter.
"""

import json
import logging

from kds_shared.config.logging import KdsFormatter, get_logger, mask_email
from kds_shared.infrastructure.correlation import RequestContextFilter


def _record(**attrs) -> logging.LogRecord:
    record = logging.LogRecord("kds_api.kitchen", logging.INFO, __file__, 10, "Ticket bumped", None, None)
    for key, value in attrs.items():
        setattr(record, key, value)
    return record


class TestKdsLogger:

    def test_keyword_arguments_become_fields(self, caplog):
        caplog.set_level(logging.INFO, logger="kds_test.fields")
        get_logger("kds_test.fields").info("Ticket bumped", ticket_id=12, station="BAR")

        record = caplog.records[-1]
        assert record.getMessage() == "Ticket bumped"
        assert record.fields == {"ticket_id": 12, "station": "BAR"}

    def test_exc_info_is_not_a_field(self, caplog):
        caplog.set_level(logging.ERROR, logger="kds_test.exc")
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            get_logger("kds_test.exc").error("Publish failed", exc_info=True, order_id=4)

        record = caplog.records[-1]
        assert record.exc_info is not None
        assert record.fields == {"order_id": 4}


class TestKdsFormatter:

    def test_json_line(self):
        record = _record(fields={"ticket_id": 7}, request_id="req-1", station="BAR")
        payload = json.loads(KdsFormatter(as_json=True).format(record))

        assert payload["msg"] == "Ticket bumped"
        assert payload["level"] == "INFO"
        assert payload["request_id"] == "req-1"
        assert payload["station"] == "BAR"
        assert payload["fields"] == {"ticket_id": 7}

    def test_text_line_shows_context_and_fields(self):
        record = _record(fields={"ticket_id": 7}, request_id="abcdef123456", station="KITCHEN")
        line = KdsFormatter(as_json=False).format(record)

        assert "[abcdef12 KITCHEN]" in line
        assert line.endswith("Ticket bumped ticket_id=7")

    def test_empty_context_is_omitted(self):
        record = _record(fields={}, request_id="", station="")
        payload = json.loads(KdsFormatter(as_json=True).format(record))
        assert "request_id" not in payload
        assert "fields" not in payload


class TestRequestContextFilter:

    def test_outside_a_request(self):
        record = _record()
        assert RequestContextFilter().filter(record) is True
        assert record.request_id == ""
        assert record.station == ""


def test_mask_email():
    assert mask_email("chef@example.com") == "ch***@example.com"
    assert mask_email(None) == "<none>"
    assert mask_email("not-an-email") == "<none>"

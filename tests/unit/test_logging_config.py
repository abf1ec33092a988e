import json
import logging

import pytest

from studio_booking.core.logging_config import StructuredFormatter


@pytest.mark.unit
class TestStructuredFormatter:
    def _record(self, **extra) -> logging.LogRecord:
        record = logging.LogRecord(
            "studio_booking.test", logging.INFO, __file__, 10, "Booking confirmed", None, None
        )
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_extra_fields_are_emitted(self):
        payload = json.loads(
            StructuredFormatter().format(self._record(class_id="C1", subscriber_id="member-a"))
        )
        assert payload["message"] == "Booking confirmed"
        assert payload["level"] == "INFO"
        assert payload["class_id"] == "C1"
        assert payload["subscriber_id"] == "member-a"

    def test_standard_record_attributes_are_not_duplicated(self):
        payload = json.loads(StructuredFormatter().format(self._record()))
        assert "lineno" not in payload
        assert "msg" not in payload

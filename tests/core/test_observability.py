"""Tests for the log formatters and setup_logging — slot context on every line."""

import json
import logging
from datetime import date, datetime, timezone

from prayer_slots.infrastructure.observability import (
    ContextTextFormatter, JSONFormatter, setup_logging,
)


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        "prayer_slots.test", logging.WARNING, __file__, 1,
        "Slot auto-released", None, None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formats_core_fields():
    line = json.loads(JSONFormatter().format(_record()))
    assert line["level"] == "WARNING"
    assert line["logger"] == "prayer_slots.test"
    assert line["message"] == "Slot auto-released"
    assert "owner_id" not in line


def test_surfaces_slot_context():
    line = json.loads(JSONFormatter().format(
        _record(owner_id="u1", slot_id=44, unrelated="hidden"),
    ))
    assert line["owner_id"] == "u1"
    assert line["slot_id"] == 44
    assert "unrelated" not in line


def test_record_time_and_dates_are_iso():
    record = _record(occurrence_date=date(2026, 3, 2))
    line = json.loads(JSONFormatter().format(record))
    assert line["occurrence_date"] == "2026-03-02"
    assert line["timestamp"].startswith(
        datetime.fromtimestamp(record.created, timezone.utc).strftime("%Y-%m-%d"),
    )


def test_text_format_appends_context():
    line = ContextTextFormatter().format(_record(owner_id="u1", slot_id=44))
    assert line.endswith("Slot auto-released [owner_id=u1 slot_id=44]")


def test_setup_logging_twice_keeps_one_handler():
    before = list(logging.root.handlers)
    level = logging.root.level
    try:
        setup_logging("INFO", "json")
        setup_logging("DEBUG", "text")
        ours = [h for h in logging.root.handlers if h not in before]
        assert len(ours) == 1
        assert isinstance(ours[0].formatter, ContextTextFormatter)
        assert logging.root.level == logging.DEBUG
    finally:
        for handler in list(logging.root.handlers):
            if handler not in before:
                logging.root.removeHandler(handler)
        logging.root.setLevel(level)

"""Structured Logging — slot-lifecycle context on every log line.

Invariants:
    - Each line carries the record's own timestamp, level, logger name and message
    - Slot context (owner, slot, skip request, occurrence, event kind) is included
      whenever the caller passed it in `extra`, in both output formats
    - setup_logging can run more than once (API lifespan, seed script) without
      duplicating output
"""

import logging
import json
from datetime import date, datetime, timezone

CONTEXT_FIELDS = (
    "owner_id", "slot_id", "request_id", "occurrence_date",
    "event_kind", "error_code", "path",
)

_HANDLER_NAME = "prayer_slots"


def _context(record: logging.LogRecord) -> dict:
    context = {}
    for key in CONTEXT_FIELDS:
        val = record.__dict__.get(key)
        if val is None:
            continue
        if isinstance(val, (date, datetime)):
            val = val.isoformat()
        elif not isinstance(val, (int, float, bool, str)):
            val = str(val)
        context[key] = val
    return context


class JSONFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        log = {
            "timestamp": datetime.fromtimestamp(
                record.created, timezone.utc,
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        log.update(_context(record))
        if record.exc_info:
            log["exception"] = self.formatException(record.exc_info)
        return json.dumps(log, ensure_ascii=False)


class ContextTextFormatter(logging.Formatter):
    """Human-readable lines for development, slot context appended as key=value."""

    def __init__(self):
        super().__init__("%(asctime)s %(levelname)s %(name)s: %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = _context(record)
        if context:
            pairs = " ".join(f"{k}={v}" for k, v in context.items())
            line = f"{line} [{pairs}]"
        return line


def setup_logging(level: str = "INFO", fmt: str = "json"):
    """Install the root handler, replacing one installed by an earlier call."""
    handler = logging.StreamHandler()
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(JSONFormatter() if fmt == "json" else ContextTextFormatter())
    for existing in list(logging.root.handlers):
        if existing.get_name() == _HANDLER_NAME:
            logging.root.removeHandler(existing)
    logging.root.addHandler(handler)
    logging.root.setLevel(getattr(logging, level.upper(), logging.INFO))

"""ORM Models — SQLAlchemy declarative models for all slot lifecycle entities.

Invariants:
    - All models inherit from Base (db/base.py)
    - Slot is the aggregate root; attendance records and events reference slot_id

Design Decisions:
    - One file per entity for locality
    - All models imported here so Base.metadata is complete for Alembic and
      create_all before any query runs
"""

from prayer_slots.models.slot import Slot  # noqa: F401
from prayer_slots.models.attendance_record import AttendanceRecord  # noqa: F401
from prayer_slots.models.skip_request import SkipRequest  # noqa: F401
from prayer_slots.models.slot_event import SlotEvent  # noqa: F401

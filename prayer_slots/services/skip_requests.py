"""Skip Request Manager — owner-submitted, admin-decided pauses of miss accrual.

Invariants:
    - requested_days validated against [skip_min_days, skip_max_days] before any IO
    - Only owners currently holding a slot can submit
    - At most one open request (pending, or approved and unexpired) per owner
    - Only pending requests can be decided; a second decision gets ConflictError
    - Approval sets effective_until = decision time + requested_days and moves the
      owner's slot to skipped in the same transaction as the decision
    - Every decision emits exactly one skip-request-decided event

Design Decisions:
    - Admin approval is the only skip path: the dashboard's unmoderated
      "Request Skip (5 days)" button is not reproduced
    - effective_until counts from the decision, not from submission: a request that
      waited in the queue still grants the full number of days
    - Decision is a conditional UPDATE on status = 'pending' so two admins racing on
      the same request cannot both win
    - Authorization of the admin caller is the transport layer's concern
"""

import logging
from datetime import datetime, timedelta

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from prayer_slots.config import Settings, get_settings
from prayer_slots.core.clock import ensure_utc, utc_now
from prayer_slots.core.domain_types import (
    EventKind, OwnerId, SkipRequestId, SkipRequestStatus,
)
from prayer_slots.core.errors import (
    ConflictError, DuplicatePendingError, ErrorContext, NoActiveSlotError,
    ResourceNotFoundError,
)
from prayer_slots.core.slot_lifecycle import (
    is_open_skip_request, validate_skip_days,
)
from prayer_slots.models.skip_request import SkipRequest
from prayer_slots.services.slot_assignment import SlotAssignmentService
from prayer_slots.services.slot_events import record_event

logger = logging.getLogger(__name__)


class SkipRequestManager:
    """Submit, decide, and list skip requests."""

    def __init__(self, db: AsyncSession, settings: Settings | None = None):
        self.db = db
        self.settings = settings or get_settings()
        self.assignment = SlotAssignmentService(db, self.settings)

    async def submit(
        self,
        owner_id: OwnerId,
        days: int,
        reason: str,
        now: datetime | None = None,
    ) -> SkipRequest:
        now = ensure_utc(now) if now else utc_now()
        validate_skip_days(
            days, self.settings.skip_min_days, self.settings.skip_max_days,
        )
        if await self.assignment.registry.get_by_owner(owner_id) is None:
            raise NoActiveSlotError(owner_id)
        if await self._open_request(owner_id, now) is not None:
            raise DuplicatePendingError(owner_id)

        request = SkipRequest(
            owner_id=owner_id,
            requested_days=days,
            reason=reason,
            status=SkipRequestStatus.PENDING.value,
            created_at=now,
        )
        self.db.add(request)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            # only a concurrent submission for this owner means duplicate
            if await self._open_request(owner_id, now) is not None:
                raise DuplicatePendingError(owner_id)
            raise

        logger.info(
            f"Skip request submitted for {days} day(s)",
            extra={"owner_id": owner_id, "request_id": request.id},
        )
        return request

    async def decide(
        self,
        request_id: SkipRequestId,
        approve: bool,
        comment: str | None = None,
        now: datetime | None = None,
    ) -> SkipRequest:
        now = ensure_utc(now) if now else utc_now()
        request = await self.get(request_id)
        ctx = ErrorContext(owner_id=request.owner_id, request_id=request_id)

        status = SkipRequestStatus.APPROVED if approve else SkipRequestStatus.REJECTED
        effective_until = (
            now + timedelta(days=request.requested_days) if approve else None
        )
        result = await self.db.execute(
            update(SkipRequest)
            .where(SkipRequest.id == request_id)
            .where(SkipRequest.status == SkipRequestStatus.PENDING.value)
            .values(
                status=status.value,
                admin_comment=comment,
                decided_at=now,
                effective_until=effective_until,
            )
            .execution_options(synchronize_session=False),
        )
        if result.rowcount != 1:
            await self.db.rollback()
            raise ConflictError(
                f"Skip request {request_id} was already decided", ctx,
            )

        slot = await self.assignment.registry.get_by_owner(request.owner_id)
        if approve:
            if slot is not None:
                try:
                    slot = await self.assignment.mark_skipped(slot, effective_until, now)
                except ConflictError:
                    await self.db.rollback()
                    raise
            else:
                logger.warning(
                    "Approved skip for an owner without a slot",
                    extra={"owner_id": request.owner_id, "request_id": request_id},
                )

        record_event(
            self.db, EventKind.SKIP_REQUEST_DECIDED,
            slot.id if slot else None, request.owner_id,
            request_id=request_id,
            approved=approve,
            requested_days=request.requested_days,
            effective_until=effective_until,
            comment=comment,
        )
        await self.db.commit()
        logger.info(
            f"Skip request {status.value}",
            extra={"owner_id": request.owner_id, "request_id": request_id},
        )
        return await self.get(request_id)

    async def get(self, request_id: SkipRequestId) -> SkipRequest:
        request = await self.db.get(
            SkipRequest, request_id, populate_existing=True,
        )
        if request is None:
            raise ResourceNotFoundError("Skip request", str(request_id))
        return request

    async def list_requests(
        self,
        status: SkipRequestStatus | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[SkipRequest]:
        query = select(SkipRequest).order_by(SkipRequest.created_at.desc())
        if status is not None:
            query = query.where(SkipRequest.status == status.value)
        result = await self.db.execute(query.limit(limit).offset(offset))
        return list(result.scalars().all())

    async def list_for_owner(self, owner_id: OwnerId) -> list[SkipRequest]:
        result = await self.db.execute(
            select(SkipRequest)
            .where(SkipRequest.owner_id == owner_id)
            .order_by(SkipRequest.created_at.desc()),
        )
        return list(result.scalars().all())

    async def _open_request(
        self, owner_id: OwnerId, now: datetime,
    ) -> SkipRequest | None:
        for request in await self.list_for_owner(owner_id):
            if is_open_skip_request(
                SkipRequestStatus(request.status), request.effective_until, now,
            ):
                return request
        return None

"""Services Layer — slot registry, assignment, attendance, skip requests, sweep.

Invariants:
    - Every service receives its AsyncSession explicitly (no ambient globals)
    - Ownership and status changes go through SlotRegistry.transfer_ownership only

Design Decisions:
    - One service file per component for locality
"""

"""Pydantic Schemas — request/response validation for API endpoints.

Invariants:
    - Schemas validate at system boundary (request bodies, API responses)
    - Domain enums from core/ used for status fields

Design Decisions:
    - Separate from models: schemas are API contracts, models are persistence
    - Business ranges (skip days) are checked by core rules, not Field bounds, so
      the caller gets the domain error code instead of a generic validation error
"""

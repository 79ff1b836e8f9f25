"""Core Layer — pure slot lifecycle rules, no IO, no async, no DB.

Invariants:
    - No module in core/ imports from services/, api/, infrastructure/, or db/
    - All functions are pure and deterministic; "now" is always a parameter

Design Decisions:
    - Functional core separated from imperative shell: services read rows, call
      core rules, then write (ADR: impureim sandwich)
"""

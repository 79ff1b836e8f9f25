"""Route Modules — one file per resource.

Invariants:
    - Each module defines its own APIRouter with prefix and tags
    - owner_id travels explicitly in every request; no ambient user state
"""

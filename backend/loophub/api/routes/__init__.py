"""Route Modules: one file per resource.

Invariants:
    - Each module defines its own APIRouter with prefix and tags
    - Rule-heavy operations delegate to services/; simple CRUD queries live in the route
"""

"""Schemas: Pydantic models for request validation and response rendering.

Invariants:
    - Request models reject malformed input before it reaches a route (400 via error handler)
    - Response models read ORM rows directly (from_attributes=True)
"""

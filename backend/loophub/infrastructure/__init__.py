"""Infrastructure Layer: database sessions, auth, logging and in-process stores.

Invariants:
    - Infrastructure wraps external concerns; domain rules stay in core/
    - Failures are mapped to LoopHubError subclasses before they reach routes
"""

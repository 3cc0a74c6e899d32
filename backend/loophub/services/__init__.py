"""Services Layer: async orchestration over an AsyncSession.

Invariants:
    - Services raise LoopHubError subclasses; routes never translate errors themselves
    - Helpers that only flush (award_karma, notify) leave the commit to the operation calling them
"""

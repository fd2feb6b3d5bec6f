"""Services Layer — async orchestration around the pure core.

Invariants:
    - Services own the AsyncSession for the duration of a request
    - Business rules live in core/; services load, delegate, persist
"""

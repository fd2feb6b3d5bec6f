"""Core Layer — pure domain logic, no IO, no async, no DB.

Invariants:
    - No module in core/ imports from services/, api/, infrastructure/, or db/
    - Detectors, traversal and scoring are pure and deterministic

Design Decisions:
    - Functional core separated from imperative shell: services load a snapshot,
      hand it to pure functions, then persist the result
"""

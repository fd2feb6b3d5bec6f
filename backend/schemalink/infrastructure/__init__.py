"""Infrastructure Layer — database session management and logging.

Invariants:
    - Infrastructure never imports from core/ domain logic (errors excepted)
    - All SQLAlchemy failures surface as DatabaseError
"""

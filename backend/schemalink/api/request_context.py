"""Request Context — caller identity for audit fields.

Invariants:
    - Write endpoints require X-Actor-Id; a missing or non-integer header is a
      400 validation error, never an anonymous write
    - Read endpoints do not ask for it

Design Decisions:
    - Authentication happens upstream (gateway); this service trusts the header
      and only records who acted
"""

from fastapi import Header


async def get_actor_id(
    actor_id: int = Header(alias="X-Actor-Id", gt=0),
) -> int:
    return actor_id


async def get_optional_actor_id(
    actor_id: int | None = Header(None, alias="X-Actor-Id", gt=0),
) -> int | None:
    return actor_id

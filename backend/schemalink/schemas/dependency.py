"""Dependency Schemas — scan and purge endpoint shapes."""

from pydantic import BaseModel


class DependencyScanResponse(BaseModel):
    upserted: int
    warnings: list[str] = []


class DependencyPurgeResponse(BaseModel):
    deleted: int

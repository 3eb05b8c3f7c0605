"""Response models for the health and readiness endpoints."""

from __future__ import annotations

from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: str
    version: str


class ReadinessResponse(BaseModel):
    status: str
    watch_synced: bool
    queue_running: bool
    queue_depth: int
    debounce_entries: int

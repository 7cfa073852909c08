"""Request payloads of the temp media API."""

from __future__ import annotations

from pydantic import BaseModel, Field


class ValidateRequest(BaseModel):
    ids: list[str] = Field(default_factory=list)
    session_id: str | None = None

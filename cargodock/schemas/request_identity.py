from __future__ import annotations

from pydantic import BaseModel, Field


class RequestIdentity(BaseModel):
    email: str | None = None
    auth_source: str = "anonymous"
    user_id: int | None = None
    role_names: list[str] = Field(default_factory=list)

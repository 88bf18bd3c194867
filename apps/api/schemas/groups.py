from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class GroupSummary(BaseModel):
    id: int
    name: str
    users: list[str]
    created_at: datetime

    model_config = {
        "from_attributes": True,
    }


class GroupCreateRequest(BaseModel):
    name: str = Field(min_length=1)
    users: list[str]


class GroupRenameRequest(BaseModel):
    name: str = Field(min_length=1)

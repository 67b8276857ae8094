"""Pydantic schemas for tasks.

Learn: Separate schemas for create/update/read keeps the API clean.
- TaskCreate: what you POST to create a task
- TaskUpdate: what you PATCH (all optional; unset fields are left alone)
- TaskRead: what the API returns
- TaskList: one page of tasks plus pagination info

TaskUpdate.status is deliberately a free string: membership in the
status enum is checked by TaskService, which answers "Invalid status".
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator

from taskvault.schemas.common import CamelModel


class TaskCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)

    @field_validator("title", mode="before")
    @classmethod
    def strip_title(cls, v):
        return v.strip() if isinstance(v, str) else v


class TaskUpdate(CamelModel):
    """Partial update: only fields present in the request body are applied."""

    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    status: Optional[str] = None

    @field_validator("title", mode="before")
    @classmethod
    def strip_title(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("title", "status")
    @classmethod
    def not_null(cls, v: Optional[str]) -> str:
        if v is None:
            raise ValueError("cannot be null")
        return v


class TaskRead(CamelModel):
    id: uuid.UUID
    user_id: uuid.UUID
    title: str
    description: Optional[str]
    status: str
    created_at: datetime
    updated_at: datetime


class Pagination(CamelModel):
    total: int
    page: int
    limit: int
    total_pages: int


class TaskList(CamelModel):
    tasks: list[TaskRead]
    pagination: Pagination

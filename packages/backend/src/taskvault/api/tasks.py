"""Task API routes.

Learn: These routes are the HTTP interface to TaskService. The router is
mounted with the auth dependency (see api/__init__.py), and each handler
also receives the identity so it can pass user_id into the service.
FastAPI caches dependencies per request, so the token is verified once.

Key patterns:
- PATCH for partial updates; only fields present in the body change
- page/limit are read as raw strings and parsed leniently by the service
- ids are path strings; a malformed id is just a task that doesn't exist
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from taskvault.auth.dependencies import CurrentIdentity, get_current_user
from taskvault.db.engine import get_db
from taskvault.schemas.common import Envelope
from taskvault.schemas.task import (
    Pagination,
    TaskCreate,
    TaskList,
    TaskRead,
    TaskUpdate,
)
from taskvault.services.task_service import TaskService

router = APIRouter(prefix="/tasks")


def _task_svc(db: AsyncSession = Depends(get_db)) -> TaskService:
    return TaskService(db)


@router.get("", response_model=Envelope[TaskList])
async def list_tasks(
    page: Optional[str] = Query(None, description="1-based page number"),
    limit: Optional[str] = Query(None, description="Page size"),
    status: Optional[str] = Query(None, description="pending | in_progress | completed"),
    search: Optional[str] = Query(None, description="Substring of the title"),
    identity: CurrentIdentity = Depends(get_current_user),
    svc: TaskService = Depends(_task_svc),
):
    """List the caller's tasks, newest first."""
    result = await svc.list_tasks(
        identity.user_id,
        page=page,
        limit=limit,
        status=status,
        search=search,
    )
    return Envelope(
        data=TaskList(
            tasks=[TaskRead.model_validate(t) for t in result.tasks],
            pagination=Pagination(
                total=result.total,
                page=result.page,
                limit=result.limit,
                total_pages=result.total_pages,
            ),
        )
    )


@router.get("/{task_id}", response_model=Envelope[TaskRead])
async def get_task(
    task_id: str,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: TaskService = Depends(_task_svc),
):
    """Get a single task by ID."""
    task = await svc.get_task(identity.user_id, task_id)
    return Envelope(data=TaskRead.model_validate(task))


@router.post("", response_model=Envelope[TaskRead], status_code=201)
async def create_task(
    body: TaskCreate,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: TaskService = Depends(_task_svc),
):
    """Create a new task in 'pending' status."""
    task = await svc.create_task(identity.user_id, body.title, body.description)
    return Envelope(message="Task created successfully", data=TaskRead.model_validate(task))


@router.patch("/{task_id}", response_model=Envelope[TaskRead])
async def update_task(
    task_id: str,
    body: TaskUpdate,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: TaskService = Depends(_task_svc),
):
    """Partially update a task (title, description, status)."""
    task = await svc.update_task(
        identity.user_id,
        task_id,
        body.model_dump(exclude_unset=True),
    )
    return Envelope(message="Task updated successfully", data=TaskRead.model_validate(task))


@router.delete("/{task_id}", response_model=Envelope[None])
async def delete_task(
    task_id: str,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: TaskService = Depends(_task_svc),
):
    """Delete a task."""
    await svc.delete_task(identity.user_id, task_id)
    return Envelope(message="Task deleted successfully")


@router.patch("/{task_id}/toggle", response_model=Envelope[TaskRead])
async def toggle_task(
    task_id: str,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: TaskService = Depends(_task_svc),
):
    """Advance the task along pending → in_progress → completed → pending."""
    task = await svc.toggle_task(identity.user_id, task_id)
    return Envelope(
        message="Task status toggled successfully",
        data=TaskRead.model_validate(task),
    )

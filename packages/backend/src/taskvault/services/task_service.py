"""Task service — ownership-scoped task CRUD and the status cycle.

Learn: Every query here filters on BOTH the task id and the caller's
user_id. There is no "load the task, then compare owners" step, so a task
owned by someone else looks exactly like one that doesn't exist (404,
never 403). That prevents callers from probing for other users' task ids.

Status cycle used by toggle:
  pending → in_progress → completed → pending

Concurrent writes to the same task are last-write-wins; there is no
optimistic locking.
"""

import math
import uuid
from dataclasses import dataclass
from typing import Any, Optional

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from taskvault.config import settings
from taskvault.db.models import TASK_STATUSES, Task, utcnow
from taskvault.errors import InvalidStatus, NotFound

logger = structlog.get_logger()

TASK_NOT_FOUND = "Task not found"

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10

# Largest OFFSET the store can bind (signed 64-bit)
MAX_OFFSET = 2**63 - 1

NEXT_STATUS: dict[str, str] = {
    "pending": "in_progress",
    "in_progress": "completed",
    "completed": "pending",
}

UPDATABLE_FIELDS = ("title", "description", "status")


def next_status(current: Optional[str]) -> str:
    """Advance along the toggle cycle; anything unknown resets to pending."""
    return NEXT_STATUS.get(current or "", "pending")


def parse_positive_int(value: Any, default: int) -> int:
    """Lenient query-param parsing: absent, non-numeric or < 1 → default."""
    if value is None or isinstance(value, bool):
        return default
    try:
        number = int(str(value).strip())
    except ValueError:
        return default
    return number if number >= 1 else default


def _to_uuid(value: Any) -> uuid.UUID:
    """Parse an id; anything that isn't a UUID can't match a row."""
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise NotFound(TASK_NOT_FOUND)


@dataclass
class TaskPage:
    tasks: list[Task]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


class TaskService:
    """Business logic for a single user's tasks."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ─── Read ────────────────────────────────────────────

    async def _get_owned(self, user_id: Any, task_id: Any) -> Task:
        """Fetch a task by id AND owner, or raise NotFound."""
        owner = _to_uuid(user_id)
        tid = _to_uuid(task_id)
        result = await self.db.execute(
            select(Task).where(Task.id == tid, Task.user_id == owner)
        )
        task = result.scalars().first()
        if not task:
            raise NotFound(TASK_NOT_FOUND)
        return task

    async def get_task(self, user_id: Any, task_id: Any) -> Task:
        return await self._get_owned(user_id, task_id)

    async def list_tasks(
        self,
        user_id: Any,
        page: Any = None,
        limit: Any = None,
        status: Optional[str] = None,
        search: Optional[str] = None,
    ) -> TaskPage:
        """List the caller's tasks, newest first, one page at a time.

        Learn: The owner filter is unconditional. The status filter is only
        applied for a known status; anything else is silently ignored,
        not rejected. Search is a substring match on the title with LIKE
        wildcards escaped, so "50%" means the literal text "50%".
        """
        page = parse_positive_int(page, DEFAULT_PAGE)
        limit = min(parse_positive_int(limit, DEFAULT_LIMIT), settings.max_page_size)
        offset = (page - 1) * limit

        conditions = [Task.user_id == _to_uuid(user_id)]
        if status in TASK_STATUSES:
            conditions.append(Task.status == status)
        if search:
            conditions.append(Task.title.contains(search, autoescape=True))

        query = (
            select(Task)
            .where(*conditions)
            .order_by(Task.created_at.desc(), Task.id.desc())
            .offset(offset)
            .limit(limit)
        )
        count_query = select(func.count()).select_from(Task).where(*conditions)

        # One AsyncSession can't run two statements at once, so these are
        # issued back to back rather than gathered.
        if offset > MAX_OFFSET:
            # Far past the last row; the store can't bind an offset this large
            tasks = []
        else:
            tasks = list((await self.db.execute(query)).scalars().all())
        total = (await self.db.execute(count_query)).scalar_one()

        return TaskPage(tasks=tasks, total=total, page=page, limit=limit)

    # ─── Create ──────────────────────────────────────────

    async def create_task(
        self,
        user_id: Any,
        title: str,
        description: Optional[str] = None,
    ) -> Task:
        """Create a task in 'pending' status owned by the caller."""
        task = Task(
            user_id=_to_uuid(user_id),
            title=title,
            description=description or None,
            status="pending",
        )
        self.db.add(task)
        await self.db.commit()
        await self.db.refresh(task)

        logger.info("task.created", task_id=str(task.id), user_id=str(task.user_id))
        return task

    # ─── Update ──────────────────────────────────────────

    async def update_task(
        self,
        user_id: Any,
        task_id: Any,
        changes: dict[str, Any],
    ) -> Task:
        """Apply a partial update.

        Learn: Only keys present in `changes` are touched. An omitted
        field keeps its value, it is NOT set to null. The status is
        validated before anything is modified, so an invalid status leaves
        the stored task exactly as it was.
        """
        task = await self._get_owned(user_id, task_id)

        updates = {k: v for k, v in changes.items() if k in UPDATABLE_FIELDS}
        if "status" in updates and updates["status"] not in TASK_STATUSES:
            raise InvalidStatus("Invalid status")

        for field, value in updates.items():
            setattr(task, field, value)
        if updates:
            task.updated_at = utcnow()

        await self.db.commit()
        await self.db.refresh(task)

        logger.info("task.updated", task_id=str(task.id), fields=sorted(updates))
        return task

    # ─── Status toggle ───────────────────────────────────

    async def toggle_task(self, user_id: Any, task_id: Any) -> Task:
        """Advance the task one step along the status cycle."""
        task = await self._get_owned(user_id, task_id)

        old_status = task.status
        task.status = next_status(old_status)
        task.updated_at = utcnow()

        await self.db.commit()
        await self.db.refresh(task)

        logger.info(
            "task.toggled",
            task_id=str(task.id),
            **{"from": old_status, "to": task.status},
        )
        return task

    # ─── Delete ──────────────────────────────────────────

    async def delete_task(self, user_id: Any, task_id: Any) -> None:
        task = await self._get_owned(user_id, task_id)
        await self.db.delete(task)
        await self.db.commit()
        logger.info("task.deleted", task_id=str(task_id))

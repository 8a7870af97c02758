"""The five task operations.

Each function takes plain data, validates it, talks to the repository in
``crud`` and returns ORM ``Task`` objects or raises one of the errors in
``taskmanager.errors``. Nothing here knows about HTTP.
"""
import logging
from typing import Any, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from . import crud
from .errors import TaskNotFound
from .models import Task, TaskStatus
from .validation import validate_create, validate_filters, validate_update

logger = logging.getLogger(__name__)


async def list_tasks(
    db: AsyncSession,
    category: Optional[str] = None,
    status: Optional[Any] = None,
) -> List[Task]:
    """All tasks, newest first, optionally narrowed by exact category/status"""
    task_filter = validate_filters({"category": category, "status": status})
    return await crud.get_tasks(db, task_filter)


async def count_tasks(
    db: AsyncSession,
    category: Optional[str] = None,
    status: Optional[Any] = None,
) -> int:
    task_filter = validate_filters({"category": category, "status": status})
    return await crud.count_tasks(db, task_filter)


async def get_task(db: AsyncSession, task_id: int) -> Task:
    task = await crud.get_task(db, task_id)
    if task is None:
        raise TaskNotFound(task_id)
    return task


async def create_task(db: AsyncSession, payload: Any) -> Task:
    data = validate_create(payload)
    data["status"] = TaskStatus.PENDING
    task = await crud.create_task(db, data)
    logger.info("Created task %s (%s)", task.id, task.priority.value)
    return task


async def update_task(db: AsyncSession, task_id: int, payload: Any) -> Task:
    """Apply the fields present in ``payload``; absent fields keep their value"""
    if await crud.get_task(db, task_id) is None:
        raise TaskNotFound(task_id)

    data = validate_update(payload)
    task = await crud.update_task(db, task_id, data)
    if task is None:
        # deleted between the lookup and the write
        raise TaskNotFound(task_id)
    logger.info("Updated task %s fields=%s", task_id, sorted(data))
    return task


async def delete_task(db: AsyncSession, task_id: int) -> None:
    if not await crud.delete_task(db, task_id):
        raise TaskNotFound(task_id)
    logger.info("Deleted task %s", task_id)

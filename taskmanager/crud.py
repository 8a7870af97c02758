import functools
import logging
from datetime import timedelta
from typing import Any, Dict, List, Optional
from sqlalchemy import and_, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from .errors import StoreUnavailable
from .models import Task, utcnow
from .schemas import TaskFilter

logger = logging.getLogger(__name__)


def _store_errors(fn):
    """Roll back and re-raise database failures as StoreUnavailable"""

    @functools.wraps(fn)
    async def wrapper(db: AsyncSession, *args, **kwargs):
        try:
            return await fn(db, *args, **kwargs)
        # asyncpg connect failures (refused, reset) arrive as bare OSError
        except (SQLAlchemyError, OSError) as exc:
            logger.exception("Task store error in %s", fn.__name__)
            try:
                await db.rollback()
            except (SQLAlchemyError, OSError):
                logger.warning("Rollback after store error failed", exc_info=True)
            raise StoreUnavailable(str(exc)) from exc

    return wrapper


def _filter_conditions(task_filter: Optional[TaskFilter]) -> list:
    conditions = []
    if task_filter:
        if task_filter.category is not None:
            conditions.append(Task.category == task_filter.category)
        if task_filter.status is not None:
            conditions.append(Task.status == task_filter.status)
    return conditions


@_store_errors
async def create_task(db: AsyncSession, data: Dict[str, Any]) -> Task:
    """Insert a new task row; id, status and timestamps are assigned here"""
    now = utcnow()
    db_task = Task(**data, created_at=now, updated_at=now)
    db.add(db_task)
    await db.commit()
    await db.refresh(db_task)
    return db_task


@_store_errors
async def get_task(db: AsyncSession, task_id: int) -> Optional[Task]:
    """Get a task by ID"""
    result = await db.execute(select(Task).filter(Task.id == task_id))
    return result.scalar_one_or_none()


@_store_errors
async def get_tasks(
    db: AsyncSession,
    task_filter: Optional[TaskFilter] = None
) -> List[Task]:
    """Get tasks, newest first, with optional equality filters"""
    query = select(Task)

    conditions = _filter_conditions(task_filter)
    if conditions:
        query = query.filter(and_(*conditions))

    query = query.order_by(Task.created_at.desc(), Task.id.desc())
    result = await db.execute(query)
    return list(result.scalars().all())


@_store_errors
async def count_tasks(
    db: AsyncSession,
    task_filter: Optional[TaskFilter] = None
) -> int:
    """Count tasks matching the optional filters"""
    query = select(func.count(Task.id))

    conditions = _filter_conditions(task_filter)
    if conditions:
        query = query.filter(and_(*conditions))

    result = await db.execute(query)
    return result.scalar_one()


@_store_errors
async def update_task(
    db: AsyncSession,
    task_id: int,
    data: Dict[str, Any]
) -> Optional[Task]:
    """Merge ``data`` onto an existing task; None if the id is unknown"""
    result = await db.execute(select(Task).filter(Task.id == task_id))
    db_task = result.scalar_one_or_none()
    if not db_task:
        return None

    for field, value in data.items():
        setattr(db_task, field, value)

    # updated_at must move forward even when the clock has not
    now = utcnow()
    if db_task.updated_at is not None and now <= db_task.updated_at:
        now = db_task.updated_at + timedelta(microseconds=1)
    db_task.updated_at = now

    await db.commit()
    await db.refresh(db_task)
    return db_task


@_store_errors
async def delete_task(db: AsyncSession, task_id: int) -> bool:
    """Delete a task"""
    result = await db.execute(select(Task).filter(Task.id == task_id))
    db_task = result.scalar_one_or_none()
    if not db_task:
        return False

    await db.delete(db_task)
    await db.commit()
    return True

from typing import Any, List, Optional
from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from .. import service
from ..db import get_db
from ..schemas import (
    CountResponse,
    MessageResponse,
    TaskCreatedResponse,
    TaskResponse,
    ValidationErrorResponse,
)

router = APIRouter(
    prefix="/tasks",
    tags=["tasks"],
    responses={422: {"model": ValidationErrorResponse}},
)

NOT_FOUND = {404: {"description": "Task not found"}}


@router.get("", response_model=List[TaskResponse])
async def list_tasks(
    category: Optional[str] = Query(None, description="Exact category match"),
    status: Optional[str] = Query(None, description="pending or completed"),
    db: AsyncSession = Depends(get_db)
):
    """List tasks, newest first"""
    tasks = await service.list_tasks(db, category=category, status=status)
    return [TaskResponse.model_validate(task) for task in tasks]


@router.get("/count", response_model=CountResponse)
async def count_tasks(
    category: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db)
):
    """Count tasks with optional filtering"""
    count = await service.count_tasks(db, category=category, status=status)
    return {"count": count}


@router.post("", response_model=TaskCreatedResponse, status_code=201)
async def create_task(
    payload: Any = Body(...),
    db: AsyncSession = Depends(get_db)
):
    """Create a new task"""
    task = await service.create_task(db, payload)
    return TaskCreatedResponse(
        id=task.id,
        message="Task created successfully",
        task=TaskResponse.model_validate(task),
    )


@router.get("/{task_id}", response_model=TaskResponse, responses=NOT_FOUND)
async def get_task(
    task_id: int,
    db: AsyncSession = Depends(get_db)
):
    """Get a specific task by ID"""
    task = await service.get_task(db, task_id)
    return TaskResponse.model_validate(task)


@router.put("/{task_id}", response_model=TaskResponse, responses=NOT_FOUND)
async def update_task(
    task_id: int,
    payload: Any = Body(...),
    db: AsyncSession = Depends(get_db)
):
    """Update a specific task; omitted fields keep their current value"""
    task = await service.update_task(db, task_id, payload)
    return TaskResponse.model_validate(task)


@router.delete("/{task_id}", response_model=MessageResponse, responses=NOT_FOUND)
async def delete_task(
    task_id: int,
    db: AsyncSession = Depends(get_db)
):
    """Delete a specific task"""
    await service.delete_task(db, task_id)
    return {"message": "Task deleted successfully"}

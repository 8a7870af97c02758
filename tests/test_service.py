from datetime import date

import pytest
from sqlalchemy.exc import OperationalError

from taskmanager import crud, service
from taskmanager.errors import StoreUnavailable, TaskNotFound, TaskValidationError
from taskmanager.models import TaskPriority, TaskStatus
from taskmanager.schemas import TaskResponse


async def test_create_assigns_system_fields(db):
    task = await service.create_task(
        db, {"title": "Buy milk", "priority": "high", "category": "Errands"}
    )

    assert task.id is not None
    assert task.status is TaskStatus.PENDING
    assert task.priority is TaskPriority.HIGH
    assert task.category == "Errands"
    assert task.created_at == task.updated_at


async def test_create_defaults_priority_to_medium(db):
    task = await service.create_task(db, {"title": "Water plants"})

    assert task.priority is TaskPriority.MEDIUM


async def test_create_ignores_status_and_id_from_input(db):
    task = await service.create_task(
        db, {"title": "Sneaky", "status": "completed", "id": 500}
    )

    assert task.status is TaskStatus.PENDING
    assert task.id != 500


async def test_create_with_empty_title_fails_on_title(db):
    with pytest.raises(TaskValidationError) as excinfo:
        await service.create_task(db, {"title": "", "priority": "medium"})

    assert "title" in excinfo.value.errors
    assert await crud.get_tasks(db) == []


async def test_create_with_bad_priority_persists_nothing(db):
    with pytest.raises(TaskValidationError):
        await service.create_task(db, {"title": "Buy milk", "priority": "urgent"})

    assert await service.list_tasks(db) == []


async def test_get_round_trips_created_task(db, session_factory):
    created = await service.create_task(
        db,
        {
            "title": "Pay rent",
            "description": "Transfer before the 1st",
            "due_date": "2024-03-01",
            "priority": "low",
            "category": "Home",
        },
    )

    async with session_factory() as other:
        fetched = await service.get_task(other, created.id)

    assert TaskResponse.model_validate(fetched) == TaskResponse.model_validate(created)
    assert fetched.due_date == date(2024, 3, 1)


@pytest.mark.parametrize("operation", ["get", "update", "delete"])
async def test_missing_id_raises_not_found(db, operation):
    with pytest.raises(TaskNotFound) as excinfo:
        if operation == "get":
            await service.get_task(db, 404)
        elif operation == "update":
            await service.update_task(db, 404, {"title": "x"})
        else:
            await service.delete_task(db, 404)

    assert excinfo.value.task_id == 404


async def test_update_missing_id_is_not_found_even_with_invalid_input(db):
    with pytest.raises(TaskNotFound):
        await service.update_task(db, 404, {"priority": "urgent"})


async def test_empty_update_only_moves_updated_at(db):
    task = await service.create_task(db, {"title": "Stretch", "category": "Health"})
    before = TaskResponse.model_validate(task).model_dump()

    updated = await service.update_task(db, task.id, {})
    after = TaskResponse.model_validate(updated).model_dump()

    assert after["updated_at"] > before["updated_at"]
    before.pop("updated_at")
    after.pop("updated_at")
    assert after == before


async def test_update_status_to_completed_and_back(db):
    task = await service.create_task(db, {"title": "Ship release", "priority": "high"})
    created_at = task.created_at
    first_updated_at = task.updated_at

    completed = await service.update_task(db, task.id, {"status": "completed"})

    assert completed.status is TaskStatus.COMPLETED
    assert completed.title == "Ship release"
    assert completed.priority is TaskPriority.HIGH
    assert completed.created_at == created_at
    assert completed.updated_at > first_updated_at
    completed_updated_at = completed.updated_at

    reopened = await service.update_task(db, task.id, {"status": "pending"})
    assert reopened.status is TaskStatus.PENDING
    assert reopened.updated_at > completed_updated_at


async def test_update_merges_partial_fields(db):
    task = await service.create_task(
        db, {"title": "Read", "description": "Chapter 1", "category": "Study"}
    )

    updated = await service.update_task(
        db, task.id, {"description": None, "due_date": "2024-06-01", "owner": "x"}
    )

    assert updated.title == "Read"
    assert updated.category == "Study"
    assert updated.description is None
    assert updated.due_date == date(2024, 6, 1)


async def test_update_rejects_invalid_status(db):
    task = await service.create_task(db, {"title": "Read"})

    with pytest.raises(TaskValidationError) as excinfo:
        await service.update_task(db, task.id, {"status": "archived"})

    assert "status" in excinfo.value.errors
    assert (await service.get_task(db, task.id)).status is TaskStatus.PENDING


async def test_delete_then_get_is_not_found(db):
    task = await service.create_task(db, {"title": "Temporary"})
    keep = await service.create_task(db, {"title": "Keep"})

    await service.delete_task(db, task.id)

    with pytest.raises(TaskNotFound):
        await service.get_task(db, task.id)
    assert [t.id for t in await service.list_tasks(db)] == [keep.id]


async def test_deleted_ids_are_not_reused(db):
    await service.create_task(db, {"title": "one"})
    second = await service.create_task(db, {"title": "two"})

    await service.delete_task(db, second.id)
    third = await service.create_task(db, {"title": "three"})

    assert third.id > second.id


async def test_list_filters_by_category_newest_first(db):
    work_1 = await service.create_task(db, {"title": "Standup", "category": "Work"})
    await service.create_task(db, {"title": "Gym", "category": "Health"})
    work_2 = await service.create_task(db, {"title": "Review PR", "category": "Work"})
    await service.create_task(db, {"title": "Lowercase", "category": "work"})

    tasks = await service.list_tasks(db, category="Work")

    assert [t.id for t in tasks] == [work_2.id, work_1.id]


async def test_list_filters_by_status_and_category(db):
    a = await service.create_task(db, {"title": "a", "category": "Work"})
    b = await service.create_task(db, {"title": "b", "category": "Work"})
    await service.create_task(db, {"title": "c", "category": "Home"})
    await service.update_task(db, a.id, {"status": "completed"})

    assert [t.id for t in await service.list_tasks(db, status="pending", category="Work")] == [b.id]
    assert [t.id for t in await service.list_tasks(db, status="completed")] == [a.id]
    assert len(await service.list_tasks(db)) == 3
    assert await service.count_tasks(db, category="Work") == 2


async def test_list_rejects_unknown_status_filter(db):
    with pytest.raises(TaskValidationError):
        await service.list_tasks(db, status="archived")


async def test_store_failure_surfaces_as_store_unavailable(db, monkeypatch):
    async def broken_execute(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("connection lost"))

    monkeypatch.setattr(db, "execute", broken_execute)

    with pytest.raises(StoreUnavailable) as excinfo:
        await service.get_task(db, 1)

    assert isinstance(excinfo.value.__cause__, OperationalError)


async def test_refused_connection_surfaces_as_store_unavailable(db, monkeypatch):
    async def refused_execute(*args, **kwargs):
        raise ConnectionRefusedError(111, "Connect call failed ('127.0.0.1', 1)")

    monkeypatch.setattr(db, "execute", refused_execute)

    with pytest.raises(StoreUnavailable) as excinfo:
        await service.list_tasks(db)

    assert isinstance(excinfo.value.__cause__, ConnectionRefusedError)

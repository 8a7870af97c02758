"""Turns raw request data into the validated field sets the service persists.

Only the fields named in ``CREATE_FIELDS`` / ``UPDATE_FIELDS`` are ever read
from user input; everything else is dropped here.
"""
from collections.abc import Mapping
from typing import Any, Dict, Type

from pydantic import BaseModel, ValidationError

from .errors import TaskValidationError
from .schemas import TaskCreate, TaskFilter, TaskUpdate

CREATE_FIELDS = ("title", "description", "due_date", "priority", "category")
UPDATE_FIELDS = CREATE_FIELDS + ("status",)
FILTER_FIELDS = ("category", "status")


def _errors_by_field(exc: ValidationError) -> Dict[str, str]:
    errors: Dict[str, str] = {}
    for error in exc.errors():
        loc = error.get("loc") or ()
        field = str(loc[0]) if loc else "body"
        # first message per field wins
        errors.setdefault(field, error["msg"])
    return errors


def _allowed(payload: Any, fields) -> Dict[str, Any]:
    if not isinstance(payload, Mapping):
        raise TaskValidationError({"body": "Request body must be a JSON object"})
    return {key: payload[key] for key in fields if key in payload}


def _validate(schema: Type[BaseModel], data: Dict[str, Any]) -> BaseModel:
    try:
        return schema.model_validate(data)
    except ValidationError as exc:
        raise TaskValidationError(_errors_by_field(exc)) from exc


def validate_create(payload: Any) -> Dict[str, Any]:
    """Validate a create payload; absent priority falls back to the default"""
    task = _validate(TaskCreate, _allowed(payload, CREATE_FIELDS))
    return task.model_dump()


def validate_update(payload: Any) -> Dict[str, Any]:
    """Validate an update payload, returning only the keys that were sent"""
    task = _validate(TaskUpdate, _allowed(payload, UPDATE_FIELDS))
    return task.model_dump(exclude_unset=True)


def validate_filters(params: Any) -> TaskFilter:
    return _validate(TaskFilter, _allowed(params, FILTER_FIELDS))

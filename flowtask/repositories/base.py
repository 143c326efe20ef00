"""Repository contracts shared by the mock and record-store variants.

Every operation is a coroutine and may raise a
:class:`~flowtask.errors.FlowTaskError`. Repositories hold no business
logic: they only persist, read and delete records.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Protocol, Sequence, Union

from flowtask.models import (
    Category,
    CategoryCreate,
    CategoryUpdate,
    Todo,
    TodoCreate,
    TodoUpdate,
    utcnow,
)

TodoChanges = Union[TodoUpdate, dict[str, Any]]
CategoryChanges = Union[CategoryUpdate, dict[str, Any]]

# Fields that may never be cleared through a partial update.
_REQUIRED_TODO_FIELDS = frozenset({"text", "completed", "priority", "order"})
_REQUIRED_CATEGORY_FIELDS = frozenset({"name", "color", "icon"})


class TodoRepository(Protocol):
    async def list(self) -> list[Todo]: ...

    async def get(self, todo_id: str) -> Optional[Todo]: ...

    async def create(self, draft: Union[TodoCreate, dict[str, Any]]) -> Todo: ...

    async def update(self, todo_id: str, changes: TodoChanges) -> Todo: ...

    async def delete(self, todo_id: str) -> Todo: ...

    async def bulk_update(
        self, todo_ids: Sequence[str], changes: TodoChanges
    ) -> list[Todo]: ...

    async def delete_completed(self) -> list[Todo]: ...


class CategoryRepository(Protocol):
    async def list(self) -> list[Category]: ...

    async def get(self, name: str) -> Optional[Category]: ...

    async def create(
        self, draft: Union[CategoryCreate, dict[str, Any]]
    ) -> Category: ...

    async def update(self, name: str, changes: CategoryChanges) -> Category: ...

    async def delete(self, name: str) -> Category: ...


def todo_changes(changes: TodoChanges, mode: str = "python") -> dict[str, Any]:
    """Return only the explicitly provided, applicable fields of *changes*.

    *mode* is passed to ``model_dump``; use ``"json"`` for wire payloads.
    """
    if isinstance(changes, dict):
        changes = TodoUpdate.model_validate(changes)
    data = changes.model_dump(mode=mode, exclude_unset=True)
    return {
        key: value
        for key, value in data.items()
        if value is not None or key not in _REQUIRED_TODO_FIELDS
    }


def category_changes(changes: CategoryChanges) -> dict[str, Any]:
    """Return only the explicitly provided, non-null fields of *changes*."""
    if isinstance(changes, dict):
        changes = CategoryUpdate.model_validate(changes)
    data = changes.model_dump(exclude_unset=True)
    return {
        key: value
        for key, value in data.items()
        if value is not None or key not in _REQUIRED_CATEGORY_FIELDS
    }


def next_timestamp(previous: Optional[datetime]) -> datetime:
    """Return now, nudged forward so it is strictly after *previous*."""
    now = utcnow()
    if previous is None:
        return now
    if previous.tzinfo is None:
        previous = previous.replace(tzinfo=timezone.utc)
    if now <= previous:
        return previous + timedelta(microseconds=1)
    return now

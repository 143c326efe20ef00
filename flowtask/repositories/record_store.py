"""Repositories that pass through to the remote record store.

Records come back denormalized and possibly partial, so every mapping
function falls back to safe defaults instead of failing on a missing
field.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Sequence, Union

from flowtask.errors import InvalidInputError, NotFoundError, PersistenceError
from flowtask.models import (
    DEFAULT_CATEGORY_COLOR,
    DEFAULT_CATEGORY_ICON,
    Category,
    CategoryCreate,
    Priority,
    Todo,
    TodoCreate,
    utcnow,
)
from flowtask.record_store import RecordStoreClient
from flowtask.repositories.base import (
    CategoryChanges,
    TodoChanges,
    category_changes,
    todo_changes,
)

logger = logging.getLogger(__name__)

TODO_TABLE = "todo"
TODO_FIELDS = [
    "Name", "text", "completed", "priority", "due_date", "order", "category_id",
    "Tags", "Owner", "CreatedOn", "CreatedBy", "ModifiedOn", "ModifiedBy",
]
TODO_PAGE_LIMIT = 100

CATEGORY_TABLE = "category"
CATEGORY_FIELDS = [
    "Name", "color", "icon", "Tags", "Owner",
    "CreatedOn", "CreatedBy", "ModifiedOn", "ModifiedBy",
]
CATEGORY_PAGE_LIMIT = 50


# ─── Field Mapping ──────────────────────────────────────────────────


def _record_id(key: Any) -> Any:
    """Store ids are integers; pass anything non-numeric through untouched."""
    text = str(key)
    return int(text) if text.isdigit() else text


def _lookup_name(value: Any) -> Optional[str]:
    """Resolve a lookup field to its display name."""
    if not value:
        return None
    if isinstance(value, dict):
        return value.get("displayValue") or value.get("Name")
    return str(value)


def todo_from_record(raw: dict[str, Any]) -> Todo:
    """Map a store record onto a :class:`Todo`, defaulting missing fields."""
    now = utcnow()
    priority = raw.get("priority")
    if priority not in {p.value for p in Priority}:
        priority = Priority.medium
    return Todo(
        id=str(raw.get("Id", "")),
        text=raw.get("text") or raw.get("Name") or "",
        completed=bool(raw.get("completed") or False),
        priority=priority,
        category=_lookup_name(raw.get("category_id")),
        due_date=raw.get("due_date") or None,
        order=raw.get("order") or 0,
        created_at=raw.get("CreatedOn") or now,
        updated_at=raw.get("ModifiedOn") or now,
    )


def todo_to_record(data: dict[str, Any]) -> dict[str, Any]:
    """Map JSON-mode todo fields onto store columns. Only present keys are sent."""
    record: dict[str, Any] = {}
    if "text" in data:
        record["Name"] = data["text"]
        record["text"] = data["text"]
    if "completed" in data:
        record["completed"] = data["completed"]
    if "priority" in data:
        record["priority"] = data["priority"]
    if "due_date" in data:
        record["due_date"] = data["due_date"]
    if "order" in data:
        record["order"] = data["order"]
    if "category" in data:
        record["category_id"] = data["category"]
    return record


def category_from_record(raw: dict[str, Any]) -> Category:
    return Category(
        name=raw.get("Name") or "",
        color=raw.get("color") or DEFAULT_CATEGORY_COLOR,
        icon=raw.get("icon") or DEFAULT_CATEGORY_ICON,
        created_at=raw.get("CreatedOn") or utcnow(),
    )


def category_to_record(data: dict[str, Any]) -> dict[str, Any]:
    record: dict[str, Any] = {}
    if "name" in data:
        record["Name"] = data["name"]
    if "color" in data:
        record["color"] = data["color"]
    if "icon" in data:
        record["icon"] = data["icon"]
    return record


def _first_result(response: dict[str, Any], action: str) -> dict[str, Any]:
    """Return the data of the first per-record result, or raise."""
    results = response.get("results") or []
    if not results or not results[0].get("success"):
        message = results[0].get("message") if results else None
        raise PersistenceError(message or f"Failed to {action}")
    return results[0].get("data") or {}


# ─── Repositories ───────────────────────────────────────────────────


class RecordStoreTodoRepository:
    """Todo repository over the ``todo`` table of the record store."""

    def __init__(self, client: RecordStoreClient) -> None:
        self._client = client

    async def list(self) -> list[Todo]:
        """Return the first page of todos, newest first."""
        response = await self._client.fetch_records(
            TODO_TABLE,
            {
                "fields": TODO_FIELDS,
                "orderBy": [{"fieldName": "CreatedOn", "SortType": "DESC"}],
                "pagingInfo": {"limit": TODO_PAGE_LIMIT, "offset": 0},
            },
        )
        return [todo_from_record(raw) for raw in response.get("data") or []]

    async def get(self, todo_id: str) -> Optional[Todo]:
        response = await self._client.get_record_by_id(
            TODO_TABLE, _record_id(todo_id), {"fields": TODO_FIELDS}
        )
        if not response or not response.get("data"):
            return None
        return todo_from_record(response["data"])

    async def create(self, draft: Union[TodoCreate, dict[str, Any]]) -> Todo:
        if isinstance(draft, dict):
            draft = TodoCreate.model_validate(draft)
        record = todo_to_record(
            {**draft.model_dump(mode="json"), "completed": False}
        )
        response = await self._client.create_record(
            TODO_TABLE, {"records": [record]}
        )
        created = _first_result(response, "create todo")
        logger.debug("Created todo %s", created.get("Id"))
        return todo_from_record(created)

    async def update(self, todo_id: str, changes: TodoChanges) -> Todo:
        record = todo_to_record(todo_changes(changes, mode="json"))
        response = await self._client.update_record(
            TODO_TABLE, {"records": [{"Id": _record_id(todo_id), **record}]}
        )
        try:
            updated = _first_result(response, "update todo")
        except PersistenceError:
            if await self.get(todo_id) is None:
                raise NotFoundError("Todo", str(todo_id))
            raise
        return todo_from_record(updated)

    async def delete(self, todo_id: str) -> Todo:
        existing = await self.get(todo_id)
        if existing is None:
            raise NotFoundError("Todo", str(todo_id))
        response = await self._client.delete_record(
            TODO_TABLE, {"RecordIds": [_record_id(todo_id)]}
        )
        _first_result(response, "delete todo")
        return existing

    async def bulk_update(
        self, todo_ids: Sequence[str], changes: TodoChanges
    ) -> list[Todo]:
        """Update many todos at once. Per-record failures are skipped."""
        if not todo_ids:
            return []
        record = todo_to_record(todo_changes(changes, mode="json"))
        response = await self._client.update_record(
            TODO_TABLE,
            {"records": [{"Id": _record_id(i), **record} for i in todo_ids]},
        )
        updated: list[Todo] = []
        for result in response.get("results") or []:
            if not result.get("success"):
                logger.warning(
                    "Bulk update skipped a record: %s",
                    result.get("message", "unknown error"),
                )
                continue
            updated.append(todo_from_record(result.get("data") or {}))
        return updated

    async def delete_completed(self) -> list[Todo]:
        """Delete every completed todo and return what was removed."""
        response = await self._client.fetch_records(
            TODO_TABLE,
            {
                "fields": TODO_FIELDS,
                "where": [
                    {
                        "fieldName": "completed",
                        "operator": "ExactMatch",
                        "values": [True],
                    }
                ],
            },
        )
        completed = response.get("data") or []
        if not completed:
            return []
        response = await self._client.delete_record(
            TODO_TABLE, {"RecordIds": [raw.get("Id") for raw in completed]}
        )
        # Results come back in RecordIds order; only confirmed deletes count.
        removed: list[Todo] = []
        for raw, result in zip(completed, response.get("results") or []):
            if not result.get("success"):
                logger.warning(
                    "Delete skipped todo %s: %s",
                    raw.get("Id"),
                    result.get("message", "unknown error"),
                )
                continue
            removed.append(todo_from_record(raw))
        return removed


class RecordStoreCategoryRepository:
    """Category repository over the ``category`` table, addressed by name."""

    def __init__(self, client: RecordStoreClient) -> None:
        self._client = client

    async def list(self) -> list[Category]:
        response = await self._client.fetch_records(
            CATEGORY_TABLE,
            {
                "fields": CATEGORY_FIELDS,
                "orderBy": [{"fieldName": "Name", "SortType": "ASC"}],
                "pagingInfo": {"limit": CATEGORY_PAGE_LIMIT, "offset": 0},
            },
        )
        return [category_from_record(raw) for raw in response.get("data") or []]

    async def get(self, name: str) -> Optional[Category]:
        raw = await self._find(name)
        return None if raw is None else category_from_record(raw)

    async def create(
        self, draft: Union[CategoryCreate, dict[str, Any]]
    ) -> Category:
        if isinstance(draft, dict):
            draft = CategoryCreate.model_validate(draft)
        if await self._find(draft.name) is not None:
            raise InvalidInputError(f"Category already exists: {draft.name}")
        response = await self._client.create_record(
            CATEGORY_TABLE,
            {"records": [category_to_record(draft.model_dump())]},
        )
        return category_from_record(_first_result(response, "create category"))

    async def update(self, name: str, changes: CategoryChanges) -> Category:
        existing = await self._find(name)
        if existing is None:
            raise NotFoundError("Category", name)
        data = category_changes(changes)
        new_name = data.get("name", name)
        if new_name != name and await self._find(new_name) is not None:
            raise InvalidInputError(f"Category already exists: {new_name}")
        response = await self._client.update_record(
            CATEGORY_TABLE,
            {"records": [{"Id": existing.get("Id"), **category_to_record(data)}]},
        )
        return category_from_record(_first_result(response, "update category"))

    async def delete(self, name: str) -> Category:
        existing = await self._find(name)
        if existing is None:
            raise NotFoundError("Category", name)
        response = await self._client.delete_record(
            CATEGORY_TABLE, {"RecordIds": [existing.get("Id")]}
        )
        _first_result(response, "delete category")
        return category_from_record(existing)

    async def _find(self, name: str) -> Optional[dict[str, Any]]:
        response = await self._client.fetch_records(
            CATEGORY_TABLE,
            {
                "fields": ["Id", *CATEGORY_FIELDS],
                "where": [
                    {"fieldName": "Name", "operator": "ExactMatch", "values": [name]}
                ],
                "pagingInfo": {"limit": 1, "offset": 0},
            },
        )
        data = response.get("data") or []
        return data[0] if data else None

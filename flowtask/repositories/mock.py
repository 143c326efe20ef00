"""In-memory repositories seeded from bundled JSON, with simulated latency.

The seed files are read once per process. Each repository instance works
on its own deep copy, mutated in place; nothing is written back to disk.
Records handed to callers are always copies of the stored ones.
"""

from __future__ import annotations

import asyncio
import copy
import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional, Sequence, Union

from flowtask import config
from flowtask.errors import InvalidInputError, NotFoundError
from flowtask.models import (
    Category,
    CategoryCreate,
    Todo,
    TodoCreate,
    utcnow,
)
from flowtask.repositories.base import (
    CategoryChanges,
    TodoChanges,
    category_changes,
    next_timestamp,
    todo_changes,
)

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).resolve().parent.parent / "data"


@lru_cache(maxsize=None)
def _read_seed(filename: str) -> tuple:
    raw = (DATA_DIR / filename).read_text(encoding="utf-8")
    return tuple(json.loads(raw))


def load_seed(filename: str) -> list[dict[str, Any]]:
    """Return a private copy of a bundled seed collection."""
    return copy.deepcopy(list(_read_seed(filename)))


class _LatencyMixin:
    _delay: float

    async def _simulate_latency(self) -> None:
        if self._delay > 0:
            await asyncio.sleep(self._delay)


class MockTodoRepository(_LatencyMixin):
    """Todo repository backed by a list in process memory.

    Args:
        seed: Initial records; defaults to the bundled ``todos.json``.
        delay: Seconds to sleep before every operation.
    """

    def __init__(
        self,
        seed: Optional[list[dict[str, Any]]] = None,
        delay: float = config.MOCK_DELAY,
    ) -> None:
        records = load_seed("todos.json") if seed is None else copy.deepcopy(seed)
        self._todos: list[Todo] = [Todo.model_validate(r) for r in records]
        self._delay = delay
        numeric_ids = [int(t.id) for t in self._todos if t.id.isdigit()]
        self._next_id = max(numeric_ids, default=0) + 1

    # -- reads ---------------------------------------------------------------

    async def list(self) -> list[Todo]:
        """Return every todo, newest first."""
        await self._simulate_latency()
        return sorted(
            (t.model_copy() for t in self._todos),
            key=lambda t: t.created_at,
            reverse=True,
        )

    async def get(self, todo_id: str) -> Optional[Todo]:
        await self._simulate_latency()
        index = self._find(todo_id)
        return None if index is None else self._todos[index].model_copy()

    # -- writes --------------------------------------------------------------

    async def create(self, draft: Union[TodoCreate, dict[str, Any]]) -> Todo:
        """Persist a new todo with a fresh id and ``completed=False``."""
        await self._simulate_latency()
        if isinstance(draft, dict):
            draft = TodoCreate.model_validate(draft)
        now = utcnow()
        todo = Todo.model_validate(
            {
                **draft.model_dump(),
                "id": str(self._next_id),
                "completed": False,
                "created_at": now,
                "updated_at": now,
            }
        )
        self._next_id += 1
        self._todos.append(todo)
        logger.debug("Created todo %s", todo.id)
        return todo.model_copy()

    async def update(self, todo_id: str, changes: TodoChanges) -> Todo:
        """Merge the provided fields into an existing todo."""
        await self._simulate_latency()
        index = self._require(todo_id)
        updated = self._merge(self._todos[index], todo_changes(changes))
        self._todos[index] = updated
        logger.debug("Updated todo %s", todo_id)
        return updated.model_copy()

    async def delete(self, todo_id: str) -> Todo:
        """Remove a todo and return it."""
        await self._simulate_latency()
        index = self._require(todo_id)
        removed = self._todos.pop(index)
        logger.debug("Deleted todo %s", todo_id)
        return removed

    async def bulk_update(
        self, todo_ids: Sequence[str], changes: TodoChanges
    ) -> list[Todo]:
        """Apply one partial update to every existing id, skipping unknown ids."""
        await self._simulate_latency()
        data = todo_changes(changes)
        updated: list[Todo] = []
        for todo_id in todo_ids:
            index = self._find(todo_id)
            if index is None:
                logger.debug("Bulk update skipped unknown todo %s", todo_id)
                continue
            todo = self._merge(self._todos[index], data)
            self._todos[index] = todo
            updated.append(todo.model_copy())
        return updated

    async def delete_completed(self) -> list[Todo]:
        """Remove every completed todo and return the removed records."""
        await self._simulate_latency()
        removed = [t for t in self._todos if t.completed]
        self._todos = [t for t in self._todos if not t.completed]
        logger.debug("Deleted %d completed todo(s)", len(removed))
        return removed

    # -- private helpers -----------------------------------------------------

    def _find(self, todo_id: str) -> Optional[int]:
        for index, todo in enumerate(self._todos):
            if todo.id == str(todo_id):
                return index
        return None

    def _require(self, todo_id: str) -> int:
        index = self._find(todo_id)
        if index is None:
            raise NotFoundError("Todo", str(todo_id))
        return index

    @staticmethod
    def _merge(existing: Todo, data: dict[str, Any]) -> Todo:
        return existing.model_copy(
            update={**data, "updated_at": next_timestamp(existing.updated_at)}
        )


class MockCategoryRepository(_LatencyMixin):
    """Category repository backed by a list in process memory, keyed by name."""

    def __init__(
        self,
        seed: Optional[list[dict[str, Any]]] = None,
        delay: float = config.MOCK_DELAY,
    ) -> None:
        records = (
            load_seed("categories.json") if seed is None else copy.deepcopy(seed)
        )
        self._categories: list[Category] = [
            Category.model_validate(r) for r in records
        ]
        self._delay = delay

    async def list(self) -> list[Category]:
        """Return every category sorted by name."""
        await self._simulate_latency()
        return sorted(
            (c.model_copy() for c in self._categories),
            key=lambda c: c.name.lower(),
        )

    async def get(self, name: str) -> Optional[Category]:
        await self._simulate_latency()
        index = self._find(name)
        return None if index is None else self._categories[index].model_copy()

    async def create(
        self, draft: Union[CategoryCreate, dict[str, Any]]
    ) -> Category:
        await self._simulate_latency()
        if isinstance(draft, dict):
            draft = CategoryCreate.model_validate(draft)
        if self._find(draft.name) is not None:
            raise InvalidInputError(f"Category already exists: {draft.name}")
        category = Category.model_validate(
            {**draft.model_dump(), "created_at": utcnow()}
        )
        self._categories.append(category)
        return category.model_copy()

    async def update(self, name: str, changes: CategoryChanges) -> Category:
        """Merge changes into a category. Renaming onto a taken name fails."""
        await self._simulate_latency()
        index = self._find(name)
        if index is None:
            raise NotFoundError("Category", name)
        data = category_changes(changes)
        new_name = data.get("name", name)
        if new_name != name and self._find(new_name) is not None:
            raise InvalidInputError(f"Category already exists: {new_name}")
        updated = self._categories[index].model_copy(update=data)
        self._categories[index] = updated
        return updated.model_copy()

    async def delete(self, name: str) -> Category:
        await self._simulate_latency()
        index = self._find(name)
        if index is None:
            raise NotFoundError("Category", name)
        return self._categories.pop(index)

    def _find(self, name: str) -> Optional[int]:
        for index, category in enumerate(self._categories):
            if category.name == name:
                return index
        return None

"""Tests for the in-memory todo and category repositories."""

import pytest

from flowtask.errors import InvalidInputError, NotFoundError
from flowtask.models import Priority, TodoCreate, TodoUpdate
from flowtask.repositories.mock import (
    MockCategoryRepository,
    MockTodoRepository,
    load_seed,
)


# ── Fixtures ────────────────────────────────────────────────────────


@pytest.fixture
def seed():
    return [
        {
            "id": "1",
            "text": "Older task",
            "completed": False,
            "created_at": "2024-01-01T09:00:00Z",
            "updated_at": "2024-01-01T09:00:00Z",
        },
        {
            "id": "2",
            "text": "Newer task",
            "completed": True,
            "priority": "high",
            "created_at": "2024-01-02T09:00:00Z",
            "updated_at": "2024-01-02T09:00:00Z",
        },
    ]


@pytest.fixture
def repo(seed):
    return MockTodoRepository(seed=seed, delay=0)


@pytest.fixture
def categories():
    return MockCategoryRepository(
        seed=[
            {"name": "Work", "color": "#3b82f6", "icon": "Briefcase"},
            {"name": "home", "color": "#10b981", "icon": "House"},
        ],
        delay=0,
    )


# ── Seed data ───────────────────────────────────────────────────────


class TestSeed:
    def test_bundled_seed_loads(self):
        todos = load_seed("todos.json")
        assert len(todos) > 0
        assert all("id" in t and "text" in t for t in todos)

    def test_load_seed_returns_private_copy(self):
        first = load_seed("todos.json")
        first[0]["text"] = "mutated"
        assert load_seed("todos.json")[0]["text"] != "mutated"

    @pytest.mark.asyncio
    async def test_default_repository_uses_bundled_seed(self):
        repo = MockTodoRepository(delay=0)
        todos = await repo.list()
        assert len(todos) == len(load_seed("todos.json"))

    @pytest.mark.asyncio
    async def test_instances_do_not_share_records(self):
        first = MockTodoRepository(delay=0)
        second = MockTodoRepository(delay=0)
        todo = (await first.list())[0]
        await first.delete(todo.id)
        assert await second.get(todo.id) is not None


# ── list / get ──────────────────────────────────────────────────────


class TestListAndGet:
    @pytest.mark.asyncio
    async def test_list_newest_first(self, repo):
        todos = await repo.list()
        assert [t.id for t in todos] == ["2", "1"]

    @pytest.mark.asyncio
    async def test_list_empty(self):
        repo = MockTodoRepository(seed=[], delay=0)
        assert await repo.list() == []

    @pytest.mark.asyncio
    async def test_list_returns_copies(self, repo):
        todos = await repo.list()
        todos[0].text = "changed outside"
        assert (await repo.get("2")).text == "Newer task"

    @pytest.mark.asyncio
    async def test_get_existing(self, repo):
        todo = await repo.get("2")
        assert todo.text == "Newer task"
        assert todo.priority == Priority.high

    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self, repo):
        assert await repo.get("999") is None

    @pytest.mark.asyncio
    async def test_naive_seed_timestamps_sort_with_created(self):
        repo = MockTodoRepository(
            seed=[
                {
                    "id": "1",
                    "text": "No offset",
                    "created_at": "2024-06-01T09:00:00",
                    "updated_at": "2024-06-01T09:00:00",
                }
            ],
            delay=0,
        )
        created = await repo.create({"text": "Fresh"})
        todos = await repo.list()
        assert [t.id for t in todos] == [created.id, "1"]
        assert todos[1].created_at.tzinfo is not None

    @pytest.mark.asyncio
    async def test_partial_seed_gets_defaults(self, repo):
        todo = await repo.get("1")
        assert todo.priority == Priority.medium
        assert todo.category is None
        assert todo.due_date is None
        assert todo.order == 0


# ── create ──────────────────────────────────────────────────────────


class TestCreate:
    @pytest.mark.asyncio
    async def test_create_assigns_id_and_timestamps(self, repo):
        todo = await repo.create(TodoCreate(text="Buy milk", priority="high"))
        assert todo.id == "3"
        assert todo.completed is False
        assert todo.priority == Priority.high
        assert todo.created_at == todo.updated_at
        assert await repo.get("3") is not None

    @pytest.mark.asyncio
    async def test_create_forces_completed_false(self, repo):
        todo = await repo.create({"text": "Already done?", "completed": True})
        assert todo.completed is False

    @pytest.mark.asyncio
    async def test_create_trims_text(self, repo):
        todo = await repo.create({"text": "  padded  "})
        assert todo.text == "padded"

    @pytest.mark.asyncio
    async def test_create_blank_text_rejected(self, repo):
        with pytest.raises(ValueError):
            await repo.create({"text": "   "})
        assert len(await repo.list()) == 2

    @pytest.mark.asyncio
    async def test_ids_never_reused(self, repo):
        created = await repo.create({"text": "Third"})
        await repo.delete(created.id)
        again = await repo.create({"text": "Fourth"})
        assert again.id != created.id

    @pytest.mark.asyncio
    async def test_create_accepts_date_only_due_date(self, repo):
        todo = await repo.create({"text": "Dated", "due_date": "2024-01-15"})
        assert todo.due_date.year == 2024
        assert todo.due_date.day == 15
        assert todo.due_date.hour == 0


# ── update ──────────────────────────────────────────────────────────


class TestUpdate:
    @pytest.mark.asyncio
    async def test_update_merges_only_provided_fields(self, repo):
        updated = await repo.update("1", TodoUpdate(completed=True))
        assert updated.completed is True
        assert updated.text == "Older task"
        assert updated.priority == Priority.medium

    @pytest.mark.asyncio
    async def test_update_refreshes_updated_at(self, repo):
        before = await repo.get("1")
        updated = await repo.update("1", {"text": "Renamed"})
        assert updated.updated_at > before.updated_at
        assert updated.created_at == before.created_at

    @pytest.mark.asyncio
    async def test_updated_at_strictly_increases(self, repo):
        first = await repo.update("1", {"completed": True})
        second = await repo.update("1", {"completed": False})
        assert second.updated_at > first.updated_at

    @pytest.mark.asyncio
    async def test_update_can_clear_category(self, repo):
        await repo.update("1", {"category": "Work"})
        updated = await repo.update("1", {"category": None})
        assert updated.category is None

    @pytest.mark.asyncio
    async def test_update_ignores_null_for_required_fields(self, repo):
        updated = await repo.update("1", {"text": None})
        assert updated.text == "Older task"

    @pytest.mark.asyncio
    async def test_update_missing_raises_not_found(self, repo):
        with pytest.raises(NotFoundError):
            await repo.update("999", {"completed": True})


# ── delete ──────────────────────────────────────────────────────────


class TestDelete:
    @pytest.mark.asyncio
    async def test_delete_returns_removed(self, repo):
        removed = await repo.delete("1")
        assert removed.id == "1"
        assert await repo.get("1") is None

    @pytest.mark.asyncio
    async def test_delete_missing_leaves_collection_unchanged(self, repo):
        with pytest.raises(NotFoundError):
            await repo.delete("999")
        assert len(await repo.list()) == 2


# ── bulk_update / delete_completed ─────────────────────────────────


class TestBulkOperations:
    @pytest.mark.asyncio
    async def test_bulk_update_skips_missing_ids(self, repo):
        updated = await repo.bulk_update(["2", "999", "1"], {"priority": "low"})
        assert [t.id for t in updated] == ["2", "1"]
        assert all(t.priority == Priority.low for t in updated)

    @pytest.mark.asyncio
    async def test_delete_completed(self, repo):
        removed = await repo.delete_completed()
        assert [t.id for t in removed] == ["2"]
        assert [t.id for t in await repo.list()] == ["1"]

    @pytest.mark.asyncio
    async def test_delete_completed_noop(self, repo):
        await repo.delete_completed()
        assert await repo.delete_completed() == []


# ── categories ─────────────────────────────────────────────────────


class TestCategories:
    @pytest.mark.asyncio
    async def test_list_sorted_by_name(self, categories):
        names = [c.name for c in await categories.list()]
        assert names == ["home", "Work"]

    @pytest.mark.asyncio
    async def test_create_defaults(self, categories):
        created = await categories.create({"name": "Errands"})
        assert created.color == "#64748b"
        assert created.icon == "Tag"

    @pytest.mark.asyncio
    async def test_create_duplicate_name_rejected(self, categories):
        with pytest.raises(InvalidInputError):
            await categories.create({"name": "Work"})

    @pytest.mark.asyncio
    async def test_update_color(self, categories):
        updated = await categories.update("Work", {"color": "#000000"})
        assert updated.color == "#000000"
        assert (await categories.get("Work")).color == "#000000"

    @pytest.mark.asyncio
    async def test_rename(self, categories):
        await categories.update("Work", {"name": "Office"})
        assert await categories.get("Work") is None
        assert await categories.get("Office") is not None

    @pytest.mark.asyncio
    async def test_rename_onto_taken_name_rejected(self, categories):
        with pytest.raises(InvalidInputError):
            await categories.update("Work", {"name": "home"})

    @pytest.mark.asyncio
    async def test_update_missing_raises(self, categories):
        with pytest.raises(NotFoundError):
            await categories.update("Nope", {"color": "#000000"})

    @pytest.mark.asyncio
    async def test_delete(self, categories):
        removed = await categories.delete("Work")
        assert removed.name == "Work"
        with pytest.raises(NotFoundError):
            await categories.delete("Work")

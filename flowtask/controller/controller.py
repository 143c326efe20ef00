"""Task list controller -- sequences user intents against the repositories.

Local state only changes after the repository confirms a call, and it is
always replaced with the record the repository returned. A failed call
leaves state at its last-known-good value and surfaces a notice instead.
"""

import asyncio
import logging
from datetime import date, datetime
from typing import Any, Awaitable, Callable, Optional, Sequence, Union

from flowtask.controller.state import TaskListState
from flowtask.controller.views import build_view, reorder_filtered
from flowtask.errors import FlowTaskError, InvalidInputError
from flowtask.models import (
    DEFAULT_CATEGORY_COLOR,
    DEFAULT_CATEGORY_ICON,
    Category,
    CategoryCreate,
    CategoryUpdate,
    FilterMode,
    Priority,
    Todo,
    TodoCreate,
    TodoUpdate,
)
from flowtask.repositories.base import CategoryRepository, TodoRepository

logger = logging.getLogger(__name__)

Notify = Callable[[str, str], None]


class TaskListController:
    """Owns one task list and applies confirmed repository results to it.

    Args:
        todos: Repository for todo records.
        categories: Repository for category records.
        on_notify: Optional callback invoked with ``(level, message)`` for
            every user-facing notice; *level* is ``"success"`` or ``"error"``.
    """

    def __init__(
        self,
        todos: TodoRepository,
        categories: CategoryRepository,
        on_notify: Optional[Notify] = None,
    ) -> None:
        self._todos = todos
        self._categories = categories
        self._on_notify = on_notify
        self._state = TaskListState()
        self._inflight: set[asyncio.Future] = set()
        self._closed = False

    # -- reads ---------------------------------------------------------------

    @property
    def state(self) -> TaskListState:
        return self._state

    @property
    def closed(self) -> bool:
        return self._closed

    def snapshot(self) -> dict:
        return self._state.snapshot()

    def view(self, now: Optional[datetime] = None) -> dict[str, Any]:
        """Return the presentation view model for the current state."""
        return build_view(self._state.snapshot(), now)

    # -- loading -------------------------------------------------------------

    async def load(self) -> bool:
        """Fetch todos and categories together and replace both collections.

        On any failure both collections are emptied rather than left stale.
        """
        if self._closed:
            return False
        self._state.set_loading(True)
        try:
            todos, categories = await self._track(self._fetch_all())
        except FlowTaskError as exc:
            logger.error("Loading tasks failed: %s", exc)
            return self._fail_load(str(exc))
        except Exception as exc:
            logger.exception("Loading tasks failed")
            return self._fail_load(str(exc) or "An unexpected error occurred")
        finally:
            self._state.set_loading(False)

        if self._closed:
            logger.debug("Discarding load result for closed controller")
            return False
        self._state.replace_collections(todos, categories)
        logger.info("Loaded %d todo(s), %d categories", len(todos), len(categories))
        return True

    async def _fetch_all(self) -> tuple[list[Todo], list[Category]]:
        todos, categories = await asyncio.gather(
            self._todos.list(), self._categories.list()
        )
        return todos or [], categories or []

    def _fail_load(self, error: str) -> bool:
        if not self._closed:
            self._state.clear_collections(error)
            self._notify("error", "Failed to load tasks")
        return False

    # -- todos ---------------------------------------------------------------

    async def create_todo(
        self,
        text: str,
        priority: Union[Priority, str] = Priority.medium,
        category: Optional[str] = None,
        due_date: Optional[Union[date, datetime, str]] = None,
    ) -> Optional[Todo]:
        """Create a todo and prepend the record the repository returns.

        Blank text is ignored without touching the repository.
        """
        text = (text or "").strip()
        if not text:
            return None
        try:
            draft = TodoCreate(
                text=text,
                priority=priority,
                category=category or None,
                due_date=due_date or None,
                completed=False,
            )
        except ValueError as exc:
            logger.warning("Rejected new task: %s", exc)
            self._notify("error", "Failed to create task")
            return None

        ok, created = await self._attempt(
            self._todos.create(draft), "Failed to create task"
        )
        if not ok:
            return None
        self._state.prepend_todo(created)
        self._notify("success", "Task created successfully!")
        return created

    async def toggle_todo(self, todo_id: str) -> Optional[Todo]:
        """Flip ``completed`` on a todo. Unknown ids are ignored."""
        todo = self._state.find_todo(todo_id)
        if todo is None:
            return None
        ok, updated = await self._attempt(
            self._todos.update(todo_id, TodoUpdate(completed=not todo.completed)),
            "Failed to update task",
        )
        if not ok:
            return None
        self._state.replace_todos([updated])
        self._notify("success", "Task completed!" if updated.completed else "Task reopened")
        return updated

    async def delete_todo(self, todo_id: str) -> bool:
        ok, _ = await self._attempt(
            self._todos.delete(todo_id), "Failed to delete task"
        )
        if not ok:
            return False
        self._state.remove_todos([todo_id])
        self._notify("success", "Task deleted")
        return True

    async def complete_many(
        self, todo_ids: Sequence[str], completed: bool = True
    ) -> Optional[list[Todo]]:
        """Set ``completed`` on several todos in one repository call.

        Returns the updated todos, or None when the repository call failed.
        """
        if not todo_ids:
            return []
        ok, updated = await self._attempt(
            self._todos.bulk_update(list(todo_ids), TodoUpdate(completed=completed)),
            "Failed to update tasks",
        )
        if not ok:
            return None
        self._state.replace_todos(updated)
        self._notify("success", f"{len(updated)} task(s) updated")
        return updated

    async def clear_completed(self) -> Optional[list[Todo]]:
        """Delete every completed todo. Returns None when the call failed."""
        ok, removed = await self._attempt(
            self._todos.delete_completed(), "Failed to clear completed tasks"
        )
        if not ok:
            return None
        self._state.remove_todos(t.id for t in removed)
        if removed:
            self._notify("success", f"{len(removed)} completed task(s) cleared")
        return removed

    # -- inline edit ---------------------------------------------------------

    def start_edit(self, todo_id: str) -> bool:
        """Open an edit session seeded with the todo's current text."""
        todo = self._state.find_todo(todo_id)
        if todo is None:
            return False
        self._state.start_edit(todo.id, todo.text)
        return True

    def set_edit_buffer(self, text: str) -> None:
        self._state.set_edit_buffer(text)

    def cancel_edit(self) -> None:
        self._state.end_edit()

    async def save_edit(self) -> Optional[Todo]:
        """Persist the edit buffer and end the session.

        A blank buffer cancels the edit without calling the repository.
        The session ends whether or not the update succeeds.
        """
        editing = self._state.editing
        if editing is None:
            return None
        todo_id = editing["todo_id"]
        text = editing["buffer"].strip()
        if not text:
            self._state.end_edit()
            return None

        try:
            ok, updated = await self._attempt(
                self._todos.update(todo_id, TodoUpdate(text=text)),
                "Failed to update task",
            )
        finally:
            current = self._state.editing
            if current is not None and current["todo_id"] == todo_id:
                self._state.end_edit()
        if not ok:
            return None
        self._state.replace_todos([updated])
        self._notify("success", "Task updated!")
        return updated

    # -- ordering and view parameters ----------------------------------------

    def reorder(self, source_index: int, destination_index: Optional[int]) -> bool:
        """Move an item within the filtered view and renumber that view.

        Only todos visible under the current filter and search get a new
        ``order``. The change is local and is not sent to the repository.
        """
        snapshot = self._state.snapshot()
        orders = reorder_filtered(
            snapshot["todos"],
            snapshot["filter"],
            snapshot["search"],
            source_index,
            destination_index,
        )
        if orders is None:
            return False
        self._state.set_orders(orders)
        return True

    def set_filter(self, mode: Union[FilterMode, str]) -> None:
        try:
            self._state.set_filter(FilterMode(mode))
        except ValueError as exc:
            raise InvalidInputError(f"Unknown filter mode: {mode}") from exc

    def set_search(self, text: str) -> None:
        self._state.set_search(text or "")

    # -- categories ----------------------------------------------------------

    async def add_category(
        self,
        name: str,
        color: str = DEFAULT_CATEGORY_COLOR,
        icon: str = DEFAULT_CATEGORY_ICON,
    ) -> Optional[Category]:
        name = (name or "").strip()
        if not name:
            return None
        ok, created = await self._attempt(
            self._categories.create(CategoryCreate(name=name, color=color, icon=icon)),
            "Failed to create category",
        )
        if not ok:
            return None
        self._state.add_category(created)
        self._notify("success", "Category created")
        return created

    async def update_category(
        self, name: str, changes: Union[CategoryUpdate, dict[str, Any]]
    ) -> Optional[Category]:
        """Update a category. Todos still naming the old name are left as-is."""
        ok, updated = await self._attempt(
            self._categories.update(name, changes), "Failed to update category"
        )
        if not ok:
            return None
        self._state.replace_category(name, updated)
        self._notify("success", "Category updated")
        return updated

    async def remove_category(self, name: str) -> bool:
        """Delete a category. Referencing todos keep the dangling name."""
        ok, _ = await self._attempt(
            self._categories.delete(name), "Failed to delete category"
        )
        if not ok:
            return False
        self._state.remove_category(name)
        self._notify("success", "Category deleted")
        return True

    # -- lifecycle -----------------------------------------------------------

    async def aclose(self) -> None:
        """Cancel in-flight repository calls and stop applying results."""
        self._closed = True
        pending = list(self._inflight)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        logger.debug("Controller closed, %d call(s) cancelled", len(pending))

    # -- private helpers -----------------------------------------------------

    async def _track(self, coro: Awaitable[Any]) -> Any:
        """Await *coro* as a task that :meth:`aclose` can cancel."""
        task = asyncio.ensure_future(coro)
        self._inflight.add(task)
        try:
            return await task
        finally:
            self._inflight.discard(task)

    async def _attempt(
        self, coro: Awaitable[Any], failure_message: str
    ) -> tuple[bool, Any]:
        """Await one repository call, surfacing any failure as a notice.

        Returns ``(True, result)`` on success and ``(False, None)`` when the
        call failed or the controller was closed meanwhile.
        """
        if self._closed:
            coro.close()
            return False, None
        try:
            result = await self._track(coro)
        except FlowTaskError as exc:
            logger.warning("%s: %s", failure_message, exc)
            self._notify("error", failure_message)
            return False, None
        except Exception:
            logger.exception(failure_message)
            self._notify("error", failure_message)
            return False, None
        if self._closed:
            return False, None
        return True, result

    def _notify(self, level: str, message: str) -> None:
        self._state.set_notice(level, message)
        if self._on_notify is not None:
            self._on_notify(level, message)

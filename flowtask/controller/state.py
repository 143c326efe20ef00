"""State container for one task list controller.

Holds the authoritative todo and category collections plus the view
parameters (filter, search) and the inline-edit session. Uses immutable
update patterns throughout -- self._state is never mutated in-place.
"""

import copy
import threading
from typing import Iterable, Optional

from flowtask.models import Category, FilterMode, Todo


def _initial_state() -> dict:
    """Return a fresh, empty state dict."""
    return {
        "todos": [],
        "categories": [],
        "filter": FilterMode.all.value,
        "search": "",
        "editing": None,
        "loading": False,
        "error": None,
        "notice": None,
    }


class TaskListState:
    """Immutable-style state container for a task list.

    Every mutation method replaces ``self._state`` with a new dict rather
    than modifying the existing one in-place. Callers receive deep copies
    via :meth:`snapshot` so external mutation cannot corrupt internal state.
    """

    def __init__(self) -> None:
        self._state: dict = _initial_state()
        self._lock = threading.Lock()

    # -- reads ---------------------------------------------------------------

    def snapshot(self) -> dict:
        """Return a deep copy of the current state."""
        with self._lock:
            return copy.deepcopy(self._state)

    def find_todo(self, todo_id: str) -> Optional[Todo]:
        """Return a copy of the local todo with *todo_id*, or None."""
        with self._lock:
            for todo in self._state["todos"]:
                if todo is not None and todo.id == todo_id:
                    return todo.model_copy()
        return None

    @property
    def editing(self) -> Optional[dict]:
        with self._lock:
            editing = self._state["editing"]
            return dict(editing) if editing is not None else None

    # -- collections ---------------------------------------------------------

    def replace_collections(
        self, todos: Iterable[Todo], categories: Iterable[Category]
    ) -> None:
        """Swap in freshly loaded collections and clear any load error."""
        with self._lock:
            self._state = {
                **self._state,
                "todos": list(todos),
                "categories": list(categories),
                "error": None,
            }

    def clear_collections(self, error: str) -> None:
        """Empty both collections after a failed load."""
        with self._lock:
            self._state = {
                **self._state,
                "todos": [],
                "categories": [],
                "error": error,
            }

    def set_loading(self, loading: bool) -> None:
        with self._lock:
            self._state = {**self._state, "loading": loading}

    # -- todos ---------------------------------------------------------------

    def prepend_todo(self, todo: Todo) -> None:
        with self._lock:
            self._state = {
                **self._state,
                "todos": [todo, *self._state["todos"]],
            }

    def replace_todos(self, updated: Iterable[Todo]) -> None:
        """Replace local entries by id. Ids not held locally are ignored."""
        by_id = {todo.id: todo for todo in updated}
        with self._lock:
            self._state = {
                **self._state,
                "todos": [
                    by_id.get(t.id, t) if t is not None else t
                    for t in self._state["todos"]
                ],
            }

    def remove_todos(self, todo_ids: Iterable[str]) -> None:
        removed = set(todo_ids)
        with self._lock:
            self._state = {
                **self._state,
                "todos": [
                    t for t in self._state["todos"]
                    if t is None or t.id not in removed
                ],
            }

    def set_orders(self, orders: dict[str, int]) -> None:
        """Reassign ``order`` for the given ids, leaving every other todo alone."""
        with self._lock:
            self._state = {
                **self._state,
                "todos": [
                    t.model_copy(update={"order": orders[t.id]})
                    if t is not None and t.id in orders
                    else t
                    for t in self._state["todos"]
                ],
            }

    # -- categories ----------------------------------------------------------

    def add_category(self, category: Category) -> None:
        with self._lock:
            self._state = {
                **self._state,
                "categories": [*self._state["categories"], category],
            }

    def replace_category(self, name: str, category: Category) -> None:
        with self._lock:
            self._state = {
                **self._state,
                "categories": [
                    category if c.name == name else c
                    for c in self._state["categories"]
                ],
            }

    def remove_category(self, name: str) -> None:
        with self._lock:
            self._state = {
                **self._state,
                "categories": [
                    c for c in self._state["categories"] if c.name != name
                ],
            }

    # -- view parameters -----------------------------------------------------

    def set_filter(self, mode: FilterMode) -> None:
        with self._lock:
            self._state = {**self._state, "filter": FilterMode(mode).value}

    def set_search(self, text: str) -> None:
        with self._lock:
            self._state = {**self._state, "search": text}

    # -- inline edit ---------------------------------------------------------

    def start_edit(self, todo_id: str, buffer: str) -> None:
        """Open an edit session, replacing any session already open."""
        with self._lock:
            self._state = {
                **self._state,
                "editing": {"todo_id": todo_id, "buffer": buffer},
            }

    def set_edit_buffer(self, buffer: str) -> None:
        """Update the buffer of the open session. Ignored when idle."""
        with self._lock:
            editing = self._state["editing"]
            if editing is None:
                return
            self._state = {
                **self._state,
                "editing": {**editing, "buffer": buffer},
            }

    def end_edit(self) -> None:
        with self._lock:
            self._state = {**self._state, "editing": None}

    # -- notices -------------------------------------------------------------

    def set_notice(self, level: str, message: str) -> None:
        with self._lock:
            self._state = {
                **self._state,
                "notice": {"level": level, "message": message},
            }

    def reset(self) -> None:
        """Reset to the initial empty state."""
        with self._lock:
            self._state = _initial_state()

"""Derived views over a task list snapshot.

Everything here is a pure function of its arguments: nothing is cached,
and the due-date badge is recomputed against ``now`` on every call.
"""

import math
from dataclasses import asdict, dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Iterable, Optional, Sequence, Union

from flowtask.models import (
    DEFAULT_CATEGORY_COLOR,
    DEFAULT_CATEGORY_ICON,
    Category,
    FilterMode,
    Todo,
    utcnow,
)

_ONE_DAY = timedelta(days=1)


@dataclass(frozen=True)
class TodoStats:
    total: int
    completed: int
    active: int
    completion_percentage: int


@dataclass(frozen=True)
class DueDateBadge:
    status: str
    label: str


@dataclass(frozen=True)
class CategoryStyle:
    color: str
    icon: str


DEFAULT_CATEGORY_STYLE = CategoryStyle(DEFAULT_CATEGORY_COLOR, DEFAULT_CATEGORY_ICON)


# ─── Filtering ──────────────────────────────────────────────────────


def matches(todo: Optional[Todo], mode: Union[FilterMode, str], search: str) -> bool:
    """Return True when *todo* passes both the filter mode and the search text."""
    if todo is None:
        return False
    mode = FilterMode(mode)
    completed = bool(getattr(todo, "completed", False))
    if mode is FilterMode.active and completed:
        return False
    if mode is FilterMode.completed and not completed:
        return False
    if not search:
        return True
    text = getattr(todo, "text", None)
    return bool(text) and search.lower() in text.lower()


def filter_todos(
    todos: Iterable[Optional[Todo]],
    mode: Union[FilterMode, str] = FilterMode.all,
    search: str = "",
) -> list[Todo]:
    """Return the visible todos in their input order."""
    return [todo for todo in todos if matches(todo, mode, search)]


# ─── Statistics ─────────────────────────────────────────────────────


def compute_stats(todos: Sequence[Optional[Todo]]) -> TodoStats:
    total = len(todos)
    completed = sum(1 for t in todos if t is not None and t.completed)
    if total == 0:
        percentage = 0
    else:
        # Half-up, not banker's rounding: 12.5 -> 13.
        percentage = math.floor(100 * completed / total + 0.5)
    return TodoStats(
        total=total,
        completed=completed,
        active=total - completed,
        completion_percentage=percentage,
    )


# ─── Due Dates ──────────────────────────────────────────────────────


def _as_datetime(value: Union[date, datetime]) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, time.min)


def classify_due_date(
    due: Optional[Union[date, datetime]], now: Optional[datetime] = None
) -> Optional[DueDateBadge]:
    """Classify a due date relative to *now*.

    The day distance is the ceiling of ``(due - now)`` in days: negative is
    overdue, 0 is today, 1 is tomorrow, anything further is "N days".
    """
    if due is None:
        return None
    if now is None:
        now = utcnow()
    due_at = _as_datetime(due)
    # Naive values are read as UTC when the other side is aware.
    if (due_at.tzinfo is None) != (now.tzinfo is None):
        if due_at.tzinfo is None:
            due_at = due_at.replace(tzinfo=timezone.utc)
        else:
            now = now.replace(tzinfo=timezone.utc)

    days = math.ceil((due_at - now) / _ONE_DAY)
    if days < 0:
        return DueDateBadge("overdue", "Overdue")
    if days == 0:
        return DueDateBadge("today", "Today")
    if days == 1:
        return DueDateBadge("tomorrow", "Tomorrow")
    return DueDateBadge("future", f"{days} days")


# ─── Categories ─────────────────────────────────────────────────────


def category_style(
    categories: Iterable[Category], name: Optional[str]
) -> CategoryStyle:
    """Look up a category's color and icon, falling back to the defaults."""
    if name:
        for category in categories:
            if category.name == name:
                return CategoryStyle(category.color, category.icon)
    return DEFAULT_CATEGORY_STYLE


# ─── Reordering ─────────────────────────────────────────────────────


def reorder_filtered(
    todos: Sequence[Optional[Todo]],
    mode: Union[FilterMode, str],
    search: str,
    source: int,
    destination: Optional[int],
) -> Optional[dict[str, int]]:
    """Move one item within the filtered view and number the view again.

    Returns a mapping of todo id to its new ``order`` covering only the
    todos visible under *mode* and *search*, or None when the move is a
    no-op (no destination or a source outside the view).
    """
    if destination is None:
        return None
    visible = filter_todos(todos, mode, search)
    if not 0 <= source < len(visible):
        return None
    moved = visible.pop(source)
    destination = max(0, min(destination, len(visible)))
    visible.insert(destination, moved)
    return {todo.id: position for position, todo in enumerate(visible)}


# ─── View Model ─────────────────────────────────────────────────────


def build_view(snapshot: dict, now: Optional[datetime] = None) -> dict[str, Any]:
    """Build the presentation view model from a controller state snapshot."""
    if now is None:
        now = utcnow()
    categories = snapshot["categories"]
    items = []
    for todo in filter_todos(snapshot["todos"], snapshot["filter"], snapshot["search"]):
        badge = classify_due_date(todo.due_date, now)
        items.append(
            {
                **todo.model_dump(mode="json"),
                "due": asdict(badge) if badge is not None else None,
                "category_style": (
                    asdict(category_style(categories, todo.category))
                    if todo.category
                    else None
                ),
            }
        )
    return {
        "items": items,
        "stats": asdict(compute_stats(snapshot["todos"])),
        "filter": snapshot["filter"],
        "search": snapshot["search"],
        "editing": snapshot["editing"],
        "loading": snapshot["loading"],
        "error": snapshot["error"],
        "notice": snapshot["notice"],
        "categories": [c.model_dump(mode="json") for c in categories],
    }

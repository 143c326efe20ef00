"""Todo and category schemas shared by repositories, controller and API."""

from datetime import date, datetime, time, timezone
from enum import Enum
from typing import Optional

from pydantic import field_validator
from sqlmodel import Field, SQLModel

DEFAULT_CATEGORY_COLOR = "#64748b"
DEFAULT_CATEGORY_ICON = "Tag"


def utcnow() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    """Read naive timestamps as UTC so stored records always compare."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _coerce_due_date(value):
    """Accept plain dates and date-only strings as midnight datetimes."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    if isinstance(value, str) and len(value) == 10:
        return datetime.combine(date.fromisoformat(value), time.min)
    return value


class Priority(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"


class FilterMode(str, Enum):
    all = "all"
    active = "active"
    completed = "completed"


class TodoBase(SQLModel):
    """Fields a client may set on a todo."""
    text: str = Field(max_length=500)
    completed: bool = Field(default=False)
    priority: Priority = Field(default=Priority.medium)
    category: Optional[str] = Field(default=None)
    due_date: Optional[datetime] = Field(default=None)
    order: int = Field(default=0)

    @field_validator("due_date", mode="before")
    @classmethod
    def parse_due_date(cls, v):
        return _coerce_due_date(v)


class Todo(TodoBase):
    """A persisted todo record."""
    id: str
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @field_validator("created_at", "updated_at")
    @classmethod
    def timestamps_in_utc(cls, v: datetime) -> datetime:
        return _as_utc(v)


class TodoCreate(TodoBase):
    """Draft for a new todo. Text must be non-empty after trimming."""
    text: str = Field(min_length=1, max_length=500)

    @field_validator("text")
    @classmethod
    def strip_text(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            raise ValueError("Todo text must not be blank")
        return stripped


class TodoUpdate(SQLModel):
    """Partial todo update. Only explicitly set fields are applied."""
    text: Optional[str] = Field(default=None, max_length=500)
    completed: Optional[bool] = None
    priority: Optional[Priority] = None
    category: Optional[str] = None
    due_date: Optional[datetime] = None
    order: Optional[int] = None

    @field_validator("due_date", mode="before")
    @classmethod
    def parse_due_date(cls, v):
        return _coerce_due_date(v)


class CategoryBase(SQLModel):
    name: str = Field(min_length=1, max_length=100)
    color: str = Field(default=DEFAULT_CATEGORY_COLOR)
    icon: str = Field(default=DEFAULT_CATEGORY_ICON)


class Category(CategoryBase):
    """A persisted category, keyed by name."""
    created_at: datetime = Field(default_factory=utcnow)

    @field_validator("created_at")
    @classmethod
    def created_in_utc(cls, v: datetime) -> datetime:
        return _as_utc(v)


class CategoryCreate(CategoryBase):
    pass


class CategoryUpdate(SQLModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    color: Optional[str] = None
    icon: Optional[str] = None

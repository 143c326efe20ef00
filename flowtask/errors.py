"""Errors raised by repositories and caught by the task list controller."""


class FlowTaskError(Exception):
    """Base class for every expected failure."""


class InvalidInputError(FlowTaskError, ValueError):
    """Input rejected before it reaches a store."""


class NotFoundError(FlowTaskError, LookupError):
    """Update or delete target does not exist."""

    def __init__(self, kind: str, key: str) -> None:
        super().__init__(f"{kind} not found: {key}")
        self.kind = kind
        self.key = key


class PersistenceError(FlowTaskError):
    """The backing store rejected the call or could not be reached."""

"""Todo and category repositories: in-memory mock or remote record store."""

import logging
from dataclasses import dataclass
from typing import Optional

from flowtask import config
from flowtask.record_store import RecordStoreClient
from flowtask.repositories.base import CategoryRepository, TodoRepository
from flowtask.repositories.mock import MockCategoryRepository, MockTodoRepository
from flowtask.repositories.record_store import (
    RecordStoreCategoryRepository,
    RecordStoreTodoRepository,
)

logger = logging.getLogger(__name__)

__all__ = [
    "CategoryRepository",
    "MockCategoryRepository",
    "MockTodoRepository",
    "RecordStoreCategoryRepository",
    "RecordStoreTodoRepository",
    "Repositories",
    "TodoRepository",
    "build_repositories",
]


@dataclass
class Repositories:
    """The repository pair a controller works against."""
    todos: TodoRepository
    categories: CategoryRepository
    client: Optional[RecordStoreClient] = None

    async def aclose(self) -> None:
        """Release the record store connection pool, if any."""
        if self.client is not None:
            await self.client.aclose()


def build_repositories(backend: Optional[str] = None) -> Repositories:
    """Build repositories for *backend* (``mock`` or ``live``).

    Defaults to ``FLOWTASK_BACKEND``.

    Raises:
        ValueError: If the backend is unknown or ``live`` has no
            ``RECORD_STORE_URL``.
    """
    backend = backend or config.BACKEND
    if backend == "mock":
        logger.info("Using mock repositories (delay=%.2fs)", config.MOCK_DELAY)
        return Repositories(
            todos=MockTodoRepository(delay=config.MOCK_DELAY),
            categories=MockCategoryRepository(delay=config.MOCK_DELAY),
        )
    if backend == "live":
        if not config.RECORD_STORE_URL:
            raise ValueError("RECORD_STORE_URL not configured")
        client = RecordStoreClient(
            config.RECORD_STORE_URL,
            project_id=config.RECORD_STORE_PROJECT_ID,
            public_key=config.RECORD_STORE_PUBLIC_KEY,
            timeout=config.RECORD_STORE_TIMEOUT,
        )
        logger.info("Using record store at %s", config.RECORD_STORE_URL)
        return Repositories(
            todos=RecordStoreTodoRepository(client),
            categories=RecordStoreCategoryRepository(client),
            client=client,
        )
    raise ValueError(f"Unknown backend: {backend}")

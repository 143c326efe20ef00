"""FastAPI application exposing the task list controller over HTTP."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from flowtask import config
from flowtask.api.routes.categories import router as categories_router
from flowtask.api.routes.todos import router as todos_router
from flowtask.controller import TaskListController
from flowtask.repositories import build_repositories

logger = logging.getLogger(__name__)
logging.basicConfig(level=logging.INFO)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build repositories and a controller, load the list, close on shutdown."""
    repositories = build_repositories()
    controller = TaskListController(repositories.todos, repositories.categories)
    app.state.controller = controller
    if not await controller.load():
        logger.warning("Initial load failed; serving an empty list")
    try:
        yield
    finally:
        await controller.aclose()
        await repositories.aclose()


app = FastAPI(title="FlowTask", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type"],
)

app.include_router(todos_router)
app.include_router(categories_router)


@app.get("/api/health")
def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "flowtask", "backend": config.BACKEND}

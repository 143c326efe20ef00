"""Todo intents: create, toggle, delete, edit, reorder, filter and search.

Every mutating endpoint answers with the fresh view model. A repository
failure is reported as 502 with the notice the controller raised.
"""

from datetime import date, datetime
from typing import Optional, Union

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from flowtask.api.dependencies import get_controller, upstream_failure
from flowtask.controller import TaskListController
from flowtask.models import FilterMode, Priority

router = APIRouter(prefix="/api", tags=["todos"])


class CreateTodoRequest(BaseModel):
    text: str = Field(..., max_length=500)
    priority: Priority = Priority.medium
    category: Optional[str] = None
    due_date: Optional[Union[datetime, date]] = None


class BulkCompleteRequest(BaseModel):
    ids: list[str] = Field(default_factory=list)
    completed: bool = True


class EditBufferRequest(BaseModel):
    text: str = ""


class ReorderRequest(BaseModel):
    source: int = Field(..., ge=0)
    destination: Optional[int] = Field(default=None, ge=0)


class FilterRequest(BaseModel):
    mode: FilterMode


class SearchRequest(BaseModel):
    text: str = Field("", max_length=200)


def _require_todo(controller: TaskListController, todo_id: str) -> None:
    if controller.state.find_todo(todo_id) is None:
        raise HTTPException(status_code=404, detail="Task not found")


@router.get("/view")
def get_view(controller: TaskListController = Depends(get_controller)) -> dict:
    """Return the filtered list, statistics and per-item badges."""
    return controller.view()


@router.post("/load")
async def load(controller: TaskListController = Depends(get_controller)) -> dict:
    """Reload todos and categories from the repositories."""
    if not await controller.load():
        raise upstream_failure(controller, "Failed to load tasks")
    return controller.view()


@router.post("/todos", status_code=201)
async def create_todo(
    body: CreateTodoRequest,
    controller: TaskListController = Depends(get_controller),
) -> dict:
    if not body.text.strip():
        raise HTTPException(status_code=422, detail="Task text must not be blank")
    created = await controller.create_todo(
        body.text, body.priority, body.category, body.due_date
    )
    if created is None:
        raise upstream_failure(controller, "Failed to create task")
    return controller.view()


@router.post("/todos/complete")
async def complete_todos(
    body: BulkCompleteRequest,
    controller: TaskListController = Depends(get_controller),
) -> dict:
    """Mark several todos completed (or active) at once."""
    if await controller.complete_many(body.ids, body.completed) is None:
        raise upstream_failure(controller, "Failed to update tasks")
    return controller.view()


@router.delete("/todos/completed")
async def clear_completed(
    controller: TaskListController = Depends(get_controller),
) -> dict:
    if await controller.clear_completed() is None:
        raise upstream_failure(controller, "Failed to clear completed tasks")
    return controller.view()


@router.post("/todos/{todo_id}/toggle")
async def toggle_todo(
    todo_id: str, controller: TaskListController = Depends(get_controller)
) -> dict:
    _require_todo(controller, todo_id)
    if await controller.toggle_todo(todo_id) is None:
        raise upstream_failure(controller, "Failed to update task")
    return controller.view()


@router.delete("/todos/{todo_id}")
async def delete_todo(
    todo_id: str, controller: TaskListController = Depends(get_controller)
) -> dict:
    _require_todo(controller, todo_id)
    if not await controller.delete_todo(todo_id):
        raise upstream_failure(controller, "Failed to delete task")
    return controller.view()


# -- inline edit -------------------------------------------------------------


@router.post("/todos/{todo_id}/edit")
def start_edit(
    todo_id: str, controller: TaskListController = Depends(get_controller)
) -> dict:
    if not controller.start_edit(todo_id):
        raise HTTPException(status_code=404, detail="Task not found")
    return controller.view()


@router.put("/edit")
def set_edit_buffer(
    body: EditBufferRequest,
    controller: TaskListController = Depends(get_controller),
) -> dict:
    if controller.state.editing is None:
        raise HTTPException(status_code=409, detail="No task is being edited")
    controller.set_edit_buffer(body.text)
    return controller.view()


@router.post("/edit/save")
async def save_edit(controller: TaskListController = Depends(get_controller)) -> dict:
    """Save the open edit. A blank buffer simply cancels it."""
    editing = controller.state.editing
    if editing is None:
        raise HTTPException(status_code=409, detail="No task is being edited")
    saved = await controller.save_edit()
    if saved is None and editing["buffer"].strip():
        raise upstream_failure(controller, "Failed to update task")
    return controller.view()


@router.delete("/edit")
def cancel_edit(controller: TaskListController = Depends(get_controller)) -> dict:
    controller.cancel_edit()
    return controller.view()


# -- view parameters ---------------------------------------------------------


@router.post("/reorder")
def reorder(
    body: ReorderRequest,
    controller: TaskListController = Depends(get_controller),
) -> dict:
    """Move an item within the filtered view. Not persisted."""
    controller.reorder(body.source, body.destination)
    return controller.view()


@router.put("/filter")
def set_filter(
    body: FilterRequest,
    controller: TaskListController = Depends(get_controller),
) -> dict:
    controller.set_filter(body.mode)
    return controller.view()


@router.put("/search")
def set_search(
    body: SearchRequest,
    controller: TaskListController = Depends(get_controller),
) -> dict:
    controller.set_search(body.text)
    return controller.view()

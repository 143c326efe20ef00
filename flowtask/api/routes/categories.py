"""Category endpoints. Deleting a category never touches the todos naming it."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from flowtask.api.dependencies import get_controller, upstream_failure
from flowtask.controller import TaskListController
from flowtask.models import DEFAULT_CATEGORY_COLOR, DEFAULT_CATEGORY_ICON, CategoryUpdate

router = APIRouter(prefix="/api/categories", tags=["categories"])


class CreateCategoryRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    color: str = DEFAULT_CATEGORY_COLOR
    icon: str = DEFAULT_CATEGORY_ICON


class UpdateCategoryRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    color: Optional[str] = None
    icon: Optional[str] = None


def _require_category(controller: TaskListController, name: str) -> None:
    names = {c.name for c in controller.snapshot()["categories"]}
    if name not in names:
        raise HTTPException(status_code=404, detail="Category not found")


@router.get("/")
def list_categories(controller: TaskListController = Depends(get_controller)) -> list[dict]:
    return controller.view()["categories"]


@router.post("/", status_code=201)
async def create_category(
    body: CreateCategoryRequest,
    controller: TaskListController = Depends(get_controller),
) -> dict:
    if not body.name.strip():
        raise HTTPException(status_code=422, detail="Category name must not be blank")
    created = await controller.add_category(body.name, body.color, body.icon)
    if created is None:
        raise upstream_failure(controller, "Failed to create category")
    return created.model_dump(mode="json")


@router.put("/{name}")
async def update_category(
    name: str,
    body: UpdateCategoryRequest,
    controller: TaskListController = Depends(get_controller),
) -> dict:
    """Update only the fields present in the request body."""
    _require_category(controller, name)
    changes = CategoryUpdate.model_validate(body.model_dump(exclude_unset=True))
    updated = await controller.update_category(name, changes)
    if updated is None:
        raise upstream_failure(controller, "Failed to update category")
    return updated.model_dump(mode="json")


@router.delete("/{name}", status_code=204)
async def delete_category(
    name: str, controller: TaskListController = Depends(get_controller)
) -> None:
    _require_category(controller, name)
    if not await controller.remove_category(name):
        raise upstream_failure(controller, "Failed to delete category")

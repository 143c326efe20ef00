"""FastAPI dependencies for the presentation adapter."""

from fastapi import HTTPException, Request

from flowtask.controller import TaskListController


def get_controller(request: Request) -> TaskListController:
    """Return the controller created by the application lifespan."""
    controller = getattr(request.app.state, "controller", None)
    if controller is None:
        raise HTTPException(status_code=503, detail="Task list not ready")
    return controller


def upstream_failure(controller: TaskListController, fallback: str) -> HTTPException:
    """Build the 502 for a failed repository call from the controller's notice."""
    notice = controller.snapshot()["notice"]
    detail = notice["message"] if notice else fallback
    return HTTPException(status_code=502, detail=detail)

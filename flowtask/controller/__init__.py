from flowtask.controller.controller import TaskListController
from flowtask.controller.state import TaskListState

__all__ = ["TaskListController", "TaskListState"]

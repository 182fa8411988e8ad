from . import task_history

__all__ = ["task_history"]

"""
TUI decorators for safe action handling.
"""

import logging
from functools import wraps
from typing import Any, Callable


def safe_action(action_func: Callable[..., Any]) -> Callable[..., Any]:
    """Skip the action until the controller exists; report failures instead of crashing."""

    @wraps(action_func)
    def wrapper(self: Any, *args: Any, **kwargs: Any) -> Any:
        if getattr(self, "controller", None) is None:
            return None
        try:
            return action_func(self, *args, **kwargs)
        except Exception as e:
            logging.exception("Action %s failed", action_func.__name__)
            self.notify(f"Error: {e}", severity="error")
            return None

    return wrapper

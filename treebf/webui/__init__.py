"""HTTP access to the interpreter and the tree debugger."""

from .app import RUN_STEP_LIMIT, create_app
from .store import DebugSessionStore

__all__ = ["DebugSessionStore", "RUN_STEP_LIMIT", "create_app"]

from __future__ import annotations

import logging
import threading
import uuid
from collections import OrderedDict

from treebf.debugger import Debugger

logger = logging.getLogger(__name__)


class DebugSessionStore:
    """Holds open debuggers; the least recently used one is closed when full."""

    def __init__(self, capacity: int = 64) -> None:
        if capacity < 1:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._debuggers: "OrderedDict[str, Debugger]" = OrderedDict()
        self._lock = threading.RLock()

    def open(self, debugger: Debugger) -> str:
        session_id = uuid.uuid4().hex
        with self._lock:
            self._debuggers[session_id] = debugger
            while len(self._debuggers) > self.capacity:
                evicted, _ = self._debuggers.popitem(last=False)
                logger.debug("evicted debug session %s", evicted)
        return session_id

    def get(self, session_id: str) -> Debugger:
        with self._lock:
            debugger = self._debuggers.get(session_id)
            if debugger is None:
                raise KeyError(f"Unknown session id: {session_id}")
            self._debuggers.move_to_end(session_id)
            return debugger

    def close(self, session_id: str) -> bool:
        with self._lock:
            return self._debuggers.pop(session_id, None) is not None

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._debuggers

    def __len__(self) -> int:
        with self._lock:
            return len(self._debuggers)

import threading
from contextlib import contextmanager
from typing import Any, Dict, Hashable, Iterator, Optional

ACTIONS = ("approving", "rejecting", "completing", "cancelling", "deciding")


class ActionInProgress(RuntimeError):
    def __init__(self, record_id: Hashable, action: str):
        super().__init__(f"Record {record_id} is already {action}")
        self.record_id = record_id
        self.action = action


class ActionTracker:
    """One in-flight action per record id, so a double click cannot fire twice."""

    def __init__(self) -> None:
        self._in_flight: Dict[Hashable, str] = {}
        self._lock = threading.Lock()

    def current(self, record_id: Hashable) -> Optional[str]:
        with self._lock:
            return self._in_flight.get(record_id)

    def is_busy(self, record_id: Hashable) -> bool:
        return self.current(record_id) is not None

    @contextmanager
    def track(self, record_id: Hashable, action: str) -> Iterator[None]:
        if action not in ACTIONS:
            raise ValueError(f"Unknown action '{action}'. Must be one of: {list(ACTIONS)}")
        with self._lock:
            existing = self._in_flight.get(record_id)
            if existing is not None:
                raise ActionInProgress(record_id, existing)
            self._in_flight[record_id] = action
        try:
            yield
        finally:
            with self._lock:
                self._in_flight.pop(record_id, None)

    def run(self, record_id: Hashable, action: str, fn, *args, **kwargs) -> Any:
        with self.track(record_id, action):
            return fn(*args, **kwargs)

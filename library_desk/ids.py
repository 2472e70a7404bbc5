import itertools
import threading
import uuid


class SequentialIds:
    """Monotonic string ids: "1", "2", "3", ..."""

    def __init__(self, start: int = 1) -> None:
        self._counter = itertools.count(start)
        self._lock = threading.Lock()

    def __call__(self) -> str:
        with self._lock:
            return str(next(self._counter))


class UUIDIds:
    """Random UUID4 hex ids."""

    def __call__(self) -> str:
        return uuid.uuid4().hex


def make_id_factory(strategy: str = "counter"):
    """Build an id generator for the configured ``ID_STRATEGY``."""
    if strategy == "uuid":
        return UUIDIds()
    if strategy == "counter":
        return SequentialIds()
    raise ValueError(f"Unknown id strategy: {strategy!r} (use 'counter' or 'uuid')")

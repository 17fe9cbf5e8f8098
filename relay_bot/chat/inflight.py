from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, Set


class InFlightGuard:
    """Message ids currently being handled.

    ``try_acquire`` is check-and-add in one step with no await in between, which
    makes it atomic on a single event loop.
    """

    def __init__(self) -> None:
        self._active: Set[str] = set()

    def __contains__(self, key: str) -> bool:
        return key in self._active

    def __len__(self) -> int:
        return len(self._active)

    def try_acquire(self, key: str) -> bool:
        if key in self._active:
            return False
        self._active.add(key)
        return True

    def release(self, key: str) -> None:
        self._active.discard(key)

    @contextmanager
    def hold(self, key: str) -> Iterator[bool]:
        """Yield whether ``key`` was acquired; always release what was taken."""
        acquired = self.try_acquire(key)
        try:
            yield acquired
        finally:
            if acquired:
                self.release(key)


__all__ = ["InFlightGuard"]

from __future__ import annotations

import threading
from collections.abc import Awaitable, Callable, Hashable
from typing import Any, Generic, TypeVar

K = TypeVar("K", bound=Hashable)
CallbackAction = Callable[..., Awaitable[Any]]


class CallbackTable(Generic[K]):
    """Opaque key -> deferred action.

    Registration overwrites. Lookups never consume the entry, so an anchor
    keeps firing until someone calls ``remove``. There is no expiry.
    """

    def __init__(self) -> None:
        self._actions: dict[K, CallbackAction] = {}
        self._lock = threading.Lock()

    def set(self, key: K, action: CallbackAction) -> None:
        with self._lock:
            self._actions[key] = action

    def get(self, key: K) -> CallbackAction | None:
        with self._lock:
            return self._actions.get(key)

    def remove(self, key: K) -> None:
        with self._lock:
            self._actions.pop(key, None)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._actions

    def __len__(self) -> int:
        with self._lock:
            return len(self._actions)

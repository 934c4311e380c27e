from __future__ import annotations

import threading
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any


Predicate = Callable[[Any], bool]
Action = Callable[[Any], Awaitable[Any] | Any]


@dataclass(eq=False)
class Listener:
    predicate: Predicate
    action: Action


class ListenerRegistry:
    """Ordered predicate/action pairs for passive handling.

    Every matching listener fires, in registration order.
    """

    def __init__(self, name: str = "message") -> None:
        self.name = name
        self._listeners: list[Listener] = []
        self._lock = threading.Lock()

    def add(self, predicate: Predicate, action: Action) -> Callable[[], None]:
        listener = Listener(predicate=predicate, action=action)
        with self._lock:
            self._listeners.append(listener)

        def unregister() -> None:
            with self._lock:
                # Identity match; a second call finds nothing and is a no-op.
                for index, item in enumerate(self._listeners):
                    if item is listener:
                        del self._listeners[index]
                        break

        return unregister

    def snapshot(self) -> list[Listener]:
        with self._lock:
            return list(self._listeners)

    def matching(self, update: Any) -> list[Listener]:
        return [listener for listener in self.snapshot() if listener.predicate(update)]

    def __len__(self) -> int:
        with self._lock:
            return len(self._listeners)

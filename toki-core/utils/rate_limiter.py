import threading
import time
from collections.abc import Callable
from typing import Dict, Tuple


class RateLimiter:
    """Per (user, command) cooldown gate.

    Entries are never pruned; the table grows with every distinct pair seen
    during the process lifetime.
    """

    def __init__(self, cooldown_seconds: float = 1.0, clock: Callable[[], float] = time.monotonic):
        self.cooldown_seconds = cooldown_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self.last_accepted: Dict[Tuple[str, str], float] = {}

    def check(self, user_id: str, command_name: str) -> bool:
        key = (str(user_id), command_name)
        with self._lock:
            now = self._clock()
            last = self.last_accepted.get(key)
            if last is not None and now - last < self.cooldown_seconds:
                return False
            self.last_accepted[key] = now
            return True

    def reset_user(self, user_id: str):
        user_key = str(user_id)
        with self._lock:
            for key in [key for key in self.last_accepted if key[0] == user_key]:
                del self.last_accepted[key]

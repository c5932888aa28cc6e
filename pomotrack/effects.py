"""Best-effort side effects that must not hold up a state transition."""

import logging
from collections import deque
from typing import Callable

logger = logging.getLogger(__name__)


class EffectQueue:
    """FIFO of fire-and-forget calls.

    Transitions submit work here and return immediately; whoever owns the
    scheduler runs ``drain()`` between ticks. A failing effect is logged and
    dropped, never retried.
    """

    def __init__(self):
        self._pending: deque = deque()

    def __len__(self) -> int:
        return len(self._pending)

    def submit(self, fn: Callable, *args, **kwargs) -> None:
        self._pending.append((fn, args, kwargs))

    def drain(self) -> int:
        """Run every pending effect, including ones submitted while draining.

        Returns:
            Number of effects run
        """
        count = 0
        while self._pending:
            fn, args, kwargs = self._pending.popleft()
            count += 1
            try:
                fn(*args, **kwargs)
            except Exception as e:
                name = getattr(fn, "__qualname__", repr(fn))
                logger.error(f"Dropped side effect {name}: {e}")
        return count

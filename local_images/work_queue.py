"""A de-duplicating work queue that gives up on items after a few attempts."""

from __future__ import annotations

import json
import logging
from typing import Dict, Generic, Optional, TypeVar

logger = logging.getLogger("local_images")

T = TypeVar("T")


class UniqueQueue(Generic[T]):
    """Queue keyed by item identity with a per-item delivery cap.

    ``pop`` hands out the oldest item without removing it; callers call
    ``remove`` once the item was handled. An item popped ``max_attempts``
    times is evicted by the next ``pop``, which then returns ``None``.
    Not thread-safe; meant for a single consumer.
    """

    def __init__(self, max_attempts: int = 3) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self._items: Dict[str, T] = {}
        self._attempts: Dict[str, int] = {}

    @staticmethod
    def identify(item: object) -> str:
        return json.dumps(item, sort_keys=True, default=str)

    def push(self, item: T, item_id: Optional[str] = None) -> str:
        """Enqueue ``item`` unless an item with the same id is pending."""
        key = item_id if item_id is not None else self.identify(item)
        if key not in self._items:
            self._items[key] = item
            self._attempts[key] = 0
        return key

    def peek_id(self) -> Optional[str]:
        return next(iter(self._items), None)

    def pop(self) -> Optional[T]:
        key = self.peek_id()
        if key is None:
            return None
        attempts = self._attempts[key]
        if attempts >= self.max_attempts:
            logger.debug("Dropping %s after %d attempts", key, attempts)
            self.remove(key)
            return None
        self._attempts[key] = attempts + 1
        return self._items[key]

    def remove(self, item_id: str) -> None:
        self._items.pop(item_id, None)
        self._attempts.pop(item_id, None)

    def attempts(self, item_id: str) -> int:
        return self._attempts.get(item_id, 0)

    def clear(self) -> None:
        self._items.clear()
        self._attempts.clear()

    def size(self) -> int:
        return len(self._items)

    def __len__(self) -> int:
        return self.size()

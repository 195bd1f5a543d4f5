"""Capacity-limited capture history with deterministic thinning."""

from __future__ import annotations

from typing import Generic, Iterable, Iterator, TypeVar

from capture_history.core.logging import JsonlLogger, log_event

T = TypeVar("T")

THIN_MIN_ITEMS = 32


def thin_out(num_items: int, counter: int) -> int | None:
    """Pick the index to drop for thinning round `counter`.

    Rules:
    - Fewer than 32 items: nothing to thin.
    - counter even: index 24.
    - else (counter >> 1) even: index 16.
    - else (counter >> 2) even: index 8.
    - else: no removal this round.
    """
    if num_items < THIN_MIN_ITEMS:
        return None
    if counter % 2 == 0:
        return 24
    if (counter >> 1) % 2 == 0:
        return 16
    if (counter >> 2) % 2 == 0:
        return 8
    return None


class BoundedHistory(Generic[T]):
    """Insertion-ordered captures; `capacity=None` means unbounded.

    Not synchronized: one owner mutates a history at a time.
    """

    def __init__(
        self,
        capacity: int | None = None,
        *,
        counter_start: int = 0,
        name: str = "history",
        logger: JsonlLogger | None = None,
    ) -> None:
        if capacity is not None and int(capacity) < 1:
            raise ValueError(f"capacity must be positive or None: {capacity!r}")
        self.capacity = None if capacity is None else int(capacity)
        self.name = str(name)
        self._items: list[T] = []
        self._counter = int(counter_start)
        self._modified = False
        self._logger = logger

    @property
    def modified(self) -> bool:
        return self._modified

    @property
    def counter(self) -> int:
        return self._counter

    @property
    def count(self) -> int:
        return len(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(list(self._items))

    def items(self) -> list[T]:
        return list(self._items)

    def element_at(self, index: int) -> T | None:
        if index < 0 or index >= len(self._items):
            return None
        return self._items[index]

    def append(self, item: T) -> None:
        self._items.append(item)
        self._modified = True
        while self.capacity is not None and len(self._items) > self.capacity:
            self._thin_once()

    def remove_at(self, index: int) -> T:
        if index < 0 or index >= len(self._items):
            raise IndexError(f"{self.name} index out of range: {index}")
        self._modified = True
        return self._items.pop(index)

    def clear(self) -> None:
        self._items.clear()
        self._modified = True

    def restore(self, items: Iterable[T]) -> None:
        """Replace the contents with stored captures; `modified` ends up clear."""
        self._items.clear()
        for item in items:
            self.append(item)
        self._modified = False

    def mark_persisted(self) -> None:
        self._modified = False

    def _thin_once(self) -> None:
        num_items = len(self._items)
        if num_items < THIN_MIN_ITEMS:
            # Capacity below the policy's range: drop the oldest.
            del self._items[0]
            log_event(self._logger, "history.thinned", history=self.name, index=0, count=num_items - 1)
            return
        index = thin_out(num_items, self._counter)
        self._counter += 1
        if index is None:
            return
        del self._items[index]
        log_event(self._logger, "history.thinned", history=self.name, index=index, count=num_items - 1)

"""FIFO work queue of correlation records awaiting a tail probe."""

from __future__ import annotations

from collections import Counter, deque

from loglag.models.records import CorrelationRecord


class WorkQueue:
    """Ordered pending list of CorrelationRecords.

    ``enqueue`` does not enforce uniqueness; callers check ``is_pending``
    (and the ledger) first. A record leaves the queue when it is dequeued,
    whatever the outcome of its probe.
    """

    def __init__(self) -> None:
        self._items: deque[CorrelationRecord] = deque()
        # key -> number of queued copies
        self._pending: Counter[str] = Counter()

    def enqueue(self, record: CorrelationRecord) -> None:
        self._items.append(record)
        self._pending[record.key] += 1

    def dequeue(self) -> CorrelationRecord | None:
        """Pop the head of the queue, or return None when it is empty."""
        if not self._items:
            return None
        record = self._items.popleft()
        self._pending[record.key] -= 1
        if self._pending[record.key] <= 0:
            del self._pending[record.key]
        return record

    def is_pending(self, record: CorrelationRecord) -> bool:
        return record.key in self._pending

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)

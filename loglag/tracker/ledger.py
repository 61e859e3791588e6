"""Dedup ledger of pods whose first log line has been confirmed."""

from __future__ import annotations

from collections.abc import Iterator

from loglag.models.records import CorrelationRecord


class DedupLedger:
    """Set of confirmed pod identities (``namespace/pod``).

    Membership is permanent for the process lifetime: there is no eviction,
    so a confirmed pod is never probed again even if its log stream rotates
    away later.
    """

    def __init__(self) -> None:
        self._confirmed: set[str] = set()

    def mark_confirmed(self, record: CorrelationRecord) -> None:
        self._confirmed.add(record.key)

    def is_confirmed(self, record: CorrelationRecord) -> bool:
        return record.key in self._confirmed

    def keys(self) -> Iterator[str]:
        return iter(sorted(self._confirmed))

    def __len__(self) -> int:
        return len(self._confirmed)

    def __contains__(self, key: object) -> bool:
        return key in self._confirmed

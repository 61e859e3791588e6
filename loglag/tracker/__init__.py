"""In-memory pod tracking for loglag.

Submodules:
    ledger -- DedupLedger: permanent set of confirmed pod identities.
    queue  -- WorkQueue: FIFO of pods waiting for a tail probe.

Neither structure is persisted; restarting loglag re-probes every pod.
"""

from loglag.tracker.ledger import DedupLedger
from loglag.tracker.queue import WorkQueue

__all__ = ["DedupLedger", "WorkQueue"]

"""
The append-only record of the jobs that completed during a run.
"""

import threading
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

from ..domain.job_models import LedgerEntry
from .logging_service import SuccessLog


class ResultLedger:
    """
    Collects one `LedgerEntry` per completed job, in processing order.

    Every entry is appended together with the position of its candidate in the
    largest-first list; reading the ledger returns entries sorted by that
    position, so the order is the same whether jobs ran one after another or
    on a worker pool. Appends are guarded by a lock.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._items: List[Tuple[int, int, LedgerEntry]] = []

    def append(self, entry: LedgerEntry, order: Optional[int] = None):
        with self._lock:
            sequence = len(self._items)
            self._items.append((sequence if order is None else order, sequence, entry))

    @property
    def entries(self) -> Tuple[LedgerEntry, ...]:
        with self._lock:
            items = sorted(self._items, key=lambda item: (item[0], item[1]))
        return tuple(entry for _, _, entry in items)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def __iter__(self) -> Iterator[LedgerEntry]:
        return iter(self.entries)

    def __bool__(self) -> bool:
        return len(self) > 0

    @property
    def bytes_saved(self) -> int:
        return sum(e.original_size - e.new_size for e in self.entries)

    def to_dicts(self) -> List[dict]:
        return [entry.to_dict() for entry in self.entries]

    def write_yaml(self, log_dir: Path) -> Path:
        """Writes the ledger as a YAML success log in `log_dir`."""
        return SuccessLog(log_dir).write(self.to_dicts())

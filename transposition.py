from typing import Dict, Optional

import config
from utils.utils import setup_logger

logger = setup_logger(__name__)


class TranspositionTable:
    """
    Cache of guaranteed depths keyed by the packed hash of a matching state.

    The table stops accepting new entries once ``max_entries`` is reached;
    lookups keep working after that.

    Attributes
    ----------
    max_entries : int
        Hard cap on the number of cached states.
    hits, misses, rejected : int
        Lookup and store statistics, for diagnostics.
    """
    def __init__(self, max_entries: int = config.TABLE_MAX_ENTRIES):
        if max_entries < 0:
            raise ValueError(f"max_entries must be non-negative, got {max_entries}.")
        self.max_entries = max_entries
        self.entries: Dict[int, int] = {}
        self.hits = 0
        self.misses = 0
        self.rejected = 0

    def __len__(self):
        return len(self.entries)

    @property
    def is_full(self) -> bool:
        return len(self.entries) >= self.max_entries

    def get(self, key: int) -> Optional[int]:
        value = self.entries.get(key)
        if value is None:
            self.misses += 1
        else:
            self.hits += 1
        return value

    def store(self, key: int, value: int) -> bool:
        """Cache ``value`` for ``key``; returns False when the table is full."""
        if self.is_full:
            if self.rejected == 0:
                logger.warning(f"Transposition table full ({self.max_entries} entries), caching stops.")
            self.rejected += 1
            return False
        self.entries[key] = value
        return True

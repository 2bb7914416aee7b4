"""
Tagged Tables and Indexing Schemes

Index functions shared by the predictors and the direct-mapped
exception cache used by YAGS.
"""

from typing import Tuple

import numpy as np

from .counters import CounterTable
from ..utils.helpers import check_int_range, check_power_of_two, log2_exact


class IndexingScheme:
    """
    Indexing functions for predictor tables.

    All table sizes are powers of two, so every index is a mask of the
    low bits of some key.
    """

    @staticmethod
    def pc_index(pc: int, mask: int, shift: int = 0) -> int:
        """Low bits of the (shifted) branch address."""
        return (pc >> shift) & mask

    @staticmethod
    def xor_index(pc: int, history: int, mask: int, shift: int = 0) -> int:
        """
        GShare index: low bits of the shifted PC XOR low bits of history.

        History bits above the index width are dropped, not folded.
        """
        return ((pc >> shift) ^ history) & mask

    @staticmethod
    def split_key(pc: int, history: int, index_bits: int, tag_bits: int,
                  shift: int = 0) -> Tuple[int, int]:
        """
        Split the YAGS key (shifted PC XOR history) into (index, tag).

        The index is the low `index_bits` of the key and the tag is the
        next `tag_bits` above it.
        """
        key = (pc >> shift) ^ history
        index = key & ((1 << index_bits) - 1)
        tag = (key >> index_bits) & ((1 << tag_bits) - 1)
        return index, tag


class ExceptionCache:
    """
    Direct-mapped tagged cache of direction counters.

    Each entry has: valid bit, tag, counter. Allocation overwrites the
    entry at the index unconditionally.
    """

    def __init__(self, num_entries: int, tag_bits: int = 6,
                 counter_bits: int = 2):
        self.num_entries = check_power_of_two(num_entries, "cache_size")
        self.tag_bits = check_int_range(tag_bits, "tag_bits", 0, 32)
        self.index_bits = log2_exact(self.num_entries)
        self.mask = self.num_entries - 1

        # Storage
        self.tags = np.zeros(self.num_entries, dtype=np.uint32)
        self.valid = np.zeros(self.num_entries, dtype=bool)
        self.counters = CounterTable(self.num_entries, counter_bits)

        # Access statistics
        self.lookups = 0
        self.hits = 0
        self.allocations = 0

    def lookup(self, index: int, tag: int) -> bool:
        """True when the entry at `index` is valid and carries `tag`."""
        self.lookups += 1
        if self.valid[index] and self.tags[index] == tag:
            self.hits += 1
            return True
        return False

    def hit(self, index: int, tag: int) -> bool:
        """Tag check without touching the access statistics."""
        return bool(self.valid[index] and self.tags[index] == tag)

    def predict(self, index: int) -> bool:
        return self.counters.predict(index)

    def update(self, index: int, taken: bool) -> None:
        """Train the counter of an entry that hit."""
        self.counters.update(index, taken)

    def allocate(self, index: int, tag: int, taken: bool) -> None:
        """Overwrite the entry at `index` (last writer wins)."""
        self.tags[index] = tag
        self.valid[index] = True
        self.counters.seed(index, taken)
        self.allocations += 1

    def reset(self) -> None:
        self.tags.fill(0)
        self.valid.fill(False)
        self.counters.reset()
        self.lookups = 0
        self.hits = 0
        self.allocations = 0

    @property
    def bits_per_entry(self) -> int:
        return self.counters.bits + self.tag_bits + 1  # +1 for valid

    def get_storage_bits(self) -> int:
        """Total storage in bits."""
        return self.num_entries * self.bits_per_entry

    def get_statistics(self) -> dict:
        """Cache occupancy and access statistics."""
        return {
            'entries': self.num_entries,
            'tag_bits': self.tag_bits,
            'valid_entries': int(np.count_nonzero(self.valid)),
            'lookups': self.lookups,
            'hits': self.hits,
            'allocations': self.allocations,
            'hit_rate': self.hits / self.lookups if self.lookups else 0.0,
        }

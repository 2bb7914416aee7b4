"""
YAGS Predictor

"Yet Another Global Scheme": a PC-indexed bimodal base that records each
branch's bias, plus two small tagged caches that record only the
(PC, history) contexts in which a branch goes against that bias.

- taken cache: base says not-taken, branch was taken
- not-taken cache: base says taken, branch was not taken

Table bits are spent on the minority of contexts that deviate from the
bias, instead of on every (PC, history) pair as in GShare.
"""

from typing import Optional, Tuple

from .base import BasePredictor, ConfigLike, PredictionResult
from ..components.counters import CounterTable
from ..components.tables import ExceptionCache, IndexingScheme
from ..utils.helpers import check_int_range


class YAGSPredictor(BasePredictor):
    """
    YAGS predictor: bimodal base + taken / not-taken exception caches.

    Exception entries are indexed by the low bits of (PC XOR history) and
    tagged with the key bits just above the index. With a zero-length
    history there is nothing to correlate with, so the caches stay idle
    and the predictor behaves exactly like its bimodal base.
    """

    variant = 'yags'

    def __init__(self, config: ConfigLike = None):
        super().__init__("YAGS", config)
        self.table_size = self.config.table_size
        self.history_length = check_int_range(
            self.config.history_length, "history_length")
        self.history_mask = (1 << self.history_length) - 1

        counter_bits = self.config.counter_bits
        self.base = CounterTable(self.table_size, counter_bits)
        self.taken_cache = ExceptionCache(
            self.config.cache_size, self.config.tag_bits, counter_bits)
        self.not_taken_cache = ExceptionCache(
            self.config.cache_size, self.config.tag_bits, counter_bits)

    def _base_index(self, pc: int) -> int:
        return IndexingScheme.pc_index(pc, self.base.mask, self.address_shift)

    def _cache_key(self, pc: int, history: int) -> Tuple[int, int]:
        cache = self.taken_cache
        return IndexingScheme.split_key(pc, history & self.history_mask,
                                        cache.index_bits, cache.tag_bits,
                                        self.address_shift)

    def _exception_cache(self, base_taken: bool) -> ExceptionCache:
        """Cache holding exceptions to the base's predicted direction."""
        return self.not_taken_cache if base_taken else self.taken_cache

    def predict(self, pc: int, history: int = 0) -> PredictionResult:
        base_state = self.base.state(self._base_index(pc))
        base_taken = base_state >= self.base.threshold

        if self.history_length > 0:
            cache = self._exception_cache(base_taken)
            index, tag = self._cache_key(pc, history)
            if cache.lookup(index, tag):
                state = cache.counters.state(index)
                return PredictionResult(
                    prediction=state >= cache.counters.threshold,
                    confidence=self._confidence(state, cache.counters),
                    predictor_used=("TakenCache" if cache is self.taken_cache
                                    else "NotTakenCache"),
                    counter_state=state
                )

        return PredictionResult(
            prediction=base_taken,
            confidence=self._confidence(base_state, self.base),
            predictor_used="Base",
            counter_state=base_state
        )

    def update(self, pc: int, history: int, taken: bool,
               prediction: Optional[PredictionResult] = None) -> None:
        # Tables are unchanged since predict(), so the lookup is repeated
        # here rather than trusting the caller's PredictionResult.
        base_index = self._base_index(pc)
        base_taken = self.base.predict(base_index)
        base_correct = base_taken == taken

        hit = False
        exception_correct = False
        # A correct base leaves both caches untouched
        if self.history_length > 0 and not base_correct:
            cache = self._exception_cache(base_taken)
            index, tag = self._cache_key(pc, history)
            hit = cache.hit(index, tag)

            if hit:
                exception_correct = cache.predict(index) == taken
                cache.update(index, taken)
            else:
                # New exception context; direct-mapped, last writer wins
                cache.allocate(index, tag, taken)

        # The base keeps the branch's bias when a correct exception covered
        # its mistake
        if not (hit and exception_correct):
            self.base.update(base_index, taken)

    def reset(self) -> None:
        self.base.reset()
        self.taken_cache.reset()
        self.not_taken_cache.reset()

    def get_hardware_cost(self) -> dict:
        base_bits = self.base.storage_bits()
        cache_bits = (self.taken_cache.get_storage_bits() +
                      self.not_taken_cache.get_storage_bits())
        total_bits = base_bits + cache_bits
        return {
            'table_entries': self.table_size,
            'bits_per_entry': self.base.bits,
            'table_bits': base_bits,
            'cache_entries': self.taken_cache.num_entries,
            'cache_bits_per_entry': self.taken_cache.bits_per_entry,
            'cache_bits': cache_bits,
            'history_bits': self.history_length,
            'total_bits': total_bits,
            'total_kb': total_bits / 8 / 1024
        }

    def get_cache_statistics(self) -> dict:
        return {
            'taken_cache': self.taken_cache.get_statistics(),
            'not_taken_cache': self.not_taken_cache.get_statistics(),
        }

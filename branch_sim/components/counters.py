"""
Saturating Counters

Counter primitive shared by every predictor table. A counter of `bits`
bits holds a state in [0, 2**bits - 1]; the upper half predicts taken.
Updates move one step and clamp at both ends, which gives the hysteresis
that keeps a single off-pattern outcome from flipping a strong counter.
"""

from typing import Optional

import numpy as np

from ..errors import ConfigError
from ..utils.helpers import check_int_range, check_power_of_two

MAX_COUNTER_BITS = 7  # Stored as int8


def _check_bits(bits: int) -> int:
    return check_int_range(bits, "counter_bits", 1, MAX_COUNTER_BITS)


class SaturatingCounter:
    """
    Single saturating counter.

    Default is the classic 2-bit counter:
    0 = strongly not taken, 1 = weakly not taken,
    2 = weakly taken, 3 = strongly taken.
    """

    def __init__(self, bits: int = 2, state: Optional[int] = None):
        self.bits = _check_bits(bits)
        self.max_state = (1 << self.bits) - 1
        self.threshold = 1 << (self.bits - 1)

        if state is None:
            state = self.threshold  # Weakly taken
        if not 0 <= state <= self.max_state:
            raise ConfigError(
                f"counter state {state} outside [0, {self.max_state}]")
        self.state = state

    @classmethod
    def from_direction(cls, taken: bool, bits: int = 2) -> 'SaturatingCounter':
        """Counter weakly biased toward `taken`."""
        counter = cls(bits)
        counter.state = counter.threshold if taken else counter.threshold - 1
        return counter

    def predict(self) -> bool:
        return self.state >= self.threshold

    def update(self, taken: bool) -> 'SaturatingCounter':
        if taken:
            if self.state < self.max_state:
                self.state += 1
        elif self.state > 0:
            self.state -= 1
        return self

    def __repr__(self) -> str:
        return f"SaturatingCounter(bits={self.bits}, state={self.state})"


class CounterTable:
    """
    Power-of-two table of saturating counters.

    Same state machine as SaturatingCounter, stored as a numpy array.
    Callers mask their indices to the table size.
    """

    def __init__(self, size: int, bits: int = 2):
        """
        Initialize counter table.

        Args:
            size: Number of counters (power of two)
            bits: Bits per counter
        """
        self.size = check_power_of_two(size, "table size")
        self.bits = _check_bits(bits)
        self.mask = self.size - 1
        self.max_state = (1 << self.bits) - 1
        self.threshold = 1 << (self.bits - 1)

        # All counters start weakly taken
        self.table = np.full(self.size, self.threshold, dtype=np.int8)

    def predict(self, index: int) -> bool:
        return bool(self.table[index] >= self.threshold)

    def state(self, index: int) -> int:
        return int(self.table[index])

    def update(self, index: int, taken: bool) -> None:
        value = self.table[index]
        if taken:
            if value < self.max_state:
                self.table[index] = value + 1
        elif value > 0:
            self.table[index] = value - 1

    def seed(self, index: int, taken: bool) -> None:
        """Reset one counter to the weak state of a direction."""
        self.table[index] = self.threshold if taken else self.threshold - 1

    def reset(self) -> None:
        self.table.fill(self.threshold)

    def storage_bits(self) -> int:
        return self.size * self.bits

    def __len__(self) -> int:
        return self.size

"""
Synthetic Traces

Generators for small, reproducible traces used by tests and for quick
experiments without a captured trace.
"""

from typing import List

import numpy as np

from .formats import BranchRecord

DEFAULT_BASE_ADDRESS = 0x400000


def alternating_trace(num_branches: int, pc: int = DEFAULT_BASE_ADDRESS,
                      first_taken: bool = True) -> List[BranchRecord]:
    """Single branch whose outcome flips every time: T, N, T, N, ..."""
    return [BranchRecord(pc=pc, taken=(i % 2 == 0) == first_taken)
            for i in range(num_branches)]


def loop_trace(num_branches: int, trip_count: int = 10,
               pc: int = DEFAULT_BASE_ADDRESS) -> List[BranchRecord]:
    """Loop back-edge: taken trip_count - 1 times, then not taken."""
    return [BranchRecord(pc=pc, taken=(i % trip_count) != trip_count - 1)
            for i in range(num_branches)]


def biased_trace(num_branches: int, num_pcs: int = 64,
                 taken_probability: float = 0.8, seed: int = 0,
                 base_address: int = DEFAULT_BASE_ADDRESS,
                 stride: int = 4) -> List[BranchRecord]:
    """Independent branches, each taken with the same probability."""
    rng = np.random.default_rng(seed)
    pcs = rng.integers(0, num_pcs, size=num_branches)
    takens = rng.random(num_branches) < taken_probability
    return [BranchRecord(pc=base_address + stride * int(p), taken=bool(t))
            for p, t in zip(pcs, takens)]


def correlated_mix_trace(num_branches: int, num_biased: int = 128,
                         num_correlated: int = 4,
                         correlated_fraction: float = 0.25, seed: int = 0,
                         base_address: int = DEFAULT_BASE_ADDRESS,
                         stride: int = 4) -> List[BranchRecord]:
    """
    Mix of globally independent and globally correlated branches.

    Each step executes one of `num_biased` fixed-direction branches (even
    ones always taken, odd ones never taken) chosen at random. With
    probability `correlated_fraction` it is followed by one of
    `num_correlated` branches that repeats the previous outcome, so only
    global history can predict them.

    Args:
        num_branches: Total records to generate
        num_biased: Number of fixed-direction branch addresses
        num_correlated: Number of history-correlated branch addresses
        correlated_fraction: Chance a correlated branch follows a biased one
        seed: Generator seed; equal seeds give identical traces
        base_address: Address of the first branch
        stride: Distance between branch addresses
    """
    rng = np.random.default_rng(seed)
    records: List[BranchRecord] = []

    while len(records) < num_branches:
        i = int(rng.integers(0, num_biased))
        taken = i % 2 == 0
        records.append(BranchRecord(pc=base_address + stride * i, taken=taken))

        if num_correlated and rng.random() < correlated_fraction:
            j = int(rng.integers(0, num_correlated))
            pc = base_address + stride * (num_biased + j)
            records.append(BranchRecord(pc=pc, taken=taken))

    return records[:num_branches]


PATTERNS = {
    'alternating': alternating_trace,
    'loop': loop_trace,
    'biased': biased_trace,
    'mixed': correlated_mix_trace,
}

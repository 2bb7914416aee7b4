"""Shared fixtures."""

import pytest

from branch_sim.trace.parser import TraceParser
from branch_sim.trace.synthetic import alternating_trace, correlated_mix_trace


@pytest.fixture
def alternating():
    return alternating_trace(1000)


@pytest.fixture
def mixed_trace():
    return correlated_mix_trace(5000, seed=7)


@pytest.fixture
def text_trace_file(tmp_path):
    """Small mixed trace written as a text file."""
    path = tmp_path / "mixed.txt"
    TraceParser().write_file(path, correlated_mix_trace(2000, seed=3))
    return path

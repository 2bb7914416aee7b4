# Trace Package
from .parser import TraceParser, BranchTrace
from .formats import BranchRecord, TraceFormat, TextTraceFormat, EventTraceFormat
from .synthetic import (
    alternating_trace,
    loop_trace,
    biased_trace,
    correlated_mix_trace,
)

__all__ = [
    'TraceParser',
    'BranchTrace',
    'BranchRecord',
    'TraceFormat',
    'TextTraceFormat',
    'EventTraceFormat',
    'alternating_trace',
    'loop_trace',
    'biased_trace',
    'correlated_mix_trace',
]

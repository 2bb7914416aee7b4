# Components Package
from .counters import SaturatingCounter, CounterTable
from .history import GlobalHistoryRegister
from .tables import ExceptionCache, IndexingScheme

__all__ = [
    'SaturatingCounter',
    'CounterTable',
    'GlobalHistoryRegister',
    'ExceptionCache',
    'IndexingScheme'
]

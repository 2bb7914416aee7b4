# Simulation Package
from .simulator import BranchSimulator, SimulationConfig
from .metrics import MetricsCollector, SimulationResults, ResultsExporter
from .sweep import expand_grid, load_sweep, run_sweep, aggregate_by_variant

__all__ = [
    'BranchSimulator',
    'SimulationConfig',
    'MetricsCollector',
    'SimulationResults',
    'ResultsExporter',
    'expand_grid',
    'load_sweep',
    'run_sweep',
    'aggregate_by_variant',
]

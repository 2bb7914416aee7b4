"""
Configuration Sweeps

Expands a grid of predictor configurations and runs each one as an
independent simulation, in parallel worker processes. Every run re-reads
the trace from the start and owns all of its predictor state.
"""

import itertools
import logging
import multiprocessing
from concurrent.futures import ProcessPoolExecutor, as_completed
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import numpy as np

from ..errors import BranchSimError, ConfigError
from ..predictors.config import PredictorConfig, create_predictor
from ..utils.helpers import check_int_range, load_config
from .simulator import BranchSimulator, SimulationConfig

logger = logging.getLogger(__name__)

SWEEP_KEYS = {'trace', 'trace_format', 'warmup', 'max_branches', 'workers',
              'predictors'}


def expand_grid(entry: Dict[str, Any]) -> List[PredictorConfig]:
    """
    Expand one sweep entry into predictor configurations.

    List-valued fields are swept; the result is their cartesian product.

    Example:
        {'variant': 'gshare', 'table_size': [1024, 4096], 'history_length': [8, 12]}
        -> 4 configurations
    """
    if not isinstance(entry, dict):
        raise ConfigError(f"Sweep entry must be a mapping, got {entry!r}")

    keys = list(entry)
    values = [v if isinstance(v, list) else [v] for v in entry.values()]
    if any(len(v) == 0 for v in values):
        raise ConfigError(f"Empty value list in sweep entry {entry!r}")

    return [PredictorConfig.from_dict(dict(zip(keys, combo)))
            for combo in itertools.product(*values)]


def load_sweep(config_path: Union[str, Path]) -> Dict[str, Any]:
    """
    Load a YAML sweep description.

    Returns:
        Dictionary with 'trace', 'trace_format', 'warmup', 'max_branches',
        'workers' and the expanded 'configs'
    """
    config = load_config(config_path)

    unknown = sorted(set(config) - SWEEP_KEYS)
    if unknown:
        raise ConfigError(f"Unknown sweep option(s): {', '.join(unknown)}")

    entries = config.get('predictors')
    if not entries or not isinstance(entries, list):
        raise ConfigError("Sweep needs a non-empty 'predictors' list")

    configs = [c for entry in entries for c in expand_grid(entry)]

    warmup = check_int_range(config.get('warmup', 0), "warmup")
    max_branches = config.get('max_branches')
    if max_branches is not None:
        check_int_range(max_branches, "max_branches")
    workers = config.get('workers')
    if workers is not None:
        check_int_range(workers, "workers", minimum=1)

    return {
        'trace': config.get('trace'),
        'trace_format': config.get('trace_format'),
        'warmup': warmup,
        'max_branches': max_branches,
        'workers': workers,
        'configs': configs,
    }


def run_single(trace_path: Union[str, Path], config: PredictorConfig,
               trace_format: Optional[str] = None,
               warmup: int = 0,
               max_branches: Optional[int] = None) -> Dict[str, Any]:
    """Run one predictor configuration over a trace."""
    predictor = create_predictor(config)
    name = config.label()

    simulator = BranchSimulator(SimulationConfig(
        warmup_branches=warmup,
        max_branches=max_branches,
    ))
    simulator.add_predictor(name, predictor)

    results = simulator.run(trace_path, trace_format=trace_format)
    stats = results.predictor_results[name]
    cost = results.hardware_costs[name]

    return {
        'name': name,
        'variant': config.variant,
        'parameters': config.parameters(),
        'config': config.to_dict(),
        'total_bits': cost['total_bits'],
        'hardware_cost': cost,
        'total': stats['total'],
        'correct': stats['correct'],
        'mispredictions': stats['mispredictions'],
        'misprediction_rate': stats['misprediction_rate'],
        'mpki': stats['mpki'],
        'elapsed_time': results.elapsed_time,
        'success': True,
    }


def _run_sweep_worker(args: tuple) -> Dict[str, Any]:
    """Worker function for parallel sweep execution.

    Args:
        args: Tuple of (trace_path, config, trace_format, warmup, max_branches)

    Returns:
        Dictionary with run results or error info
    """
    trace_path, config, trace_format, warmup, max_branches = args
    try:
        return run_single(trace_path, config, trace_format, warmup, max_branches)
    except (BranchSimError, OSError) as e:
        return {
            'name': config.label(),
            'variant': config.variant,
            'parameters': config.parameters(),
            'success': False,
            'error': f"{type(e).__name__}: {e}",
            'error_type': type(e).__name__,
        }


def run_sweep(trace_path: Union[str, Path],
              configs: List[PredictorConfig],
              trace_format: Optional[str] = None,
              warmup: int = 0,
              max_branches: Optional[int] = None,
              num_workers: Optional[int] = None) -> Dict[str, Any]:
    """Run every configuration over the trace, in parallel.

    Args:
        trace_path: Trace file, re-read from the start by each run
        configs: Predictor configurations to evaluate
        trace_format: Optional format name
        warmup: Warmup branches per run
        max_branches: Counted branches per run (None for all)
        num_workers: Number of parallel workers (None for auto, 1 = in-process)

    Returns:
        Dictionary with one entry per configuration under 'runs', in the
        order the configurations were given
    """
    if not configs:
        raise ConfigError("No predictor configurations to run")

    # Fail fast on configurations that cannot be built
    for config in configs:
        create_predictor(config)

    if num_workers is None:
        num_workers = max(1, multiprocessing.cpu_count() - 1)
    num_workers = min(num_workers, len(configs))

    all_args = [(str(trace_path), config, trace_format, warmup, max_branches)
                for config in configs]

    logger.info("Running %d configurations on %s with %d worker(s)",
                len(configs), trace_path, num_workers)

    runs: List[Optional[Dict[str, Any]]] = [None] * len(configs)

    if num_workers == 1:
        for i, args in enumerate(all_args):
            runs[i] = _run_sweep_worker(args)
            _log_run(i + 1, len(configs), runs[i])
    else:
        completed = 0
        with ProcessPoolExecutor(max_workers=num_workers) as executor:
            future_to_index = {
                executor.submit(_run_sweep_worker, args): i
                for i, args in enumerate(all_args)
            }

            for future in as_completed(future_to_index):
                i = future_to_index[future]
                runs[i] = future.result()
                completed += 1
                _log_run(completed, len(configs), runs[i])

    return {
        'timestamp': datetime.now().isoformat(),
        'trace': str(trace_path),
        'config': {
            'warmup': warmup,
            'max_branches': max_branches,
            'num_workers': num_workers,
        },
        'runs': runs,
    }


def _log_run(completed: int, total: int, run: Dict[str, Any]) -> None:
    if run['success']:
        logger.info("[%d/%d] %s: %.4f%% mispredicted (%d bits)",
                    completed, total, run['name'],
                    run['misprediction_rate'] * 100, run['total_bits'])
    else:
        logger.error("[%d/%d] %s: %s", completed, total, run['name'], run['error'])


def aggregate_by_variant(sweep: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    """Aggregate successful runs per predictor variant."""
    by_variant: Dict[str, List[Dict[str, Any]]] = {}
    for run in sweep.get('runs', []):
        if run.get('success'):
            by_variant.setdefault(run['variant'], []).append(run)

    aggregated = {}
    for variant, runs in by_variant.items():
        rates = [r['misprediction_rate'] for r in runs]
        best = min(runs, key=lambda r: r['mispredictions'])
        aggregated[variant] = {
            'runs': len(runs),
            'avg_misprediction_rate': float(np.mean(rates)),
            'std_misprediction_rate': float(np.std(rates)),
            'best': best['name'],
            'best_misprediction_rate': best['misprediction_rate'],
            'best_total_bits': best['total_bits'],
        }
    return aggregated

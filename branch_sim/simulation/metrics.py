"""
Metrics Collection and Reporting

Collects branch prediction statistics per run and exports results.
"""

import csv
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Tuple, Union

from ..predictors.base import PredictionResult


@dataclass
class SimulationResults:
    """Container for the final results of a completed run."""
    trace_name: str
    branches_simulated: int
    warmup_branches: int
    elapsed_time: float
    predictor_results: Dict[str, Dict[str, Any]]
    hardware_costs: Dict[str, Dict[str, Any]]
    config: Dict[str, Any]
    predictor_configs: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    def to_dict(self) -> Dict:
        """Convert to dictionary for serialization."""
        return {
            'trace_name': self.trace_name,
            'branches_simulated': self.branches_simulated,
            'warmup_branches': self.warmup_branches,
            'elapsed_time': self.elapsed_time,
            'predictor_results': self.predictor_results,
            'hardware_costs': self.hardware_costs,
            'predictor_configs': self.predictor_configs,
            'config': self.config
        }

    def get_summary(self) -> str:
        """Get text summary of results."""
        lines = [
            f"Trace: {self.trace_name}",
            f"Branches: {self.branches_simulated:,}",
            f"Time: {self.elapsed_time:.2f}s",
            ""
        ]

        for name, stats in self.predictor_results.items():
            bits = self.hardware_costs.get(name, {}).get('total_bits', 0)
            lines.append(f"{name}:")
            lines.append(f"  Misprediction rate: {stats.get('misprediction_rate', 0)*100:.4f}%")
            lines.append(f"  MPKI: {stats.get('mpki', 0):.4f}")
            lines.append(f"  Bit budget: {bits:,} bits")

        return "\n".join(lines)


@dataclass
class PredictorMetrics:
    """Metrics for a single run."""
    total: int = 0
    correct: int = 0
    mispredictions: int = 0
    instructions: int = 0
    taken_actual: int = 0
    taken_predicted: int = 0
    provider_counts: Dict[str, int] = field(default_factory=dict)
    snapshots: List[Tuple[int, float]] = field(default_factory=list)

    @property
    def accuracy(self) -> float:
        if self.total == 0:
            return 0.0
        return self.correct / self.total

    @property
    def misprediction_rate(self) -> float:
        if self.total == 0:
            return 0.0
        return self.mispredictions / self.total

    @property
    def mpki(self) -> float:
        """Mispredictions per 1000 instructions."""
        if self.instructions == 0:
            return 0.0
        return (self.mispredictions / self.instructions) * 1000

    def reset(self) -> None:
        self.total = 0
        self.correct = 0
        self.mispredictions = 0
        self.instructions = 0
        self.taken_actual = 0
        self.taken_predicted = 0
        self.provider_counts.clear()
        self.snapshots.clear()


class MetricsCollector:
    """
    Collects and computes branch prediction metrics.

    Counts (correct, total) per registered predictor; the misprediction
    rate is derived from them once the run is over.
    """

    def __init__(self, snapshot_interval: int = 0):
        """
        Args:
            snapshot_interval: Record (branches, misprediction_rate) every
                this many counted branches; 0 disables snapshots
        """
        self.snapshot_interval = snapshot_interval
        self._predictors: Dict[str, PredictorMetrics] = {}

    def register_predictor(self, name: str) -> None:
        """Register a predictor for metrics collection."""
        self._predictors[name] = PredictorMetrics()

    def record_prediction(self, predictor_name: str,
                          prediction: PredictionResult, actual: bool,
                          instructions: int = 1) -> bool:
        """
        Record a prediction outcome.

        Args:
            predictor_name: Name of predictor
            prediction: PredictionResult object
            actual: Actual branch outcome
            instructions: Instructions retired with this branch

        Returns:
            Whether the prediction was correct
        """
        metrics = self._predictors[predictor_name]
        correct = prediction.prediction == actual

        metrics.total += 1
        metrics.instructions += instructions
        if correct:
            metrics.correct += 1
        else:
            metrics.mispredictions += 1

        if actual:
            metrics.taken_actual += 1
        if prediction.prediction:
            metrics.taken_predicted += 1

        provider = prediction.predictor_used
        metrics.provider_counts[provider] = metrics.provider_counts.get(provider, 0) + 1

        if self.snapshot_interval and metrics.total % self.snapshot_interval == 0:
            metrics.snapshots.append((metrics.total, metrics.misprediction_rate))

        return correct

    def get_predictor_stats(self, predictor_name: str) -> Dict[str, Any]:
        """Get statistics for a predictor."""
        if predictor_name not in self._predictors:
            return {}

        metrics = self._predictors[predictor_name]

        stats = {
            'total': metrics.total,
            'correct': metrics.correct,
            'mispredictions': metrics.mispredictions,
            'misprediction_rate': metrics.misprediction_rate,
            'accuracy': metrics.accuracy,
            'mpki': metrics.mpki,
            'instructions': metrics.instructions,
            'taken_actual': metrics.taken_actual,
            'taken_predicted': metrics.taken_predicted,
            'providers': dict(metrics.provider_counts),
        }

        if metrics.snapshots:
            stats['snapshots'] = [list(s) for s in metrics.snapshots]

        return stats

    def reset(self) -> None:
        """Reset all metrics."""
        for metrics in self._predictors.values():
            metrics.reset()


class ResultsExporter:
    """Export simulation results to various formats."""

    @staticmethod
    def rows(results: Union[SimulationResults, List[Dict[str, Any]]]) -> List[Dict[str, Any]]:
        """
        Flatten results into one row per run.

        Accepts a SimulationResults or the run dicts produced by a sweep.
        """
        if isinstance(results, SimulationResults):
            return [
                {
                    'name': name,
                    'variant': results.predictor_configs.get(name, {}).get('variant', ''),
                    'parameters': results.predictor_configs.get(name, {}).get('parameters', {}),
                    'total_bits': results.hardware_costs.get(name, {}).get('total_bits', 0),
                    **{k: stats.get(k, 0) for k in
                       ('total', 'correct', 'mispredictions', 'misprediction_rate', 'mpki')}
                }
                for name, stats in results.predictor_results.items()
            ]
        return [run for run in results if run.get('success', True)]

    @staticmethod
    def format_report(results) -> str:
        """
        One line per run, worst first:
        MPKI, hit rate, storage in KiB, name, parameters.
        """
        rows = sorted(ResultsExporter.rows(results),
                      key=lambda r: r['mispredictions'], reverse=True)
        lines = []
        for row in rows:
            hit_rate = 100.0 - 100.0 * row['misprediction_rate']
            kib = row['total_bits'] / 8192
            params = ", ".join(f"{k}={v}" for k, v in row['parameters'].items())
            lines.append(
                f"{row['mpki']:5.1f} mpki ({hit_rate:4.1f}%) {kib:6.1f} KiB "
                f"{row['name']} [{params}]"
            )
        return "\n".join(lines)

    @staticmethod
    def to_csv(results, filepath: Union[str, Path]) -> None:
        """Export one row per run to CSV."""
        columns = ['name', 'variant', 'total_bits', 'total', 'correct',
                   'mispredictions', 'misprediction_rate', 'mpki']
        with open(filepath, 'w', newline='') as f:
            writer = csv.writer(f)
            writer.writerow(columns)
            for row in ResultsExporter.rows(results):
                writer.writerow([row[c] for c in columns])

    @staticmethod
    def to_json(results, filepath: Union[str, Path]) -> None:
        """Export results to JSON."""
        data = results.to_dict() if isinstance(results, SimulationResults) else results
        with open(filepath, 'w') as f:
            json.dump(data, f, indent=2)

    @staticmethod
    def to_dat(results, filepath: Union[str, Path]) -> None:
        """
        Export storage (KiB) against MPKI, tab separated, for plotting
        bit-budget curves with gnuplot.
        """
        rows = sorted(ResultsExporter.rows(results),
                      key=lambda r: r['mispredictions'], reverse=True)
        with open(filepath, 'w') as f:
            for row in rows:
                f.write(f"{row['total_bits'] / 8192}\t{row['mpki']}\n")

"""
Branch Prediction Simulator

Main simulation engine: replays a branch trace through one or more
predictors, each with its own history register and statistics.
"""

import logging
import time
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Dict, Iterable, Optional, Union

from tqdm import tqdm

from ..components.history import GlobalHistoryRegister
from ..errors import ConfigError, SimulationCancelled
from ..predictors.base import BasePredictor
from ..trace.formats import BranchRecord
from ..trace.parser import TraceParser
from ..utils.helpers import check_int_range, format_number
from .metrics import MetricsCollector, SimulationResults

logger = logging.getLogger(__name__)


@dataclass
class SimulationConfig:
    """Configuration for simulation run."""
    warmup_branches: int = 0              # Trained on, not counted
    max_branches: Optional[int] = None    # Counted branches (None = whole trace)
    verbose: bool = False
    log_interval: int = 100000
    snapshot_interval: int = 0            # 0 = no convergence snapshots
    collect_predictions: bool = False     # Keep every prediction per run

    def __post_init__(self):
        check_int_range(self.warmup_branches, "warmup_branches")
        if self.max_branches is not None:
            check_int_range(self.max_branches, "max_branches")
        check_int_range(self.log_interval, "log_interval", minimum=1)
        check_int_range(self.snapshot_interval, "snapshot_interval")

    @property
    def total_branches(self) -> Optional[int]:
        if self.max_branches is None:
            return None
        return self.warmup_branches + self.max_branches


@dataclass
class PredictorRun:
    """State owned by one predictor for the duration of a simulation."""
    predictor: BasePredictor
    history: GlobalHistoryRegister


class BranchSimulator:
    """
    Branch Prediction Simulator.

    Simulates branch prediction using trace-driven methodology. For every
    record and every registered predictor, in order:

    1. predict with the run's current history, compare, record
    2. update the predictor, then shift the history with the real outcome

    Each registered predictor is an independent run: it owns its tables,
    its history register and its statistics.
    """

    def __init__(self, config: Union[SimulationConfig, dict, None] = None):
        """
        Initialize simulator.

        Args:
            config: Simulation configuration
        """
        if config is None:
            self.config = SimulationConfig()
        elif isinstance(config, dict):
            try:
                self.config = SimulationConfig(**config)
            except TypeError as e:
                raise ConfigError(f"Invalid simulation config: {e}") from e
        else:
            self.config = config

        # Predictors to evaluate
        self.runs: Dict[str, PredictorRun] = {}

        # Metrics collector
        self.metrics = MetricsCollector(self.config.snapshot_interval)
        self._predictions: Dict[str, list] = {}

        # State
        self.branches_processed = 0

    def add_predictor(self, name: str, predictor: BasePredictor) -> None:
        """Add a predictor to evaluate, with a history register of its own."""
        if name in self.runs:
            raise ConfigError(f"Duplicate predictor name: {name}")
        self.runs[name] = PredictorRun(
            predictor=predictor,
            history=GlobalHistoryRegister(predictor.history_length)
        )
        self.metrics.register_predictor(name)
        self._predictions[name] = []

    def run(self, trace_path: Union[str, Path],
            trace_format: Optional[str] = None,
            cancel_event=None) -> SimulationResults:
        """
        Run simulation on a trace file.

        The file is read lazily from the start; a malformed record aborts
        the run with ParseError and no results are produced.

        Args:
            trace_path: Path to trace file
            trace_format: Optional format name ('text' or 'event')
            cancel_event: Object with is_set(), checked between records

        Returns:
            SimulationResults with all metrics
        """
        trace_path = Path(trace_path)
        parser = TraceParser(format_name=trace_format)

        total = self.config.total_branches
        if self.config.verbose and total is None and trace_path.exists():
            total = parser.get_trace_info(trace_path).estimated_branches

        records = parser.parse_file(trace_path,
                                    max_branches=self.config.total_branches)
        return self._simulate(records, str(trace_path), total, cancel_event)

    def run_on_trace(self, trace: Iterable[BranchRecord],
                     cancel_event=None,
                     trace_name: str = "memory") -> SimulationResults:
        """
        Run simulation on pre-loaded records.

        Args:
            trace: BranchTrace, list of records, or any record iterable
            cancel_event: Object with is_set(), checked between records
            trace_name: Name reported in the results

        Returns:
            SimulationResults
        """
        total = self.config.total_branches
        if total is None and hasattr(trace, '__len__'):
            total = len(trace)
        return self._simulate(self._limited(trace), trace_name, total, cancel_event)

    def _limited(self, trace: Iterable[BranchRecord]) -> Iterable[BranchRecord]:
        limit = self.config.total_branches
        for i, record in enumerate(trace):
            if limit is not None and i >= limit:
                break
            yield record

    def _simulate(self, records: Iterable[BranchRecord], trace_name: str,
                  total: Optional[int], cancel_event) -> SimulationResults:
        if not self.runs:
            raise ConfigError("No predictors registered")

        self._reset()
        logger.info("Simulating %s with %s", trace_name, ", ".join(self.runs))

        start_time = time.time()

        if self.config.verbose:
            progress = tqdm(records, total=total, desc="Simulating", unit="branches")
        else:
            progress = records

        try:
            for record in progress:
                if cancel_event is not None and cancel_event.is_set():
                    raise SimulationCancelled(
                        f"Run on {trace_name} cancelled after "
                        f"{self.branches_processed:,} branches")

                self._process_branch(record)

                if self.branches_processed % self.config.log_interval == 0:
                    self._log_progress(trace_name)

        except Exception:
            logger.warning("Run on %s aborted after %d branches; "
                           "partial statistics discarded",
                           trace_name, self.branches_processed)
            self._reset()
            raise

        finally:
            if self.config.verbose:
                progress.close()

        elapsed_time = time.time() - start_time
        results = self._compile_results(trace_name, elapsed_time)

        if self.config.verbose:
            logger.info("\n%s", results.get_summary())

        return results

    def _process_branch(self, branch: BranchRecord) -> None:
        """Process a single branch through every run."""
        self.branches_processed += 1
        in_warmup = self.branches_processed <= self.config.warmup_branches

        for name, run in self.runs.items():
            history = run.history.value()

            prediction = run.predictor.predict(branch.pc, history)

            if not in_warmup:
                self.metrics.record_prediction(
                    name, prediction, branch.taken, branch.instructions)
                if self.config.collect_predictions:
                    self._predictions[name].append(int(prediction.prediction))

            run.predictor.update(branch.pc, history, branch.taken, prediction)

            # History always advances with the real outcome
            run.history.shift(branch.taken)

    def _reset(self) -> None:
        """Reset simulator state."""
        self.metrics.reset()
        self.branches_processed = 0

        for name, run in self.runs.items():
            run.predictor.reset()
            run.history.reset()
            self._predictions[name] = []

    def _compile_results(self, trace_source: str,
                         elapsed_time: float) -> SimulationResults:
        """Compile simulation results."""
        predictor_results = {}
        for name in self.runs:
            stats = self.metrics.get_predictor_stats(name)
            if self.config.collect_predictions:
                stats['predictions'] = list(self._predictions[name])
            predictor_results[name] = stats

        return SimulationResults(
            trace_name=trace_source,
            branches_simulated=max(0, self.branches_processed -
                                   self.config.warmup_branches),
            warmup_branches=min(self.branches_processed,
                                self.config.warmup_branches),
            elapsed_time=elapsed_time,
            predictor_results=predictor_results,
            hardware_costs={
                name: run.predictor.get_hardware_cost()
                for name, run in self.runs.items()
            },
            config=asdict(self.config),
            predictor_configs={
                name: {
                    'variant': run.predictor.variant,
                    'parameters': run.predictor.config.parameters(),
                }
                for name, run in self.runs.items()
            }
        )

    def _log_progress(self, trace_name: str) -> None:
        """Log progress during simulation."""
        measured = self.branches_processed - self.config.warmup_branches
        if measured <= 0:
            return

        # Quick stats for the first run
        first = next(iter(self.runs))
        stats = self.metrics.get_predictor_stats(first)
        message = (f"Branches: {format_number(measured)} | "
                   f"Mispred: {stats.get('misprediction_rate', 0)*100:.2f}% | "
                   f"MPKI: {stats.get('mpki', 0):.2f} | {trace_name}")

        if self.config.verbose:
            tqdm.write(message)
        else:
            logger.debug(message)

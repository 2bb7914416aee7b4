"""
Base Predictor Interface

Abstract base class for the predictor variants, plus the two
single-table predictors: Bimodal (baseline) and GShare.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from typing import Any, Dict, Optional, Union

from .config import PredictorConfig
from ..components.counters import CounterTable
from ..components.tables import IndexingScheme
from ..utils.helpers import check_int_range

ConfigLike = Union[PredictorConfig, Dict[str, Any], None]


@dataclass
class PredictionResult:
    """Result of a branch prediction."""
    prediction: bool          # True = Taken, False = Not Taken
    confidence: float         # 0 = weakest counter state, 1 = saturated
    predictor_used: str       # Which table made the decision
    counter_state: Optional[int] = None  # State of the providing counter


class BasePredictor(ABC):
    """Abstract base class for branch predictors."""

    variant: str = ''

    def __init__(self, name: str, config: ConfigLike = None):
        """
        Initialize the predictor.

        Args:
            name: Name identifier for this predictor
            config: PredictorConfig or mapping of its fields
        """
        self.name = name
        self.config = self._resolve_config(config)
        self.address_shift = check_int_range(
            self.config.address_shift, "address_shift", 0, 32)
        self.history_length = 0

    @classmethod
    def _resolve_config(cls, config: ConfigLike) -> PredictorConfig:
        if config is None:
            return PredictorConfig(variant=cls.variant)
        if isinstance(config, dict):
            return PredictorConfig.from_dict({**config, 'variant': cls.variant})
        if config.variant != cls.variant:
            return replace(config, variant=cls.variant)
        return config

    @property
    def label(self) -> str:
        return self.config.label()

    @abstractmethod
    def predict(self, pc: int, history: int = 0) -> PredictionResult:
        """
        Make a branch prediction.

        Args:
            pc: Program counter of the branch
            history: Global history value (`history_length` bits)

        Returns:
            PredictionResult with prediction and confidence
        """
        pass

    @abstractmethod
    def update(self, pc: int, history: int, taken: bool,
               prediction: Optional[PredictionResult] = None) -> None:
        """
        Update the predictor based on actual outcome.

        Args:
            pc: Program counter of the branch
            history: Global history value used for the prediction
            taken: Actual branch outcome (True = taken)
            prediction: The prediction that was made
        """
        pass

    @abstractmethod
    def get_hardware_cost(self) -> dict:
        """
        Storage cost of the predictor state.

        Returns:
            Dictionary with per-structure bits and 'total_bits'
        """
        pass

    @abstractmethod
    def reset(self) -> None:
        """Return every table to its initial state."""
        pass

    def bit_budget(self) -> int:
        """Total table state bits (the history register is not counted)."""
        return self.get_hardware_cost()['total_bits']

    @staticmethod
    def _confidence(state: int, table: CounterTable) -> float:
        middle = table.max_state / 2
        return abs(state - middle) / middle


class BimodalPredictor(BasePredictor):
    """
    Simple saturating counter predictor (baseline).

    Indexed by the low bits of the branch address only.
    """

    variant = 'bimodal'

    def __init__(self, config: ConfigLike = None):
        super().__init__("Bimodal", config)
        self.table_size = self.config.table_size
        self.table = CounterTable(self.table_size, self.config.counter_bits)

    def _index(self, pc: int) -> int:
        """Compute table index from PC."""
        return IndexingScheme.pc_index(pc, self.table.mask, self.address_shift)

    def predict(self, pc: int, history: int = 0) -> PredictionResult:
        state = self.table.state(self._index(pc))
        return PredictionResult(
            prediction=state >= self.table.threshold,
            confidence=self._confidence(state, self.table),
            predictor_used=self.name,
            counter_state=state
        )

    def update(self, pc: int, history: int, taken: bool,
               prediction: Optional[PredictionResult] = None) -> None:
        self.table.update(self._index(pc), taken)

    def reset(self) -> None:
        self.table.reset()

    def get_hardware_cost(self) -> dict:
        total_bits = self.table.storage_bits()
        return {
            'table_entries': self.table_size,
            'bits_per_entry': self.table.bits,
            'table_bits': total_bits,
            'history_bits': 0,
            'total_bits': total_bits,
            'total_kb': total_bits / 8 / 1024
        }


class GSharePredictor(BasePredictor):
    """
    GShare predictor - XOR of PC and global history.

    Two (PC, history) pairs that hash to the same entry share a counter;
    that aliasing is the price of a single small table.
    """

    variant = 'gshare'

    def __init__(self, config: ConfigLike = None):
        super().__init__("GShare", config)
        self.table_size = self.config.table_size
        self.history_length = check_int_range(
            self.config.history_length, "history_length")
        self.history_mask = (1 << self.history_length) - 1
        self.table = CounterTable(self.table_size, self.config.counter_bits)

    def _index(self, pc: int, history: int) -> int:
        """Compute index using XOR of PC and history."""
        return IndexingScheme.xor_index(pc, history & self.history_mask,
                                        self.table.mask, self.address_shift)

    def predict(self, pc: int, history: int = 0) -> PredictionResult:
        state = self.table.state(self._index(pc, history))
        return PredictionResult(
            prediction=state >= self.table.threshold,
            confidence=self._confidence(state, self.table),
            predictor_used=self.name,
            counter_state=state
        )

    def update(self, pc: int, history: int, taken: bool,
               prediction: Optional[PredictionResult] = None) -> None:
        self.table.update(self._index(pc, history), taken)

    def reset(self) -> None:
        self.table.reset()

    def get_hardware_cost(self) -> dict:
        table_bits = self.table.storage_bits()
        return {
            'table_entries': self.table_size,
            'bits_per_entry': self.table.bits,
            'table_bits': table_bits,
            'history_bits': self.history_length,
            'total_bits': table_bits,
            'total_kb': table_bits / 8 / 1024
        }

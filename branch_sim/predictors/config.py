"""
Predictor Configuration

Resolved per-run predictor settings and the factory that turns them
into predictor instances.
"""

from dataclasses import dataclass, asdict, fields
from typing import Any, Dict, Optional, Union

from ..errors import ConfigError

VARIANTS = ('bimodal', 'gshare', 'yags')


@dataclass
class PredictorConfig:
    """Configuration for one predictor run."""
    variant: str = 'gshare'
    table_size: int = 4096        # Entries in the main / base table
    history_length: int = 12      # Global history width W (gshare, yags)
    cache_size: int = 1024        # Entries per YAGS exception cache
    tag_bits: int = 6             # YAGS tag width
    counter_bits: int = 2
    address_shift: int = 0        # Low PC bits dropped before indexing
    name: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.variant, str) or \
                self.variant.lower() not in VARIANTS:
            raise ConfigError(
                f"Unknown predictor variant: {self.variant!r} "
                f"(expected one of {', '.join(VARIANTS)})")
        self.variant = self.variant.lower()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PredictorConfig':
        """Build from a mapping, rejecting keys this config does not know."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"Unknown predictor option(s): {', '.join(unknown)}")
        return cls(**data)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @property
    def uses_history(self) -> bool:
        return self.variant != 'bimodal'

    def parameters(self) -> Dict[str, int]:
        """Settings that matter for this variant."""
        params = {'table_size': self.table_size}
        if self.uses_history:
            params['history_length'] = self.history_length
        if self.variant == 'yags':
            params['cache_size'] = self.cache_size
            params['tag_bits'] = self.tag_bits
        if self.counter_bits != 2:
            params['counter_bits'] = self.counter_bits
        if self.address_shift:
            params['address_shift'] = self.address_shift
        return params

    def label(self) -> str:
        """Stable run name, e.g. 'gshare-4096-h12'."""
        if self.name:
            return self.name
        parts = [self.variant, str(self.table_size)]
        if self.variant == 'yags':
            parts.append(f"c{self.cache_size}")
            parts.append(f"t{self.tag_bits}")
        if self.uses_history:
            parts.append(f"h{self.history_length}")
        return "-".join(parts)


def create_predictor(config: Union[PredictorConfig, Dict[str, Any]]):
    """
    Create predictor instance from configuration.

    Args:
        config: PredictorConfig or plain mapping with a 'variant' key

    Returns:
        Predictor instance

    Raises:
        ConfigError: on any invalid setting, before the predictor is used
    """
    from .base import BimodalPredictor, GSharePredictor
    from .yags import YAGSPredictor

    predictor_map = {
        'bimodal': BimodalPredictor,
        'gshare': GSharePredictor,
        'yags': YAGSPredictor,
    }

    if isinstance(config, dict):
        config = PredictorConfig.from_dict(config)

    return predictor_map[config.variant](config)

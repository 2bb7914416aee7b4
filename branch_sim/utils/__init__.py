# Utilities Package
from .helpers import (
    load_config,
    setup_logging,
    check_int_range,
    check_power_of_two,
    format_number,
    format_bits,
)

__all__ = [
    'load_config',
    'setup_logging',
    'check_int_range',
    'check_power_of_two',
    'format_number',
    'format_bits',
]

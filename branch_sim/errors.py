"""
Error Types

Exceptions raised by the simulator core.
"""

from typing import Optional


class BranchSimError(Exception):
    """Base class for all simulator errors."""


class ConfigError(BranchSimError, ValueError):
    """Invalid predictor or simulation configuration."""


class ParseError(BranchSimError, ValueError):
    """
    A trace record could not be decoded.

    Either `line` (text traces) or `offset` (binary traces) locates the
    bad record.
    """

    def __init__(self, message: str, source: Optional[str] = None,
                 line: Optional[int] = None, offset: Optional[int] = None):
        self.source = source
        self.line = line
        self.offset = offset

        where = []
        if source:
            where.append(source)
        if line is not None:
            where.append(f"line {line}")
        if offset is not None:
            where.append(f"offset {offset}")

        prefix = ", ".join(where)
        super().__init__(f"{prefix}: {message}" if prefix else message)


class SimulationCancelled(BranchSimError):
    """Raised when a run is cancelled between records."""

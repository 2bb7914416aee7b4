"""
Global History Register

Shift register of recent branch outcomes used by history-indexed
predictors. Each simulation run owns one register per predictor.
"""

from ..utils.helpers import check_int_range


class GlobalHistoryRegister:
    """
    Global Branch History Register.

    Holds the last `length` outcomes with the most recent outcome in
    bit 0. A zero-length register is legal and always reads as 0.
    """

    def __init__(self, length: int = 12):
        """
        Initialize the history register.

        Args:
            length: Number of branch outcomes to track
        """
        self.length = check_int_range(length, "history_length")
        self.mask = (1 << self.length) - 1
        self._value = 0

    def shift(self, taken: bool) -> None:
        """Shift in a new outcome, dropping the oldest one."""
        self._value = ((self._value << 1) | int(bool(taken))) & self.mask

    def value(self) -> int:
        """Current history as an integer."""
        return self._value

    def reset(self) -> None:
        """Reset history to all not-taken."""
        self._value = 0

    def __len__(self) -> int:
        return self.length

    def __repr__(self) -> str:
        if self.length == 0:
            return "GHR(0)"
        return f"GHR({self.length}): {self._value:0{self.length}b}"

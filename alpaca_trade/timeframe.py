"""Bar aggregation timeframe (amount + unit), sent as e.g. ``"5Min"``."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum


class TimeFrameUnit(str, Enum):
    """Units accepted by the bars endpoints."""

    MINUTE = "Min"
    HOUR = "Hour"
    DAY = "Day"


# Upper bound on amount per unit; None means unbounded.
_MAX_AMOUNT: dict[TimeFrameUnit, int | None] = {
    TimeFrameUnit.MINUTE: 59,
    TimeFrameUnit.HOUR: 23,
    TimeFrameUnit.DAY: None,
}

_TIMEFRAME_RE = re.compile(r"^(\d+)([A-Za-z]+)$")


@dataclass(frozen=True)
class TimeFrame:
    """Immutable bar timeframe, validated on construction."""

    amount: int
    unit: TimeFrameUnit

    def __post_init__(self) -> None:
        try:
            unit = TimeFrameUnit(self.unit)
        except ValueError as e:
            valid = [u.value for u in TimeFrameUnit]
            raise ValueError(f"Time unit must be one of {valid}, got {self.unit!r}") from e
        object.__setattr__(self, "unit", unit)

        if isinstance(self.amount, bool) or not isinstance(self.amount, int):
            raise ValueError("Amount must be a positive integer value.")
        if self.amount <= 0:
            raise ValueError("Amount must be a positive integer value.")

        limit = _MAX_AMOUNT[unit]
        if limit is not None and self.amount > limit:
            raise ValueError(
                f"{unit.name.title()} units can only be used with amounts "
                f"between 1 and {limit}."
            )

    def __str__(self) -> str:
        return f"{self.amount}{self.unit.value}"

    @classmethod
    def parse(cls, value: str) -> TimeFrame:
        """Parse the compact form, e.g. ``"15Min"`` or ``"1Day"``."""
        match = _TIMEFRAME_RE.match(value.strip())
        if match is None:
            raise ValueError(f"Invalid timeframe: {value!r}")
        amount, unit = match.groups()
        return cls(int(amount), unit)  # type: ignore[arg-type]

    @classmethod
    def minutes(cls, amount: int = 1) -> TimeFrame:
        return cls(amount, TimeFrameUnit.MINUTE)

    @classmethod
    def hours(cls, amount: int = 1) -> TimeFrame:
        return cls(amount, TimeFrameUnit.HOUR)

    @classmethod
    def days(cls, amount: int = 1) -> TimeFrame:
        return cls(amount, TimeFrameUnit.DAY)

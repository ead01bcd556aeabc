"""
Token lifetime durations.

Lifetimes are configured as short strings such as "7d", "12h", "30m" or "45s".
They are parsed once, when settings are loaded, into a Duration value so a bad
value stops the app at startup instead of failing a request later.
"""
from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from datetime import timedelta

from services.errors import ConfigurationError

_DURATION_RE = re.compile(r"([0-9]+)([dhms])")


class DurationUnit(enum.Enum):
    DAYS = "d"
    HOURS = "h"
    MINUTES = "m"
    SECONDS = "s"


_UNIT_SECONDS = {
    DurationUnit.DAYS: 86400,
    DurationUnit.HOURS: 3600,
    DurationUnit.MINUTES: 60,
    DurationUnit.SECONDS: 1,
}


@dataclass(frozen=True)
class Duration:
    amount: int
    unit: DurationUnit

    @property
    def seconds(self) -> int:
        return self.amount * _UNIT_SECONDS[self.unit]

    def to_timedelta(self) -> timedelta:
        return timedelta(seconds=self.seconds)

    def __str__(self) -> str:
        return f"{self.amount}{self.unit.value}"


def parse_duration(value: str, setting: str = "duration") -> Duration:
    """Parse "<int><d|h|m|s>" into a Duration.

    Raises ConfigurationError for anything else, naming the offending setting.
    """
    match = _DURATION_RE.fullmatch(value) if isinstance(value, str) else None
    if not match:
        raise ConfigurationError(
            f"Invalid {setting} format: {value!r} (expected <integer><d|h|m|s>, e.g. '7d')"
        )
    return Duration(amount=int(match.group(1)), unit=DurationUnit(match.group(2)))

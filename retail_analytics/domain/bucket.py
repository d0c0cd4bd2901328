"""
Domain: Calendar buckets for time-series aggregation.

Rules implemented here:
- A bucket covers exactly one calendar unit (a day or a month).
- A bucket is identified by the first date of its unit; its label is the ISO form
  of that unit ("2025-03-07" for days, "2025-03" for months).
- Buckets are value objects created fresh per aggregation call; their metric
  sums are read-only.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Union

Number = Union[int, float, Decimal]


class Granularity(str, Enum):
    DAY = "day"
    MONTH = "month"

    def unit_start(self, value: date) -> date:
        """First date of the calendar unit containing `value`."""

        if self is Granularity.MONTH:
            return value.replace(day=1)
        return value

    def next_unit(self, unit_start: date) -> date:
        """First date of the unit following the one starting at `unit_start`."""

        if self is Granularity.MONTH:
            if unit_start.month == 12:
                return date(unit_start.year + 1, 1, 1)
            return date(unit_start.year, unit_start.month + 1, 1)
        return unit_start + timedelta(days=1)

    def label(self, unit_start: date) -> str:
        if self is Granularity.MONTH:
            return unit_start.strftime("%Y-%m")
        return unit_start.isoformat()


@dataclass(frozen=True, slots=True)
class Bucket:
    """
    One calendar unit of an aggregated series.

    `entries` counts the records placed in the unit; `sums` holds one total per
    named metric (zero when no record landed here).
    """

    start: date
    granularity: Granularity
    entries: int = 0
    sums: Mapping[str, Number] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "sums", MappingProxyType(dict(self.sums)))

    @property
    def label(self) -> str:
        return self.granularity.label(self.start)

    @property
    def is_empty(self) -> bool:
        return self.entries == 0

    def metric(self, name: str, default: Number = 0) -> Number:
        return self.sums.get(name, default)


__all__ = ["Bucket", "Granularity", "Number"]

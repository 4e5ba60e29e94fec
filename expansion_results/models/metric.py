from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

"""Metric descriptors for expansion plan result sets.

A result set carries an open-ended bag of named metrics per row. The descriptor
tables below declare, per calculation basis, the display unit of each metric and
whether the pivot view shows a baseline column for it.
"""

__all__ = [
    "CalculationBasis",
    "MetricDescriptor",
    "YEARLY_METRICS",
    "NPV_METRICS",
    "metrics_for",
]


class CalculationBasis(Enum):
    """Whether a result set holds undiscounted yearly values or NPV values."""
    YEARLY = "Yearly"
    NPV = "NPV"

    @classmethod
    def parse(cls, value: str | CalculationBasis) -> CalculationBasis:
        if isinstance(value, CalculationBasis):
            return value
        for member in cls:
            if member.value.lower() == str(value).strip().lower():
                return member
        raise ValueError(f"unknown calculation basis: {value!r}")


@dataclass(frozen=True)
class MetricDescriptor:
    name: str  # display name, also the key in ResultRow.metrics
    unit: str
    has_baseline: bool = False


YEARLY_METRICS: tuple[MetricDescriptor, ...] = (
    MetricDescriptor("Added Capacity", "MW"),
    MetricDescriptor("Reliability Metric", "Days/Year", True),
    MetricDescriptor("System Cost", "$", True),
    MetricDescriptor("Generation", "MWh"),
    MetricDescriptor("Capacity Factor", "%"),
    MetricDescriptor("Hours Online", "Hours"),
    MetricDescriptor("Fixed Cost", "$/MW"),
    MetricDescriptor("Fixed Carrying Cost", "$/MW"),
    MetricDescriptor("Fixed OM Cost", "$/MW"),
    MetricDescriptor("Production Cost", "$/MWh"),
    MetricDescriptor("Fuel Cost", "$/MWh"),
    MetricDescriptor("Startup Cost", "$/MWh"),
    MetricDescriptor("Variable OM Cost", "$/MWh"),
    MetricDescriptor("Emission Cost", "$/MWh"),
    MetricDescriptor("Energy Margin", "$/MW"),
    MetricDescriptor("Market Price", "$/MWh", True),
    MetricDescriptor("System Curtailment", "MWh", True),
    MetricDescriptor("Start Attempts", "Count"),
)

NPV_METRICS: tuple[MetricDescriptor, ...] = (
    MetricDescriptor("LOLE", "Days/Year", True),
    MetricDescriptor("Energy Margin", "$M"),
    MetricDescriptor("Total Cost", "$M", True),
    MetricDescriptor("Production Cost", "$M", True),
    MetricDescriptor("Fuel Cost", "$M", True),
    MetricDescriptor("Startup Cost", "$M"),
    MetricDescriptor("Variable OM Cost", "$M"),
    MetricDescriptor("Emission Cost", "$M"),
    MetricDescriptor("EUE Cost", "$M", True),
    MetricDescriptor("Net Purchase Cost", "$M", True),
    MetricDescriptor("System Fixed Cost", "$M", True),
    MetricDescriptor("System Fixed Carrying Cost", "$M", True),
    MetricDescriptor("System Fixed OM Cost", "$M", True),
)


def metrics_for(basis: CalculationBasis) -> tuple[MetricDescriptor, ...]:
    return NPV_METRICS if basis is CalculationBasis.NPV else YEARLY_METRICS

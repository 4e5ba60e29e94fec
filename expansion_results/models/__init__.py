"""Domain models for the expansion plan results engine.

Result rows and metric descriptors, the derived view models (pivot, sort and
pagination state), backend DTOs and the data source resolution shapes.
"""

from .metric import NPV_METRICS, YEARLY_METRICS, CalculationBasis, MetricDescriptor
from .pivot import PivotCell, PivotTable
from .resolution import DataSourceState, ResolvedResults, ResolvedScenarios, ResultsQuery
from .result_row import MetricBag, ResultRow, ResultSet
from .view_state import PAGE_SIZE_OPTIONS, PaginationState, SortConfig, SortDirection

__all__ = [
    # Result data
    "CalculationBasis",
    "MetricDescriptor",
    "YEARLY_METRICS",
    "NPV_METRICS",
    "MetricBag",
    "ResultRow",
    "ResultSet",
    # View state
    "PivotCell",
    "PivotTable",
    "SortDirection",
    "SortConfig",
    "PaginationState",
    "PAGE_SIZE_OPTIONS",
    # Resolution
    "DataSourceState",
    "ResultsQuery",
    "ResolvedResults",
    "ResolvedScenarios",
]

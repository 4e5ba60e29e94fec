from __future__ import annotations

from ..models.pivot import PivotTable
from ..models.processing_result import ImportResult
from ..models.resolution import ResolvedResults

"""SUMMARY line rendering.

Every CLI command ends with one SUMMARY line of space-separated key=value
pairs so scripts can parse the outcome, e.g.

    SUMMARY source=fallback state=unavailable rows=1584 cycles=24 technologies=6
"""

__all__ = [
    "format_number",
    "render_results_summary",
    "render_import_summary",
]


def format_number(value: float) -> str:
    """Integral values without decimals, small values without scientific notation."""
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if abs(value) < 0.01:
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return f"{value:.3f}".rstrip("0").rstrip(".")


def render_results_summary(resolved: ResolvedResults, table: PivotTable | None = None) -> str:
    """Summary of one resolution, with pivot dimensions when a pivot was rendered."""
    rows = resolved.data.rows
    if table is not None:
        cycles = len(table.build_cycles)
        technologies = len(table.technologies)
    else:
        cycles = len({r.build_cycle for r in rows})
        technologies = len({r.technology for r in rows})
    return (
        f"SUMMARY source={resolved.source_label} "
        f"state={resolved.state.value} "
        f"rows={len(rows)} "
        f"cycles={cycles} "
        f"technologies={technologies}"
    )


def render_import_summary(result: ImportResult) -> str:
    return (
        f"SUMMARY files={result.success_files}/{result.total_files} "
        f"failed={result.failed_files} "
        f"rows={result.total_rows} "
        f"skipped_rows={result.skipped_rows} "
        f"elapsed_sec={format_number(result.elapsed_seconds)}"
    )

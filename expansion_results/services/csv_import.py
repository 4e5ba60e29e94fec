from __future__ import annotations

import csv
import json
import logging
import time
from collections.abc import Iterable
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import pandas as pd

from ..models.processing_result import FileStat, ImportResult
from .progress import ProgressTracker

"""Solver-result CSV import.

Header row is line 1, data rows follow; blank lines are ignored. Known headers
are renamed through COLUMN_MAPPING, unknown headers are dropped. Fields in
NUMERIC_FIELDS take their leading number (0 when there is none or it is not
finite), every other mapped field stays a trimmed string. Data lines with fewer
fields than the header are skipped but still consume a line number, so record
ids stay tied to the source line (`result-{n}`).
"""

__all__ = [
    "COLUMN_MAPPING",
    "NUMERIC_FIELDS",
    "DEFAULT_PLAN_ID",
    "CsvImportError",
    "CsvTable",
    "read_solver_csv",
    "import_csv_files",
]

logger = logging.getLogger(__name__)

DEFAULT_PLAN_ID = "plan-1"

COLUMN_MAPPING: dict[str, str] = {
    "Study": "study",
    "1 MW Candidate": "candidate",
    "Iteration": "iteration",
    "Year": "year",
    "Status": "status",
    "Name Plate (MW)": "namePlate",
    "Energy Margin ($/MW)": "energyMargin",
    "NPV Energy Margin ($/MW)": "npvEnergyMargin",
    "Available MW in EUE Hours (MW)": "availableMwInEueHours",
    "NPV Average Available MW in EUE Hours (MW)": "npvAvgAvailableMwInEueHours",
    "Fixed Cost ($/MW)": "fixedCost",
    "Fixed Carrying Cost ($/MW)": "fixedCarryingCost",
    "Fixed OM Cost ($/MW)": "fixedOmCost",
    "Total NPV Fixed Cost ($/MW)": "totalNpvFixedCost",
    "Total NPV Fixed Cost - NPV Energy Margin ($)": "totalNpvFixedCostMinusNpvEnergyMargin",
    "(Total NPV Fixed Cost - NPV Energy Margin)/NPV Available MW in EUE Hours (MW)":
        "totalNpvFixedCostMinusNpvEnergyMarginPerNpvAvailableMw",
    "Total Fixed Cost - Energy Margin ($)": "totalFixedCostMinusEnergyMargin",
    "(Total Fixed Cost - Energy Margin)/Available MW in EUE Hours (MW)":
        "totalFixedCostMinusEnergyMarginPerAvailableMw",
    "LOLE_Capacity": "loleCapacity",
    "EUE Cap (MW)": "eueCap",
    "LOLH Cap (Hours)": "lolhCap",
    "NPV LOLE_Capacity": "npvLoleCapacity",
    "NPV Total Cost ($)": "npvTotalCost",
    "Total Annual System Cost ($)": "totalAnnualSystemCost",
    "Unit Production Cost ($)": "unitProductionCost",
    "Unit Fuel Cost ($)": "unitFuelCost",
    "Unit Startup Cost ($)": "unitStartupCost",
    "Unit Variable OM Cost ($)": "unitVariableOmCost",
    "Unit Emissions Cost ($)": "unitEmissionsCost",
    "System Curtailment": "systemCurtailment",
    "Selection Criteria": "selectionCriteria",
    "EUE Depth (MW)": "eueDepth",
    "RPS Generation (MWh)": "rpsGeneration",
    "Generation (MWh)": "generation",
    "EUE Benefit (MWh)": "eueBenefit",
    "Start Attempts": "startAttempts",
    "Capacity Factor": "capacityFactor",
    "Hours Online": "hoursOnline",
}

# every mapped field except study, candidate, status and selectionCriteria
NUMERIC_FIELDS: frozenset[str] = frozenset(
    v for v in COLUMN_MAPPING.values()
    if v not in {"study", "candidate", "status", "selectionCriteria"}
)


class CsvImportError(Exception):
    """Raised when a CSV file cannot be read or has no header row."""


class CsvTable:
    """Raw parse result: header, data frame of kept rows, skipped line count."""

    def __init__(self, header: list[str], frame: pd.DataFrame, skipped: int) -> None:
        self.header = header
        self.frame = frame  # index = 1-based data line number
        self.skipped = skipped


def _read_table(path: Path) -> CsvTable:
    try:
        text = path.read_text(encoding="utf-8-sig")
    except OSError as e:
        raise CsvImportError(f"cannot read {path}: {e}") from e

    lines = [line for line in text.splitlines() if line.strip()]
    if not lines:
        raise CsvImportError(f"no header row: {path}")

    parsed = [[f.strip() for f in fields] for fields in csv.reader(lines)]
    header, data = parsed[0], parsed[1:]

    kept: list[list[str]] = []
    line_numbers: list[int] = []
    skipped = 0
    for n, fields in enumerate(data, start=1):
        if len(fields) < len(header):
            skipped += 1
            continue
        kept.append(fields[: len(header)])
        line_numbers.append(n)

    frame = pd.DataFrame(kept, columns=header, dtype=str)
    frame.index = pd.Index(line_numbers, name="line")
    return CsvTable(header, frame, skipped)


# leading decimal number of a cell: "12abc" -> 12, "1.5e3 MW" -> 1500
_LEADING_NUMBER = r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)"


def _to_number(value: float) -> int | float:
    return int(value) if float(value).is_integer() else float(value)


def _numeric_column(values: pd.Series) -> pd.Series:
    """Leading-number parse of a text column; unparseable or non-finite cells become 0."""
    parsed = pd.to_numeric(values.str.extract(_LEADING_NUMBER, expand=False), errors="coerce")
    return parsed.mask(parsed.abs() == float("inf")).fillna(0)


def _normalize(table: CsvTable, plan_id: str) -> list[dict[str, Any]]:
    mapped = list(dict.fromkeys(h for h in table.header if h in COLUMN_MAPPING))
    frame = table.frame.loc[:, ~table.frame.columns.duplicated()]
    frame = frame[mapped].rename(columns=COLUMN_MAPPING)
    for col in frame.columns:
        if col in NUMERIC_FIELDS:
            frame[col] = _numeric_column(frame[col])

    records: list[dict[str, Any]] = []
    for line, row in frame.iterrows():
        rec: dict[str, Any] = {"id": f"result-{line}", "expansionPlanId": plan_id}
        for col, value in row.items():
            rec[col] = _to_number(value) if col in NUMERIC_FIELDS else value
        records.append(rec)
    return records


def read_solver_csv(path: Path, plan_id: str = DEFAULT_PLAN_ID) -> list[dict[str, Any]]:
    """Read one solver-result CSV into camelCase records.

    Args:
        path: CSV file (UTF-8, optional BOM)
        plan_id: Value written to each record's `expansionPlanId`

    Returns:
        One dict per kept data row, in file order

    Raises:
        CsvImportError: Unreadable file or missing header row
    """
    table = _read_table(path)
    if table.skipped:
        logger.warning(f"{path.name}: skipped {table.skipped} short row(s)")
    return _normalize(table, plan_id)


def import_csv_files(
    paths: Iterable[Path],
    output: Path,
    plan_id: str = DEFAULT_PLAN_ID,
) -> ImportResult:
    """Import several CSV files into one JSON array file.

    A failing file is logged and counted; the remaining files are still imported.
    Nothing is written when no file produced records.
    """
    files = list(paths)
    start = datetime.now(UTC)
    t0 = time.perf_counter()
    records: list[dict[str, Any]] = []
    stats: list[FileStat] = []

    with ProgressTracker(len(files), description="Importing CSV") as progress:
        for path in files:
            progress.start(path)
            f0 = time.perf_counter()
            try:
                table = _read_table(path)
                rows = _normalize(table, plan_id)
            except CsvImportError as e:
                logger.error(f"import failed: {e}")
                stats.append(FileStat(path.name, "failed", 0, 0, time.perf_counter() - f0, str(e)))
                progress.finish()
                continue
            if table.skipped:
                logger.warning(f"{path.name}: skipped {table.skipped} short row(s)")
            logger.info(f"{path.name}: {len(rows)} row(s)")
            records.extend(rows)
            stats.append(FileStat(path.name, "success", len(rows), table.skipped, time.perf_counter() - f0))
            progress.finish(rows=len(records))

    written: Path | None = None
    if records:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(json.dumps(records, indent=2, ensure_ascii=False, allow_nan=False), encoding="utf-8")
        written = output

    return ImportResult(
        success_files=sum(1 for s in stats if s.status == "success"),
        failed_files=sum(1 for s in stats if s.status == "failed"),
        total_rows=len(records),
        skipped_rows=sum(s.skipped_rows for s in stats),
        start_time=start,
        end_time=datetime.now(UTC),
        elapsed_seconds=time.perf_counter() - t0,
        output=written,
        file_stats=stats,
    )

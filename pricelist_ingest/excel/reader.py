from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from typing import Any

import pandas as pd

"""Workbook reader.

Decodes an .xlsx / .xls workbook into raw rows per sheet. No header is applied:
vendor sheets put their header anywhere in the first few rows, and locating it
is the resolver's job.

Empty cells come back as None. Trailing empty cells are trimmed so rows keep
their natural (varying) length.
"""

__all__ = [
    "WorkbookReadError",
    "read_workbook",
    "dataframe_to_rows",
    "SUPPORTED_SUFFIXES",
]

SUPPORTED_SUFFIXES = (".xlsx", ".xls")
_ENGINES = {".xlsx": "openpyxl", ".xls": "xlrd"}


class WorkbookReadError(Exception):
    """Raised when the workbook cannot be opened or decoded."""


def dataframe_to_rows(df: pd.DataFrame) -> list[list[Any]]:
    """Convert a header-less DataFrame into rows of untyped cells (NaN -> None)."""
    rows: list[list[Any]] = []
    for raw in df.itertuples(index=False, name=None):
        row = [None if pd.isna(v) else v for v in raw]
        while row and row[-1] is None:
            row.pop()
        rows.append(row)
    return rows


def read_workbook(path: Path, target_sheets: Iterable[str] | None = None) -> dict[str, list[list[Any]]]:
    """Read a workbook returning raw rows keyed by sheet name (workbook order).

    Parameters
    ----------
    path: workbook path
    target_sheets: restrict to these sheet names (None = all sheets)
    """
    engine = _ENGINES.get(path.suffix.lower())
    if engine is None:
        raise WorkbookReadError(f"unsupported workbook type: {path.suffix}")
    wanted = set(target_sheets) if target_sheets is not None else None
    try:
        xls = pd.ExcelFile(path, engine=engine)
    except Exception as e:
        raise WorkbookReadError(f"cannot open workbook {path.name}: {e}") from e

    sheets: dict[str, list[list[Any]]] = {}
    with xls:
        for name in xls.sheet_names:
            if wanted is not None and str(name) not in wanted:
                continue
            # keep_default_na=False: "NA" / "N/A" stay text, only real blanks are NaN
            df = xls.parse(name, header=None, keep_default_na=False, na_values=[""])
            sheets[str(name)] = dataframe_to_rows(df)
    return sheets

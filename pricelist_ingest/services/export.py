from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from typing import Any

import pandas as pd

from ..models.product_record import ProductRecord

"""Catalog export.

Flattens product records into the e-commerce catalog import layout and writes
them as XLSX, CSV or JSON.
"""

__all__ = [
    "EXPORT_COLUMNS",
    "to_export_rows",
    "export_records",
]

EXPORT_COLUMNS = (
    "Product ID",
    "Name",
    "Description",
    "Price",
    "Category ID",
    "Supplier",
    "SKU",
    "Stock",
    "Status",
    "Currency",
    "Tax Class",
    "Created",
    "Updated",
)

DEFAULT_STOCK = "999"
ACTIVE_STATUS = "1"
DEFAULT_TAX_CLASS = "1"


def to_export_rows(records: Iterable[ProductRecord]) -> list[dict[str, Any]]:
    rows = []
    for r in records:
        rows.append({
            "Product ID": r.product_id,
            "Name": r.name,
            "Description": r.description or "",
            "Price": r.prices.retail_excl_vat,
            "Category ID": r.category_id,
            "Supplier": r.supplier,
            "SKU": r.sku or r.product_id,
            "Stock": DEFAULT_STOCK,
            "Status": ACTIVE_STATUS,
            "Currency": r.currency,
            "Tax Class": DEFAULT_TAX_CLASS,
            "Created": r.created_at.isoformat() if r.created_at else "",
            "Updated": r.updated_at.isoformat() if r.updated_at else "",
        })
    return rows


def export_records(records: Iterable[ProductRecord], path: Path) -> Path:
    """Write records to path; the format follows the suffix (.xlsx, .csv, .json)."""
    df = pd.DataFrame(to_export_rows(records), columns=list(EXPORT_COLUMNS))
    suffix = path.suffix.lower()
    if suffix == ".xlsx":
        with pd.ExcelWriter(path, engine="openpyxl") as writer:
            df.to_excel(writer, sheet_name="Products", index=False)
    elif suffix == ".csv":
        df.to_csv(path, index=False)
    elif suffix == ".json":
        df.to_json(path, orient="records", indent=2, force_ascii=False)
    else:
        raise ValueError(f"unsupported export format: {path.suffix!r} (use .xlsx, .csv or .json)")
    return path

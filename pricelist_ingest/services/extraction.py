from __future__ import annotations

import logging
import math
import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

from ..models.candidate_row import CandidateRow
from ..models.sheet_structure import SheetStructure

"""Row extraction: price parsing, the row-acceptance filter, and conversion of
sheet rows / oracle items into CandidateRow values.

Vendor sheets mix section banners and real product lines with no structural
marker, so acceptance relies on textual cues:
- SKU, description and price must all be present, price > 0
- an all upper-case description is treated as a category banner
  (known false positive: short all-caps product names such as "USB-C HUB")
- descriptions shorter than 5 characters are rejected
- SKUs containing "CATEGORY" or shorter than 2 characters are rejected

Nothing in this module raises on bad data; rejected rows are only counted.
"""

__all__ = [
    "parse_price",
    "accept_row",
    "extract_candidates",
    "validate_oracle_candidates",
    "Extraction",
]

logger = logging.getLogger(__name__)

MIN_DESCRIPTION_LENGTH = 5
MIN_SKU_LENGTH = 2
MAX_NAME_LENGTH = 100

_CURRENCY_AND_SEPARATORS = re.compile(r"[R$€£,\s]")


@dataclass
class Extraction:
    """Rows recovered from one sheet (or one oracle response)."""
    candidates: list[CandidateRow] = field(default_factory=list)
    rows_found: int = 0
    rejections: list[tuple[int, str]] = field(default_factory=list)  # (row, reason)

    @property
    def rows_rejected(self) -> int:
        return len(self.rejections)


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and not value.strip()


def _cell_str(value: Any) -> str:
    # pandas turns integer columns holding blanks into floats: 1234.0 -> "1234"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def parse_price(value: Any) -> float | None:
    """Parse a price cell.

    Numbers pass through. Text is stripped of currency symbols (R $ € £),
    thousands separators and whitespace; what remains must parse as a float.
    Returns None for anything unparseable, never raises.
    """
    if _is_blank(value) or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        price = float(value)
    else:
        cleaned = _CURRENCY_AND_SEPARATORS.sub("", str(value))
        if not cleaned:
            return None
        try:
            price = float(cleaned)
        except ValueError:
            return None
    if math.isnan(price) or math.isinf(price):
        return None
    return price


def accept_row(sku: Any, description: Any, price: Any) -> str | None:
    """Apply the row-acceptance filter.

    Returns:
        None when the row is a product line, otherwise the rejection reason
    """
    if _is_blank(sku) or _is_blank(description) or _is_blank(price):
        return "missing field"
    parsed = parse_price(price)
    if parsed is None:
        return "unparseable price"
    if parsed <= 0:
        return "non-positive price"
    # text rules apply to numeric cells too
    text = _cell_str(description)
    if "CATEGORY" in text.upper():
        return "category banner"
    if text.upper() == text:
        return "all-caps description"
    if len(text) < MIN_DESCRIPTION_LENGTH:
        return "description too short"
    code = _cell_str(sku)
    if "CATEGORY" in code.upper():
        return "category sku"
    if len(code) < MIN_SKU_LENGTH:
        return "sku too short"
    return None


def _cell(row: Sequence[Any], index: int | None) -> Any:
    if index is None or index < 0 or index >= len(row):
        return None
    return row[index]


def extract_candidates(
    rows: Sequence[Sequence[Any] | None],
    structure: SheetStructure,
) -> Extraction:
    """Turn the data rows of a resolved sheet into candidate rows.

    Every accepted row is kept; there is no per-sheet cap.
    """
    result = Extraction()
    if not structure.is_valid:
        return result

    for row_index in range(structure.data_start_row, len(rows)):
        row = rows[row_index]
        if not row or all(_is_blank(c) for c in row):
            continue
        result.rows_found += 1

        sku = _cell(row, structure.sku_column)
        description = _cell(row, structure.description_column)
        price = _cell(row, structure.price_column)

        reason = accept_row(sku, description, price)
        if reason is not None:
            logger.debug("sheet=%s row=%d rejected: %s", structure.sheet_name, row_index, reason)
            result.rejections.append((row_index, reason))
            continue

        sku_text = _cell_str(sku)
        desc_text = _cell_str(description)
        category = _cell(row, structure.category_column)
        result.candidates.append(
            CandidateRow(
                name=f"{sku_text} - {desc_text}"[:MAX_NAME_LENGTH],
                price=parse_price(price),  # type: ignore[arg-type]
                sku=sku_text,
                description=desc_text,
                category_hint=_cell_str(category) if not _is_blank(category) else structure.sheet_name,
                sheet_name=structure.sheet_name,
                row_number=row_index,
            )
        )
    return result


def validate_oracle_candidates(items: Iterable[Any]) -> Extraction:
    """Validate oracle-extracted PDF items: name and a positive price are required."""
    result = Extraction()
    for idx, item in enumerate(items):
        result.rows_found += 1
        if not isinstance(item, dict):
            result.rejections.append((idx, "not an object"))
            continue
        name = item.get("name")
        if _is_blank(name):
            result.rejections.append((idx, "missing name"))
            continue
        price = parse_price(item.get("price"))
        if price is None:
            result.rejections.append((idx, "missing or unparseable price"))
            continue
        if price <= 0:
            result.rejections.append((idx, "non-positive price"))
            continue
        model_number = item.get("model_number")
        description = item.get("description")
        category = item.get("category")
        result.candidates.append(
            CandidateRow(
                name=_cell_str(name)[:MAX_NAME_LENGTH],
                price=price,
                sku=_cell_str(model_number) if not _is_blank(model_number) else None,
                description=_cell_str(description) if not _is_blank(description) else None,
                category_hint=_cell_str(category) if not _is_blank(category) else None,
                row_number=idx,
            )
        )
    return result

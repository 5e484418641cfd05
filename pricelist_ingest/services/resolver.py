from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from typing import Any

from ..models.price import PriceType
from ..models.sheet_structure import FALLBACK_CONFIDENCE, HEURISTIC_CONFIDENCE, SheetStructure

"""Sheet structure resolver.

Locates the header row of a vendor sheet and resolves which columns hold the
SKU, the description and the supplier's own price. Vendor workbooks mix title
rows, banners and product tables freely, so the search is a bounded heuristic:

1. fewer than MIN_ROWS rows -> invalid
2. scan the first HEADER_SCAN_ROWS rows for a row holding SKU/CODE,
   DESCRIPTION and an eligible PRICE header
3. resolve each column by first match in header order
4. data starts on the row after the header

resolve() never raises: an unrecognised sheet simply yields an invalid
structure and the caller moves on to the next sheet.
"""

__all__ = [
    "SHEET_DENYLIST",
    "is_denylisted_sheet",
    "resolve",
    "fallback_structure",
]

logger = logging.getLogger(__name__)

MIN_ROWS = 4
HEADER_SCAN_ROWS = 6

# Administrative tabs that are never product tables.
SHEET_DENYLIST: tuple[str, ...] = (
    "PRICING",
    "INDEX",
    "SUMMARY",
    "INFO",
    "Categories",
    "EOL Products",
    "Promotions",
    "New Products",
    "Warehouse Clearance",
    "Delivery",
)

SKU_TOKENS = ("SKU", "CODE")
DESCRIPTION_TOKENS = ("DESCRIPTION",)
PRICE_TOKEN = "PRICE"
# Manufacturer list prices, not what the supplier charges.
PRICE_EXCLUSIONS = ("SUGGESTED", "ADVERTISING", "MSRP")

_INCL_VAT_TOKENS = ("INCL", "INC VAT", "INC. VAT")
_COST_TOKENS = ("COST", "DEALER", "TRADE", "NETT", "RESELLER", "WHOLESALE")
_RETAIL_TOKENS = ("RETAIL", "RRP", "SELLING")


def is_denylisted_sheet(sheet_name: str, extra: Iterable[str] = ()) -> bool:
    """True when the sheet name is a known non-product tab (case-insensitive)."""
    name = (sheet_name or "").strip().upper()
    denied = {d.strip().upper() for d in SHEET_DENYLIST}
    denied.update(d.strip().upper() for d in extra)
    return name in denied


def _cell_text(cell: Any) -> str:
    if cell is None:
        return ""
    return str(cell).strip().upper()


def _is_sku_header(text: str) -> bool:
    return any(token in text for token in SKU_TOKENS)


def _is_description_header(text: str) -> bool:
    return any(token in text for token in DESCRIPTION_TOKENS)


def _is_price_header(text: str) -> bool:
    return PRICE_TOKEN in text and not any(ex in text for ex in PRICE_EXCLUSIONS)


def _first_index(headers: Sequence[str], predicate) -> int:
    for idx, text in enumerate(headers):
        if text and predicate(text):
            return idx
    return -1


def _is_header_row(headers: Sequence[str]) -> bool:
    return (
        any(_is_sku_header(h) for h in headers if h)
        and any(_is_description_header(h) for h in headers if h)
        and any(_is_price_header(h) for h in headers if h)
    )


def detect_price_type(price_header: str) -> PriceType | None:
    """Infer the price type from the price column header, None when no signal.

    A cost/retail signal is required; VAT inclusiveness defaults to excl.
    """
    text = price_header.upper()
    incl = any(token in text for token in _INCL_VAT_TOKENS)
    if any(token in text for token in _COST_TOKENS):
        return PriceType.COST_INCL_VAT if incl else PriceType.COST_EXCL_VAT
    if any(token in text for token in _RETAIL_TOKENS):
        return PriceType.RETAIL_INCL_VAT if incl else PriceType.RETAIL_EXCL_VAT
    return None


def resolve(rows: Sequence[Sequence[Any] | None], sheet_name: str) -> SheetStructure:
    """Determine whether a sheet is a product table and where its columns are.

    Args:
        rows: Raw sheet rows (cells untyped, rows of varying length, None = empty)
        sheet_name: Free-text sheet name (carried through, used only as a hint)

    Returns:
        SheetStructure; is_valid False when no product table was recognised
    """
    if len(rows) < MIN_ROWS:
        return SheetStructure.invalid(sheet_name, f"too few rows ({len(rows)} < {MIN_ROWS})")

    for row_index in range(min(HEADER_SCAN_ROWS, len(rows))):
        row = rows[row_index]
        if not row:
            continue
        headers = [_cell_text(c) for c in row]
        if not _is_header_row(headers):
            continue

        sku_idx = _first_index(headers, _is_sku_header)
        desc_idx = _first_index(headers, _is_description_header)
        price_idx = _first_index(headers, _is_price_header)
        if -1 in (sku_idx, desc_idx, price_idx):
            return SheetStructure.invalid(
                sheet_name,
                f"missing required columns: SKU({sku_idx}) DESC({desc_idx}) PRICE({price_idx})",
            )
        if len({sku_idx, desc_idx, price_idx}) < 3:
            # one cell such as "SKU / DESCRIPTION PRICE" cannot be three columns
            continue

        price_type = detect_price_type(headers[price_idx])
        logger.debug(
            "sheet=%s header_row=%d sku=%d desc=%d price=%d price_type=%s",
            sheet_name, row_index, sku_idx, desc_idx, price_idx,
            price_type.value if price_type else None,
        )
        return SheetStructure(
            sheet_name=sheet_name,
            is_valid=True,
            header_row_index=row_index,
            data_start_row=row_index + 1,
            sku_column=sku_idx,
            description_column=desc_idx,
            price_column=price_idx,
            detected_price_type=price_type,
            confidence=HEURISTIC_CONFIDENCE,
        )

    return SheetStructure.invalid(
        sheet_name, f"no header row in first {HEADER_SCAN_ROWS} rows"
    )


def fallback_structure(sheet_name: str, supplier_guess: str | None = None) -> SheetStructure:
    """Low-confidence guess: name in column 0, price in 1, description in 2.

    Only used when AI structure analysis was requested but came back
    inconclusive. Records built from it are flagged for review.
    """
    return SheetStructure(
        sheet_name=sheet_name,
        is_valid=True,
        header_row_index=0,
        data_start_row=1,
        sku_column=0,
        price_column=1,
        description_column=2,
        supplier_guess=supplier_guess,
        confidence=FALLBACK_CONFIDENCE,
        is_fallback=True,
    )

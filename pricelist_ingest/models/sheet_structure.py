from __future__ import annotations

from dataclasses import dataclass

from .price import PriceType

"""SheetStructure model.

Per-sheet descriptor produced by the resolver (heuristic or AI-assisted) and
consumed by row extraction. Computed once per sheet and discarded after the
sheet's rows have been extracted.
"""

__all__ = [
    "SheetStructure",
]

HEURISTIC_CONFIDENCE = 0.9
FALLBACK_CONFIDENCE = 0.6


@dataclass(frozen=True)
class SheetStructure:
    """Where the product table lives inside one sheet.

    When is_valid is False none of the other fields may be consumed.
    """
    sheet_name: str
    is_valid: bool
    header_row_index: int = -1
    data_start_row: int = -1
    sku_column: int = -1  # also used as the name column
    description_column: int = -1
    price_column: int = -1
    category_column: int | None = None
    detected_price_type: PriceType | None = None
    supplier_guess: str | None = None
    confidence: float = 0.0
    is_fallback: bool = False  # hard-coded column guess, flag rows for review
    reason: str | None = None  # why the sheet was rejected (is_valid False)

    @classmethod
    def invalid(cls, sheet_name: str, reason: str) -> SheetStructure:
        return cls(sheet_name=sheet_name, is_valid=False, reason=reason)

    @property
    def required_columns(self) -> tuple[int, int, int]:
        return (self.sku_column, self.description_column, self.price_column)

    @property
    def is_low_confidence(self) -> bool:
        return self.is_fallback or self.confidence < HEURISTIC_CONFIDENCE

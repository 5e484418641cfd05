from __future__ import annotations

from dataclasses import dataclass

"""CandidateRow model.

A (name, price, description) triple recovered from one vendor sheet row or one
oracle-extracted PDF item, validated but not yet priced or classified.
"""

__all__ = [
    "CandidateRow",
]


@dataclass(frozen=True)
class CandidateRow:
    """Accepted product line awaiting pricing and classification."""
    name: str  # "<sku> - <description>" for sheet rows, oracle name for PDF items
    price: float  # observed price, already parsed and > 0
    sku: str | None = None  # SKU / model number, drives the product id
    description: str | None = None
    category_hint: str | None = None  # category column, sheet name or oracle category; kept in processing_notes
    sheet_name: str | None = None  # None for PDF items
    row_number: int = -1  # 0-based sheet row, -1 when unknown (PDF)

    @property
    def identity_key(self) -> str:
        """Text the product id is derived from: the SKU, else the name."""
        return self.sku if self.sku else self.name

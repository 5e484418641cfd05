from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from .price import PriceVector

"""ProductRecord model.

The unit handed to persistence. Created once per accepted row and never mutated
afterwards.
"""

__all__ = [
    "CURRENCY",
    "ProductRecord",
]

CURRENCY = "ZAR"


@dataclass(frozen=True)
class ProductRecord:
    """Priced, classified product ready for upsert by product_id."""
    product_id: str  # PID_<12 hex>, derived from supplier + normalized SKU
    name: str
    category_id: int
    supplier: str
    source_file: str
    prices: PriceVector
    description: str | None = None
    sku: str | None = None
    currency: str = CURRENCY
    confidence: float = 1.0  # structure confidence of the sheet the row came from
    processing_notes: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def needs_review(self) -> bool:
        return self.confidence < 0.9

    def to_dict(self) -> dict[str, Any]:
        """Flat JSON-friendly representation (timestamps as ISO8601)."""
        return {
            "product_id": self.product_id,
            "name": self.name,
            "description": self.description,
            "sku": self.sku,
            "category_id": self.category_id,
            "supplier": self.supplier,
            "source_file": self.source_file,
            "currency": self.currency,
            "confidence": self.confidence,
            "processing_notes": self.processing_notes,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            **self.prices.to_dict(),
        }

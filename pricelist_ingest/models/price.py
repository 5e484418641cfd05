from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any

"""PriceType enum and PriceVector model.

A supplier pricelist quotes exactly one of four quantities per product. PriceType
names which one; PriceVector carries all four once the observed price has been
expanded by the normalizer.
"""

__all__ = [
    "PriceType",
    "PriceVector",
    "UnknownPriceType",
]


class UnknownPriceType(ValueError):
    """Raised when a price type tag is not one of the four known variants."""


class PriceType(Enum):
    """Which cost/retail x excl/incl VAT quantity an observed price represents."""
    RETAIL_INCL_VAT = "retail_incl_vat"
    RETAIL_EXCL_VAT = "retail_excl_vat"
    COST_INCL_VAT = "cost_incl_vat"
    COST_EXCL_VAT = "cost_excl_vat"

    @classmethod
    def parse(cls, value: PriceType | str | None) -> PriceType | None:
        """Resolve a tag to a PriceType.

        Blank or None means "auto-detect" and returns None. Any other value that
        is not a known tag raises UnknownPriceType.
        """
        if value is None or isinstance(value, PriceType):
            return value
        tag = str(value).strip().lower()
        if not tag:
            return None
        try:
            return cls(tag)
        except ValueError as e:
            raise UnknownPriceType(f"unknown price type: {value!r}") from e

    @property
    def is_retail(self) -> bool:
        return self in (PriceType.RETAIL_INCL_VAT, PriceType.RETAIL_EXCL_VAT)

    @property
    def includes_vat(self) -> bool:
        return self in (PriceType.RETAIL_INCL_VAT, PriceType.COST_INCL_VAT)


@dataclass(frozen=True)
class PriceVector:
    """The four canonical prices plus the markup and ground-truth type used.

    incl = excl * 1.15 for both pairs, retail = cost * (1 + markup/100).
    Values are rounded to 2 dp after derivation.
    """
    cost_excl_vat: float
    cost_incl_vat: float
    retail_excl_vat: float
    retail_incl_vat: float
    markup_percentage: float
    detected_price_type: PriceType

    def value_of(self, price_type: PriceType) -> float:
        return getattr(self, price_type.value)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["detected_price_type"] = self.detected_price_type.value
        return data

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from ..models.price import PriceType, PriceVector, UnknownPriceType

"""Price normalization service.

Expands one observed price into the four canonical price variants
(cost/retail x excl/incl VAT) given the price type it represents and a markup
percentage. South African VAT is fixed at 15%.

Derivations use unrounded intermediates; every output is rounded to 2 decimal
places as the final step.
"""

__all__ = [
    "VAT_RATE",
    "normalize",
    "observed_price_of",
]

VAT_RATE = 0.15
_CENT = Decimal("0.01")


def _round2(value: float) -> float:
    # half-up on the decimal text, not banker's rounding on the binary float
    return float(Decimal(str(value)).quantize(_CENT, rounding=ROUND_HALF_UP))


def _resolve_type(price_type: PriceType | str) -> PriceType:
    if isinstance(price_type, PriceType):
        return price_type
    resolved = PriceType.parse(price_type) if isinstance(price_type, str) else None
    if resolved is None:
        raise UnknownPriceType(f"unknown price type: {price_type!r}")
    return resolved


def normalize(
    observed_price: float,
    price_type: PriceType | str,
    markup_percentage: float,
) -> PriceVector:
    """Derive the full price vector from one observed price.

    Args:
        observed_price: Price as quoted by the supplier, must be > 0
        price_type: Which quantity observed_price represents
        markup_percentage: Retail markup over cost, e.g. 30 for 30%, must be >= 0

    Returns:
        PriceVector with every value rounded to 2 dp

    Raises:
        UnknownPriceType: price_type is not one of the four known tags
        ValueError: observed_price <= 0 or markup_percentage < 0
    """
    ptype = _resolve_type(price_type)
    if observed_price is None or observed_price <= 0:
        raise ValueError(f"observed price must be positive, got {observed_price}")
    if markup_percentage < 0:
        raise ValueError(f"markup percentage must be >= 0, got {markup_percentage}")

    price = float(observed_price)
    vat = 1 + VAT_RATE
    markup = 1 + markup_percentage / 100

    if ptype is PriceType.RETAIL_INCL_VAT:
        retail_incl = price
        retail_excl = price / vat
        cost_incl = price / markup
        cost_excl = cost_incl / vat
    elif ptype is PriceType.RETAIL_EXCL_VAT:
        retail_excl = price
        retail_incl = price * vat
        cost_excl = price / markup
        cost_incl = cost_excl * vat
    elif ptype is PriceType.COST_EXCL_VAT:
        cost_excl = price
        cost_incl = price * vat
        retail_excl = cost_excl * markup
        retail_incl = retail_excl * vat
    elif ptype is PriceType.COST_INCL_VAT:
        cost_incl = price
        cost_excl = price / vat
        retail_incl = price * markup
        retail_excl = retail_incl / vat
    else:  # pragma: no cover - enum is exhaustive
        raise UnknownPriceType(f"unknown price type: {ptype!r}")

    return PriceVector(
        cost_excl_vat=_round2(cost_excl),
        cost_incl_vat=_round2(cost_incl),
        retail_excl_vat=_round2(retail_excl),
        retail_incl_vat=_round2(retail_incl),
        markup_percentage=_round2(markup_percentage),
        detected_price_type=ptype,
    )


def observed_price_of(vector: PriceVector) -> float:
    """Return the value the vector was derived from (its ground-truth field)."""
    return vector.value_of(vector.detected_price_type)

from __future__ import annotations

import re

from ..models.config_models import DEFAULT_MARKUP

"""Supplier / category classification and markup estimation.

Pure lookups over free text (file name, sheet name, product name and
description). No I/O and no state.
"""

__all__ = [
    "UNKNOWN_SUPPLIER",
    "DEFAULT_CATEGORY_ID",
    "classify_supplier",
    "classify_category",
    "estimate_markup",
]

UNKNOWN_SUPPLIER = "Unknown Supplier"
_UNKNOWN_HINT = "unknown"

# Ordered: first substring match wins. Brand entries map to the distributor
# that carries the brand.
SUPPLIER_PATTERNS: tuple[tuple[str, str], ...] = (
    ("nology", "Nology"),
    ("av distribution", "AV Distribution"),
    ("av-distribution", "AV Distribution"),
    ("avdistribution", "AV Distribution"),
    ("platinum", "Platinum"),
    ("yealink", "Nology"),
    ("atlona", "AV Distribution"),
    ("audio technica", "Platinum"),
    ("audiotechnica", "Platinum"),
)

COMMUNICATIONS = 1
AUDIO_VIDEO = 2
AUDIO_EQUIPMENT = 3
DEFAULT_CATEGORY_ID = COMMUNICATIONS

# Priority order matters: a Yealink headset is Communications, not Audio.
CATEGORY_RULES: tuple[tuple[re.Pattern[str], int], ...] = (
    (re.compile(r"yealink|phone|headset|communication|voip|pbx", re.I), COMMUNICATIONS),
    (re.compile(r"hdmi|transmitter|video|\bav\b|atlona|broadcast|streaming", re.I), AUDIO_VIDEO),
    (re.compile(r"audio.*technica|headphone|speaker|monitor|microphone|platinum", re.I), AUDIO_EQUIPMENT),
)


def classify_supplier(
    filename: str,
    sheet_name: str,
    product_name: str,
    ai_hint: str | None = None,
) -> str:
    """Resolve the supplier label for a product.

    An AI-detected hint wins outright unless it is blank or "unknown". Otherwise
    the pattern table is tested against "filename sheet product" (lower-cased).
    """
    if ai_hint and ai_hint.strip() and ai_hint.strip().lower() != _UNKNOWN_HINT:
        return ai_hint.strip()

    search_text = f"{filename or ''} {sheet_name or ''} {product_name or ''}".lower()
    for pattern, supplier in SUPPLIER_PATTERNS:
        if pattern in search_text:
            return supplier
    return UNKNOWN_SUPPLIER


def classify_category(name: str, description: str | None = None, supplier: str | None = None) -> int:
    """Map a product to a category id. Unmatched products land in Communications (1)."""
    text = f"{name or ''} {description or ''} {supplier or ''}".lower()
    for pattern, category_id in CATEGORY_RULES:
        if pattern.search(text):
            return category_id
    return DEFAULT_CATEGORY_ID


def estimate_markup(product_name: str, supplier: str | None = None) -> float:
    """Markup estimate used when the uploader does not declare one.

    High-end AV lines carry a lower markup, audio lines a moderate one.
    """
    name = (product_name or "").lower()
    sup = (supplier or "").lower()
    if "atlona" in name or "professional" in name or "av distribution" in sup:
        return 25.0
    if "audio" in name or "technica" in name or "platinum" in sup:
        return 28.0
    return DEFAULT_MARKUP

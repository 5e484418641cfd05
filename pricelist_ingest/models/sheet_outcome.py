from __future__ import annotations

from dataclasses import dataclass

from .sheet_structure import SheetStructure

"""SheetOutcome model.

Result of processing a single vendor sheet: what structure was used, how many
rows were seen, accepted and rejected, and the sheet-level error if any.
"""

__all__ = [
    "SheetOutcome",
]


@dataclass(frozen=True)
class SheetOutcome:
    """Processing unit result for a single sheet."""
    sheet_name: str
    structure: SheetStructure | None = None  # None when skipped by the denylist
    rows_found: int = 0  # non-empty data rows under the header
    rows_accepted: int = 0
    rows_rejected: int = 0
    skipped: bool = False  # denylisted or no recognizable header
    error: str | None = None  # unexpected failure, sheet yielded nothing

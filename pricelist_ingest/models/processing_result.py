from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from .price import PriceType
from .product_record import ProductRecord

"""Processing result models for pricelist ingestion.

ProcessingStats describes the extraction pass (rows found / accepted / rejected / duplicate,
sheets skipped). UploadResult is the summary returned to the uploader even when
the batch only partially succeeded.
"""

MAX_ERRORS = 10  # user-visible error strings are capped


@dataclass(frozen=True)
class ProcessingStats:
    """Extraction statistics for one document."""
    rows_found: int = 0
    rows_accepted: int = 0
    rows_rejected: int = 0
    sheets_processed: int = 0
    sheets_skipped: int = 0
    rows_duplicate: int = 0  # accepted rows sharing a product_id with a later row
    errors: tuple[str, ...] = ()  # at most MAX_ERRORS


@dataclass(frozen=True)
class UploadResult:
    """Summary of one document upload (always returned, even on partial failure)."""
    source_file: str
    total_found: int  # distinct records built from the document
    saved_count: int
    failed_count: int
    price_type: PriceType | None  # declared type, None when auto-detected
    markup_percentage: float | None  # declared markup, None when estimated
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    stats: ProcessingStats = field(default_factory=ProcessingStats)
    errors: tuple[str, ...] = ()  # at most MAX_ERRORS, extraction + persistence
    records: tuple[ProductRecord, ...] = ()

    @property
    def success(self) -> bool:
        return self.saved_count > 0

    @property
    def preview(self) -> tuple[ProductRecord, ...]:
        return self.records[:5]


class StatsAccumulator:
    """Mutable helper collecting counters and capped error strings while a
    document is processed. freeze() produces the immutable ProcessingStats.
    """

    def __init__(self) -> None:
        self.rows_found = 0
        self.rows_accepted = 0
        self.rows_rejected = 0
        self.sheets_processed = 0
        self.sheets_skipped = 0
        self.rows_duplicate = 0
        self.errors: list[str] = []

    def add_error(self, message: str) -> None:
        if len(self.errors) < MAX_ERRORS:
            self.errors.append(message)

    def freeze(self) -> ProcessingStats:
        return ProcessingStats(
            rows_found=self.rows_found,
            rows_accepted=self.rows_accepted,
            rows_rejected=self.rows_rejected,
            sheets_processed=self.sheets_processed,
            sheets_skipped=self.sheets_skipped,
            rows_duplicate=self.rows_duplicate,
            errors=tuple(self.errors),
        )


def cap_errors(*groups: tuple[str, ...] | list[str]) -> tuple[str, ...]:
    """Concatenate error groups in order, keeping at most MAX_ERRORS."""
    merged: list[str] = []
    for group in groups:
        merged.extend(group)
    return tuple(merged[:MAX_ERRORS])

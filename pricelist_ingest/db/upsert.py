from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

import psycopg2
from psycopg2.extras import execute_values

from ..models.product_record import ProductRecord

"""Product upsert into the central pricelist table.

Canonical persistence policy: INSERT ... ON CONFLICT (product_id) DO UPDATE.
product_id is derived deterministically from supplier + SKU, so uploading the
same pricelist twice updates rows in place instead of duplicating them.

Fast path: the whole batch in one execute_values call inside a savepoint. If the
batch is rejected the savepoint is rolled back and every record is retried in
its own savepoint, so one bad record (constraint violation, bad value) is
counted and reported without aborting the rest.
"""

logger = logging.getLogger(__name__)

# created_at is only written on first insert
COLUMNS: tuple[str, ...] = (
    "product_id",
    "name",
    "description",
    "category_id",
    "supplier",
    "source_file",
    "price",
    "price_type",
    "original_price",
    "cost_excl_vat",
    "cost_incl_vat",
    "retail_excl_vat",
    "retail_incl_vat",
    "markup_percentage",
    "ai_confidence",
    "processing_notes",
    "currency",
    "created_at",
    "updated_at",
)
_NOT_UPDATED = {"product_id", "created_at"}


class UpsertError(Exception):
    pass


@dataclass(frozen=True)
class UpsertMetrics:
    """Timing for a single upsert pass."""
    batch_size: int
    elapsed_seconds: float
    per_record: bool  # True when the batch fell back to record-by-record


@dataclass(frozen=True)
class UpsertResult:
    saved: int
    failed: int
    errors: list[tuple[str, str]] = field(default_factory=list)  # (product name, db message)


def record_to_row(record: ProductRecord) -> tuple[Any, ...]:
    """Flatten a ProductRecord into COLUMNS order."""
    prices = record.prices
    values = {
        "product_id": record.product_id,
        "name": record.name,
        "description": record.description,
        "category_id": record.category_id,
        "supplier": record.supplier,
        "source_file": record.source_file,
        "price": prices.retail_excl_vat,  # display price
        "price_type": prices.detected_price_type.value,
        "original_price": prices.value_of(prices.detected_price_type),
        "cost_excl_vat": prices.cost_excl_vat,
        "cost_incl_vat": prices.cost_incl_vat,
        "retail_excl_vat": prices.retail_excl_vat,
        "retail_incl_vat": prices.retail_incl_vat,
        "markup_percentage": prices.markup_percentage,
        "ai_confidence": record.confidence,
        "processing_notes": record.processing_notes,
        "currency": record.currency,
        "created_at": record.created_at,
        "updated_at": record.updated_at,
    }
    return tuple(values[c] for c in COLUMNS)


def _upsert_sql(table: str, values_clause: str) -> str:
    cols_sql = ",".join(f'"{c}"' for c in COLUMNS)
    updates = ",".join(f'"{c}"=EXCLUDED."{c}"' for c in COLUMNS if c not in _NOT_UPDATED)
    return (
        f"INSERT INTO {table} ({cols_sql}) VALUES {values_clause} "
        f'ON CONFLICT ("product_id") DO UPDATE SET {updates}'
    )


def _execute(cursor: Any, sql: str) -> None:
    try:
        cursor.execute(sql)
    except psycopg2.Error as e:
        raise UpsertError(f"{sql.split()[0].lower()} failed: {e}") from e


def upsert_products(
    cursor: Any,
    records: Iterable[ProductRecord],
    table: str = "central_pricelist",
    page_size: int = 500,
    metrics_callback: Callable[[UpsertMetrics], None] | None = None,
) -> UpsertResult:
    """Upsert records keyed by product_id.

    Parameters
    ----------
    cursor: psycopg2 cursor; the caller owns the surrounding transaction
    records: records to persist
    table: target table (validated by the config schema)
    page_size: execute_values page size
    metrics_callback: optional receiver of UpsertMetrics

    Returns UpsertResult; per-record failures are reported, not raised.
    Raises UpsertError only when savepoint handling itself fails.
    """
    record_list: Sequence[ProductRecord] = list(records)
    if not record_list:
        return UpsertResult(saved=0, failed=0)

    rows = [record_to_row(r) for r in record_list]
    start = time.time()

    _execute(cursor, "SAVEPOINT pricelist_batch")
    try:
        execute_values(cursor, _upsert_sql(table, "%s"), rows, page_size=page_size)
    except psycopg2.Error as e:
        logger.warning("batch upsert rejected (%s), retrying record by record", e)
        _execute(cursor, "ROLLBACK TO SAVEPOINT pricelist_batch")
    else:
        _execute(cursor, "RELEASE SAVEPOINT pricelist_batch")
        if metrics_callback is not None:
            metrics_callback(UpsertMetrics(len(rows), time.time() - start, per_record=False))
        return UpsertResult(saved=len(rows), failed=0)

    single_sql = _upsert_sql(table, "(" + ",".join(["%s"] * len(COLUMNS)) + ")")
    saved = 0
    errors: list[tuple[str, str]] = []
    for record, row in zip(record_list, rows, strict=True):
        _execute(cursor, "SAVEPOINT pricelist_row")
        try:
            cursor.execute(single_sql, row)
        except psycopg2.Error as e:
            _execute(cursor, "ROLLBACK TO SAVEPOINT pricelist_row")
            message = str(e).strip().splitlines()[0] if str(e).strip() else type(e).__name__
            logger.warning("upsert failed product=%s: %s", record.name, message)
            errors.append((record.name, message))
            continue
        _execute(cursor, "RELEASE SAVEPOINT pricelist_row")
        saved += 1

    if metrics_callback is not None:
        metrics_callback(UpsertMetrics(len(rows), time.time() - start, per_record=True))
    return UpsertResult(saved=saved, failed=len(errors), errors=errors)

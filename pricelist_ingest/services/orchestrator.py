from __future__ import annotations

import hashlib
import logging
import re
import uuid
from collections.abc import Mapping, Sequence
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from ..db.upsert import UpsertError, upsert_products
from ..excel.reader import SUPPORTED_SUFFIXES, WorkbookReadError, read_workbook
from ..logging.error_log import ErrorLogBuffer
from ..models.candidate_row import CandidateRow
from ..models.config_models import IngestConfig, UploadConfig
from ..models.price import PriceType
from ..models.processing_result import StatsAccumulator, UploadResult, cap_errors
from ..models.product_record import ProductRecord
from ..models.sheet_outcome import SheetOutcome
from ..models.sheet_structure import SheetStructure
from ..models.upload_status import UploadState, UploadStatus
from ..pdf.reader import PdfReadError, read_pdf_text
from .classifier import UNKNOWN_SUPPLIER, classify_category, classify_supplier, estimate_markup
from .extraction import Extraction, extract_candidates, validate_oracle_candidates
from .normalizer import normalize
from .oracle import OracleError, StructureAnalyzer, TextExtractor, TextOracle, build_oracle
from .progress import SheetProgress
from .resolver import MIN_ROWS, is_denylisted_sheet, resolve
from .status_store import StatusStore

"""Document ingestion pipeline.

Workbook path: for every sheet, denylist check -> structure resolution
(heuristic, optionally AI-assisted) -> row extraction -> pricing ->
classification -> ProductRecord. A failing sheet is recorded and skipped; the
rest of the workbook continues.

PDF path: extracted text -> oracle -> validated candidates -> same pricing and
classification. Oracle failure is fatal for the document.

process_document ties both paths to persistence and status tracking and always
returns an UploadResult once the document has been read.
"""

__all__ = [
    "ProcessingError",
    "PDF_SUFFIX",
    "make_product_id",
    "build_record",
    "ingest_workbook",
    "ingest_pdf_text",
    "process_document",
]

logger = logging.getLogger(__name__)

PDF_SUFFIX = ".pdf"
DEFAULT_PRICE_TYPE = PriceType.RETAIL_EXCL_VAT
DOCUMENT_SHEET = "<DOCUMENT>"
PDF_SHEET = "<PDF>"

_WS = re.compile(r"\s+")


class ProcessingError(Exception):
    """Fatal error for one document (unreadable file, oracle failure, bad declaration)."""


def make_product_id(supplier: str, sku: str) -> str:
    """Deterministic id so a re-upload of the same product updates in place."""
    normalized = _WS.sub(" ", (sku or "").strip()).upper()
    digest = hashlib.sha1(f"{(supplier or '').strip().lower()}|{normalized}".encode()).hexdigest()
    return f"PID_{digest[:12].upper()}"


def _resolve_price_type(upload: UploadConfig, detected: PriceType | None) -> PriceType:
    if upload.price_type is not None:
        return upload.price_type
    return detected or DEFAULT_PRICE_TYPE


def _resolve_supplier(candidate: CandidateRow, upload: UploadConfig, source_file: str, ai_hint: str | None) -> str:
    supplier = classify_supplier(source_file, candidate.sheet_name or "", candidate.name, ai_hint=ai_hint)
    if supplier == UNKNOWN_SUPPLIER:
        return upload.supplier_name.strip()
    return supplier


def build_record(
    candidate: CandidateRow,
    upload: UploadConfig,
    source_file: str,
    detected_price_type: PriceType | None = None,
    supplier_hint: str | None = None,
    confidence: float = 1.0,
    low_confidence: bool = False,
    now: datetime | None = None,
) -> ProductRecord:
    """Price and classify one accepted candidate.

    Raises:
        ValueError: the candidate price cannot be normalized
    """
    supplier = _resolve_supplier(candidate, upload, source_file, supplier_hint)
    price_type = _resolve_price_type(upload, detected_price_type)
    if upload.markup_percentage is not None:
        markup = upload.markup_percentage
    else:
        markup = estimate_markup(candidate.name, supplier)
    prices = normalize(candidate.price, price_type, markup)

    notes = [f"price_type={price_type.value}", f"markup={markup:g}"]
    if candidate.sheet_name:
        notes.append(f"sheet={candidate.sheet_name}")
    if candidate.category_hint and candidate.category_hint != candidate.sheet_name:
        notes.append(f"category={candidate.category_hint}")
    if low_confidence:
        notes.append("low-confidence structure, review")

    ts = now or datetime.now(UTC)
    return ProductRecord(
        product_id=make_product_id(supplier, candidate.identity_key),
        name=candidate.name,
        category_id=classify_category(candidate.name, candidate.description, supplier),
        supplier=supplier,
        source_file=source_file,
        prices=prices,
        description=candidate.description,
        sku=candidate.sku,
        confidence=confidence,
        processing_notes="; ".join(notes),
        created_at=ts,
        updated_at=ts,
    )


def _records_from(
    extraction: Extraction,
    upload: UploadConfig,
    source_file: str,
    error_log: ErrorLogBuffer,
    sheet_label: str,
    structure: SheetStructure | None = None,
) -> list[ProductRecord]:
    records = []
    for candidate in extraction.candidates:
        try:
            record = build_record(
                candidate,
                upload,
                source_file,
                detected_price_type=structure.detected_price_type if structure else None,
                supplier_hint=structure.supplier_guess if structure else None,
                confidence=structure.confidence if structure else 1.0,
                low_confidence=structure.is_low_confidence if structure else False,
            )
        except ValueError as e:
            error_log.record(source_file, sheet_label, candidate.row_number, "PRICING_ERROR", str(e))
            continue
        records.append(record)
    return records


def _structure_for(
    rows: Sequence[Sequence[Any] | None],
    sheet_name: str,
    analyzer: StructureAnalyzer | None,
) -> SheetStructure:
    structure = resolve(rows, sheet_name)
    if structure.is_valid or analyzer is None or len(rows) < MIN_ROWS:
        return structure
    logger.info("sheet=%s heuristic rejected (%s), asking oracle", sheet_name, structure.reason)
    return analyzer.analyze(rows, sheet_name)


def _process_sheet(
    sheet_name: str,
    rows: Sequence[Sequence[Any] | None],
    upload: UploadConfig,
    source_file: str,
    error_log: ErrorLogBuffer,
    analyzer: StructureAnalyzer | None,
) -> tuple[SheetOutcome, list[ProductRecord]]:
    structure = _structure_for(rows, sheet_name, analyzer)
    if not structure.is_valid:
        logger.info("sheet=%s skipped: %s", sheet_name, structure.reason)
        return SheetOutcome(sheet_name=sheet_name, structure=structure, skipped=True), []

    extraction = extract_candidates(rows, structure)
    records = _records_from(extraction, upload, source_file, error_log, sheet_name, structure)
    outcome = SheetOutcome(
        sheet_name=sheet_name,
        structure=structure,
        rows_found=extraction.rows_found,
        rows_accepted=len(records),
        rows_rejected=extraction.rows_rejected,
    )
    logger.info(
        "sheet=%s found=%d accepted=%d rejected=%d confidence=%.2f",
        sheet_name, outcome.rows_found, outcome.rows_accepted, outcome.rows_rejected, structure.confidence,
    )
    return outcome, records


def ingest_workbook(
    sheets: Mapping[str, Sequence[Sequence[Any] | None]],
    upload: UploadConfig,
    source_file: str,
    config: IngestConfig | None = None,
    error_log: ErrorLogBuffer | None = None,
    analyzer: StructureAnalyzer | None = None,
) -> tuple[list[ProductRecord], StatsAccumulator]:
    """Turn every usable sheet of a workbook into product records.

    Sheets are processed in workbook order. Denylisted sheets and sheets with
    no recognizable product table count as skipped. An unexpected failure on one
    sheet is logged and recorded; the other sheets still contribute.
    """
    config = config or IngestConfig()
    error_log = error_log if error_log is not None else ErrorLogBuffer()
    stats = StatsAccumulator()
    records: list[ProductRecord] = []

    with SheetProgress(source_file, len(sheets)) as progress:
        for sheet_name, rows in sheets.items():
            progress.start_sheet(sheet_name)
            if is_denylisted_sheet(sheet_name, config.extra_sheet_denylist):
                logger.info("sheet=%s skipped: denylisted", sheet_name)
                stats.sheets_skipped += 1
                progress.finish_sheet(len(records))
                continue
            try:
                outcome, sheet_records = _process_sheet(
                    sheet_name, rows, upload, source_file, error_log, analyzer
                )
            except Exception as e:
                logger.error("sheet=%s failed: %s", sheet_name, e, exc_info=True)
                error_log.record(source_file, sheet_name, -1, "SHEET_ERROR", str(e))
                stats.add_error(f"Sheet {sheet_name}: {e}")
                stats.sheets_skipped += 1
                progress.finish_sheet(len(records))
                continue

            if outcome.skipped:
                stats.sheets_skipped += 1
            else:
                stats.sheets_processed += 1
            stats.rows_found += outcome.rows_found
            stats.rows_accepted += outcome.rows_accepted
            stats.rows_rejected += outcome.rows_rejected
            records.extend(sheet_records)
            progress.finish_sheet(len(records))

    return records, stats


def ingest_pdf_text(
    text: str,
    upload: UploadConfig,
    extractor: TextExtractor,
    source_file: str,
    error_log: ErrorLogBuffer | None = None,
) -> tuple[list[ProductRecord], StatsAccumulator]:
    """Extract products from PDF text through the oracle.

    Raises:
        ProcessingError: the oracle call failed or returned no product array
    """
    error_log = error_log if error_log is not None else ErrorLogBuffer()
    stats = StatsAccumulator()
    if not text or not text.strip():
        raise ProcessingError(f"{source_file}: no extractable text in PDF")
    try:
        items = extractor.extract(text, upload)
    except OracleError as e:
        raise ProcessingError(f"{source_file}: product extraction failed: {e}") from e

    extraction = validate_oracle_candidates(items)
    for row, reason in extraction.rejections:
        logger.debug("pdf item=%d rejected: %s", row, reason)
    records = _records_from(extraction, upload, source_file, error_log, PDF_SHEET)

    stats.sheets_processed = 1
    stats.rows_found = extraction.rows_found
    stats.rows_accepted = len(records)
    stats.rows_rejected = extraction.rows_rejected
    logger.info(
        "pdf=%s items=%d accepted=%d rejected=%d",
        source_file, stats.rows_found, stats.rows_accepted, stats.rows_rejected,
    )
    return records, stats


def _drop_duplicate_ids(records: list[ProductRecord]) -> tuple[list[ProductRecord], int]:
    """Keep one record per product_id, the last one seen, at its first position.

    ON CONFLICT DO UPDATE may touch each key at most once per statement.
    """
    unique: dict[str, ProductRecord] = {}
    for record in records:
        if record.product_id in unique:
            logger.warning("duplicate product_id=%s (%s), keeping the later row", record.product_id, record.name)
        unique[record.product_id] = record
    return list(unique.values()), len(records) - len(unique)


def _persist(
    cursor: Any,
    records: list[ProductRecord],
    config: IngestConfig,
    source_file: str,
    error_log: ErrorLogBuffer,
) -> tuple[int, int, list[str]]:
    if not records:
        return 0, 0, []
    if cursor is None:
        logger.info("mock mode: %d records not written", len(records))
        return len(records), 0, []
    try:
        result = upsert_products(cursor, records, table=config.table)
    except UpsertError as e:
        logger.error("file=%s persistence aborted: %s", source_file, e)
        error_log.record(source_file, DOCUMENT_SHEET, -1, "UPSERT_ERROR", str(e))
        return 0, len(records), [f"Database error: {e}"]
    messages = []
    for name, message in result.errors:
        error_log.record(source_file, DOCUMENT_SHEET, -1, "UPSERT_ERROR", f"{name}: {message}")
        messages.append(f"Failed to save {name}: {message}")
    return result.saved, result.failed, messages


def _put_status(store: StatusStore | None, upload_id: str, status: UploadStatus) -> UploadStatus:
    if store is not None:
        store.put(upload_id, status)
    return status


def _read_document(
    path: Path,
    upload: UploadConfig,
    config: IngestConfig,
    error_log: ErrorLogBuffer,
    oracle: TextOracle | None,
) -> tuple[list[ProductRecord], StatsAccumulator]:
    suffix = path.suffix.lower()
    if suffix in SUPPORTED_SUFFIXES:
        try:
            sheets = read_workbook(path)
        except WorkbookReadError as e:
            raise ProcessingError(str(e)) from e
        analyzer = None
        if config.ai_structure_enabled:
            analyzer = StructureAnalyzer(oracle or _oracle_for(upload, config))
        return ingest_workbook(sheets, upload, path.name, config, error_log, analyzer)

    if suffix == PDF_SUFFIX:
        try:
            text = read_pdf_text(path)
        except PdfReadError as e:
            raise ProcessingError(str(e)) from e
        extractor = TextExtractor(oracle or _oracle_for(upload, config))
        return ingest_pdf_text(text, upload, extractor, path.name, error_log)

    raise ProcessingError(f"unsupported file type: {path.suffix or path.name}")


def _oracle_for(upload: UploadConfig, config: IngestConfig) -> TextOracle:
    try:
        return build_oracle(upload.ai_provider, config.oracle)
    except OracleError as e:
        raise ProcessingError(f"oracle unavailable: {e}") from e


def process_document(
    path: Path,
    upload: UploadConfig,
    config: IngestConfig | None = None,
    cursor: Any = None,
    status_store: StatusStore | None = None,
    oracle: TextOracle | None = None,
    upload_id: str | None = None,
    error_log: ErrorLogBuffer | None = None,
) -> UploadResult:
    """Ingest one uploaded pricelist and persist the resulting records.

    Args:
        path: .xlsx / .xls workbook or .pdf document
        upload: uploader declarations (supplier, price type, markup, provider)
        config: tool configuration (table, oracle settings, denylist)
        cursor: psycopg2 cursor; None runs in mock mode (nothing written)
        status_store: receives UploadStatus snapshots keyed by upload_id
        oracle: text oracle override; built from upload.ai_provider when needed
        upload_id: status key, generated when omitted
        error_log: JSON lines buffer; the caller flushes it

    Returns:
        UploadResult, also for partially successful batches

    Raises:
        ProcessingError: the document could not be read or extracted at all
    """
    config = config or IngestConfig()
    error_log = error_log if error_log is not None else ErrorLogBuffer(config.error_log_dir)
    upload_id = upload_id or uuid.uuid4().hex
    path = Path(path)
    start_time = datetime.now(UTC)

    status = _put_status(
        status_store,
        upload_id,
        UploadStatus(upload_id=upload_id, filename=path.name, started_at=start_time),
    )

    try:
        records, stats = _read_document(path, upload, config, error_log, oracle)
    except ProcessingError as e:
        error_log.record(path.name, DOCUMENT_SHEET, -1, "DOCUMENT_ERROR", str(e))
        _put_status(
            status_store,
            upload_id,
            status.advance(state=UploadState.ERROR, error=str(e), finished_at=datetime.now(UTC)),
        )
        raise

    records, stats.rows_duplicate = _drop_duplicate_ids(records)
    status = _put_status(status_store, upload_id, status.advance(total_products=len(records)))
    saved, failed, persist_errors = _persist(cursor, records, config, path.name, error_log)

    end_time = datetime.now(UTC)
    _put_status(
        status_store,
        upload_id,
        status.advance(
            state=UploadState.DONE,
            products_processed=saved + failed,
            finished_at=end_time,
        ),
    )

    frozen = stats.freeze()
    return UploadResult(
        source_file=path.name,
        total_found=len(records),
        saved_count=saved,
        failed_count=failed,
        price_type=upload.price_type,
        markup_percentage=upload.markup_percentage,
        start_time=start_time,
        end_time=end_time,
        elapsed_seconds=(end_time - start_time).total_seconds(),
        stats=frozen,
        errors=cap_errors(frozen.errors, persist_errors),
        records=tuple(records),
    )

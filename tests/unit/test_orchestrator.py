from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from pricelist_ingest.logging.error_log import ErrorLogBuffer
from pricelist_ingest.models.candidate_row import CandidateRow
from pricelist_ingest.models.config_models import IngestConfig, UploadConfig
from pricelist_ingest.models.price import PriceType, UnknownPriceType
from pricelist_ingest.models.upload_status import UploadState
from pricelist_ingest.services.oracle import StructureAnalyzer, TextExtractor
from pricelist_ingest.services.orchestrator import (
    ProcessingError,
    build_record,
    ingest_pdf_text,
    ingest_workbook,
    make_product_id,
    process_document,
)
from pricelist_ingest.services.resolver import resolve as real_resolve
from pricelist_ingest.services.status_store import InMemoryStatusStore


def test_make_product_id_is_deterministic():
    pid = make_product_id("Nology", "T21P")
    assert pid.startswith("PID_")
    assert len(pid) == 16
    assert pid == pid.upper()
    assert make_product_id("NOLOGY ", " t21p") == pid
    assert make_product_id("Nology", "T21  P") == make_product_id("Nology", "T21 P")
    assert make_product_id("Platinum", "T21P") != pid


def test_build_record_priority_and_notes():
    candidate = CandidateRow(name="T21P - Yealink phone", price=950.0, sku="T21P", sheet_name="Phones", category_hint="Phones")
    upload = UploadConfig(supplier_name="Whoever")
    rec = build_record(candidate, upload, "march.xlsx", detected_price_type=PriceType.COST_EXCL_VAT)
    assert rec.supplier == "Nology"  # brand association beats the declared name
    assert rec.prices.detected_price_type is PriceType.COST_EXCL_VAT
    assert rec.prices.markup_percentage == 30
    assert rec.prices.retail_excl_vat == 1235.0
    assert rec.category_id == 1
    assert rec.currency == "ZAR"
    assert rec.created_at == rec.updated_at
    assert "price_type=cost_excl_vat" in rec.processing_notes
    assert "sheet=Phones" in rec.processing_notes
    assert "category=" not in rec.processing_notes  # hint equal to the sheet name adds nothing


def test_build_record_keeps_category_hint_in_notes():
    candidate = CandidateRow(
        name="C1 - Patch lead 1m", price=25.0, sku="C1", category_hint="Cabling", sheet_name="Sheet1"
    )
    rec = build_record(candidate, UploadConfig(supplier_name="Acme"), "acme.xlsx")
    assert "sheet=Sheet1" in rec.processing_notes
    assert "category=Cabling" in rec.processing_notes


def test_build_record_user_overrides():
    candidate = CandidateRow(name="Widget", price=100.0)
    upload = UploadConfig(supplier_name="Acme", price_type="retail_incl_vat", markup_percentage=0)
    rec = build_record(candidate, upload, "acme.xlsx", detected_price_type=PriceType.COST_EXCL_VAT)
    assert rec.supplier == "Acme"  # unknown supplier -> declared name
    assert rec.prices.detected_price_type is PriceType.RETAIL_INCL_VAT
    assert rec.prices.markup_percentage == 0
    assert rec.product_id == make_product_id("Acme", "Widget")


def test_build_record_default_price_type_and_review_note():
    rec = build_record(
        CandidateRow(name="Widget", price=10.0), UploadConfig(supplier_name="Acme"), "a.xlsx",
        confidence=0.6, low_confidence=True,
    )
    assert rec.prices.detected_price_type is PriceType.RETAIL_EXCL_VAT
    assert rec.needs_review
    assert "review" in rec.processing_notes


def test_upload_config_rejects_unknown_price_type():
    with pytest.raises(UnknownPriceType):
        UploadConfig(supplier_name="Acme", price_type="wholesale")


@pytest.mark.parametrize(
    "kwargs",
    [
        {"supplier_name": "  "},
        {"supplier_name": "Acme", "markup_percentage": -1},
        {"supplier_name": "Acme", "ai_provider": "mistral"},
    ],
)
def test_upload_config_validation(kwargs):
    with pytest.raises(ValueError):
        UploadConfig(**kwargs)


def test_ingest_workbook_counts_and_denylist(product_sheet):
    sheets = {
        "Promotions": product_sheet,
        "Phones": product_sheet,
        "Notes": product_sheet,
        "Cover": [["Welcome"]],
    }
    log = ErrorLogBuffer()
    records, stats = ingest_workbook(
        sheets, UploadConfig(supplier_name="Nology"), "nology.xlsx",
        IngestConfig(extra_sheet_denylist=("Notes",)), log,
    )
    assert [r.name for r in records] == [
        "T21P - Yealink entry level IP phone",
        "T46U - Yealink colour screen IP phone",
    ]
    assert stats.sheets_skipped == 3
    assert stats.sheets_processed == 1
    assert (stats.rows_found, stats.rows_accepted, stats.rows_rejected) == (4, 2, 2)
    assert all(r.prices.detected_price_type is PriceType.COST_EXCL_VAT for r in records)
    assert len(log) == 0


def test_ingest_workbook_sheet_failure_is_isolated(product_sheet):
    log = ErrorLogBuffer()
    def flaky_resolve(rows, sheet_name):
        if sheet_name == "Broken":
            raise RuntimeError("merged cells confused the reader")
        return real_resolve(rows, sheet_name)

    with patch("pricelist_ingest.services.orchestrator.resolve", side_effect=flaky_resolve):
        records, stats = ingest_workbook(
            {"Broken": product_sheet, "Phones": product_sheet},
            UploadConfig(supplier_name="Nology"), "nology.xlsx", error_log=log,
        )
    assert len(records) == 2
    assert stats.sheets_skipped == 1
    assert stats.errors == ["Sheet Broken: merged cells confused the reader"]
    assert log.records[0].error_type == "SHEET_ERROR"


def test_ingest_workbook_ai_analyzer_only_for_rejected_sheets(fake_oracle_cls, product_sheet):
    odd = [
        ["Item", "Cost", "Notes"],
        ["Widget", 10, "Blue widget thing"],
        ["Gadget", 20, "Red gadget thing"],
        ["Gizmo", 30, "Green gizmo thing"],
    ]
    oracle = fake_oracle_cls("not json at all")
    records, stats = ingest_workbook(
        {"Phones": product_sheet, "Odd": odd, "Tiny": [["a"]]},
        UploadConfig(supplier_name="Acme"), "acme.xlsx",
        analyzer=StructureAnalyzer(oracle),
    )
    assert len(oracle.prompts) == 1  # Tiny has too few rows to analyze
    odd_records = [r for r in records if "Odd" in r.processing_notes]
    assert len(odd_records) == 3
    assert all(r.needs_review for r in odd_records)
    assert odd_records[0].supplier == "Acme"
    assert stats.sheets_processed == 2
    assert stats.sheets_skipped == 1


def test_ingest_pdf_text(fake_oracle_cls):
    oracle = fake_oracle_cls(
        'Products:\n[{"name": "Yealink T21P IP Phone", "price": 950, "model_number": "T21P"},'
        ' {"name": "Mystery", "price": "POA"}]'
    )
    records, stats = ingest_pdf_text(
        "some text", UploadConfig(supplier_name="Acme"), TextExtractor(oracle), "list.pdf"
    )
    assert len(records) == 1
    assert records[0].supplier == "Nology"
    assert records[0].sku == "T21P"
    assert (stats.rows_found, stats.rows_rejected) == (2, 1)


def test_ingest_pdf_text_oracle_failure_is_fatal(fake_oracle_cls):
    from pricelist_ingest.services.oracle import OracleError

    with pytest.raises(ProcessingError) as exc_info:
        ingest_pdf_text(
            "text", UploadConfig(supplier_name="Acme"),
            TextExtractor(fake_oracle_cls(OracleError("rate limited"))), "list.pdf",
        )
    assert isinstance(exc_info.value.__cause__, OracleError)


def test_ingest_pdf_text_without_array_is_fatal(fake_oracle_cls):
    with pytest.raises(ProcessingError):
        ingest_pdf_text(
            "text", UploadConfig(supplier_name="Acme"),
            TextExtractor(fake_oracle_cls("I could not find products")), "list.pdf",
        )


def test_process_document_unsupported_type(temp_workdir: Path):
    p = temp_workdir / "data" / "prices.docx"
    p.write_bytes(b"x")
    store = InMemoryStatusStore()
    with pytest.raises(ProcessingError, match="unsupported file type"):
        process_document(p, UploadConfig(supplier_name="Acme"), status_store=store, upload_id="u1")
    status = store.get("u1")
    assert status.state is UploadState.ERROR
    assert "unsupported" in status.error


def test_process_document_mock_mode(make_workbook, product_sheet):
    path = make_workbook("nology.xlsx", {"Phones": product_sheet})
    store = InMemoryStatusStore()
    result = process_document(path, UploadConfig(supplier_name="Nology"), status_store=store, upload_id="u1")
    assert result.total_found == 2
    assert result.saved_count == 2
    assert result.failed_count == 0
    assert result.success
    status = store.get("u1")
    assert status.state is UploadState.DONE
    assert status.products_processed == 2
    assert status.progress == 100


def test_process_document_same_sku_on_two_sheets_kept_once(make_workbook):
    header = ["SKU", "Description", "Price"]
    path = make_workbook(
        "acme.xlsx",
        {
            "Cables": [["Acme cables"], header, ["C1", "Patch lead 1m", 25], ["C2", "Patch lead 2m", 35]],
            "Outlet": [["Acme outlet"], header, ["C1", "Patch lead 1m promo", 20], ["K9", "Keystone jack", 12]],
        },
    )
    result = process_document(path, UploadConfig(supplier_name="Acme"))
    assert result.stats.rows_accepted == 4
    assert result.stats.rows_duplicate == 1
    assert result.total_found == 3
    assert result.saved_count == 3
    by_sku = {r.sku: r for r in result.records}
    assert by_sku["C1"].prices.retail_excl_vat == 20.0  # the later sheet wins
    assert [r.sku for r in result.records] == ["C1", "C2", "K9"]

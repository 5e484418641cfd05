from __future__ import annotations

from pathlib import Path

import pandas as pd
import pytest

from pricelist_ingest.excel.reader import WorkbookReadError, dataframe_to_rows, read_workbook


def test_dataframe_to_rows_trims_and_maps_nan():
    df = pd.DataFrame([["a", None, 1.5, None], [None, None, None, None], ["NA", "b", None, "c"]])
    assert dataframe_to_rows(df) == [["a", None, 1.5], [], ["NA", "b", None, "c"]]


def test_read_workbook_keeps_sheet_order(make_workbook, product_sheet):
    path = make_workbook("nology.xlsx", {"Phones": product_sheet, "Promotions": [["x"]], "Cables": [["y", 1]]})
    sheets = read_workbook(path)
    assert list(sheets) == ["Phones", "Promotions", "Cables"]
    phones = sheets["Phones"]
    assert phones[1] == ["SKU", "Description", "Dealer Price"]
    assert phones[2][0] == "T21P"
    assert phones[2][2] == 950
    assert phones[3] == ["CATEGORY", "NETWORKING"]


def test_read_workbook_target_sheets(make_workbook, product_sheet):
    path = make_workbook("n.xlsx", {"Phones": product_sheet, "Other": [["x"]]})
    assert list(read_workbook(path, target_sheets=["Other"])) == ["Other"]


def test_na_strings_stay_text(make_workbook):
    path = make_workbook("n.xlsx", {"S": [["SKU", "Description", "Price"], ["N/A", "NA", 1]]})
    assert read_workbook(path)["S"][1] == ["N/A", "NA", 1]


def test_unsupported_suffix(temp_workdir: Path):
    with pytest.raises(WorkbookReadError, match="unsupported"):
        read_workbook(temp_workdir / "prices.ods")


def test_corrupt_workbook(temp_workdir: Path):
    p = temp_workdir / "data" / "broken.xlsx"
    p.write_bytes(b"not a zip")
    with pytest.raises(WorkbookReadError, match="cannot open"):
        read_workbook(p)

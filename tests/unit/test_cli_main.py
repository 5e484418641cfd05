from __future__ import annotations

import json
from pathlib import Path

import pandas as pd
import pytest

from pricelist_ingest.cli.__main__ import EXIT_FATAL, EXIT_PARTIAL_FAILURE, EXIT_SUCCESS_ALL, _dsn, main
from pricelist_ingest.models.config_models import DatabaseConfig, IngestConfig


@pytest.fixture(autouse=True)
def _mock_db(monkeypatch):
    monkeypatch.setenv("DISABLE_DB_CONNECT", "1")


def test_cli_success(write_config, make_workbook, product_sheet, capsys):
    path = make_workbook("nology.xlsx", {"Phones": product_sheet, "Promotions": product_sheet})
    code = main([str(path), "--supplier", "Nology"])
    out = capsys.readouterr().out
    assert code == EXIT_SUCCESS_ALL
    assert "SUMMARY file=nology.xlsx found=2 saved=2 failed=0 rejected=2 skipped_sheets=1" in out
    assert "INFO preview PID_" in out


def test_cli_nothing_found_is_partial(write_config, make_workbook):
    path = make_workbook("empty.xlsx", {"Cover": [["Welcome"]]})
    assert main([str(path), "--supplier", "Acme"]) == EXIT_PARTIAL_FAILURE


def test_cli_unknown_price_type_is_fatal(write_config, make_workbook, product_sheet, capsys):
    path = make_workbook("nology.xlsx", {"Phones": product_sheet})
    code = main([str(path), "--supplier", "Nology", "--price-type", "wholesale"])
    assert code == EXIT_FATAL
    assert "ERROR upload: unknown price type" in capsys.readouterr().out


def test_cli_missing_config(temp_workdir: Path, capsys):
    code = main(["x.xlsx", "--supplier", "Acme"])
    assert code == EXIT_FATAL
    assert "ERROR config:" in capsys.readouterr().out


def test_cli_missing_file(write_config, capsys):
    assert main(["data/nope.xlsx", "--supplier", "Acme"]) == EXIT_FATAL
    assert "file not found" in capsys.readouterr().out


def test_cli_unsupported_file_writes_error_log(write_config, temp_workdir: Path):
    p = temp_workdir / "data" / "prices.txt"
    p.write_text("hello", encoding="utf-8")
    assert main([str(p), "--supplier", "Acme"]) == EXIT_FATAL
    logs = list((temp_workdir / "logs").glob("errors-*.log"))
    assert len(logs) == 1
    entry = json.loads(logs[0].read_text(encoding="utf-8").splitlines()[0])
    assert entry["error_type"] == "DOCUMENT_ERROR"


def test_cli_export_and_overrides(write_config, make_workbook, product_sheet, temp_workdir: Path):
    path = make_workbook("nology.xlsx", {"Phones": product_sheet})
    out = temp_workdir / "export.csv"
    code = main([
        str(path), "--supplier", "Nology", "--price-type", "retail_excl_vat",
        "--markup", "20", "--export", str(out), "--dry-run",
    ])
    assert code == EXIT_SUCCESS_ALL
    df = pd.read_csv(out)
    assert list(df["Price"]) == [950.0, 2300.0]


def test_cli_debug_flag(write_config, make_workbook, product_sheet, capsys):
    path = make_workbook("nology.xlsx", {"Phones": product_sheet})
    main([str(path), "--supplier", "Nology", "--debug"])
    assert "DEBUG sheet=Phones row=3 rejected: missing field" in capsys.readouterr().out


def test_dsn_precedence(monkeypatch):
    cfg = IngestConfig(database=DatabaseConfig(host="cfg-host", user="cfg-user", database="cfgdb", dsn=None))
    for var in ("DATABASE_URL", "PGDSN", "PGHOST", "PGPORT", "PGUSER", "PGPASSWORD", "PGDATABASE"):
        monkeypatch.delenv(var, raising=False)
    assert _dsn(cfg) == "host=cfg-host port=5432 user=cfg-user dbname=cfgdb"
    monkeypatch.setenv("PGHOST", "env-host")
    assert _dsn(cfg).startswith("host=env-host")
    monkeypatch.setenv("DATABASE_URL", "postgresql://u@h/db")
    assert _dsn(cfg) == "postgresql://u@h/db"

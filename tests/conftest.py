# Shared pytest fixtures
from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Any

import pandas as pd
import pytest

from pricelist_ingest.logging.init import reset_logging


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture(autouse=True)
def _fresh_logging():
    # the stdout handler binds sys.stdout at setup time; rebuild it per test for capsys
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def sample_config_yaml() -> str:
    return """database:
  host: localhost
  port: 5432
  user: appuser
  password: secret
  database: pricelists
table: central_pricelist
oracle:
  provider: openai
  max_tokens: 2000
structure_analysis: heuristic
extra_sheet_denylist: [Notes]
error_log_dir: logs
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "ingest.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def make_workbook(temp_workdir: Path):
    """Factory writing {sheet_name: rows} to data/<name> without header handling."""
    def _make(name: str, sheets: dict[str, list[list[Any]]]) -> Path:
        p = temp_workdir / "data" / name
        with pd.ExcelWriter(p, engine="openpyxl") as writer:
            for sheet_name, rows in sheets.items():
                pd.DataFrame(rows).to_excel(writer, sheet_name=sheet_name, header=False, index=False)
        return p
    return _make


@pytest.fixture()
def product_sheet() -> list[list[Any]]:
    return [
        ["Nology Pricelist", None, None],
        ["SKU", "Description", "Dealer Price"],
        ["T21P", "Yealink entry level IP phone", 950.0],
        ["CATEGORY", "NETWORKING", None],
        ["T46U", "Yealink colour screen IP phone", 2300.0],
        ["X1", "NETWORKING EQUIPMENT", 100.0],
    ]


class FakeOracle:
    """TextOracle double returning canned responses in order."""

    name = "fake"

    def __init__(self, *responses: str | Exception) -> None:
        self.responses = list(responses)
        self.prompts: list[str] = []

    def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture()
def fake_oracle_cls():
    return FakeOracle

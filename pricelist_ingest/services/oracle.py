from __future__ import annotations

import json
import logging
import os
from collections.abc import Sequence
from typing import Any, Protocol

from ..models.config_models import OracleConfig, UploadConfig
from ..models.price import PriceType, UnknownPriceType
from ..models.sheet_structure import SheetStructure
from .resolver import fallback_structure

"""Text-completion oracle adapters.

The oracle is an external large-language-model completion call, treated as a
black box: prompt text in, response text out. Two interchangeable providers
(OpenAI, Anthropic) implement TextOracle; the ingestion core only depends on
two capabilities built on top of it:

- TextExtractor.extract(text, upload) -> list of candidate item dicts (PDF path)
- StructureAnalyzer.analyze(rows, sheet_name) -> SheetStructure (AI sheet analysis)

Provider request/response shapes stay inside this module.
"""

__all__ = [
    "OracleError",
    "TextOracle",
    "OpenAIOracle",
    "AnthropicOracle",
    "FallbackOracle",
    "build_oracle",
    "build_extraction_prompt",
    "parse_candidate_array",
    "TextExtractor",
    "StructureAnalyzer",
]

logger = logging.getLogger(__name__)

SAMPLE_ROWS = 15
SAMPLE_CELLS = 10


class OracleError(Exception):
    """Oracle call failed, timed out, or returned an unusable response."""


class TextOracle(Protocol):
    name: str

    def complete(self, prompt: str) -> str: ...


def _require_key(env_var: str) -> str:
    key = os.getenv(env_var)
    if not key:
        raise OracleError(f"{env_var} not found in environment")
    return key


class OpenAIOracle:
    """Chat-completions call against the OpenAI API."""

    name = "openai"

    def __init__(self, config: OracleConfig | None = None, client: Any = None) -> None:
        self.config = config or OracleConfig()
        if client is None:
            from openai import OpenAI

            client = OpenAI(api_key=_require_key("OPENAI_API_KEY"))
        self.client = client

    def complete(self, prompt: str) -> str:
        try:
            response = self.client.chat.completions.create(
                model=self.config.openai_model,
                messages=[{"role": "user", "content": prompt}],
                temperature=self.config.temperature,
                max_tokens=self.config.max_tokens,
            )
        except Exception as e:
            raise OracleError(f"openai completion failed: {e}") from e
        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise OracleError("openai returned an empty completion")
        return content


class AnthropicOracle:
    """Messages call against the Anthropic API."""

    name = "anthropic"

    def __init__(self, config: OracleConfig | None = None, client: Any = None) -> None:
        self.config = config or OracleConfig()
        if client is None:
            import anthropic

            client = anthropic.Anthropic(api_key=_require_key("ANTHROPIC_API_KEY"))
        self.client = client

    def complete(self, prompt: str) -> str:
        try:
            message = self.client.messages.create(
                model=self.config.anthropic_model,
                max_tokens=self.config.max_tokens,
                temperature=self.config.temperature,
                messages=[{"role": "user", "content": prompt}],
            )
        except Exception as e:
            raise OracleError(f"anthropic completion failed: {e}") from e
        texts = [block.text for block in message.content if getattr(block, "type", None) == "text"]
        if not texts:
            raise OracleError("anthropic returned no text content")
        return "".join(texts)


class FallbackOracle:
    """Try the primary provider, retry once on the fallback when the call fails."""

    def __init__(self, primary: TextOracle, fallback: TextOracle) -> None:
        self.primary = primary
        self.fallback = fallback
        self.name = f"{primary.name}+{fallback.name}"

    def complete(self, prompt: str) -> str:
        try:
            return self.primary.complete(prompt)
        except OracleError as e:
            logger.warning("%s failed, falling back to %s: %s", self.primary.name, self.fallback.name, e)
            return self.fallback.complete(prompt)


_PROVIDERS = {
    "openai": OpenAIOracle,
    "anthropic": AnthropicOracle,
}


def build_oracle(provider: str, config: OracleConfig | None = None) -> TextOracle:
    """Instantiate the oracle for ai_provider, wrapped with the configured fallback."""
    config = config or OracleConfig()
    try:
        primary_cls = _PROVIDERS[provider]
    except KeyError:
        raise OracleError(f"unsupported ai provider: {provider!r}") from None
    primary = primary_cls(config)
    fallback_name = config.fallback_provider
    if not fallback_name or fallback_name == provider:
        return primary
    if fallback_name not in _PROVIDERS:
        raise OracleError(f"unsupported fallback provider: {fallback_name!r}")
    try:
        fallback = _PROVIDERS[fallback_name](config)
    except OracleError as e:
        logger.warning("fallback provider %s unavailable: %s", fallback_name, e)
        return primary
    return FallbackOracle(primary, fallback)


def build_extraction_prompt(text: str, upload: UploadConfig) -> str:
    price_type = upload.price_type.value if upload.price_type else "auto-detect"
    return (
        "Extract product information from this pricelist text. "
        "Return a JSON array of products with the following structure:\n"
        "{\n"
        '  "name": "product name",\n'
        '  "price": number,\n'
        '  "description": "product description",\n'
        '  "model_number": "model/SKU if available",\n'
        '  "category": "product category"\n'
        "}\n\n"
        "Pricing context:\n"
        f"- Supplier: {upload.supplier_name}\n"
        f"- Price type: {price_type}\n"
        "- Currency: Look for ZAR, R, USD, $ or other indicators\n\n"
        "Text to analyze:\n"
        f"{text}\n"
    )


def _first_json(text: str, opener: str, kind: type) -> Any:
    decoder = json.JSONDecoder()
    start = text.find(opener)
    while start != -1:
        try:
            value, _ = decoder.raw_decode(text, start)
        except json.JSONDecodeError:
            value = None
        if isinstance(value, kind):
            return value
        start = text.find(opener, start + 1)
    return None


def parse_candidate_array(response: str) -> list[Any]:
    """Return the first syntactically complete JSON array in the response.

    Raises:
        OracleError: no JSON array could be located
    """
    items = _first_json(response or "", "[", list)
    if items is None:
        raise OracleError("oracle response contains no JSON array of products")
    return items


class TextExtractor:
    """PDF text -> candidate item dicts via the oracle."""

    def __init__(self, oracle: TextOracle) -> None:
        self.oracle = oracle

    def extract(self, text: str, upload: UploadConfig) -> list[Any]:
        prompt = build_extraction_prompt(text, upload)
        logger.info("requesting product extraction from %s (%d chars)", self.oracle.name, len(text))
        return parse_candidate_array(self.oracle.complete(prompt))


def _sample_text(rows: Sequence[Sequence[Any] | None]) -> str:
    lines = []
    for idx, row in enumerate(rows[:SAMPLE_ROWS]):
        cells = ["" if c is None else str(c) for c in (row or [])[:SAMPLE_CELLS]]
        lines.append(f"Row {idx}: {' | '.join(cells)}")
    return "\n".join(lines)


def build_structure_prompt(rows: Sequence[Sequence[Any] | None], sheet_name: str) -> str:
    return (
        "Analyze this Excel sheet data and identify the structure for a pricelist:\n\n"
        f"Sheet Name: {sheet_name}\n"
        "Sample Data:\n"
        f"{_sample_text(rows)}\n\n"
        "Identify:\n"
        "1. Header row index (which row contains column headers)\n"
        "2. Column mappings for: name, price, description, category\n"
        "3. Price type: retail_incl_vat, retail_excl_vat, cost_excl_vat, or cost_incl_vat\n"
        "4. Supplier name from sheet name or content\n\n"
        "Return ONLY valid JSON:\n"
        "{\n"
        '  "isValid": true,\n'
        '  "headerRowIndex": 0,\n'
        '  "columns": {"name": 1, "price": 2, "description": 3, "category": 4},\n'
        '  "detectedPriceType": "retail_excl_vat",\n'
        '  "supplierName": "detected_supplier",\n'
        '  "confidence": 0.95,\n'
        '  "dataStartRow": 1\n'
        "}"
    )


class StructureAnalyzer:
    """AI-assisted sheet structure analysis.

    Inconclusive answers (call failure, unparseable JSON, out-of-range columns)
    degrade to the explicit low-confidence fallback structure.
    """

    def __init__(self, oracle: TextOracle) -> None:
        self.oracle = oracle

    def analyze(self, rows: Sequence[Sequence[Any] | None], sheet_name: str) -> SheetStructure:
        try:
            response = self.oracle.complete(build_structure_prompt(rows, sheet_name))
        except OracleError as e:
            logger.warning("sheet=%s structure analysis failed, using fallback: %s", sheet_name, e)
            return fallback_structure(sheet_name)

        analysis = _first_json(response, "{", dict)
        if analysis is None:
            logger.warning("sheet=%s structure analysis unparseable, using fallback", sheet_name)
            return fallback_structure(sheet_name)
        if analysis.get("isValid") is False:
            return SheetStructure.invalid(sheet_name, "oracle: not a product table")

        structure = self._to_structure(analysis, rows, sheet_name)
        if structure is None:
            logger.warning("sheet=%s structure analysis inconsistent, using fallback", sheet_name)
            return fallback_structure(sheet_name, _supplier_hint(analysis))
        logger.info("sheet=%s oracle structure confidence=%.2f", sheet_name, structure.confidence)
        return structure

    @staticmethod
    def _to_structure(
        analysis: dict[str, Any], rows: Sequence[Sequence[Any] | None], sheet_name: str
    ) -> SheetStructure | None:
        columns = analysis.get("columns")
        header = analysis.get("headerRowIndex")
        if not isinstance(columns, dict) or not _is_index(header):
            return None
        if header >= len(rows):
            return None
        width = len(rows[header] or [])
        name_idx, price_idx, desc_idx = (columns.get(k) for k in ("name", "price", "description"))
        category_idx = columns.get("category")
        required = (name_idx, price_idx, desc_idx)
        if not all(_is_index(i) and i < width for i in required):
            return None
        if len(set(required)) < 3:
            return None
        if not (_is_index(category_idx) and category_idx < width) or category_idx in required:
            category_idx = None

        try:
            price_type = PriceType.parse(analysis.get("detectedPriceType"))
        except UnknownPriceType:
            price_type = None
        data_start = analysis.get("dataStartRow")
        if not _is_index(data_start) or data_start <= header:
            data_start = header + 1
        confidence = analysis.get("confidence")
        if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
            confidence = 0.85
        return SheetStructure(
            sheet_name=sheet_name,
            is_valid=True,
            header_row_index=header,
            data_start_row=data_start,
            sku_column=name_idx,
            description_column=desc_idx,
            price_column=price_idx,
            category_column=category_idx,
            detected_price_type=price_type,
            supplier_guess=_supplier_hint(analysis),
            confidence=max(0.0, min(1.0, float(confidence))),
        )


def _supplier_hint(analysis: dict[str, Any]) -> str | None:
    name = analysis.get("supplierName")
    if isinstance(name, str) and name.strip():
        return name.strip()
    return None


def _is_index(value: Any) -> bool:
    # JSON true/false decode to bool, which is an int subclass
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0

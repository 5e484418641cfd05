from __future__ import annotations

from dataclasses import dataclass, field

from .price import PriceType

"""Config dataclasses for the pricelist ingestion tool.

IngestConfig is the tool-level configuration read from YAML by
pricelist_ingest.config.loader. UploadConfig is what the uploader declares for
one document (supplier, price type, markup, oracle provider).
"""

AI_PROVIDERS = ("openai", "anthropic")
DEFAULT_TABLE = "central_pricelist"
DEFAULT_MARKUP = 30.0


@dataclass(frozen=True)
class DatabaseConfig:
    """Database connection configuration.

    Used as fallback when environment variables are not set.
    Environment variables take precedence over these values.
    """
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None


@dataclass(frozen=True)
class OracleConfig:
    """Text-completion provider settings for PDF extraction and AI sheet analysis."""
    provider: str = "openai"
    fallback_provider: str | None = None  # tried once when the primary call fails
    openai_model: str = "gpt-4"
    anthropic_model: str = "claude-3-5-sonnet-20241022"
    max_tokens: int = 4000
    temperature: float = 0.1


@dataclass(frozen=True)
class IngestConfig:
    """Root configuration object for the ingestion process."""
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    oracle: OracleConfig = field(default_factory=OracleConfig)
    table: str = DEFAULT_TABLE
    structure_analysis: str = "heuristic"  # "heuristic" | "ai"
    extra_sheet_denylist: tuple[str, ...] = ()
    error_log_dir: str = "logs"

    @property
    def ai_structure_enabled(self) -> bool:
        return self.structure_analysis == "ai"


@dataclass(frozen=True)
class UploadConfig:
    """Uploader-declared settings for one document.

    price_type None requests auto-detection (sheet-detected, else retail_excl_vat).
    markup_percentage None requests the supplier/name based estimate.
    """
    supplier_name: str
    price_type: PriceType | None = None
    markup_percentage: float | None = None
    ai_provider: str = "openai"

    def __post_init__(self) -> None:
        if isinstance(self.price_type, str):
            # raises UnknownPriceType for tags outside the four known ones
            object.__setattr__(self, "price_type", PriceType.parse(self.price_type))
        if not self.supplier_name or not self.supplier_name.strip():
            raise ValueError("supplier_name is required")
        if self.markup_percentage is not None and self.markup_percentage < 0:
            raise ValueError(f"markup_percentage must be >= 0, got {self.markup_percentage}")
        if self.ai_provider not in AI_PROVIDERS:
            raise ValueError(f"unsupported ai_provider: {self.ai_provider!r}")

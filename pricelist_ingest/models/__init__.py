"""Domain models for the pricelist ingestion tool.

This package contains the domain model classes used throughout the application:
price types and vectors, sheet structures, candidate rows, product records,
configuration and processing results.
"""

from .candidate_row import CandidateRow
from .config_models import DatabaseConfig, IngestConfig, OracleConfig, UploadConfig
from .price import PriceType, PriceVector, UnknownPriceType
from .processing_result import ProcessingStats, UploadResult
from .product_record import ProductRecord
from .sheet_outcome import SheetOutcome
from .sheet_structure import SheetStructure
from .upload_status import UploadState, UploadStatus

__all__ = [
    # Configuration models
    "DatabaseConfig",
    "IngestConfig",
    "OracleConfig",
    "UploadConfig",
    # Pricing models
    "PriceType",
    "PriceVector",
    "UnknownPriceType",
    # Processing models
    "CandidateRow",
    "ProductRecord",
    "SheetOutcome",
    "SheetStructure",
    "ProcessingStats",
    "UploadResult",
    "UploadState",
    "UploadStatus",
]

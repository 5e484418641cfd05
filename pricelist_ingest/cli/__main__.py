from __future__ import annotations

import argparse
import logging
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import psycopg2
from dotenv import load_dotenv

from pricelist_ingest.config.loader import DEFAULT_CONFIG_PATH, ConfigError, load_config
from pricelist_ingest.logging.error_log import ErrorLogBuffer
from pricelist_ingest.logging.init import log_summary, setup_logging
from pricelist_ingest.models.config_models import AI_PROVIDERS, IngestConfig, UploadConfig
from pricelist_ingest.models.price import PriceType
from pricelist_ingest.models.processing_result import UploadResult
from pricelist_ingest.services.export import export_records
from pricelist_ingest.services.orchestrator import ProcessingError, process_document
from pricelist_ingest.services.status_store import InMemoryStatusStore
from pricelist_ingest.services.summary import render_summary_line

"""CLI entrypoint.

Ingests one supplier pricelist (.xlsx, .xls or .pdf):
- load .env and the YAML config
- parse, price and classify every product
- upsert into PostgreSQL (mock mode when DISABLE_DB_CONNECT=1 or --dry-run)
- print a SUMMARY line and exit with 0 / 2 / 1
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1

AUTO = "auto"

logger = logging.getLogger("pricelist_ingest.cli")


def _dsn(cfg: IngestConfig) -> str:
    """Resolve the connection string.

    Precedence: DATABASE_URL / PGDSN, then PG* variables, then the config file.
    .env is loaded with override beforehand, so its values count as environment.
    """
    db_cfg = cfg.database
    dsn = os.getenv("DATABASE_URL") or os.getenv("PGDSN") or db_cfg.dsn
    if dsn:
        return dsn
    host = os.getenv("PGHOST", db_cfg.host or "localhost")
    port = os.getenv("PGPORT", str(db_cfg.port) if db_cfg.port else "5432")
    user = os.getenv("PGUSER", db_cfg.user or "postgres")
    password = os.getenv("PGPASSWORD", db_cfg.password or "")
    database = os.getenv("PGDATABASE", db_cfg.database or "postgres")
    dsn = f"host={host} port={port} user={user} dbname={database}"
    if password:
        dsn += f" password={password}"
    return dsn


@contextmanager
def _db_connection(cfg: IngestConfig) -> Iterator[Any]:  # pragma: no cover (needs a live database)
    """psycopg2 cursor for one document; commits on success, rolls back on error."""
    conn = psycopg2.connect(_dsn(cfg))
    conn.autocommit = False
    try:
        with conn.cursor() as cur:
            yield cur
        conn.commit()
    except BaseException:
        conn.rollback()
        raise
    finally:
        conn.close()


def _load_env_file(path: Path, override: bool = True) -> None:
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="pricelist-ingest",
        description="Supplier pricelist (.xlsx/.xls/.pdf) -> central pricelist importer",
    )
    p.add_argument("file", type=Path, help="Pricelist workbook or PDF")
    p.add_argument("--supplier", required=True, help="Supplier name declared by the uploader")
    p.add_argument(
        "--price-type",
        default=AUTO,
        help="retail_incl_vat | retail_excl_vat | cost_incl_vat | cost_excl_vat | auto (default)",
    )
    p.add_argument("--markup", type=float, default=None, help="Markup percentage (default: estimated)")
    p.add_argument("--ai-provider", choices=AI_PROVIDERS, default=None, help="Oracle provider (default: oracle.provider from config)")
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="YAML config path")
    p.add_argument("--export", type=Path, default=None, help="Also write records to .xlsx/.csv/.json")
    p.add_argument("--dry-run", action="store_true", help="Parse and price only, do not write to the database")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    return p.parse_args(argv)


def _upload_config(args: argparse.Namespace, cfg: IngestConfig) -> UploadConfig:
    price_type = None if args.price_type.strip().lower() == AUTO else PriceType.parse(args.price_type)
    return UploadConfig(
        supplier_name=args.supplier,
        price_type=price_type,
        markup_percentage=args.markup,
        ai_provider=args.ai_provider or cfg.oracle.provider,
    )


def _run(args: argparse.Namespace, cfg: IngestConfig, upload: UploadConfig, error_log: ErrorLogBuffer) -> UploadResult:
    store = InMemoryStatusStore()
    if args.dry_run or os.getenv("DISABLE_DB_CONNECT") == "1":
        logger.debug("database disabled -> mock mode")
        return process_document(args.file, upload, cfg, cursor=None, status_store=store, error_log=error_log)
    with _db_connection(cfg) as cur:
        return process_document(args.file, upload, cfg, cursor=cur, status_store=store, error_log=error_log)


def _exit_code(result: UploadResult) -> int:
    if result.failed_count == 0 and result.saved_count > 0:
        return EXIT_SUCCESS_ALL
    return EXIT_PARTIAL_FAILURE


def main(argv: list[str] | None = None) -> int:
    # only read the process arguments when argv is None; [] means "no arguments"
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    setup_logging(debug=args.debug)

    _load_env_file(Path(".env"), override=True)
    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        logger.error("config: %s", e)
        return EXIT_FATAL

    try:
        upload = _upload_config(args, cfg)
    except ValueError as e:
        logger.error("upload: %s", e)
        return EXIT_FATAL

    if not args.file.exists():
        logger.error("file not found: %s", args.file)
        return EXIT_FATAL

    error_log = ErrorLogBuffer(cfg.error_log_dir)
    try:
        result = _run(args, cfg, upload, error_log)
    except ProcessingError as e:
        logger.error("processing: %s", e)
        return EXIT_FATAL
    except psycopg2.Error as e:
        logger.error("database: %s", e)
        return EXIT_FATAL
    finally:
        written = error_log.flush()
        if written is not None:
            logger.info("error log written to %s", written)

    for message in result.errors:
        logger.warning(message)
    for record in result.preview:
        logger.info(
            "preview %s | %s | %.2f excl VAT | category=%d",
            record.product_id, record.name, record.prices.retail_excl_vat, record.category_id,
        )

    if args.export is not None:
        try:
            export_records(result.records, args.export)
            logger.info("exported %d records to %s", len(result.records), args.export)
        except ValueError as e:
            logger.error("export: %s", e)

    # log_summary adds its own label, drop the one render_summary_line carries
    log_summary(render_summary_line(result).removeprefix("SUMMARY "))
    return _exit_code(result)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())

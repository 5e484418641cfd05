from __future__ import annotations

from ..models.processing_result import UploadResult

"""Summary line rendering.

Format:
SUMMARY file={name} found={n} saved={n} failed={n} rejected={n}
skipped_sheets={n} elapsed_sec={x}
"""


def _format_seconds(value: float) -> str:
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        # avoid scientific notation for very small numbers
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return f"{value:.3f}".rstrip("0").rstrip(".")


def render_summary_line(result: UploadResult) -> str:
    """Render the SUMMARY line for one upload.

    Examples:
        >>> from datetime import datetime, timezone
        >>> t = datetime(2024, 1, 1, tzinfo=timezone.utc)
        >>> r = UploadResult(
        ...     source_file="nology.xlsx", total_found=3, saved_count=3, failed_count=0,
        ...     price_type=None, markup_percentage=None,
        ...     start_time=t, end_time=t, elapsed_seconds=2.0,
        ... )
        >>> render_summary_line(r)
        'SUMMARY file=nology.xlsx found=3 saved=3 failed=0 rejected=0 skipped_sheets=0 elapsed_sec=2'
    """
    name = result.source_file.replace(" ", "_")
    return (
        f"SUMMARY file={name} "
        f"found={result.total_found} "
        f"saved={result.saved_count} "
        f"failed={result.failed_count} "
        f"rejected={result.stats.rows_rejected} "
        f"skipped_sheets={result.stats.sheets_skipped} "
        f"elapsed_sec={_format_seconds(result.elapsed_seconds)}"
    )

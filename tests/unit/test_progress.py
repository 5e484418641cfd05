from __future__ import annotations

from unittest.mock import Mock, patch

from pricelist_ingest.services.progress import SheetProgress, is_tty_enabled


def test_is_tty_enabled_returns_stdout_isatty():
    with patch("sys.stdout.isatty", return_value=True):
        assert is_tty_enabled() is True
    with patch("sys.stdout.isatty", return_value=False):
        assert is_tty_enabled() is False


def test_disabled_without_tty():
    with patch("pricelist_ingest.services.progress.is_tty_enabled", return_value=False):
        with SheetProgress("a.xlsx", 3) as progress:
            progress.start_sheet("Phones")
            progress.finish_sheet(products=2)
            assert progress.pbar is None
            assert progress.current_sheet == 1


def test_tqdm_bar_with_tty():
    mock_pbar = Mock()
    with patch("pricelist_ingest.services.progress.is_tty_enabled", return_value=True), \
         patch("pricelist_ingest.services.progress.tqdm", return_value=mock_pbar) as mock_tqdm:
        with SheetProgress("a.xlsx", 2) as progress:
            progress.start_sheet("Phones")
            progress.finish_sheet(products=7)
        mock_tqdm.assert_called_once_with(
            total=2, desc="a.xlsx", unit="sheet", leave=False, ncols=80, ascii=True,
        )
        mock_pbar.set_description.assert_called_once_with("a.xlsx (Phones)")
        mock_pbar.update.assert_called_once_with(1)
        mock_pbar.set_postfix.assert_called_once_with(products=7)
        mock_pbar.close.assert_called_once()
        assert progress.pbar is None

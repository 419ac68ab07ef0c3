from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

from roster_import.services.progress import ProgressTracker, is_tty_enabled


def test_is_tty_enabled_returns_stdout_isatty():
    with patch("sys.stdout.isatty", return_value=True):
        assert is_tty_enabled() is True
    with patch("sys.stdout.isatty", return_value=False):
        assert is_tty_enabled() is False


def test_tracker_with_tty_creates_bar():
    with patch("roster_import.services.progress.is_tty_enabled", return_value=True), patch(
        "roster_import.services.progress.tqdm"
    ) as mock_tqdm:
        tracker = ProgressTracker(3)
        mock_tqdm.assert_called_once_with(
            total=3, desc="Uploading", unit="file", leave=True, ncols=80, ascii=True
        )
        bar = mock_tqdm.return_value

        tracker.start_file(Path("data/a.xlsx"))
        bar.set_description.assert_called_with("Uploading (a.xlsx)")

        tracker.finish_file(False, new=2, duplicate=1)
        bar.update.assert_called_once_with(1)
        bar.set_postfix.assert_called_once_with(new=2, duplicate=1, failed=1)

        tracker.close()
        bar.close.assert_called_once()
        assert tracker.pbar is None


def test_tracker_without_tty_is_silent(capsys):
    with patch("roster_import.services.progress.is_tty_enabled", return_value=False), patch(
        "roster_import.services.progress.tqdm"
    ) as mock_tqdm:
        with ProgressTracker(2) as tracker:
            tracker.start_file(Path("a.xlsx"))
            tracker.finish_file(True)
        mock_tqdm.assert_not_called()
    assert tracker.current_file == 1
    assert capsys.readouterr().out == ""


def test_explicit_enabled_overrides_tty():
    with patch("roster_import.services.progress.is_tty_enabled", return_value=True), patch(
        "roster_import.services.progress.tqdm"
    ) as mock_tqdm:
        ProgressTracker(1, enabled=False)
        mock_tqdm.assert_not_called()

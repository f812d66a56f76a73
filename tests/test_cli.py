"""Tests for granola2notes.cli — main() argument parsing and dispatch."""

from __future__ import annotations

import logging
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from granola2notes.cli import main
from granola2notes.config import _DEFAULT_CONFIG_PATH
from granola2notes.errors import PublishError
from granola2notes.sync_state import RunState


def service_with(state=RunState.COMPLETED, written=0, last_error=None):
    service = MagicMock()
    service.run_once.return_value = written
    service.sync_status.state = state
    service.sync_status.last_error = last_error
    return service


class TestCli:
    @patch("granola2notes.cli.watch")
    @patch("granola2notes.cli.SyncService")
    @patch("granola2notes.cli.load_config")
    def test_once_mode_prints_count(self, mock_load, mock_service_cls, mock_watch, capsys):
        mock_service_cls.return_value = service_with(written=3)
        main(["--once"])
        mock_service_cls.return_value.run_once.assert_called_once()
        mock_watch.assert_not_called()
        assert "Synced 3 note(s)" in capsys.readouterr().out

    @patch("granola2notes.cli.SyncService")
    @patch("granola2notes.cli.load_config")
    def test_once_mode_failure_exits(self, mock_load, mock_service_cls, capsys):
        mock_service_cls.return_value = service_with(RunState.FAILED, last_error="No documents found")
        with pytest.raises(SystemExit) as exc_info:
            main(["--once"])
        assert exc_info.value.code == 1
        assert "Sync failed: No documents found" in capsys.readouterr().err

    @patch("granola2notes.cli.watch")
    @patch("granola2notes.cli.SyncService")
    @patch("granola2notes.cli.load_config")
    def test_daemon_mode(self, mock_load, mock_service_cls, mock_watch):
        main([])
        mock_watch.assert_called_once_with(mock_service_cls.return_value, _DEFAULT_CONFIG_PATH)

    @patch("granola2notes.cli.watch")
    @patch("granola2notes.cli.SyncService")
    @patch("granola2notes.cli.load_config")
    def test_daemon_mode_custom_config(self, mock_load, mock_service_cls, mock_watch):
        main(["-c", "/etc/g2n.yaml"])
        mock_watch.assert_called_once_with(mock_service_cls.return_value, Path("/etc/g2n.yaml"))
        assert mock_service_cls.call_args.kwargs["config_path"] == Path("/etc/g2n.yaml")

    @patch("granola2notes.cli.SyncService")
    @patch("granola2notes.cli.load_config")
    def test_delete_all(self, mock_load, mock_service_cls, capsys):
        mock_service_cls.return_value.delete_all.return_value = 4
        main(["--delete-all"])
        mock_service_cls.return_value.run_once.assert_not_called()
        assert "Deleted 4 note(s)" in capsys.readouterr().out

    @patch("granola2notes.cli.SyncService")
    @patch("granola2notes.cli.load_config")
    def test_delete_all_failure(self, mock_load, mock_service_cls, capsys):
        mock_service_cls.return_value.delete_all.side_effect = PublishError("osascript timed out")
        with pytest.raises(SystemExit) as exc_info:
            main(["--delete-all"])
        assert exc_info.value.code == 1
        assert "timed out" in capsys.readouterr().err

    @patch("granola2notes.cli.SyncService")
    @patch("granola2notes.cli.load_config")
    def test_verbose_sets_debug(self, mock_load, mock_service_cls):
        mock_service_cls.return_value = service_with()
        with patch("granola2notes.cli.logging.basicConfig") as mock_bc:
            main(["--once", "--verbose"])
            mock_bc.assert_called_once()
            assert mock_bc.call_args.kwargs["level"] == logging.DEBUG

    @patch("granola2notes.cli.SyncService")
    @patch("granola2notes.cli.load_config")
    def test_default_logging_info(self, mock_load, mock_service_cls):
        mock_service_cls.return_value = service_with()
        with patch("granola2notes.cli.logging.basicConfig") as mock_bc:
            main(["--once"])
            assert mock_bc.call_args.kwargs["level"] == logging.INFO

    @patch("granola2notes.cli.load_config")
    def test_config_path_forwarded(self, mock_load):
        mock_load.side_effect = OSError("nope")
        with pytest.raises(SystemExit):
            main(["--config", "/custom/path.yaml", "--once"])
        mock_load.assert_called_once_with(Path("/custom/path.yaml"))

    @patch("granola2notes.cli.load_config", side_effect=PermissionError("not readable"))
    def test_unreadable_config(self, mock_load, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["--once"])
        assert exc_info.value.code == 1
        assert "not readable" in capsys.readouterr().err

    @patch("granola2notes.cli.load_config", side_effect=ValueError("bad config"))
    def test_value_error(self, mock_load, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["--once"])
        assert exc_info.value.code == 1
        assert "bad config" in capsys.readouterr().err


class TestMainModule:
    @patch("granola2notes.cli.main")
    def test_dunder_main(self, mock_main):
        """__main__.py calls main() when executed."""
        import runpy
        runpy.run_module("granola2notes", run_name="__main__", alter_sys=True)
        mock_main.assert_called_once()

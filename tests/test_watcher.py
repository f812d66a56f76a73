"""Tests for granola2notes.watcher — _ConfigEventHandler and watch()."""

from __future__ import annotations

import signal
from unittest.mock import MagicMock, patch

import pytest

from granola2notes.config import Config
from granola2notes.service import SyncService
from granola2notes.watcher import _ConfigEventHandler, watch


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "granola2notes" / "config.yaml"
    path.parent.mkdir(parents=True)
    path.write_text("note_prefix: x\n")
    return path


@pytest.fixture
def mock_service():
    service = MagicMock(spec=SyncService)
    service.config = Config()
    return service


def file_event(path, is_directory=False):
    event = MagicMock()
    event.is_directory = is_directory
    event.src_path = str(path)
    return event


class TestConfigEventHandler:
    def test_directory_ignored(self, mock_service, config_path):
        handler = _ConfigEventHandler(mock_service, config_path)
        handler.on_modified(file_event(config_path.parent, is_directory=True))
        assert handler._timer is None

    def test_other_file_ignored(self, mock_service, config_path):
        handler = _ConfigEventHandler(mock_service, config_path)
        handler.on_modified(file_event(config_path.parent / "notes.txt"))
        assert handler._timer is None

    def test_config_file_schedules_reload(self, mock_service, config_path):
        handler = _ConfigEventHandler(mock_service, config_path)
        with patch("granola2notes.watcher.threading.Timer") as MockTimer:
            mock_timer = MagicMock()
            MockTimer.return_value = mock_timer
            handler.on_modified(file_event(config_path))
            MockTimer.assert_called_once()
            mock_timer.start.assert_called_once()

    def test_created_event_also_reloads(self, mock_service, config_path):
        handler = _ConfigEventHandler(mock_service, config_path)
        with patch("granola2notes.watcher.threading.Timer") as MockTimer:
            handler.on_created(file_event(config_path))
            MockTimer.assert_called_once()

    def test_reload_debounced(self, mock_service, config_path):
        handler = _ConfigEventHandler(mock_service, config_path)
        with patch("granola2notes.watcher.threading.Timer") as MockTimer:
            first_timer = MagicMock()
            second_timer = MagicMock()
            MockTimer.side_effect = [first_timer, second_timer]
            handler.on_modified(file_event(config_path))
            handler.on_modified(file_event(config_path))
            first_timer.cancel.assert_called_once()
            second_timer.start.assert_called_once()

    def test_do_reload_calls_service(self, mock_service, config_path):
        handler = _ConfigEventHandler(mock_service, config_path)
        handler._do_reload()
        mock_service.reload_config.assert_called_once()

    def test_do_reload_exception_logged(self, mock_service, config_path):
        mock_service.reload_config.side_effect = Exception("boom")
        handler = _ConfigEventHandler(mock_service, config_path)
        # Should not raise
        handler._do_reload()


class TestWatch:
    @patch("granola2notes.watcher.time.sleep", side_effect=SystemExit)
    @patch("granola2notes.watcher.signal.signal")
    @patch("granola2notes.watcher.Observer")
    def test_initial_sync_then_schedule(self, MockObserver, mock_signal, mock_sleep, mock_service, config_path):
        with pytest.raises(SystemExit):
            watch(mock_service, config_path)
        mock_service.run_once.assert_called_once()
        mock_service.schedule_auto_sync.assert_called_once()

    @patch("granola2notes.watcher.time.sleep", side_effect=SystemExit)
    @patch("granola2notes.watcher.signal.signal")
    @patch("granola2notes.watcher.Observer")
    def test_observer_started_and_stopped(self, MockObserver, mock_signal, mock_sleep, mock_service, config_path):
        mock_obs = MockObserver.return_value
        with pytest.raises(SystemExit):
            watch(mock_service, config_path)
        schedule_args = mock_obs.schedule.call_args
        assert isinstance(schedule_args[0][0], _ConfigEventHandler)
        assert schedule_args[0][1] == str(config_path.parent)
        mock_obs.start.assert_called_once()
        mock_obs.stop.assert_called_once()
        mock_obs.join.assert_called_once()
        mock_service.stop.assert_called_once()

    @patch("granola2notes.watcher.time.sleep", side_effect=SystemExit)
    @patch("granola2notes.watcher.signal.signal")
    @patch("granola2notes.watcher.Observer")
    def test_missing_config_dir_not_watched(self, MockObserver, mock_signal, mock_sleep, mock_service, tmp_path):
        with pytest.raises(SystemExit):
            watch(mock_service, tmp_path / "absent" / "config.yaml")
        MockObserver.assert_not_called()
        mock_service.run_once.assert_called_once()
        mock_service.stop.assert_called_once()

    @patch("granola2notes.watcher.time.sleep", side_effect=SystemExit)
    @patch("granola2notes.watcher.signal.signal")
    @patch("granola2notes.watcher.Observer")
    def test_signal_handlers_registered(self, MockObserver, mock_signal, mock_sleep, mock_service, config_path):
        with pytest.raises(SystemExit):
            watch(mock_service, config_path)
        sig_calls = [c[0][0] for c in mock_signal.call_args_list]
        assert signal.SIGINT in sig_calls
        assert signal.SIGTERM in sig_calls

    @patch("granola2notes.watcher.time.sleep")
    @patch("granola2notes.watcher.signal.signal")
    @patch("granola2notes.watcher.Observer")
    def test_shutdown_handler_ends_loop(self, MockObserver, mock_signal, mock_sleep, mock_service, config_path):
        handlers = {}
        mock_signal.side_effect = lambda signum, handler: handlers.setdefault(signum, handler)
        mock_sleep.side_effect = lambda _: handlers[signal.SIGTERM](signal.SIGTERM, None)

        watch(mock_service, config_path)

        assert mock_sleep.call_count == 1
        mock_service.stop.assert_called_once()
        MockObserver.return_value.stop.assert_called_once()

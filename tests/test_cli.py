"""Tests for the breather CLI layer.

``sit`` tests mock ``MeditationSession`` so no real ticker threads or
bells are involved; the other commands run against a temporary settings
file and data directory.
"""

from __future__ import annotations

import json
import signal
from datetime import datetime
from pathlib import Path
from unittest.mock import MagicMock, PropertyMock, call, patch

import click.testing
import pytest
import yaml

from breather.cli.main import cli
from breather.config import Settings
from breather.core.timer import CueKind, InvalidConfigurationError, SessionStatus


@pytest.fixture()
def runner() -> click.testing.CliRunner:
    """Return a Click CliRunner for invoking CLI commands."""
    return click.testing.CliRunner()


@pytest.fixture()
def config_path(tmp_path: Path) -> Path:
    """A settings file whose data directory lives under ``tmp_path``."""
    path = tmp_path / "settings.yml"
    path.write_text(yaml.safe_dump({"data_dir": str(tmp_path / "data")}))
    return path


def _invoke(runner: click.testing.CliRunner, config_path: Path, args: list[str], **kwargs):
    return runner.invoke(cli, args, env={"BREATHER_CONFIG": str(config_path)}, **kwargs)


# ---------------------------------------------------------------------------
# breather sit
# ---------------------------------------------------------------------------


class TestSitCommand:
    """Tests for ``breather sit [minutes]``."""

    @patch("breather.cli.main.MeditationSession")
    def test_sit_runs_session(
        self, mock_session_cls: MagicMock, runner: click.testing.CliRunner, config_path: Path
    ) -> None:
        session = mock_session_cls.return_value
        session.status = SessionStatus.FINISHED
        session.last_session_duration = 600.0

        result = _invoke(runner, config_path, ["sit", "10"])

        assert result.exit_code == 0
        assert "Session started: 10 minutes" in result.output
        assert "Session complete: 10m 0s" in result.output
        session.start.assert_called_once_with(
            600, frozenset({CueKind.SESSION_START, CueKind.SESSION_END})
        )
        session.close.assert_called_once()

    @patch("breather.cli.main.MeditationSession")
    def test_sit_uses_default_minutes(
        self, mock_session_cls: MagicMock, runner: click.testing.CliRunner, config_path: Path
    ) -> None:
        session = mock_session_cls.return_value
        session.status = SessionStatus.FINISHED
        session.last_session_duration = 0.0

        result = _invoke(runner, config_path, ["sit"])

        assert result.exit_code == 0
        assert session.start.call_args.args[0] == 600
        assert "Session ended before any time was meditated" in result.output

    @patch("breather.cli.main.MeditationSession")
    def test_sit_ctrl_c_pauses_then_finishes(
        self, mock_session_cls: MagicMock, runner: click.testing.CliRunner, config_path: Path
    ) -> None:
        session = mock_session_cls.return_value
        type(session).status = PropertyMock(
            side_effect=[SessionStatus.RUNNING, SessionStatus.RUNNING, SessionStatus.FINISHED]
        )
        session.last_session_duration = 120.0

        with patch("breather.cli.main.time.sleep", side_effect=[KeyboardInterrupt, None]):
            result = _invoke(runner, config_path, ["sit", "5"], input="f\n")

        assert result.exit_code == 0
        session.pause.assert_called_once()
        session.resume.assert_not_called()
        assert session.finish.call_count == 2
        assert "Session complete: 2m 0s" in result.output

    @patch("breather.cli.main.MeditationSession")
    def test_sit_ctrl_c_then_resume(
        self, mock_session_cls: MagicMock, runner: click.testing.CliRunner, config_path: Path
    ) -> None:
        session = mock_session_cls.return_value
        type(session).status = PropertyMock(
            side_effect=[SessionStatus.RUNNING, SessionStatus.RUNNING, SessionStatus.FINISHED]
        )
        session.last_session_duration = 300.0

        with patch("breather.cli.main.time.sleep", side_effect=[KeyboardInterrupt, None]):
            result = _invoke(runner, config_path, ["sit", "5"], input="r\n")

        assert result.exit_code == 0
        session.pause.assert_called_once()
        session.resume.assert_called_once()

    @patch("breather.cli.main.MeditationSession")
    def test_sit_invalid_duration(
        self, mock_session_cls: MagicMock, runner: click.testing.CliRunner, config_path: Path
    ) -> None:
        """When the session rejects the duration, print to stderr and exit 1."""
        session = mock_session_cls.return_value
        session.start.side_effect = InvalidConfigurationError("duration must be positive, got 0")

        result = _invoke(runner, config_path, ["sit", "0"])

        assert result.exit_code == 1
        assert "duration must be positive, got 0" in result.output
        session.close.assert_called_once()

    @patch("breather.cli.main.signal.signal")
    @patch("breather.cli.main.MeditationSession")
    def test_sit_resyncs_on_sigcont(
        self,
        mock_session_cls: MagicMock,
        mock_signal: MagicMock,
        runner: click.testing.CliRunner,
        config_path: Path,
    ) -> None:
        """Returning from Ctrl-Z resyncs the session, and the old handler is restored."""
        session = mock_session_cls.return_value
        session.status = SessionStatus.FINISHED
        session.last_session_duration = 0.0
        previous = object()
        mock_signal.return_value = previous

        result = _invoke(runner, config_path, ["sit", "1"])

        assert result.exit_code == 0
        installed = mock_signal.call_args_list[0]
        assert installed.args[0] == signal.SIGCONT
        installed.args[1](signal.SIGCONT, None)
        session.on_became_active.assert_called_once_with()
        assert mock_signal.call_args_list[-1] == call(signal.SIGCONT, previous)

    def test_sit_invalid_argument(self, runner: click.testing.CliRunner, config_path: Path) -> None:
        """``breather sit abc`` should fail with a Click type validation error."""
        result = _invoke(runner, config_path, ["sit", "abc"])
        assert result.exit_code != 0


# ---------------------------------------------------------------------------
# breather history
# ---------------------------------------------------------------------------


class TestHistoryCommand:
    """Tests for ``breather history``."""

    def test_no_sessions(self, runner: click.testing.CliRunner, config_path: Path) -> None:
        result = _invoke(runner, config_path, ["history"])
        assert result.exit_code == 0
        assert "No sessions recorded" in result.output

    def test_lists_sessions(
        self, runner: click.testing.CliRunner, config_path: Path, tmp_path: Path
    ) -> None:
        start = datetime(2026, 1, 8, 7, 30).timestamp()
        data_dir = tmp_path / "data"
        data_dir.mkdir()
        (data_dir / "history.json").write_text(
            json.dumps([{"start_time": start, "duration": 600.0}, {"start_time": start + 3600, "duration": 184.0}])
        )

        result = _invoke(runner, config_path, ["history"])

        assert result.exit_code == 0
        assert "2026-01-08 07:30  10m 0s" in result.output
        assert "2026-01-08 08:30  3m 4s" in result.output
        assert "Total: 13m 4s" in result.output

    def test_today_filter(
        self, runner: click.testing.CliRunner, config_path: Path, tmp_path: Path
    ) -> None:
        data_dir = tmp_path / "data"
        data_dir.mkdir()
        (data_dir / "history.json").write_text(
            json.dumps([{"start_time": datetime(2020, 1, 1, 9).timestamp(), "duration": 60.0}])
        )
        result = _invoke(runner, config_path, ["history", "--today"])
        assert "No sessions recorded" in result.output


# ---------------------------------------------------------------------------
# breather settings / durations
# ---------------------------------------------------------------------------


class TestSettingsCommand:
    """Tests for ``breather settings``."""

    def test_show_defaults(self, runner: click.testing.CliRunner, config_path: Path) -> None:
        result = _invoke(runner, config_path, ["settings"])
        assert result.exit_code == 0
        assert "Start & end bell: on" in result.output
        assert "Halfway bell: off" in result.output
        assert "Default length: 10 minutes" in result.output
        assert "Settings saved" not in result.output

    def test_update_and_persist(self, runner: click.testing.CliRunner, config_path: Path) -> None:
        result = _invoke(
            runner, config_path, ["settings", "--halfway", "--no-start-end", "--minutes", "25"]
        )
        assert result.exit_code == 0
        assert "Settings saved" in result.output

        saved = yaml.safe_load(config_path.read_text())
        assert saved["halfway_bell"] is True
        assert saved["start_end_bell"] is False
        assert saved["default_minutes"] == 25

    def test_rejects_unknown_length(self, runner: click.testing.CliRunner, config_path: Path) -> None:
        result = _invoke(runner, config_path, ["settings", "--minutes", "7"])
        assert result.exit_code != 0

    def test_corrupt_settings_file(self, runner: click.testing.CliRunner, tmp_path: Path) -> None:
        path = tmp_path / "settings.yml"
        path.write_text("halfway_bell: [unclosed\n")
        result = _invoke(runner, path, ["settings"])
        assert result.exit_code == 1
        assert "Could not read settings" in result.output

    def test_malformed_settings_values(self, runner: click.testing.CliRunner, tmp_path: Path) -> None:
        path = tmp_path / "settings.yml"
        path.write_text("default_minutes: abc\n")
        result = _invoke(runner, path, ["settings"])
        assert result.exit_code == 1
        assert "Could not read settings" in result.output

    def test_settings_file_not_a_mapping(self, runner: click.testing.CliRunner, tmp_path: Path) -> None:
        path = tmp_path / "settings.yml"
        path.write_text("- halfway_bell\n")
        result = _invoke(runner, path, ["settings"])
        assert result.exit_code == 1
        assert "must contain a mapping" in result.output


class TestDurationsCommand:
    def test_marks_default(self, runner: click.testing.CliRunner, config_path: Path) -> None:
        result = _invoke(runner, config_path, ["durations"])
        assert result.exit_code == 0
        assert "* 10 minutes" in result.output
        assert "  1h 30m" in result.output


# ---------------------------------------------------------------------------
# breather --version
# ---------------------------------------------------------------------------


class TestVersionFlag:
    """Tests for ``breather --version``."""

    def test_version_output(self, runner: click.testing.CliRunner) -> None:
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output


def test_settings_default_matches_cli_default() -> None:
    assert Settings().default_minutes == 10

"""Tests for CLI module."""

import json
import time
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import yaml
from click.testing import CliRunner

from nfpair.cli import main
from nfpair.pairing import PairingManager, PairingOutcome
from nfpair.server.version_probe import VersionCheck, VersionCheckStatus


@pytest.fixture
def runner():
    """Create a CLI test runner."""
    return CliRunner()


@pytest.fixture
def store_file(tmp_path):
    return tmp_path / "server.json"


@pytest.fixture
def config_file(tmp_path, store_file):
    """Config pointing the store into tmp_path with no close delay."""
    path = tmp_path / "config.yaml"
    path.write_text(
        yaml.dump(
            {
                "store_file": str(store_file),
                "log_level": "ERROR",
                "pairing": {"confirm_delay": 0, "device_name": "Test Phone"},
            }
        )
    )
    return path


def _async_cm(mock):
    mock.__aenter__.return_value = mock
    mock.__aexit__.return_value = None
    return mock


def _probe_returning(status, reported="1.0"):
    probe = _async_cm(AsyncMock())
    probe.required_version = "1.0"
    probe.probe.return_value = VersionCheck(
        status=status, required_version="1.0", reported_version=reported
    )
    return probe


@pytest.fixture
def dispatcher():
    dispatcher = _async_cm(AsyncMock())
    dispatcher.dispatch.return_value = True
    return dispatcher


@pytest.fixture
def fixed_code():
    """Make every generated code 777777."""
    rng = MagicMock()
    rng.choice.return_value = "7"
    with patch("nfpair.pairing.codes.random", rng):
        yield "777777"


class TestCLIHelp:
    """Test CLI help output."""

    def test_cli_help(self, runner):
        result = runner.invoke(main, ["--help"])

        assert result.exit_code == 0
        assert "NotifyForwarders" in result.output
        for command in ("pair", "probe", "server", "version"):
            assert command in result.output

    def test_version(self, runner):
        result = runner.invoke(main, ["version"])

        assert result.exit_code == 0
        assert "nfpair version" in result.output


class TestPairCommand:
    """Test nfpair pair."""

    def test_pairs_and_saves(self, runner, config_file, store_file, dispatcher, fixed_code):
        probe = _probe_returning(VersionCheckStatus.MATCH)
        with patch("nfpair.cli._build_probe", return_value=probe), patch(
            "nfpair.cli._build_dispatcher", return_value=dispatcher
        ):
            result = runner.invoke(
                main, ["-c", str(config_file), "pair", "192.168.1.5:5000"], input="777777\n"
            )

        assert result.exit_code == 0, result.output
        assert "Connecting to http://192.168.1.5:5000" in result.output
        assert "Verification succeeded" in result.output
        assert "Error:" not in result.output
        dispatcher.dispatch.assert_awaited_once_with("http://192.168.1.5:5000", "777777")
        stored = json.loads(store_file.read_text())
        assert stored["server_address"] == "http://192.168.1.5:5000"

    def test_wrong_code_then_right(
        self, runner, config_file, store_file, dispatcher, fixed_code
    ):
        probe = _probe_returning(VersionCheckStatus.MATCH)
        with patch("nfpair.cli._build_probe", return_value=probe), patch(
            "nfpair.cli._build_dispatcher", return_value=dispatcher
        ):
            result = runner.invoke(
                main,
                ["-c", str(config_file), "pair", "host"],
                input="12ab\n000000\n777777\n",
            )

        assert result.exit_code == 0, result.output
        assert "Error: Incorrect verification code" in result.output
        assert dispatcher.dispatch.await_count == 1
        assert store_file.exists()

    def test_version_mismatch(self, runner, config_file, store_file, dispatcher):
        probe = _probe_returning(VersionCheckStatus.MISMATCH, "0.9")
        with patch("nfpair.cli._build_probe", return_value=probe), patch(
            "nfpair.cli._build_dispatcher", return_value=dispatcher
        ):
            result = runner.invoke(main, ["-c", str(config_file), "pair", "host"])

        assert result.exit_code == 1
        assert "version 1.0 is required" in result.output
        dispatcher.dispatch.assert_not_called()
        assert not store_file.exists()

    def test_unreachable(self, runner, config_file, dispatcher):
        probe = _probe_returning(VersionCheckStatus.UNREACHABLE, "")
        with patch("nfpair.cli._build_probe", return_value=probe), patch(
            "nfpair.cli._build_dispatcher", return_value=dispatcher
        ):
            result = runner.invoke(main, ["-c", str(config_file), "pair", "host"])

        assert result.exit_code == 1
        assert "Cannot reach the server" in result.output

    def test_abort_cancels(self, runner, config_file, store_file, dispatcher, fixed_code):
        """End of input at the prompt cancels pairing."""
        probe = _probe_returning(VersionCheckStatus.MATCH)
        with patch("nfpair.cli._build_probe", return_value=probe), patch(
            "nfpair.cli._build_dispatcher", return_value=dispatcher
        ):
            result = runner.invoke(main, ["-c", str(config_file), "pair", "host"], input="")

        assert result.exit_code == 1
        assert "Pairing cancelled" in result.output
        assert not store_file.exists()


class TestProbeCommand:
    """Test nfpair probe."""

    @pytest.mark.parametrize(
        "status, reported, exit_code, text",
        [
            (VersionCheckStatus.MATCH, "1.0", 0, "Version: compatible"),
            (VersionCheckStatus.MISMATCH, "0.9", 1, "incompatible (1.0 required)"),
            (VersionCheckStatus.MALFORMED, "", 1, "did not report a version"),
            (VersionCheckStatus.UNREACHABLE, "", 1, "Cannot reach server at http://host"),
        ],
    )
    def test_reports_status(self, runner, config_file, status, reported, exit_code, text):
        probe = _probe_returning(status, reported)
        with patch("nfpair.cli._build_probe", return_value=probe):
            result = runner.invoke(main, ["-c", str(config_file), "probe", "host"])

        assert result.exit_code == exit_code
        assert text in result.output
        probe.probe.assert_awaited_once_with("http://host")


class TestServerCommand:
    """Test nfpair server."""

    def test_no_server(self, runner, config_file):
        result = runner.invoke(main, ["-c", str(config_file), "server"])

        assert result.exit_code == 0
        assert "No server configured." in result.output

    def test_shows_server(self, runner, config_file, store_file):
        store_file.write_text(
            json.dumps(
                {"server_address": "http://h:5000", "saved_at": "2026-10-19T08:30:00Z"}
            )
        )

        result = runner.invoke(main, ["-c", str(config_file), "server"])

        assert "Server: http://h:5000" in result.output
        assert "Paired: 2026-10-19 08:30:00" in result.output

    def test_clear(self, runner, config_file, store_file):
        store_file.write_text(json.dumps({"server_address": "http://h", "saved_at": ""}))

        result = runner.invoke(main, ["-c", str(config_file), "server", "--clear", "-f"])

        assert result.exit_code == 0
        assert "Server forgotten." in result.output
        assert not store_file.exists()

    def test_clear_declined(self, runner, config_file, store_file):
        store_file.write_text(json.dumps({"server_address": "http://h", "saved_at": ""}))

        result = runner.invoke(
            main, ["-c", str(config_file), "server", "--clear"], input="n\n"
        )

        assert "Aborted." in result.output
        assert store_file.exists()


class TestPairPromptExpiry:
    """The code prompt does not stall the expiry timer."""

    @pytest.fixture
    def ttl_config_file(self, tmp_path, store_file):
        path = tmp_path / "ttl.yaml"
        path.write_text(
            yaml.dump(
                {
                    "store_file": str(store_file),
                    "log_level": "ERROR",
                    "pairing": {"challenge_ttl": 0.05, "device_name": "Test Phone"},
                }
            )
        )
        return path

    def test_challenge_expires_while_prompting(
        self, runner, ttl_config_file, store_file, dispatcher, fixed_code
    ):
        managers = []
        seen_while_prompting = []

        def capture_manager(*args, **kwargs):
            manager = PairingManager(*args, **kwargs)
            managers.append(manager)
            return manager

        def waiting_prompt(text, value_proc=None):
            session = managers[0].session
            deadline = time.monotonic() + 2.0
            while session.awaiting_confirmation and time.monotonic() < deadline:
                time.sleep(0.01)
                session = managers[0].session
            seen_while_prompting.append(session.outcome)
            return "777777"

        probe = _probe_returning(VersionCheckStatus.MATCH)
        with patch("nfpair.cli._build_probe", return_value=probe), patch(
            "nfpair.cli._build_dispatcher", return_value=dispatcher
        ), patch("nfpair.pairing.PairingManager", side_effect=capture_manager), patch(
            "click.prompt", side_effect=waiting_prompt
        ):
            result = runner.invoke(main, ["-c", str(ttl_config_file), "pair", "host"])

        assert seen_while_prompting == [PairingOutcome.EXPIRED]
        assert result.exit_code == 1
        assert "Error: Verification code expired" in result.output
        assert not store_file.exists()

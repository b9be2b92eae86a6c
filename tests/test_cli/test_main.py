"""Tests for the console-script entry point's error handling."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from gcloud_switch.app import main
from gcloud_switch.exceptions import BackendError, NotFoundError


@pytest.fixture
def no_signal_handlers():
    with patch("gcloud_switch.app._setup_signal_handlers"):
        yield


@pytest.mark.usefixtures("isolated_config", "no_signal_handlers", "quiet_output")
class TestMain:
    @pytest.mark.parametrize("exc, code", [(NotFoundError("gone"), 4), (BackendError("login failed"), 3)])
    def test_known_errors_map_to_exit_codes(self, exc, code) -> None:
        with patch("gcloud_switch.app.app", side_effect=exc):
            with pytest.raises(SystemExit) as excinfo:
                main()
        assert excinfo.value.code == code

    def test_unexpected_error_writes_crash_log(self, isolated_config) -> None:
        with patch("gcloud_switch.app.app", side_effect=RuntimeError("boom")):
            with pytest.raises(SystemExit) as excinfo:
                main()
        assert excinfo.value.code == 1
        logs = isolated_config / "data" / "gcloud-switch" / "logs"
        crash_logs = list(logs.glob("crash-*.log"))
        assert len(crash_logs) == 1
        assert "RuntimeError: boom" in crash_logs[0].read_text()

    def test_keyboard_interrupt(self) -> None:
        with patch("gcloud_switch.app.app", side_effect=KeyboardInterrupt):
            with pytest.raises(SystemExit) as excinfo:
                main()
        assert excinfo.value.code == 130

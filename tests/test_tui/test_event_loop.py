"""End-to-end runs of the event loop with a scripted terminal."""

from __future__ import annotations

import contextlib
import signal
from unittest.mock import MagicMock, patch

import pytest

from gcloud_switch.models import Profile, Role
from gcloud_switch.tui import app as tui_app
from gcloud_switch.tui.app import event_loop, run_interactive
from gcloud_switch.tui.state import Key, KeyCode


class TestEventLoop:
    def test_quit_key(self, runner, store, fake_terminal) -> None:
        store.add_or_replace("work", Profile(user_account="u@x.com"))
        runner.reload()
        fake_terminal.keys = [None, Key.of("q")]
        event_loop(runner.controller, runner, fake_terminal)
        assert fake_terminal.frames == 2
        assert runner.controller.state.quit is True

    def test_verification_results_reach_the_table(
        self, runner, store, fake_backend, fake_terminal
    ) -> None:
        fake_backend.valid["shared@x.com"] = True
        store.add_or_replace("a", Profile(user_account="shared@x.com", adc_account="shared@x.com"))
        store.add_or_replace("b", Profile(user_account="shared@x.com"))
        runner.reload()
        runner.scheduler.join(timeout=5)
        fake_terminal.keys = [Key(KeyCode.ESC)]

        event_loop(runner.controller, runner, fake_terminal)

        auth = runner.controller.auth
        assert auth[0].get(Role.PRIMARY) is True
        assert auth[0].get(Role.SECONDARY) is True
        assert auth[1].get(Role.PRIMARY) is True
        assert fake_backend.checked.count("shared@x.com") == 1

    def test_enter_on_invalid_reauths_then_exits(
        self, runner, store, fake_backend, fake_terminal
    ) -> None:
        store.add_or_replace("work", Profile(user_account="u@x.com", user_project="p"))
        runner.reload()
        runner.scheduler.join(timeout=5)
        fake_terminal.keys = [None, Key(KeyCode.RIGHT), Key(KeyCode.ENTER)]

        event_loop(runner.controller, runner, fake_terminal)

        assert fake_terminal.events == ["release"]
        assert ("reauth", "work", Role.PRIMARY) in fake_backend.calls
        assert ("activate_primary", "work", "u@x.com", "p") in fake_backend.calls
        assert store.load().active_profile == "work"
        assert runner.controller.state.status == "Activated user config for 'work'."

    def test_alt_enter_activates_and_keeps_running(
        self, runner, store, fake_backend, fake_terminal
    ) -> None:
        fake_backend.valid["u@x.com"] = True
        store.add_or_replace("work", Profile(user_account="u@x.com", user_project="p"))
        runner.reload()
        runner.scheduler.join(timeout=5)
        fake_terminal.keys = [None, Key(KeyCode.ENTER, alt=True), Key.of("q")]

        event_loop(runner.controller, runner, fake_terminal)

        assert fake_terminal.events == []
        assert store.load().active_profile == "work"
        assert fake_terminal.frames == 3


class TestRunInteractive:
    def test_signal_handlers_installed_then_restored(self, store, fake_backend) -> None:
        def sentinel(signum, frame) -> None:
            pass

        seen: dict[int, object] = {}

        def fake_loop(controller, runner, terminal) -> None:
            for signum in (signal.SIGTERM, signal.SIGHUP):
                seen[signum] = signal.getsignal(signum)
            controller.state.status = "bye"

        previous = {s: signal.signal(s, sentinel) for s in (signal.SIGTERM, signal.SIGHUP)}
        try:
            with patch.object(tui_app, "open_terminal", lambda: contextlib.nullcontext(MagicMock())), \
                    patch.object(tui_app, "event_loop", fake_loop):
                status = run_interactive(store=store, backend=fake_backend)
            after = {s: signal.getsignal(s) for s in (signal.SIGTERM, signal.SIGHUP)}
        finally:
            for signum, handler in previous.items():
                signal.signal(signum, handler)

        assert status == "bye"
        assert all(handler is tui_app._signal_exit for handler in seen.values())
        assert after == {signal.SIGTERM: sentinel, signal.SIGHUP: sentinel}

    def test_signal_handlers_restored_after_failure(self, store, fake_backend) -> None:
        before = {s: signal.getsignal(s) for s in (signal.SIGTERM, signal.SIGHUP)}

        def failing_loop(controller, runner, terminal) -> None:
            raise RuntimeError("draw failed")

        with patch.object(tui_app, "open_terminal", lambda: contextlib.nullcontext(MagicMock())), \
                patch.object(tui_app, "event_loop", failing_loop):
            with pytest.raises(RuntimeError, match="draw failed"):
                run_interactive(store=store, backend=fake_backend)

        assert {s: signal.getsignal(s) for s in (signal.SIGTERM, signal.SIGHUP)} == before

"""Fixtures wiring a controller to a real store, scheduler and fake backend."""

from __future__ import annotations

import pytest

from gcloud_switch.tui.controller import Controller
from gcloud_switch.tui.runner import EffectRunner
from gcloud_switch.verification import ProjectFetcher, VerificationScheduler


@pytest.fixture
def runner(store, fake_backend):
    """An :class:`EffectRunner` over a fresh controller; workers shut down afterwards."""
    controller = Controller()
    scheduler = VerificationScheduler(fake_backend.is_valid, max_workers=2)
    fetcher = ProjectFetcher(fake_backend.list_projects_for)
    runner = EffectRunner(controller, store, fake_backend, scheduler, fetcher)
    yield runner
    scheduler.shutdown()
    fetcher.shutdown()

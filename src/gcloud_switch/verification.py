"""Background credential verification.

Checking a credential means a token exchange over the network, which can take
seconds or hang until a timeout. The interactive UI must keep reacting to
keys meanwhile, so checks run on a small pool of daemon threads and report
back through a queue that the UI thread drains without blocking. Quitting
never waits for checks still in flight.

Two rules keep that cheap and correct:

* **Deduplication** -- one unit of work per distinct account, however many
  profiles (or roles within a profile) reference it. The result carries every
  ``(profile index, role)`` slot that shares the account.
* **Generations** -- every :meth:`VerificationScheduler.schedule` call starts
  a new generation. Results are tagged with the generation they were issued
  under and :meth:`VerificationScheduler.drain` drops any result from an
  older one. In-flight work is never cancelled; it finishes and is ignored.

:class:`ProjectFetcher` applies the same pattern to the one-shot project
list lookup used for edit suggestions: only the most recent request counts.
"""

from __future__ import annotations

import functools
import logging
import queue
import threading
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from gcloud_switch.models import Profile, Role

logger = logging.getLogger(__name__)

Slot = tuple[int, Role]
"""A ``(profile index, role)`` pair addressing one credential in the UI table."""


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of one verification unit."""

    identity: str
    targets: tuple[Slot, ...]
    generation: int
    valid: bool


@dataclass(frozen=True)
class ProjectListResult:
    """Outcome of one project list fetch."""

    account: str
    projects: tuple[str, ...]
    token: int


def group_identities(profiles: Sequence[Profile]) -> dict[str, list[Slot]]:
    """Map every referenced account to the slots that reference it.

    Empty accounts are skipped. Insertion order follows the profile order so
    that work is issued top-down.
    """
    groups: dict[str, list[Slot]] = {}
    for index, profile in enumerate(profiles):
        for role in Role:
            account = profile.account_for(role)
            if account:
                groups.setdefault(account, []).append((index, role))
    return groups


class _WorkerPool:
    """A fixed set of daemon threads fed from a job queue.

    The workers are daemon threads, so a hung token exchange or project
    listing never keeps the process alive after the UI has quit.
    """

    def __init__(self, max_workers: int, name: str) -> None:
        self._jobs: "queue.Queue[Optional[Callable[[], None]]]" = queue.Queue()
        self._idle = threading.Condition()
        self._pending = 0
        self._closed = False
        self._threads = [
            threading.Thread(target=self._work, name=f"{name}-{i}", daemon=True)
            for i in range(max_workers)
        ]
        for thread in self._threads:
            thread.start()

    def submit(self, job: Callable[[], None]) -> None:
        if self._closed:
            raise RuntimeError("cannot submit to a pool that was shut down")
        with self._idle:
            self._pending += 1
        self._jobs.put(job)

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait until every submitted job has finished or was dropped."""
        with self._idle:
            return self._idle.wait_for(lambda: self._pending == 0, timeout=timeout)

    def shutdown(self) -> None:
        """Drop queued jobs. Running ones finish but nobody waits for them."""
        self._closed = True
        while True:
            try:
                self._jobs.get_nowait()
            except queue.Empty:
                break
            self._done()
        for _ in self._threads:
            self._jobs.put(None)

    def _work(self) -> None:
        while True:
            job = self._jobs.get()
            if job is None:
                return
            try:
                job()
            finally:
                self._done()

    def _done(self) -> None:
        with self._idle:
            self._pending -= 1
            self._idle.notify_all()


class VerificationScheduler:
    """Issue deduplicated, generation-tagged validity checks.

    Args:
        check: Callable returning whether an account's credential is valid.
            Exceptions it raises are treated as ``False``.
        max_workers: Size of the worker pool.

    Example::

        scheduler = VerificationScheduler(backend.is_valid)
        scheduler.schedule(profiles)
        ...
        for result in scheduler.drain():  # each UI frame
            apply(result)
    """

    def __init__(self, check: Callable[[str], bool], max_workers: int = 8) -> None:
        self._check = check
        self._pool = _WorkerPool(max_workers, "verify")
        self._results: "queue.Queue[VerificationResult]" = queue.Queue()
        self._generation = 0

    @property
    def generation(self) -> int:
        """The live generation. Only results tagged with it are accepted."""
        return self._generation

    def schedule(self, profiles: Sequence[Profile]) -> int:
        """Start a new generation and issue one unit per distinct account.

        Args:
            profiles: The freshly loaded profiles, in display order.

        Returns:
            The number of units issued.
        """
        self._generation += 1
        generation = self._generation
        groups = group_identities(profiles)
        for identity, targets in groups.items():
            self._pool.submit(functools.partial(self._verify, identity, tuple(targets), generation))
        logger.debug(
            "generation %d: %d verification units for %d profiles",
            generation,
            len(groups),
            len(profiles),
        )
        return len(groups)

    def drain(self) -> list[VerificationResult]:
        """Return every completed result of the live generation without blocking.

        Results from superseded generations are discarded.
        """
        accepted: list[VerificationResult] = []
        while True:
            try:
                result = self._results.get_nowait()
            except queue.Empty:
                break
            if result.generation != self._generation:
                logger.debug(
                    "dropped stale result for %s (generation %d, live %d)",
                    result.identity,
                    result.generation,
                    self._generation,
                )
                continue
            accepted.append(result)
        return accepted

    def check_now(self, identity: str) -> bool:
        """Synchronous one-off check for decisions that cannot wait."""
        return self._safe_check(identity)

    def join(self, timeout: Optional[float] = None) -> None:
        """Wait until every issued unit has finished."""
        self._pool.join(timeout)

    def shutdown(self) -> None:
        """Stop accepting work. Running checks are left to finish on their own."""
        self._pool.shutdown()

    def _verify(self, identity: str, targets: tuple[Slot, ...], generation: int) -> None:
        valid = self._safe_check(identity)
        self._results.put(VerificationResult(identity, targets, generation, valid))

    def _safe_check(self, identity: str) -> bool:
        try:
            return bool(self._check(identity))
        except Exception as exc:  # noqa: BLE001 -- reduced to "invalid" at the boundary
            logger.debug("verification of %s raised %s", identity, exc)
            return False


class ProjectFetcher:
    """Fetch an account's project list in the background; keep only the latest.

    Args:
        list_projects: Callable returning project ids for an account.
    """

    def __init__(self, list_projects: Callable[[str], list[str]]) -> None:
        self._list_projects = list_projects
        self._pool = _WorkerPool(2, "projects")
        self._results: "queue.Queue[ProjectListResult]" = queue.Queue()
        self._token = 0

    def request(self, account: str) -> int:
        """Start fetching *account*'s projects, superseding any earlier request.

        Returns:
            The token identifying this request.
        """
        self._token += 1
        token = self._token
        self._pool.submit(functools.partial(self._fetch, account, token))
        return token

    def drain(self) -> list[ProjectListResult]:
        """Return completed results of the latest request without blocking."""
        accepted: list[ProjectListResult] = []
        while True:
            try:
                result = self._results.get_nowait()
            except queue.Empty:
                break
            if result.token == self._token:
                accepted.append(result)
        return accepted

    def join(self, timeout: Optional[float] = None) -> None:
        self._pool.join(timeout)

    def shutdown(self) -> None:
        self._pool.shutdown()

    def _fetch(self, account: str, token: int) -> None:
        try:
            projects = tuple(self._list_projects(account))
        except Exception as exc:  # noqa: BLE001
            logger.debug("project list for %s raised %s", account, exc)
            projects = ()
        self._results.put(ProjectListResult(account, projects, token))

"""
Periodic scheduling for Server Agent.

Two fixed-interval jobs: the drive health check and the full
collect-and-report cycle. Every firing runs on its own thread so a slow
collection never delays the timer loop.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from server_agent.core import Agent

logger = logging.getLogger(__name__)


@dataclass
class Job:
    """A named action fired every `interval` seconds."""

    name: str
    interval: float
    action: Callable[[], object]
    allow_overlap: bool = True
    next_run: float = 0.0
    runs: int = 0
    skipped: int = 0
    _busy: threading.Lock = field(default_factory=threading.Lock, repr=False)


class Scheduler:
    """
    Fires jobs on fixed intervals from a single loop thread.

    Jobs fire once when the loop starts, then every interval. Dispatch is
    fire-and-forget: the loop starts a daemon thread and moves on. With
    `allow_overlap` off, a firing is skipped while the previous run of the
    same job is still busy.
    """

    def __init__(self, jobs: list[Job]):
        self.jobs = jobs
        self._stop_event = threading.Event()
        self._threads: list[threading.Thread] = []

    @classmethod
    def for_agent(cls, agent: Agent) -> Scheduler:
        """Build the drive-check and report jobs from the agent's config."""
        config = agent.config
        return cls(
            [
                Job(
                    name="drive-check",
                    interval=config.drive_check_interval,
                    action=agent.check_drives,
                    allow_overlap=config.allow_overlap,
                ),
                Job(
                    name="report",
                    interval=config.report_interval,
                    action=agent.collect_and_report,
                    allow_overlap=config.allow_overlap,
                ),
            ]
        )

    def run(self) -> None:
        """Run until `stop` is called."""
        now = time.monotonic()
        for job in self.jobs:
            job.next_run = now

        logger.info(
            "Scheduler started: "
            + ", ".join(f"{job.name} every {job.interval:g}s" for job in self.jobs)
        )

        while not self._stop_event.is_set():
            self.tick(time.monotonic())
            next_due = min(job.next_run for job in self.jobs)
            # wait() instead of sleep() so stop() takes effect immediately
            self._stop_event.wait(timeout=max(0.0, next_due - time.monotonic()))

        logger.info("Scheduler stopped")

    def stop(self) -> None:
        """Signal the loop to exit. Running jobs are not interrupted."""
        self._stop_event.set()

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    def tick(self, now: float) -> list[str]:
        """
        Dispatch every job that is due at `now`.

        Returns:
            Names of the jobs dispatched.
        """
        fired = []
        for job in self.jobs:
            if now < job.next_run:
                continue
            job.next_run = now + job.interval
            if self._dispatch(job):
                fired.append(job.name)
        return fired

    def _dispatch(self, job: Job) -> bool:
        if not job.allow_overlap and not job._busy.acquire(blocking=False):
            job.skipped += 1
            logger.warning(f"Skipping {job.name}: previous run still in progress")
            return False

        job.runs += 1
        thread = threading.Thread(
            target=self._run_job,
            args=(job,),
            name=f"{job.name}-{job.runs}",
            daemon=True,
        )
        self._threads = [t for t in self._threads if t.is_alive()]
        self._threads.append(thread)
        thread.start()
        return True

    def _run_job(self, job: Job) -> None:
        start = time.perf_counter()
        try:
            job.action()
        except Exception:
            logger.exception(f"Job {job.name} failed")
        finally:
            if not job.allow_overlap:
                job._busy.release()
        duration = (time.perf_counter() - start) * 1000
        logger.debug(f"Job {job.name} finished in {duration:.0f}ms")

    def join(self, timeout: float | None = None) -> None:
        """Wait for dispatched job threads to finish."""
        for thread in list(self._threads):
            thread.join(timeout)

"""In-process cron scheduler for recurring background jobs"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional

from croniter import croniter

logger = logging.getLogger(__name__)

JobHandler = Callable[[asyncio.Event], Awaitable[Any]]
Clock = Callable[[], datetime]

# Upper bound on a single sleep so wall-clock jumps are noticed
MAX_WAIT_SECONDS = 60.0


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ScheduledJob:
    """Named job fired at the UTC wall-clock times of `cron`; the handler receives the stop signal"""

    name: str
    cron: str
    handler: JobHandler
    enabled: bool = True
    running: bool = False
    next_run_at: Optional[datetime] = None
    last_run_at: Optional[datetime] = None
    last_error: Optional[str] = None


class JobScheduler:
    """
    Owns a set of job descriptors and their asyncio loops.

    Lifecycle:
    - register() jobs before start()
    - start() computes each enabled job's next fire time from the clock and
      spawns one loop task per job on the running event loop
    - stop() sets the shared stop event and waits for in-flight runs to finish

    Fire times come from the cron expression and the current time only, so
    restarting the process never postpones a run.
    """

    def __init__(self, clock: Clock | None = None):
        self._clock = clock or utcnow
        self._jobs: Dict[str, ScheduledJob] = {}
        self._tasks: Dict[str, asyncio.Task] = {}
        self._stop_event: Optional[asyncio.Event] = None

    @property
    def started(self) -> bool:
        return bool(self._tasks)

    def register(self, job: ScheduledJob) -> None:
        if job.name in self._jobs:
            raise ValueError(f"Job '{job.name}' already registered")
        if not croniter.is_valid(job.cron):
            raise ValueError(f"Job '{job.name}' has an invalid cron expression: {job.cron!r}")
        self._jobs[job.name] = job

    def get(self, name: str) -> ScheduledJob:
        try:
            return self._jobs[name]
        except KeyError:
            raise KeyError(f"Unknown job '{name}'") from None

    def next_fire_time(self, job: ScheduledJob, after: datetime) -> datetime:
        return croniter(job.cron, after).get_next(datetime)

    async def start(self) -> None:
        if self.started:
            return

        self._stop_event = asyncio.Event()
        now = self._clock()
        for job in self._jobs.values():
            if not job.enabled:
                continue
            job.next_run_at = self.next_fire_time(job, now)
            self._tasks[job.name] = asyncio.create_task(self._loop(job), name=f"job:{job.name}")
            logger.info(
                f"Scheduled job '{job.name}' ({job.cron}), next run at {job.next_run_at.isoformat()}",
                extra={"job": job.name, "cron": job.cron, "next_run_at": job.next_run_at.isoformat()},
            )

    async def stop(self) -> None:
        """Stop scheduling; running handlers see the stop event and wind down"""
        if self._stop_event is not None:
            self._stop_event.set()

        for name, task in self._tasks.items():
            try:
                await task
            except asyncio.CancelledError:
                pass
            logger.info(f"Stopped job: {name}", extra={"job": name})

        self._tasks.clear()
        self._stop_event = None
        for job in self._jobs.values():
            job.next_run_at = None

    async def run_now(self, name: str) -> Any:
        """
        Run a job immediately, outside its schedule.

        Returns the handler result, or None when the job is already running.
        """
        job = self.get(name)
        return await self._run(job, self._stop_event or asyncio.Event())

    def status(self) -> List[Dict[str, Any]]:
        return [
            {
                "name": job.name,
                "cron": job.cron,
                "enabled": job.enabled,
                "scheduled": job.name in self._tasks and not self._tasks[job.name].done(),
                "running": job.running,
                "next_run_at": job.next_run_at,
                "last_run_at": job.last_run_at,
                "last_error": job.last_error,
            }
            for job in self._jobs.values()
        ]

    async def _loop(self, job: ScheduledJob) -> None:
        stop_event = self._stop_event
        while not stop_event.is_set():
            delay = (job.next_run_at - self._clock()).total_seconds()
            if delay > 0:
                try:
                    await asyncio.wait_for(stop_event.wait(), timeout=min(delay, MAX_WAIT_SECONDS))
                    break
                except asyncio.TimeoutError:
                    continue

            fired_at = job.next_run_at
            try:
                await self._run(job, stop_event)
            except Exception:
                # Already logged and recorded on the job; keep the schedule alive
                pass

            # Fire times missed while the handler ran are skipped, not replayed
            job.next_run_at = self.next_fire_time(job, max(fired_at, self._clock()))

    async def _run(self, job: ScheduledJob, stop_event: asyncio.Event) -> Any:
        if job.running:
            logger.warning(f"Job '{job.name}' already running, skipping", extra={"job": job.name})
            return None

        job.running = True
        job.last_run_at = self._clock()
        try:
            result = await job.handler(stop_event)
            job.last_error = None
            return result
        except Exception as e:
            job.last_error = f"{type(e).__name__}: {e}"
            logger.exception(f"Job '{job.name}' failed", extra={"job": job.name})
            raise
        finally:
            job.running = False

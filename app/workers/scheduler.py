from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Callable

from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.jobstores.base import JobLookupError
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.schedulers.background import BackgroundScheduler

_scheduler: BackgroundScheduler | None = None


def get_scheduler() -> BackgroundScheduler:
    global _scheduler
    if _scheduler is None:
        _scheduler = BackgroundScheduler(
            jobstores={"default": MemoryJobStore()},
            executors={"default": ThreadPoolExecutor(max_workers=10)},
            job_defaults={
                "coalesce": True,
                "max_instances": 1,
                # game timers are one-shots and must run even when late
                "misfire_grace_time": None,
            },
            timezone="UTC",
        )
    return _scheduler


def start_scheduler() -> BackgroundScheduler:
    sch = get_scheduler()
    if not sch.running:
        sch.start()
    return sch


def shutdown_scheduler() -> None:
    global _scheduler
    if _scheduler and _scheduler.running:
        _scheduler.shutdown(wait=False)
    _scheduler = None


def run_later(
    job_id: str, seconds: float, func: Callable[..., Any], args: list[Any]
) -> None:
    """One-shot job; replaces any pending job with the same id."""
    cancel(job_id)
    get_scheduler().add_job(
        func,
        "date",
        run_date=datetime.now(timezone.utc) + timedelta(seconds=max(0.0, seconds)),
        args=args,
        id=job_id,
        replace_existing=True,
    )


def cancel(job_id: str) -> None:
    try:
        get_scheduler().remove_job(job_id)
    except JobLookupError:
        pass

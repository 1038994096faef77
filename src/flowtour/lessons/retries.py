"""Retries lesson: a task that fails a few times before it succeeds."""

from __future__ import annotations

from typing import Dict

from prefect import flow, task
from prefect.runtime import task_run

from ..core import lesson
from ..logging import get_logger


class FlakyError(RuntimeError):
    pass


@task(retries=3, retry_delay_seconds=0)
def flaky(fail_times: int) -> int:
    """Fail on the first ``fail_times`` attempts, then return the attempt number."""
    attempt = task_run.run_count
    if attempt <= fail_times:
        raise FlakyError(f"attempt {attempt} of {fail_times} planned failures")
    get_logger("retries.flaky").info("Succeeded on attempt %d", attempt)
    return attempt


@lesson(
    name="retries",
    summary="Task and flow retries",
    params=lambda cfg: cfg.get("retries") or {},
    after=["hello"],
)
@flow(retries=1, retry_delay_seconds=0)
def retries(fail_times: int = 2, task_retries: int = 3) -> Dict:
    """Run `flaky` with enough retries to get past its planned failures."""
    if fail_times < 0 or task_retries < 0:
        raise ValueError("fail_times and task_retries must be non-negative")
    attempts = flaky.with_options(retries=task_retries, retry_delay_seconds=0)(fail_times)
    return {"fail_times": fail_times, "task_retries": task_retries, "attempts": attempts}

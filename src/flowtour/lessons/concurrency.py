"""Concurrency lesson: submit tasks, then block on their futures.

`task.submit(...)` returns a future right away and the task runner executes
the work in the background. `future.result()` waits for the run to finish and
returns its value, or raises the task's exception.
"""

from __future__ import annotations

import time
from typing import Dict, List, Optional

from prefect import flow, task

from ..core import lesson
from ..github import get_url, page_count, repo_url
from ..logging import get_logger
from ..utils import (
    _get,
    api_url as cfg_api_url,
    per_page as cfg_per_page,
    repo_name as cfg_repo_name,
)


@task
def slow_double(x: int, delay: float = 0.1) -> int:
    time.sleep(delay)
    return 2 * x


def fetch_issue_pages(
    api_url: str, repo_name: str, open_issues_count: int, per_page: int = 100
) -> List[dict]:
    """Submit one `get_url` per page of open issues and flatten the results."""
    futures = []
    for page in range(1, page_count(open_issues_count, per_page) + 1):
        futures.append(
            get_url.submit(
                f"{repo_url(api_url, repo_name)}/issues",
                params={"page": page, "per_page": per_page, "state": "open"},
            )
        )
    return [issue for future in futures for issue in future.result()]


def _concurrency_params(cfg: Dict) -> Dict:
    params = {"api_url": cfg_api_url(cfg), "per_page": cfg_per_page(cfg)}
    # Without an explicit github.repo the lesson stays offline
    if _get(cfg, "github", "repo"):
        params["repo_name"] = cfg_repo_name(cfg)
    params.update(cfg.get("concurrency") or {})
    return params


@lesson(
    name="concurrency",
    summary="submit() futures and blocking result()",
    params=_concurrency_params,
    after=["caching"],
)
@flow
def concurrency(
    numbers: Optional[List[int]] = None,
    delay: float = 0.1,
    repo_name: Optional[str] = None,
    api_url: str = "https://api.github.com",
    per_page: int = 100,
) -> Dict:
    """Double numbers concurrently; optionally list a repo's open issues page by page."""
    logger = get_logger("concurrency")
    numbers = numbers if numbers is not None else list(range(5))

    started = time.monotonic()
    futures = [slow_double.submit(n, delay) for n in numbers]
    doubled = [f.result() for f in futures]
    elapsed = time.monotonic() - started
    logger.info("Doubled %d numbers in %.2fs", len(doubled), elapsed)

    report: Dict = {"doubled": doubled}
    if repo_name:
        repo = get_url(repo_url(api_url, repo_name))
        issues = fetch_issue_pages(
            api_url, repo_name, repo["open_issues_count"], per_page=per_page
        )
        logger.info("Fetched %d open issues of %s", len(issues), repo_name)
        report["open_issues"] = len(issues)
    return report

"""Repository statistics: the tutorial's complete flow.

Puts the earlier lessons together: a cached, retried `get_url` task, issue
pages fetched concurrently inside a subflow, statistics logged through the run
logger, flow-level retries and a failure hook.
"""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd
from prefect import flow, task

from ..core import lesson
from ..github import get_url, repo_url
from ..logging import get_logger
from ..utils import (
    api_url as cfg_api_url,
    cache_hours as cfg_cache_hours,
    per_page as cfg_per_page,
    repo_name as cfg_repo_name,
    slugify,
)
from .subflows import get_open_issues


def issue_stats(issues: List[dict]) -> Dict:
    """Per-user counts and the average number of open issues per user."""
    if not issues:
        return {"issues": 0, "users": 0, "issues_per_user": 0.0, "top_users": []}
    df = pd.DataFrame(
        {"user": [(i.get("user") or {}).get("login", "ghost") for i in issues]}
    )
    counts = df["user"].value_counts()
    top = counts.head(5)
    return {
        "issues": int(len(df)),
        "users": int(counts.size),
        "issues_per_user": float(len(df) / counts.size),
        "top_users": [[user, int(n)] for user, n in top.items()],
    }


@task
def write_report(issues: List[dict], report_dir: str, repo_name: str) -> str:
    out_dir = Path(report_dir) / slugify(repo_name)
    out_dir.mkdir(parents=True, exist_ok=True)
    out_path = out_dir / "open_issues.csv"
    df = pd.DataFrame(
        [
            {
                "number": i.get("number"),
                "title": i.get("title", ""),
                "user": (i.get("user") or {}).get("login", "ghost"),
                "is_pull_request": "pull_request" in i,
            }
            for i in issues
        ],
        columns=["number", "title", "user", "is_pull_request"],
    )
    df.to_csv(out_path, index=False)
    return str(out_path)


def notify_failure(flow, flow_run, state):
    get_logger("repo_info.hooks").error(
        "Flow run %s of %s failed: %s", flow_run.name, flow.name, state.message
    )


def _repo_info_params(cfg: Dict) -> Dict:
    params = {
        "repo_name": cfg_repo_name(cfg),
        "api_url": cfg_api_url(cfg),
        "per_page": cfg_per_page(cfg),
        "cache_hours": cfg_cache_hours(cfg),
    }
    params.update(cfg.get("repo_info") or {})
    return params


@lesson(
    name="repo_info",
    summary="Repository statistics with caching, concurrency and a subflow",
    params=_repo_info_params,
    after=["subflows", "retries"],
)
@flow(retries=3, retry_delay_seconds=5, log_prints=True, on_failure=[notify_failure])
def repo_info(
    repo_name: str = "PrefectHQ/prefect",
    api_url: str = "https://api.github.com",
    per_page: int = 100,
    cache_hours: float = 1,
    report_dir: Optional[str] = None,
) -> Dict:
    """Summarise a repository's stars, forks and open issues per user."""
    fetch = get_url.with_options(cache_expiration=timedelta(hours=cache_hours))
    repo_stats = fetch(repo_url(api_url, repo_name))
    issues = get_open_issues(
        api_url, repo_name, repo_stats["open_issues_count"], per_page=per_page
    )
    stats = issue_stats(issues)

    logger = get_logger("repo_info")
    logger.info("%s repository statistics:", repo_name)
    logger.info("Stars: %s", repo_stats["stargazers_count"])
    logger.info("Forks: %s", repo_stats["forks_count"])
    logger.info("Average open issues per user: %.2f", stats["issues_per_user"])

    summary = {
        "repo": repo_name,
        "stars": repo_stats["stargazers_count"],
        "forks": repo_stats["forks_count"],
        **stats,
    }
    if report_dir:
        summary["report"] = write_report(issues, report_dir, repo_name)
    return summary

"""Subflows lesson: a flow called from another flow runs as a nested flow run."""

from __future__ import annotations

from typing import Dict, List

from prefect import flow

from ..core import lesson
from ..github import get_url, repo_url
from ..logging import get_logger
from ..utils import api_url as cfg_api_url, per_page as cfg_per_page, repo_name as cfg_repo_name
from .concurrency import fetch_issue_pages


@flow
def get_open_issues(
    api_url: str, repo_name: str, open_issues_count: int, per_page: int = 100
) -> List[dict]:
    """List a repository's open issues; its page fetches are this run's tasks."""
    return fetch_issue_pages(api_url, repo_name, open_issues_count, per_page=per_page)


def _subflows_params(cfg: Dict) -> Dict:
    params = {
        "api_url": cfg_api_url(cfg),
        "repo_name": cfg_repo_name(cfg),
        "per_page": cfg_per_page(cfg),
    }
    params.update(cfg.get("subflows") or {})
    return params


@lesson(
    name="subflows",
    summary="A flow calling another flow as a nested run",
    params=_subflows_params,
    after=["concurrency"],
)
@flow
def subflows(
    repo_name: str = "PrefectHQ/prefect",
    api_url: str = "https://api.github.com",
    per_page: int = 100,
) -> Dict:
    """Fetch repo stats in the parent flow and its issues in a subflow."""
    logger = get_logger("subflows")
    repo = get_url(repo_url(api_url, repo_name))
    state = get_open_issues(
        api_url, repo_name, repo["open_issues_count"], per_page=per_page, return_state=True
    )
    issues = state.result()
    logger.info(
        "Subflow run %s returned %d issues", state.state_details.flow_run_id, len(issues)
    )
    return {
        "repo": repo_name,
        "open_issues": len(issues),
        "subflow_run_id": str(state.state_details.flow_run_id),
    }

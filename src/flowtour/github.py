"""GitHub REST client used by the network lessons.

`build_client` centralises headers, token and timeout so every lesson talks to
the API the same way, and tests can swap the transport for a mock.
"""

from __future__ import annotations

import os
from datetime import timedelta
from typing import Any, Optional

import httpx
from dotenv import load_dotenv
from prefect import task
from prefect.tasks import task_input_hash

load_dotenv()

DEFAULT_API_URL = "https://api.github.com"
DEFAULT_TIMEOUT_SECONDS = 30.0

# Replaced in tests with a client backed by httpx.MockTransport.
transport: Optional[httpx.BaseTransport] = None


def build_client(
    token: Optional[str] = None,
    *,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> httpx.Client:
    headers = {
        "Accept": "application/vnd.github+json",
        "User-Agent": "flowtour",
    }
    token = token or os.environ.get("GITHUB_TOKEN")
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return httpx.Client(
        headers=headers,
        timeout=httpx.Timeout(timeout),
        follow_redirects=True,
        transport=transport,
    )


def page_count(total: int, per_page: int) -> int:
    """Number of pages needed to list ``total`` items ``per_page`` at a time."""
    if per_page <= 0:
        raise ValueError(f"per_page must be positive, got {per_page}")
    if total <= 0:
        return 0
    return -(total // -per_page)


@task(
    retries=2,
    retry_delay_seconds=1,
    cache_key_fn=task_input_hash,
    cache_expiration=timedelta(hours=1),
)
def get_url(url: str, params: Optional[dict] = None) -> Any:
    """GET a JSON document; identical calls within the hour reuse the result."""
    with build_client() as client:
        response = client.get(url, params=params)
        response.raise_for_status()
        return response.json()


def repo_url(api_url: str, repo_name: str) -> str:
    if repo_name.count("/") != 1:
        raise ValueError(f"Repository must look like 'owner/name', got {repo_name!r}")
    return f"{api_url.rstrip('/')}/repos/{repo_name}"

from __future__ import annotations

"""Small helpers for reading lesson parameters out of the parsed config."""

from typing import Dict


def _get(d: Dict, *keys, default=None):
    cur = d
    for k in keys:
        if not isinstance(cur, dict):
            return default
        cur = cur.get(k)
        if cur is None:
            return default
    return cur


def slugify(s: str) -> str:
    return (
        (s or "").strip().lower().replace(" ", "_").replace("/", "-").replace("\\", "-")
    )


def runs_dir(p: Dict) -> str:
    return _get(p, "project", "runs_dir", default="runs")


def api_url(p: Dict) -> str:
    return str(_get(p, "github", "api_url", default="https://api.github.com")).rstrip("/")


def repo_name(p: Dict) -> str:
    return _get(p, "github", "repo", default="PrefectHQ/prefect")


def per_page(p: Dict) -> int:
    value = int(_get(p, "github", "per_page", default=100))
    if value <= 0:
        raise ValueError(f"github.per_page must be positive, got {value}")
    return value


def cache_hours(p: Dict) -> float:
    return float(_get(p, "github", "cache_hours", default=1))

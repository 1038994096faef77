"""Caching lesson: reuse task results keyed by a cache key function.

Three keys are shown side by side:
- `task_input_hash`, which hashes every argument;
- `cache_key_from_sum`, where different inputs with the same sum share a result;
- `cache_key_from_files`, which follows the contents of a file rather than its path.

Each task also has a `cache_expiration`, after which the key misses again.
"""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path
from typing import Dict, List, Optional

from prefect import flow, task
from prefect.tasks import task_input_hash

from ..cache import cache_key_from_files, cache_key_from_sum
from ..core import lesson
from ..logging import get_logger


@task(cache_key_fn=cache_key_from_sum, cache_expiration=timedelta(minutes=10))
def add_numbers(nums: List[int]) -> int:
    get_logger("caching.add_numbers").info("Adding %d numbers", len(nums))
    return sum(nums)


@task(cache_key_fn=task_input_hash, cache_expiration=timedelta(minutes=10))
def square(x: int) -> int:
    return x * x


@task(cache_key_fn=cache_key_from_files("path"), cache_expiration=timedelta(minutes=10))
def count_lines(path: str) -> int:
    with open(path, "r", encoding="utf-8") as f:
        return sum(1 for _ in f)


def _caching_params(cfg: Dict) -> Dict:
    return dict(cfg.get("caching") or {})


@lesson(
    name="caching",
    summary="cache_key_fn and cache_expiration on tasks",
    params=_caching_params,
    after=["hello"],
)
@flow
def caching(
    nums: Optional[List[int]] = None,
    other_nums: Optional[List[int]] = None,
    path: Optional[str] = None,
    expiration_minutes: float = 10,
) -> Dict:
    """Call each cached task twice and report the state of every call.

    A second call that hits the cache ends in the `Cached` state and returns
    the stored value without running the task body.
    """
    logger = get_logger("caching")
    nums = nums if nums is not None else [1, 2, 3]
    other_nums = other_nums if other_nums is not None else [3, 3]
    expiration = timedelta(minutes=expiration_minutes)

    adder = add_numbers.with_options(cache_expiration=expiration)
    first = adder(nums, return_state=True)
    second = adder(other_nums, return_state=True)
    report = {
        "sum": {
            "states": [first.name, second.name],
            "results": [first.result(), second.result()],
        }
    }

    squarer = square.with_options(cache_expiration=expiration)
    x = report["sum"]["results"][0]
    sq_states = [squarer(x, return_state=True) for _ in range(2)]
    report["square"] = {
        "states": [s.name for s in sq_states],
        "results": [s.result() for s in sq_states],
    }

    if path:
        if not Path(path).is_file():
            raise FileNotFoundError(f"File to count not found: {path}")
        counter = count_lines.with_options(cache_expiration=expiration)
        line_states = [counter(path, return_state=True) for _ in range(2)]
        report["lines"] = {
            "states": [s.name for s in line_states],
            "results": [s.result() for s in line_states],
        }

    for key, entry in report.items():
        logger.info("%s: states=%s results=%s", key, entry["states"], entry["results"])
    return report

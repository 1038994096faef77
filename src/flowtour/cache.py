"""Cache key functions for Prefect tasks.

A cache key function receives the task run context and the bound call
parameters and returns a string. Two calls that produce the same key share a
cached result until the task's ``cache_expiration`` runs out.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Callable, Iterable


def sha256_bytes(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def file_digest(path: Path) -> str:
    h = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(1024 * 1024), b""):
            h.update(chunk)
    return h.hexdigest()


def compute_key(name: str, input_paths: Iterable[Path], config: dict) -> str:
    """Hash a task name, the contents of its input files and its other parameters.

    Missing files hash as ``None`` so creating them later changes the key.
    Only file contents count; modification times are ignored.
    """
    payload: dict = {"name": name, "inputs": [], "config": config}
    for p in sorted({str(p) for p in input_paths}):
        pp = Path(p)
        entry = {"path": p}
        if pp.exists() and pp.is_file():
            entry["digest"] = file_digest(pp)
        else:
            entry["digest"] = None
        payload["inputs"].append(entry)
    data = json.dumps(payload, sort_keys=True, default=str).encode("utf-8")
    return sha256_bytes(data)


def cache_key_from_sum(context, parameters: dict) -> str:
    """Key on the sum of ``nums``: ``[1, 2, 3]`` and ``[3, 3]`` share a result."""
    return f"{context.task.name}-sum-{sum(parameters['nums'])}"


def cache_key_from_files(*param_names: str) -> Callable[..., str]:
    """Build a cache key function keyed on the contents of file parameters.

    ``param_names`` name the parameters holding file paths. Editing one of
    those files invalidates the cache; the remaining parameters are hashed as
    plain values.
    """
    if not param_names:
        raise ValueError("cache_key_from_files needs at least one parameter name")

    def _key(context, parameters: dict) -> str:
        missing = [n for n in param_names if n not in parameters]
        if missing:
            raise KeyError(f"Cache key parameters not bound: {missing}")
        paths = [Path(parameters[n]) for n in param_names]
        rest = {k: v for k, v in parameters.items() if k not in param_names}
        return compute_key(context.task.name, paths, rest)

    return _key

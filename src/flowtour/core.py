from __future__ import annotations

import inspect
import json
import sys
import time
import uuid
from contextlib import nullcontext
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Callable, Iterable, Optional, Union

from prefect.settings import PREFECT_TASKS_REFRESH_CACHE, temporary_settings

from .logging import get_logger
from .utils import runs_dir as default_runs_dir


# Lesson parameters are either a static mapping or built from the parsed config
ParamSpec = Union[dict, Callable[[dict], dict], None]


@dataclass
class LessonSpec:
    name: str
    summary: str
    flow: Any
    params: ParamSpec = None
    after: tuple = ()


@dataclass
class LessonRun:
    lesson: str
    run_id: str
    status: str
    state_name: str
    run_dir: str
    flow_run_id: Optional[str] = None
    parameters: dict = field(default_factory=dict)
    result: Optional[str] = None
    error: Optional[str] = None
    duration_s: float = 0.0


def lesson(
    name: str,
    summary: str = "",
    params: ParamSpec = None,
    after: Iterable[str] = (),
):
    """Register a Prefect flow as a tutorial lesson.

    `params` builds the flow's keyword arguments from the parsed YAML config;
    keys the flow does not accept are dropped. `after` names lessons that come
    earlier in the tour.
    """

    def deco(flow_obj):
        spec = LessonSpec(
            name=name,
            summary=summary or (inspect.getdoc(flow_obj.fn) or "").split("\n")[0],
            flow=flow_obj,
            params=params,
            after=tuple(after),
        )
        setattr(flow_obj, "_lesson_spec", spec)
        return flow_obj

    return deco


def topo_sort(nodes: Iterable[str], edges: Iterable[tuple[str, str]]) -> list[str]:
    nodes = list(nodes)
    incoming = {n: set() for n in nodes}
    outgoing = {n: set() for n in nodes}
    for u, v in edges:
        if u not in incoming or v not in incoming:
            raise ValueError(f"Edge references unknown node: {(u, v)}")
        outgoing[u].add(v)
        incoming[v].add(u)
    ordered: list[str] = []
    # Sorted roots keep the order stable between runs
    roots = sorted((n for n in nodes if not incoming[n]), reverse=True)
    while roots:
        n = roots.pop()
        ordered.append(n)
        for m in list(outgoing[n]):
            incoming[m].discard(n)
            outgoing[n].discard(m)
            if not incoming[m]:
                roots.append(m)
        roots.sort(reverse=True)
    if any(incoming[n] for n in nodes):
        raise ValueError("Cycle detected in lesson order")
    return ordered


def resolve_params(spec: LessonSpec, config: dict) -> dict:
    """Build the flow kwargs for a lesson, keeping only the ones it accepts."""
    raw = spec.params(config) if callable(spec.params) else spec.params
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ValueError(
            f"Parameters for lesson {spec.name!r} must be a mapping, got {type(raw).__name__}"
        )
    accepted = inspect.signature(spec.flow.fn).parameters
    return {k: v for k, v in raw.items() if k in accepted}


def _preview(value: Any, limit: int = 500) -> str:
    text = json.dumps(value, default=str)
    if len(text) > limit:
        text = text[: limit - 3] + "..."
    return text


def run_lesson(
    spec: LessonSpec,
    config: dict,
    runs_dir: Optional[Path] = None,
    retries: Optional[int] = None,
    refresh_cache: bool = False,
    raise_on_failure: bool = True,
) -> LessonRun:
    """Run one lesson's flow and record the outcome under ``runs_dir``."""
    logger = get_logger(f"flowtour.{spec.name}")
    run_id = time.strftime("%Y%m%d-%H%M%S") + "-" + uuid.uuid4().hex[:6]
    base = Path(runs_dir) if runs_dir is not None else Path(default_runs_dir(config))
    parameters = resolve_params(spec, config)
    run_dir = base / spec.name / run_id
    run_dir.mkdir(parents=True, exist_ok=True)

    flow_obj = spec.flow
    if retries is not None:
        flow_obj = flow_obj.with_options(retries=retries)

    settings_ctx = (
        temporary_settings(updates={PREFECT_TASKS_REFRESH_CACHE: True})
        if refresh_cache
        else nullcontext()
    )

    logger.info("Run lesson: %s", spec.name)
    started = time.monotonic()
    with settings_ctx:
        state = flow_obj(**parameters, return_state=True)
    duration = time.monotonic() - started

    record = LessonRun(
        lesson=spec.name,
        run_id=run_id,
        status="completed" if state.is_completed() else "failed",
        state_name=state.name,
        run_dir=str(run_dir),
        flow_run_id=str(state.state_details.flow_run_id),
        parameters=parameters,
        duration_s=round(duration, 3),
    )
    outcome = state.result(raise_on_failure=False)
    if state.is_completed():
        record.result = _preview(outcome)
        logger.info("Lesson %s finished in %.2fs", spec.name, duration)
    else:
        record.error = str(outcome)
        logger.error("Lesson %s ended in state %s: %s", spec.name, state.name, outcome)
    _write_state(run_dir, record)

    if record.status == "failed" and raise_on_failure:
        if isinstance(outcome, BaseException):
            raise outcome
        raise RuntimeError(f"Lesson {spec.name} ended in state {state.name}")
    return record


class Tour:
    """Lessons ordered by their ``after`` links, runnable as a whole or in part."""

    def __init__(self, lessons: dict[str, LessonSpec], name: str = "tour"):
        self.name = name
        self.lessons = lessons
        self.edges = [
            (before, spec.name) for spec in lessons.values() for before in spec.after
        ]
        self.order = topo_sort(lessons.keys(), self.edges)
        self.logger = get_logger(f"flowtour.{self.name}")

    def _select_subset(
        self,
        from_lesson: str | None,
        until_lesson: str | None,
        only: str | None,
    ) -> list[str]:
        if only:
            if only not in self.lessons:
                raise KeyError(f"Unknown lesson: {only}")
            return [only]
        ordered = self.order
        if from_lesson:
            if from_lesson not in self.lessons:
                raise KeyError(f"Unknown lesson: {from_lesson}")
            ordered = ordered[ordered.index(from_lesson):]
        if until_lesson:
            if until_lesson not in self.lessons:
                raise KeyError(f"Unknown lesson: {until_lesson}")
            if until_lesson not in ordered:
                raise ValueError(f"{until_lesson} comes before {from_lesson} in the tour")
            ordered = ordered[: ordered.index(until_lesson) + 1]
        return list(ordered)

    def run(
        self,
        config: dict,
        runs_dir: Optional[Path] = None,
        from_lesson: str | None = None,
        until_lesson: str | None = None,
        only: str | None = None,
        retries: Optional[int] = None,
        refresh_cache: bool = False,
        keep_going: bool = False,
    ) -> list[LessonRun]:
        selected = self._select_subset(from_lesson, until_lesson, only)
        self.logger.info("Selected lessons: %s", " → ".join(selected))
        results: list[LessonRun] = []
        for name in selected:
            record = run_lesson(
                self.lessons[name],
                config,
                runs_dir=runs_dir,
                retries=retries,
                refresh_cache=refresh_cache,
                raise_on_failure=False,
            )
            results.append(record)
            if record.status != "completed" and not keep_going:
                self.logger.error("Stopping tour after failed lesson: %s", name)
                break
        failed = [r.lesson for r in results if r.status != "completed"]
        if failed:
            self.logger.warning("Failed lessons: %s", ", ".join(failed))
        return results


def _write_state(run_dir: Path, record: LessonRun) -> None:
    state = asdict(record)
    state["python"] = sys.version
    with open(run_dir / "state.json", "w", encoding="utf-8") as f:
        json.dump(state, f, indent=2, default=str)

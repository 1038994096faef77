"""Runnable companion to the tasks, flows, caching and concurrency tutorial.

Lessons are Prefect flows registered with `@lesson`; the Typer CLI discovers,
configures and runs them, recording every run under `runs/`.
"""

from .core import LessonRun, LessonSpec, Tour, lesson, run_lesson  # re-export for convenience

__all__ = ["LessonRun", "LessonSpec", "Tour", "lesson", "run_lesson"]

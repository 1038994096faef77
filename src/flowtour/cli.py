from __future__ import annotations

import importlib
import json
import pkgutil
from pathlib import Path
from typing import Dict, Optional

import typer
import yaml

from .core import LessonSpec, Tour, resolve_params, run_lesson
from .logging import get_logger


app = typer.Typer(add_completion=False, help="Run the tasks and flows tutorial lessons")
log = get_logger("flowtour.cli")

LESSONS_PKG = "flowtour.lessons"


def load_config(path: str | Path) -> dict:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Config not found: {p}")
    with open(p, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def discover_lessons(package: str = LESSONS_PKG) -> Dict[str, LessonSpec]:
    """Import all modules in the lessons package and collect decorated flows."""
    specs: Dict[str, LessonSpec] = {}
    try:
        pkg = importlib.import_module(package)
    except ModuleNotFoundError:
        log.warning("No lessons package found: %s", package)
        return specs
    for m in pkgutil.iter_modules(pkg.__path__, prefix=f"{package}."):
        try:
            mod = importlib.import_module(m.name)
        except Exception as e:  # noqa: BLE001
            log.warning("Failed to import %s: %s", m.name, e)
            continue
        for attr_name in dir(mod):
            obj = getattr(mod, attr_name)
            spec = getattr(obj, "_lesson_spec", None)
            if isinstance(spec, LessonSpec):
                specs[spec.name] = spec
    return specs


def _load_config_or_exit(config: str) -> dict:
    try:
        return load_config(config)
    except FileNotFoundError as e:
        typer.echo(str(e))
        raise typer.Exit(code=1)


@app.command("list")
def list_lessons():
    """List discovered lessons in tour order."""
    specs = discover_lessons()
    if not specs:
        typer.echo(
            "No lessons discovered. Add modules under `flowtour/lessons/` and decorate flows with @lesson()."
        )
        raise typer.Exit(code=0)
    typer.echo("Lessons:")
    for name in Tour(specs).order:
        typer.echo(f"- {name}: {specs[name].summary}")


@app.command()
def run(
    name: str = typer.Argument(..., help="Lesson name to run"),
    config: str = typer.Option("configs/base.yaml", help="Path to YAML config"),
    retries: Optional[int] = typer.Option(None, help="Override the flow's retries"),
    refresh_cache: bool = typer.Option(False, help="Recompute cached task results"),
    runs_dir: Optional[str] = typer.Option(None, help="Where to record runs"),
):
    """Run a single lesson by name."""
    specs = discover_lessons()
    if name not in specs:
        typer.echo(f"Lesson not found: {name}")
        raise typer.Exit(code=1)
    params = _load_config_or_exit(config)
    try:
        record = run_lesson(
            specs[name],
            params,
            runs_dir=Path(runs_dir) if runs_dir else None,
            retries=retries,
            refresh_cache=refresh_cache,
            raise_on_failure=False,
        )
    except (KeyError, ValueError) as e:
        typer.echo(f"Cannot run {name}: {e}")
        raise typer.Exit(code=1)
    typer.echo(f"{record.lesson}: {record.state_name} ({record.run_dir})")
    if record.status != "completed":
        typer.echo(f"Error: {record.error}")
        raise typer.Exit(code=1)
    typer.echo(record.result)


@app.command()
def tour(
    config: str = typer.Option("configs/base.yaml", help="Path to YAML config"),
    from_lesson: str = typer.Option("", "--from", help="Start from this lesson"),
    until_lesson: str = typer.Option("", "--until", help="Stop after this lesson"),
    keep_going: bool = typer.Option(False, help="Continue after a failed lesson"),
    refresh_cache: bool = typer.Option(False, help="Recompute cached task results"),
    runs_dir: Optional[str] = typer.Option(None, help="Where to record runs"),
):
    """Run every lesson in order."""
    specs = discover_lessons()
    params = _load_config_or_exit(config)
    try:
        records = Tour(specs).run(
            params,
            runs_dir=Path(runs_dir) if runs_dir else None,
            from_lesson=from_lesson or None,
            until_lesson=until_lesson or None,
            refresh_cache=refresh_cache,
            keep_going=keep_going,
        )
    except (KeyError, ValueError) as e:
        typer.echo(f"Cannot run tour: {e}")
        raise typer.Exit(code=1)
    for record in records:
        typer.echo(f"- {record.lesson}: {record.state_name}")
    if any(r.status != "completed" for r in records):
        raise typer.Exit(code=1)


@app.command("show-config")
def show_config(
    config: str = typer.Option("configs/base.yaml", help="Path to YAML config"),
):
    """Print the flow parameters each lesson would run with."""
    specs = discover_lessons()
    params = _load_config_or_exit(config)
    try:
        resolved = {
            name: resolve_params(specs[name], params) for name in Tour(specs).order
        }
    except (KeyError, ValueError) as e:
        typer.echo(f"Invalid config: {e}")
        raise typer.Exit(code=1)
    typer.echo(json.dumps(resolved, indent=2, default=str))


def main():  # pragma: no cover
    app()


if __name__ == "__main__":  # pragma: no cover
    main()

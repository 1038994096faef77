"""First lesson: a flow that calls tasks and logs through the run logger."""

from __future__ import annotations

from prefect import flow, task

from ..core import lesson
from ..logging import get_logger


@task
def greet(name: str) -> str:
    logger = get_logger("hello.greet")
    message = f"Hello, {name}!"
    logger.info(message)
    return message


@task
def shout(message: str) -> str:
    return message.upper()


@lesson(
    name="hello",
    summary="Tasks called from a flow, with per-run logging",
    params=lambda cfg: cfg.get("hello") or {},
)
@flow(log_prints=True)
def hello(names: list[str] | None = None, loud: bool = False) -> list[str]:
    """Greet each name in its own task run."""
    names = names if names is not None else ["Marvin"]
    greetings = []
    for name in names:
        message = greet(name)
        if loud:
            message = shout(message)
        greetings.append(message)
    # log_prints=True sends this to the run logger as well as stdout
    print(f"Greeted {len(greetings)} name(s)")
    return greetings

"""storystore CLI — Typer application root.

Entry point for the ``storystore`` console script.

Commands:

``storystore id KIND NAME``::

    $ storystore id "Design System/Button" "Primary Large"
    design-system-button--primary-large

``storystore extract TARGET``::

    $ storystore extract my_stories.catalogue:register --indent 2

``TARGET`` is ``package.module:function``. The function receives a fresh
``StoryStore`` and registers stories on it; the ordered catalogue is then
printed as JSON with callables dropped from parameters.
"""
from __future__ import annotations

import enum
import importlib
import json
import logging
from collections.abc import Callable
from typing import Any

import typer

from storystore.config import get_settings
from storystore.core.ids import to_id
from storystore.core.scheduler import ManualScheduler
from storystore.core.story_store import StoryStore
from storystore.errors import InvalidSortConfigError, InvalidStoryIdError
from storystore.protocol.events import strip_callables

logger = logging.getLogger(__name__)


class ExitCode(enum.IntEnum):
    """Standardised CLI exit codes.

    0 — success
    1 — user error (bad arguments, invalid input)
    3 — internal error
    """

    SUCCESS = 0
    USER_ERROR = 1
    INTERNAL_ERROR = 3


cli = typer.Typer(
    name="storystore",
    help="Story registry tools: derive ids and print ordered catalogues.",
    no_args_is_help=True,
)


@cli.callback()
def _configure_logging() -> None:
    settings = get_settings()
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def load_target(target: str) -> Callable[[StoryStore], Any]:
    """Resolve ``package.module:function`` to the callable it names."""
    module_name, sep, attr = target.partition(":")
    if not sep or not module_name or not attr:
        raise ValueError(f"Target must look like 'package.module:function', got '{target}'")
    module = importlib.import_module(module_name)
    register = getattr(module, attr, None)
    if not callable(register):
        raise ValueError(f"'{attr}' in module '{module_name}' is not callable")
    return register


@cli.command("id", help="Print the story id derived from KIND and NAME.")
def story_id(
    kind: str = typer.Argument(..., help="Story kind, e.g. 'Design System/Button'."),
    name: str = typer.Argument(..., help="Story name, e.g. 'Primary'."),
) -> None:
    try:
        typer.echo(to_id(kind, name))
    except InvalidStoryIdError as exc:
        typer.echo(f"❌ {exc}", err=True)
        raise typer.Exit(code=ExitCode.USER_ERROR)


@cli.command("extract", help="Register stories from TARGET and print the ordered catalogue.")
def extract(
    target: str = typer.Argument(..., help="Registration function as 'package.module:function'."),
    include_docs_only: bool = typer.Option(
        False, "--include-docs-only", help="Include stories marked docsOnly."
    ),
    indent: int = typer.Option(2, "--indent", min=0, help="JSON indentation."),
) -> None:
    try:
        register = load_target(target)
    except (ImportError, ValueError) as exc:
        typer.echo(f"❌ {exc}", err=True)
        raise typer.Exit(code=ExitCode.USER_ERROR)

    store = StoryStore(scheduler=ManualScheduler())
    try:
        register(store)
        catalogue = store.extract(include_docs_only=include_docs_only)
    except (InvalidSortConfigError, InvalidStoryIdError) as exc:
        typer.echo(f"❌ {exc}", err=True)
        raise typer.Exit(code=ExitCode.USER_ERROR)
    except Exception as exc:
        logger.exception(f"extract failed for {target}")
        typer.echo(f"storystore extract failed: {exc}", err=True)
        raise typer.Exit(code=ExitCode.INTERNAL_ERROR)
    finally:
        store.dispose()

    payload = {
        sid: strip_callables(view.model_dump(by_alias=True))
        for sid, view in catalogue.items()
    }
    typer.echo(json.dumps(payload, indent=indent or None, default=str))


if __name__ == "__main__":
    cli()

"""Custom Click base classes and shared parameters.

HaloCommand and HaloGroup accept an ``examples`` parameter: ``--examples``
prints usage examples and exits, which keeps ``--help`` short.
``document_argument`` is the Markdown file argument shared by publish and
pull; ``OnOff`` parses the ``on``/``off`` switches of the site commands.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import click


def _add_examples_option(cmd: click.Command, examples: str) -> None:
    """Attach an eager ``--examples`` flag to a Click command or group."""

    def show_examples(ctx: click.Context, _param: click.Parameter, value: bool) -> None:
        if not value:
            return
        click.echo(f"Examples for '{ctx.command_path}':\n")
        click.echo(examples)
        ctx.exit(0)

    cmd.params.append(
        click.Option(
            ["--examples"],
            is_flag=True,
            expose_value=False,
            is_eager=True,
            callback=show_examples,
            help="Show usage examples.",
        )
    )


class HaloCommand(click.Command):
    """Click Command subclass that supports an ``--examples`` flag."""

    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.examples = examples
        if examples:
            _add_examples_option(self, examples)


class HaloGroup(click.Group):
    """Click Group subclass that supports an ``--examples`` flag.

    Subcommands default to :class:`HaloCommand`, so ``examples=`` works
    on ``@group.command()`` without an explicit ``cls=``.
    """

    command_class = HaloCommand

    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.examples = examples
        if examples:
            _add_examples_option(self, examples)


def document_argument(func: Any) -> Any:
    """The Markdown document a command reads and rewrites in place."""
    return click.argument(
        "document",
        metavar="FILE",
        type=click.Path(exists=True, dir_okay=False, writable=True, path_type=Path),
    )(func)


class OnOff(click.ParamType):
    """``on``/``off`` (also ``true``/``false``, ``yes``/``no``, ``1``/``0``)."""

    name = "on|off"

    _VALUES = {
        "on": True,
        "true": True,
        "yes": True,
        "1": True,
        "off": False,
        "false": False,
        "no": False,
        "0": False,
    }

    def convert(self, value: Any, param: click.Parameter | None, ctx: click.Context | None) -> bool:
        if isinstance(value, bool):
            return value
        try:
            return self._VALUES[str(value).strip().lower()]
        except KeyError:
            self.fail(f"{value!r} is not one of on, off", param, ctx)

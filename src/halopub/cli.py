"""The ``halopub`` entry point.

Global flags are parsed once here into :class:`HaloSettings`; every
subcommand reads them back through the :class:`AppContext` on ``ctx.obj``.
"""

from __future__ import annotations

from typing import Any

import click

from halopub import __version__
from halopub.commands import register_commands
from halopub.commands._base import HaloGroup
from halopub.commands._context import AppContext
from halopub.config.settings import HaloSettings

_EXAMPLES = """\
  halopub site add https://blog.example.com pat_xxx
  halopub publish post.md
  halopub --json pull post.md
  halopub -c ~/blog/halopub.toml --no-interact publish post.md"""

# Boolean flags that map one-to-one onto HaloSettings fields.
_SETTINGS_FLAGS = (
    click.option("--json", "json_output", is_flag=True, help="Print results as JSON."),
    click.option("-q", "--quiet", is_flag=True, help="Print one line per result."),
    click.option("-v", "--verbose", is_flag=True, help="Debug logs and timing spans."),
    click.option("--log-json", is_flag=True, help="Write logs to stderr as JSON lines."),
    click.option("--no-interact", is_flag=True, help="Never prompt; use the default site."),
)


def _settings_flags(func: Any) -> Any:
    for option in reversed(_SETTINGS_FLAGS):
        func = option(func)
    return func


@click.group(
    cls=HaloGroup,
    invoke_without_command=True,
    examples=_EXAMPLES,
    context_settings={"help_option_names": ["-h", "--help"]},
)
@click.version_option(__version__, prog_name="halopub")
@_settings_flags
@click.option(
    "-c",
    "--config",
    "config_path",
    metavar="PATH",
    default=None,
    help="Read this halopub.toml instead of searching upwards.",
)
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, **flags: bool) -> None:
    """Publish Markdown documents to Halo and pull them back."""
    ctx.obj = AppContext(HaloSettings.from_cli(config_path=config_path, **flags))
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


register_commands(cli)

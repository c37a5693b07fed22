"""Command: publish a Markdown document to a Halo site."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from halopub.commands._base import HaloCommand, document_argument

if TYPE_CHECKING:
    from pathlib import Path

    from halopub.commands._context import AppContext
    from halopub.domain.sites import Site


def prompt_site(sites: list[Site]) -> Site | None:
    """Ask for a site by its 1-based number; anything else cancels."""
    click.echo("Select the Halo site to publish to:", err=True)
    for index, site in enumerate(sites, start=1):
        marker = " (default)" if site.default else ""
        click.echo(f"  {index}. {site.label}{marker}", err=True)
    try:
        answer = click.prompt("Site number", default="1", err=True)
    except click.Abort:
        return None
    try:
        index = int(str(answer).strip()) - 1
    except ValueError:
        index = -1
    if not 0 <= index < len(sites):
        click.echo("Invalid site number", err=True)
        return None
    return sites[index]


@click.command(
    cls=HaloCommand,
    examples="""\
  halopub publish post.md
  halopub publish --default post.md
  halopub --no-interact publish post.md
  halopub --json publish post.md""",
)
@document_argument
@click.option("--default", "use_default", is_flag=True, help="Publish to the default site.")
@click.pass_obj
def publish(app: AppContext, document: Path, use_default: bool) -> None:
    """Create or update the Halo post for FILE and write the result back.

    Without --default the site comes from the document's remote block,
    the only configured site, an interactive prompt, or the default site,
    in that order.
    """
    from halopub.infrastructure.filesystem import FileEditor

    registry = app.sites.load_registry()
    result = app.run(
        app.reconciler.publish,
        FileEditor(document),
        registry,
        use_default=use_default,
        ask_user=app.is_interactive,
        choose_site=prompt_site,
    )
    app.emit(result)

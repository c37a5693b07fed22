"""Command: refresh a document from its Halo post."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from halopub.commands._base import HaloCommand, document_argument

if TYPE_CHECKING:
    from pathlib import Path

    from halopub.commands._context import AppContext


@click.command(
    cls=HaloCommand,
    examples="""\
  halopub pull post.md
  halopub --json pull post.md""",
)
@document_argument
@click.pass_obj
def pull(app: AppContext, document: Path) -> None:
    """Replace FILE's metadata and body with its published Halo post."""
    from halopub.infrastructure.filesystem import FileEditor

    result = app.run(app.reconciler.pull, FileEditor(document), app.sites.load_registry())
    app.emit(result)

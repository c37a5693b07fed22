"""Subcommand modules for halopub.

Provides register_commands() which uses deferred imports to keep
``halopub --help`` fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register the site group and the publish/pull commands on the root group."""
    # --- Groups ---
    from halopub.commands.site import site

    cli.add_command(site)

    # --- Standalone commands ---
    from halopub.commands.publish import publish
    from halopub.commands.pull import pull

    cli.add_command(publish)
    cli.add_command(pull)

"""Command group: configure Halo sites."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from halopub.commands._base import HaloGroup, OnOff

if TYPE_CHECKING:
    from halopub.commands._context import AppContext

_SITE_EXAMPLES = """\
  halopub site list
  halopub site add https://blog.example.com pat_xxx --name blog
  halopub site add docs.example.com pat_yyy --default
  halopub site default blog
  halopub site remove https://docs.example.com
  halopub site publish-default off"""


@click.group(cls=HaloGroup, examples=_SITE_EXAMPLES)
@click.pass_obj
def site(app: AppContext) -> None:
    """List, add, remove and choose Halo sites."""


@site.command(
    "list",
    examples="""\
  halopub site list
  halopub --quiet site list""",
)
@click.pass_obj
def list_cmd(app: AppContext) -> None:
    """List configured sites (tokens masked)."""
    app.emit(app.sites.list_sites())


@site.command(
    examples="""\
  halopub site add https://blog.example.com pat_xxx
  halopub site add blog.example.com pat_xxx --name blog --default""",
)
@click.argument("url")
@click.argument("token")
@click.option("--name", default="", help="Short name used in prompts and lookups.")
@click.option("--default", "make_default", is_flag=True, help="Make this the default site.")
@click.pass_obj
def add(app: AppContext, url: str, token: str, name: str, make_default: bool) -> None:
    """Add a site by URL and personal access token."""
    app.emit(app.sites.add_site(url, token, name=name, make_default=make_default))


@site.command(
    examples="""\
  halopub site remove blog
  halopub site remove https://blog.example.com""",
)
@click.argument("site_ref", metavar="SITE")
@click.pass_obj
def remove(app: AppContext, site_ref: str) -> None:
    """Remove a site by id, URL or name."""
    app.emit(app.sites.remove_site(site_ref))


@site.command(
    examples="""\
  halopub site default blog""",
)
@click.argument("site_ref", metavar="SITE")
@click.pass_obj
def default(app: AppContext, site_ref: str) -> None:
    """Mark a site as the default."""
    app.emit(app.sites.set_default(site_ref))


@site.command(
    "publish-default",
    examples="""\
  halopub site publish-default on
  halopub site publish-default off""",
)
@click.argument("enabled", type=OnOff())
@click.pass_obj
def publish_default(app: AppContext, enabled: bool) -> None:
    """Publish new saves immediately (on) or keep them as drafts (off).

    A ``publish: true/false`` in a document's remote block always wins.
    """
    app.emit(app.sites.set_publish_default(enabled))

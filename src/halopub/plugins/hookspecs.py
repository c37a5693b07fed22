"""Pluggy hook specifications for halopub.

One rendering hook turns a Markdown body into the HTML stored next to it
on the server. Two lifecycle events fire after a successful publish or
pull; their failures are reported as warnings.
"""

from __future__ import annotations

import pluggy

hookspec = pluggy.HookspecMarker("halopub")


class HalopubHookSpec:
    """Hook specifications for the halopub plugin system."""

    @hookspec(firstresult=True)
    def render_markdown(self, markdown: str) -> str | None:
        """Render a Markdown body to HTML.

        The first non-None result wins. Plugins registered later are asked
        first, so installed and local renderers override the built-in
        CommonMark one; the minimal built-in renderer is ``trylast``.
        """

    @hookspec
    def post_publish(
        self,
        site_url: str,
        name: str,
        title: str,
        published: bool,
        created: bool,
    ) -> None:
        """Called after a document was written to its remote post."""

    @hookspec
    def post_pull(self, site_url: str, name: str) -> None:
        """Called after a document was refreshed from its remote post."""

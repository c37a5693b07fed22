"""Remote linkage — the ``remote`` block tying a document to a Halo post.

INVARIANT: ``name`` is non-empty iff the document has been published.
The block is the only durable state linking a file to its remote post;
losing it means the next publish creates a new post.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel

if TYPE_CHECKING:
    from halopub.domain.frontmatter import Value

LINKAGE_KEY = "remote"


class RemoteLinkage(BaseModel):
    """Site URL, post name and desired publish flag read from front matter."""

    model_config = {"frozen": True}

    site: str = ""
    name: str = ""
    publish: bool | None = None

    @property
    def is_linked(self) -> bool:
        """True when both the site and the remote post name are known."""
        return bool(self.site and self.name)

    @classmethod
    def from_front_matter(cls, front_matter: dict[str, Value]) -> RemoteLinkage:
        """Read the linkage block, ignoring values of the wrong shape."""
        block = front_matter.get(LINKAGE_KEY)
        if not isinstance(block, dict):
            return cls()
        site = block.get("site")
        name = block.get("name")
        publish = block.get("publish")
        return cls(
            site=site.strip() if isinstance(site, str) else "",
            name=name.strip() if isinstance(name, str) else "",
            publish=publish if isinstance(publish, bool) else None,
        )

    def to_value(self) -> dict[str, Value]:
        """Front-matter representation; ``publish`` is always written."""
        return {
            "site": self.site,
            "name": self.name,
            "publish": bool(self.publish),
        }

"""Halo post and content models plus the rules for filling them from a document.

``Post`` mirrors the Halo ``content.halo.run/v1alpha1`` ``Post`` resource.
Only the fields the reconciliation touches are declared; every other
server field is kept as an extra and written back untouched, so an
update never drops data the server sent.
"""

from __future__ import annotations

import copy
import re
import unicodedata
import uuid
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from halopub.domain.frontmatter import Value

API_VERSION = "content.halo.run/v1alpha1"

# Snapshot annotations used by the Halo console.
CONTENT_JSON_ANNOTATION = "content.halo.run/content-json"
PATCHED_CONTENT_ANNOTATION = "content.halo.run/patched-content"
PATCHED_RAW_ANNOTATION = "content.halo.run/patched-raw"

_TITLE_MAX_CHARS = 80
_HEADING_RE = re.compile(r"^#\s+(.+)$", re.MULTILINE)

_EMPTY_POST: dict[str, Any] = {
    "apiVersion": API_VERSION,
    "kind": "Post",
    "metadata": {"annotations": {}, "name": ""},
    "spec": {
        "allowComment": True,
        "baseSnapshot": "",
        "categories": [],
        "cover": "",
        "deleted": False,
        "excerpt": {"autoGenerate": True, "raw": ""},
        "headSnapshot": "",
        "htmlMetas": [],
        "owner": "",
        "pinned": False,
        "priority": 0,
        "publish": False,
        "publishTime": "",
        "releaseSnapshot": "",
        "slug": "",
        "tags": [],
        "template": "",
        "title": "",
        "visible": "PUBLIC",
    },
}

_RESOURCE_CONFIG = ConfigDict(extra="allow", populate_by_name=True)


class Excerpt(BaseModel):
    model_config = _RESOURCE_CONFIG

    auto_generate: bool = Field(default=True, alias="autoGenerate")
    raw: str | None = ""


class PostMetadata(BaseModel):
    model_config = _RESOURCE_CONFIG

    name: str = ""
    annotations: dict[str, str] | None = Field(default_factory=dict)


class PostSpec(BaseModel):
    model_config = _RESOURCE_CONFIG

    title: str = ""
    slug: str = ""
    cover: str | None = ""
    excerpt: Excerpt = Field(default_factory=Excerpt)
    categories: list[str] | None = Field(default_factory=list)
    tags: list[str] | None = Field(default_factory=list)
    publish: bool | None = False


class Post(BaseModel):
    """A Halo post resource (identifier = ``metadata.name``)."""

    model_config = _RESOURCE_CONFIG

    api_version: str = Field(default=API_VERSION, alias="apiVersion")
    kind: str = "Post"
    metadata: PostMetadata = Field(default_factory=PostMetadata)
    spec: PostSpec = Field(default_factory=PostSpec)

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def is_published(self) -> bool:
        return bool(self.spec.publish)

    def to_payload(self) -> dict[str, Any]:
        """JSON body for the Halo API (camelCase, extras included)."""
        return self.model_dump(mode="json", by_alias=True)


class PostContent(BaseModel):
    """Raw Markdown and rendered HTML, always written together.

    The rendered HTML travels as ``content`` on the wire.
    """

    model_config = ConfigDict(populate_by_name=True)

    raw_type: str = Field(default="markdown", alias="rawType")
    raw: str = ""
    rendered: str = Field(default="", alias="content")

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class FetchedPost(BaseModel):
    """A post together with its patched draft content."""

    post: Post
    content: PostContent


def new_post() -> Post:
    """Empty post template with explicit Halo defaults."""
    return Post.model_validate(copy.deepcopy(_EMPTY_POST))


def new_content() -> PostContent:
    return PostContent()


# ---------------------------------------------------------------------------
# Document -> post rules
# ---------------------------------------------------------------------------


def apply_front_matter(front_matter: dict[str, Value], post: Post) -> None:
    """Copy explicit title/slug/cover/excerpt overrides onto *post*.

    The excerpt is auto-generated unless the front matter sets one, in
    which case auto-generation is switched off and the text kept verbatim.
    """
    for key in ("title", "slug", "cover"):
        value = front_matter.get(key)
        if _present(value):
            setattr(post.spec, key, str(value))

    excerpt = front_matter.get("excerpt")
    if _present(excerpt):
        post.spec.excerpt = Excerpt(auto_generate=False, raw=str(excerpt))
    else:
        post.spec.excerpt = Excerpt(auto_generate=True, raw="")


def _present(value: Value) -> bool:
    return value is not None and value is not False and value != "" and value != 0


def normalize_string_list(value: Value) -> list[str]:
    """Accept a sequence or a comma-separated string; drop blanks.

    Examples:
        >>> normalize_string_list("a, b,,c")
        ['a', 'b', 'c']
        >>> normalize_string_list(["x", 3, " "])
        ['x', '3']
    """
    if isinstance(value, list):
        items = [_scalar_text(item) for item in value]
    elif isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, bool) or value is None or isinstance(value, dict):
        return []
    else:
        items = [str(value)]
    return [item.strip() for item in items if item.strip()]


def _scalar_text(item: Value) -> str:
    if isinstance(item, (dict, list)) or item is None:
        return ""
    return str(item)


def extract_title(markdown: str, *, fallback: str) -> str:
    """First ``# heading``, else the first non-blank line (80 chars), else *fallback*."""
    match = _HEADING_RE.search(markdown)
    if match:
        return match.group(1).strip()
    for line in markdown.split("\n"):
        if line.strip():
            return line.strip()[:_TITLE_MAX_CHARS]
    return fallback


def slugify(text: str) -> str:
    """ASCII slug; a random UUID when nothing survives.

    Examples:
        >>> slugify("Héllo, World!")
        'hello-world'
    """
    normalized = unicodedata.normalize("NFKD", str(text or ""))
    stripped = "".join(ch for ch in normalized if not unicodedata.combining(ch))
    stripped = re.sub(r"[^a-zA-Z0-9\s-]", "", stripped).strip()
    slug = re.sub(r"-+", "-", re.sub(r"\s+", "-", stripped)).lower()
    return slug or str(uuid.uuid4())

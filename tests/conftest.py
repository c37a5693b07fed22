"""Shared pytest fixtures for halopub tests.

``FakeHalo`` is an in-memory Halo server behind ``httpx.MockTransport``:
the client, engine and CLI tests all talk to it instead of the network.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import httpx
import pytest
from click.testing import CliRunner

from halopub.commands._context import AppContext
from halopub.domain.posts import (
    CONTENT_JSON_ANNOTATION,
    PATCHED_CONTENT_ANNOTATION,
    PATCHED_RAW_ANNOTATION,
)
from halopub.domain.sites import Site, SiteRegistry
from halopub.infrastructure.halo_client import CONTENT_API_PATH, POSTS_PATH, HaloClient
from halopub.services.reconcile import ReconcileService
from halopub.services.telemetry import disable_telemetry

SITE_URL = "https://halo.test"
SITE_TOKEN = "pat_secret_token_1234"


class FakeHalo:
    """Minimal Halo content API kept in dictionaries.

    ``fail`` maps ``(method, path)`` to an HTTP status returned instead of
    the normal response; ``requests`` records every ``(method, path)``.
    """

    def __init__(self) -> None:
        self.posts: dict[str, dict[str, Any]] = {}
        self.drafts: dict[str, dict[str, Any]] = {}
        self.terms: dict[str, list[dict[str, Any]]] = {"categories": [], "tags": []}
        self.requests: list[tuple[str, str]] = []
        self.auth_headers: list[str] = []
        self.fail: dict[tuple[str, str], int] = {}
        self.transport = httpx.MockTransport(self.handle)
        self._counter = 0

    # --- Inspection helpers ---

    @property
    def writes(self) -> list[tuple[str, str]]:
        return [(method, path) for method, path in self.requests if method != "GET"]

    def add_term(self, namespace: str, display_name: str) -> str:
        """Seed a category or tag; returns its identifier."""
        self._counter += 1
        prefix = "category" if namespace == "categories" else "tag"
        name = f"{prefix}-seed{self._counter}"
        self.terms[namespace].append(
            {"metadata": {"name": name}, "spec": {"displayName": display_name}}
        )
        return name

    def term_names(self, namespace: str) -> list[str]:
        return [item["spec"]["displayName"] for item in self.terms[namespace]]

    def raw_content(self, name: str) -> str:
        return self.drafts[name]["metadata"]["annotations"][PATCHED_RAW_ANNOTATION]

    # --- Transport ---

    def handle(self, request: httpx.Request) -> httpx.Response:
        method, path = request.method, request.url.path
        self.requests.append((method, path))
        self.auth_headers.append(request.headers.get("Authorization", ""))
        status = self.fail.get((method, path))
        if status is not None:
            return httpx.Response(status, text=f"forced {status}")

        body = json.loads(request.content) if request.content else None
        if path.startswith(POSTS_PATH):
            return self._handle_posts(method, path[len(POSTS_PATH) :].strip("/"), body)
        if path.startswith(CONTENT_API_PATH):
            namespace = path[len(CONTENT_API_PATH) :].strip("/")
            return self._handle_terms(method, namespace, body)
        return httpx.Response(404, text="unknown path")

    def _handle_posts(self, method: str, rest: str, body: Any) -> httpx.Response:
        parts = rest.split("/") if rest else []
        if not parts and method == "POST":
            name = body["metadata"]["name"]
            self.posts[name] = body
            self.drafts[name] = {
                "metadata": {"name": f"{name}-snapshot", "annotations": {}},
                "spec": {"rawType": "markdown"},
            }
            self._apply_content(name, body["metadata"]["annotations"][CONTENT_JSON_ANNOTATION])
            return httpx.Response(200, json=body)

        if not parts or parts[0] not in self.posts:
            return httpx.Response(404, json={"title": "Not Found"})
        name = parts[0]

        if len(parts) == 1:
            if method == "GET":
                return httpx.Response(200, json=self.posts[name])
            if method == "PUT":
                self.posts[name] = body
                return httpx.Response(200, json=body)
        elif parts[1] == "draft":
            if method == "GET":
                return httpx.Response(200, json=self.drafts[name])
            if method == "PUT":
                self.drafts[name] = body
                self._apply_content(name, body["metadata"]["annotations"][CONTENT_JSON_ANNOTATION])
                return httpx.Response(200, json=body)
        elif parts[1] in ("publish", "unpublish") and method == "PUT":
            self.posts[name]["spec"]["publish"] = parts[1] == "publish"
            return httpx.Response(200, json=self.posts[name])
        return httpx.Response(405, text="method not allowed")

    def _apply_content(self, name: str, content_json: str) -> None:
        content = json.loads(content_json)
        annotations = self.drafts[name]["metadata"]["annotations"]
        annotations[PATCHED_RAW_ANNOTATION] = content["raw"]
        annotations[PATCHED_CONTENT_ANNOTATION] = content["content"]

    def _handle_terms(self, method: str, namespace: str, body: Any) -> httpx.Response:
        if namespace not in self.terms:
            return httpx.Response(404, text="unknown taxonomy")
        if method == "GET":
            return httpx.Response(200, json={"items": self.terms[namespace]})
        if method == "POST":
            self._counter += 1
            item = dict(body)
            item["metadata"] = {"name": f"{body['metadata']['generateName']}{self._counter}"}
            self.terms[namespace].append(item)
            return httpx.Response(200, json=item)
        return httpx.Response(405, text="method not allowed")


class MemoryEditor:
    """Document editor over an in-memory string; counts writes."""

    def __init__(self, text: str) -> None:
        self.text = text
        self.writes = 0

    def get_value(self) -> str:
        return self.text

    def set_value(self, text: str) -> None:
        self.text = text
        self.writes += 1


@pytest.fixture(autouse=True)
def _reset_telemetry() -> Iterator[None]:
    """``--verbose`` CLI runs enable telemetry; keep it from leaking between tests."""
    yield
    disable_telemetry()


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def fake_halo() -> FakeHalo:
    return FakeHalo()


@pytest.fixture
def site() -> Site:
    return Site(name="main", url=SITE_URL, token=SITE_TOKEN, default=True)


@pytest.fixture
def registry(site: Site) -> SiteRegistry:
    return SiteRegistry(sites=[site])


@pytest.fixture
def client_factory(fake_halo: FakeHalo) -> Callable[[Site], HaloClient]:
    def factory(target: Site) -> HaloClient:
        return HaloClient(target, timeout=5.0, transport=fake_halo.transport)

    return factory


@pytest.fixture
def client(site: Site, client_factory: Callable[[Site], HaloClient]) -> HaloClient:
    return client_factory(site)


@pytest.fixture
def engine(client_factory: Callable[[Site], HaloClient]) -> ReconcileService:
    return ReconcileService(client_factory=client_factory)


@pytest.fixture
def make_editor() -> Callable[[str], MemoryEditor]:
    return MemoryEditor


@pytest.fixture
def workspace(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, fake_halo: FakeHalo) -> Path:
    """CWD set to an empty workspace; CLI HTTP traffic goes to ``fake_halo``.

    Use on command tests. The settings store lands in
    ``<workspace>/.halopub/storage.json``.
    """
    monkeypatch.delenv("HALOPUB_CONFIG", raising=False)
    (tmp_path / "halopub.toml").write_text("", encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(AppContext, "transport", fake_halo.transport)
    return tmp_path

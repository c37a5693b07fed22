"""Tests for the service payload contracts."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from halopub.services.contracts import (
    PublishResultData,
    SiteChangeData,
    SiteItem,
    dump_validated,
)

PUBLISH_DATA = {
    "status": "published",
    "site": "https://halo.test",
    "site_label": "main",
    "name": "post-1",
    "title": "Hello",
    "slug": "hello",
    "created": True,
    "published": True,
    "categories": [],
    "tags": ["python"],
}


class TestDumpValidated:
    def test_round_trips_valid_payload(self) -> None:
        assert dump_validated(PublishResultData, PUBLISH_DATA) == PUBLISH_DATA

    def test_missing_key_fails_fast(self) -> None:
        data = dict(PUBLISH_DATA)
        del data["site"]
        data["site_url"] = "https://halo.test"
        with pytest.raises(ValidationError):
            dump_validated(PublishResultData, data)

    def test_status_restricted(self) -> None:
        with pytest.raises(ValidationError):
            dump_validated(PublishResultData, {**PUBLISH_DATA, "status": "cancelled"})


class TestSiteItem:
    def test_extra_fields_rejected(self) -> None:
        with pytest.raises(ValidationError):
            SiteItem.model_validate(
                {"id": "1", "name": "", "url": "u", "token": "****", "default": True, "raw": "x"}
            )

    def test_change_payload_allows_no_default(self) -> None:
        item = {"id": "1", "name": "", "url": "u", "token": "****", "default": False}
        data = dump_validated(SiteChangeData, {"site": item, "default_site": None, "count": 0})
        assert data["default_site"] is None
        assert data["site"] == item

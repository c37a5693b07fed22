"""Tests for the remote linkage block."""

from __future__ import annotations

from halopub.domain.linkage import LINKAGE_KEY, RemoteLinkage


class TestFromFrontMatter:
    def test_reads_block(self) -> None:
        linkage = RemoteLinkage.from_front_matter(
            {LINKAGE_KEY: {"site": " https://halo.test ", "name": "post-1", "publish": False}}
        )
        assert linkage.site == "https://halo.test"
        assert linkage.name == "post-1"
        assert linkage.publish is False
        assert linkage.is_linked

    def test_missing_block(self) -> None:
        linkage = RemoteLinkage.from_front_matter({"title": "x"})
        assert linkage == RemoteLinkage()
        assert not linkage.is_linked

    def test_block_of_wrong_shape(self) -> None:
        assert RemoteLinkage.from_front_matter({LINKAGE_KEY: "post-1"}) == RemoteLinkage()

    def test_wrong_typed_values_ignored(self) -> None:
        linkage = RemoteLinkage.from_front_matter(
            {LINKAGE_KEY: {"site": 3, "name": ["a"], "publish": "yes"}}
        )
        assert linkage == RemoteLinkage()

    def test_publish_only_block_is_not_linked(self) -> None:
        linkage = RemoteLinkage.from_front_matter({LINKAGE_KEY: {"publish": True}})
        assert linkage.publish is True
        assert not linkage.is_linked

    def test_name_without_site_is_not_linked(self) -> None:
        linkage = RemoteLinkage.from_front_matter({LINKAGE_KEY: {"name": "post-1"}})
        assert not linkage.is_linked


class TestToValue:
    def test_publish_always_written(self) -> None:
        assert RemoteLinkage(site="s", name="n").to_value() == {
            "site": "s",
            "name": "n",
            "publish": False,
        }

    def test_round_trips_through_front_matter(self) -> None:
        linkage = RemoteLinkage(site="https://halo.test", name="n", publish=True)
        assert RemoteLinkage.from_front_matter({LINKAGE_KEY: linkage.to_value()}) == linkage

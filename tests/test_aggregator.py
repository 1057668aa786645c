"""Tests for the aggregator."""

from yggcrawl.aggregator import CrawlSummary, aggregate
from yggcrawl.models import NodeRecord


def _record(key: str, peers=None, dht=None, **info: str) -> NodeRecord:
    return NodeRecord(
        key=key,
        address="200::",
        nodeinfo=info or None,
        peers=tuple(peers) if peers is not None else None,
        dht=tuple(dht) if dht is not None else None,
    )


class TestAggregate:
    """aggregate() statistics."""

    def test_empty(self) -> None:
        assert aggregate([]) == CrawlSummary()

    def test_node_count(self) -> None:
        summary = aggregate([_record("a"), _record("b")])
        assert summary.node_count == 2

    def test_links_are_undirected_and_unique(self) -> None:
        records = [
            _record("a", peers=["b", "c"]),
            _record("b", peers=["a"]),
            _record("c", peers=["a", "b"]),
        ]
        # a-b, a-c, b-c
        assert aggregate(records).link_count == 3

    def test_self_links_ignored(self) -> None:
        assert aggregate([_record("a", peers=["a"])]).link_count == 0

    def test_unreachable_keys(self) -> None:
        records = [
            _record("a", peers=["b", "x"], dht=["y"]),
            _record("b", peers=["a"]),
        ]
        assert aggregate(records).unreachable == ["x", "y"]

    def test_build_distribution_sorted_desc(self) -> None:
        records = [
            _record("a", buildname="yggdrasil", buildversion="0.4.7"),
            _record("b", buildname="yggdrasil", buildversion="0.5.1"),
            _record("c", buildname="yggdrasil", buildversion="0.5.1"),
            _record("d"),
        ]
        assert aggregate(records).build_distribution == [
            ("yggdrasil 0.5.1", 2),
            ("yggdrasil 0.4.7", 1),
        ]

    def test_platform_distribution(self) -> None:
        records = [
            _record("a", buildplatform="linux", buildarch="amd64"),
            _record("b", buildplatform="linux", buildarch="arm64"),
            _record("c", buildplatform="linux", buildarch="amd64"),
            _record("d", buildplatform="openbsd"),
        ]
        assert aggregate(records).platform_distribution == [
            ("linux/amd64", 2),
            ("linux/arm64", 1),
            ("openbsd", 1),
        ]

    def test_ties_broken_by_label(self) -> None:
        records = [
            _record("a", buildname="zeta"),
            _record("b", buildname="alpha"),
        ]
        assert aggregate(records).build_distribution == [("alpha", 1), ("zeta", 1)]

"""Aggregator: link count, unreachable keys, build and platform breakdown."""

import logging
from collections import Counter
from dataclasses import dataclass, field

from yggcrawl.models import NodeRecord

logger = logging.getLogger(__name__)


@dataclass
class CrawlSummary:
    """Aggregated statistics computed from a set of node records.

    Attributes:
        node_count: Number of recorded nodes.
        link_count: Unique undirected peer links reported by any node.
        unreachable: Keys listed as a peer or DHT entry that produced no
            record, sorted.
        build_distribution: ``("name version", count)`` pairs sorted by
            count descending.
        platform_distribution: ``("platform/arch", count)`` pairs sorted by
            count descending.
    """

    node_count: int = 0
    link_count: int = 0
    unreachable: list[str] = field(default_factory=list)
    build_distribution: list[tuple[str, int]] = field(default_factory=list)
    platform_distribution: list[tuple[str, int]] = field(default_factory=list)


def aggregate(records: list[NodeRecord]) -> CrawlSummary:
    """Compute aggregate statistics from a list of node records.

    Args:
        records: Completed records, in any order.

    Returns:
        A ``CrawlSummary``.
    """
    recorded = {r.key for r in records}
    links: set[frozenset[str]] = set()
    referenced: set[str] = set()
    builds: Counter[str] = Counter()
    platforms: Counter[str] = Counter()

    for record in records:
        for peer in record.peers or ():
            if peer != record.key:
                links.add(frozenset((record.key, peer)))
        referenced.update(record.peers or ())
        referenced.update(record.dht or ())

        info = record.nodeinfo or {}
        build = _join(info.get("buildname"), info.get("buildversion"), " ")
        if build:
            builds[build] += 1
        platform = _join(info.get("buildplatform"), info.get("buildarch"), "/")
        if platform:
            platforms[platform] += 1

    return CrawlSummary(
        node_count=len(recorded),
        link_count=len(links),
        unreachable=sorted(referenced - recorded),
        build_distribution=_sorted_counts(builds),
        platform_distribution=_sorted_counts(platforms),
    )


def _join(first: object, second: object, sep: str) -> str:
    """Join the non-empty parts of a nodeinfo pair."""
    return sep.join(str(part) for part in (first, second) if part)


def _sorted_counts(counts: Counter[str]) -> list[tuple[str, int]]:
    # Ties broken by label so output is stable.
    return sorted(counts.items(), key=lambda item: (-item[1], item[0]))

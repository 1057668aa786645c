"""Data models: NodeRecord, ProbeOutcome, CrawlRun dataclasses."""

from dataclasses import dataclass, field
from datetime import UTC, datetime


@dataclass(frozen=True)
class NodeRecord:
    """Everything learned about one overlay node.

    Fields stay ``None`` when the node did not report them.

    Attributes:
        key: Hex public key; the node's identity in the crawl graph.
        address: IPv6 form of the address derived from *key*.
        nodeinfo: Opaque mapping the node publishes about itself.
        coords: Opaque routing coordinates from ``debug_remoteGetSelf``.
        peers: Keys of directly connected peers.
        dht: Keys from the node's DHT table.
        timestamp: Unix time the probe completed.
    """

    key: str
    address: str
    nodeinfo: dict | None = None
    coords: object = None
    peers: tuple[str, ...] | None = None
    dht: tuple[str, ...] | None = None
    timestamp: int = 0

    def to_dict(self) -> dict:
        """Report entry for this node, without the key itself."""
        entry: dict = {"address": self.address}
        if self.nodeinfo is not None:
            entry["nodeinfo"] = self.nodeinfo
        if self.coords is not None:
            entry["coords"] = self.coords
        if self.peers is not None:
            entry["peers"] = list(self.peers)
        if self.dht is not None:
            entry["dht"] = list(self.dht)
        entry["time"] = self.timestamp
        return entry


@dataclass(frozen=True)
class ProbeOutcome:
    """A completed probe: the record plus the keys to fan out on."""

    record: NodeRecord
    peers: tuple[str, ...] = ()
    dht: tuple[str, ...] = ()

    @property
    def neighbours(self) -> tuple[str, ...]:
        return self.peers + self.dht


@dataclass
class CrawlRun:
    """Audit record for a single crawl.

    Attributes:
        seed: Key the crawl started from.
        node_count: Records emitted to the sink.
        abandoned: Probes that ended without a record.
        duration_seconds: Wall-clock duration of the crawl.
        timestamp: When the crawl started (UTC).
    """

    seed: str
    node_count: int = 0
    abandoned: int = 0
    duration_seconds: float = 0.0
    timestamp: datetime = field(
        default_factory=lambda: datetime.now(UTC),
    )

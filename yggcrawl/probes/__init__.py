"""Query registry and abstract Query base class."""

from __future__ import annotations

from abc import ABC, abstractmethod


class Query(ABC):
    """One admin RPC issued against a remote node.

    Each concrete subclass names the RPC method and knows how to pull
    its fields out of the ``response`` payload.
    """

    method: str

    @abstractmethod
    def extract(self, payload: dict) -> dict | None:
        """Pull record fields out of a response payload.

        Args:
            payload: The reply's ``response`` mapping.  The daemon keys it
                by the remote node's address or key.

        Returns:
            A dict of record fields (possibly empty), or ``None`` if the
            payload does not have the expected shape.
        """


def build_queries() -> list[Query]:
    """Return one instance of every query, in call order.

    Imports are deferred to avoid circular imports and to keep the
    registry definition in one place.
    """
    from yggcrawl.probes.dht import DHTQuery
    from yggcrawl.probes.nodeinfo import NodeInfoQuery
    from yggcrawl.probes.peers import PeersQuery
    from yggcrawl.probes.remote_self import RemoteSelfQuery

    return [NodeInfoQuery(), RemoteSelfQuery(), PeersQuery(), DHTQuery()]


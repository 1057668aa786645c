"""NodeProbe: run every query against one node and build its record."""

import logging
import time

from yggcrawl.address import address_for_key
from yggcrawl.models import NodeRecord, ProbeOutcome
from yggcrawl.probes import Query, build_queries
from yggcrawl.rpc import RPCClient

logger = logging.getLogger(__name__)


class NodeProbe:
    """Builds a ``NodeRecord`` for a key from the four remote queries.

    Args:
        client: RPC client used for every query.
        queries: Queries to issue, in order (default: ``build_queries()``).
    """

    def __init__(self, client: RPCClient, queries: list[Query] | None = None):
        self.client = client
        self.queries = queries if queries is not None else build_queries()

    def probe(self, key: str) -> ProbeOutcome | None:
        """Query *key* and return its outcome, or ``None``.

        Any query whose payload is missing, error-bearing or malformed
        abandons the whole probe; nothing is partially recorded.  A probe
        that extracts no fields at all is abandoned too.  Fields from later
        queries overwrite earlier ones.

        Raises:
            AddressError: If *key* is not a valid public key.
            TransportError: Propagated from the RPC client.
        """
        address = address_for_key(key)
        fields: dict = {}

        for query in self.queries:
            payload = self.client.call(query.method, {"key": key})
            if not isinstance(payload, dict) or "error" in payload:
                logger.debug(
                    "%s: no usable %s reply: %.200r", key, query.method, payload
                )
                return None
            extracted = query.extract(payload)
            if extracted is None:
                logger.debug("%s: malformed %s reply", key, query.method)
                return None
            fields.update(extracted)

        if not fields:
            logger.debug("%s: probe returned no fields", key)
            return None

        peers = fields.get("peers")
        dht = fields.get("dht")
        record = NodeRecord(
            key=key,
            address=address,
            nodeinfo=fields.get("nodeinfo"),
            coords=fields.get("coords"),
            peers=peers,
            dht=dht,
            timestamp=int(time.time()),
        )
        return ProbeOutcome(record=record, peers=peers or (), dht=dht or ())

"""debug_remoteGetDHT query: keys from the node's DHT table."""

from yggcrawl.probes.peers import PeersQuery


class DHTQuery(PeersQuery):
    """Same listing shape as the peer query, stored under ``dht``."""

    method = "debug_remoteGetDHT"
    field = "dht"

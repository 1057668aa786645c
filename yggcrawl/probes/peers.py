"""debug_remoteGetPeers query: keys of directly connected peers."""

from yggcrawl.probes import Query


class PeersQuery(Query):
    """Fetch a key listing and store it under ``field``.

    The payload maps the node's key to ``{"keys": [...]}``.
    """

    method = "debug_remoteGetPeers"
    field = "peers"

    def extract(self, payload: dict) -> dict | None:
        fields: dict = {}
        for value in payload.values():
            if not isinstance(value, dict):
                return None
            if "keys" not in value:
                continue
            keys = value["keys"]
            if not isinstance(keys, list) or not all(
                isinstance(k, str) for k in keys
            ):
                return None
            fields[self.field] = tuple(keys)
        return fields

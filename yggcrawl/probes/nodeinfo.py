"""getNodeInfo query: the node's self-published metadata."""

from yggcrawl.probes import Query


class NodeInfoQuery(Query):
    """Fetch the ``nodeinfo`` mapping a node publishes.

    The payload maps the node's address to its nodeinfo.
    """

    method = "getNodeInfo"

    def extract(self, payload: dict) -> dict | None:
        fields: dict = {}
        for value in payload.values():
            if not isinstance(value, dict):
                return None
            fields["nodeinfo"] = value
        return fields

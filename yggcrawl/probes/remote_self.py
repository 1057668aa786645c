"""debug_remoteGetSelf query: routing coordinates."""

from yggcrawl.probes import Query


class RemoteSelfQuery(Query):
    """Fetch the node's self-descriptor and keep its ``coords``."""

    method = "debug_remoteGetSelf"

    def extract(self, payload: dict) -> dict | None:
        fields: dict = {}
        for value in payload.values():
            if not isinstance(value, dict):
                return None
            if "coords" in value:
                fields["coords"] = value["coords"]
        return fields

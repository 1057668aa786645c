"""Shared fixtures: canned admin endpoint and overlay graphs."""

import threading

import pytest

from yggcrawl.address import address_for_key
from yggcrawl.rpc import Transport, TransportError


def make_key(i: int) -> str:
    """Deterministic, valid 64-hex-digit public key for node *i* (0-253)."""
    return f"{i + 1:02x}" * 32


class FakeTransport(Transport):
    """Canned admin endpoint keyed by ``(method, key)``.

    Unknown requests get an error-shaped reply (a soft failure).  A reply
    may be a list, in which case successive requests pop from it.

    Args:
        replies: ``{(method, key): reply}``; ``key`` is ``None`` for
            parameterless calls.
        fail_on: 1-based request number that raises ``TransportError``.
    """

    def __init__(self, replies: dict | None = None, fail_on: int | None = None):
        self.replies = dict(replies or {})
        self.fail_on = fail_on
        self.requests: list[dict] = []
        self._lock = threading.Lock()

    def request(self, envelope: dict) -> object:
        with self._lock:
            self.requests.append(envelope)
            number = len(self.requests)
            if self.fail_on is not None and number >= self.fail_on:
                raise TransportError(f"injected failure on request {number}")
            key = envelope.get("arguments", {}).get("key")
            reply = self.replies.get((envelope["request"], key))
            if isinstance(reply, list):
                reply = reply.pop(0) if len(reply) > 1 else reply[0]
        if reply is None:
            return {"status": "error", "error": "unknown request", "request": envelope}
        return reply

    def methods_for(self, key: str) -> list[str]:
        """Methods requested for *key*, in order."""
        return [
            r["request"]
            for r in self.requests
            if r.get("arguments", {}).get("key") == key
        ]


def node_replies(
    key: str,
    peers: list[str],
    dht: list[str] | None = None,
    nodeinfo: dict | None = None,
    coords: str = "[1 2]",
) -> dict:
    """Replies for the four per-node queries, shaped like the daemon's."""
    if nodeinfo is None:
        nodeinfo = {"buildname": "yggdrasil", "buildversion": "0.4.7"}
    return {
        ("getNodeInfo", key): {"response": {address_for_key(key): nodeinfo}},
        ("debug_remoteGetSelf", key): {"response": {key: {"coords": coords}}},
        ("debug_remoteGetPeers", key): {"response": {key: {"keys": list(peers)}}},
        ("debug_remoteGetDHT", key): {"response": {key: {"keys": list(dht or [])}}},
    }


def graph_replies(graph: dict[str, list[str]]) -> dict:
    """Replies for every node of ``{key: [peer keys]}``."""
    replies: dict = {}
    for key, peers in graph.items():
        replies.update(node_replies(key, peers))
    return replies


@pytest.fixture
def fake_transport():
    """Factory: ``fake_transport(graph, fail_on=None, self_key=None)``."""

    def _make(
        graph: dict[str, list[str]] | None = None,
        *,
        fail_on: int | None = None,
        self_key: str | None = None,
        extra: dict | None = None,
    ) -> FakeTransport:
        replies = graph_replies(graph or {})
        if self_key is not None:
            replies[("getSelf", None)] = {
                "status": "success",
                "response": {"key": self_key, "address": address_for_key(self_key)},
            }
        replies.update(extra or {})
        return FakeTransport(replies, fail_on=fail_on)

    return _make

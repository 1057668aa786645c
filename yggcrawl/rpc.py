"""Admin RPC client: transports, request envelope, soft-failure retry."""

import json
import logging
import socket
from abc import ABC, abstractmethod
from urllib.parse import urlsplit

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "unix:///var/run/yggdrasil.sock"
DEFAULT_MAX_RETRY = 3

_RECV_SIZE = 65535
# Upper bound on a single reply; a DHT or peer listing is a few KiB.
_MAX_REPLY_SIZE = 16 * 1024 * 1024


class RPCError(Exception):
    """Raised when the daemon cannot give a usable answer."""


class TransportError(RPCError):
    """Raised on any dial, write, read or framing failure.

    Transport errors are fatal to a crawl: the daemon being unreachable
    is an environment failure, not a per-node condition.
    """


def build_request(method: str, arguments: dict | None = None) -> dict:
    """Build the JSON request envelope for *method*.

    ``keepalive`` is part of the admin protocol; each attempt still uses
    its own connection.
    """
    request: dict = {"keepalive": True, "request": method}
    if arguments is not None:
        request["arguments"] = arguments
    return request


class Transport(ABC):
    """One request/reply exchange with the admin endpoint."""

    @abstractmethod
    def request(self, envelope: dict) -> object:
        """Send *envelope* and return the decoded reply.

        Raises:
            TransportError: On any connection or decoding failure.
        """


class _StreamTransport(Transport):
    """Shared dial → write → read-one-document logic for stream sockets."""

    def __init__(self, dial_timeout: float = 1.0, read_timeout: float = 30.0):
        self.dial_timeout = dial_timeout
        self.read_timeout = read_timeout

    @abstractmethod
    def _connect(self) -> socket.socket:
        """Open a connected socket to the endpoint."""

    def request(self, envelope: dict) -> object:
        payload = json.dumps(envelope).encode("utf-8")
        try:
            with self._connect() as sock:
                sock.settimeout(self.read_timeout)
                sock.sendall(payload)
                return self._read_reply(sock)
        except OSError as exc:
            raise TransportError(f"{self}: {exc}") from exc

    def _read_reply(self, sock: socket.socket) -> object:
        """Read until the buffer holds one complete JSON document."""
        buf = b""
        while True:
            chunk = sock.recv(_RECV_SIZE)
            if not chunk:
                raise TransportError(
                    f"{self}: connection closed after {len(buf)} bytes "
                    f"without a complete reply"
                )
            buf += chunk
            try:
                return json.loads(buf)
            except ValueError:
                if len(buf) > _MAX_REPLY_SIZE:
                    raise TransportError(
                        f"{self}: reply exceeds {_MAX_REPLY_SIZE} bytes "
                        f"without forming a JSON document"
                    ) from None


class UnixSocketTransport(_StreamTransport):
    """Admin endpoint on a local Unix stream socket."""

    def __init__(self, path: str, **timeouts: float):
        super().__init__(**timeouts)
        self.path = path

    def __str__(self) -> str:
        return f"unix://{self.path}"

    def _connect(self) -> socket.socket:
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        sock.settimeout(self.dial_timeout)
        try:
            sock.connect(self.path)
        except OSError:
            sock.close()
            raise
        return sock


class TcpTransport(_StreamTransport):
    """Admin endpoint on a TCP listener (``AdminListen: tcp://...``)."""

    def __init__(self, host: str, port: int, **timeouts: float):
        super().__init__(**timeouts)
        self.host = host
        self.port = port

    def __str__(self) -> str:
        return f"tcp://{self.host}:{self.port}"

    def _connect(self) -> socket.socket:
        return socket.create_connection(
            (self.host, self.port), timeout=self.dial_timeout
        )


def make_transport(
    endpoint: str, *, dial_timeout: float = 1.0, read_timeout: float = 30.0
) -> Transport:
    """Build a transport from an endpoint string.

    Accepts ``unix:///path``, ``tcp://host:port`` or a bare socket path.

    Raises:
        ValueError: If the scheme is unsupported or a TCP port is missing.
    """
    timeouts = {"dial_timeout": dial_timeout, "read_timeout": read_timeout}
    parts = urlsplit(endpoint)

    if parts.scheme in ("", "unix"):
        path = parts.path if parts.scheme else endpoint
        return UnixSocketTransport(path, **timeouts)
    if parts.scheme == "tcp":
        if parts.hostname is None or parts.port is None:
            raise ValueError(f"TCP endpoint needs host and port: {endpoint!r}")
        return TcpTransport(parts.hostname, parts.port, **timeouts)

    raise ValueError(f"Unsupported endpoint scheme {parts.scheme!r} in {endpoint!r}")


def _is_soft_failure(reply: object) -> bool:
    if not isinstance(reply, dict):
        return True
    response = reply.get("response")
    if response is None:
        return True
    return isinstance(response, dict) and "error" in response


class RPCClient:
    """Issues named admin calls, retrying soft failures.

    Args:
        transport: Endpoint to talk to.
        max_retry: Attempts per call before giving up on a soft failure.
    """

    def __init__(self, transport: Transport, max_retry: int = DEFAULT_MAX_RETRY):
        self.transport = transport
        self.max_retry = max_retry

    def call(self, method: str, arguments: dict | None = None) -> object:
        """Call *method* and return the reply's ``response`` payload.

        A missing or null ``response``, or one carrying an ``error`` key,
        is retried on a fresh connection up to ``max_retry`` times.  After
        that the last payload is returned as-is, so callers must cope with
        ``None`` or an error-bearing mapping.

        Raises:
            TransportError: Propagated untouched from the transport.
        """
        envelope = build_request(method, arguments)
        reply: object = None

        for attempt in range(1, self.max_retry + 1):
            reply = self.transport.request(envelope)
            if not _is_soft_failure(reply):
                break
            logger.debug(
                "Soft failure for %s %s (attempt %d/%d): %.200r",
                method,
                arguments or "",
                attempt,
                self.max_retry,
                reply,
            )

        if isinstance(reply, dict):
            return reply.get("response")
        return None


def resolve_self_key(client: RPCClient) -> str:
    """Ask the daemon for the local node's public key.

    Raises:
        RPCError: If the ``getSelf`` reply carries no key.
    """
    response = client.call("getSelf")
    key = response.get("key") if isinstance(response, dict) else None
    if not isinstance(key, str):
        raise RPCError(f"getSelf did not report a key: {response!r}")
    logger.info("Local node key: %s", key)
    return key

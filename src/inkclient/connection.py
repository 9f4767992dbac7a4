"""
JSON-RPC connection to a contracts node.

A Connection is the one shared, mutable resource of a scenario: it is opened
once (with a handshake against the node), used for every deploy, estimate and
commit, and closed exactly once.

Unlike a fire-and-forget API client, nothing here retries. Transport failures
surface immediately as ConnectivityError and node-side rejections as RPCError;
recovery is the caller's decision.
"""

import itertools
import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

import requests

from .endpoint import normalize_endpoint
from .logger import log_error, log_rpc, track_duration

logger = logging.getLogger(__name__)


class Connection:
    """
    Live session to one node endpoint.

    Provides:
    - Handshake on open (system_health + system_chain)
    - Single JSON-RPC requests
    - Explicit close (exactly once) and context-manager support
    """

    def __init__(
        self,
        endpoint: str,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        """
        Create an unopened connection. Prefer Connection.open() or connect().

        Args:
            endpoint: Node URL (ws/wss/http/https, normalized to HTTP)
            timeout: Per-request timeout in seconds (default: 10)
            session: Optional pre-built requests.Session (for tests/proxies)
        """
        self.endpoint = normalize_endpoint(endpoint)
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Content-Type": "application/json"})
        self.chain: Optional[str] = None
        self.health: Dict[str, Any] = {}
        self._closed = False
        self._ids = itertools.count(1)

    @classmethod
    def open(
        cls,
        endpoint: str,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ) -> "Connection":
        """
        Open a connection and perform the node handshake.

        Raises:
            ConnectivityError: Endpoint unreachable or handshake failed
        """
        connection = cls(endpoint, timeout=timeout, session=session)
        try:
            connection.handshake()
        except (ConnectivityError, RPCError) as e:
            connection.session.close()
            connection._closed = True
            if isinstance(e, ConnectivityError):
                raise
            raise ConnectivityError(
                f"Handshake with {connection.endpoint} failed: {e}"
            ) from e

        logger.info(f"Connected to {connection.endpoint} (chain: {connection.chain})")
        return connection

    @property
    def closed(self) -> bool:
        return self._closed

    def handshake(self) -> None:
        """Query node health and chain name; fails if the node is not usable."""
        health = self.request("system_health")
        if not isinstance(health, dict):
            raise ConnectivityError(f"Unexpected system_health response: {health!r}")
        self.health = health
        self.chain = self.request("system_chain")

    def request(self, method: str, params: Optional[List[Any]] = None) -> Any:
        """
        Issue one JSON-RPC request.

        Args:
            method: RPC method name (e.g. "contracts_call")
            params: Positional params list

        Returns:
            The "result" member of the JSON-RPC response

        Raises:
            ConnectionClosedError: Connection already closed
            ConnectivityError: Unreachable, timeout, bad HTTP status or body
            RPCError: Node answered with a JSON-RPC error object
        """
        if self._closed:
            raise ConnectionClosedError(
                f"Connection to {self.endpoint} is closed; cannot call {method}"
            )

        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params or [],
        }

        with track_duration() as elapsed:
            try:
                response = self.session.post(
                    self.endpoint,
                    json=payload,
                    timeout=self.timeout
                )
            except requests.exceptions.Timeout as e:
                log_error(method, "Timeout", str(e), endpoint=self.endpoint)
                raise ConnectivityError(
                    f"Node timeout after {self.timeout}s: {self.endpoint}"
                ) from e
            except requests.exceptions.ConnectionError as e:
                log_error(method, "ConnectionError", str(e), endpoint=self.endpoint)
                raise ConnectivityError(
                    f"Cannot reach node at {self.endpoint}"
                ) from e
            except requests.exceptions.RequestException as e:
                log_error(method, type(e).__name__, str(e), endpoint=self.endpoint)
                raise ConnectivityError(f"Request to {self.endpoint} failed: {e}") from e

            log_rpc(method, self.endpoint, elapsed(), status_code=response.status_code)

        if response.status_code != 200:
            log_error(method, "HTTPError", response.text, status_code=response.status_code)
            raise ConnectivityError(
                f"Node returned HTTP {response.status_code} for {method}"
            )

        try:
            body = response.json()
        except ValueError as e:
            log_error(method, "DecodeError", str(e), endpoint=self.endpoint)
            raise ConnectivityError(f"Node returned a non-JSON body for {method}") from e

        if not isinstance(body, dict):
            raise ConnectivityError(f"Malformed JSON-RPC response for {method}: {body!r}")

        if body.get("error") is not None:
            error = body["error"]
            if not isinstance(error, dict):
                error = {"message": str(error)}
            logger.warning(f"RPC {method} rejected: {error.get('message')}")
            raise RPCError(
                method,
                code=error.get("code"),
                message=error.get("message", "unknown error"),
                data=error.get("data"),
            )

        if "result" not in body:
            raise ConnectivityError(f"JSON-RPC response for {method} has no result")

        return body["result"]

    def close(self):
        """
        Close the HTTP session.

        Raises:
            ConnectionClosedError: The connection was already closed
        """
        if self._closed:
            raise ConnectionClosedError(f"Connection to {self.endpoint} already closed")
        self._closed = True
        self.session.close()
        logger.debug(f"Connection to {self.endpoint} closed")

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        if not self._closed:
            self.close()
        return False

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"Connection({self.endpoint!r}, {state})"


@contextmanager
def connect(
    endpoint: str,
    timeout: float = 10.0,
    session: Optional[requests.Session] = None,
) -> Iterator[Connection]:
    """
    Scoped acquisition of a Connection.

    The connection is released exactly once when the block exits, whether it
    completes, raises, or fails an assertion.

    Example:
        with connect("ws://127.0.0.1:9944") as connection:
            factory = ContractFactory(connection, deployer, metadata)
    """
    connection = Connection.open(endpoint, timeout=timeout, session=session)
    try:
        yield connection
    finally:
        if not connection.closed:
            connection.close()


class ConnectivityError(Exception):
    """
    Node endpoint is unreachable or the handshake failed.

    Fatal to the scenario; never retried by this package.
    """
    pass


class ConnectionClosedError(ConnectivityError):
    """
    A request (or a second close) was issued on a closed connection.
    """
    pass


class RPCError(Exception):
    """
    The node answered with a JSON-RPC error object.
    """

    def __init__(self, method: str, code: Optional[int], message: str, data: Any = None):
        self.method = method
        self.code = code
        self.message = message
        self.data = data
        super().__init__(f"{method} failed ({code}): {message}")

"""
Endpoint helpers for node connections.

Substrate-style nodes serve JSON-RPC over HTTP and WebSocket on the same port,
so a ``ws://`` endpoint copied from a node's startup banner is accepted and
rewritten to the matching HTTP scheme.

Functions:
- normalize_endpoint(endpoint) -> str
- is_local_endpoint(endpoint) -> bool

Examples:
    >>> normalize_endpoint("ws://127.0.0.1:9944")
    'http://127.0.0.1:9944'
    >>> normalize_endpoint("wss://rpc.example.org/")
    'https://rpc.example.org'
"""

from typing import Optional
from urllib.parse import urlparse
import re


SCHEME_ALIASES = {
    "ws": "http",
    "wss": "https",
    "http": "http",
    "https": "https",
}

LOCAL_HOSTS = ("127.0.0.1", "localhost", "0.0.0.0", "::1")


def normalize_endpoint(endpoint: Optional[str]) -> str:
    """
    Normalize a node endpoint to an HTTP(S) URL without trailing slash.

    Args:
        endpoint: Node URL (ws, wss, http or https). A bare ``host:port``
            is treated as ``http://host:port``.

    Returns:
        Normalized URL

    Raises:
        ValueError: If the endpoint is empty or uses an unsupported scheme
    """
    if not endpoint or not endpoint.strip():
        raise ValueError("Node endpoint must not be empty")

    url = endpoint.strip()

    # Bare host:port
    if not re.match(r'^[a-zA-Z][a-zA-Z0-9+.-]*://', url):
        url = f"http://{url}"

    scheme, _, rest = url.partition("://")
    mapped = SCHEME_ALIASES.get(scheme.lower())
    if mapped is None:
        raise ValueError(f"Unsupported endpoint scheme: {scheme}")

    if not rest.strip("/"):
        raise ValueError(f"Node endpoint has no host: {endpoint}")

    return f"{mapped}://{rest}".rstrip("/")


def is_local_endpoint(endpoint: str) -> bool:
    """Return True if the endpoint points at a local development node."""
    try:
        host = urlparse(normalize_endpoint(endpoint)).hostname
    except ValueError:
        return False
    return host in LOCAL_HOSTS

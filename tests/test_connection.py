"""
Tests for inkclient.connection

Tests cover:
- Handshake on open (health + chain)
- Unreachable / timed out / failing endpoints -> ConnectivityError
- JSON-RPC error objects -> RPCError
- Requests and second close on a closed connection -> ConnectionClosedError
- connect() releases the connection exactly once on every exit path
- No retries
"""

import sys
from pathlib import Path
from unittest.mock import MagicMock

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest
import requests

from inkclient.connection import (
    Connection,
    ConnectionClosedError,
    ConnectivityError,
    RPCError,
    connect,
)


def mock_session(response=None, side_effect=None):
    session = MagicMock()
    session.headers = {}
    if side_effect is not None:
        session.post.side_effect = side_effect
    else:
        session.post.return_value = response
    return session


def mock_response(status_code=200, body=None):
    response = MagicMock()
    response.status_code = status_code
    response.text = str(body)
    response.json.return_value = body
    return response


class TestConnectionOpen:
    """Test Connection.open() and the handshake."""

    def test_open_performs_handshake(self, node, session):
        """Test that open checks node health before returning."""
        connection = Connection.open("ws://127.0.0.1:9944", session=session)

        assert connection.endpoint == "http://127.0.0.1:9944"
        assert connection.chain == "Development"
        assert connection.health["isSyncing"] is False
        assert node.requests[:2] == ["system_health", "system_chain"]
        assert connection.closed is False

    def test_unreachable_endpoint(self, node, session):
        """Test opening against an unreachable endpoint."""
        node.down = True

        with pytest.raises(ConnectivityError, match="Cannot reach node"):
            Connection.open("ws://127.0.0.1:9944", session=session)

        assert session.closed is True

    def test_timeout(self):
        """Test that a timeout is reported as the matching error."""
        session = mock_session(side_effect=requests.exceptions.Timeout("slow"))

        with pytest.raises(ConnectivityError, match="timeout"):
            Connection.open("ws://127.0.0.1:9944", timeout=0.5, session=session)

        # No retries
        assert session.post.call_count == 1

    def test_handshake_rpc_error_is_connectivity_error(self, node, session):
        """Test that a failed health check raises ConnectivityError."""
        node.fail_handshake = True

        with pytest.raises(ConnectivityError, match="Handshake"):
            Connection.open("ws://127.0.0.1:9944", session=session)

    def test_unexpected_health_payload(self):
        """Test rejection of a malformed health response."""
        session = mock_session(mock_response(body={"jsonrpc": "2.0", "id": 1, "result": "ok"}))

        with pytest.raises(ConnectivityError, match="system_health"):
            Connection.open("ws://127.0.0.1:9944", session=session)

    def test_invalid_endpoint(self):
        """Test that an invalid endpoint fails before any request."""
        with pytest.raises(ValueError):
            Connection.open("ftp://127.0.0.1:9944", session=mock_session())


class TestConnectionRequest:
    """Test single JSON-RPC requests."""

    def test_request_returns_result(self, connection, node):
        """Test that request returns the result member."""
        assert connection.request("system_accountNextIndex", ["0xabc"]) == 0

    def test_request_ids_increase(self):
        """Test that request ids increase per call."""
        session = mock_session(mock_response(body={"jsonrpc": "2.0", "id": 1, "result": 7}))
        connection = Connection("ws://127.0.0.1:9944", session=session)

        connection.request("a")
        connection.request("b")

        ids = [c.kwargs["json"]["id"] for c in session.post.call_args_list]
        assert ids == [1, 2]

    def test_rpc_error(self, connection):
        """Test that an error object raises RPCError."""
        with pytest.raises(RPCError) as exc_info:
            connection.request("does_not_exist")

        assert exc_info.value.code == -32601
        assert exc_info.value.method == "does_not_exist"

    def test_http_error_status(self):
        """Test handling of a non-200 HTTP status."""
        session = mock_session(mock_response(status_code=503, body=None))
        connection = Connection("ws://127.0.0.1:9944", session=session)

        with pytest.raises(ConnectivityError, match="HTTP 503"):
            connection.request("system_health")

    def test_non_json_body(self):
        """Test handling of a response body that is not JSON."""
        response = mock_response()
        response.json.side_effect = ValueError("no json")
        connection = Connection("ws://127.0.0.1:9944", session=mock_session(response))

        with pytest.raises(ConnectivityError, match="non-JSON"):
            connection.request("system_health")

    def test_missing_result(self):
        """Test handling of a response without a result."""
        session = mock_session(mock_response(body={"jsonrpc": "2.0", "id": 1}))
        connection = Connection("ws://127.0.0.1:9944", session=session)

        with pytest.raises(ConnectivityError, match="no result"):
            connection.request("system_health")


class TestConnectionClose:
    """Test close semantics."""

    def test_request_after_close(self, connection):
        """Test that requests after close are refused."""
        connection.close()

        with pytest.raises(ConnectionClosedError):
            connection.request("system_health")

    def test_close_twice(self, connection, session):
        """Test that a second close raises ConnectionClosedError."""
        connection.close()

        with pytest.raises(ConnectionClosedError):
            connection.close()

        assert session.close_count == 1

    def test_closed_error_is_connectivity_error(self):
        """Test the ConnectionClosedError hierarchy."""
        assert issubclass(ConnectionClosedError, ConnectivityError)

    def test_context_manager_closes(self, session):
        """Test that the context manager closes the connection."""
        with Connection.open("ws://127.0.0.1:9944", session=session) as connection:
            pass

        assert connection.closed is True
        assert session.close_count == 1


class TestConnect:
    """Test scoped acquisition via connect()."""

    def test_releases_on_normal_exit(self, session):
        """Test release on normal exit from connect()."""
        with connect("ws://127.0.0.1:9944", session=session) as connection:
            assert connection.closed is False

        assert connection.closed is True
        assert session.close_count == 1

    def test_releases_on_assertion_failure(self, session):
        """Test release when the body raises AssertionError."""
        with pytest.raises(AssertionError):
            with connect("ws://127.0.0.1:9944", session=session):
                assert False, "scenario check failed"

        assert session.close_count == 1

    def test_explicit_close_inside_block_not_repeated(self, session):
        """Test that an explicit close inside the block is not repeated."""
        with connect("ws://127.0.0.1:9944", session=session) as connection:
            connection.close()

        assert session.close_count == 1

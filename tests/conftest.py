"""
Pytest configuration for the contract client tests.

Most tests run against the in-memory FakeNode from node_stub.py. Tests marked
``live`` need a real contracts node and are skipped unless INK_TEST_MODE=live.
"""

import json
import os
import sys
from pathlib import Path

import pytest

# Add src and tests to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
sys.path.insert(0, str(Path(__file__).parent))

from inkclient.connection import Connection
from inkclient.contract import ContractHandle
from inkclient.factory import ContractFactory
from inkclient.identity import derive_from_seed
from inkclient.metadata import ContractMetadata

from node_stub import FLIPPER_METADATA, FakeNode


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "live: Scenario tests that need a running contracts node (INK_TEST_MODE=live)"
    )
    config.addinivalue_line(
        "markers",
        "integration: Tests that drive several components against the node stub"
    )


def pytest_collection_modifyitems(config, items):
    if os.getenv("INK_TEST_MODE") == "live":
        return
    skip_live = pytest.mark.skip(reason="Set INK_TEST_MODE=live to run against a node")
    for item in items:
        if "live" in item.keywords:
            item.add_marker(skip_live)


# =============================================================================
# Node stub fixtures
# =============================================================================

@pytest.fixture
def node():
    """Fresh in-memory node per test."""
    return FakeNode()


@pytest.fixture
def session(node):
    return node.session()


@pytest.fixture
def connection(session):
    connection = Connection.open("ws://127.0.0.1:9944", session=session)
    yield connection
    if not connection.closed:
        connection.close()


@pytest.fixture(scope="session")
def alice():
    return derive_from_seed("//Alice")


@pytest.fixture(scope="session")
def bob():
    return derive_from_seed("//Bob")


@pytest.fixture
def flipper_metadata():
    return ContractMetadata.from_dict(FLIPPER_METADATA)


@pytest.fixture
def flipper_artifact(tmp_path):
    """Flipper artifact written to disk in the <dir>/<name>/<name>.json layout."""
    path = tmp_path / "artifacts" / "flipper" / "flipper.json"
    path.parent.mkdir(parents=True)
    path.write_text(json.dumps(FLIPPER_METADATA), encoding="utf-8")
    return path


@pytest.fixture
def factory(connection, alice, flipper_metadata):
    return ContractFactory(connection, alice, flipper_metadata, poll_interval=0)


@pytest.fixture
def flipper(factory, connection, alice, flipper_metadata):
    """Flipper deployed with init_value=True, signed by Alice."""
    instance = factory.deploy(True)
    return ContractHandle(
        instance.address, alice, connection, flipper_metadata, poll_interval=0
    )

"""
inkclient - Contract interaction client

Deploys contracts through a node endpoint and drives them through two call
modes: estimate (dry-run, returns outcome + gas) and commit (signed
transaction, awaited until finalized).

Usage:
    from inkclient import ContractMetadata, open_scenario

    metadata = ContractMetadata.from_file("artifacts/flipper/flipper.json")
    with open_scenario() as ctx:
        contract = ctx.deploy(metadata, True)
        outcome = contract.query.flip()
        contract.tx.flip(gas_limit=outcome.gas_required)
        assert contract.query.get().value.ok is False
"""

__version__ = "0.1.0"
__author__ = "inkclient maintainers"

# Public API
from .config import ClientConfig
from .connection import (
    Connection,
    ConnectionClosedError,
    ConnectivityError,
    RPCError,
    connect,
)
from .contract import CallError, CommitError, ContractHandle, SignerOverride
from .factory import ContractFactory, DeploymentError
from .identity import DEV_ACCOUNTS, Identity, InvalidSeedError, derive_from_seed
from .metadata import ContractMetadata, MetadataError
from .models import (
    CallOutcome,
    CallReceipt,
    DeployedInstance,
    Invocation,
    ResultEnvelope,
    Weight,
)
from .scenario import ScenarioContext, ScenarioReport, open_scenario, run_flip_scenario
from .transactions import ExtrinsicRejected, FinalizationTimeout, TransactionError

__all__ = [
    "ClientConfig",
    "Connection",
    "ConnectionClosedError",
    "ConnectivityError",
    "RPCError",
    "connect",
    "CallError",
    "CommitError",
    "ContractHandle",
    "SignerOverride",
    "ContractFactory",
    "DeploymentError",
    "DEV_ACCOUNTS",
    "Identity",
    "InvalidSeedError",
    "derive_from_seed",
    "ContractMetadata",
    "MetadataError",
    "CallOutcome",
    "CallReceipt",
    "DeployedInstance",
    "Invocation",
    "ResultEnvelope",
    "Weight",
    "ScenarioContext",
    "ScenarioReport",
    "open_scenario",
    "run_flip_scenario",
    "ExtrinsicRejected",
    "FinalizationTimeout",
    "TransactionError",
]

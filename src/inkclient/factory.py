"""
Contract Factory - deploys contract instances.

Deployment is itself two-phase: the instantiation is dry-run first (which
surfaces constructor reverts and yields the gas budget), then the signed
instantiate extrinsic is submitted and awaited until finalization.
"""

import logging
from typing import Any, Dict, Mapping, Optional, Union

from .connection import Connection, RPCError
from .identity import Identity
from .logger import log_error
from .metadata import ContractMetadata
from .models import (
    REVERT_FLAG,
    DeployedInstance,
    ResultEnvelope,
    Weight,
    format_dispatch_error,
)
from .transactions import (
    DEFAULT_FINALIZATION_TIMEOUT,
    DEFAULT_POLL_INTERVAL,
    TransactionError,
    submit_and_watch,
)

logger = logging.getLogger(__name__)


class ContractFactory:
    """
    Deploys new instances of one contract with one deployer identity.

    Example:
        factory = ContractFactory(connection, deployer, metadata)
        instance = factory.deploy(True)
        contract = ContractHandle(instance.address, deployer, connection, metadata)
    """

    def __init__(
        self,
        connection: Connection,
        deployer: Identity,
        metadata: ContractMetadata,
        wait_for_finalization: bool = True,
        finalization_timeout: float = DEFAULT_FINALIZATION_TIMEOUT,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ):
        self.connection = connection
        self.deployer = deployer
        self.metadata = metadata
        self.wait_for_finalization = wait_for_finalization
        self.finalization_timeout = finalization_timeout
        self.poll_interval = poll_interval

    def deploy(
        self,
        *constructor_args: Any,
        constructor: Optional[str] = None,
        value: int = 0,
        gas_limit: Optional[Union[Weight, Mapping[str, Any]]] = None,
        storage_deposit_limit: Optional[int] = None,
        salt: Optional[str] = None,
    ) -> DeployedInstance:
        """
        Deploy a new contract instance and block until it is finalized.

        Args:
            *constructor_args: Constructor arguments (JSON pass-through)
            constructor: Constructor label (defaults to the metadata default)
            value: Balance transferred to the new contract
            gas_limit: Explicit gas limit (default: the dry run's gas_required)
            storage_deposit_limit: Max storage deposit (None = unlimited)
            salt: Instantiation salt (hex), to deploy the same code twice

        Returns:
            DeployedInstance with the node-assigned address

        Raises:
            ValueError / TypeError: Unknown constructor or wrong argument count
            DeploymentError: Constructor reverted, rejected, or not finalized
            ConnectivityError: Node unreachable (propagated unchanged)
        """
        spec = self.metadata.constructor(constructor)
        if len(constructor_args) != spec.arity:
            raise TypeError(
                f"{self.metadata.name}.{spec.label}() takes {spec.arity} argument(s), "
                f"got {len(constructor_args)}"
            )
        if value and not spec.payable:
            raise ValueError(f"Constructor {spec.label} is not payable")

        request = {
            "origin": self.deployer.address,
            "value": value,
            "gasLimit": Weight.coerce(gas_limit).to_dict() if gas_limit is not None else None,
            "storageDepositLimit": storage_deposit_limit,
            "code": self._code(),
            "data": {
                "constructor": spec.label,
                "selector": spec.selector,
                "args": list(constructor_args),
            },
            "salt": salt or "0x",
        }

        try:
            dry_run = self.connection.request("contracts_instantiate", [request])
        except RPCError as e:
            log_error("deploy", "RPCError", e.message, contract=self.metadata.name)
            raise DeploymentError(
                f"Node refused to dry-run {self.metadata.name}.{spec.label}: {e.message}",
                reason=e.message,
            ) from e

        gas_required = self._check_dry_run(spec.label, dry_run)
        limit = Weight.coerce(gas_limit) if gas_limit is not None else gas_required

        logger.info(
            f"Deploying {self.metadata.name}.{spec.label} "
            f"(gas_required={gas_required.ref_time}/{gas_required.proof_size})"
        )

        method = "instantiate_with_code" if self.metadata.wasm else "instantiate"
        args = dict(request, gasLimit=limit.to_dict())
        args.pop("origin")

        try:
            finalized = submit_and_watch(
                self.connection,
                self.deployer,
                "Contracts",
                method,
                args,
                wait_for_finalization=self.wait_for_finalization,
                timeout=self.finalization_timeout,
                poll_interval=self.poll_interval,
            )
        except TransactionError as e:
            log_error("deploy", type(e).__name__, e.reason, contract=self.metadata.name)
            raise DeploymentError(
                f"Deployment of {self.metadata.name} rejected: {e.reason}", reason=e.reason
            ) from e

        instantiated = finalized.find_events("Contracts", "Instantiated")
        if not instantiated:
            raise DeploymentError(
                f"Deployment of {self.metadata.name} finalized without an Instantiated event",
                reason="missing Instantiated event",
            )

        address = instantiated[-1].data.get("contract")
        if not address:
            raise DeploymentError(
                f"Instantiated event for {self.metadata.name} carries no contract address",
                reason="missing contract address",
            )

        instance = DeployedInstance(
            address=address,
            constructor=spec.label,
            args=tuple(constructor_args),
            code_hash=self.metadata.code_hash,
            deployer=self.deployer.address,
            tx_hash=finalized.tx_hash,
            block_hash=finalized.block_hash,
        )
        logger.info(f"Deployed {self.metadata.name} at {address}")
        return instance

    def _code(self) -> Dict[str, str]:
        if self.metadata.wasm:
            return {"Upload": self.metadata.wasm}
        return {"Existing": self.metadata.code_hash}

    def _check_dry_run(self, constructor: str, dry_run: Dict[str, Any]) -> Weight:
        result = dry_run.get("result") or {}

        if "Err" in result:
            reason = format_dispatch_error(result["Err"])
            log_error("deploy", "DryRunFailed", reason, contract=self.metadata.name)
            raise DeploymentError(
                f"{self.metadata.name}.{constructor} would fail: {reason}", reason=reason
            )

        body = (result.get("Ok") or {}).get("result") or {}
        envelope = ResultEnvelope.from_dict(body.get("data"))
        if int(body.get("flags", 0)) & REVERT_FLAG or envelope.is_err:
            reason = f"constructor reverted: {envelope.err!r}" if envelope.is_err else "constructor reverted"
            log_error("deploy", "ConstructorReverted", reason, contract=self.metadata.name)
            raise DeploymentError(
                f"{self.metadata.name}.{constructor} reverted", reason=reason
            )

        return Weight.from_dict(dry_run.get("gasRequired"))


class DeploymentError(Exception):
    """
    Deployment failed: constructor reverted, insufficient funds, rejected
    extrinsic, or network timeout while awaiting finalization.

    Fatal to the scenario (there is no contract to test).
    """

    def __init__(self, message: str, reason: str = ""):
        self.reason = reason or message
        super().__init__(message)

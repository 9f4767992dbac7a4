"""
Contract Handle - dual-mode call dispatch.

Every contract message is reachable in two modes that share one Invocation
descriptor (message + args + target address + signer):

- estimate (query): dry-runs the call against current state and returns a
  CallOutcome with the decoded result envelope and the gas it would need.
  Nothing is persisted and nothing waits for consensus.
- commit (tx): submits the call as a signed extrinsic with an explicit gas
  limit, blocks until finalization, and returns a CallReceipt. Rejections
  raise CommitError.

The supported sequence is estimate -> commit(gas_limit=outcome.gas_required):

    outcome = contract.query.flip()
    contract.tx.flip(gas_limit=outcome.gas_required)
    assert contract.query.get().value.ok is False

with_signer() returns an immutable SignerOverride bound to another identity;
calls made through it use that identity and the handle's default signer is
left untouched.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, Union

from .connection import Connection
from .identity import Identity
from .logger import log_call, log_error
from .metadata import ContractMetadata
from .models import CallOutcome, CallReceipt, Invocation, Weight
from .transactions import (
    DEFAULT_FINALIZATION_TIMEOUT,
    DEFAULT_POLL_INTERVAL,
    TransactionError,
    submit_and_watch,
)

logger = logging.getLogger(__name__)


class ContractHandle:
    """
    Local binding to one deployed contract instance.

    Holds the target address, the default signer, the connection and the
    contract metadata. Discarding a handle has no on-chain effect.
    """

    def __init__(
        self,
        address: str,
        signer: Identity,
        connection: Connection,
        metadata: ContractMetadata,
        wait_for_finalization: bool = True,
        finalization_timeout: float = DEFAULT_FINALIZATION_TIMEOUT,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ):
        if not address:
            raise ValueError("Contract address must not be empty")
        self.address = address
        self.signer = signer
        self.connection = connection
        self.metadata = metadata
        self.wait_for_finalization = wait_for_finalization
        self.finalization_timeout = finalization_timeout
        self.poll_interval = poll_interval

    @property
    def query(self) -> "MessageNamespace":
        """Estimate-mode methods: ``handle.query.<message>(*args)``."""
        return MessageNamespace(self.metadata, self.estimate)

    @property
    def tx(self) -> "MessageNamespace":
        """Commit-mode methods: ``handle.tx.<message>(*args, gas_limit=...)``."""
        return MessageNamespace(self.metadata, self.commit)

    def with_signer(self, signer: Identity) -> "SignerOverride":
        """Return a transient view of this handle that signs with another identity."""
        return SignerOverride(base=self, signer=signer)

    def invocation(
        self,
        message: str,
        *args: Any,
        value: int = 0,
        signer: Optional[Identity] = None,
    ) -> Invocation:
        """
        Build the invocation descriptor for a message.

        Raises:
            ValueError: Unknown message, or value sent to a non-payable message
            TypeError: Wrong number of arguments
        """
        spec = self.metadata.message(message)
        if len(args) != spec.arity:
            raise TypeError(
                f"{self.metadata.name}.{spec.label}() takes {spec.arity} argument(s), "
                f"got {len(args)}"
            )
        if value and not spec.payable:
            raise ValueError(f"Message {spec.label} is not payable")

        return Invocation(
            address=self.address,
            message=spec.label,
            args=tuple(args),
            signer=(signer or self.signer).address,
            value=value,
            selector=spec.selector,
        )

    def estimate(
        self,
        message: str,
        *args: Any,
        value: int = 0,
        signer: Optional[Identity] = None,
    ) -> CallOutcome:
        """
        Estimate mode: dry-run a message against current ledger state.

        Never mutates state and never waits for consensus. An outcome whose
        envelope reports failure is returned, not raised; callers decide.

        Returns:
            CallOutcome with the result envelope and gas_required
        """
        invocation = self.invocation(message, *args, value=value, signer=signer)
        request = {
            "origin": invocation.signer,
            "dest": invocation.address,
            "value": invocation.value,
            "gasLimit": None,
            "storageDepositLimit": None,
            "inputData": invocation.to_input_data(),
        }

        dry_run = self.connection.request("contracts_call", [request])
        outcome = CallOutcome.from_dry_run(invocation, dry_run)

        log_call(
            "estimate",
            invocation.address,
            invocation.message,
            invocation.signer,
            succeeded=outcome.succeeded,
            gas_required=outcome.gas_required.to_dict(),
        )
        return outcome

    def commit(
        self,
        message: str,
        *args: Any,
        gas_limit: Union[Weight, Mapping[str, Any]],
        value: int = 0,
        storage_deposit_limit: Optional[int] = None,
        signer: Optional[Identity] = None,
    ) -> CallReceipt:
        """
        Commit mode: submit a message as a transaction and await finalization.

        Args:
            message: Message label
            *args: Message arguments (JSON pass-through)
            gas_limit: Budget for the call, normally outcome.gas_required
            value: Balance transferred with the call (payable messages only)
            storage_deposit_limit: Max storage deposit (None = unlimited)
            signer: Identity for this call only (default: handle's signer)

        Returns:
            CallReceipt for the finalized call

        Raises:
            CommitError: Budget exhausted, reverted, forbidden, or not finalized
            ConnectivityError: Node unreachable (propagated unchanged)
        """
        if gas_limit is None:
            raise ValueError("Commit mode requires an explicit gas_limit (from a prior estimate)")

        limit = Weight.coerce(gas_limit)
        effective_signer = signer or self.signer
        invocation = self.invocation(message, *args, value=value, signer=effective_signer)

        log_call(
            "commit",
            invocation.address,
            invocation.message,
            invocation.signer,
            gas_limit=limit.to_dict(),
        )

        args_payload = {
            "dest": invocation.address,
            "value": invocation.value,
            "gasLimit": limit.to_dict(),
            "storageDepositLimit": storage_deposit_limit,
            "data": invocation.to_input_data(),
        }

        try:
            finalized = submit_and_watch(
                self.connection,
                effective_signer,
                "Contracts",
                "call",
                args_payload,
                wait_for_finalization=self.wait_for_finalization,
                timeout=self.finalization_timeout,
                poll_interval=self.poll_interval,
            )
        except TransactionError as e:
            log_error(
                "commit",
                type(e).__name__,
                e.reason,
                contract=invocation.address,
                contract_message=invocation.message,
            )
            raise CommitError(
                f"{self.metadata.name}.{invocation.message} rejected: {e.reason}",
                reason=e.reason,
                invocation=invocation,
            ) from e

        return CallReceipt(
            invocation=invocation,
            gas_limit=limit,
            tx_hash=finalized.tx_hash,
            block_hash=finalized.block_hash,
            events=finalized.events,
        )

    def __repr__(self) -> str:
        return f"ContractHandle({self.metadata.name!r}, {self.address!r}, signer={self.signer.address!r})"


@dataclass(frozen=True)
class SignerOverride:
    """
    Immutable {base handle, signer} pair returned by ContractHandle.with_signer().

    Only calls made through this value use the override; the base handle's
    default signer never changes.
    """

    base: ContractHandle
    signer: Identity

    @property
    def address(self) -> str:
        return self.base.address

    @property
    def query(self) -> "MessageNamespace":
        return MessageNamespace(self.base.metadata, self.estimate)

    @property
    def tx(self) -> "MessageNamespace":
        return MessageNamespace(self.base.metadata, self.commit)

    def estimate(self, message: str, *args: Any, value: int = 0) -> CallOutcome:
        return self.base.estimate(message, *args, value=value, signer=self.signer)

    def commit(
        self,
        message: str,
        *args: Any,
        gas_limit: Union[Weight, Mapping[str, Any]],
        value: int = 0,
        storage_deposit_limit: Optional[int] = None,
    ) -> CallReceipt:
        return self.base.commit(
            message,
            *args,
            gas_limit=gas_limit,
            value=value,
            storage_deposit_limit=storage_deposit_limit,
            signer=self.signer,
        )


class MessageNamespace:
    """
    Attribute access to contract messages for one call mode.

    ``namespace.flip(...)`` resolves ``flip`` against the metadata and
    forwards to the mode's dispatch function; there is no per-message code.
    """

    def __init__(self, metadata: ContractMetadata, dispatch: Callable[..., Any]):
        self._metadata = metadata
        self._dispatch = dispatch

    def __getattr__(self, name: str) -> Callable[..., Any]:
        if name.startswith("__") or not self._metadata.has_message(name):
            raise AttributeError(f"{self._metadata.name} has no message {name!r}")
        label = self._metadata.message(name).label

        def call(*args: Any, **kwargs: Any) -> Any:
            return self._dispatch(label, *args, **kwargs)

        call.__name__ = name
        return call

    def __dir__(self):
        return sorted(spec.identifier for spec in self._metadata.messages)


class CallError(Exception):
    """
    A contract call reported failure.

    Raised when an estimate's failure envelope is unwrapped or when a
    scenario refuses to commit a call whose estimate failed.
    """

    def __init__(self, message: str, reason: str = "", invocation: Optional[Invocation] = None):
        self.reason = reason or message
        self.invocation = invocation
        super().__init__(message)


class CommitError(CallError):
    """
    The node rejected a commit-mode call: budget exhaustion, revert,
    authorization failure, or the extrinsic was never finalized.
    """
    pass

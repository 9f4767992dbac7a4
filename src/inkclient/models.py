"""
Contract Client - Data Models

Value objects shared by the estimate (dry-run) and commit (transaction) paths.

KEY TYPES:
- Weight: two-dimensional resource budget (ref_time, proof_size)
- Invocation: method + args + target address + signer, shared by both modes
- ResultEnvelope: success/failure wrapper around a decoded return value
- CallOutcome: what a call *would* do (estimate mode, no side effects)
- CallReceipt: what a committed call did (commit mode)
- DeployedInstance: the on-chain contract created by a deployment
"""

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, Mapping, Optional, Tuple, Union


# Bit 0 of the return flags: execution reverted its storage changes
REVERT_FLAG = 0x1


@dataclass(frozen=True)
class Weight:
    """Resource budget charged by the node for executing a call."""

    ref_time: int = 0
    proof_size: int = 0

    def __post_init__(self):
        if self.ref_time < 0 or self.proof_size < 0:
            raise ValueError(f"Weight components must be non-negative: {self}")

    def fits_within(self, limit: "Weight") -> bool:
        """True if this weight does not exceed the limit in either dimension."""
        return self.ref_time <= limit.ref_time and self.proof_size <= limit.proof_size

    def to_dict(self) -> Dict[str, int]:
        return {"refTime": self.ref_time, "proofSize": self.proof_size}

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "Weight":
        """Create Weight from the node's camelCase form (snake_case accepted)."""
        if not data:
            return cls()
        return cls(
            ref_time=int(data.get("refTime", data.get("ref_time", 0))),
            proof_size=int(data.get("proofSize", data.get("proof_size", 0))),
        )

    @classmethod
    def coerce(cls, value: Union["Weight", Mapping[str, Any]]) -> "Weight":
        """Accept a Weight or a mapping and return a Weight."""
        if isinstance(value, cls):
            return value
        if isinstance(value, Mapping):
            return cls.from_dict(value)
        raise TypeError(f"Expected Weight or mapping, got {type(value).__name__}")


@dataclass(frozen=True)
class Invocation:
    """
    Generic invocation descriptor.

    One descriptor drives both call modes; only the mode (and, for commits,
    the gas limit) differs between an estimate and the matching commit.
    """

    address: str
    message: str
    args: Tuple[Any, ...] = ()
    signer: str = ""
    value: int = 0
    selector: str = ""

    def to_input_data(self) -> Dict[str, Any]:
        """Message selection payload passed to the node for encoding."""
        return {"message": self.message, "selector": self.selector, "args": list(self.args)}


@dataclass(frozen=True)
class ResultEnvelope:
    """
    Success/failure envelope around a decoded return value.

    Mirrors the language-level Result returned by contract messages:
    exactly one of ok/err is meaningful, selected by is_ok.
    """

    is_ok: bool
    ok: Any = None
    err: Any = None

    @property
    def is_err(self) -> bool:
        return not self.is_ok

    def unwrap(self) -> Any:
        """Return the ok value, raising CallError if the envelope is a failure."""
        if not self.is_ok:
            # Imported here to keep models free of module-level cycles
            from .contract import CallError
            raise CallError(f"Call returned an error: {self.err!r}")
        return self.ok

    @classmethod
    def success(cls, value: Any) -> "ResultEnvelope":
        return cls(is_ok=True, ok=value)

    @classmethod
    def failure(cls, error: Any) -> "ResultEnvelope":
        return cls(is_ok=False, err=error)

    @classmethod
    def from_dict(cls, data: Any) -> "ResultEnvelope":
        """Parse {"Ok": value} / {"Err": error} (case-insensitive keys)."""
        if isinstance(data, Mapping) and len(data) == 1:
            key, value = next(iter(data.items()))
            if str(key).lower() == "ok":
                return cls.success(value)
            if str(key).lower() == "err":
                return cls.failure(value)
        return cls.success(data)


@dataclass(frozen=True)
class CallOutcome:
    """
    Snapshot of what a call would do against current ledger state.

    Produced by estimate mode; has no side effects. gas_required is the
    budget to pass to the matching commit.
    """

    invocation: Invocation
    value: ResultEnvelope
    gas_required: Weight
    gas_consumed: Weight
    storage_deposit: int = 0
    reverted: bool = False
    debug_message: str = ""

    @property
    def succeeded(self) -> bool:
        return self.value.is_ok and not self.reverted

    @classmethod
    def from_dry_run(cls, invocation: Invocation, data: Mapping[str, Any]) -> "CallOutcome":
        """Build a CallOutcome from a contracts_call dry-run result."""
        result = data.get("result") or {}
        reverted = False

        if "Err" in result:
            value = ResultEnvelope.failure(format_dispatch_error(result["Err"]))
        else:
            exec_result = result.get("Ok") or {}
            reverted = bool(int(exec_result.get("flags", 0)) & REVERT_FLAG)
            value = ResultEnvelope.from_dict(exec_result.get("data"))

        return cls(
            invocation=invocation,
            value=value,
            gas_required=Weight.from_dict(data.get("gasRequired")),
            gas_consumed=Weight.from_dict(data.get("gasConsumed")),
            storage_deposit=parse_storage_deposit(data.get("storageDeposit")),
            reverted=reverted,
            debug_message=data.get("debugMessage") or "",
        )


@dataclass(frozen=True)
class ChainEvent:
    pallet: str
    method: str
    data: Dict[str, Any] = field(default_factory=dict)

    @property
    def name(self) -> str:
        return f"{self.pallet}.{self.method}"

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ChainEvent":
        return cls(
            pallet=data.get("pallet", ""),
            method=data.get("method", ""),
            data=dict(data.get("data") or {}),
        )


@dataclass(frozen=True)
class CallReceipt:
    """Result of a committed (finalized) call."""

    invocation: Invocation
    gas_limit: Weight
    tx_hash: str
    block_hash: Optional[str]
    events: Tuple[ChainEvent, ...] = ()

    def find_events(self, pallet: str, method: str) -> Tuple[ChainEvent, ...]:
        return tuple(e for e in self.events if e.pallet == pallet and e.method == method)


@dataclass(frozen=True)
class DeployedInstance:
    """
    One on-chain contract instance.

    The address is assigned by the node at deployment and never reassigned;
    this object is a non-owning reference to it.
    """

    address: str
    constructor: str
    args: Tuple[Any, ...]
    code_hash: str
    deployer: str
    tx_hash: str = ""
    block_hash: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["args"] = list(self.args)
        return data


def parse_storage_deposit(data: Any) -> int:
    """Storage deposit as a signed int: charges positive, refunds negative."""
    if not data:
        return 0
    if isinstance(data, (int, float)):
        return int(data)
    if "Charge" in data:
        return int(data["Charge"])
    if "Refund" in data:
        return -int(data["Refund"])
    return 0


def format_dispatch_error(error: Any) -> str:
    """
    Render a dispatch error as 'Pallet.Error' where possible.

    Examples:
        {"module": {"pallet": "Contracts", "error": "OutOfGas"}} -> "Contracts.OutOfGas"
        {"module": "Contracts", "error": "ContractTrapped"}      -> "Contracts.ContractTrapped"
        "BadOrigin"                                               -> "BadOrigin"
    """
    if error is None:
        return "unknown error"
    if isinstance(error, str):
        return error
    if isinstance(error, Mapping):
        module = error.get("module", error.get("Module"))
        if isinstance(module, Mapping):
            return f"{module.get('pallet', module.get('index', '?'))}.{module.get('error', '?')}"
        if module is not None:
            return f"{module}.{error.get('error', '?')}"
        if len(error) == 1:
            key, value = next(iter(error.items()))
            return f"{key}: {format_dispatch_error(value)}" if value else str(key)
    return str(error)

"""
Scenario Driver - orchestrates deploy -> estimate -> commit -> re-query.

open_scenario() sets up the expensive shared resources once (connection and
deployer identity), hands them to the scenario body as a ScenarioContext, and
releases the connection exactly once however the body exits.

Usage:
    with open_scenario(config) as ctx:
        contract = ctx.deploy(metadata, True)
        report = ScenarioReport("flipper")
        report.check("Sets the initial state", contract.query.get().value.ok, True)
        ctx.estimate_and_commit(contract, "flip")
        report.check("Can flip the state", contract.query.get().value.ok, False)
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Iterator, List, Optional, Tuple

import requests

from .config import ClientConfig
from .connection import Connection
from .contract import CallError, ContractHandle
from .factory import ContractFactory
from .identity import Identity, derive_from_seed
from .metadata import ContractMetadata
from .models import CallOutcome, CallReceipt, DeployedInstance

logger = logging.getLogger(__name__)


class ScenarioContext:
    """
    Shared resources of one scenario group, passed explicitly to each check.
    """

    def __init__(self, connection: Connection, deployer: Identity, config: ClientConfig):
        self.connection = connection
        self.deployer = deployer
        self.config = config
        self.deployments: List[DeployedInstance] = []

    def identity(self, seed_phrase: str) -> Identity:
        """Derive an additional identity (e.g. "//Bob") for signer overrides."""
        return derive_from_seed(seed_phrase)

    def factory(self, metadata: ContractMetadata, deployer: Optional[Identity] = None) -> ContractFactory:
        return ContractFactory(
            self.connection,
            deployer or self.deployer,
            metadata,
            wait_for_finalization=self.config.wait_for_finalization,
            finalization_timeout=self.config.finalization_timeout,
            poll_interval=self.config.poll_interval,
        )

    def handle(self, address: str, metadata: ContractMetadata,
               signer: Optional[Identity] = None) -> ContractHandle:
        return ContractHandle(
            address,
            signer or self.deployer,
            self.connection,
            metadata,
            wait_for_finalization=self.config.wait_for_finalization,
            finalization_timeout=self.config.finalization_timeout,
            poll_interval=self.config.poll_interval,
        )

    def deploy(self, metadata: ContractMetadata, *constructor_args: Any,
               constructor: Optional[str] = None) -> ContractHandle:
        """Deploy a contract with the deployer identity and return a handle to it."""
        instance = self.factory(metadata).deploy(*constructor_args, constructor=constructor)
        self.deployments.append(instance)
        return self.handle(instance.address, metadata)

    def estimate_and_commit(
        self,
        handle: Any,
        message: str,
        *args: Any,
        value: int = 0,
    ) -> Tuple[CallOutcome, CallReceipt]:
        """
        Run exactly one estimate, then commit with the estimate's gas budget.

        ``handle`` may be a ContractHandle or a SignerOverride.

        Raises:
            CallError: The estimate reported failure; nothing was committed
            CommitError: The commit was rejected
        """
        outcome = handle.estimate(message, *args, value=value)
        if not outcome.succeeded:
            reason = outcome.value.err if outcome.value.is_err else "reverted"
            raise CallError(
                f"Estimate of {message} failed ({reason!r}); not committing",
                reason=str(reason),
                invocation=outcome.invocation,
            )
        receipt = handle.commit(message, *args, gas_limit=outcome.gas_required, value=value)
        return outcome, receipt


@contextmanager
def open_scenario(
    config: Optional[ClientConfig] = None,
    session: Optional[requests.Session] = None,
) -> Iterator[ScenarioContext]:
    """
    Open the connection and derive the deployer for one scenario group.

    The connection is closed exactly once on every exit path, including
    assertion failures inside the block.

    Raises:
        ConnectivityError: Node unreachable
        InvalidSeedError: Configured seed phrase is malformed
    """
    config = config or ClientConfig.from_env()
    deployer = derive_from_seed(config.seed_phrase)
    connection = Connection.open(config.node_url, timeout=config.rpc_timeout, session=session)
    try:
        yield ScenarioContext(connection, deployer, config)
    finally:
        if not connection.closed:
            connection.close()


@dataclass(frozen=True)
class CheckResult:
    name: str
    passed: bool
    actual: Any = None
    expected: Any = None

    def describe(self) -> str:
        mark = "[OK]" if self.passed else "[FAIL]"
        detail = "" if self.passed else f" (expected {self.expected!r}, got {self.actual!r})"
        return f"{mark} {self.name}{detail}"


@dataclass
class ScenarioReport:
    """
    Named pass/fail checks of one scenario and their aggregate.

    exit_code follows test-runner conventions: 0 if every check passed.
    """

    name: str
    checks: List[CheckResult] = field(default_factory=list)

    def check(self, name: str, actual: Any, expected: Any) -> bool:
        result = CheckResult(name=name, passed=actual == expected, actual=actual, expected=expected)
        self.checks.append(result)
        if result.passed:
            logger.info(f"{self.name}: {result.describe()}")
        else:
            logger.error(f"{self.name}: {result.describe()}")
        return result.passed

    def fail(self, name: str, error: BaseException) -> None:
        """Record a check that could not run because of an error."""
        self.checks.append(CheckResult(name=name, passed=False, actual=repr(error), expected="no error"))
        logger.error(f"{self.name}: [FAIL] {name}: {error}")

    @property
    def passed(self) -> bool:
        return bool(self.checks) and all(c.passed for c in self.checks)

    @property
    def failures(self) -> List[CheckResult]:
        return [c for c in self.checks if not c.passed]

    @property
    def exit_code(self) -> int:
        return 0 if self.passed else 1

    def summary(self) -> str:
        lines = [f"Scenario: {self.name}"]
        lines.extend(f"  {c.describe()}" for c in self.checks)
        lines.append(f"  {len(self.checks) - len(self.failures)}/{len(self.checks)} checks passed")
        return "\n".join(lines)


def run_flip_scenario(
    context: ScenarioContext,
    metadata: ContractMetadata,
    initial_state: bool = True,
) -> ScenarioReport:
    """
    Deploy a boolean-state contract and verify that flip toggles it once.

    Expects ``get`` and ``flip`` messages. Call errors are recorded as failed
    checks; connectivity errors propagate.
    """
    report = ScenarioReport(metadata.name)
    contract = context.deploy(metadata, initial_state)

    report.check("Sets the initial state", contract.query.get().value.ok, initial_state)

    try:
        context.estimate_and_commit(contract, "flip")
    except CallError as e:
        report.fail("Can flip the state", e)
        return report

    report.check("Can flip the state", contract.query.get().value.ok, not initial_state)
    return report

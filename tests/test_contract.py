"""
Tests for inkclient.contract

Tests cover:
- Estimate mode: result envelope + gas, no side effects, idempotent
- Commit mode: persists state, requires an explicit gas limit
- Estimate -> commit round trip with the estimated budget
- Insufficient budget and forbidden callers -> CommitError, state unchanged
- with_signer() overrides apply only through the override value
- query/tx namespaces resolve messages from metadata
"""

import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest
from inkclient.contract import CallError, CommitError, ContractHandle, SignerOverride
from inkclient.models import CallOutcome, CallReceipt, Weight

from node_stub import FLIP_COST


class TestEstimate:
    """Estimate mode (dry run)."""

    def test_returns_value_and_gas(self, flipper):
        """Test that an estimate returns the value and gas figures."""
        outcome = flipper.query.get()

        assert isinstance(outcome, CallOutcome)
        assert outcome.succeeded
        assert outcome.value.ok is True
        assert outcome.gas_required == Weight(120_000_000, 4_096)

    def test_estimate_of_mutating_message_has_no_side_effects(self, flipper, node):
        """Test that estimating flip leaves storage unchanged."""
        before = dict(node.storage(flipper.address))

        outcome = flipper.query.flip()

        assert outcome.succeeded
        assert outcome.gas_required == Weight.from_dict(FLIP_COST)
        assert node.storage(flipper.address) == before
        assert flipper.query.get().value.ok is True

    def test_estimate_is_idempotent(self, flipper, node):
        """Test that repeated estimates agree."""
        first = flipper.query.flip()
        second = flipper.query.flip()

        assert first.gas_required == second.gas_required
        assert first.value == second.value
        assert node.count("author_submitExtrinsic") == 1  # the deployment only

    def test_estimate_does_not_wait_for_consensus(self, flipper, node):
        """Test that estimates never submit or poll extrinsics."""
        polls = node.count("author_extrinsicStatus")

        flipper.query.flip()

        assert node.count("author_extrinsicStatus") == polls

    def test_failure_envelope_returned_not_raised(self, flipper, bob):
        """Test that a failed estimate returns an error envelope."""
        outcome = flipper.with_signer(bob).query.reset(False)

        assert outcome.succeeded is False
        assert outcome.value.is_err
        assert outcome.value.err == "Contracts.ContractTrapped"
        assert "Forbidden Caller" in outcome.debug_message

    def test_unwrap_failure_raises_call_error(self, flipper, bob):
        """Test that unwrapping a failed estimate raises CallError."""
        outcome = flipper.with_signer(bob).query.reset(False)

        with pytest.raises(CallError):
            outcome.value.unwrap()

    def test_invocation_descriptor(self, flipper, alice):
        """Test the invocation recorded on an outcome."""
        outcome = flipper.query.reset(True)

        assert outcome.invocation.message == "reset"
        assert outcome.invocation.args == (True,)
        assert outcome.invocation.address == flipper.address
        assert outcome.invocation.signer == alice.address


class TestCommit:
    """Commit mode (signed transaction)."""

    def test_flip_persists(self, flipper):
        """Test that a committed flip changes storage."""
        outcome = flipper.query.flip()

        receipt = flipper.tx.flip(gas_limit=outcome.gas_required)

        assert isinstance(receipt, CallReceipt)
        assert receipt.gas_limit == outcome.gas_required
        assert receipt.find_events("Contracts", "Called")
        assert flipper.query.get().value.ok is False

    def test_flip_twice_restores_state(self, flipper):
        """Test that two flips restore the original value."""
        for _ in range(2):
            outcome = flipper.query.flip()
            flipper.tx.flip(gas_limit=outcome.gas_required)

        assert flipper.query.get().value.ok is True

    def test_gas_limit_as_mapping(self, flipper):
        """Test a gas limit given as a mapping."""
        flipper.tx.flip(gas_limit={"refTime": 10**9, "proofSize": 10**5})

        assert flipper.query.get().value.ok is False

    def test_gas_limit_is_required(self, flipper, node):
        """Test that commit refuses to run without a gas limit."""
        with pytest.raises(TypeError):
            flipper.tx.flip()

        with pytest.raises(ValueError, match="gas_limit"):
            flipper.commit("flip", gas_limit=None)

        assert node.count("author_submitExtrinsic") == 1

    def test_insufficient_budget(self, flipper, node):
        """Test that too little gas raises CommitError."""
        with pytest.raises(CommitError) as exc_info:
            flipper.tx.flip(gas_limit=Weight(1_000, 1_000))

        assert exc_info.value.reason == "Contracts.OutOfGas"
        assert exc_info.value.invocation.message == "flip"
        assert flipper.query.get().value.ok is True

    def test_status_lookup_error_becomes_commit_error(self, flipper, node):
        """Test that a failed status lookup raises CommitError."""
        node.rpc_errors["author_extrinsicStatus"] = (-32000, "Unknown extrinsic")

        with pytest.raises(CommitError) as exc_info:
            flipper.tx.flip(gas_limit=FLIP_COST)

        assert "status lookup failed: Unknown extrinsic" in exc_info.value.reason
        assert exc_info.value.__cause__.tx_hash.startswith("0x")

    def test_nonce_lookup_error_becomes_commit_error(self, flipper, node):
        """Test that a failed nonce lookup raises CommitError."""
        node.rpc_errors["system_accountNextIndex"] = (-32602, "Invalid params")

        with pytest.raises(CommitError, match="nonce lookup failed"):
            flipper.tx.flip(gas_limit=FLIP_COST)

        assert node.count("author_submitExtrinsic") == 1

    def test_commit_error_is_call_error(self):
        """Test the CommitError hierarchy."""
        assert issubclass(CommitError, CallError)

    def test_wrong_arity_rejected_locally(self, flipper, node):
        """Test that wrong argument counts never reach the node."""
        with pytest.raises(TypeError, match="takes 0 argument"):
            flipper.query.flip(True)

        assert node.count("contracts_call") == 0

    def test_value_to_non_payable_message(self, flipper):
        """Test that value on a non-payable message is rejected."""
        with pytest.raises(ValueError, match="not payable"):
            flipper.query.flip(value=1)


class TestRoundTrip:
    """estimate -> commit(gas_limit=outcome.gas_required) -> estimate."""

    def test_committed_effect_matches_estimate(self, flipper):
        """Test that the committed effect matches the estimate."""
        estimate = flipper.query.reset(False)
        assert estimate.succeeded

        flipper.tx.reset(False, gas_limit=estimate.gas_required)

        assert flipper.query.get().value.ok is False


class TestSignerOverride:
    """with_signer() scoping."""

    def test_override_is_immutable_value(self, flipper, bob):
        """Test that with_signer leaves the handle unchanged."""
        override = flipper.with_signer(bob)

        assert isinstance(override, SignerOverride)
        assert override.address == flipper.address
        with pytest.raises(AttributeError):
            override.signer = flipper.signer

    def test_forbidden_caller_commit_fails(self, flipper, bob):
        """Test that reset from another signer fails."""
        gas = flipper.query.reset(False).gas_required

        with pytest.raises(CommitError) as exc_info:
            flipper.with_signer(bob).tx.reset(False, gas_limit=gas)

        assert exc_info.value.reason == "Contracts.ContractTrapped"
        assert flipper.query.get().value.ok is True

    def test_default_signer_restored_after_override(self, flipper, alice, bob, node):
        """Test that the default signer applies after an override."""
        flipper.with_signer(bob).query.get()

        outcome = flipper.query.reset(False)
        flipper.tx.reset(False, gas_limit=outcome.gas_required)

        assert flipper.signer == alice
        assert flipper.query.get().value.ok is False

    def test_override_signs_with_other_identity(self, flipper, bob, node):
        """Test that override commits are signed by the override identity."""
        outcome = flipper.with_signer(bob).query.flip()
        flipper.with_signer(bob).tx.flip(gas_limit=outcome.gas_required)

        submitted = [p["extrinsic"] for p in node.pending.values()]
        assert submitted[-1]["signer"] == bob.address
        assert flipper.query.get().value.ok is False

    def test_override_estimate_reports_override_signer(self, flipper, bob):
        """Test that override estimates carry the override signer."""
        outcome = flipper.with_signer(bob).query.get()

        assert outcome.invocation.signer == bob.address


class TestNamespaces:

    def test_unknown_message_attribute(self, flipper):
        """Test that unknown message attributes raise AttributeError."""
        with pytest.raises(AttributeError, match="no message 'flop'"):
            flipper.query.flop

        with pytest.raises(AttributeError):
            flipper.tx.flop

    def test_dir_lists_messages(self, flipper):
        """Test that dir() lists the contract messages."""
        assert dir(flipper.query) == ["flip", "get", "reset"]

    def test_estimate_by_name(self, flipper):
        """Test estimate called with a message name."""
        assert flipper.estimate("get").value.ok is True

    def test_handle_requires_address(self, connection, alice, flipper_metadata):
        """Test that a handle needs a contract address."""
        with pytest.raises(ValueError, match="address"):
            ContractHandle("", alice, connection, flipper_metadata)

    def test_repr(self, flipper):
        """Test the handle repr."""
        assert "flipper" in repr(flipper)

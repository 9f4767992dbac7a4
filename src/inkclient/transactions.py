"""
Signed extrinsic submission and finalization tracking.

submit_and_watch() is the blocking suspension point shared by deployment and
commit-mode calls: it signs the call, submits it, then polls the node until
the extrinsic is finalized (or included, if finalization is not awaited),
rejected, or the wait bound expires. There is no cancellation; a timeout only
stops waiting.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from .connection import Connection, RPCError
from .identity import Identity
from .models import ChainEvent, format_dispatch_error
from .status import is_failed, is_settled, normalize_status

logger = logging.getLogger(__name__)

DEFAULT_FINALIZATION_TIMEOUT = 60.0
DEFAULT_POLL_INTERVAL = 0.5


@dataclass(frozen=True)
class FinalizedExtrinsic:
    tx_hash: str
    status: str
    block_hash: Optional[str]
    events: Tuple[ChainEvent, ...]

    def find_events(self, pallet: str, method: str) -> Tuple[ChainEvent, ...]:
        return tuple(e for e in self.events if e.pallet == pallet and e.method == method)


def build_extrinsic(
    signer: Identity,
    nonce: int,
    pallet: str,
    method: str,
    args: Dict[str, Any],
) -> Dict[str, Any]:
    """
    Build and sign an extrinsic.

    The signature covers the canonical JSON of {call, nonce, signer}.
    """
    call = {"pallet": pallet, "method": method, "args": args}
    signed_part = {"call": call, "nonce": nonce, "signer": signer.address}
    return {
        "signer": signer.address,
        "nonce": nonce,
        "call": call,
        "signature": signer.sign_json(signed_part),
    }


def next_nonce(connection: Connection, address: str) -> int:
    """Fetch the next account index (nonce) for an address."""
    return int(connection.request("system_accountNextIndex", [address]))


def submit_and_watch(
    connection: Connection,
    signer: Identity,
    pallet: str,
    method: str,
    args: Dict[str, Any],
    wait_for_finalization: bool = True,
    timeout: float = DEFAULT_FINALIZATION_TIMEOUT,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
) -> FinalizedExtrinsic:
    """
    Sign, submit and wait for an extrinsic.

    Args:
        connection: Open node connection
        signer: Identity authorizing the extrinsic
        pallet: Target pallet (e.g. "Contracts")
        method: Dispatchable (e.g. "call", "instantiate_with_code")
        args: Dispatchable arguments (JSON pass-through)
        wait_for_finalization: Wait for finality (True) or block inclusion (False)
        timeout: Maximum seconds to wait
        poll_interval: Seconds between status polls

    Returns:
        FinalizedExtrinsic for a successfully dispatched extrinsic

    Raises:
        ExtrinsicRejected: Rejected by the pool, invalid/dropped/usurped,
            or dispatched with an error
        FinalizationTimeout: No terminal status within timeout
        ConnectivityError: Propagated from the connection
    """
    try:
        nonce = next_nonce(connection, signer.address)
    except RPCError as e:
        logger.error(f"Nonce lookup for {signer.address} failed: {e.message}")
        raise ExtrinsicRejected("", None, f"nonce lookup failed: {e.message}") from e

    extrinsic = build_extrinsic(signer, nonce, pallet, method, args)

    try:
        tx_hash = connection.request("author_submitExtrinsic", [extrinsic])
    except RPCError as e:
        # Pool rejection (bad nonce, cannot pay fees, bad signature)
        logger.error(f"Extrinsic {pallet}.{method} rejected by the pool: {e.message}")
        raise ExtrinsicRejected("", "invalid", e.message) from e

    logger.info(f"Submitted {pallet}.{method} as {tx_hash} (signer {signer.address}, nonce {nonce})")

    deadline = time.monotonic() + timeout
    while True:
        try:
            report = connection.request("author_extrinsicStatus", [tx_hash]) or {}
        except RPCError as e:
            logger.error(f"Status lookup for {tx_hash} failed: {e.message}")
            raise ExtrinsicRejected(tx_hash, None, f"status lookup failed: {e.message}") from e

        status = normalize_status(report.get("status"))

        if is_failed(status):
            logger.error(f"Extrinsic {tx_hash} not included: {status}")
            raise ExtrinsicRejected(tx_hash, status, f"extrinsic {status}")

        if is_settled(status, wait_for_finalization):
            return _settle(tx_hash, status, report)

        if time.monotonic() >= deadline:
            logger.error(f"Extrinsic {tx_hash} still {status} after {timeout}s")
            raise FinalizationTimeout(
                tx_hash, status, f"not finalized within {timeout}s (last status: {status})"
            )

        logger.debug(f"Extrinsic {tx_hash} is {status}; polling again in {poll_interval}s")
        time.sleep(poll_interval)


def _settle(tx_hash: str, status: str, report: Dict[str, Any]) -> FinalizedExtrinsic:
    events = tuple(ChainEvent.from_dict(e) for e in report.get("events") or [])
    finalized = FinalizedExtrinsic(
        tx_hash=tx_hash,
        status=status,
        block_hash=report.get("blockHash"),
        events=events,
    )

    failed = finalized.find_events("System", "ExtrinsicFailed")
    if failed:
        reason = format_dispatch_error(failed[0].data.get("dispatchError"))
        logger.error(f"Extrinsic {tx_hash} dispatched with error: {reason}")
        raise ExtrinsicRejected(tx_hash, status, reason, block_hash=finalized.block_hash)

    logger.info(f"Extrinsic {tx_hash} {status} in block {finalized.block_hash}")
    return finalized


class TransactionError(Exception):
    """
    An extrinsic did not complete successfully.
    """

    def __init__(self, tx_hash: str, status: Optional[str], reason: str,
                 block_hash: Optional[str] = None):
        self.tx_hash = tx_hash
        self.status = status
        self.reason = reason
        self.block_hash = block_hash
        super().__init__(f"Extrinsic {tx_hash}: {reason}")


class ExtrinsicRejected(TransactionError):
    """
    The node rejected the extrinsic or dispatched it with an error
    (out of gas, contract reverted, forbidden caller, insufficient funds).
    """
    pass


class FinalizationTimeout(TransactionError):
    """
    The extrinsic was not finalized within the wait bound.
    """
    pass

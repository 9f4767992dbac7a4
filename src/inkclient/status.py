"""
Extrinsic status normalization.

Nodes report transaction pool statuses in camelCase (``inBlock``,
``finalityTimeout``); the client works with the snake_case canonical names.
"""

from typing import Optional


CANONICAL_STATUSES = [
    "ready",
    "broadcast",
    "in_block",
    "finalized",
    "invalid",
    "dropped",
    "usurped",
    "finality_timeout",
]

STATUS_ALIASES = {
    "future": "ready",
    "inblock": "in_block",
    "retracted": "ready",
    "finalised": "finalized",
    "finalitytimeout": "finality_timeout",
}

# Statuses after which the node will not report further progress
TERMINAL_FAILURE_STATUSES = ("invalid", "dropped", "usurped", "finality_timeout")


def normalize_status(value: Optional[str]) -> Optional[str]:
    """Normalize an extrinsic status value to canonical form."""
    if value is None:
        return None
    if not isinstance(value, str):
        return value
    normalized = value.strip().lower()
    if normalized in CANONICAL_STATUSES:
        return normalized
    return STATUS_ALIASES.get(normalized, normalized)


def is_valid_status(value: Optional[str]) -> bool:
    """Return True if the status is canonical or an alias."""
    if value is None:
        return False
    return normalize_status(value) in CANONICAL_STATUSES


def is_settled(status: Optional[str], wait_for_finalization: bool = True) -> bool:
    """Return True once the extrinsic has reached the awaited inclusion level."""
    normalized = normalize_status(status)
    if normalized == "finalized":
        return True
    return normalized == "in_block" and not wait_for_finalization


def is_failed(status: Optional[str]) -> bool:
    """Return True if the status means the extrinsic will never be included."""
    return normalize_status(status) in TERMINAL_FAILURE_STATUSES

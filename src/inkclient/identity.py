"""
Signing identities derived from seed phrases.

Seeds follow the substrate secret-URI shape:

    //Alice                      dev mnemonic + hard junction "Alice"
    //Alice/stash                dev mnemonic + hard "Alice", soft "stash"
    <12-24 word mnemonic>        BIP39 mnemonic, no junctions
    <mnemonic>//hard/soft        BIP39 mnemonic + junctions
    0x<64 hex chars>             raw private key

Key material is handled by eth_account. Junctions are applied by hashing the
parent key with the junction separator and name, so hard (//) and soft (/)
junctions of the same name differ and derivation is deterministic: the same
seed always yields the same address.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Dict, List, Tuple

from eth_account import Account
from eth_account.messages import encode_defunct
from eth_account.signers.local import LocalAccount
from eth_utils import ValidationError, keccak

logger = logging.getLogger(__name__)

Account.enable_unaudited_hdwallet_features()

# Well-known development mnemonic shared by substrate dev chains.
# Not a secret.
DEV_PHRASE = "bottom drive obey lake curtain smoke basket hold race lonely fit walk"

DEV_ACCOUNTS = ("//Alice", "//Bob", "//Charlie", "//Dave", "//Eve", "//Ferdie")

_JUNCTION_PATTERN = re.compile(r'^[A-Za-z0-9_.\-]+$')
_RAW_KEY_PATTERN = re.compile(r'^0x[0-9a-fA-F]{64}$')
_MNEMONIC_LENGTHS = (12, 15, 18, 21, 24)


@dataclass(frozen=True)
class Identity:
    """
    Signing principal used to deploy contracts and authorize calls.

    Equality and hashing use the address only; the private key is never
    included in repr().
    """

    address: str
    seed: str = field(repr=False, compare=False)
    account: LocalAccount = field(repr=False, compare=False)

    def sign(self, payload: bytes) -> str:
        """Sign raw bytes (EIP-191 personal message) and return 0x-prefixed hex."""
        signed = self.account.sign_message(encode_defunct(primitive=payload))
        return "0x" + bytes(signed.signature).hex()

    def sign_json(self, document: Dict[str, Any]) -> str:
        """Sign the canonical JSON form of a document (sorted keys, compact)."""
        return self.sign(canonical_json(document))


def derive_from_seed(seed_phrase: str) -> Identity:
    """
    Derive an Identity from a seed phrase. No network access.

    Args:
        seed_phrase: Dev URI, mnemonic (with optional junctions) or raw key

    Returns:
        Identity with a deterministic address

    Raises:
        InvalidSeedError: If the seed phrase is malformed
    """
    if not isinstance(seed_phrase, str):
        raise InvalidSeedError(f"Seed phrase must be a string, got {type(seed_phrase).__name__}")

    seed = seed_phrase.strip()
    if not seed:
        raise InvalidSeedError("Seed phrase must not be empty")

    if _RAW_KEY_PATTERN.match(seed):
        account = Account.from_key(seed)
    else:
        phrase, junctions = _split_secret_uri(seed)
        key = _mnemonic_key(phrase or DEV_PHRASE)
        for separator, name in junctions:
            key = keccak(key + separator.encode("utf-8") + name.encode("utf-8"))
        account = Account.from_key(key)

    logger.debug(f"Derived identity {account.address}")
    return Identity(address=account.address, seed=seed, account=account)


def canonical_json(document: Dict[str, Any]) -> bytes:
    """Serialize a document deterministically for signing."""
    return json.dumps(document, sort_keys=True, separators=(",", ":")).encode("utf-8")


def _split_secret_uri(seed: str) -> Tuple[str, List[Tuple[str, str]]]:
    """Split '<phrase>//a/b' into ('<phrase>', [('//', 'a'), ('/', 'b')])."""
    index = seed.find("/")
    if index == -1:
        return seed, []

    phrase = seed[:index].strip()
    path = seed[index:]

    if "///" in path:
        raise InvalidSeedError("Password components (///) are not supported")

    junctions = []
    for separator, part in re.findall(r'(//?)([^/]*)', path):
        if not part:
            raise InvalidSeedError(f"Empty junction in seed path: {path!r}")
        if not _JUNCTION_PATTERN.match(part):
            raise InvalidSeedError(f"Invalid junction {part!r} in seed path")
        junctions.append((separator, part))

    if not junctions:
        raise InvalidSeedError(f"Seed path has no junctions: {path!r}")

    return phrase, junctions


@lru_cache(maxsize=32)
def _mnemonic_key(phrase: str) -> bytes:
    words = phrase.split()
    if len(words) not in _MNEMONIC_LENGTHS:
        raise InvalidSeedError(
            f"Mnemonic must have {', '.join(map(str, _MNEMONIC_LENGTHS))} words, got {len(words)}"
        )
    try:
        account = Account.from_mnemonic(" ".join(words))
    except (ValidationError, ValueError) as e:
        raise InvalidSeedError(f"Invalid mnemonic: {e}") from e
    return bytes(account.key)


class InvalidSeedError(ValueError):
    """
    Seed phrase is malformed (empty, bad junction, invalid mnemonic).

    Fatal to the scenario; surfaced immediately.
    """
    pass

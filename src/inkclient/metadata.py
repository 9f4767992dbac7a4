"""
Contract metadata (ABI) loaded from build artifacts.

The artifact is the JSON document produced when a contract is built
(``<name>.json`` / ``<name>.contract``). Only the parts needed to drive calls
are modelled: constructors, messages, their argument labels and the code
hash/wasm used for deployment. Argument and return *encoding* stays with the
node.

Example artifact (abridged):

    {
      "source": {"hash": "0x5a1e...", "wasm": "0x0061736d..."},
      "contract": {"name": "flipper", "version": "0.1.0"},
      "spec": {
        "constructors": [{"label": "new", "selector": "0x9bae9d5e",
                          "args": [{"label": "init_value",
                                    "type": {"displayName": ["bool"]}}],
                          "payable": false, "default": false}],
        "messages": [{"label": "flip", "selector": "0x633aa551",
                      "args": [], "mutates": true, "payable": false,
                      "returnType": {"displayName": ["ink", "MessageResult"]}}]
      }
    }
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union
import json
import keyword
import re


@dataclass(frozen=True)
class ArgSpec:
    label: str
    type_name: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ArgSpec":
        type_info = data.get("type") or {}
        display = type_info.get("displayName") or []
        return cls(label=data["label"], type_name="::".join(display))


@dataclass(frozen=True)
class ConstructorSpec:
    label: str
    selector: str
    args: Tuple[ArgSpec, ...] = ()
    payable: bool = False
    default: bool = False

    @property
    def arity(self) -> int:
        return len(self.args)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConstructorSpec":
        return cls(
            label=data["label"],
            selector=data.get("selector", ""),
            args=tuple(ArgSpec.from_dict(arg) for arg in data.get("args", [])),
            payable=bool(data.get("payable", False)),
            default=bool(data.get("default", False)),
        )


@dataclass(frozen=True)
class MessageSpec:
    label: str
    selector: str
    args: Tuple[ArgSpec, ...] = ()
    mutates: bool = False
    payable: bool = False
    return_type: str = ""

    @property
    def arity(self) -> int:
        return len(self.args)

    @property
    def identifier(self) -> str:
        """Python attribute name for this message (see to_identifier)."""
        return to_identifier(self.label)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MessageSpec":
        return_type = data.get("returnType") or {}
        return cls(
            label=data["label"],
            selector=data.get("selector", ""),
            args=tuple(ArgSpec.from_dict(arg) for arg in data.get("args", [])),
            mutates=bool(data.get("mutates", False)),
            payable=bool(data.get("payable", False)),
            return_type="::".join(return_type.get("displayName") or []),
        )


@dataclass(frozen=True)
class ContractMetadata:
    """
    Parsed contract artifact.

    Lookups by label raise ValueError for unknown constructors/messages so
    typos fail before anything reaches the node.
    """

    name: str
    version: str
    code_hash: str
    constructors: Tuple[ConstructorSpec, ...]
    messages: Tuple[MessageSpec, ...]
    wasm: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ContractMetadata":
        """
        Create ContractMetadata from a parsed artifact.

        Raises:
            MetadataError: Required sections are missing or malformed
        """
        try:
            source = data["source"]
            contract = data["contract"]
            spec = data["spec"]
            constructors = tuple(ConstructorSpec.from_dict(c) for c in spec["constructors"])
            messages = tuple(MessageSpec.from_dict(m) for m in spec["messages"])
            metadata = cls(
                name=contract["name"],
                version=contract.get("version", "0.0.0"),
                code_hash=source["hash"],
                constructors=constructors,
                messages=messages,
                wasm=source.get("wasm"),
            )
        except (KeyError, TypeError, AttributeError) as e:
            raise MetadataError(f"Malformed contract metadata: missing or invalid {e}") from e

        if not metadata.constructors:
            raise MetadataError(f"Contract {metadata.name} declares no constructors")

        identifiers = [m.identifier for m in metadata.messages]
        duplicates = {i for i in identifiers if identifiers.count(i) > 1}
        if duplicates:
            raise MetadataError(
                f"Message labels collide after sanitizing: {', '.join(sorted(duplicates))}"
            )

        return metadata

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "ContractMetadata":
        """Load metadata from a JSON artifact on disk."""
        path = Path(path)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except OSError as e:
            raise MetadataError(f"Cannot read contract metadata {path}: {e}") from e
        except ValueError as e:
            raise MetadataError(f"Contract metadata {path} is not valid JSON: {e}") from e
        return cls.from_dict(data)

    def constructor(self, label: Optional[str] = None) -> ConstructorSpec:
        """
        Look up a constructor by label.

        With no label, returns the constructor flagged ``default``, else
        ``new``, else the first declared one.
        """
        if label is None:
            for spec in self.constructors:
                if spec.default:
                    return spec
            for spec in self.constructors:
                if spec.label == "new":
                    return spec
            return self.constructors[0]

        for spec in self.constructors:
            if spec.label == label:
                return spec
        available = ", ".join(c.label for c in self.constructors)
        raise ValueError(f"Unknown constructor {label!r} for {self.name} (available: {available})")

    def message(self, name: str) -> MessageSpec:
        """Look up a message by label or by its sanitized identifier."""
        for spec in self.messages:
            if spec.label == name or spec.identifier == name:
                return spec
        available = ", ".join(m.label for m in self.messages)
        raise ValueError(f"Unknown message {name!r} for {self.name} (available: {available})")

    def has_message(self, name: str) -> bool:
        return any(spec.label == name or spec.identifier == name for spec in self.messages)


def to_identifier(name: str) -> str:
    """
    Convert a contract or message name into a valid snake_case identifier.

    Examples:
        >>> to_identifier("uniswap-core")
        'uniswap_core'
        >>> to_identifier("PSP22::total_supply")
        'psp22_total_supply'
        >>> to_identifier("getReserves")
        'get_reserves'
    """
    text = re.sub(r'([a-z0-9])([A-Z])', r'\1_\2', name.strip())
    text = re.sub(r'[^0-9a-zA-Z]+', '_', text).strip('_').lower()
    if not text:
        raise ValueError(f"Cannot derive an identifier from {name!r}")
    if text[0].isdigit():
        text = f"_{text}"
    if keyword.iskeyword(text):
        text = f"{text}_"
    return text


def to_class_name(name: str) -> str:
    """
    Convert a contract name into a CapWords class name.

    Examples:
        >>> to_class_name("uniswap-core")
        'UniswapCore'
        >>> to_class_name("psp22token")
        'Psp22token'
    """
    parts = [part for part in to_identifier(name).split('_') if part]
    class_name = "".join(part[:1].upper() + part[1:] for part in parts)
    if class_name[0].isdigit():
        class_name = f"_{class_name}"
    return class_name


class MetadataError(ValueError):
    """
    Contract artifact is missing, unreadable or malformed.
    """
    pass

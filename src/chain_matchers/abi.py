"""Contract ABI lookups: selectors, call encoding and custom error decoding."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from eth_abi import decode, encode
from eth_utils import keccak
from eth_utils.abi import collapse_if_tuple

from .config import SELECTOR_SIZE


def _collect_types(params: Sequence[Dict[str, Any]]) -> Tuple[str, ...]:
    return tuple(collapse_if_tuple(dict(p)) for p in params)


def selector_of(signature: str) -> bytes:
    return keccak(text=signature)[:SELECTOR_SIZE]


@dataclass(frozen=True)
class ErrorSpec:
    name: str
    input_types: Tuple[str, ...] = ()
    input_names: Tuple[str, ...] = ()

    @property
    def signature(self) -> str:
        return f"{self.name}({','.join(self.input_types)})"

    @property
    def selector(self) -> bytes:
        return selector_of(self.signature)

    def decode_args(self, body: bytes) -> tuple:
        return tuple(decode(list(self.input_types), body))

    def encode(self, *args: Any) -> bytes:
        return self.selector + encode(list(self.input_types), list(args))


@dataclass(frozen=True)
class FunctionSpec:
    name: str
    input_types: Tuple[str, ...] = ()
    input_names: Tuple[str, ...] = ()
    output_types: Tuple[str, ...] = ()

    @property
    def signature(self) -> str:
        return f"{self.name}({','.join(self.input_types)})"

    @property
    def selector(self) -> bytes:
        return selector_of(self.signature)


@dataclass
class ContractAbi:
    """Name and selector indexes over a JSON ABI.

    Overloaded functions and errors are indexed by name under their first
    declaration; selector lookups see every overload.
    """

    entries: List[Dict[str, Any]] = field(default_factory=list)
    _functions: Dict[str, FunctionSpec] = field(init=False, repr=False, default_factory=dict)
    _functions_by_selector: Dict[bytes, FunctionSpec] = field(
        init=False, repr=False, default_factory=dict
    )
    _errors: Dict[str, ErrorSpec] = field(init=False, repr=False, default_factory=dict)
    _errors_by_selector: Dict[bytes, ErrorSpec] = field(
        init=False, repr=False, default_factory=dict
    )

    def __post_init__(self) -> None:
        for entry in self.entries:
            inputs = entry.get("inputs", [])
            types = _collect_types(inputs)
            names = tuple(p.get("name", "") for p in inputs)
            kind = entry.get("type", "function")
            if kind == "function":
                spec = FunctionSpec(
                    name=entry["name"],
                    input_types=types,
                    input_names=names,
                    output_types=_collect_types(entry.get("outputs", [])),
                )
                self._functions.setdefault(spec.name, spec)
                self._functions_by_selector[spec.selector] = spec
            elif kind == "error":
                error = ErrorSpec(name=entry["name"], input_types=types, input_names=names)
                self._errors.setdefault(error.name, error)
                self._errors_by_selector[error.selector] = error

    @classmethod
    def from_json(cls, source: Any) -> "ContractAbi":
        """Build from a JSON string, a path, or an artifact dict with an ``abi`` key."""
        if isinstance(source, Path):
            source = source.read_text()
        if isinstance(source, str):
            source = json.loads(source)
        if isinstance(source, dict):
            source = source.get("abi", [])
        return cls(entries=list(source))

    def has_function(self, name: str) -> bool:
        return name in self._functions

    def function(self, name: str) -> FunctionSpec:
        return self._functions[name]

    def function_by_selector(self, selector: bytes) -> Optional[FunctionSpec]:
        return self._functions_by_selector.get(bytes(selector))

    def has_error(self, name: str) -> bool:
        return name in self._errors

    def error(self, name: str) -> ErrorSpec:
        return self._errors[name]

    def error_by_selector(self, selector: bytes) -> Optional[ErrorSpec]:
        return self._errors_by_selector.get(bytes(selector))

    def encode_call(self, name: str, *args: Any) -> bytes:
        fn = self.function(name)
        return fn.selector + encode(list(fn.input_types), list(args))

    def decode_output(self, name: str, data: bytes) -> tuple:
        fn = self.function(name)
        return tuple(decode(list(fn.output_types), data))


@dataclass(frozen=True, eq=False)
class Contract:
    """A deployed contract: checksummed address plus its ABI."""

    address: str
    abi: ContractAbi

    def __str__(self) -> str:
        return self.address

"""Python implementations of the devnet contracts.

Each contract declares a JSON ABI; calldata is dispatched by selector to the
snake_case method named after the ABI function.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, ClassVar, Dict, List, Sequence

from eth_abi import decode, encode

from ..abi import ContractAbi
from ..config import DEVNET_TOKEN_SUPPLY, ERROR_STRING_SELECTOR, PANIC_SELECTOR, SELECTOR_SIZE
from ..panic_codes import PanicCode, format_panic_code, panic_description

_VM_EXCEPTION = "VM Exception while processing transaction"


class Revert(Exception):
    """Contract execution reverted with ``data``."""

    def __init__(self, data: bytes, message: str):
        super().__init__(message)
        self.data = data
        self.message = message


def revert_with_reason(reason: str) -> Revert:
    return Revert(
        ERROR_STRING_SELECTOR + encode(["string"], [reason]),
        f"{_VM_EXCEPTION}: reverted with reason string '{reason}'",
    )


def revert_without_reason() -> Revert:
    return Revert(b"", "Transaction reverted without a reason string")


def panic(code: int) -> Revert:
    return Revert(
        PANIC_SELECTOR + encode(["uint256"], [code]),
        f"{_VM_EXCEPTION}: reverted with panic code {format_panic_code(code)} "
        f"({panic_description(code)})",
    )


def custom_error(abi: ContractAbi, name: str, *args: Any) -> Revert:
    spec = abi.error(name)
    return Revert(
        spec.encode(*args),
        f"{_VM_EXCEPTION}: reverted with custom error '{name}'",
    )


@dataclass
class CallContext:
    sender: str
    value: int
    address: str


def _method_name(abi_name: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", abi_name).lower()


def _fn(name: str, inputs: Sequence[str] = (), outputs: Sequence[str] = (), mutability: str = "nonpayable") -> dict:
    return {
        "type": "function",
        "name": name,
        "stateMutability": mutability,
        "inputs": [{"name": f"arg{i}", "type": t} for i, t in enumerate(inputs)],
        "outputs": [{"name": "", "type": t} for t in outputs],
    }


def _error(name: str, inputs: Sequence[str] = ()) -> dict:
    return {
        "type": "error",
        "name": name,
        "inputs": [{"name": f"arg{i}", "type": t} for i, t in enumerate(inputs)],
    }


class DevnetContract:
    ABI: ClassVar[List[dict]] = []
    _abi_cache: ClassVar[Dict[type, ContractAbi]] = {}

    def __init__(self, address: str, deployer: str):
        self.address = address
        self.deployer = deployer

    @classmethod
    def contract_abi(cls) -> ContractAbi:
        abi = DevnetContract._abi_cache.get(cls)
        if abi is None:
            abi = ContractAbi(cls.ABI)
            DevnetContract._abi_cache[cls] = abi
        return abi

    def execute(self, ctx: CallContext, data: bytes) -> bytes:
        abi = self.contract_abi()
        fn = abi.function_by_selector(data[:SELECTOR_SIZE]) if len(data) >= SELECTOR_SIZE else None
        if fn is None:
            raise revert_without_reason()
        args = decode(list(fn.input_types), data[SELECTOR_SIZE:])
        result = getattr(self, _method_name(fn.name))(ctx, *args)
        if not fn.output_types:
            return b""
        if not isinstance(result, tuple):
            result = (result,)
        return encode(list(fn.output_types), list(result))


# --- Tokens ---


def _erc20_abi(with_name: bool = True, with_symbol: bool = True) -> List[dict]:
    entries = [
        _fn("decimals", outputs=["uint8"], mutability="view"),
        _fn("totalSupply", outputs=["uint256"], mutability="view"),
        _fn("balanceOf", ["address"], ["uint256"], mutability="view"),
        _fn("transfer", ["address", "uint256"], ["bool"]),
    ]
    if with_name:
        entries.append(_fn("name", outputs=["string"], mutability="view"))
    if with_symbol:
        entries.append(_fn("symbol", outputs=["string"], mutability="view"))
    return entries


class MockToken(DevnetContract):
    """ERC20 with the whole supply minted to the deployer."""

    ABI = _erc20_abi()
    TOKEN_NAME = "MockToken"
    TOKEN_SYMBOL = "MCK"

    def __init__(self, address: str, deployer: str):
        super().__init__(address, deployer)
        self.balances: Dict[str, int] = {deployer.lower(): DEVNET_TOKEN_SUPPLY}

    def name(self, ctx: CallContext) -> str:
        return self.TOKEN_NAME

    def symbol(self, ctx: CallContext) -> str:
        return self.TOKEN_SYMBOL

    def decimals(self, ctx: CallContext) -> int:
        return 18

    def total_supply(self, ctx: CallContext) -> int:
        return sum(self.balances.values())

    def balance_of(self, ctx: CallContext, account: str) -> int:
        return self.balances.get(account.lower(), 0)

    def transfer(self, ctx: CallContext, to: str, amount: int) -> bool:
        if amount == 0:
            raise revert_with_reason("Transferred value is zero")
        sender = ctx.sender.lower()
        if self.balances.get(sender, 0) < amount:
            raise revert_with_reason("ERC20: transfer amount exceeds balance")
        self.balances[sender] -= amount
        self.balances[to.lower()] = self.balances.get(to.lower(), 0) + amount
        return True


class TokenWithOnlyName(MockToken):
    ABI = _erc20_abi(with_symbol=False)


class TokenWithoutNameNorSymbol(MockToken):
    ABI = _erc20_abi(with_name=False, with_symbol=False)


class NotAToken(DevnetContract):
    ABI = [_fn("foo")]

    def foo(self, ctx: CallContext) -> None:
        return None


# --- Revert fixtures ---


class Matchers(DevnetContract):
    """Methods that succeed or revert in every way a contract can."""

    ABI = [
        _fn("succeeds"),
        _fn("revertsWith", ["string"]),
        _fn("revertsWithoutReason"),
        _fn("panicAssert"),
        _fn("panicOverflow"),
        _fn("panicDivisionByZero"),
        _fn("panicIndexOutOfBounds"),
        _fn("revertWithSomeCustomError"),
        _fn("revertWithAnotherCustomError"),
        _fn("revertWithCustomErrorWithUint", ["uint256"]),
        _fn("revertWithCustomErrorWithUintAndString", ["uint256", "string"]),
        _fn("revertWithCustomErrorWithAddress", ["address"]),
        _fn("revertWithRawData", ["bytes"]),
        _fn("counter", outputs=["uint256"], mutability="view"),
        _error("SomeCustomError"),
        _error("AnotherCustomError"),
        _error("CustomErrorWithUint", ["uint256"]),
        _error("CustomErrorWithUintAndString", ["uint256", "string"]),
        _error("CustomErrorWithAddress", ["address"]),
    ]

    def __init__(self, address: str, deployer: str):
        super().__init__(address, deployer)
        self.calls = 0

    def counter(self, ctx: CallContext) -> int:
        return self.calls

    def succeeds(self, ctx: CallContext) -> None:
        self.calls += 1

    def reverts_with(self, ctx: CallContext, reason: str) -> None:
        raise revert_with_reason(reason)

    def reverts_without_reason(self, ctx: CallContext) -> None:
        raise revert_without_reason()

    def panic_assert(self, ctx: CallContext) -> None:
        raise panic(PanicCode.ASSERTION_ERROR)

    def panic_overflow(self, ctx: CallContext) -> None:
        raise panic(PanicCode.ARITHMETIC_OVERFLOW)

    def panic_division_by_zero(self, ctx: CallContext) -> None:
        raise panic(PanicCode.DIVISION_BY_ZERO)

    def panic_index_out_of_bounds(self, ctx: CallContext) -> None:
        raise panic(PanicCode.ARRAY_ACCESS_OUT_OF_BOUNDS)

    def revert_with_some_custom_error(self, ctx: CallContext) -> None:
        raise custom_error(self.contract_abi(), "SomeCustomError")

    def revert_with_another_custom_error(self, ctx: CallContext) -> None:
        raise custom_error(self.contract_abi(), "AnotherCustomError")

    def revert_with_custom_error_with_uint(self, ctx: CallContext, n: int) -> None:
        raise custom_error(self.contract_abi(), "CustomErrorWithUint", n)

    def revert_with_custom_error_with_uint_and_string(self, ctx: CallContext, n: int, s: str) -> None:
        raise custom_error(self.contract_abi(), "CustomErrorWithUintAndString", n, s)

    def revert_with_custom_error_with_address(self, ctx: CallContext, address: str) -> None:
        raise custom_error(self.contract_abi(), "CustomErrorWithAddress", address)

    def revert_with_raw_data(self, ctx: CallContext, data: bytes) -> None:
        raise Revert(bytes(data), f"{_VM_EXCEPTION}: reverted with an unrecognized custom error")

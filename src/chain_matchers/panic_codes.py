"""Solidity panic codes and their descriptions."""

from __future__ import annotations

from enum import IntEnum


class PanicCode(IntEnum):
    ASSERTION_ERROR = 0x01
    ARITHMETIC_OVERFLOW = 0x11
    DIVISION_BY_ZERO = 0x12
    ENUM_CONVERSION_OUT_OF_BOUNDS = 0x21
    INCORRECTLY_ENCODED_STORAGE_BYTE_ARRAY = 0x22
    POP_ON_EMPTY_ARRAY = 0x31
    ARRAY_ACCESS_OUT_OF_BOUNDS = 0x32
    TOO_MUCH_MEMORY_ALLOCATED = 0x41
    ZERO_INITIALIZED_VARIABLE = 0x51


UNKNOWN_PANIC_DESCRIPTION = "Unknown panic code"

_DESCRIPTIONS = {
    PanicCode.ASSERTION_ERROR: "Assertion error",
    PanicCode.ARITHMETIC_OVERFLOW: "Arithmetic operation underflowed or overflowed outside of an unchecked block",
    PanicCode.DIVISION_BY_ZERO: "Division or modulo division by zero",
    PanicCode.ENUM_CONVERSION_OUT_OF_BOUNDS: (
        "Tried to convert a value into an enum, but the value was too big or negative"
    ),
    PanicCode.INCORRECTLY_ENCODED_STORAGE_BYTE_ARRAY: "Incorrectly encoded storage byte array",
    PanicCode.POP_ON_EMPTY_ARRAY: ".pop() was called on an empty array",
    PanicCode.ARRAY_ACCESS_OUT_OF_BOUNDS: "Array accessed at an out-of-bounds or negative index",
    PanicCode.TOO_MUCH_MEMORY_ALLOCATED: (
        "Too much memory was allocated, or an array was created that is too large"
    ),
    PanicCode.ZERO_INITIALIZED_VARIABLE: (
        "Called a zero-initialized variable of internal function type"
    ),
}


def panic_description(code: int) -> str:
    return _DESCRIPTIONS.get(code, UNKNOWN_PANIC_DESCRIPTION)


def format_panic_code(code: int) -> str:
    return f"0x{code:02x}"

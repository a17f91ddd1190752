"""Generate vectors/revert_causes.yaml from encoded revert payloads."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any, Optional

import click

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT / "src"))
sys.path.insert(0, str(ROOT))

from eth_abi import encode  # noqa: E402

from chain_matchers.config import ERROR_STRING_SELECTOR, PANIC_SELECTOR  # noqa: E402
from chain_matchers.revert_decoder import decode_revert_data  # noqa: E402
from chain_matchers.types import CustomError, Panic, Reason, RevertCause  # noqa: E402
from tools.yaml_dump import write_yaml  # noqa: E402

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT = ROOT / "vectors" / "revert_causes.yaml"


def _error_string(text: str) -> bytes:
    return ERROR_STRING_SELECTOR + encode(["string"], [text])


def _panic(code: int) -> bytes:
    return PANIC_SELECTOR + encode(["uint256"], [code])


CASES = [
    ("error_string", _error_string("some reason")),
    ("error_string_empty", _error_string("")),
    ("error_string_transfer", _error_string("Transferred value is zero")),
    ("panic_assert", _panic(0x01)),
    ("panic_overflow", _panic(0x11)),
    ("panic_division_by_zero", _panic(0x12)),
    ("panic_out_of_bounds", _panic(0x32)),
    ("panic_unknown", _panic(0x99)),
    ("empty", b""),
    ("unknown_selector", bytes.fromhex("deadbeef")),
    ("short_payload", b"\x01"),
    # Offset word without the length word that must follow it.
    ("malformed_error_string", ERROR_STRING_SELECTOR + (32).to_bytes(32, "big")),
]


def expected_of(cause: RevertCause) -> dict[str, Any]:
    expected: dict[str, Any] = {"kind": cause.kind.value}
    if isinstance(cause, Reason):
        expected["text"] = cause.text
    elif isinstance(cause, Panic):
        expected["code"] = cause.code
        expected["description"] = cause.description
    elif isinstance(cause, CustomError):
        expected["selector"] = "0x" + cause.selector.hex()
        expected["name"] = cause.name
    return expected


def build_vectors() -> dict[str, Any]:
    return {
        "description": "Raw revert payloads and the causes they decode to without a contract ABI.",
        "vectors": [
            {
                "name": name,
                "data": data,
                "expected": expected_of(decode_revert_data(data)),
            }
            for name, data in CASES
        ],
    }


@click.command()
@click.option(
    "--output",
    default=None,
    help="Path of the YAML file to write",
)
def main(output: Optional[str]) -> None:
    """Regenerate the revert cause vectors."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
    )
    path = Path(output) if output else DEFAULT_OUTPUT
    vectors = build_vectors()
    write_yaml(path, vectors)
    logger.info(f"Wrote {len(vectors['vectors'])} vectors to {path}")


if __name__ == "__main__":
    main()

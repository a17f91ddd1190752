"""Command-line tools: revert decoding and vector generation."""

from __future__ import annotations

import json
from pathlib import Path

from click.testing import CliRunner
from eth_abi import encode

from chain_matchers.config import PANIC_SELECTOR
from chain_matchers.devnet.contracts import Matchers
from tools.decode_revert import main as decode_main
from tools.decode_revert import parse_hex
from tools.fill_revert_vectors import build_vectors
from tools.fill_revert_vectors import main as fill_main
from tools.yaml_dump import load_vectors


def test_parse_hex() -> None:
    assert parse_hex("0x0102") == b"\x01\x02"
    assert parse_hex("0102") == b"\x01\x02"


def test_decode_panic() -> None:
    payload = "0x" + (PANIC_SELECTOR + encode(["uint256"], [1])).hex()
    result = CliRunner().invoke(decode_main, [payload])

    assert result.exit_code == 0, result.output
    assert result.output.splitlines() == [
        "kind: panic",
        "code: 0x01",
        "description: reverted with panic code 0x01 (Assertion error)",
    ]


def test_decode_custom_error_with_abi(tmp_path: Path) -> None:
    abi_path = tmp_path / "Matchers.json"
    abi_path.write_text(json.dumps({"contractName": "Matchers", "abi": Matchers.ABI}))
    data = Matchers.contract_abi().error("CustomErrorWithUint").encode(7)

    result = CliRunner().invoke(decode_main, ["0x" + data.hex(), "--abi", str(abi_path)])

    assert result.exit_code == 0, result.output
    assert "name: CustomErrorWithUint" in result.output
    assert "arg[0]: 7" in result.output
    assert result.output.splitlines()[-1] == "description: reverted with custom error 'CustomErrorWithUint'"


def test_decode_empty_payload() -> None:
    result = CliRunner().invoke(decode_main, ["0x"])

    assert result.exit_code == 0, result.output
    assert result.output.splitlines() == ["kind: no_revert_data", "description: reverted without a reason"]


def test_decode_rejects_bad_input() -> None:
    runner = CliRunner()

    result = runner.invoke(decode_main, ["0xzz"])
    assert result.exit_code == 2
    assert "is not a hex string" in result.output

    result = runner.invoke(decode_main, ["0x1234", "--rpc-url", "http://127.0.0.1:1"])
    assert result.exit_code == 2
    assert "Expected a valid transaction hash" in result.output


def test_fill_writes_vectors(tmp_path: Path) -> None:
    output = tmp_path / "out" / "revert_causes.yaml"
    result = CliRunner().invoke(fill_main, ["--output", str(output)])

    assert result.exit_code == 0, result.output
    assert load_vectors(output) == build_vectors()["vectors"]

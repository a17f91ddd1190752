"""Deterministic devnet accounts.

Addresses are derived from labels with keccak so every devnet starts with the
same ten funded identities.
"""

from __future__ import annotations

from eth_utils import keccak, to_checksum_address

NAMES = ["Miner", "Alice", "Bob", "Carol", "Dave",
         "Eve", "Frank", "Grace", "Heidi", "Ivan"]

ZERO_ADDRESS = "0x" + "00" * 20


def derive_address(label: str) -> str:
    return to_checksum_address(keccak(text=label)[-20:])


def contract_address(deployer: str, nonce: int) -> str:
    return derive_address(f"create:{deployer.lower()}:{nonce}")


def _account(name: str) -> str:
    return derive_address(f"chain-matchers/{name.lower()}")


MINER = _account("Miner")
ALICE = _account("Alice")
BOB = _account("Bob")
CAROL = _account("Carol")
DAVE = _account("Dave")
EVE = _account("Eve")
FRANK = _account("Frank")
GRACE = _account("Grace")
HEIDI = _account("Heidi")
IVAN = _account("Ivan")

DEFAULT_ACCOUNTS = {name: _account(name) for name in NAMES}

"""chain-matchers configuration constants.

Selectors and panic codes follow the Solidity ABI; matcher names
are the identifiers quoted in chaining and validation messages.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

# Wire formats
TX_HASH_HEX_LENGTH = 64
SELECTOR_SIZE = 4
ERROR_STRING_SELECTOR = bytes.fromhex("08c379a0")  # Error(string)
PANIC_SELECTOR = bytes.fromhex("4e487b71")  # Panic(uint256)

# Matcher names
REVERTED_MATCHER = "reverted"
REVERTED_WITH_MATCHER = "revertedWith"
REVERTED_WITH_CUSTOM_ERROR_MATCHER = "revertedWithCustomError"
REVERTED_WITHOUT_REASON_MATCHER = "revertedWithoutReason"
REVERTED_WITH_PANIC_MATCHER = "revertedWithPanic"
CHANGE_ETHER_BALANCE_MATCHER = "changeEtherBalance"
CHANGE_ETHER_BALANCES_MATCHER = "changeEtherBalances"
CHANGE_TOKEN_BALANCE_MATCHER = "changeTokenBalance"
CHANGE_TOKEN_BALANCES_MATCHER = "changeTokenBalances"

TERMINAL_MATCHERS = frozenset({
    REVERTED_MATCHER,
    REVERTED_WITH_MATCHER,
    REVERTED_WITH_CUSTOM_ERROR_MATCHER,
    REVERTED_WITHOUT_REASON_MATCHER,
    REVERTED_WITH_PANIC_MATCHER,
    CHANGE_ETHER_BALANCE_MATCHER,
    CHANGE_ETHER_BALANCES_MATCHER,
    CHANGE_TOKEN_BALANCE_MATCHER,
    CHANGE_TOKEN_BALANCES_MATCHER,
})

# Minimal ERC20 surface: balance reads and the metadata used in messages.
ERC20_ABI = [
    {
        "type": "function",
        "name": "balanceOf",
        "stateMutability": "view",
        "inputs": [{"name": "account", "type": "address"}],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "type": "function",
        "name": "symbol",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "string"}],
    },
    {
        "type": "function",
        "name": "name",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "string"}],
    },
]

# Units
WEI_PER_ETHER = 10**18

# Devnet
DEVNET_CHAIN_ID = 31337
DEVNET_GENESIS_BALANCE = 10_000 * WEI_PER_ETHER
DEVNET_TOKEN_SUPPLY = 1_000_000

# Provider defaults
DEFAULT_RPC_URL = "http://127.0.0.1:8545"
DEFAULT_REQUEST_TIMEOUT = 30.0
DEFAULT_RECEIPT_TIMEOUT = 60.0
DEFAULT_POLL_INTERVAL = 0.5


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "")
    return float(raw) if raw else default


@dataclass
class ProviderSettings:
    """Connection settings for a JSON-RPC node."""
    endpoint: str = DEFAULT_RPC_URL
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    receipt_timeout: float = DEFAULT_RECEIPT_TIMEOUT
    poll_interval: float = DEFAULT_POLL_INTERVAL

    @classmethod
    def from_env(cls) -> "ProviderSettings":
        """Load settings from environment variables."""
        return cls(
            endpoint=os.environ.get("CHAIN_MATCHERS_RPC_URL", DEFAULT_RPC_URL),
            request_timeout=_env_float("CHAIN_MATCHERS_REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT),
            receipt_timeout=_env_float("CHAIN_MATCHERS_RECEIPT_TIMEOUT", DEFAULT_RECEIPT_TIMEOUT),
            poll_interval=_env_float("CHAIN_MATCHERS_POLL_INTERVAL", DEFAULT_POLL_INTERVAL),
        )

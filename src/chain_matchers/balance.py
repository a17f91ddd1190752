"""Balance deltas bracketing a single transaction.

Every account is sampled before the subject executes, the memoized execution
is triggered once, and the same accounts are sampled again at the block of the
receipt. Samples are taken sequentially, never concurrently.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from eth_abi.exceptions import DecodingError
from eth_utils import is_hex_address, to_checksum_address

from .abi import Contract, ContractAbi
from .config import ERC20_ABI
from .errors import (
    ErrorCode,
    InvalidArgumentError,
    NotATokenError,
    RpcError,
    UnbracketedSubjectError,
    length_mismatch,
    multiple_transactions_in_block,
)
from .provider import Provider
from .subject import Subject
from .types import (
    AccountBalanceSample,
    BalanceDelta,
    BalanceSource,
    Failure,
    Receipt,
    Settlement,
    TokenBalance,
)

logger = logging.getLogger(__name__)

_ERC20 = ContractAbi(ERC20_ABI)
_token_descriptions: Dict[str, str] = {}


def clear_token_descriptions_cache() -> None:
    _token_descriptions.clear()


# --- Static validation ---


def account_address(account: Any) -> str:
    """Checksummed address of an address string or an object with ``address``."""
    value = getattr(account, "address", account)
    if isinstance(value, str) and is_hex_address(value):
        return to_checksum_address(value)
    raise InvalidArgumentError(
        ErrorCode.INVALID_ARGUMENT,
        f"Expected an address or an object with an address, but got '{account}'",
    )


def ensure_token_contract(token: Any, matcher: str) -> Contract:
    if not isinstance(token, Contract):
        raise InvalidArgumentError(
            ErrorCode.INVALID_CONTRACT,
            f"The first argument of {matcher} must be the contract instance of the token",
        )
    if not token.abi.has_function("balanceOf"):
        raise NotATokenError(
            ErrorCode.NOT_A_TOKEN,
            "The given contract instance is not an ERC20 token",
        )
    return token


def ensure_same_length(accounts: Sequence[Any], expectations: Any) -> None:
    if callable(expectations):
        return
    if len(accounts) != len(expectations):
        raise length_mismatch(len(accounts), len(expectations))


def ensure_bracketable(subject: Subject, matcher: str) -> None:
    """Reject subjects whose execution cannot be preceded by a balance sample."""
    if not subject.is_deferred:
        raise UnbracketedSubjectError(
            ErrorCode.UNBRACKETED_SUBJECT,
            f"{matcher} needs a transaction that has not been sent yet "
            f"(an awaitable or a callable), but got a {subject.kind.value}",
        )
    if subject.started:
        raise UnbracketedSubjectError(
            ErrorCode.UNBRACKETED_SUBJECT,
            f"{matcher} cannot sample balances before a transaction that already executed",
        )


# --- Reads ---


async def read_balance(provider: Provider, address: str, source: BalanceSource, block: Optional[int]) -> int:
    if isinstance(source, TokenBalance):
        token = source.contract
        raw = await provider.call(token.address, token.abi.encode_call("balanceOf", address), block)
        (balance,) = token.abi.decode_output("balanceOf", raw)
        return balance
    return await provider.get_balance(address, block)


async def token_description(provider: Provider, token: Contract) -> str:
    """``symbol()``, else ``name()``, else a display form of the address."""
    cached = _token_descriptions.get(token.address)
    if cached is not None:
        return cached

    description = f"<token at {token.address}>"
    for fn in ("symbol", "name"):
        try:
            raw = await provider.call(token.address, _ERC20.encode_call(fn))
            (text,) = _ERC20.decode_output(fn, raw)
        except (RpcError, DecodingError):
            continue
        if text:
            description = text
            break

    _token_descriptions[token.address] = description
    return description


# --- Measurement ---


@dataclass
class BalanceMeasurement:
    deltas: List[BalanceDelta]
    receipt: Receipt

    @property
    def values(self) -> List[int]:
        return [d.delta for d in self.deltas]


class BalanceBracket:
    """Before and after samples of one account list around one execution."""

    def __init__(self, engine: "BalanceDeltaEngine", accounts: Sequence[str], source: BalanceSource):
        self.engine = engine
        self.accounts = list(accounts)
        self.source = source
        self.before: Optional[List[AccountBalanceSample]] = None

    async def capture_before(self) -> None:
        self.before = await self.engine.sample(self.accounts, self.source)

    async def capture_after(self, receipt: Receipt) -> BalanceMeasurement:
        if self.before is None:
            raise RuntimeError("capture_before() must run before capture_after()")
        parent = receipt.block_number - 1
        if self.before and self.before[0].block != parent:
            logger.debug(
                "Blocks mined between block %d and the transaction in block %d, re-reading balances at %d",
                self.before[0].block,
                receipt.block_number,
                parent,
            )
            self.before = await self.engine.sample(self.accounts, self.source, parent)
        after = await self.engine.sample(self.accounts, self.source, receipt.block_number)
        deltas = [
            BalanceDelta(account=b.account, before=b.balance, after=a.balance)
            for b, a in zip(self.before, after)
        ]
        return BalanceMeasurement(deltas=deltas, receipt=receipt)


class BalanceDeltaEngine:
    def __init__(self, provider: Provider):
        self.provider = provider

    def bracket(self, accounts: Sequence[str], source: BalanceSource) -> BalanceBracket:
        return BalanceBracket(self, accounts, source)

    async def sample(
        self,
        accounts: Sequence[str],
        source: BalanceSource,
        block: Optional[int] = None,
    ) -> List[AccountBalanceSample]:
        if block is None:
            block = await self.provider.block_number()
        samples = []
        for account in accounts:
            balance = await read_balance(self.provider, account, source, block)
            logger.debug("Balance of %s (%s) at block %d: %d", account, source, block, balance)
            samples.append(AccountBalanceSample(account, source, block, balance))
        return samples

    async def receipt_of(self, settlement: Settlement) -> Receipt:
        """Receipt of a settled execution that is alone in its block.

        A failed execution re-raises its original error so the revert reason
        reaches the caller.
        """
        if isinstance(settlement, Failure):
            raise settlement.error
        receipt = settlement.receipt
        count = await self.provider.get_block_transaction_count(receipt.block_number)
        if count > 1:
            raise multiple_transactions_in_block()
        return receipt

    async def measure(
        self,
        subject: Subject,
        accounts: Sequence[str],
        source: BalanceSource,
    ) -> BalanceMeasurement:
        bracket = self.bracket(accounts, source)
        await bracket.capture_before()
        receipt = await self.receipt_of(await subject.settle())
        return await bracket.capture_after(receipt)

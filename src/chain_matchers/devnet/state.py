"""Devnet world state and transaction application.

Failed-tx semantics:
- Revert: value transfer and contract storage rolled back, nonce consumed
- Success: value credited to the recipient before the callee runs
"""

from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass, field
from typing import Any, Optional

from .accounts import contract_address
from .contracts import CallContext, Revert


@dataclass
class AccountState:
    address: str
    balance: int = 0
    nonce: int = 0


@dataclass
class WorldState:
    accounts: dict[str, AccountState] = field(default_factory=dict)
    contracts: dict[str, Any] = field(default_factory=dict)

    def account(self, address: str) -> AccountState:
        acct = self.accounts.get(address)
        if acct is None:
            acct = AccountState(address=address)
            self.accounts[address] = acct
        return acct

    def balance_of(self, address: str) -> int:
        acct = self.accounts.get(address)
        return acct.balance if acct is not None else 0

    def nonce_of(self, address: str) -> int:
        acct = self.accounts.get(address)
        return acct.nonce if acct is not None else 0


@dataclass
class TransactionRecord:
    hash: str
    sender: str
    nonce: int
    to: Optional[str] = None
    value: int = 0
    data: bytes = b""
    # Contract class instantiated by a deployment.
    create: Optional[type] = None


@dataclass
class Block:
    number: int
    transactions: list[str] = field(default_factory=list)
    state: WorldState = field(default_factory=WorldState)


@dataclass
class ExecutionResult:
    state: WorldState
    status: int
    output: bytes = b""
    revert_data: bytes = b""
    error_message: str = ""
    created: Optional[str] = None


def apply_transaction(state: WorldState, tx: TransactionRecord) -> ExecutionResult:
    """Apply one transaction to a copy of ``state``."""
    working = deepcopy(state)
    sender = working.account(tx.sender)
    sender.nonce += 1
    checkpoint = deepcopy(working)

    if sender.balance < tx.value:
        return ExecutionResult(checkpoint, 0, error_message="insufficient balance for transfer")

    sender.balance -= tx.value
    if tx.create is not None:
        address = contract_address(tx.sender, tx.nonce)
        working.contracts[address] = tx.create(address, tx.sender)
        working.account(address).balance += tx.value
        return ExecutionResult(working, 1, created=address)

    if tx.to is None:
        return ExecutionResult(checkpoint, 0, error_message="missing recipient")
    working.account(tx.to).balance += tx.value

    contract = working.contracts.get(tx.to)
    if contract is None:
        return ExecutionResult(working, 1)

    ctx = CallContext(sender=tx.sender, value=tx.value, address=tx.to)
    try:
        output = contract.execute(ctx, tx.data)
    except Revert as exc:
        return ExecutionResult(
            checkpoint, 0, revert_data=exc.data, error_message=exc.message
        )
    return ExecutionResult(working, 1, output=output)

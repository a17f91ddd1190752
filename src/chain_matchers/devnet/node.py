"""In-memory devnet implementing the provider interface.

Blocks hold post-state snapshots, so balance reads at any past block are
exact. With ``automine`` on, every transaction is mined into its own block;
with it off, transactions queue until the next ``mine()`` or the next
automined transaction.
"""

from __future__ import annotations

import asyncio
import logging
from copy import deepcopy
from typing import Any, Dict, List, Optional, Union

from eth_utils import keccak, to_checksum_address

from ..abi import Contract
from ..config import DEVNET_CHAIN_ID, DEVNET_GENESIS_BALANCE
from ..errors import ErrorCode, RpcError
from ..types import Receipt
from .accounts import DEFAULT_ACCOUNTS, ZERO_ADDRESS
from .contracts import CallContext, DevnetContract, Revert
from .state import AccountState, Block, TransactionRecord, WorldState, apply_transaction

logger = logging.getLogger(__name__)

# JSON-RPC error codes reported by execution clients.
EXECUTION_REVERTED = 3
SERVER_ERROR = -32000


class ExecutionRevertedError(RpcError):
    """A simulated call or transaction reverted; ``data`` holds the payload."""


class InsufficientFundsError(RpcError):
    pass


class UnknownTransactionError(RpcError):
    pass


def execution_reverted(message: str, data: bytes) -> ExecutionRevertedError:
    return ExecutionRevertedError(
        ErrorCode.RPC_ERROR, message, rpc_code=EXECUTION_REVERTED, data=data
    )


def _address(account: Any) -> str:
    return to_checksum_address(getattr(account, "address", account))


class Devnet:
    def __init__(
        self,
        accounts: Optional[Dict[str, str]] = None,
        chain_id: int = DEVNET_CHAIN_ID,
        genesis_balance: int = DEVNET_GENESIS_BALANCE,
    ):
        self.chain_id = chain_id
        self.automine = True
        addresses = (accounts or DEFAULT_ACCOUNTS).values()
        genesis = WorldState(
            accounts={a: AccountState(address=a, balance=genesis_balance) for a in addresses}
        )
        self.blocks: List[Block] = [Block(number=0, state=genesis)]
        self.pending: List[TransactionRecord] = []
        self.receipts: Dict[str, Receipt] = {}
        self._waiters: Dict[str, List[asyncio.Event]] = {}

    # --- Chain ---

    @property
    def head(self) -> Block:
        return self.blocks[-1]

    def state_at(self, block: Optional[Union[int, str]] = None) -> WorldState:
        if block is None or block == "latest":
            return self.head.state
        return self.blocks[int(block)].state

    def mine(self) -> Block:
        """Mine every pending transaction into one new block."""
        state = self.head.state
        number = self.head.number + 1
        hashes = []
        for tx in self.pending:
            result = apply_transaction(state, tx)
            state = result.state
            hashes.append(tx.hash)
            self.receipts[tx.hash] = Receipt(
                transaction_hash=tx.hash,
                block_number=number,
                status=result.status,
                revert_data=result.revert_data if result.status == 0 else None,
                from_address=tx.sender,
                to_address=tx.to if tx.create is None else result.created,
            )
            if result.status == 0:
                logger.debug("tx %s reverted: %s", tx.hash, result.error_message)
        block = Block(number=number, transactions=hashes, state=state)
        self.blocks.append(block)
        self.pending = []
        logger.debug("Mined block %d with %d transaction(s)", number, len(hashes))

        for tx_hash in hashes:
            for event in self._waiters.pop(tx_hash, []):
                event.set()
        return block

    def _next_nonce(self, sender: str) -> int:
        queued = sum(1 for tx in self.pending if tx.sender == sender)
        return self.head.state.nonce_of(sender) + queued

    def _tx_hash(self, sender: str, nonce: int, to: Optional[str], value: int, data: bytes) -> str:
        preimage = f"{self.chain_id}:{sender}:{nonce}:{to}:{value}:{data.hex()}"
        return "0x" + keccak(text=preimage).hex()

    def _require_funds(self, sender: str, value: int) -> None:
        # Accounts absent from state have nothing to pay for execution with.
        acct = self.head.state.accounts.get(sender)
        if acct is None or acct.balance < value:
            raise InsufficientFundsError(
                ErrorCode.RPC_ERROR,
                "Sender doesn't have enough funds to send tx",
                rpc_code=SERVER_ERROR,
            )

    def _queue(self, tx: TransactionRecord) -> str:
        self.pending.append(tx)
        logger.debug("Queued tx %s from %s", tx.hash, tx.sender)
        if self.automine:
            self.mine()
        return tx.hash

    # --- Transactions ---

    def deploy(self, contract_cls: type, sender: Any) -> Contract:
        """Deploy a devnet contract; deployments are always mined immediately."""
        if not issubclass(contract_cls, DevnetContract):
            raise TypeError(f"{contract_cls!r} is not a devnet contract")
        address = _address(sender)
        self._require_funds(address, 0)
        nonce = self._next_nonce(address)
        tx = TransactionRecord(
            hash=self._tx_hash(address, nonce, None, 0, contract_cls.__name__.encode()),
            sender=address,
            nonce=nonce,
            create=contract_cls,
        )
        self.pending.append(tx)
        self.mine()
        created = self.receipts[tx.hash].to_address
        return Contract(address=created, abi=contract_cls.contract_abi())

    async def send_transaction(
        self,
        sender: Any,
        to: Any = None,
        value: int = 0,
        data: bytes = b"",
    ) -> str:
        """Submit a transaction; it is mined even if it reverts."""
        address = _address(sender)
        recipient = _address(to) if to is not None else None
        self._require_funds(address, value)
        nonce = self._next_nonce(address)
        tx = TransactionRecord(
            hash=self._tx_hash(address, nonce, recipient, value, data),
            sender=address,
            nonce=nonce,
            to=recipient,
            value=value,
            data=bytes(data),
        )
        return self._queue(tx)

    async def write(self, contract: Contract, fn: str, *args: Any, sender: Any, value: int = 0) -> str:
        """Simulate a contract call, raising on revert, then send it."""
        address = _address(sender)
        data = contract.abi.encode_call(fn, *args)
        self._require_funds(address, value)
        probe = TransactionRecord(
            hash="", sender=address, nonce=self._next_nonce(address),
            to=contract.address, value=value, data=data,
        )
        result = apply_transaction(self.head.state, probe)
        if result.status == 0:
            raise execution_reverted(result.error_message, result.revert_data)
        return await self.send_transaction(address, contract.address, value, data)

    # --- Provider ---

    async def block_number(self) -> int:
        return self.head.number

    async def get_balance(self, address: str, block: Any = None) -> int:
        return self.state_at(block).balance_of(_address(address))

    async def call(self, to: str, data: bytes, block: Any = None) -> bytes:
        state = self.state_at(block)
        contract = state.contracts.get(_address(to))
        if contract is None:
            return b""
        ctx = CallContext(sender=ZERO_ADDRESS, value=0, address=contract.address)
        try:
            return deepcopy(contract).execute(ctx, data)
        except Revert as exc:
            raise execution_reverted(exc.message, exc.data) from exc

    async def get_block_transaction_count(self, block: int) -> int:
        return len(self.blocks[block].transactions)

    async def wait_for_receipt(self, tx_hash: str) -> Receipt:
        receipt = self.receipts.get(tx_hash)
        if receipt is not None:
            return receipt
        if not any(tx.hash == tx_hash for tx in self.pending):
            raise UnknownTransactionError(
                ErrorCode.RPC_ERROR,
                f"Transaction {tx_hash} not found",
                rpc_code=SERVER_ERROR,
            )
        mined = asyncio.Event()
        self._waiters.setdefault(tx_hash, []).append(mined)
        await mined.wait()
        return self.receipts[tx_hash]

    def wallet(self, account: Any) -> "Wallet":
        return Wallet(self, _address(account))


class Wallet:
    """An account bound to a devnet, in the shape of a wallet client."""

    def __init__(self, devnet: Devnet, address: str):
        self.devnet = devnet
        self.address = address

    async def send_transaction(self, to: Any = None, value: int = 0, data: bytes = b"") -> str:
        return await self.devnet.send_transaction(self.address, to, value, data)

    async def write(self, contract: Contract, fn: str, *args: Any, value: int = 0) -> str:
        return await self.devnet.write(contract, fn, *args, sender=self.address, value=value)

    def __repr__(self) -> str:
        return f"Wallet({self.address})"

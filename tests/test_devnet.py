"""Tests for the in-memory devnet."""

from __future__ import annotations

import asyncio

import pytest
from eth_utils import is_checksum_address, keccak, to_checksum_address

from chain_matchers.config import DEVNET_GENESIS_BALANCE, DEVNET_TOKEN_SUPPLY
from chain_matchers.devnet.accounts import ALICE, DEFAULT_ACCOUNTS, NAMES, contract_address, derive_address
from chain_matchers.devnet.contracts import MockToken
from chain_matchers.devnet.node import (
    Devnet,
    ExecutionRevertedError,
    InsufficientFundsError,
    UnknownTransactionError,
)
from chain_matchers.revert_decoder import decode
from chain_matchers.types import Panic, Reason


# --- Accounts ---


def test_accounts_are_deterministic() -> None:
    assert list(DEFAULT_ACCOUNTS) == NAMES
    assert len(set(DEFAULT_ACCOUNTS.values())) == len(NAMES)
    assert all(is_checksum_address(a) for a in DEFAULT_ACCOUNTS.values())
    assert derive_address("chain-matchers/alice") == ALICE
    assert contract_address(ALICE, 0) != contract_address(ALICE, 1)


def test_addresses_are_keccak_derived() -> None:
    assert derive_address("nobody") == to_checksum_address(keccak(text="nobody")[-20:])
    assert ALICE == to_checksum_address(keccak(text="chain-matchers/alice")[-20:])


@pytest.mark.asyncio
async def test_genesis_balances(devnet: Devnet) -> None:
    assert await devnet.block_number() == 0
    for address in DEFAULT_ACCOUNTS.values():
        assert await devnet.get_balance(address) == DEVNET_GENESIS_BALANCE
    assert await devnet.get_balance(derive_address("nobody")) == 0


# --- Mining ---


@pytest.mark.asyncio
async def test_automine_mines_each_transaction(devnet, sender, receiver) -> None:
    tx_hash = await sender.send_transaction(receiver.address, value=200)
    receipt = await devnet.wait_for_receipt(tx_hash)

    assert receipt.succeeded
    assert receipt.block_number == await devnet.block_number()
    assert await devnet.get_block_transaction_count(receipt.block_number) == 1
    assert await devnet.get_balance(receiver.address) == DEVNET_GENESIS_BALANCE + 200
    assert await devnet.get_balance(receiver.address, receipt.block_number - 1) == DEVNET_GENESIS_BALANCE


@pytest.mark.asyncio
async def test_manual_mining_groups_transactions(devnet, sender, receiver) -> None:
    devnet.automine = False
    first = await sender.send_transaction(receiver.address, value=1)
    second = await sender.send_transaction(receiver.address, value=2)
    assert first != second

    waiter = asyncio.ensure_future(devnet.wait_for_receipt(second))
    await asyncio.sleep(0)
    assert not waiter.done()

    block = devnet.mine()
    receipt = await waiter

    assert block.transactions == [first, second]
    assert receipt.block_number == block.number
    assert await devnet.get_block_transaction_count(block.number) == 2


@pytest.mark.asyncio
async def test_unknown_transaction(devnet) -> None:
    with pytest.raises(UnknownTransactionError, match="not found"):
        await devnet.wait_for_receipt("0x" + "00" * 32)


# --- Contracts ---


@pytest.mark.asyncio
async def test_deploy_mints_token_supply(devnet, sender, mock_token) -> None:
    assert mock_token.address == contract_address(sender.address, 0)
    raw = await devnet.call(mock_token.address, mock_token.abi.encode_call("balanceOf", sender.address))
    assert mock_token.abi.decode_output("balanceOf", raw) == (DEVNET_TOKEN_SUPPLY,)

    second = devnet.deploy(MockToken, sender)
    assert second.address != mock_token.address


@pytest.mark.asyncio
async def test_reverted_transaction_is_mined(devnet, sender, matchers) -> None:
    data = matchers.abi.encode_call("revertsWith", "some reason")
    tx_hash = await devnet.send_transaction(sender, matchers.address, value=5, data=data)
    receipt = await devnet.wait_for_receipt(tx_hash)

    assert receipt.status == 0
    assert receipt.revert_data is not None
    assert await devnet.get_balance(matchers.address) == 0


@pytest.mark.asyncio
async def test_write_simulates_before_sending(devnet, sender, matchers) -> None:
    head = await devnet.block_number()

    with pytest.raises(ExecutionRevertedError) as info:
        await sender.write(matchers, "panicOverflow")

    assert await devnet.block_number() == head
    assert decode(info.value) == Panic(0x11)


@pytest.mark.asyncio
async def test_call_reverts_with_data(devnet, sender, mock_token) -> None:
    data = mock_token.abi.encode_call("transfer", sender.address, 0)
    with pytest.raises(ExecutionRevertedError, match="Transferred value is zero") as info:
        await devnet.call(mock_token.address, data)
    assert decode(info.value) == Reason("Transferred value is zero")


@pytest.mark.asyncio
async def test_unfunded_sender(devnet, matchers) -> None:
    unfunded = devnet.wallet(derive_address("unfunded"))
    with pytest.raises(InsufficientFundsError, match="Sender doesn't have enough funds to send tx"):
        await unfunded.write(matchers, "succeeds")
    with pytest.raises(InsufficientFundsError):
        await devnet.send_transaction(ALICE, matchers.address, value=DEVNET_GENESIS_BALANCE + 1)

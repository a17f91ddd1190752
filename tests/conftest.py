"""Shared devnet fixtures."""

from __future__ import annotations

from typing import Any, Callable, Iterator

import pytest

from chain_matchers.abi import Contract
from chain_matchers.balance import clear_token_descriptions_cache
from chain_matchers.devnet.accounts import ALICE, BOB
from chain_matchers.devnet.contracts import Matchers, MockToken
from chain_matchers.devnet.node import Devnet, Wallet
from chain_matchers.matchers import Assertion, expect_for


@pytest.fixture(autouse=True)
def _clear_token_descriptions() -> Iterator[None]:
    yield
    clear_token_descriptions_cache()


@pytest.fixture
def devnet() -> Devnet:
    return Devnet()


@pytest.fixture
def expect(devnet: Devnet) -> Callable[[Any], Assertion]:
    return expect_for(devnet)


@pytest.fixture
def sender(devnet: Devnet) -> Wallet:
    return devnet.wallet(ALICE)


@pytest.fixture
def receiver(devnet: Devnet) -> Wallet:
    return devnet.wallet(BOB)


@pytest.fixture
def mock_token(devnet: Devnet, sender: Wallet) -> Contract:
    """MockToken ("MCK") with the whole supply held by ``sender``."""
    return devnet.deploy(MockToken, sender)


@pytest.fixture
def matchers(devnet: Devnet, sender: Wallet) -> Contract:
    return devnet.deploy(Matchers, sender)

"""Chain access used by the matchers.

``Provider`` is the narrow read surface the engine consumes. ``JsonRpcProvider``
implements it over Ethereum JSON-RPC with aiohttp; the in-memory ``Devnet``
implements it for tests.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import Any, Dict, List, Optional, Protocol, Union

import aiohttp

from .config import ProviderSettings
from .errors import ErrorCode, ReceiptTimeoutError, RpcError
from .revert_decoder import extract_revert_data
from .types import Receipt

logger = logging.getLogger(__name__)

BlockRef = Optional[Union[int, str]]


class Provider(Protocol):
    async def wait_for_receipt(self, tx_hash: str) -> Receipt: ...

    async def get_balance(self, address: str, block: BlockRef = None) -> int: ...

    async def call(self, to: str, data: bytes, block: BlockRef = None) -> bytes: ...

    async def get_block_transaction_count(self, block: int) -> int: ...

    async def block_number(self) -> int: ...


def block_tag(block: BlockRef) -> str:
    if block is None:
        return "latest"
    if isinstance(block, int):
        return hex(block)
    return block


def _hex_to_bytes(value: Optional[str]) -> Optional[bytes]:
    if value is None:
        return None
    text = value[2:] if value.startswith("0x") else value
    return bytes.fromhex(text)


def receipt_from_json(raw: Dict[str, Any]) -> Receipt:
    """Parse an ``eth_getTransactionReceipt`` result.

    Nodes that report revert payloads on receipts (``revertReason``) have them
    carried into ``revert_data``; ``JsonRpcProvider.wait_for_receipt`` replays
    the call for nodes that do not.
    """
    return Receipt(
        transaction_hash=raw["transactionHash"],
        block_number=int(raw["blockNumber"], 16),
        status=int(raw.get("status", "0x1"), 16),
        revert_data=_hex_to_bytes(raw.get("revertReason")),
        from_address=raw.get("from"),
        to_address=raw.get("to"),
    )


class JsonRpcProvider:
    """Ethereum JSON-RPC client over a single aiohttp session."""

    def __init__(
        self,
        settings: Optional[ProviderSettings] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.settings = settings or ProviderSettings.from_env()
        self.session = session
        self._owns_session = session is None
        self._request_id = 0

    async def connect(self) -> None:
        """Initialize HTTP session."""
        if self.session is None:
            timeout = aiohttp.ClientTimeout(total=self.settings.request_timeout)
            self.session = aiohttp.ClientSession(timeout=timeout)
            self._owns_session = True

    async def close(self) -> None:
        """Close HTTP session."""
        if self.session and self._owns_session:
            await self.session.close()
            self.session = None

    async def __aenter__(self) -> "JsonRpcProvider":
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def request(self, method: str, params: Optional[List[Any]] = None) -> Any:
        """Send one JSON-RPC request and return its ``result``."""
        if self.session is None:
            await self.connect()
        self._request_id += 1
        payload = {
            "jsonrpc": "2.0",
            "id": self._request_id,
            "method": method,
            "params": params or [],
        }
        logger.debug("RPC %s %s", method, payload["params"])
        async with self.session.post(self.settings.endpoint, json=payload) as resp:
            body = await resp.json(content_type=None)

        error = body.get("error")
        if error:
            message = error.get("message", "JSON-RPC error")
            logger.error(f"RPC {method} failed: {message}")
            raise RpcError(
                ErrorCode.RPC_ERROR,
                message,
                rpc_code=error.get("code", 0),
                data=error.get("data"),
            )
        return body.get("result")

    async def block_number(self) -> int:
        return int(await self.request("eth_blockNumber"), 16)

    async def get_balance(self, address: str, block: BlockRef = None) -> int:
        result = await self.request("eth_getBalance", [address, block_tag(block)])
        return int(result, 16)

    async def call(self, to: str, data: bytes, block: BlockRef = None) -> bytes:
        result = await self.request(
            "eth_call",
            [{"to": to, "data": "0x" + data.hex()}, block_tag(block)],
        )
        return _hex_to_bytes(result) or b""

    async def get_block_transaction_count(self, block: int) -> int:
        result = await self.request(
            "eth_getBlockTransactionCountByNumber", [block_tag(block)]
        )
        return int(result, 16)

    async def get_receipt(self, tx_hash: str) -> Optional[Receipt]:
        raw = await self.request("eth_getTransactionReceipt", [tx_hash])
        return receipt_from_json(raw) if raw else None

    async def wait_for_receipt(self, tx_hash: str) -> Receipt:
        """Poll for a receipt until it is mined or the receipt timeout expires."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.settings.receipt_timeout
        while True:
            receipt = await self.get_receipt(tx_hash)
            if receipt is not None:
                if not receipt.succeeded and receipt.revert_data is None:
                    receipt = replace(receipt, revert_data=await self.replay_revert_data(receipt))
                return receipt
            if loop.time() >= deadline:
                raise ReceiptTimeoutError(
                    ErrorCode.RECEIPT_TIMEOUT,
                    f"Timed out waiting for the receipt of {tx_hash}",
                )
            await asyncio.sleep(self.settings.poll_interval)

    async def send_transaction(self, tx: Dict[str, Any]) -> str:
        """Submit ``eth_sendTransaction`` and return the transaction hash."""
        fields = dict(tx)
        for key in ("value", "gas", "gasPrice", "nonce"):
            if isinstance(fields.get(key), int):
                fields[key] = hex(fields[key])
        if isinstance(fields.get("data"), (bytes, bytearray)):
            fields["data"] = "0x" + bytes(fields["data"]).hex()
        return await self.request("eth_sendTransaction", [fields])

    async def replay_revert_data(self, receipt: Receipt) -> Optional[bytes]:
        """Re-run a reverted transaction with ``eth_call`` on its parent block.

        Transactions mined before it in the same block are not replayed, so a
        revert that depends on them may replay differently. Returns ``None``
        when the replay does not revert.
        """
        tx = await self.request("eth_getTransactionByHash", [receipt.transaction_hash])
        if not tx:
            return None
        call = {key: tx[key] for key in ("from", "to", "value", "gas") if tx.get(key) is not None}
        call["data"] = tx.get("input") or tx.get("data") or "0x"
        try:
            await self.request("eth_call", [call, block_tag(receipt.block_number - 1)])
        except RpcError as exc:
            data = extract_revert_data(exc)
            if isinstance(data, str):
                return _hex_to_bytes(data)
            return data if isinstance(data, bytes) else None
        logger.warning(f"Replay of reverted transaction {receipt.transaction_hash} did not revert")
        return None

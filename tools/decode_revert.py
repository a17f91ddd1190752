"""Decode a revert payload, or the revert data of a mined transaction."""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

import click

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT / "src"))

from chain_matchers.abi import ContractAbi  # noqa: E402
from chain_matchers.config import ProviderSettings  # noqa: E402
from chain_matchers.provider import JsonRpcProvider  # noqa: E402
from chain_matchers.revert_decoder import decode_revert_data, describe_cause  # noqa: E402
from chain_matchers.subject import is_tx_hash  # noqa: E402
from chain_matchers.types import CustomError, Panic, Reason  # noqa: E402

logger = logging.getLogger(__name__)


def parse_hex(text: str) -> bytes:
    body = text[2:] if text[:2].lower() == "0x" else text
    try:
        return bytes.fromhex(body)
    except ValueError:
        raise click.BadParameter(f"'{text}' is not a hex string") from None


async def fetch_revert_data(settings: ProviderSettings, tx_hash: str) -> bytes:
    async with JsonRpcProvider(settings) as provider:
        receipt = await provider.wait_for_receipt(tx_hash)
    if receipt.status == 1:
        raise click.ClickException(f"Transaction {tx_hash} did not revert")
    return receipt.revert_data or b""


@click.command()
@click.argument("payload")
@click.option(
    "--abi",
    "abi_paths",
    multiple=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="ABI or artifact JSON used to name custom errors (repeatable)",
)
@click.option(
    "--rpc-url",
    default=None,
    help="Treat PAYLOAD as a transaction hash and read its receipt from this node",
)
@click.option(
    "--verbose",
    is_flag=True,
    help="Enable verbose output",
)
def main(payload: str, abi_paths: tuple[Path, ...], rpc_url: Optional[str], verbose: bool) -> None:
    """Classify a revert PAYLOAD (hex) into its cause."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(message)s",
    )
    abis = [ContractAbi.from_json(path) for path in abi_paths]

    if rpc_url:
        if not is_tx_hash(payload):
            raise click.BadParameter(f"Expected a valid transaction hash, but got '{payload}'")
        settings = ProviderSettings.from_env()
        settings.endpoint = rpc_url
        data = asyncio.run(fetch_revert_data(settings, payload))
    else:
        data = parse_hex(payload)

    cause = decode_revert_data(data, abis)
    logger.debug(f"Decoded {len(data)} bytes as {cause.kind.value}")

    click.echo(f"kind: {cause.kind.value}")
    if isinstance(cause, Reason):
        click.echo(f"reason: {cause.text}")
    elif isinstance(cause, Panic):
        click.echo(f"code: {cause.hex_code}")
    elif isinstance(cause, CustomError):
        click.echo(f"selector: 0x{cause.selector.hex()}")
        if cause.recognized:
            click.echo(f"name: {cause.name}")
            for index, arg in enumerate(cause.args):
                click.echo(f"arg[{index}]: {arg!r}")
    click.echo(f"description: reverted {describe_cause(cause)}")


if __name__ == "__main__":
    main()

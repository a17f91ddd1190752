"""YAML helpers for revert vector files.

Payloads are written as ``0x``-prefixed hex strings and read back as bytes.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml


class PlainDumper(yaml.SafeDumper):
    pass


def _str_representer(dumper: yaml.SafeDumper, data: str) -> yaml.ScalarNode:
    return dumper.represent_scalar("tag:yaml.org,2002:str", data, style=None)


def _bytes_representer(dumper: yaml.SafeDumper, data: bytes) -> yaml.ScalarNode:
    return _str_representer(dumper, "0x" + data.hex())


PlainDumper.add_representer(str, _str_representer)
PlainDumper.add_representer(bytes, _bytes_representer)


def dump_yaml(data: dict) -> str:
    return yaml.dump(data, Dumper=PlainDumper, sort_keys=False, width=4096)


def write_yaml(path: Path, data: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(dump_yaml(data))


def load_yaml(path: Path) -> dict:
    return yaml.safe_load(path.read_text())


def payload_bytes(text: str) -> bytes:
    body = text[2:] if text[:2].lower() == "0x" else text
    return bytes.fromhex(body)


def load_vectors(path: Path) -> list[dict[str, Any]]:
    """Entries of a ``description``/``vectors`` file, ``data`` decoded to bytes."""
    document = load_yaml(path)
    vectors = document.get("vectors") if isinstance(document, dict) else None
    if not isinstance(vectors, list):
        raise ValueError(f"{path}: expected a mapping with a 'vectors' list")
    return [{**vector, "data": payload_bytes(vector["data"])} for vector in vectors]

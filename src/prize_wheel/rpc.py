"""
Spin seeds taken from finalized Solana blocks.

A seed is a blockhash plus a label saying where it came from. The label is
written into spin audits so a verifier knows which block to look up.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx


@dataclass(frozen=True)
class SpinSeed:
    seed: str
    source: str


class RpcClient:
    """Read-only JSON-RPC client that turns a slot into a spin seed."""

    def __init__(
        self,
        rpc_url: str,
        timeout_s: float = 60.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.rpc_url = rpc_url
        self.client = httpx.Client(timeout=timeout_s, transport=transport)

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> "RpcClient":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def _call(self, method: str, params: list) -> Any:
        resp = self.client.post(
            self.rpc_url,
            json={"jsonrpc": "2.0", "id": 1, "method": method, "params": params},
        )
        resp.raise_for_status()
        data = resp.json()
        if "error" in data:
            raise RuntimeError(f"RPC {method} failed: {data['error']}")
        return data.get("result")

    def seed_for_slot(self, slot: int) -> SpinSeed:
        block = self._call(
            "getBlock",
            [
                slot,
                {
                    "commitment": "finalized",
                    "encoding": "json",
                    "transactionDetails": "none",
                    "rewards": False,
                },
            ],
        )
        if not isinstance(block, dict) or not isinstance(block.get("blockhash"), str):
            raise RuntimeError(f"Slot {slot} has no finalized block to seed a spin.")
        return SpinSeed(block["blockhash"], f"rpc:getBlock:{slot}")


def _blockhash_in(doc: Dict[str, Any], slot_hint: Optional[int]) -> Optional[str]:
    if isinstance(doc.get("blockhash"), str):
        if slot_hint is not None and "slot" in doc and int(doc["slot"]) != slot_hint:
            raise RuntimeError(
                f"Block feed is for slot {doc['slot']}, spin expects slot {slot_hint}"
            )
        return doc["blockhash"]
    result = doc.get("result")
    if isinstance(result, dict) and isinstance(result.get("blockhash"), str):
        return result["blockhash"]
    blocks = doc.get("blocks")
    if slot_hint is not None and isinstance(blocks, dict):
        block = blocks.get(str(slot_hint))
        if isinstance(block, dict) and isinstance(block.get("blockhash"), str):
            return block["blockhash"]
    return None


def seed_from_block_feed_file(path: str, slot_hint: Optional[int] = None) -> SpinSeed:
    """
    Read a seed saved from a block feed.

    The file holds either a bare blockhash or a JSON document with
    `blockhash` (optionally next to `slot`), `result.blockhash`, or
    `blocks[<slot>].blockhash` (needs `slot_hint`).
    """
    with open(path, "r", encoding="utf-8") as f:
        raw = f.read().strip()

    source = f"file:{path}"
    if raw and not raw.startswith("{"):
        return SpinSeed(raw, source)

    try:
        doc = json.loads(raw)
    except ValueError as e:
        raise RuntimeError(f"Block feed {path} is neither a blockhash nor JSON: {e}")

    blockhash = _blockhash_in(doc, slot_hint) if isinstance(doc, dict) else None
    if blockhash is None:
        raise RuntimeError(f"No blockhash found in block feed {path}")
    return SpinSeed(blockhash, source)

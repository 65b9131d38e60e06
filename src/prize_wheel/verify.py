from __future__ import annotations

import json
from typing import Any, Dict, List

from .draw import compute_draw
from .selector import select_winner


def build_spin_audit(
    *,
    pool_id: str,
    sequence_id: int,
    spinner: str,
    seed: str,
    seed_source: str,
    nonce: str,
    draw: int,
    seed_hash_hex: str,
    weights: List[int],
    item_names: List[str],
    winner_index: int,
    generated_at: str,
) -> Dict[str, Any]:
    return {
        "metadata": {
            "tool": "prize-wheel",
            "version": "1.0.0",
            "generated_at_utc": generated_at,
            "pool_id": pool_id,
            "ticket_sequence_id": sequence_id,
            "spinner": spinner,
            "seed": seed,
            "seed_source": seed_source,
            "nonce": nonce,
            "seed_hash_hex": seed_hash_hex,
            "draw": draw,
        },
        # Table as it stood when the spin was recorded
        "weights": [{"name": n, "probability_bp": w} for n, w in zip(item_names, weights)],
        "winner": {"index": winner_index, "name": item_names[winner_index]},
    }


def verify_audit(audit_path: str) -> Dict[str, Any]:
    with open(audit_path, "r", encoding="utf-8") as f:
        audit = json.load(f)

    meta = audit["metadata"]
    draw_expected = int(meta["draw"])

    draw, seed_hash_hex, _ = compute_draw(meta["seed"], meta["spinner"], meta["nonce"])
    if seed_hash_hex != meta["seed_hash_hex"]:
        raise RuntimeError(
            f"Seed hash mismatch: audit={meta['seed_hash_hex']} recomputed={seed_hash_hex}"
        )
    if draw != draw_expected:
        raise RuntimeError(f"Draw mismatch: audit={draw_expected} recomputed={draw}")

    weights = [int(w["probability_bp"]) for w in audit["weights"]]
    index = select_winner(weights, draw)
    winner_expected = int(audit["winner"]["index"])
    if index != winner_expected:
        raise RuntimeError(f"Winner mismatch: audit={winner_expected} recomputed={index}")

    return {
        "ok": True,
        "seed_hash_hex": seed_hash_hex,
        "draw": draw,
        "winner_index": index,
        "winner": audit["weights"][index]["name"],
        "pool_id": meta["pool_id"],
        "ticket_sequence_id": meta["ticket_sequence_id"],
    }

from __future__ import annotations

import hashlib
import secrets
from typing import Tuple

from .project_constants import BASIS_POINTS


def generate_server_seed(length: int = 32) -> str:
    return secrets.token_hex(length)


def generate_nonce(length: int = 8) -> str:
    return secrets.token_hex(length)


def compute_draw(seed: str, spinner: str, nonce: str) -> Tuple[int, str, int]:
    """
    Reduce (seed, spinner, nonce) to a draw in [0, BASIS_POINTS).

    The spinner's identity and a per-spin nonce are hashed in so one seed
    cannot be replayed across spins or precomputed for another player.
    Returns (draw, sha256 hex, sha256 as int).
    """
    material = f"{seed}:{spinner}:{nonce}"
    seed_hash_hex = hashlib.sha256(material.encode("utf-8")).hexdigest()
    seed_int = int(seed_hash_hex, 16)
    return seed_int % BASIS_POINTS, seed_hash_hex, seed_int


def to_percent(bp: int) -> float:
    return round(bp / 100.0, 2)

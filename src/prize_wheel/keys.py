from __future__ import annotations

import hashlib
import secrets
import struct

import base58

from .errors import ErrorCode, ValidationError

PUBKEY_LEN = 32


def new_pubkey() -> str:
    """Random 32-byte identity, base58 encoded. For demos and tests."""
    return base58.b58encode(secrets.token_bytes(PUBKEY_LEN)).decode("ascii")


def parse_pubkey(value: str) -> str:
    """Return `value` unchanged if it is a base58 32-byte public key."""
    value = (value or "").strip()
    if not value:
        raise ValidationError(ErrorCode.INVALID_IDENTITY, "Empty identity")
    try:
        raw = base58.b58decode(value)
    except ValueError as e:
        raise ValidationError(ErrorCode.INVALID_IDENTITY, f"Not base58: {value}") from e
    if len(raw) != PUBKEY_LEN:
        raise ValidationError(
            ErrorCode.INVALID_IDENTITY,
            f"Expected {PUBKEY_LEN} bytes, got {len(raw)}: {value}",
        )
    return value


def derive_address(*seeds: bytes) -> str:
    h = hashlib.sha256()
    for s in seeds:
        # length-prefix so ("ab", "c") and ("a", "bc") differ
        h.update(struct.pack("<I", len(s)))
        h.update(s)
    return base58.b58encode(h.digest()).decode("ascii")


def vault_address(pool_id: str) -> str:
    return derive_address(b"pool_vault", pool_id.encode("utf-8"))


def ticket_address(buyer: str, pool_id: str, sequence_id: int) -> str:
    return derive_address(
        b"user_ticket",
        buyer.encode("utf-8"),
        pool_id.encode("utf-8"),
        struct.pack("<Q", sequence_id),
    )

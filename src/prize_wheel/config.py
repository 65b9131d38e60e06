from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

DEFAULT_STATE_FILE = "prize_wheel_state.json"


@dataclass(frozen=True)
class Settings:
    state_path: str
    vault_min_balance: int = 0
    rpc_url: Optional[str] = None

    @staticmethod
    def from_env(
        rpc_url_override: str | None = None, state_path_override: str | None = None
    ) -> "Settings":
        load_dotenv()

        state_path = (
            state_path_override
            or os.getenv("PRIZE_WHEEL_STATE", "").strip()
            or DEFAULT_STATE_FILE
        )

        raw_min = os.getenv("VAULT_MIN_BALANCE", "0").strip() or "0"
        try:
            vault_min_balance = int(raw_min)
        except ValueError:
            raise RuntimeError(f"VAULT_MIN_BALANCE must be an integer, got {raw_min!r}")
        if vault_min_balance < 0:
            raise RuntimeError("VAULT_MIN_BALANCE must not be negative")

        # --rpc-url wins, then RPC_URL, then a helius url built from the key.
        # No RPC is fine unless a spin asks for a slot seed.
        rpc_url = rpc_url_override or os.getenv("RPC_URL", "").strip() or None
        if not rpc_url:
            helius_key = os.getenv("HELIUS_API_KEY", "").strip()
            if helius_key:
                rpc_url = f"https://mainnet.helius-rpc.com/?api-key={helius_key}"

        return Settings(
            state_path=state_path,
            vault_min_balance=vault_min_balance,
            rpc_url=rpc_url,
        )

    def require_rpc_url(self) -> str:
        if not self.rpc_url:
            raise RuntimeError(
                "Missing HELIUS_API_KEY (or RPC_URL). Put it in .env or export it."
            )
        return self.rpc_url

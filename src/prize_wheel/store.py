from __future__ import annotations

import json
import os
from typing import Any, Dict, List, Tuple

from .errors import ErrorCode, StateError
from .ledger import InMemoryLedger
from .models import Pool, Ticket

STATE_VERSION = 1

TicketKey = Tuple[str, str, int]


def ticket_key(ticket: Ticket) -> TicketKey:
    return (ticket.owner, ticket.pool_id, ticket.sequence_id)


class PoolStore:
    """
    Pools keyed by pool id, tickets keyed by (buyer, pool id, sequence id).

    Pools never enumerate their tickets; lookups always go through here.
    """

    def __init__(self) -> None:
        self.pools: Dict[str, Pool] = {}
        self.tickets: Dict[TicketKey, Ticket] = {}

    def add_pool(self, pool: Pool) -> Pool:
        if pool.pool_id in self.pools:
            raise StateError(ErrorCode.POOL_ALREADY_EXISTS, f"Pool {pool.pool_id!r} already exists")
        self.pools[pool.pool_id] = pool
        return pool

    def get_pool(self, pool_id: str) -> Pool:
        try:
            return self.pools[pool_id]
        except KeyError:
            raise StateError(ErrorCode.POOL_NOT_FOUND, f"Pool {pool_id!r} not found") from None

    def add_ticket(self, ticket: Ticket) -> Ticket:
        key = ticket_key(ticket)
        if key in self.tickets:
            raise StateError(ErrorCode.TICKET_ALREADY_EXISTS)
        self.tickets[key] = ticket
        return ticket

    def get_ticket(self, buyer: str, pool_id: str, sequence_id: int) -> Ticket:
        try:
            return self.tickets[(buyer, pool_id, sequence_id)]
        except KeyError:
            raise StateError(
                ErrorCode.TICKET_NOT_FOUND,
                f"No ticket #{sequence_id} for {buyer} in pool {pool_id!r}",
            ) from None

    def tickets_of(self, buyer: str, pool_id: str) -> List[Ticket]:
        out = [
            t for (owner, pid, _), t in self.tickets.items() if owner == buyer and pid == pool_id
        ]
        out.sort(key=lambda t: t.sequence_id)
        return out


def dump_state(store: PoolStore, ledger: InMemoryLedger) -> Dict[str, Any]:
    # Deterministic ordering so state files diff cleanly
    return {
        "version": STATE_VERSION,
        "ledger": {
            "min_balance": ledger.min_balance,
            "balances": dict(sorted(ledger.balances.items())),
        },
        "pools": [store.pools[k].to_dict() for k in sorted(store.pools)],
        "tickets": [store.tickets[k].to_dict() for k in sorted(store.tickets)],
    }


def restore_state(
    data: Dict[str, Any], min_balance: int | None = None
) -> Tuple[PoolStore, InMemoryLedger]:
    version = int(data.get("version", STATE_VERSION))
    if version != STATE_VERSION:
        raise RuntimeError(f"Unsupported state version {version}")

    led = data.get("ledger", {})
    if min_balance is None:
        min_balance = int(led.get("min_balance", 0))
    ledger = InMemoryLedger(
        balances={k: int(v) for k, v in led.get("balances", {}).items()},
        min_balance=min_balance,
    )

    store = PoolStore()
    for p in data.get("pools", []):
        store.add_pool(Pool.from_dict(p))
    for t in data.get("tickets", []):
        store.add_ticket(Ticket.from_dict(t))
    return store, ledger


def load_state(path: str, min_balance: int | None = None) -> Tuple[PoolStore, InMemoryLedger]:
    """Missing file means a fresh, empty state."""
    if not os.path.exists(path):
        return PoolStore(), InMemoryLedger(min_balance=min_balance or 0)
    with open(path, "r", encoding="utf-8") as f:
        return restore_state(json.load(f), min_balance=min_balance)


def save_state(path: str, store: PoolStore, ledger: InMemoryLedger) -> None:
    tmp = f"{path}.tmp"
    with open(tmp, "w", encoding="utf-8") as f:
        json.dump(dump_state(store, ledger), f, indent=2)
    os.replace(tmp, path)

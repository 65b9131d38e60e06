"""Shared fixtures: a funded in-memory ledger and a two-item pool."""

from __future__ import annotations

import pytest

from prize_wheel.events import EventLog
from prize_wheel.keys import new_pubkey
from prize_wheel.ledger import InMemoryLedger
from prize_wheel.models import PoolItemInput
from prize_wheel.pool import PoolEngine

STARTING_BALANCE = 10_000


class FixedClock:
    def __init__(self, start: int = 1_700_000_000) -> None:
        self.now = start

    def __call__(self) -> int:
        self.now += 1
        return self.now


@pytest.fixture
def owner() -> str:
    return new_pubkey()


@pytest.fixture
def buyer() -> str:
    return new_pubkey()


@pytest.fixture
def ledger(owner: str, buyer: str) -> InMemoryLedger:
    return InMemoryLedger({owner: STARTING_BALANCE, buyer: STARTING_BALANCE})


@pytest.fixture
def events() -> EventLog:
    return EventLog()


@pytest.fixture
def engine(ledger: InMemoryLedger, events: EventLog) -> PoolEngine:
    return PoolEngine(ledger, events=events, clock=FixedClock())


@pytest.fixture
def items() -> list:
    return [
        PoolItemInput(name="A", value=10, description="cheap", image="https://x/a.png"),
        PoolItemInput(name="B", value=50, description="dear", image="https://x/b.png"),
    ]


@pytest.fixture
def pool(engine: PoolEngine, owner: str, items: list):
    return engine.initialize("TestCorp", owner, 100, items, company_name="TestCorp")

import pytest

from prize_wheel.errors import (
    ErrorCode,
    ResourceError,
    StateError,
    TransferError,
    ValidationError,
)
from prize_wheel.events import (
    FundsWithdrawn,
    PoolInitialized,
    RewardClaimed,
    SpinRecorded,
    TicketPurchased,
)
from prize_wheel.keys import new_pubkey, vault_address
from prize_wheel.ledger import InMemoryLedger
from prize_wheel.models import PoolItemInput, TicketState
from prize_wheel.pool import PoolEngine, refresh_probabilities
from prize_wheel.project_constants import BASIS_POINTS

from conftest import STARTING_BALANCE, FixedClock


# =====================================================
# INITIALIZE
# =====================================================


def test_initialize(pool, owner, events):
    assert pool.pool_id == "TestCorp"
    assert pool.owner == owner
    assert pool.vault == vault_address("TestCorp")
    assert pool.active
    assert pool.tickets_sold == 0
    assert pool.funds_held == 0
    assert pool.total_catalog_value == 60
    assert pool.created_at > 0
    a, b = pool.items
    assert a.probability_bp > b.probability_bp
    assert a.probability_bp + b.probability_bp == BASIS_POINTS
    assert a.available and b.available

    (ev,) = events.of_type(PoolInitialized)
    assert ev.item_count == 2
    assert ev.total_probability_check == BASIS_POINTS


def test_single_item_pool(engine, owner):
    pool = engine.initialize("Solo", owner, 5, [PoolItemInput("Only", 999)])
    assert pool.items[0].probability_bp == BASIS_POINTS


@pytest.mark.parametrize(
    "kwargs, code",
    [
        ({"ticket_price": 0}, ErrorCode.INVALID_TICKET_PRICE),
        ({"items": []}, ErrorCode.NO_ITEMS_PROVIDED),
        ({"items": [PoolItemInput(f"i{n}", 10) for n in range(11)]}, ErrorCode.TOO_MANY_ITEMS),
        ({"items": [PoolItemInput("zero", 0)]}, ErrorCode.INVALID_ITEM_PRICE),
        ({"items": [PoolItemInput("half", 10.5)]}, ErrorCode.INVALID_ITEM_PRICE),
        ({"items": [PoolItemInput("flag", True)]}, ErrorCode.INVALID_ITEM_PRICE),
        ({"items": [PoolItemInput("x" * 51, 10)]}, ErrorCode.ITEM_NAME_TOO_LONG),
        ({"items": [PoolItemInput("a", 10, image="x" * 201)]}, ErrorCode.ITEM_IMAGE_TOO_LONG),
        (
            {"items": [PoolItemInput("a", 10, description="x" * 201)]},
            ErrorCode.ITEM_DESCRIPTION_TOO_LONG,
        ),
        ({"items": [PoolItemInput("a", 10, supply=0)]}, ErrorCode.INVALID_SUPPLY),
        ({"items": [PoolItemInput("a", 10, supply=1.5)]}, ErrorCode.INVALID_SUPPLY),
        ({"company_name": "x" * 51}, ErrorCode.COMPANY_NAME_TOO_LONG),
        ({"company_image": "x" * 201}, ErrorCode.COMPANY_IMAGE_TOO_LONG),
        ({"owner": " "}, ErrorCode.INVALID_IDENTITY),
    ],
)
def test_initialize_validation(engine, owner, items, events, kwargs, code):
    args = {
        "pool_id": "Bad",
        "owner": owner,
        "ticket_price": 100,
        "items": items,
    }
    args.update(kwargs)
    with pytest.raises(ValidationError) as e:
        engine.initialize(**args)
    assert e.value.code is code
    assert events.events == []


def test_initialize_seeds_vault_minimum(owner, items):
    ledger = InMemoryLedger({owner: 1000}, min_balance=25)
    engine = PoolEngine(ledger)
    pool = engine.initialize("Rent", owner, 100, items)
    assert ledger.balance(pool.vault) == 25
    assert ledger.balance(owner) == 975
    assert pool.funds_held == 0


def test_initialize_fails_when_owner_cannot_seed_vault(items):
    poor = new_pubkey()
    engine = PoolEngine(InMemoryLedger({}, min_balance=25))
    with pytest.raises(TransferError) as e:
        engine.initialize("Rent", poor, 100, items)
    assert e.value.code is ErrorCode.INSUFFICIENT_FUNDS


# =====================================================
# SELL
# =====================================================


def test_sell_ticket(engine, pool, buyer, ledger, events):
    t0 = engine.sell_ticket(pool, buyer)
    t1 = engine.sell_ticket(pool, buyer)

    assert (t0.sequence_id, t1.sequence_id) == (0, 1)
    assert t0.owner == buyer and t0.pool_id == pool.pool_id
    assert t0.state is TicketState.UNUSED
    assert t0.won_item is None and not t0.reward_claimed
    assert pool.tickets_sold == 2
    assert pool.funds_held == 200
    assert ledger.balance(buyer) == STARTING_BALANCE - 200
    assert ledger.balance(pool.vault) == 200

    ev = events.of_type(TicketPurchased)
    assert [e.sequence_id for e in ev] == [0, 1]
    assert ev[-1].total_tickets_sold == 2


def test_failed_payment_leaves_pool_untouched(engine, pool, events):
    broke = new_pubkey()
    with pytest.raises(TransferError) as e:
        engine.sell_ticket(pool, broke)
    assert e.value.code is ErrorCode.INSUFFICIENT_FUNDS
    assert pool.tickets_sold == 0
    assert pool.funds_held == 0
    assert events.of_type(TicketPurchased) == []


def test_sell_on_inactive_pool(engine, pool, buyer):
    pool.active = False
    with pytest.raises(StateError) as e:
        engine.sell_ticket(pool, buyer)
    assert e.value.code is ErrorCode.POOL_NOT_ACTIVE


# =====================================================
# SPIN
# =====================================================


def test_spin_last_draw_hits_last_item(engine, pool, buyer, events):
    ticket = engine.sell_ticket(pool, buyer)
    won = engine.record_spin(pool, ticket, buyer, 9999)

    assert won.index == 1
    assert won.name == "B"
    assert won.value == 50
    assert won.probability_bp == pool.items[1].probability_bp
    assert ticket.used
    assert ticket.won_item == won
    assert ticket.draw == 9999
    assert ticket.state is TicketState.SPUN
    assert pool.funds_held == 100

    (ev,) = events.of_type(SpinRecorded)
    assert ev.item_index == 1 and ev.draw == 9999


def test_spin_twice_fails(engine, pool, buyer):
    ticket = engine.sell_ticket(pool, buyer)
    won = engine.record_spin(pool, ticket, buyer, 0)
    with pytest.raises(StateError) as e:
        engine.record_spin(pool, ticket, buyer, 9999)
    assert e.value.code is ErrorCode.TICKET_ALREADY_USED
    assert ticket.won_item == won


def test_spin_by_stranger(engine, pool, buyer):
    ticket = engine.sell_ticket(pool, buyer)
    with pytest.raises(StateError) as e:
        engine.record_spin(pool, ticket, new_pubkey(), 0)
    assert e.value.code is ErrorCode.NOT_TICKET_OWNER
    assert not ticket.used


def test_spin_with_bad_draw_changes_nothing(engine, pool, buyer):
    ticket = engine.sell_ticket(pool, buyer)
    with pytest.raises(ValidationError) as e:
        engine.record_spin(pool, ticket, buyer, 10_000)
    assert e.value.code is ErrorCode.INVALID_DRAW
    assert not ticket.used and ticket.won_item is None


def test_spin_ticket_from_other_pool(engine, pool, owner, items, buyer):
    other = engine.initialize("Other", owner, 100, items)
    ticket = engine.sell_ticket(other, buyer)
    with pytest.raises(StateError) as e:
        engine.record_spin(pool, ticket, buyer, 0)
    assert e.value.code is ErrorCode.TICKET_POOL_MISMATCH


def test_limited_supply_item_sells_out(engine, owner, buyer):
    pool = engine.initialize(
        "Limited",
        owner,
        100,
        [PoolItemInput("Phone", 10, supply=1), PoolItemInput("Sticker", 50)],
    )
    t0 = engine.sell_ticket(pool, buyer)
    t1 = engine.sell_ticket(pool, buyer)

    assert engine.record_spin(pool, t0, buyer, 0).name == "Phone"
    phone, sticker = pool.items
    assert phone.supply == 0
    assert not phone.available
    assert phone.probability_bp == 0
    assert sticker.probability_bp == BASIS_POINTS

    assert engine.record_spin(pool, t1, buyer, 0).name == "Sticker"
    assert t0.won_item.name == "Phone"


def test_sold_out_pool_stops_selling(engine, owner, buyer):
    pool = engine.initialize("OneOff", owner, 100, [PoolItemInput("Car", 90, supply=1)])
    ticket = engine.sell_ticket(pool, buyer)
    engine.record_spin(pool, ticket, buyer, 1234)
    with pytest.raises(StateError) as e:
        engine.sell_ticket(pool, buyer)
    assert e.value.code is ErrorCode.NO_AVAILABLE_ITEMS
    assert pool.tickets_sold == 1


def test_limited_pool_never_sells_more_tickets_than_prizes(engine, owner, buyer, ledger):
    pool = engine.initialize("OneOff", owner, 100, [PoolItemInput("Car", 90, supply=1)])
    t0 = engine.sell_ticket(pool, buyer)
    assert pool.tickets_outstanding == 1

    with pytest.raises(StateError) as e:
        engine.sell_ticket(pool, buyer)
    assert e.value.code is ErrorCode.NO_AVAILABLE_ITEMS
    assert pool.tickets_sold == 1
    assert pool.funds_held == 100
    assert ledger.balance(buyer) == STARTING_BALANCE - 100

    engine.record_spin(pool, t0, buyer, 0)
    assert t0.state is TicketState.SPUN
    assert pool.tickets_outstanding == 0


def test_every_sold_ticket_in_a_limited_pool_can_spin(engine, owner, buyer):
    pool = engine.initialize(
        "Drop",
        owner,
        100,
        [PoolItemInput("Watch", 40, supply=2), PoolItemInput("Bike", 300, supply=1)],
    )
    tickets = [engine.sell_ticket(pool, buyer) for _ in range(3)]
    with pytest.raises(StateError):
        engine.sell_ticket(pool, buyer)

    won = [engine.record_spin(pool, t, buyer, 0).name for t in tickets]
    assert sorted(won) == ["Bike", "Watch", "Watch"]
    assert all(t.state is TicketState.SPUN for t in tickets)
    assert pool.tickets_outstanding == 0
    assert sum(pool.weights) == 0


def test_refresh_is_idempotent(pool):
    before = list(pool.weights)
    assert refresh_probabilities(pool) == before
    assert refresh_probabilities(pool) == before


# =====================================================
# CLAIM
# =====================================================


def test_claim(engine, pool, buyer, ledger, events):
    ticket = engine.sell_ticket(pool, buyer)
    engine.record_spin(pool, ticket, buyer, 9999)

    assert engine.claim_reward(pool, ticket, buyer) == 50
    assert ticket.reward_claimed
    assert ticket.state is TicketState.CLAIMED
    assert pool.funds_held == 50
    assert ledger.balance(buyer) == STARTING_BALANCE - 100 + 50

    (ev,) = events.of_type(RewardClaimed)
    assert ev.amount == 50 and ev.remaining_funds == 50


def test_claim_before_spin(engine, pool, buyer):
    ticket = engine.sell_ticket(pool, buyer)
    with pytest.raises(StateError) as e:
        engine.claim_reward(pool, ticket, buyer)
    assert e.value.code is ErrorCode.TICKET_NOT_USED
    assert pool.funds_held == 100
    assert not ticket.used and not ticket.reward_claimed


def test_claim_twice_is_not_paid_twice(engine, pool, buyer, ledger):
    ticket = engine.sell_ticket(pool, buyer)
    engine.record_spin(pool, ticket, buyer, 0)
    engine.claim_reward(pool, ticket, buyer)
    balance = ledger.balance(buyer)

    with pytest.raises(StateError) as e:
        engine.claim_reward(pool, ticket, buyer)
    assert e.value.code is ErrorCode.REWARD_ALREADY_CLAIMED
    assert ledger.balance(buyer) == balance
    assert pool.funds_held == 90


def test_claim_by_stranger(engine, pool, buyer):
    ticket = engine.sell_ticket(pool, buyer)
    engine.record_spin(pool, ticket, buyer, 0)
    with pytest.raises(StateError) as e:
        engine.claim_reward(pool, ticket, new_pubkey())
    assert e.value.code is ErrorCode.NOT_TICKET_OWNER


def test_claim_larger_than_pool(engine, owner, buyer):
    pool = engine.initialize("Jackpot", owner, 100, [PoolItemInput("Big", 500)])
    ticket = engine.sell_ticket(pool, buyer)
    engine.record_spin(pool, ticket, buyer, 42)

    with pytest.raises(ResourceError) as e:
        engine.claim_reward(pool, ticket, buyer)
    assert e.value.code is ErrorCode.INSUFFICIENT_BALANCE
    assert pool.funds_held == 100
    assert not ticket.reward_claimed


def test_claim_from_drained_pool(engine, pool, owner, buyer):
    ticket = engine.sell_ticket(pool, buyer)
    engine.record_spin(pool, ticket, buyer, 0)
    engine.withdraw_surplus(pool, owner, 100)

    with pytest.raises(ResourceError) as e:
        engine.claim_reward(pool, ticket, buyer)
    assert e.value.code is ErrorCode.NO_FUNDS_AVAILABLE
    assert not ticket.reward_claimed


# =====================================================
# WITHDRAW
# =====================================================


def test_withdraw_everything_then_nothing_left(engine, owner, buyer, ledger, events):
    pool = engine.initialize("Drain", owner, 50, [PoolItemInput("A", 10)])
    for _ in range(3):
        engine.sell_ticket(pool, buyer)
    assert pool.funds_held == 150

    assert engine.withdraw_surplus(pool, owner, 150) == 150
    assert pool.funds_held == 0
    assert ledger.balance(owner) == STARTING_BALANCE + 150

    with pytest.raises(ResourceError) as e:
        engine.withdraw_surplus(pool, owner, 1)
    assert e.value.code is ErrorCode.INSUFFICIENT_BALANCE

    (ev,) = events.of_type(FundsWithdrawn)
    assert ev.amount_withdrawn == 150 and ev.remaining_funds == 0


def test_withdraw_by_stranger(engine, pool, buyer):
    engine.sell_ticket(pool, buyer)
    with pytest.raises(StateError) as e:
        engine.withdraw_surplus(pool, buyer, 10)
    assert e.value.code is ErrorCode.UNAUTHORIZED_WITHDRAWAL
    assert pool.funds_held == 100


@pytest.mark.parametrize("amount", [0, -5])
def test_withdraw_invalid_amount(engine, pool, owner, amount):
    with pytest.raises(ValidationError) as e:
        engine.withdraw_surplus(pool, owner, amount)
    assert e.value.code is ErrorCode.INVALID_AMOUNT


def test_withdraw_respects_vault_minimum(owner, buyer, items):
    ledger = InMemoryLedger({owner: 1000, buyer: 1000}, min_balance=30)
    engine = PoolEngine(ledger, clock=FixedClock())
    pool = engine.initialize("Rent", owner, 100, items)
    engine.sell_ticket(pool, buyer)
    # the vault itself is short of its reserve
    ledger.balances[pool.vault] = 110

    with pytest.raises(ResourceError) as e:
        engine.withdraw_surplus(pool, owner, 100)
    assert e.value.code is ErrorCode.INSUFFICIENT_VAULT_FUNDS
    assert pool.funds_held == 100

    assert engine.withdraw_surplus(pool, owner, 80) == 80
    assert ledger.balance(pool.vault) == 30


# =====================================================
# FUNDS CONSERVATION
# =====================================================


def test_funds_conservation(engine, owner, items, ledger):
    pool = engine.initialize("Ledger", owner, 100, items)
    players = [new_pubkey() for _ in range(4)]
    for p in players:
        ledger.deposit(p, 1000)

    collected = paid = withdrawn = 0
    draws = [0, 9999, 5000, 9500, 120, 9800, 42, 9300]
    for i, draw in enumerate(draws):
        p = players[i % len(players)]
        t = engine.sell_ticket(pool, p)
        collected += pool.reference_ticket_price
        engine.record_spin(pool, t, p, draw)
        paid += engine.claim_reward(pool, t, p)
        if i % 3 == 2:
            withdrawn += engine.withdraw_surplus(pool, owner, 40)
        assert pool.funds_held == collected - paid - withdrawn
        assert pool.funds_held >= 0
        assert ledger.balance(pool.vault) == pool.funds_held


class _BrokenSink:
    def emit(self, event):
        raise RuntimeError("sink down")


def test_failing_event_sink_does_not_fail_operations(ledger, owner, buyer, items, caplog):
    engine = PoolEngine(ledger, events=_BrokenSink())
    pool = engine.initialize("Noisy", owner, 100, items)
    ticket = engine.sell_ticket(pool, buyer)
    assert ticket.sequence_id == 0
    assert "Event sink failed" in caplog.text


def test_item_input_reads_on_chain_price_field():
    item = PoolItemInput.from_dict({"name": "Mug", "price": 7, "image": "mug.png"})
    assert item == PoolItemInput("Mug", 7, image="mug.png")

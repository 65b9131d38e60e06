"""
Pool and ticket state machine.

A pool sells tickets at a fixed price into its vault. A ticket is spun
exactly once (UNUSED -> SPUN) and its prize claimed exactly once
(SPUN -> CLAIMED). When every prize left has a limited supply, sales stop
once each remaining unit is owed to an unspun ticket. The owner may
withdraw what the vault holds.

Every operation validates first, computes every new value with checked
arithmetic, calls the funds collaborator, and only then writes to the pool
or ticket. A failure at any step leaves both untouched.

The engine does no locking: callers must serialize operations on the same
pool (a database row lock, a single-threaded executor...).
"""

from __future__ import annotations

import logging
import time
from typing import Callable, List, Optional, Sequence

from .checked_math import checked_add, checked_sub, checked_sum, ensure_u64
from .errors import ErrorCode, ResourceError, StateError, ValidationError
from .events import (
    EventSink,
    FundsWithdrawn,
    PoolInitialized,
    RewardClaimed,
    SpinRecorded,
    TicketPurchased,
    emit_safely,
)
from .keys import vault_address
from .ledger import FundsTransfer
from .models import Pool, PoolItem, PoolItemInput, Ticket, WonItem
from .project_constants import (
    BASIS_POINTS,
    MAX_COMPANY_IMAGE_LEN,
    MAX_COMPANY_NAME_LEN,
    MAX_ITEM_DESCRIPTION_LEN,
    MAX_ITEM_IMAGE_LEN,
    MAX_ITEM_NAME_LEN,
    MAX_ITEMS,
)
from .selector import select_winner
from .weighting import probabilities_for_catalog

log = logging.getLogger("pool")


def _now() -> int:
    return int(time.time())


def _require_identity(identity: str) -> None:
    if not isinstance(identity, str) or not identity.strip():
        raise ValidationError(ErrorCode.INVALID_IDENTITY)


def validate_items(items: Sequence[PoolItemInput]) -> None:
    if not items:
        raise ValidationError(ErrorCode.NO_ITEMS_PROVIDED)
    if len(items) > MAX_ITEMS:
        raise ValidationError(
            ErrorCode.TOO_MANY_ITEMS, f"Too many items (max {MAX_ITEMS} allowed)"
        )
    for item in items:
        if isinstance(item.value, bool) or not isinstance(item.value, int) or item.value <= 0:
            raise ValidationError(
                ErrorCode.INVALID_ITEM_PRICE, f"Item {item.name!r} has value {item.value}"
            )
        if len(item.name) > MAX_ITEM_NAME_LEN:
            raise ValidationError(ErrorCode.ITEM_NAME_TOO_LONG)
        if len(item.image) > MAX_ITEM_IMAGE_LEN:
            raise ValidationError(ErrorCode.ITEM_IMAGE_TOO_LONG)
        if len(item.description) > MAX_ITEM_DESCRIPTION_LEN:
            raise ValidationError(ErrorCode.ITEM_DESCRIPTION_TOO_LONG)
        if item.supply is not None and (
            isinstance(item.supply, bool) or not isinstance(item.supply, int) or item.supply < 1
        ):
            raise ValidationError(ErrorCode.INVALID_SUPPLY)


def refresh_probabilities(pool: Pool) -> List[int]:
    """Recompute every item's probability_bp from scratch."""
    table = probabilities_for_catalog(
        [i.value for i in pool.items],
        [i.available for i in pool.items],
        pool.reference_ticket_price,
    )
    for item, bp in zip(pool.items, table):
        item.probability_bp = bp
    return table


def remaining_stock(pool: Pool) -> Optional[int]:
    """Prizes left to hand out, or None while any available item is unlimited."""
    stock = []
    for item in pool.items:
        if not item.available:
            continue
        if item.supply is None:
            return None
        stock.append(item.supply)
    return checked_sum(stock)


class PoolEngine:
    def __init__(
        self,
        funds: FundsTransfer,
        events: Optional[EventSink] = None,
        clock: Optional[Callable[[], int]] = None,
    ) -> None:
        self.funds = funds
        self.events = events
        self.clock = clock or _now

    # =====================================================
    # POOL SETUP
    # =====================================================

    def initialize(
        self,
        pool_id: str,
        owner: str,
        ticket_price: int,
        items: Sequence[PoolItemInput],
        company_name: str = "",
        company_image: str = "",
    ) -> Pool:
        """
        Build a new active pool with its probability table computed.

        Duplicate `pool_id`s are rejected by the store, not here.
        """
        _require_identity(pool_id)
        _require_identity(owner)
        if ticket_price <= 0:
            raise ValidationError(ErrorCode.INVALID_TICKET_PRICE)
        ensure_u64(ticket_price)
        if len(company_name) > MAX_COMPANY_NAME_LEN:
            raise ValidationError(ErrorCode.COMPANY_NAME_TOO_LONG)
        if len(company_image) > MAX_COMPANY_IMAGE_LEN:
            raise ValidationError(ErrorCode.COMPANY_IMAGE_TOO_LONG)
        validate_items(items)

        total_value = checked_sum(i.value for i in items)
        pool = Pool(
            pool_id=pool_id,
            owner=owner,
            vault=vault_address(pool_id),
            reference_ticket_price=ticket_price,
            items=[
                PoolItem(
                    name=i.name,
                    description=i.description,
                    image=i.image,
                    value=i.value,
                    supply=i.supply,
                )
                for i in items
            ],
            total_catalog_value=total_value,
            created_at=self.clock(),
            company_name=company_name,
            company_image=company_image,
        )
        table = refresh_probabilities(pool)

        # Seed the vault with the collaborator's minimum balance
        shortfall = self.funds.minimum_balance() - self.funds.balance(pool.vault)
        if shortfall > 0:
            self.funds.transfer(owner, pool.vault, shortfall)

        for item in pool.items:
            log.info(
                "%s: %.2f%% (value %d)", item.name, item.probability_bp / 100.0, item.value
            )
        log.info("Pool %s initialized with %d items", pool_id, len(pool.items))

        emit_safely(
            self.events,
            PoolInitialized(
                pool_id=pool_id,
                owner=owner,
                company_name=company_name,
                ticket_price=ticket_price,
                item_count=len(pool.items),
                total_probability_check=sum(table),
                timestamp=pool.created_at,
            ),
        )
        return pool

    # =====================================================
    # TICKETS
    # =====================================================

    def sell_ticket(self, pool: Pool, buyer: str) -> Ticket:
        _require_identity(buyer)
        if not pool.active:
            raise StateError(ErrorCode.POOL_NOT_ACTIVE)
        if sum(pool.weights) != BASIS_POINTS:
            raise StateError(ErrorCode.NO_AVAILABLE_ITEMS)

        price = pool.reference_ticket_price
        sequence_id = pool.tickets_sold
        new_sold = checked_add(pool.tickets_sold, 1)
        new_outstanding = checked_add(pool.tickets_outstanding, 1)
        stock = remaining_stock(pool)
        if stock is not None and new_outstanding > stock:
            raise StateError(
                ErrorCode.NO_AVAILABLE_ITEMS,
                f"All {stock} remaining prizes are held by unspun tickets",
            )
        new_funds = checked_add(pool.funds_held, price)

        self.funds.transfer(buyer, pool.vault, price)

        pool.tickets_sold = new_sold
        pool.tickets_outstanding = new_outstanding
        pool.funds_held = new_funds
        now = self.clock()
        ticket = Ticket(
            pool_id=pool.pool_id,
            owner=buyer,
            sequence_id=sequence_id,
            purchase_price=price,
            purchased_at=now,
        )
        log.info("Ticket #%d sold to %s in pool %s", sequence_id, buyer, pool.pool_id)

        emit_safely(
            self.events,
            TicketPurchased(
                pool_id=pool.pool_id,
                buyer=buyer,
                sequence_id=sequence_id,
                ticket_price=price,
                total_tickets_sold=new_sold,
                timestamp=now,
            ),
        )
        return ticket

    def record_spin(self, pool: Pool, ticket: Ticket, caller: str, draw: int) -> WonItem:
        """
        Spend `ticket` on one spin and record the prize it lands on.

        `draw` is an integer in [0, 10000) supplied by the randomness
        collaborator. Limited-supply prizes are decremented here so a
        one-off item can never be won twice.
        """
        if not pool.active:
            raise StateError(ErrorCode.POOL_NOT_ACTIVE)
        if ticket.pool_id != pool.pool_id:
            raise StateError(ErrorCode.TICKET_POOL_MISMATCH)
        if caller != ticket.owner:
            raise StateError(ErrorCode.NOT_TICKET_OWNER)
        if ticket.used:
            raise StateError(ErrorCode.TICKET_ALREADY_USED)

        new_outstanding = checked_sub(pool.tickets_outstanding, 1)
        index = select_winner(pool.weights, draw)
        item = pool.items[index]
        won = WonItem.snapshot(index, item)

        new_supply = None
        new_table = None
        if item.supply is not None:
            new_supply = checked_sub(item.supply, 1)
            if new_supply == 0:
                availability = [i.available for i in pool.items]
                availability[index] = False
                new_table = probabilities_for_catalog(
                    [i.value for i in pool.items],
                    availability,
                    pool.reference_ticket_price,
                )

        pool.tickets_outstanding = new_outstanding
        now = self.clock()
        if new_supply is not None:
            item.supply = new_supply
        if new_table is not None:
            item.available = False
            for it, bp in zip(pool.items, new_table):
                it.probability_bp = bp
            log.info("Item %s sold out in pool %s", item.name, pool.pool_id)
        ticket.used = True
        ticket.won_item = won
        ticket.draw = draw
        ticket.spun_at = now
        log.info(
            "Ticket #%d in pool %s drew %d -> %s (value %d)",
            ticket.sequence_id,
            pool.pool_id,
            draw,
            won.name,
            won.value,
        )

        emit_safely(
            self.events,
            SpinRecorded(
                pool_id=pool.pool_id,
                spinner=caller,
                sequence_id=ticket.sequence_id,
                draw=draw,
                item_index=index,
                item_name=won.name,
                item_value=won.value,
                win_probability=won.probability_bp,
                timestamp=now,
            ),
        )
        return won

    def claim_reward(self, pool: Pool, ticket: Ticket, caller: str) -> int:
        if ticket.pool_id != pool.pool_id:
            raise StateError(ErrorCode.TICKET_POOL_MISMATCH)
        if caller != ticket.owner:
            raise StateError(ErrorCode.NOT_TICKET_OWNER)
        if not ticket.used or ticket.won_item is None:
            raise StateError(ErrorCode.TICKET_NOT_USED)
        if ticket.reward_claimed:
            raise StateError(ErrorCode.REWARD_ALREADY_CLAIMED)

        amount = ticket.won_item.value
        if pool.funds_held == 0:
            raise ResourceError(ErrorCode.NO_FUNDS_AVAILABLE)
        if pool.funds_held < amount:
            raise ResourceError(
                ErrorCode.INSUFFICIENT_BALANCE,
                f"Pool holds {pool.funds_held}, reward is {amount}",
            )
        new_funds = checked_sub(pool.funds_held, amount)

        self.funds.transfer(pool.vault, ticket.owner, amount)

        pool.funds_held = new_funds
        now = self.clock()
        ticket.reward_claimed = True
        ticket.claimed_at = now
        log.info(
            "Ticket #%d in pool %s claimed %d", ticket.sequence_id, pool.pool_id, amount
        )

        emit_safely(
            self.events,
            RewardClaimed(
                pool_id=pool.pool_id,
                claimant=caller,
                sequence_id=ticket.sequence_id,
                amount=amount,
                remaining_funds=new_funds,
                timestamp=now,
            ),
        )
        return amount

    # =====================================================
    # OPERATOR
    # =====================================================

    def withdraw_surplus(self, pool: Pool, caller: str, amount: int) -> int:
        if caller != pool.owner:
            raise StateError(ErrorCode.UNAUTHORIZED_WITHDRAWAL)
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise ValidationError(ErrorCode.INVALID_AMOUNT)
        if amount > pool.funds_held:
            raise ResourceError(
                ErrorCode.INSUFFICIENT_BALANCE,
                f"Requested {amount}, pool holds {pool.funds_held}",
            )
        withdrawable = max(
            0, self.funds.balance(pool.vault) - self.funds.minimum_balance()
        )
        if amount > withdrawable:
            raise ResourceError(
                ErrorCode.INSUFFICIENT_VAULT_FUNDS,
                f"Requested {amount}, vault can release {withdrawable}",
            )
        new_funds = checked_sub(pool.funds_held, amount)

        self.funds.transfer(pool.vault, pool.owner, amount)

        pool.funds_held = new_funds
        now = self.clock()
        log.info("Owner withdrew %d from pool %s", amount, pool.pool_id)

        emit_safely(
            self.events,
            FundsWithdrawn(
                pool_id=pool.pool_id,
                authority=caller,
                amount_withdrawn=amount,
                remaining_funds=new_funds,
                timestamp=now,
            ),
        )
        return amount

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from .analysis import (
    expected_payout_per_spin,
    expected_spins_for_all,
    house_edge,
    item_odds,
    probability_in_spins,
    probability_of_all_in_spins,
    recommended_spins,
)
from .config import Settings
from .draw import compute_draw, generate_nonce, generate_server_seed, to_percent
from .errors import ErrorCode, PrizeWheelError, StateError
from .events import LoggingEventSink
from .keys import new_pubkey, parse_pubkey, ticket_address
from .ledger import InMemoryLedger
from .models import PoolItemInput
from .pool import PoolEngine
from .rpc import RpcClient, SpinSeed, seed_from_block_feed_file
from .store import PoolStore, load_state, save_state
from .verify import build_spin_audit, verify_audit


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


def _open(args: argparse.Namespace) -> Tuple[Settings, PoolStore, InMemoryLedger, PoolEngine]:
    settings = Settings.from_env(
        rpc_url_override=args.rpc_url, state_path_override=args.state
    )
    store, ledger = load_state(settings.state_path, min_balance=settings.vault_min_balance)
    engine = PoolEngine(ledger, events=LoggingEventSink())
    return settings, store, ledger, engine


def _load_items(path: str) -> List[PoolItemInput]:
    with open(path, "r", encoding="utf-8") as f:
        raw = json.load(f)
    if isinstance(raw, dict):
        raw = raw.get("items", [])
    return [PoolItemInput.from_dict(d) for d in raw]


def cmd_keygen(args: argparse.Namespace) -> int:
    print(new_pubkey())
    return 0


def cmd_fund(args: argparse.Namespace) -> int:
    settings, store, ledger, _ = _open(args)
    account = parse_pubkey(args.account)
    balance = ledger.deposit(account, args.amount)
    save_state(settings.state_path, store, ledger)
    print(f"Balance of {account}: {balance}")
    return 0


def cmd_init(args: argparse.Namespace) -> int:
    settings, store, ledger, engine = _open(args)
    owner = parse_pubkey(args.owner)
    if args.pool_id in store.pools:
        raise StateError(ErrorCode.POOL_ALREADY_EXISTS, f"Pool {args.pool_id!r} already exists")
    pool = engine.initialize(
        pool_id=args.pool_id,
        owner=owner,
        ticket_price=args.ticket_price,
        items=_load_items(args.items),
        company_name=args.company_name,
        company_image=args.company_image,
    )
    store.add_pool(pool)
    save_state(settings.state_path, store, ledger)

    print("========================================")
    print("🎡 PRIZE POOL INITIALIZED")
    print("========================================")
    print(f"Pool          : {pool.pool_id}")
    print(f"Owner         : {pool.owner}")
    print(f"Vault         : {pool.vault}")
    print(f"Ticket price  : {pool.reference_ticket_price}")
    print(f"Catalog value : {pool.total_catalog_value}")
    print("----------------------------------------")
    for i, item in enumerate(pool.items):
        print(f"[{i}] {item.name:<20} value={item.value:<10} {to_percent(item.probability_bp):>6}%")
    return 0


def cmd_buy(args: argparse.Namespace) -> int:
    settings, store, ledger, engine = _open(args)
    buyer = parse_pubkey(args.buyer)
    pool = store.get_pool(args.pool_id)
    ticket = engine.sell_ticket(pool, buyer)
    store.add_ticket(ticket)
    save_state(settings.state_path, store, ledger)

    print(f"🎫 Ticket #{ticket.sequence_id} bought for {ticket.purchase_price}")
    print(f"Ticket address: {ticket_address(buyer, pool.pool_id, ticket.sequence_id)}")
    return 0


def _spin_seed(args: argparse.Namespace, settings: Settings) -> SpinSeed:
    if args.seed:
        return SpinSeed(args.seed, "cli")
    if args.block_feed_file:
        return seed_from_block_feed_file(args.block_feed_file, slot_hint=args.slot)
    if args.slot is not None:
        with RpcClient(settings.require_rpc_url(), timeout_s=args.timeout) as rpc:
            spin_seed = rpc.seed_for_slot(args.slot)
        logging.getLogger("spin").info("Seed (blockhash of slot %d): %s", args.slot, spin_seed.seed)
        return spin_seed
    return SpinSeed(generate_server_seed(), "server")


def cmd_spin(args: argparse.Namespace) -> int:
    settings, store, ledger, engine = _open(args)
    buyer = parse_pubkey(args.buyer)
    pool = store.get_pool(args.pool_id)
    ticket = store.get_ticket(buyer, pool.pool_id, args.ticket)

    spin_seed = _spin_seed(args, settings)
    seed, seed_source = spin_seed.seed, spin_seed.source
    nonce = args.nonce or generate_nonce()
    draw, seed_hash_hex, _ = compute_draw(seed, buyer, nonce)

    weights_before = list(pool.weights)
    names = [i.name for i in pool.items]
    won = engine.record_spin(pool, ticket, buyer, draw)
    save_state(settings.state_path, store, ledger)

    if args.audit:
        audit = build_spin_audit(
            pool_id=pool.pool_id,
            sequence_id=ticket.sequence_id,
            spinner=buyer,
            seed=seed,
            seed_source=seed_source,
            nonce=nonce,
            draw=draw,
            seed_hash_hex=seed_hash_hex,
            weights=weights_before,
            item_names=names,
            winner_index=won.index,
            generated_at=datetime.now(timezone.utc).isoformat(),
        )
        with open(args.audit, "w", encoding="utf-8") as f:
            json.dump(audit, f, indent=2)

    print("========================================")
    print("🎉 SPIN RESULT")
    print("========================================")
    print(f"Seed          : {seed} ({seed_source})")
    print(f"Nonce         : {nonce}")
    print(f"Draw          : {draw}")
    print(f"Won item      : {won.name} (value {won.value}, {to_percent(won.probability_bp)}%)")
    if args.audit:
        print(f"🧾 Wrote audit: {args.audit}")
    return 0


def cmd_claim(args: argparse.Namespace) -> int:
    settings, store, ledger, engine = _open(args)
    buyer = parse_pubkey(args.buyer)
    pool = store.get_pool(args.pool_id)
    ticket = store.get_ticket(buyer, pool.pool_id, args.ticket)
    amount = engine.claim_reward(pool, ticket, buyer)
    save_state(settings.state_path, store, ledger)
    print(f"💰 Claimed {amount} for ticket #{ticket.sequence_id}")
    return 0


def cmd_withdraw(args: argparse.Namespace) -> int:
    settings, store, ledger, engine = _open(args)
    owner = parse_pubkey(args.owner)
    pool = store.get_pool(args.pool_id)
    amount = engine.withdraw_surplus(pool, owner, args.amount)
    save_state(settings.state_path, store, ledger)
    print(f"🏦 Withdrew {amount}; pool now holds {pool.funds_held}")
    return 0


def cmd_show(args: argparse.Namespace) -> int:
    _, store, ledger, _ = _open(args)
    pool = store.get_pool(args.pool_id)
    print(f"Pool          : {pool.pool_id} ({pool.company_name or '-'})")
    print(f"Owner         : {pool.owner}")
    print(f"Active        : {pool.active}")
    print(f"Ticket price  : {pool.reference_ticket_price}")
    print(f"Tickets sold  : {pool.tickets_sold}")
    print(f"Unspun tickets: {pool.tickets_outstanding}")
    print(f"Funds held    : {pool.funds_held}")
    print(f"Vault balance : {ledger.balance(pool.vault)}")
    print("----------------------------------------")
    for i, item in enumerate(pool.items):
        supply = "∞" if item.supply is None else str(item.supply)
        flag = "" if item.available else " (sold out)"
        print(
            f"[{i}] {item.name:<20} value={item.value:<10} "
            f"{to_percent(item.probability_bp):>6}% supply={supply}{flag}"
        )
    if args.buyer:
        buyer = parse_pubkey(args.buyer)
        print("----------------------------------------")
        for t in store.tickets_of(buyer, pool.pool_id):
            won = t.won_item.name if t.won_item else "-"
            print(f"Ticket #{t.sequence_id:<6} {t.state.value:<8} won={won}")
    return 0


def cmd_odds(args: argparse.Namespace) -> int:
    _, store, _, _ = _open(args)
    pool = store.get_pool(args.pool_id)

    print("=== PRODUCT PROBABILITIES ===")
    for o in item_odds(pool):
        print(f"{o.name}:")
        print(f"  Probability         : {o.probability * 100:.2f}%")
        if o.expected_spins is None:
            print("  Not currently winnable")
            continue
        print(f"  Expected spins      : {o.expected_spins:.2f}")
        print(f"  Expected cost       : {o.expected_cost:.2f}")
        print(f"  Profit              : {o.profit:.2f} ({o.profit_ratio * 100:.2f}%)")
        print(
            f"  In {args.spins} spins        : "
            f"{probability_in_spins(o.probability, args.spins) * 100:.2f}%"
        )
        rec = recommended_spins(o.probability, target=args.target)
        print(f"  Spins for {args.target:.0%} chance : {rec if rec is not None else 'n/a'}")

    print("=== WHOLE CATALOG ===")
    all_spins = expected_spins_for_all(pool.weights)
    if all_spins is not None:
        print(f"Expected spins to win every item : {all_spins:.2f}")
    print(
        f"Chance to win every item in {args.spins} spins: "
        f"{probability_of_all_in_spins(pool.weights, args.spins) * 100:.4f}%"
    )
    print(f"Expected payout per spin : {expected_payout_per_spin(pool):.2f}")
    print(f"House edge               : {house_edge(pool) * 100:.2f}%")
    return 0


def cmd_verify(args: argparse.Namespace) -> int:
    result = verify_audit(args.audit)
    print("✅ AUDIT VERIFIED")
    print(f"Pool          : {result['pool_id']}")
    print(f"Ticket        : #{result['ticket_sequence_id']}")
    print(f"Draw          : {result['draw']}")
    print(f"Winner        : {result['winner']}")
    print(f"Seed SHA-256  : {result['seed_hash_hex']}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="prize-wheel",
        description="Prize wheel pools: sell tickets, spin, claim, withdraw.",
    )
    p.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    p.add_argument("--rpc-url", default=None, help="Override RPC URL (else use env).")
    p.add_argument("--timeout", type=float, default=60.0, help="RPC timeout seconds.")
    p.add_argument("--state", default=None, help="State file (else PRIZE_WHEEL_STATE).")

    sub = p.add_subparsers(dest="cmd", required=True)

    k = sub.add_parser("keygen", help="Print a fresh random identity.")
    k.set_defaults(func=cmd_keygen)

    f = sub.add_parser("fund", help="Credit an account in the local ledger.")
    f.add_argument("--account", required=True)
    f.add_argument("--amount", required=True, type=int)
    f.set_defaults(func=cmd_fund)

    i = sub.add_parser("init", help="Create a prize pool from an items JSON file.")
    i.add_argument("--pool-id", required=True)
    i.add_argument("--owner", required=True)
    i.add_argument("--ticket-price", required=True, type=int)
    i.add_argument("--items", required=True, help="JSON list of {name, value, ...}.")
    i.add_argument("--company-name", default="")
    i.add_argument("--company-image", default="")
    i.set_defaults(func=cmd_init)

    b = sub.add_parser("buy", help="Buy one ticket.")
    b.add_argument("--pool-id", required=True)
    b.add_argument("--buyer", required=True)
    b.set_defaults(func=cmd_buy)

    s = sub.add_parser("spin", help="Spend a ticket on a spin.")
    s.add_argument("--pool-id", required=True)
    s.add_argument("--buyer", required=True)
    s.add_argument("--ticket", required=True, type=int, help="Ticket sequence id.")
    s.add_argument("--seed", default=None, help="Explicit seed (else server seed).")
    s.add_argument("--slot", default=None, type=int, help="Use this slot's blockhash as seed.")
    s.add_argument(
        "--block-feed-file",
        default=None,
        help=(
            "Path to a block feed file to source the seed (blockhash). "
            "Can be raw string or JSON containing blockhash."
        ),
    )
    s.add_argument("--nonce", default=None, help="Per-spin nonce (else random).")
    s.add_argument("--audit", default=None, help="Write a spin audit JSON here.")
    s.set_defaults(func=cmd_spin)

    c = sub.add_parser("claim", help="Claim the reward of a spun ticket.")
    c.add_argument("--pool-id", required=True)
    c.add_argument("--buyer", required=True)
    c.add_argument("--ticket", required=True, type=int)
    c.set_defaults(func=cmd_claim)

    w = sub.add_parser("withdraw", help="Owner withdraws funds from the vault.")
    w.add_argument("--pool-id", required=True)
    w.add_argument("--owner", required=True)
    w.add_argument("--amount", required=True, type=int)
    w.set_defaults(func=cmd_withdraw)

    sh = sub.add_parser("show", help="Print pool state.")
    sh.add_argument("--pool-id", required=True)
    sh.add_argument("--buyer", default=None, help="Also list this buyer's tickets.")
    sh.set_defaults(func=cmd_show)

    o = sub.add_parser("odds", help="Probability and profitability analysis.")
    o.add_argument("--pool-id", required=True)
    o.add_argument("--spins", type=int, default=10)
    o.add_argument("--target", type=float, default=0.8)
    o.set_defaults(func=cmd_odds)

    v = sub.add_parser("verify", help="Verify a spin audit JSON deterministically.")
    v.add_argument("--audit", required=True, help="Path to audit JSON.")
    v.set_defaults(func=cmd_verify)

    return p


def main(argv: Optional[List[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)
    try:
        code = args.func(args)
    except PrizeWheelError as e:
        print(f"error[{e.code.value}]: {e.message}", file=sys.stderr)
        code = 1
    raise SystemExit(code)

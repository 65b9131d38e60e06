import json

import pytest

from prize_wheel.cli import main
from prize_wheel.keys import new_pubkey
from prize_wheel.store import load_state


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("RPC_URL", "HELIUS_API_KEY", "PRIZE_WHEEL_STATE", "VAULT_MIN_BALANCE"):
        monkeypatch.delenv(name, raising=False)


def run(state, *argv):
    with pytest.raises(SystemExit) as e:
        main(["--state", state, *argv])
    return e.value.code


def test_full_round_trip(tmp_path, capsys):
    state = str(tmp_path / "state.json")
    items = tmp_path / "items.json"
    items.write_text(
        json.dumps(
            [
                {"name": "iPhone", "value": 10, "image": "https://x/p.png"},
                {"name": "iPad", "price": 50, "description": "tablet"},
            ]
        ),
        encoding="utf-8",
    )
    owner, buyer = new_pubkey(), new_pubkey()

    assert run(state, "fund", "--account", owner, "--amount", "1000") == 0
    assert run(state, "fund", "--account", buyer, "--amount", "1000") == 0
    assert run(
        state, "init", "--pool-id", "TestCorp", "--owner", owner,
        "--ticket-price", "100", "--items", str(items), "--company-name", "TestCorp",
    ) == 0
    assert run(state, "buy", "--pool-id", "TestCorp", "--buyer", buyer) == 0

    audit = str(tmp_path / "audit.json")
    assert run(
        state, "spin", "--pool-id", "TestCorp", "--buyer", buyer, "--ticket", "0",
        "--seed", "fixed-seed", "--nonce", "01", "--audit", audit,
    ) == 0
    assert run(state, "verify", "--audit", audit) == 0
    assert "AUDIT VERIFIED" in capsys.readouterr().out

    assert run(state, "claim", "--pool-id", "TestCorp", "--buyer", buyer, "--ticket", "0") == 0
    assert run(state, "show", "--pool-id", "TestCorp", "--buyer", buyer) == 0
    assert run(state, "odds", "--pool-id", "TestCorp", "--spins", "5") == 0

    store, ledger = load_state(state)
    pool = store.get_pool("TestCorp")
    ticket = store.get_ticket(buyer, "TestCorp", 0)
    assert ticket.reward_claimed
    assert pool.funds_held == 100 - ticket.won_item.value

    assert run(
        state, "withdraw", "--pool-id", "TestCorp", "--owner", owner,
        "--amount", str(pool.funds_held),
    ) == 0
    store, ledger = load_state(state)
    assert store.get_pool("TestCorp").funds_held == 0
    assert ledger.balance(owner) == 1000 + pool.funds_held


def test_errors_map_to_codes(tmp_path, capsys):
    state = str(tmp_path / "state.json")
    code = run(state, "buy", "--pool-id", "Nope", "--buyer", new_pubkey())
    assert code == 1
    assert "error[PoolNotFound]" in capsys.readouterr().err

    code = run(state, "fund", "--account", "not-a-key", "--amount", "1")
    assert code == 1
    assert "error[InvalidIdentity]" in capsys.readouterr().err


def test_failed_command_does_not_write_state(tmp_path, capsys):
    state = tmp_path / "state.json"
    items = tmp_path / "items.json"
    items.write_text(json.dumps([{"name": "A", "value": 10}]), encoding="utf-8")
    owner, buyer = new_pubkey(), new_pubkey()
    run(str(state), "init", "--pool-id", "P", "--owner", owner, "--ticket-price", "100",
        "--items", str(items))
    before = state.read_text(encoding="utf-8")

    code = run(str(state), "buy", "--pool-id", "P", "--buyer", buyer)
    assert code == 1
    assert "error[InsufficientFunds]" in capsys.readouterr().err
    assert state.read_text(encoding="utf-8") == before


def test_keygen(capsys, tmp_path):
    assert run(str(tmp_path / "s.json"), "keygen") == 0
    key = capsys.readouterr().out.strip()
    assert len(key) >= 32

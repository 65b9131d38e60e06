from __future__ import annotations

import logging
from typing import Dict, Optional, Protocol

from .checked_math import checked_add, checked_sub, ensure_u64
from .errors import ArithmeticFault, ErrorCode, TransferError

log = logging.getLogger("ledger")


class FundsTransfer(Protocol):
    """
    Moves value between accounts. All-or-nothing: either the transfer is
    complete when `transfer` returns, or it raises and nothing moved.
    """

    def transfer(self, source: str, dest: str, amount: int) -> None: ...

    def balance(self, account: str) -> int: ...

    def minimum_balance(self) -> int: ...


class InMemoryLedger:
    """Account balances held in a dict. Backs the CLI and the tests."""

    def __init__(
        self, balances: Optional[Dict[str, int]] = None, min_balance: int = 0
    ) -> None:
        self.balances: Dict[str, int] = dict(balances or {})
        self.min_balance = ensure_u64(min_balance)

    def balance(self, account: str) -> int:
        return self.balances.get(account, 0)

    def minimum_balance(self) -> int:
        return self.min_balance

    def deposit(self, account: str, amount: int) -> int:
        self.balances[account] = checked_add(self.balance(account), amount)
        log.debug("Deposited %d to %s", amount, account)
        return self.balances[account]

    def transfer(self, source: str, dest: str, amount: int) -> None:
        if source == dest:
            raise TransferError(message="Source and destination are the same account")
        have = self.balance(source)
        if ensure_u64(amount) > have:
            raise TransferError(
                ErrorCode.INSUFFICIENT_FUNDS,
                f"{source} holds {have}, needs {amount}",
            )
        try:
            new_source = checked_sub(have, amount)
            new_dest = checked_add(self.balance(dest), amount)
        except ArithmeticFault as e:
            raise TransferError(message=str(e)) from e

        self.balances[source] = new_source
        self.balances[dest] = new_dest
        log.debug("Transferred %d from %s to %s", amount, source, dest)

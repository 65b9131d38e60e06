from __future__ import annotations

from enum import Enum
from typing import Dict, Optional


class ErrorCode(str, Enum):
    # validation
    INVALID_TICKET_PRICE = "InvalidTicketPrice"
    NO_ITEMS_PROVIDED = "NoItemsProvided"
    TOO_MANY_ITEMS = "TooManyItems"
    INVALID_ITEM_PRICE = "InvalidItemPrice"
    INVALID_SUPPLY = "InvalidSupply"
    COMPANY_NAME_TOO_LONG = "CompanyNameTooLong"
    COMPANY_IMAGE_TOO_LONG = "CompanyImageTooLong"
    ITEM_NAME_TOO_LONG = "ItemNameTooLong"
    ITEM_IMAGE_TOO_LONG = "ItemImageTooLong"
    ITEM_DESCRIPTION_TOO_LONG = "ItemDescriptionTooLong"
    INVALID_AMOUNT = "InvalidAmount"
    INVALID_DRAW = "InvalidDraw"
    INVALID_IDENTITY = "InvalidIdentity"
    # state preconditions
    POOL_NOT_ACTIVE = "PoolNotActive"
    NO_AVAILABLE_ITEMS = "NoAvailableItems"
    TICKET_ALREADY_USED = "TicketAlreadyUsed"
    TICKET_NOT_USED = "TicketNotUsed"
    REWARD_ALREADY_CLAIMED = "RewardAlreadyClaimed"
    NOT_TICKET_OWNER = "NotTicketOwner"
    TICKET_POOL_MISMATCH = "TicketPoolMismatch"
    UNAUTHORIZED_WITHDRAWAL = "UnauthorizedWithdrawal"
    POOL_ALREADY_EXISTS = "PoolAlreadyExists"
    POOL_NOT_FOUND = "PoolNotFound"
    TICKET_ALREADY_EXISTS = "TicketAlreadyExists"
    TICKET_NOT_FOUND = "TicketNotFound"
    # resources
    NO_FUNDS_AVAILABLE = "NoFundsAvailable"
    INSUFFICIENT_BALANCE = "InsufficientBalance"
    INSUFFICIENT_VAULT_FUNDS = "InsufficientVaultFunds"
    # arithmetic
    ARITHMETIC_OVERFLOW = "ArithmeticOverflow"
    ARITHMETIC_UNDERFLOW = "ArithmeticUnderflow"
    MATH_OVERFLOW = "MathOverflow"
    PROBABILITY_SUM_MISMATCH = "ProbabilitySumMismatch"
    # collaborators
    INSUFFICIENT_FUNDS = "InsufficientFunds"
    TRANSFER_FAILED = "TransferFailed"


MESSAGES: Dict[ErrorCode, str] = {
    ErrorCode.INVALID_TICKET_PRICE: "Ticket price must be greater than 0",
    ErrorCode.NO_ITEMS_PROVIDED: "At least one item must be provided",
    ErrorCode.TOO_MANY_ITEMS: "Too many items",
    ErrorCode.INVALID_ITEM_PRICE: "Item value must be greater than 0",
    ErrorCode.INVALID_SUPPLY: "Item supply must be at least 1 when given",
    ErrorCode.COMPANY_NAME_TOO_LONG: "Company name is too long",
    ErrorCode.COMPANY_IMAGE_TOO_LONG: "Company image URL is too long",
    ErrorCode.ITEM_NAME_TOO_LONG: "Item name is too long",
    ErrorCode.ITEM_IMAGE_TOO_LONG: "Item image URL is too long",
    ErrorCode.ITEM_DESCRIPTION_TOO_LONG: "Item description is too long",
    ErrorCode.INVALID_AMOUNT: "Amount must be greater than 0",
    ErrorCode.INVALID_DRAW: "Draw must be an integer in [0, 10000)",
    ErrorCode.INVALID_IDENTITY: "Invalid identity",
    ErrorCode.POOL_NOT_ACTIVE: "Pool is not active",
    ErrorCode.NO_AVAILABLE_ITEMS: "No available items to spin",
    ErrorCode.TICKET_ALREADY_USED: "Ticket has already been spun",
    ErrorCode.TICKET_NOT_USED: "Ticket has not been spun yet",
    ErrorCode.REWARD_ALREADY_CLAIMED: "Reward has already been claimed",
    ErrorCode.NOT_TICKET_OWNER: "Caller does not own this ticket",
    ErrorCode.TICKET_POOL_MISMATCH: "Ticket belongs to another pool",
    ErrorCode.UNAUTHORIZED_WITHDRAWAL: "Unauthorized withdrawal attempt",
    ErrorCode.POOL_ALREADY_EXISTS: "Pool already exists",
    ErrorCode.POOL_NOT_FOUND: "Pool not found",
    ErrorCode.TICKET_ALREADY_EXISTS: "Ticket already exists",
    ErrorCode.TICKET_NOT_FOUND: "Ticket not found",
    ErrorCode.NO_FUNDS_AVAILABLE: "No funds available",
    ErrorCode.INSUFFICIENT_BALANCE: "Insufficient pool balance",
    ErrorCode.INSUFFICIENT_VAULT_FUNDS: "Insufficient vault funds",
    ErrorCode.ARITHMETIC_OVERFLOW: "Arithmetic overflow",
    ErrorCode.ARITHMETIC_UNDERFLOW: "Arithmetic underflow",
    ErrorCode.MATH_OVERFLOW: "Math overflow occurred",
    ErrorCode.PROBABILITY_SUM_MISMATCH: "Probability sum mismatch",
    ErrorCode.INSUFFICIENT_FUNDS: "Insufficient funds for transfer",
    ErrorCode.TRANSFER_FAILED: "Funds transfer failed",
}


class PrizeWheelError(Exception):
    """Base error. `code` is stable and safe to branch on."""

    kind = "error"

    def __init__(self, code: ErrorCode, message: Optional[str] = None) -> None:
        self.code = code
        self.message = message or MESSAGES.get(code, code.value)
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class ValidationError(PrizeWheelError):
    """Caller supplied bad input."""

    kind = "validation"


class StateError(PrizeWheelError):
    """The requested transition is illegal right now."""

    kind = "state"


class ResourceError(PrizeWheelError):
    """Not enough funds; retry later or with a smaller amount."""

    kind = "resource"


class ArithmeticFault(PrizeWheelError):
    kind = "arithmetic"


class CollaboratorError(PrizeWheelError):
    kind = "collaborator"


class TransferError(CollaboratorError):
    def __init__(
        self, code: ErrorCode = ErrorCode.TRANSFER_FAILED, message: Optional[str] = None
    ) -> None:
        super().__init__(code, message)

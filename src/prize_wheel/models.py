from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class PoolItemInput:
    name: str
    value: int
    description: str = ""
    image: str = ""
    supply: Optional[int] = None  # None = unlimited

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "PoolItemInput":
        # on-chain item records name the value field "price"
        value = d["value"] if "value" in d else d["price"]
        supply = d.get("supply")
        return PoolItemInput(
            name=str(d["name"]),
            value=int(value),
            description=str(d.get("description", "")),
            image=str(d.get("image", "")),
            supply=int(supply) if supply is not None else None,
        )


@dataclass
class PoolItem:
    name: str
    description: str
    image: str
    value: int
    probability_bp: int = 0
    available: bool = True
    supply: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "PoolItem":
        return PoolItem(
            name=d["name"],
            description=d.get("description", ""),
            image=d.get("image", ""),
            value=int(d["value"]),
            probability_bp=int(d.get("probability_bp", 0)),
            available=bool(d.get("available", True)),
            supply=d.get("supply"),
        )


@dataclass(frozen=True)
class WonItem:
    """Snapshot of the catalog entry a spin landed on."""

    index: int
    name: str
    description: str
    image: str
    value: int
    probability_bp: int

    @staticmethod
    def snapshot(index: int, item: PoolItem) -> "WonItem":
        return WonItem(
            index=index,
            name=item.name,
            description=item.description,
            image=item.image,
            value=item.value,
            probability_bp=item.probability_bp,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "WonItem":
        return WonItem(
            index=int(d["index"]),
            name=d["name"],
            description=d.get("description", ""),
            image=d.get("image", ""),
            value=int(d["value"]),
            probability_bp=int(d["probability_bp"]),
        )


@dataclass
class Pool:
    pool_id: str
    owner: str
    vault: str
    reference_ticket_price: int
    items: List[PoolItem]
    total_catalog_value: int
    created_at: int
    company_name: str = ""
    company_image: str = ""
    tickets_sold: int = 0
    tickets_outstanding: int = 0  # sold, not yet spun
    funds_held: int = 0
    active: bool = True

    @property
    def weights(self) -> List[int]:
        return [item.probability_bp for item in self.items]

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["items"] = [item.to_dict() for item in self.items]
        return d

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "Pool":
        return Pool(
            pool_id=d["pool_id"],
            owner=d["owner"],
            vault=d["vault"],
            reference_ticket_price=int(d["reference_ticket_price"]),
            items=[PoolItem.from_dict(i) for i in d["items"]],
            total_catalog_value=int(d["total_catalog_value"]),
            created_at=int(d["created_at"]),
            company_name=d.get("company_name", ""),
            company_image=d.get("company_image", ""),
            tickets_sold=int(d.get("tickets_sold", 0)),
            tickets_outstanding=int(d.get("tickets_outstanding", 0)),
            funds_held=int(d.get("funds_held", 0)),
            active=bool(d.get("active", True)),
        )


class TicketState(str, Enum):
    UNUSED = "unused"
    SPUN = "spun"
    CLAIMED = "claimed"


@dataclass
class Ticket:
    pool_id: str
    owner: str
    sequence_id: int
    purchase_price: int
    purchased_at: int
    used: bool = False
    won_item: Optional[WonItem] = None
    reward_claimed: bool = False
    draw: Optional[int] = None
    spun_at: Optional[int] = None
    claimed_at: Optional[int] = None

    @property
    def state(self) -> TicketState:
        if self.reward_claimed:
            return TicketState.CLAIMED
        if self.used:
            return TicketState.SPUN
        return TicketState.UNUSED

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["won_item"] = self.won_item.to_dict() if self.won_item else None
        return d

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "Ticket":
        won = d.get("won_item")
        return Ticket(
            pool_id=d["pool_id"],
            owner=d["owner"],
            sequence_id=int(d["sequence_id"]),
            purchase_price=int(d["purchase_price"]),
            purchased_at=int(d["purchased_at"]),
            used=bool(d.get("used", False)),
            won_item=WonItem.from_dict(won) if won else None,
            reward_claimed=bool(d.get("reward_claimed", False)),
            draw=d.get("draw"),
            spun_at=d.get("spun_at"),
            claimed_at=d.get("claimed_at"),
        )

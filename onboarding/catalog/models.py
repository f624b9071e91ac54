from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional

D = Decimal


class ItemKind(str, Enum):
    DEVICE = "device"
    SERVICE = "service"
    ADDON = "addon"


def to_money(value: Any, name: str = "amount") -> D:
    amount = value if isinstance(value, D) else D(str(value))
    if amount < 0:
        raise ValueError(f"{name} must be >= 0, got {amount}")
    return amount


@dataclass(frozen=True)
class CatalogItem:
    """Purchasable device/service/add-on as listed in the catalog. Never mutated."""

    id: str
    kind: ItemKind
    category: str
    name: str
    description: str = ""
    per_unit_monthly_fee: D = D("0.00")
    per_unit_internal_cost: D = D("0.00")
    per_unit_purchase_price: Optional[D] = None
    solution_ids: FrozenSet[str] = frozenset()
    # add-on billed once per unit of the card it hangs on
    is_per_device: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "kind", ItemKind(self.kind))
        object.__setattr__(
            self, "per_unit_monthly_fee", to_money(self.per_unit_monthly_fee, "per_unit_monthly_fee")
        )
        object.__setattr__(
            self,
            "per_unit_internal_cost",
            to_money(self.per_unit_internal_cost, "per_unit_internal_cost"),
        )
        if self.per_unit_purchase_price is not None:
            object.__setattr__(
                self,
                "per_unit_purchase_price",
                to_money(self.per_unit_purchase_price, "per_unit_purchase_price"),
            )
        object.__setattr__(self, "solution_ids", frozenset(self.solution_ids or ()))

    def listed_for(self, solution_id: str) -> bool:
        # items without solution tags are offered everywhere
        return not self.solution_ids or solution_id in self.solution_ids

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "CatalogItem":
        """
        Catalog rows use the store's camelCase keys:
          {"id": "t1", "kind": "device", "category": "Terminals", "name": "POS",
           "monthlyFee": "15.99", "companyCost": "9.50", "purchasePrice": "199"}
        """
        purchase = d.get("purchasePrice")
        return CatalogItem(
            id=str(d["id"]),
            kind=ItemKind(d["kind"]),
            category=str(d.get("category") or ""),
            name=str(d["name"]),
            description=str(d.get("description") or ""),
            per_unit_monthly_fee=D(str(d.get("monthlyFee", "0"))),
            per_unit_internal_cost=D(str(d.get("companyCost", "0"))),
            per_unit_purchase_price=None if purchase is None else D(str(purchase)),
            solution_ids=frozenset(d.get("solutionIds") or ()),
            is_per_device=bool(d.get("isPerDevice", False)),
        )


@dataclass(frozen=True)
class BusinessLocation:
    id: str
    name: str = ""
    estimated_monthly_turnover: D = D("0.00")

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "estimated_monthly_turnover",
            to_money(self.estimated_monthly_turnover, "estimated_monthly_turnover"),
        )


@dataclass(frozen=True)
class Solution:
    """A top-level offering (e.g. cash register) chosen before any products."""

    id: str
    name: str
    requires_modules: bool = False
    module_category: str = "Modules"
    system_category: str = "Cash register system"

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Optional, Sequence

from onboarding.catalog.models import BusinessLocation
from onboarding.catalog.quote import QuoteTotals, q2
from onboarding.core.settings import settings

D = Decimal
ZERO = D("0")
HUNDRED = D("100")


@dataclass(frozen=True)
class ProfitCalculation:
    monthly_turnover: D
    effective_regulated_pct: D
    effective_unregulated_pct: D
    regulated_fee: D
    unregulated_fee: D
    customer_payments: D
    company_costs: D

    @property
    def transaction_margin(self) -> D:
        return self.regulated_fee + self.unregulated_fee

    @property
    def service_margin(self) -> D:
        return self.customer_payments - self.company_costs

    @property
    def total_monthly_profit(self) -> D:
        return self.transaction_margin + self.service_margin

    def as_dict(self) -> Dict[str, Any]:
        return {
            "monthlyTurnover": str(self.monthly_turnover),
            "effectiveRegulated": str(self.effective_regulated_pct),
            "effectiveUnregulated": str(self.effective_unregulated_pct),
            "regulatedFee": str(self.regulated_fee),
            "unregulatedFee": str(self.unregulated_fee),
            "transactionMargin": str(self.transaction_margin),
            "totalCustomerPayments": str(self.customer_payments),
            "totalCompanyCosts": str(self.company_costs),
            "serviceMargin": str(self.service_margin),
            "totalMonthlyProfit": str(self.total_monthly_profit),
        }


def effective_rate(rate_pct: D, offset_pct: D) -> D:
    """Rate left to the provider after the scheme's pass-through, never negative."""
    return max(ZERO, D(str(rate_pct)) - offset_pct)


def calculate_profit(
    locations: Sequence[BusinessLocation],
    totals: QuoteTotals,
    regulated_pct: D,
    unregulated_pct: D,
    interchange_offset_pct: Optional[D] = None,
) -> ProfitCalculation:
    """
    Monthly profit estimate for a merchant.

    Both card rates are applied to the full estimated turnover of all
    locations; the service part is the quote's fee minus its internal cost.
    """
    offset = settings.INTERCHANGE_OFFSET_PCT if interchange_offset_pct is None else interchange_offset_pct
    turnover = sum((loc.estimated_monthly_turnover for loc in locations), ZERO)

    eff_reg = effective_rate(regulated_pct, offset)
    eff_unreg = effective_rate(unregulated_pct, offset)

    return ProfitCalculation(
        monthly_turnover=q2(turnover),
        effective_regulated_pct=eff_reg,
        effective_unregulated_pct=eff_unreg,
        regulated_fee=q2(turnover * eff_reg / HUNDRED),
        unregulated_fee=q2(turnover * eff_unreg / HUNDRED),
        customer_payments=totals.total_monthly_fee,
        company_costs=totals.total_internal_cost,
    )

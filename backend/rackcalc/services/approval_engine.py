"""
Approval engine: decides whether a quote may skip manual review.

Rules (all evaluated, violations collected in order):
  1. Advance payments ≥ 50% of the price
  2. Price < 100 000 EUR
  3. Final payment due ≤ 14 days after invoice
  4. Effective margin ≥ 7%

The reasons list is a business report, not an error channel: the caller
decides whether a failed rule blocks the project or only warns.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from rackcalc.config import APPROVAL_THRESHOLDS, DEFAULT_EXCHANGE_RATE, DEFAULT_FEE_PERCENT
from rackcalc.models.calculation import CalculationData, CalculationMode, Currency
from rackcalc.models.document import ProjectStage
from rackcalc.services.costing_engine import (
    CostBreakdown,
    calculate_project_costs,
    margin_from_price,
    price_from_margin,
)
from rackcalc.services.perf_monitor import timed

logger = logging.getLogger("rackcalc-approval")


@dataclass
class ApprovalResult:
    approved: bool
    reasons: List[str] = field(default_factory=list)
    final_price: float = 0.0
    effective_margin: float = 0.0
    breakdown: Optional[CostBreakdown] = None


def _price_in_eur(price: float, offer_currency: Currency, rate: float) -> float:
    if offer_currency == Currency.EUR:
        return price
    return price / (rate or DEFAULT_EXCHANGE_RATE)


@timed
def evaluate_auto_approval(
    data: CalculationData,
    rate: float,
    offer_currency: Currency,
    target_margin: float,
    manual_price: Optional[float],
    fee_percent: float = DEFAULT_FEE_PERCENT,
) -> ApprovalResult:
    """
    Run the approval battery on the INITIAL calculation.

    With a manual price the margin is derived from it; otherwise the target
    margin stands and the price is back-solved from the total cost.
    """
    reasons: List[str] = []
    terms = data.payment_terms

    breakdown = calculate_project_costs(
        data,
        rate,
        offer_currency,
        CalculationMode.INITIAL,
        fee_percent,
        target_margin,
        manual_price,
    )
    total_cost = breakdown.total

    if manual_price is not None:
        final_price = manual_price
        effective_margin = margin_from_price(final_price, total_cost)
    else:
        final_price = price_from_margin(total_cost, target_margin)
        effective_margin = target_margin

    total_advance = terms.total_advance_percent
    if total_advance < APPROVAL_THRESHOLDS["min_advance_percent"]:
        reasons.append(
            f"Advance payment is {total_advance:g}% "
            f"(minimum {APPROVAL_THRESHOLDS['min_advance_percent']:g}% required)"
        )

    price_eur = _price_in_eur(final_price, offer_currency, rate)
    if price_eur >= APPROVAL_THRESHOLDS["max_value_eur"]:
        reasons.append(
            f"Project value exceeds {APPROVAL_THRESHOLDS['max_value_eur']:,.0f} EUR "
            f"({price_eur:.0f} EUR)"
        )

    if terms.final_payment_days > APPROVAL_THRESHOLDS["max_final_payment_days"]:
        reasons.append(
            f"Final payment term exceeds {APPROVAL_THRESHOLDS['max_final_payment_days']:g} days "
            f"({terms.final_payment_days} days)"
        )

    if effective_margin < APPROVAL_THRESHOLDS["min_margin_percent"]:
        reasons.append(
            f"Margin below {APPROVAL_THRESHOLDS['min_margin_percent']:g}% "
            f"({effective_margin:.1f}%)"
        )

    result = ApprovalResult(
        approved=not reasons,
        reasons=reasons,
        final_price=final_price,
        effective_margin=effective_margin,
        breakdown=breakdown,
    )
    logger.info(
        f"Auto-approval {'passed' if result.approved else 'failed'}: "
        f"price={final_price:,.2f} {Currency(offer_currency).value}, margin={effective_margin:.1f}%, "
        f"{len(reasons)} violation(s)"
    )
    return result


def resolve_submission_stage(result: ApprovalResult) -> ProjectStage:
    """Stage a submitted draft moves to: APPROVED if every rule passed, else manual review."""
    return ProjectStage.APPROVED if result.approved else ProjectStage.PENDING_APPROVAL

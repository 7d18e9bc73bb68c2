"""
Project cost aggregator: rolls a whole calculation into one CostBreakdown.

Covers:
  - Supplier material (fee-eligible halving, discount, markup, FINAL overrides)
  - Fee on fee-eligible suppliers, reported separately
  - Nameplates (fixed PLN unit cost)
  - Transport tied to suppliers (dropped when every feeding supplier is out)
  - Other costs
  - Installation (itemised / single FINAL override, stages, legacy flat data)
  - Financing surcharge for final payment beyond the free payment window
  - Value of everything excluded by variants, reported but never totalled

The aggregator is pure: identical input gives identical output and the
calculation is never modified. Re-run it in full after every change.
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Dict, Optional, Tuple

from rackcalc.config import (
    DEFAULT_FEE_PERCENT,
    FEE_ELIGIBLE_PRICE_FACTOR,
    FINANCING_DEFAULTS,
    NAMEPLATE_UNIT_COST_PLN,
    ZERO_PRICE_MARGIN,
)
from rackcalc.models.calculation import (
    CalculationData,
    CalculationMode,
    Currency,
    InstallationData,
    PaymentTerms,
    Supplier,
    TransportItem,
)
from rackcalc.services.currency import convert
from rackcalc.services.perf_monitor import timed
from rackcalc.services.stage_costing import calculate_stage_cost, equipment_cost

logger = logging.getLogger("rackcalc-costing")


@dataclass
class CostBreakdown:
    """Cost by category in the target currency, plus the excluded value."""
    suppliers: float = 0.0      # material incl. nameplates
    transport: float = 0.0
    other: float = 0.0
    installation: float = 0.0
    fee: float = 0.0
    financing: float = 0.0
    total: float = 0.0
    excluded: float = 0.0       # what-if value, not part of total

    @property
    def base_cost(self) -> float:
        """Every category except financing."""
        return self.suppliers + self.transport + self.other + self.installation + self.fee

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


# ---------------------------------------------------------------------------
# Pricing helpers shared with the approval engine
# ---------------------------------------------------------------------------

def price_from_margin(cost: float, target_margin: float) -> float:
    """Sale price that yields ``target_margin`` percent on ``cost``; cost itself at ≥100%."""
    margin_decimal = target_margin / 100.0
    if margin_decimal >= 1:
        return cost
    return cost / (1 - margin_decimal)


def margin_from_price(price: float, cost: float) -> float:
    """Effective margin percent of a fixed price; a zero or negative price is a total loss (-100)."""
    if price <= 0:
        return ZERO_PRICE_MARGIN
    return (price - cost) / price * 100.0


# ---------------------------------------------------------------------------
# Category calculators
# ---------------------------------------------------------------------------

def _supplier_adjustment(supplier: Supplier) -> float:
    return (1 - supplier.discount / 100.0) * (1 + supplier.extra_markup_percent / 100.0)


def _supplier_costs(
    data: CalculationData,
    rate: float,
    target_currency: Currency,
    is_final: bool,
    fee_percent: float,
) -> Tuple[float, float, float]:
    """Return (suppliers_total, fee_total, excluded_value) in the target currency."""
    suppliers_total = 0.0
    fee_total = 0.0
    excluded = 0.0

    for supplier in data.suppliers:
        if not supplier.is_included:
            continue

        fee_rate = fee_percent / 100.0 if supplier.is_fee_eligible else 0.0

        if is_final and supplier.final_cost_override is not None:
            cost = supplier.final_cost_override
        else:
            adjustment = _supplier_adjustment(supplier)
            price_factor = FEE_ELIGIBLE_PRICE_FACTOR if supplier.is_fee_eligible else 1.0
            kept = 0.0
            for item in supplier.items:
                value = item.quantity * item.unit_price * price_factor
                if item.is_excluded:
                    would_be = value * adjustment
                    excluded += convert(
                        would_be * (1 + fee_rate), supplier.currency, target_currency, rate
                    )
                    continue
                kept += value
            cost = kept * adjustment

        suppliers_total += convert(cost, supplier.currency, target_currency, rate)
        if fee_rate:
            fee_total += convert(cost * fee_rate, supplier.currency, target_currency, rate)

    return suppliers_total, fee_total, excluded


def _transport_is_orphaned(item: TransportItem, suppliers_by_id: Dict[str, Supplier]) -> bool:
    """True when every supplier feeding this transport has been switched off."""
    if item.supplier_id:
        supplier = suppliers_by_id.get(item.supplier_id)
        if supplier is not None and not supplier.is_included:
            return True

    if item.linked_supplier_ids:
        has_active = any(
            sid in suppliers_by_id and suppliers_by_id[sid].is_included
            for sid in item.linked_supplier_ids
        )
        if not has_active:
            return True

    return False


def _transport_costs(
    data: CalculationData, rate: float, target_currency: Currency, is_final: bool
) -> Tuple[float, float]:
    suppliers_by_id = {s.id: s for s in data.suppliers}
    total = 0.0
    excluded = 0.0

    for item in data.transport:
        if _transport_is_orphaned(item, suppliers_by_id):
            continue

        cost = item.total_price
        currency = item.currency
        if is_final and item.final_cost_override is not None:
            cost = item.final_cost_override
            currency = item.final_currency or item.currency

        value = convert(cost, currency, target_currency, rate)
        if item.is_excluded:
            excluded += value
        else:
            total += value

    return total, excluded


def _other_costs(
    data: CalculationData, rate: float, target_currency: Currency, is_final: bool
) -> Tuple[float, float]:
    total = 0.0
    excluded = 0.0

    for item in data.other_costs:
        cost = item.price
        currency = item.currency
        if is_final and item.final_cost_override is not None:
            cost = item.final_cost_override
            currency = item.final_currency or item.currency

        value = convert(cost, currency, target_currency, rate)
        if item.is_excluded:
            excluded += value
        else:
            total += value

    return total, excluded


def _legacy_installation_cost(inst: InstallationData) -> float:
    """Flat formula for records saved before installation stages existed."""
    labor = inst.pallet_spots * inst.pallet_spot_price if inst.calc_method == "PALLETS" else 0.0
    custom = sum(i.quantity * i.unit_price for i in inst.custom_items)
    return labor + equipment_cost(inst) + custom


def _installation_costs(
    data: CalculationData, rate: float, target_currency: Currency, is_final: bool
) -> Tuple[float, float]:
    inst = data.installation

    if is_final and inst.final_installation_costs:
        total = sum(
            convert(item.price, item.currency, target_currency, rate)
            for item in inst.final_installation_costs
        )
        return total, 0.0

    if is_final and inst.final_cost_override is not None:
        return convert(inst.final_cost_override, Currency.PLN, target_currency, rate), 0.0

    excluded_pln = 0.0
    if inst.stages:
        stages_pln = 0.0
        for stage in inst.stages:
            if stage.is_excluded:
                excluded_pln += calculate_stage_cost(stage, data.suppliers, ignore_exclusions=True)
                continue
            stages_pln += calculate_stage_cost(stage, data.suppliers)
            excluded_pln += sum(
                i.quantity * i.unit_price for i in stage.custom_items if i.is_excluded
            )
    else:
        stages_pln = _legacy_installation_cost(inst)

    installation_pln = stages_pln + inst.other_installation_costs
    return (
        convert(installation_pln, Currency.PLN, target_currency, rate),
        convert(excluded_pln, Currency.PLN, target_currency, rate),
    )


# ---------------------------------------------------------------------------
# Financing
# ---------------------------------------------------------------------------

def financing_factors(terms: PaymentTerms) -> Tuple[float, float]:
    """
    Return (unpaid_ratio, interest_factor) for the payment terms.

    interest_factor = 7.5% × days beyond the free window / 365; zero when the
    final payment falls inside the window.
    """
    extra_days = max(0.0, terms.final_payment_days - FINANCING_DEFAULTS["free_payment_days"])
    if extra_days == 0:
        return 0.0, 0.0
    unpaid_ratio = 1 - terms.total_advance_percent / 100.0
    interest_factor = (
        FINANCING_DEFAULTS["annual_interest_rate"] * extra_days / FINANCING_DEFAULTS["days_per_year"]
    )
    return unpaid_ratio, interest_factor


def calculate_financing(
    base_cost: float,
    terms: PaymentTerms,
    target_margin: float,
    manual_price: Optional[float] = None,
) -> float:
    """
    Cost of capital for the unpaid share of the price until final payment.

    Manual price:   price × unpaid × interest
    Target margin:  price solved from  price = base / (1 - margin - unpaid × interest)
                    so the financing is itself covered by the margin.
    A divisor ≤ 0 (margin plus risk eats the whole price) gives zero financing.
    """
    unpaid_ratio, interest_factor = financing_factors(terms)
    if interest_factor == 0:
        return 0.0

    if manual_price is not None:
        return manual_price * unpaid_ratio * interest_factor

    divisor = 1 - target_margin / 100.0 - unpaid_ratio * interest_factor
    if divisor <= 0:
        logger.warning(
            f"Financing divisor {divisor:.4f} ≤ 0 (margin {target_margin}%), financing set to 0"
        )
        return 0.0
    price = base_cost / divisor
    return price * unpaid_ratio * interest_factor


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------

@timed
def calculate_project_costs(
    data: CalculationData,
    rate: float,
    target_currency: Currency,
    mode: CalculationMode = CalculationMode.INITIAL,
    fee_percent: float = DEFAULT_FEE_PERCENT,
    target_margin: Optional[float] = None,
    manual_price: Optional[float] = None,
) -> CostBreakdown:
    """
    Aggregate every cost category of ``data`` into ``target_currency``.

    ``target_margin`` enables the financing calculation; ``manual_price``
    (when also given) prices financing off the fixed price instead of the
    back-solved one.
    """
    is_final = mode == CalculationMode.FINAL

    suppliers, fee, excluded_suppliers = _supplier_costs(
        data, rate, target_currency, is_final, fee_percent
    )
    nameplates = convert(
        (data.nameplate_qty or 0) * NAMEPLATE_UNIT_COST_PLN, Currency.PLN, target_currency, rate
    )
    transport, excluded_transport = _transport_costs(data, rate, target_currency, is_final)
    other, excluded_other = _other_costs(data, rate, target_currency, is_final)
    installation, excluded_installation = _installation_costs(
        data, rate, target_currency, is_final
    )

    breakdown = CostBreakdown(
        suppliers=suppliers + nameplates,
        transport=transport,
        other=other,
        installation=installation,
        fee=fee,
        excluded=excluded_suppliers + excluded_transport + excluded_other + excluded_installation,
    )

    if target_margin is not None:
        breakdown.financing = calculate_financing(
            breakdown.base_cost, data.payment_terms, target_margin, manual_price
        )

    breakdown.total = breakdown.base_cost + breakdown.financing

    logger.debug(
        f"Costs [{CalculationMode(mode).value}] "
        f"{Currency(target_currency).value}: total={breakdown.total:,.2f} excluded={breakdown.excluded:,.2f}"
    )
    return breakdown

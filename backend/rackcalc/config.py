"""
Costing configuration: single source of truth for commercial constants,
approval thresholds and financing defaults.

Import from here in all engines and routes rather than hardcoding values.
"""
from __future__ import annotations


# ── Currency ───────────────────────────────────────────────────────────────────

# PLN per 1 EUR for new documents; also the approval ceiling fallback for a zero rate
DEFAULT_EXCHANGE_RATE: float = 4.3


# ── Supplier pricing ───────────────────────────────────────────────────────────

# Fee charged on top of fee-eligible (ORM) suppliers, in percent
DEFAULT_FEE_PERCENT: float = 1.6

# Fee-eligible catalog prices are booked at half of the list price
FEE_ELIGIBLE_PRICE_FACTOR: float = 0.5

# Fixed cost of one rack nameplate, domestic currency
NAMEPLATE_UNIT_COST_PLN: float = 19.0

# Prefix marking a "whole supplier" reference inside a variant
SUPPLIER_GROUP_PREFIX: str = "group_supp_"


# ── Installation defaults ──────────────────────────────────────────────────────

INSTALLATION_DEFAULTS: dict[str, float] = {
    "work_day_hours": 10.0,    # hours per installer per day
    "installers_count": 1.0,   # crew size when unset
}


# ── Financing ──────────────────────────────────────────────────────────────────

FINANCING_DEFAULTS: dict[str, float] = {
    # Payment days covered by the standard cost-of-capital assumption
    "free_payment_days": 14.0,
    # Annual interest rate used to price delayed payment
    "annual_interest_rate": 0.075,   # 7.5%
    "days_per_year": 365.0,
}


# ── Payment terms defaults ─────────────────────────────────────────────────────

PAYMENT_TERMS_DEFAULTS: dict[str, float] = {
    "advance1_percent": 30.0,
    "advance1_days": 7.0,
    "advance2_percent": 0.0,
    "advance2_days": 0.0,
    "final_payment_days": 14.0,
}


# ── Auto-approval thresholds ───────────────────────────────────────────────────

APPROVAL_THRESHOLDS: dict[str, float] = {
    # Combined advance payments must reach this share of the price
    "min_advance_percent": 50.0,
    # Price ceiling, canonical currency (EUR)
    "max_value_eur": 100_000.0,
    # Final payment must be due within this many days of invoice
    "max_final_payment_days": 14.0,
    # Minimum effective margin, percent
    "min_margin_percent": 7.0,
}

# Margin reported when a manual price of zero is set
ZERO_PRICE_MARGIN: float = -100.0

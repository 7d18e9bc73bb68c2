"""
Stage cost calculator: cost of one installation stage in PLN.

A stage combines:
  - pallet labour   (spots × price per spot)          PALLETS / BOTH
  - time labour     (item minutes → crew days × rate)  TIME / BOTH
  - equipment       (forklift + scissor lift rental)  always
  - custom items    (quantity × unit price)           always
"""
import math
from typing import Dict, List

from rackcalc.config import INSTALLATION_DEFAULTS
from rackcalc.models.calculation import InstallationStage, Supplier


def _pallet_labor(stage: InstallationStage) -> float:
    return stage.pallet_spots * stage.pallet_spot_price


def _linked_minutes(
    stage: InstallationStage, suppliers: List[Supplier], ignore_exclusions: bool
) -> float:
    """Sum quantity × minutes over every item of the suppliers linked to the stage."""
    by_id: Dict[str, Supplier] = {s.id: s for s in suppliers}
    total_minutes = 0.0
    for supplier_id in stage.linked_supplier_ids:
        supplier = by_id.get(supplier_id)
        if supplier is None:
            continue
        if not supplier.is_included and not ignore_exclusions:
            continue
        for item in supplier.items:
            if item.is_excluded and not ignore_exclusions:
                continue
            total_minutes += item.quantity * (item.time_minutes or 0.0)
    return total_minutes


def _time_labor(
    stage: InstallationStage, suppliers: List[Supplier], ignore_exclusions: bool
) -> float:
    total_hours = _linked_minutes(stage, suppliers, ignore_exclusions) / 60.0
    total_hours += stage.manual_labor_hours or 0.0

    installers = stage.installers_count or INSTALLATION_DEFAULTS["installers_count"]
    work_day = stage.work_day_hours or INSTALLATION_DEFAULTS["work_day_hours"]
    daily_capacity = work_day * installers
    days = math.ceil(total_hours / daily_capacity) if daily_capacity > 0 else 0

    return days * installers * (stage.man_day_rate or 0.0)


def equipment_cost(source) -> float:
    """Forklift + scissor lift rental; works on a stage or on legacy installation data."""
    forklift = source.forklift_daily_rate * source.forklift_days + source.forklift_transport_price
    scissor_lift = (
        source.scissor_lift_daily_rate * source.scissor_lift_days
        + source.scissor_lift_transport_price
    )
    return forklift + scissor_lift


def calculate_stage_cost(
    stage: InstallationStage,
    suppliers: List[Supplier],
    ignore_exclusions: bool = False,
) -> float:
    """
    Total cost of ``stage`` in PLN.

    With ``ignore_exclusions`` the stage is priced as if nothing were excluded;
    the aggregator uses this to report the value of an excluded stage.
    Linked supplier ids that no longer exist are skipped.
    """
    if stage.is_excluded and not ignore_exclusions:
        return 0.0

    labor = 0.0
    if stage.calc_method in ("PALLETS", "BOTH"):
        labor += _pallet_labor(stage)
    if stage.calc_method in ("TIME", "BOTH"):
        labor += _time_labor(stage, suppliers, ignore_exclusions)

    custom = sum(
        i.quantity * i.unit_price
        for i in stage.custom_items
        if ignore_exclusions or not i.is_excluded
    )

    return labor + equipment_cost(stage) + custom

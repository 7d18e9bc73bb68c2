"""Human-readable change log between two versions of a calculation document."""
from __future__ import annotations

from typing import List

from rackcalc.models.calculation import CalculationData, CalculationMode
from rackcalc.models.document import CalculationDocument

NO_RECOGNISED_CHANGES = "Minor data changes"


def _fmt(value) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _compare_suppliers(old: CalculationData, new: CalculationData, prefix: str) -> List[str]:
    changes: List[str] = []
    old_by_id = {s.id: s for s in old.suppliers}

    for new_s in new.suppliers:
        old_s = old_by_id.get(new_s.id)
        if old_s is None:
            changes.append(f"{prefix}Supplier added: {new_s.name}")
            continue

        if old_s.discount != new_s.discount:
            changes.append(
                f"{prefix}Discount of {new_s.name}: {_fmt(old_s.discount)}% -> {_fmt(new_s.discount)}%"
            )
        if old_s.extra_markup_percent != new_s.extra_markup_percent:
            changes.append(
                f"{prefix}Markup of {new_s.name}: "
                f"{_fmt(old_s.extra_markup_percent)}% -> {_fmt(new_s.extra_markup_percent)}%"
            )
        if old_s.is_included != new_s.is_included:
            verb = "included" if new_s.is_included else "excluded"
            changes.append(f"{prefix}Supplier {verb}: {new_s.name}")
        if old_s.notes != new_s.notes:
            changes.append(f"{prefix}Notes changed for {new_s.name}")

        if len(old_s.items) != len(new_s.items):
            diff = len(new_s.items) - len(old_s.items)
            verb = "added" if diff > 0 else "removed"
            changes.append(f"{prefix}Supplier {new_s.name}: {abs(diff)} item(s) {verb}")
            continue

        old_items = {i.id: i for i in old_s.items}
        for new_i in new_s.items:
            old_i = old_items.get(new_i.id)
            if old_i is None:
                continue
            label = new_i.item_description or "item"
            if old_i.quantity != new_i.quantity:
                changes.append(
                    f"{prefix}Quantity [{label}]: {_fmt(old_i.quantity)} -> {_fmt(new_i.quantity)}"
                )
            if old_i.unit_price != new_i.unit_price:
                changes.append(
                    f"{prefix}Price [{label}]: {_fmt(old_i.unit_price)} -> {_fmt(new_i.unit_price)}"
                )
            if old_i.is_excluded != new_i.is_excluded:
                verb = "Excluded" if new_i.is_excluded else "Included"
                changes.append(f"{prefix}{verb} item: {label}")

    new_ids = {s.id for s in new.suppliers}
    for old_s in old.suppliers:
        if old_s.id not in new_ids:
            changes.append(f"{prefix}Supplier removed: {old_s.name}")

    return changes


def _compare_transport(old: CalculationData, new: CalculationData, prefix: str) -> List[str]:
    if len(old.transport) != len(new.transport):
        return [f"{prefix}Transport list changed"]

    changes: List[str] = []
    old_by_id = {t.id: t for t in old.transport}
    for new_t in new.transport:
        old_t = old_by_id.get(new_t.id)
        if old_t is None:
            continue
        if old_t.trucks_count != new_t.trucks_count:
            changes.append(
                f"{prefix}Trucks: {_fmt(old_t.trucks_count)} -> {_fmt(new_t.trucks_count)}"
            )
        if old_t.price_per_truck != new_t.price_per_truck:
            changes.append(
                f"{prefix}Transport price: {_fmt(old_t.price_per_truck)} -> {_fmt(new_t.price_per_truck)}"
            )
        if old_t.currency != new_t.currency:
            changes.append(
                f"{prefix}Transport currency: {old_t.currency.value} -> {new_t.currency.value}"
            )
    return changes


def _compare_other_costs(old: CalculationData, new: CalculationData, prefix: str) -> List[str]:
    if len(old.other_costs) != len(new.other_costs):
        verb = "added" if len(new.other_costs) > len(old.other_costs) else "removed"
        return [f"{prefix}Other costs {verb}"]

    changes: List[str] = []
    old_by_id = {c.id: c for c in old.other_costs}
    for new_c in new.other_costs:
        old_c = old_by_id.get(new_c.id)
        if old_c is None:
            continue
        if old_c.price != new_c.price:
            changes.append(
                f"{prefix}Cost [{new_c.description}]: {_fmt(old_c.price)} -> {_fmt(new_c.price)}"
            )
        if old_c.description != new_c.description:
            changes.append(f"{prefix}Cost description changed: {new_c.description}")
    return changes


_STAGE_FIELDS = (
    ("pallet_spots", "Pallet spots"),
    ("pallet_spot_price", "Pallet spot rate"),
    ("installers_count", "Crew size"),
    ("work_day_hours", "Work day hours"),
    ("man_day_rate", "Man-day rate"),
    ("forklift_days", "Forklift days"),
    ("scissor_lift_days", "Scissor lift days"),
)


def _compare_installation(old: CalculationData, new: CalculationData, prefix: str) -> List[str]:
    if len(old.installation.stages) != len(new.installation.stages):
        return [f"{prefix}Number of installation stages changed"]

    changes: List[str] = []
    old_by_id = {s.id: s for s in old.installation.stages}
    for new_st in new.installation.stages:
        old_st = old_by_id.get(new_st.id)
        if old_st is None:
            continue
        for attr, label in _STAGE_FIELDS:
            before, after = getattr(old_st, attr), getattr(new_st, attr)
            if before != after:
                changes.append(f"{prefix}{label} [{new_st.name}]: {_fmt(before)} -> {_fmt(after)}")
    return changes


def _compare_data(old: CalculationData, new: CalculationData, prefix: str) -> List[str]:
    changes: List[str] = []
    if old.nameplate_qty != new.nameplate_qty:
        changes.append(
            f"{prefix}Nameplates: {_fmt(old.nameplate_qty)} -> {_fmt(new.nameplate_qty)}"
        )
    changes.extend(_compare_suppliers(old, new, prefix))
    changes.extend(_compare_transport(old, new, prefix))
    changes.extend(_compare_other_costs(old, new, prefix))
    changes.extend(_compare_installation(old, new, prefix))
    if len(old.variants) != len(new.variants):
        changes.append(f"{prefix}Variant list changed")
    return changes


def describe_changes(old: CalculationDocument, new: CalculationDocument) -> List[str]:
    """
    List what changed between two document versions, for the history log.

    Settings are always compared. A FINAL version compares final snapshot
    against final snapshot (each falling back to its initial plan), so
    switching mode alone logs nothing; those lines carry a ``[Final] `` prefix.
    """
    changes: List[str] = []

    if old.exchange_rate != new.exchange_rate:
        changes.append(f"EUR rate: {_fmt(old.exchange_rate)} -> {_fmt(new.exchange_rate)}")
    if old.target_margin != new.target_margin:
        changes.append(f"Margin: {_fmt(old.target_margin)}% -> {_fmt(new.target_margin)}%")
    if old.manual_price != new.manual_price:
        if new.manual_price is None:
            changes.append("Manual price removed (back to target margin)")
        else:
            changes.append(f"Manual price: {_fmt(new.manual_price)}")
    if old.offer_currency != new.offer_currency:
        changes.append(
            f"Offer currency: {old.offer_currency.value} -> {new.offer_currency.value}"
        )

    if new.mode == CalculationMode.FINAL:
        changes.extend(
            _compare_data(old.final or old.initial, new.final or new.initial, "[Final] ")
        )
    else:
        changes.extend(_compare_data(old.initial, new.initial, ""))

    return changes or [NO_RECOGNISED_CHANGES]

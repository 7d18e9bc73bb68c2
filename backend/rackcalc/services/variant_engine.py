"""
Variant engine: "what-if" variant hierarchy and global exclusion propagation.

Variants form a forest keyed by id (``parent_id`` pointers). Each variant is
INCLUDED, EXCLUDED or NEUTRAL and references line items, either one by one
or a whole supplier via a ``group_supp_<id>`` pseudo-id.

Every operation is copy-on-write: it returns a new CalculationData and never
touches its input. Every structural change ends with a full
``recalculate_exclusions`` pass; there is no incremental bookkeeping.

Exclusion rule, per line item:
    excluded = (any variant INCLUDED and item not in whitelist) or item in blacklist
where whitelist/blacklist are the items reachable from INCLUDED/EXCLUDED
variants. A variant reaches its own references and those of its descendants.
"""
from __future__ import annotations

import logging
import uuid
from typing import Dict, Iterable, List, Optional, Set, Tuple

from rackcalc.config import FEE_ELIGIBLE_PRICE_FACTOR, SUPPLIER_GROUP_PREFIX
from rackcalc.exceptions import VariantHierarchyError, VariantNotFoundError
from rackcalc.models.calculation import (
    CalculationData,
    Currency,
    ProjectVariant,
    VariantItem,
    VariantItemType,
    VariantStatus,
)
from rackcalc.services.currency import convert
from rackcalc.services.perf_monitor import timed
from rackcalc.services.stage_costing import calculate_stage_cost

logger = logging.getLogger("rackcalc-variants")

# (item kind, item id): ids are only unique within their kind
ItemKey = Tuple[str, str]


def supplier_group_id(supplier_id: str) -> str:
    """Pseudo-id referencing every item of a supplier."""
    return f"{SUPPLIER_GROUP_PREFIX}{supplier_id}"


# ---------------------------------------------------------------------------
# Tree helpers
# ---------------------------------------------------------------------------

def _require_variant(data: CalculationData, variant_id: str) -> ProjectVariant:
    variant = data.find_variant(variant_id)
    if variant is None:
        raise VariantNotFoundError(variant_id)
    return variant


def collect_descendant_ids(variants: List[ProjectVariant], root_id: str) -> Set[str]:
    """
    Ids of every variant below ``root_id`` (the root itself excluded).

    Walks an explicit child index rather than following parent pointers, so a
    corrupted parent chain cannot loop forever.
    """
    children: Dict[str, List[str]] = {}
    for v in variants:
        if v.parent_id:
            children.setdefault(v.parent_id, []).append(v.id)

    descendants: Set[str] = set()
    stack = [root_id]
    while stack:
        current = stack.pop()
        for child_id in children.get(current, []):
            if child_id not in descendants and child_id != root_id:
                descendants.add(child_id)
                stack.append(child_id)
    return descendants


# ---------------------------------------------------------------------------
# Exclusion propagation
# ---------------------------------------------------------------------------

def _reachable_variants(
    variants: List[ProjectVariant], seeds: Iterable[ProjectVariant]
) -> List[ProjectVariant]:
    by_id = {v.id: v for v in variants}
    reached: Dict[str, ProjectVariant] = {}
    for seed in seeds:
        reached[seed.id] = seed
        for vid in collect_descendant_ids(variants, seed.id):
            reached[vid] = by_id[vid]
    return list(reached.values())


def _expand_references(data: CalculationData, variants: List[ProjectVariant]) -> Set[ItemKey]:
    """Resolve variant references into concrete line-item keys."""
    suppliers_by_id = {s.id: s for s in data.suppliers}
    stages_by_id = {s.id: s for s in data.installation.stages}
    keys: Set[ItemKey] = set()

    for variant in variants:
        for ref in variant.items:
            if ref.type == "SUPPLIER_ITEM" and ref.id.startswith(SUPPLIER_GROUP_PREFIX):
                supplier = suppliers_by_id.get(ref.id[len(SUPPLIER_GROUP_PREFIX):])
                if supplier is not None:
                    keys.update(("SUPPLIER_ITEM", i.id) for i in supplier.items)
            elif ref.type == "STAGE":
                keys.add(("STAGE", ref.id))
                stage = stages_by_id.get(ref.id)
                if stage is not None:
                    keys.update(("STAGE_ITEM", i.id) for i in stage.custom_items)
            else:
                keys.add((ref.type, ref.id))
    return keys


def _apply_exclusions(data: CalculationData, whitelist_mode: bool, whitelist: Set[ItemKey],
                      blacklist: Set[ItemKey]) -> int:
    """Rewrite every is_excluded flag in place; return how many items ended excluded."""
    excluded_count = 0

    def decide(key: ItemKey) -> bool:
        nonlocal excluded_count
        is_excluded = (whitelist_mode and key not in whitelist) or key in blacklist
        excluded_count += is_excluded
        return is_excluded

    for supplier in data.suppliers:
        for item in supplier.items:
            item.is_excluded = decide(("SUPPLIER_ITEM", item.id))
    for item in data.transport:
        item.is_excluded = decide(("TRANSPORT", item.id))
    for item in data.other_costs:
        item.is_excluded = decide(("OTHER", item.id))
    for stage in data.installation.stages:
        stage.is_excluded = decide(("STAGE", stage.id))
        for item in stage.custom_items:
            item.is_excluded = decide(("STAGE_ITEM", item.id))

    return excluded_count


def _recalculate_in_place(data: CalculationData) -> None:
    included = [v for v in data.variants if v.status == "INCLUDED"]
    excluded = [v for v in data.variants if v.status == "EXCLUDED"]

    whitelist = _expand_references(data, _reachable_variants(data.variants, included))
    blacklist = _expand_references(data, _reachable_variants(data.variants, excluded))

    count = _apply_exclusions(data, bool(included), whitelist, blacklist)
    logger.debug(
        f"Exclusions recalculated: {len(included)} included / {len(excluded)} excluded "
        f"variants, {count} line items excluded"
    )


@timed
def recalculate_exclusions(data: CalculationData) -> CalculationData:
    """Return a copy of ``data`` with every line item's is_excluded flag recomputed."""
    result = data.model_copy(deep=True)
    _recalculate_in_place(result)
    return result


# ---------------------------------------------------------------------------
# Structural operations
# ---------------------------------------------------------------------------

def _commit(data: CalculationData) -> CalculationData:
    _recalculate_in_place(data)
    return data


def add_variant(
    data: CalculationData,
    name: str,
    parent_id: Optional[str] = None,
    variant_id: Optional[str] = None,
) -> CalculationData:
    """Append a NEUTRAL variant, optionally under ``parent_id``."""
    name = name.strip()
    if not name:
        raise ValueError("Variant name must not be empty")

    result = data.model_copy(deep=True)
    if parent_id is not None:
        _require_variant(result, parent_id)

    new_id = variant_id or uuid.uuid4().hex[:9]
    if result.find_variant(new_id) is not None:
        raise ValueError(f"Variant id {new_id} already exists")

    result.variants.append(ProjectVariant(id=new_id, name=name, parent_id=parent_id))
    logger.info(f"Variant '{name}' ({new_id}) added under {parent_id or 'root'}")
    return _commit(result)


def rename_variant(data: CalculationData, variant_id: str, name: str) -> CalculationData:
    name = name.strip()
    if not name:
        raise ValueError("Variant name must not be empty")

    result = data.model_copy(deep=True)
    _require_variant(result, variant_id).name = name
    return result


def remove_variant(data: CalculationData, variant_id: str) -> CalculationData:
    """Delete a variant together with its whole subtree."""
    result = data.model_copy(deep=True)
    _require_variant(result, variant_id)

    doomed = collect_descendant_ids(result.variants, variant_id) | {variant_id}
    result.variants = [v for v in result.variants if v.id not in doomed]
    logger.info(f"Variant {variant_id} removed with {len(doomed) - 1} descendant(s)")
    return _commit(result)


def make_child(data: CalculationData, variant_id: str, parent_id: str) -> CalculationData:
    """
    Move ``variant_id`` under ``parent_id``.

    Raises VariantHierarchyError (input untouched) when the target parent is
    the variant itself or one of its descendants.
    """
    _require_variant(data, variant_id)
    _require_variant(data, parent_id)

    subtree = collect_descendant_ids(data.variants, variant_id)
    if parent_id == variant_id or parent_id in subtree:
        logger.warning(f"Rejected re-parent of {variant_id} under {parent_id}: would create a cycle")
        raise VariantHierarchyError(variant_id, parent_id, list(subtree | {variant_id}))

    result = data.model_copy(deep=True)
    _require_variant(result, variant_id).parent_id = parent_id
    return _commit(result)


def make_root(data: CalculationData, variant_id: str) -> CalculationData:
    result = data.model_copy(deep=True)
    _require_variant(result, variant_id).parent_id = None
    return _commit(result)


def set_variant_status(
    data: CalculationData, variant_id: str, status: VariantStatus
) -> CalculationData:
    """Set a variant's status; repeating the same INCLUDED/EXCLUDED resets it to NEUTRAL."""
    result = data.model_copy(deep=True)
    variant = _require_variant(result, variant_id)
    if variant.status == status and status != "NEUTRAL":
        variant.status = "NEUTRAL"
    else:
        variant.status = status
    return _commit(result)


def solo_variant(data: CalculationData, variant_id: str) -> CalculationData:
    """Include exactly ``variant_id`` and neutralise every other variant."""
    result = data.model_copy(deep=True)
    _require_variant(result, variant_id)
    for variant in result.variants:
        variant.status = "INCLUDED" if variant.id == variant_id else "NEUTRAL"
    return _commit(result)


def add_variant_item(data: CalculationData, variant_id: str, item: VariantItem) -> CalculationData:
    """Reference a line item (or whole supplier) from a variant; duplicates are ignored."""
    result = data.model_copy(deep=True)
    variant = _require_variant(result, variant_id)
    if not any(i.id == item.id and i.type == item.type for i in variant.items):
        variant.items.append(item.model_copy())
    return _commit(result)


def remove_variant_item(
    data: CalculationData, variant_id: str, item_id: str, item_type: VariantItemType
) -> CalculationData:
    result = data.model_copy(deep=True)
    variant = _require_variant(result, variant_id)
    variant.items = [i for i in variant.items if not (i.id == item_id and i.type == item_type)]
    return _commit(result)


# ---------------------------------------------------------------------------
# Variant valuation
# ---------------------------------------------------------------------------

def _reference_value(data: CalculationData, ref: VariantItem) -> Tuple[float, Currency]:
    """Planned value of one reference in its own currency, ignoring exclusions."""
    if ref.type == "SUPPLIER_ITEM":
        for supplier in data.suppliers:
            factor = FEE_ELIGIBLE_PRICE_FACTOR if supplier.is_fee_eligible else 1.0
            adjustment = (1 - supplier.discount / 100.0) * (1 + supplier.extra_markup_percent / 100.0)
            if ref.id == supplier_group_id(supplier.id):
                raw = sum(i.quantity * i.unit_price * factor for i in supplier.items)
                return raw * adjustment, supplier.currency
            for item in supplier.items:
                if item.id == ref.id:
                    return item.quantity * item.unit_price * factor * adjustment, supplier.currency
    elif ref.type == "STAGE":
        for stage in data.installation.stages:
            if stage.id == ref.id:
                return calculate_stage_cost(stage, data.suppliers, ignore_exclusions=True), Currency.PLN
    elif ref.type == "STAGE_ITEM":
        for stage in data.installation.stages:
            for item in stage.custom_items:
                if item.id == ref.id:
                    return item.quantity * item.unit_price, Currency.PLN
    elif ref.type == "TRANSPORT":
        for item in data.transport:
            if item.id == ref.id:
                return item.total_price, item.currency
    elif ref.type == "OTHER":
        for item in data.other_costs:
            if item.id == ref.id:
                return item.price, item.currency
    return 0.0, Currency.PLN


def variant_value(
    data: CalculationData, variant_id: str, rate: float, target_currency: Currency
) -> float:
    """
    Estimated value of everything a variant reaches (own references plus
    descendants'), in ``target_currency``. Used to show what toggling the
    variant is worth before doing it.
    """
    variant = _require_variant(data, variant_id)
    total = 0.0
    for reached in _reachable_variants(data.variants, [variant]):
        for ref in reached.items:
            value, currency = _reference_value(data, ref)
            total += convert(value, currency, target_currency, rate)
    return total

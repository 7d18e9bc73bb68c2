"""
Costing & Variant API Routes

Stateless: every request carries the whole calculation, every response is
freshly computed from it. Nothing is stored server-side.

     POST /api/costing/breakdown               CostBreakdown of a calculation
     POST /api/costing/document-breakdown      CostBreakdown of a saved document
     POST /api/costing/stage-cost              cost of one installation stage
     POST /api/costing/approval                auto-approval battery
     POST /api/costing/convert                 PLN/EUR conversion
     POST /api/variants/exclusions             recompute exclusion flags
     POST /api/variants/{variant_id}/status    set or toggle variant status
     POST /api/variants/{variant_id}/solo      include only this variant
     POST /api/variants/{variant_id}/parent    re-parent, or make root
     POST /api/variants/{variant_id}/value     worth of everything a variant reaches
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from rackcalc.config import DEFAULT_FEE_PERCENT
from rackcalc.exceptions import VariantHierarchyError, VariantNotFoundError
from rackcalc.models.calculation import (
    CalculationData,
    CalculationMode,
    Currency,
    InstallationStage,
    Supplier,
    VariantStatus,
)
from rackcalc.models.document import STAGE_LABELS, CalculationDocument
from rackcalc.services.approval_engine import evaluate_auto_approval, resolve_submission_stage
from rackcalc.services.costing_engine import calculate_project_costs
from rackcalc.services.currency import convert
from rackcalc.services.stage_costing import calculate_stage_cost
from rackcalc.services.variant_engine import (
    make_child,
    make_root,
    recalculate_exclusions,
    set_variant_status,
    solo_variant,
    variant_value,
)

costing_router = APIRouter(prefix="/api/costing", tags=["Costing"])
variants_router = APIRouter(prefix="/api/variants", tags=["Variants"])
logger = logging.getLogger("rackcalc-api.routes")


# ── Pydantic Models ─────────────────────────────────────────────────────────

class BreakdownRequest(BaseModel):
    data: CalculationData
    rate: float = Field(gt=0)
    target_currency: Currency = Currency.PLN
    mode: CalculationMode = CalculationMode.INITIAL
    fee_percent: float = DEFAULT_FEE_PERCENT
    target_margin: Optional[float] = None
    manual_price: Optional[float] = None


class StageCostRequest(BaseModel):
    stage: InstallationStage
    suppliers: List[Supplier] = Field(default_factory=list)
    ignore_exclusions: bool = False


class ApprovalRequest(BaseModel):
    data: CalculationData
    rate: float = Field(gt=0)
    offer_currency: Currency = Currency.PLN
    target_margin: float = 0.0
    manual_price: Optional[float] = None
    fee_percent: float = DEFAULT_FEE_PERCENT


class ConvertRequest(BaseModel):
    amount: float
    from_currency: Currency
    to_currency: Currency
    rate: float = Field(gt=0)


class StatusRequest(BaseModel):
    data: CalculationData
    status: VariantStatus


class ParentRequest(BaseModel):
    data: CalculationData
    parent_id: Optional[str] = None     # None moves the variant to the root


class VariantValueRequest(BaseModel):
    data: CalculationData
    rate: float = Field(gt=0)
    target_currency: Currency = Currency.PLN


# ── Helpers ─────────────────────────────────────────────────────────────────

def _variant_call(fn, *args) -> CalculationData:
    """Run a variant operation, translating domain errors to HTTP status codes."""
    try:
        return fn(*args)
    except VariantNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except VariantHierarchyError as e:
        raise HTTPException(status_code=409, detail=str(e))


# ── Costing ─────────────────────────────────────────────────────────────────

@costing_router.post("/breakdown")
async def breakdown(req: BreakdownRequest):
    result = calculate_project_costs(
        req.data,
        req.rate,
        req.target_currency,
        req.mode,
        req.fee_percent,
        req.target_margin,
        req.manual_price,
    )
    return {**result.to_dict(), "currency": req.target_currency.value}


@costing_router.post("/document-breakdown")
async def document_breakdown(doc: CalculationDocument):
    """Breakdown reproduced from a saved document and its own settings."""
    if doc.exchange_rate <= 0:
        raise HTTPException(status_code=422, detail="exchange_rate must be positive")
    result = doc.compute_breakdown()
    return {**result.to_dict(), "currency": doc.offer_currency.value, "mode": doc.mode.value}


@costing_router.post("/stage-cost")
async def stage_cost(req: StageCostRequest):
    cost = calculate_stage_cost(req.stage, req.suppliers, req.ignore_exclusions)
    return {"stage_id": req.stage.id, "cost_pln": cost}


@costing_router.post("/approval")
async def approval(req: ApprovalRequest):
    result = evaluate_auto_approval(
        req.data,
        req.rate,
        req.offer_currency,
        req.target_margin,
        req.manual_price,
        req.fee_percent,
    )
    stage = resolve_submission_stage(result)
    return {
        "approved": result.approved,
        "reasons": result.reasons,
        "final_price": result.final_price,
        "effective_margin": result.effective_margin,
        "breakdown": result.breakdown.to_dict() if result.breakdown else None,
        "submission_stage": stage.value,
        "submission_stage_label": STAGE_LABELS[stage],
    }


@costing_router.post("/convert")
async def convert_amount(req: ConvertRequest):
    converted = convert(req.amount, req.from_currency, req.to_currency, req.rate)
    return {"amount": converted, "currency": req.to_currency.value}


# ── Variants ────────────────────────────────────────────────────────────────

@variants_router.post("/exclusions", response_model=CalculationData)
async def exclusions(data: CalculationData):
    return recalculate_exclusions(data)


@variants_router.post("/{variant_id}/status", response_model=CalculationData)
async def variant_status(variant_id: str, req: StatusRequest):
    return _variant_call(set_variant_status, req.data, variant_id, req.status)


@variants_router.post("/{variant_id}/solo", response_model=CalculationData)
async def variant_solo(variant_id: str, data: CalculationData):
    return _variant_call(solo_variant, data, variant_id)


@variants_router.post("/{variant_id}/parent", response_model=CalculationData)
async def variant_parent(variant_id: str, req: ParentRequest):
    if req.parent_id is None:
        return _variant_call(make_root, req.data, variant_id)
    return _variant_call(make_child, req.data, variant_id, req.parent_id)


@variants_router.post("/{variant_id}/value")
async def variant_worth(variant_id: str, req: VariantValueRequest):
    try:
        value = variant_value(req.data, variant_id, req.rate, req.target_currency)
    except VariantNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"variant_id": variant_id, "value": value, "currency": req.target_currency.value}

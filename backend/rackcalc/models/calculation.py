"""
Calculation aggregate: suppliers, transport, other costs, installation,
variants and payment terms for one rack installation project.

Every engine function receives a full ``CalculationData`` and returns fresh
output. ``is_excluded`` flags are written only by the variant engine.
"""
from __future__ import annotations

from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, model_validator

from rackcalc.config import INSTALLATION_DEFAULTS, PAYMENT_TERMS_DEFAULTS


class Currency(str, Enum):
    PLN = "PLN"   # domestic
    EUR = "EUR"   # foreign


class CalculationMode(str, Enum):
    INITIAL = "INITIAL"
    FINAL = "FINAL"


InstallationCalcMethod = Literal["PALLETS", "TIME", "BOTH"]
VariantStatus = Literal["NEUTRAL", "INCLUDED", "EXCLUDED"]
VariantItemType = Literal["SUPPLIER_ITEM", "TRANSPORT", "OTHER", "STAGE", "STAGE_ITEM"]


# ── Suppliers ───────────────────────────────────────────────────────────────

class SupplierItem(BaseModel):
    id: str
    item_description: str = ""
    component_number: str = ""
    quantity: float = 0.0
    weight: float = 0.0
    unit_price: float = Field(0.0, description="List price; halved for fee-eligible suppliers")
    time_minutes: Optional[float] = Field(None, description="Installation minutes per unit")
    is_excluded: bool = False


class Supplier(BaseModel):
    id: str
    name: str = ""
    custom_tab_name: Optional[str] = None
    currency: Currency = Currency.PLN
    discount: float = Field(0.0, description="Supplier discount, percent")
    extra_markup_percent: float = Field(0.0, description="Markup (+) or markdown (-), percent")
    is_fee_eligible: bool = False
    is_included: bool = True
    items: List[SupplierItem] = Field(default_factory=list)
    final_cost_override: Optional[float] = None
    final_vendor_name: Optional[str] = None
    notes: str = ""


# ── Transport & other costs ─────────────────────────────────────────────────

class TransportItem(BaseModel):
    id: str
    name: Optional[str] = None
    supplier_id: Optional[str] = None
    linked_supplier_ids: List[str] = Field(default_factory=list)
    trucks_count: float = 0.0
    price_per_truck: float = 0.0
    total_price: float = 0.0
    currency: Currency = Currency.PLN
    is_excluded: bool = False
    final_cost_override: Optional[float] = None
    final_currency: Optional[Currency] = None
    final_vendor_name: Optional[str] = None


class OtherCostItem(BaseModel):
    id: str
    description: str = ""
    price: float = 0.0
    currency: Currency = Currency.PLN
    is_excluded: bool = False
    final_cost_override: Optional[float] = None
    final_currency: Optional[Currency] = None
    final_vendor_name: Optional[str] = None


# ── Installation ────────────────────────────────────────────────────────────

class CustomInstallationItem(BaseModel):
    id: str
    description: str = ""
    quantity: float = 0.0
    unit_price: float = 0.0
    is_excluded: bool = False


class FinalInstallationItem(BaseModel):
    id: str
    description: str = ""
    price: float = 0.0
    currency: Currency = Currency.PLN
    vendor_name: str = ""
    category: Literal["LABOR", "RENTAL"] = "LABOR"


class InstallationStage(BaseModel):
    id: str
    name: str = ""
    linked_supplier_ids: List[str] = Field(default_factory=list)
    calc_method: InstallationCalcMethod = "PALLETS"

    # Pallet method
    pallet_spots: float = 0.0
    pallet_spot_price: float = 0.0

    # Time method
    work_day_hours: float = INSTALLATION_DEFAULTS["work_day_hours"]
    installers_count: float = INSTALLATION_DEFAULTS["installers_count"]
    man_day_rate: float = 0.0
    manual_labor_hours: float = 0.0

    # Equipment rental, stage scoped
    forklift_daily_rate: float = 0.0
    forklift_days: float = 0.0
    forklift_transport_price: float = 0.0
    scissor_lift_daily_rate: float = 0.0
    scissor_lift_days: float = 0.0
    scissor_lift_transport_price: float = 0.0

    custom_items: List[CustomInstallationItem] = Field(default_factory=list)
    is_excluded: bool = False


class InstallationData(BaseModel):
    stages: List[InstallationStage] = Field(default_factory=list)
    other_installation_costs: float = 0.0

    final_cost_override: Optional[float] = Field(None, description="Domestic currency")
    final_installation_costs: List[FinalInstallationItem] = Field(default_factory=list)

    # Legacy flat structure, used only for records without stages
    calc_method: InstallationCalcMethod = "PALLETS"
    pallet_spots: float = 0.0
    pallet_spot_price: float = 0.0
    forklift_daily_rate: float = 0.0
    forklift_days: float = 0.0
    forklift_transport_price: float = 0.0
    scissor_lift_daily_rate: float = 0.0
    scissor_lift_days: float = 0.0
    scissor_lift_transport_price: float = 0.0
    custom_items: List[CustomInstallationItem] = Field(default_factory=list)


# ── Variants ────────────────────────────────────────────────────────────────

class VariantItem(BaseModel):
    id: str
    type: VariantItemType
    original_description: Optional[str] = None


class ProjectVariant(BaseModel):
    id: str
    name: str
    parent_id: Optional[str] = None
    status: VariantStatus = "NEUTRAL"
    items: List[VariantItem] = Field(default_factory=list)


# ── Payment terms ───────────────────────────────────────────────────────────

class PaymentTerms(BaseModel):
    advance1_percent: float = Field(PAYMENT_TERMS_DEFAULTS["advance1_percent"], ge=0)
    advance1_days: int = int(PAYMENT_TERMS_DEFAULTS["advance1_days"])
    advance2_percent: float = Field(PAYMENT_TERMS_DEFAULTS["advance2_percent"], ge=0)
    advance2_days: int = int(PAYMENT_TERMS_DEFAULTS["advance2_days"])
    final_payment_days: int = Field(int(PAYMENT_TERMS_DEFAULTS["final_payment_days"]), ge=0)

    @model_validator(mode="after")
    def _advances_within_price(self) -> "PaymentTerms":
        if self.advance1_percent + self.advance2_percent > 100:
            raise ValueError(
                f"advance payments sum to {self.advance1_percent + self.advance2_percent}% (max 100%)"
            )
        return self

    @property
    def total_advance_percent(self) -> float:
        return self.advance1_percent + self.advance2_percent


# ── Aggregate ───────────────────────────────────────────────────────────────

class CalculationData(BaseModel):
    """The whole cost model of one project snapshot (initial or final)."""

    suppliers: List[Supplier] = Field(default_factory=list)
    transport: List[TransportItem] = Field(default_factory=list)
    other_costs: List[OtherCostItem] = Field(default_factory=list)
    installation: InstallationData = Field(default_factory=InstallationData)
    nameplate_qty: float = 0.0
    variants: List[ProjectVariant] = Field(default_factory=list)
    payment_terms: PaymentTerms = Field(default_factory=PaymentTerms)

    def find_variant(self, variant_id: str) -> Optional[ProjectVariant]:
        for variant in self.variants:
            if variant.id == variant_id:
                return variant
        return None

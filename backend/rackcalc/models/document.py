"""
Calculation document: the persisted form of a project calculation.

Storage collaborators save and load this document as JSON; it carries both
snapshots plus every setting needed to reproduce the breakdown exactly.
"""
from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from rackcalc.config import DEFAULT_EXCHANGE_RATE, DEFAULT_FEE_PERCENT
from rackcalc.models.calculation import CalculationData, CalculationMode, Currency


class ProjectStage(str, Enum):
    DRAFT = "DRAFT"
    PENDING_APPROVAL = "PENDING_APPROVAL"
    APPROVED = "APPROVED"
    OPENING = "OPENING"
    FINAL = "FINAL"
    ARCHIVED = "ARCHIVED"


STAGE_LABELS: dict[ProjectStage, str] = {
    ProjectStage.DRAFT: "Draft",
    ProjectStage.PENDING_APPROVAL: "Awaiting approval",
    ProjectStage.APPROVED: "Approved",
    ProjectStage.OPENING: "In progress",
    ProjectStage.FINAL: "Closed",
    ProjectStage.ARCHIVED: "Archived",
}


class CalculationDocument(BaseModel):
    """Initial planning snapshot, optional as-built snapshot and shared settings."""

    version: str = "1"
    stage: ProjectStage = ProjectStage.DRAFT
    mode: CalculationMode = CalculationMode.INITIAL

    initial: CalculationData = Field(default_factory=CalculationData)
    final: Optional[CalculationData] = None

    exchange_rate: float = DEFAULT_EXCHANGE_RATE
    offer_currency: Currency = Currency.PLN
    fee_percent: float = DEFAULT_FEE_PERCENT
    target_margin: float = 0.0
    manual_price: Optional[float] = None

    def active_data(self) -> CalculationData:
        """Snapshot matching the current mode; FINAL falls back to the initial plan."""
        if self.mode == CalculationMode.FINAL and self.final is not None:
            return self.final
        return self.initial

    def compute_breakdown(self):
        """Reproduce the CostBreakdown of the active snapshot from this document alone."""
        from rackcalc.services.costing_engine import calculate_project_costs

        return calculate_project_costs(
            self.active_data(),
            self.exchange_rate,
            self.offer_currency,
            self.mode,
            self.fee_percent,
            self.target_margin,
            self.manual_price,
        )

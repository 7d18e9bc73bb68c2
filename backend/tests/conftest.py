"""
conftest.py: Shared pytest fixtures for the rackcalc test suite.

No database or external service fixtures are defined here. Every engine is a
pure function over a ``CalculationData`` aggregate, so the fixtures only
build aggregates.

Import-path bootstrapping:
    The ``backend/`` directory is inserted into sys.path so that all
    ``rackcalc.*`` imports resolve correctly regardless of where pytest is invoked.
"""

import sys
import os
import pytest

# ---------------------------------------------------------------------------
# Ensure ``backend/`` is on the import path before any rackcalc imports occur.
# ---------------------------------------------------------------------------
_BACKEND_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _BACKEND_DIR not in sys.path:
    sys.path.insert(0, _BACKEND_DIR)

from rackcalc.models.calculation import (  # noqa: E402
    CalculationData,
    CustomInstallationItem,
    InstallationData,
    InstallationStage,
    OtherCostItem,
    PaymentTerms,
    ProjectVariant,
    Supplier,
    SupplierItem,
    TransportItem,
    VariantItem,
)
from rackcalc.services.perf_monitor import tracker  # noqa: E402


RATE = 4.3


def make_supplier(supplier_id="s1", n_items=10, unit_price=100.0, **kwargs) -> Supplier:
    """Supplier with ``n_items`` single-quantity items ``<supplier_id>-i<n>``."""
    items = [
        SupplierItem(id=f"{supplier_id}-i{n}", item_description=f"Beam {n}", quantity=1, unit_price=unit_price)
        for n in range(n_items)
    ]
    return Supplier(id=supplier_id, name=kwargs.pop("name", f"Supplier {supplier_id}"), items=items, **kwargs)


@pytest.fixture(autouse=True)
def _reset_perf_tracker():
    """Each test starts from an empty PerformanceTracker."""
    tracker.reset()
    yield
    tracker.reset()


# ---------------------------------------------------------------------------
# Aggregate fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def scenario_a():
    """
    One fee-ineligible PLN supplier, 10 items × 100 PLN, nothing else.
    Total in PLN = 10 × 100 = 1000.
    """
    return CalculationData(suppliers=[make_supplier()])


@pytest.fixture
def scenario_b():
    """
    Same as scenario_a but fee-eligible.
    Suppliers = 10 × (100 × 0.5) = 500; fee = 1.6% × 500 = 8; total = 508.
    """
    return CalculationData(suppliers=[make_supplier(is_fee_eligible=True)])


@pytest.fixture
def full_project():
    """
    Two suppliers, transport, other costs, one installation stage and a
    three-level variant tree:

        root (v-root) ── child (v-child) ── grandchild (v-grand)
        loose (v-loose)

    Values (PLN, rate 4.3):
      s1: 3 items × 100 PLN                       = 300
      s2: 2 items × 10 EUR, 10% discount          = 18 EUR = 77.4 PLN
      t1: 200 PLN linked to s1
      o1: 50 PLN
      st1: 4 spots × 25 PLN + custom 1 × 40 PLN   = 140
    """
    s1 = make_supplier("s1", n_items=3)
    s2 = make_supplier("s2", n_items=2, unit_price=10.0, currency="EUR", discount=10.0)
    return CalculationData(
        suppliers=[s1, s2],
        transport=[TransportItem(id="t1", supplier_id="s1", total_price=200.0)],
        other_costs=[OtherCostItem(id="o1", description="Permits", price=50.0)],
        installation=InstallationData(
            stages=[
                InstallationStage(
                    id="st1",
                    name="Hall A",
                    pallet_spots=4,
                    pallet_spot_price=25.0,
                    custom_items=[CustomInstallationItem(id="c1", description="Anchors", quantity=1, unit_price=40.0)],
                )
            ]
        ),
        variants=[
            ProjectVariant(id="v-root", name="Root", items=[VariantItem(id="s1-i0", type="SUPPLIER_ITEM")]),
            ProjectVariant(
                id="v-child", name="Child", parent_id="v-root",
                items=[VariantItem(id="t1", type="TRANSPORT")],
            ),
            ProjectVariant(
                id="v-grand", name="Grandchild", parent_id="v-child",
                items=[VariantItem(id="st1", type="STAGE")],
            ),
            ProjectVariant(
                id="v-loose", name="Loose", items=[VariantItem(id="group_supp_s2", type="SUPPLIER_ITEM")],
            ),
        ],
        payment_terms=PaymentTerms(advance1_percent=50, final_payment_days=14),
    )

"""
test_diff_engine.py: History log lines produced by describe_changes.
"""

from conftest import make_supplier
from rackcalc.models.calculation import (
    CalculationData,
    CalculationMode,
    Currency,
    InstallationData,
    InstallationStage,
    OtherCostItem,
    TransportItem,
)
from rackcalc.models.document import CalculationDocument
from rackcalc.services.diff_engine import describe_changes


def document(**kwargs) -> CalculationDocument:
    data = CalculationData(
        suppliers=[make_supplier("s1", n_items=2, name="Mecalux")],
        transport=[TransportItem(id="t1", trucks_count=1, price_per_truck=900, total_price=900)],
        other_costs=[OtherCostItem(id="o1", description="Permits", price=50)],
        installation=InstallationData(stages=[InstallationStage(id="st1", name="Hall A", pallet_spots=10)]),
    )
    return CalculationDocument(initial=data, **kwargs)


class TestSettings:

    def test_no_change(self):
        assert describe_changes(document(), document()) == ["Minor data changes"]

    def test_rate_and_margin(self):
        old, new = document(), document(exchange_rate=4.5, target_margin=12)
        assert describe_changes(old, new) == ["EUR rate: 4.3 -> 4.5", "Margin: 0% -> 12%"]

    def test_manual_price_set_and_removed(self):
        priced = document(manual_price=15000)
        assert describe_changes(document(), priced) == ["Manual price: 15000"]
        assert describe_changes(priced, document()) == ["Manual price removed (back to target margin)"]

    def test_offer_currency(self):
        assert describe_changes(document(), document(offer_currency=Currency.EUR)) == [
            "Offer currency: PLN -> EUR"
        ]


class TestSnapshotData:

    def test_supplier_fields(self):
        old, new = document(), document()
        supplier = new.initial.suppliers[0]
        supplier.discount = 5
        supplier.items[0].quantity = 3
        supplier.items[1].is_excluded = True
        assert describe_changes(old, new) == [
            "Discount of Mecalux: 0% -> 5%",
            "Quantity [Beam 0]: 1 -> 3",
            "Excluded item: Beam 1",
        ]

    def test_supplier_added_and_removed(self):
        old, new = document(), document()
        new.initial.suppliers = [make_supplier("s2", name="Stow")]
        assert describe_changes(old, new) == ["Supplier added: Stow", "Supplier removed: Mecalux"]

    def test_item_count_change(self):
        old, new = document(), document()
        new.initial.suppliers[0].items.pop()
        assert describe_changes(old, new) == ["Supplier Mecalux: 1 item(s) removed"]

    def test_transport_other_and_stage(self):
        old, new = document(), document()
        new.initial.transport[0].trucks_count = 2
        new.initial.other_costs[0].price = 75
        new.initial.installation.stages[0].pallet_spots = 12
        assert describe_changes(old, new) == [
            "Trucks: 1 -> 2",
            "Cost [Permits]: 50 -> 75",
            "Pallet spots [Hall A]: 10 -> 12",
        ]

    def test_final_mode_lines_prefixed(self):
        old = document(mode=CalculationMode.FINAL)
        new = document(mode=CalculationMode.FINAL)
        old.final = old.initial.model_copy(deep=True)
        new.final = new.initial.model_copy(deep=True)
        new.final.nameplate_qty = 4
        assert describe_changes(old, new) == ["[Final] Nameplates: 0 -> 4"]

    def test_switching_to_final_mode_alone_logs_nothing(self):
        """Planned 100 vs as-built 120 is not a change between the two versions."""
        old = document()
        old.final = old.initial.model_copy(deep=True)
        for item in old.final.suppliers[0].items:
            item.unit_price = 120
        new = old.model_copy(deep=True)
        new.mode = CalculationMode.FINAL
        assert describe_changes(old, new) == ["Minor data changes"]

    def test_first_final_edit_compared_against_final_snapshot(self):
        old = document()
        old.final = old.initial.model_copy(deep=True)
        new = old.model_copy(deep=True)
        new.mode = CalculationMode.FINAL
        new.final.other_costs[0].price = 80
        assert describe_changes(old, new) == ["[Final] Cost [Permits]: 50 -> 80"]

# tests/services/test_kit_service.py
import pytest

from tests.conftest import make_kit, make_material, make_pricing, make_supplier
from tradedesk.core.exceptions import EntityNotFoundException
from tradedesk.services.kit_service import (
    KitService,
    build_kit_line_item,
    build_scoping_line_item,
    calculate_estimate_totals,
    calculate_unit_cost,
)


def test_unit_cost_applies_waste_then_markup():
    assert calculate_unit_cost(100, 10, 20) == 132.0


def test_unit_cost_without_factors_is_base_cost():
    assert calculate_unit_cost(12.5) == 12.5
    assert calculate_unit_cost(40, None, None) == 40.0


def test_kit_line_without_pricing_or_material():
    line = build_kit_line_item({"material_id": "mat-1", "waste_factor_percentage": 10}, None)

    assert line == {
        "description": "Unknown Material",
        "quantity": 1,
        "unit_cost": 0.0,
        "total": 0.0,
        "material_id": "mat-1",
    }


def test_kit_line_uses_max_price_and_supplier():
    pricing = {"max_price": 20, "min_price": 10, "supplier_id": "sup-1"}
    kit_item = {
        "material_id": "mat-1",
        "quantity": 3,
        "waste_factor_percentage": 10,
        "default_markup_percentage": 50,
    }

    line = build_kit_line_item(kit_item, "Joint Compound", pricing)

    assert line["description"] == "Joint Compound"
    assert line["unit_cost"] == 33.0
    assert line["total"] == 99.0
    assert line["supplier_id"] == "sup-1"


def test_scoping_line_is_priced_at_midpoint():
    material = {"id": "mat-1", "item_name": "Drywall Sheet"}
    line = build_scoping_line_item(material, {"min_price": 10, "max_price": 15, "supplier_id": "sup-1"})

    assert line["unit_cost"] == 12.5
    assert line["quantity"] == 1
    assert line["supplier_id"] == "sup-1"
    assert build_scoping_line_item(material)["unit_cost"] == 0.0


def test_estimate_totals_include_tax():
    totals = calculate_estimate_totals(
        [
            {"description": "Drywall Sheet", "quantity": 8, "unit_cost": 12.5},
            {"description": "Labor", "quantity": 6, "unit_cost": 45, "total": 1},
            {"description": "Bad line", "quantity": "two", "unit_cost": 5},
        ],
        tax_rate=8,
    )

    assert [line["total"] for line in totals["items"]] == [100.0, 270.0, 0.0]
    assert totals["subtotal"] == 370.0
    assert totals["tax_amount"] == 29.6
    assert totals["total_amount"] == 399.6


def test_expand_kit_prefers_pricing_with_supplier(db_session):
    supplier = make_supplier(db_session)
    compound = make_material(db_session, item_name="Joint Compound")
    tape = make_material(db_session, item_name="Drywall Tape")
    make_pricing(db_session, compound.id, supplier_id=None, max_price=99)
    make_pricing(db_session, compound.id, supplier_id=supplier.id, max_price=18)
    kit = make_kit(
        db_session,
        [
            {"material_id": compound.id, "quantity": 2, "default_markup_percentage": 50},
            {"material_id": tape.id},
            {"material_id": "retired-material", "quantity": 4},
        ],
    )

    lines = KitService(db_session).expand_kit(kit.id)

    assert [line["description"] for line in lines] == [
        "Joint Compound",
        "Drywall Tape",
        "Unknown Material",
    ]
    assert lines[0]["unit_cost"] == 27.0
    assert lines[0]["total"] == 54.0
    assert lines[0]["supplier_id"] == supplier.id
    assert lines[1]["unit_cost"] == 0.0
    assert lines[1]["quantity"] == 1
    assert lines[2]["quantity"] == 4


def test_expand_unknown_kit_raises_not_found(db_session):
    with pytest.raises(EntityNotFoundException):
        KitService(db_session).expand_kit("no-such-kit")


def test_list_kits(db_session):
    make_kit(db_session, [], kit_name="Empty Kit")

    kits = KitService(db_session).list_kits()

    assert [kit.kit_name for kit in kits] == ["Empty Kit"]

# tests/services/test_estimate_job_services.py
import pytest

from tests.conftest import make_estimate, make_kit, make_material, make_pricing, make_supplier
from tradedesk.core.events import ChangeOrderAdded
from tradedesk.core.exceptions import (
    EntityNotFoundException,
    InvalidStatusTransitionException,
    ValidationException,
)
from tradedesk.db.models import EstimateStatus, Job
from tradedesk.services.conversion_service import ConversionService
from tradedesk.services.estimate_service import EstimateService
from tradedesk.services.job_service import JobService


def test_create_estimate_prices_items(db_session):
    service = EstimateService(db_session)

    estimate = service.create_estimate(
        {
            "title": "Deck Repair",
            "tax_rate": 10,
            "items": [
                {"description": "Decking Board", "quantity": 12, "unit_cost": 8.25},
                {"description": "Labor", "quantity": 4, "unit_cost": 50},
            ],
        },
        performed_by="user-42",
    )

    assert estimate.status == EstimateStatus.DRAFT
    assert [line["total"] for line in estimate.items] == [99.0, 200.0]
    assert estimate.total_amount == 328.9


def test_estimate_cannot_be_created_as_converted(db_session):
    with pytest.raises(InvalidStatusTransitionException):
        EstimateService(db_session).create_estimate(
            {"title": "Shortcut", "status": "converted", "items": []}
        )


def test_update_estimate_recalculates_total(db_session):
    service = EstimateService(db_session)
    estimate = service.create_estimate(
        {"title": "Deck Repair", "items": [{"description": "Labor", "quantity": 2, "unit_cost": 50}]}
    )

    updated = service.update_estimate(estimate.id, {"tax_rate": 5, "status": "sent"})

    assert updated.status == EstimateStatus.SENT
    assert updated.total_amount == 105.0


def test_update_cannot_mark_converted(db_session):
    service = EstimateService(db_session)
    estimate = service.create_estimate({"title": "Deck Repair", "items": []})

    with pytest.raises(InvalidStatusTransitionException):
        service.update_estimate(estimate.id, {"status": EstimateStatus.CONVERTED})


def test_converted_estimate_is_read_only(db_session, event_bus):
    estimate = make_estimate(db_session, [{"description": "Labor", "quantity": 1, "unit_cost": 50}])
    ConversionService(db_session, event_bus=event_bus).convert_to_job(estimate.id)

    service = EstimateService(db_session)
    with pytest.raises(InvalidStatusTransitionException):
        service.update_estimate(estimate.id, {"title": "Renamed"})


def test_update_unknown_estimate_raises_not_found(db_session):
    with pytest.raises(EntityNotFoundException):
        EstimateService(db_session).update_estimate("no-such-estimate", {"title": "x"})


def test_add_kit_appends_priced_lines(db_session):
    supplier = make_supplier(db_session)
    material = make_material(db_session, item_name="Joint Compound")
    make_pricing(db_session, material.id, supplier_id=supplier.id, max_price=20)
    kit = make_kit(db_session, [{"material_id": material.id, "quantity": 2}])

    service = EstimateService(db_session)
    estimate = service.create_estimate(
        {"title": "Patch", "items": [{"description": "Labor", "quantity": 1, "unit_cost": 60}]}
    )

    updated = service.add_kit(estimate.id, kit.id)

    assert [line["description"] for line in updated.items] == ["Labor", "Joint Compound"]
    assert updated.items[1]["supplier_id"] == supplier.id
    assert updated.total_amount == 100.0


def test_add_scoping_item_uses_chosen_supplier_range(db_session):
    preferred = make_supplier(db_session, store_name="Lumber Depot")
    other = make_supplier(db_session, store_name="Corner Hardware")
    material = make_material(db_session, item_name="Joint Compound")
    make_pricing(db_session, material.id, supplier_id=other.id, min_price=30, max_price=40)
    make_pricing(db_session, material.id, supplier_id=preferred.id, min_price=10, max_price=15)

    service = EstimateService(db_session)
    estimate = service.create_estimate({"title": "Patch", "items": []})

    updated = service.add_scoping_item(estimate.id, material.id, preferred.id)

    assert updated.items == [
        {
            "description": "Joint Compound",
            "quantity": 1,
            "unit_cost": 12.5,
            "total": 12.5,
            "material_id": material.id,
            "supplier_id": preferred.id,
        }
    ]
    assert updated.total_amount == 12.5


def test_add_scoping_item_without_pricing_costs_nothing(db_session):
    supplier = make_supplier(db_session)
    material = make_material(db_session, item_name="Corner Bead")

    service = EstimateService(db_session)
    estimate = service.create_estimate({"title": "Patch", "items": []})

    updated = service.add_scoping_item(estimate.id, material.id, supplier.id)

    assert updated.items[0]["unit_cost"] == 0
    assert updated.items[0]["supplier_id"] == supplier.id


def test_add_scoping_item_with_unknown_material(db_session):
    service = EstimateService(db_session)
    estimate = service.create_estimate({"title": "Patch", "items": []})

    with pytest.raises(EntityNotFoundException):
        service.add_scoping_item(estimate.id, "no-such-material")


def test_list_estimates_by_status(db_session):
    make_estimate(db_session, [], title="Approved one")
    make_estimate(db_session, [], title="Draft one", status=EstimateStatus.DRAFT)

    drafts = EstimateService(db_session).list_estimates(status="draft")

    assert [e.title for e in drafts] == ["Draft one"]


def test_change_order_extends_material_list_and_budget(db_session, event_bus):
    job = Job(title="Deck Repair", budget=100, material_list=[{"description": "Labor", "total": 100}])
    db_session.add(job)
    db_session.commit()

    updated = JobService(db_session, event_bus=event_bus).add_change_order(
        job.id, {"description": "Extra joists", "quantity": 2, "unit_cost": 15.5}
    )

    assert updated.budget == 131.0
    assert updated.material_list[-1] == {
        "description": "Extra joists",
        "quantity": 2.0,
        "unit_cost": 15.5,
        "total": 31.0,
        "supplier_name": "Additional Order",
        "change_order": True,
    }
    events = [e for e in event_bus.published if isinstance(e, ChangeOrderAdded)]
    assert events[0].new_budget == 131.0


@pytest.mark.parametrize(
    "data",
    [
        {"description": "  ", "quantity": 1, "unit_cost": 5},
        {"description": "Joists", "quantity": -1, "unit_cost": 5},
        {"description": "Joists", "quantity": 1, "unit_cost": -5},
    ],
)
def test_invalid_change_order_is_rejected(db_session, data):
    job = Job(title="Deck Repair", budget=100)
    db_session.add(job)
    db_session.commit()

    with pytest.raises(ValidationException):
        JobService(db_session).add_change_order(job.id, data)


def test_change_order_on_unknown_job(db_session):
    with pytest.raises(EntityNotFoundException):
        JobService(db_session).add_change_order("no-such-job", {"description": "x"})

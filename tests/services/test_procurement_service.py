# tests/services/test_procurement_service.py
import pytest

from tests.conftest import make_estimate, make_item, make_supplier
from tradedesk.core.exceptions import BusinessRuleException, EntityNotFoundException
from tradedesk.db.models import EstimateStatus
from tradedesk.services.procurement_service import ProcurementService, group_by_supplier


def test_group_by_supplier_combines_estimates():
    estimates = [
        {
            "id": "est-1",
            "title": "Kitchen Remodel",
            "client_profile_id": "client-1",
            "items": [
                {"description": "Drywall Sheet", "total": 100, "supplier_id": "sup-1", "supplier_name": "Lumber Depot"},
                {"description": "Labor", "total": 270},
            ],
        },
        {
            "id": "est-2",
            "title": "Bathroom Patch",
            "client_profile_id": "client-2",
            "items": [
                {"description": "Drywall Tape", "total": 12.5, "supplier_id": "sup-1"},
                {"description": "Grout", "total": "call for price", "supplier_id": "sup-2"},
            ],
        },
    ]

    groups = group_by_supplier(estimates)

    assert [g["supplier_id"] for g in groups] == ["sup-1", "unassigned", "sup-2"]
    lumber = groups[0]
    assert lumber["supplier_name"] == "Lumber Depot"
    assert lumber["item_count"] == 2
    assert lumber["total_cost"] == 112.5
    assert [e["estimate_id"] for e in lumber["estimates"]] == ["est-1", "est-2"]
    assert [e["subtotal"] for e in lumber["estimates"]] == [100.0, 12.5]
    assert lumber["items"][1]["estimate_title"] == "Bathroom Patch"
    assert lumber["items"][1]["client_profile_id"] == "client-2"

    assert groups[1]["supplier_name"] == "Unknown Supplier"
    assert groups[1]["total_cost"] == 270.0
    assert groups[2]["total_cost"] == 0.0


def test_group_by_supplier_with_no_estimates():
    assert group_by_supplier([]) == []


def test_summarize_uses_approved_estimates_and_supplier_details(db_session):
    supplier = make_supplier(db_session, store_name="Lumber Depot", phone="555-0100", address="1 Mill Rd")
    make_estimate(db_session, [{"description": "Drywall Sheet", "total": 100, "supplier_id": supplier.id}])
    make_estimate(
        db_session,
        [{"description": "Drywall Sheet", "total": 40, "supplier_id": supplier.id}],
        title="Draft job",
        status=EstimateStatus.DRAFT,
    )

    groups = ProcurementService(db_session).summarize()

    assert len(groups) == 1
    assert groups[0]["supplier_name"] == "Lumber Depot"
    assert groups[0]["store_name"] == "Lumber Depot"
    assert groups[0]["phone"] == "555-0100"
    assert groups[0]["address"] == "1 Mill Rd"
    assert groups[0]["total_cost"] == 100.0


def test_summarize_selected_estimates(db_session):
    selected = make_estimate(db_session, [{"description": "Paint", "total": 55}])
    make_estimate(db_session, [{"description": "Trim", "total": 20}])

    groups = ProcurementService(db_session).summarize([selected.id])

    assert len(groups) == 1
    assert groups[0]["supplier_id"] == "unassigned"
    assert groups[0]["store_name"] is None
    assert groups[0]["total_cost"] == 55.0


@pytest.mark.parametrize(
    "status", [EstimateStatus.DRAFT, EstimateStatus.REJECTED, EstimateStatus.CONVERTED]
)
def test_summarize_skips_selected_estimates_that_are_not_approved(db_session, status):
    approved = make_estimate(db_session, [{"description": "Paint", "total": 55}])
    other = make_estimate(db_session, [{"description": "Trim", "total": 20}], status=status)

    groups = ProcurementService(db_session).summarize([approved.id, other.id])

    assert [e["estimate_id"] for e in groups[0]["estimates"]] == [approved.id]
    assert groups[0]["total_cost"] == 55.0


def test_reorder_request_prefers_email(db_session):
    supplier = make_supplier(
        db_session, contact_person="Dana", email="orders@lumber.example", phone="555-0100"
    )
    item = make_item(db_session, name="Wood Screws", quantity=3, unit="box", supplier_id=supplier.id)

    request = ProcurementService(db_session).build_reorder_request(item.id)

    assert request["channel"] == "email"
    assert request["recipient"] == "orders@lumber.example"
    assert request["subject"] == "Order: Wood Screws"
    assert request["body"].startswith("Hi Dana,\n\nI need to order more Wood Screws.")
    assert "My current stock is 3 box." in request["body"]
    assert request["uri"].startswith("mailto:orders@lumber.example?subject=Order%3A%20Wood%20Screws")


def test_reorder_request_falls_back_to_sms(db_session):
    supplier = make_supplier(db_session, phone="555-0100")
    item = make_item(db_session, quantity=2.5, supplier_id=supplier.id)

    request = ProcurementService(db_session).build_reorder_request(item.id)

    assert request["channel"] == "sms"
    assert request["recipient"] == "555-0100"
    assert request["body"].startswith("Hi there,")
    assert request["uri"].startswith("sms:555-0100?body=")


def test_reorder_request_without_supplier(db_session):
    item = make_item(db_session)

    with pytest.raises(BusinessRuleException) as exc_info:
        ProcurementService(db_session).build_reorder_request(item.id)

    assert exc_info.value.code == "NO_SUPPLIER"


def test_reorder_request_with_unreachable_supplier(db_session):
    supplier = make_supplier(db_session)
    item = make_item(db_session, supplier_id=supplier.id)

    with pytest.raises(BusinessRuleException) as exc_info:
        ProcurementService(db_session).build_reorder_request(item.id)

    assert exc_info.value.code == "SUPPLIER_UNREACHABLE"


def test_reorder_request_for_unknown_item(db_session):
    with pytest.raises(EntityNotFoundException):
        ProcurementService(db_session).build_reorder_request("no-such-item")

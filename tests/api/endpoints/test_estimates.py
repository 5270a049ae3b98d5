# tests/api/endpoints/test_estimates.py
import pytest

from tests.conftest import make_estimate, make_item, make_kit, make_material, make_pricing, make_supplier
from tradedesk.db.models import EstimateStatus, Job

API = "/api/v1/estimates"


def test_convert_requires_token(client, db_session):
    estimate = make_estimate(db_session, [])

    response = client.post(f"{API}/convert", json={"estimate_id": estimate.id})

    assert response.status_code == 401
    assert response.json()["detail"]["code"] == "SECURITY_001"
    assert db_session.query(Job).count() == 0


def test_convert_rejects_invalid_token(client, db_session):
    estimate = make_estimate(db_session, [])

    response = client.post(
        f"{API}/convert",
        json={"estimate_id": estimate.id},
        headers={"Authorization": "Bearer not-a-token"},
    )

    assert response.status_code == 401


def test_convert_estimate(client, db_session, auth_headers):
    item = make_item(db_session, name="Drywall Sheet", quantity=10, reorder_point=5)
    item_id = item.id
    estimate = make_estimate(
        db_session,
        [
            {"description": "Drywall Sheet", "quantity": 8, "unit_cost": 12.5, "total": 100, "inventory_id": item_id},
            {"description": "Trim", "quantity": 1, "unit_cost": 5, "total": 5, "inventory_id": "gone"},
        ],
    )

    response = client.post(f"{API}/convert", json={"estimate_id": estimate.id}, headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["message"] == "Job created and inventory updated successfully"
    assert data["deductions"] == [
        {"inventory_id": item_id, "item": "Drywall Sheet", "deducted": 8, "remaining": 2, "isLowStock": True},
        {"inventory_id": "gone", "item": "Trim", "error": "Failed to update inventory"},
    ]

    job = db_session.query(Job).one()
    assert job.id == data["job_id"]
    assert job.conversion_batch_id == data["batch_id"]

    batch = client.get(f"/api/v1/inventory/batches/{data['batch_id']}", headers=auth_headers)
    assert batch.status_code == 200
    assert batch.json()[0]["performed_by"] == "user-42"


def test_convert_twice_returns_conflict(client, db_session, auth_headers):
    estimate = make_estimate(db_session, [])
    estimate_id = estimate.id

    first = client.post(f"{API}/convert", json={"estimate_id": estimate_id}, headers=auth_headers)
    second = client.post(f"{API}/convert", json={"estimate_id": estimate_id}, headers=auth_headers)

    assert first.status_code == 200
    assert second.status_code == 409
    assert second.json()["detail"]["message"] == "Estimate already converted"
    assert db_session.query(Job).count() == 1


def test_convert_unknown_estimate(client, auth_headers):
    response = client.post(f"{API}/convert", json={"estimate_id": "missing"}, headers=auth_headers)

    assert response.status_code == 404
    assert response.json()["detail"]["code"] == "DOMAIN_001"


def test_convert_requires_estimate_id(client, auth_headers):
    response = client.post(f"{API}/convert", json={}, headers=auth_headers)

    assert response.status_code == 422


def test_create_and_update_estimate(client, auth_headers):
    response = client.post(
        API,
        json={
            "title": "Deck Repair",
            "tax_rate": 10,
            "items": [{"description": "Labor", "quantity": 4, "unit_cost": 50}],
        },
        headers=auth_headers,
    )
    assert response.status_code == 201
    created = response.json()
    assert created["status"] == "draft"
    assert created["total_amount"] == 220.0

    response = client.patch(f"{API}/{created['id']}", json={"status": "approved"}, headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["status"] == "approved"

    response = client.get(API, params={"status": "approved"}, headers=auth_headers)
    assert [e["id"] for e in response.json()] == [created["id"]]


def test_update_to_converted_is_refused(client, db_session, auth_headers):
    estimate = make_estimate(db_session, [], status=EstimateStatus.DRAFT)

    response = client.patch(f"{API}/{estimate.id}", json={"status": "converted"}, headers=auth_headers)

    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "INVALID_STATUS_TRANSITION"


@pytest.mark.parametrize("field", ["title", "status"])
def test_update_cannot_clear_required_fields(client, db_session, auth_headers, field):
    estimate = make_estimate(db_session, [], status=EstimateStatus.DRAFT)

    response = client.patch(f"{API}/{estimate.id}", json={field: None}, headers=auth_headers)

    assert response.status_code == 422
    assert response.json()["detail"]["details"]["validation_errors"] == {field: ["required"]}

    unchanged = client.get(f"{API}/{estimate.id}", headers=auth_headers).json()
    assert unchanged["title"] == "Kitchen Remodel"
    assert unchanged["status"] == "draft"


def test_add_kit_to_estimate(client, db_session, auth_headers):
    supplier = make_supplier(db_session)
    material = make_material(db_session)
    make_pricing(db_session, material.id, supplier_id=supplier.id, max_price=10)
    kit = make_kit(db_session, [{"material_id": material.id, "quantity": 3}])
    estimate = make_estimate(db_session, [], status=EstimateStatus.DRAFT)

    response = client.post(f"{API}/{estimate.id}/kits", json={"kit_id": kit.id}, headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["items"][0]["description"] == "Joint Compound"
    assert data["total_amount"] == 30.0


def test_add_scoping_item_to_estimate(client, db_session, auth_headers):
    supplier = make_supplier(db_session)
    material = make_material(db_session)
    make_pricing(db_session, material.id, supplier_id=supplier.id, min_price=8, max_price=12)
    estimate = make_estimate(db_session, [], status=EstimateStatus.DRAFT)

    response = client.post(
        f"{API}/{estimate.id}/scoping-items",
        json={"material_id": material.id, "supplier_id": supplier.id},
        headers=auth_headers,
    )

    assert response.status_code == 200
    data = response.json()
    assert data["items"][0]["description"] == "Joint Compound"
    assert data["items"][0]["unit_cost"] == 10.0
    assert data["total_amount"] == 10.0

    missing = client.post(
        f"{API}/{estimate.id}/scoping-items", json={"material_id": "no-such-material"}, headers=auth_headers
    )
    assert missing.status_code == 404

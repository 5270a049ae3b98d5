# tests/api/endpoints/test_jobs_kits_procurement.py
from tests.conftest import (
    make_estimate,
    make_item,
    make_kit,
    make_material,
    make_pricing,
    make_supplier,
)
from tradedesk.db.models import Job


def _convert(client, db_session, auth_headers, items):
    estimate = make_estimate(db_session, items, total_amount=100)
    response = client.post(
        "/api/v1/estimates/convert", json={"estimate_id": estimate.id}, headers=auth_headers
    )
    assert response.status_code == 200
    return response.json()


def test_get_job(client, db_session, auth_headers):
    converted = _convert(client, db_session, auth_headers, [{"description": "Labor", "total": 100}])

    response = client.get(f"/api/v1/jobs/{converted['job_id']}", headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "in_progress"
    assert data["payment_status"] == "unpaid"
    assert data["budget"] == 100


def test_get_unknown_job(client, auth_headers):
    assert client.get("/api/v1/jobs/missing", headers=auth_headers).status_code == 404


def test_add_change_order(client, db_session, auth_headers):
    converted = _convert(client, db_session, auth_headers, [{"description": "Labor", "total": 100}])

    response = client.post(
        f"/api/v1/jobs/{converted['job_id']}/change-orders",
        json={"description": "Extra joists", "quantity": 2, "unit_cost": 15.5, "supplier_name": "Lumber Depot"},
        headers=auth_headers,
    )

    assert response.status_code == 200
    data = response.json()
    assert data["budget"] == 131.0
    assert data["material_list"][-1]["supplier_name"] == "Lumber Depot"
    assert data["material_list"][-1]["change_order"] is True


def test_change_order_validation(client, db_session, auth_headers):
    job = Job(title="Deck Repair")
    db_session.add(job)
    db_session.commit()

    response = client.post(
        f"/api/v1/jobs/{job.id}/change-orders",
        json={"description": "Extra joists", "quantity": 0},
        headers=auth_headers,
    )

    assert response.status_code == 422


def test_retry_deductions(client, db_session, auth_headers):
    converted = _convert(
        client,
        db_session,
        auth_headers,
        [{"description": "Wood Screws", "quantity": 5, "unit_cost": 1, "total": 5, "inventory_id": "late-stock"}],
    )
    assert converted["deductions"][0]["error"] == "Failed to update inventory"
    make_item(db_session, name="Wood Screws", quantity=20, id="late-stock")

    response = client.post(f"/api/v1/jobs/{converted['job_id']}/retry-deductions", headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["batch_id"] == converted["batch_id"]
    assert data["deductions"] == [
        {"inventory_id": "late-stock", "item": "Wood Screws", "deducted": 5, "remaining": 15, "isLowStock": False}
    ]


def test_list_and_expand_kits(client, db_session, auth_headers):
    supplier = make_supplier(db_session)
    material = make_material(db_session, item_name="Drywall Tape")
    make_pricing(db_session, material.id, supplier_id=supplier.id, max_price=4)
    kit = make_kit(db_session, [{"material_id": material.id, "quantity": 2, "waste_factor_percentage": 25}])

    listed = client.get("/api/v1/kits", headers=auth_headers)
    assert listed.status_code == 200
    assert listed.json()[0]["kit_name"] == "Bathroom Patch Kit"

    expanded = client.post("/api/v1/kits/expand", json={"kit_id": kit.id}, headers=auth_headers)
    assert expanded.status_code == 200
    assert expanded.json() == [
        {
            "description": "Drywall Tape",
            "quantity": 2,
            "unit_cost": 5.0,
            "total": 10.0,
            "material_id": material.id,
            "supplier_id": supplier.id,
        }
    ]

    missing = client.post("/api/v1/kits/expand", json={"kit_id": "missing"}, headers=auth_headers)
    assert missing.status_code == 404


def test_procurement_summary(client, db_session, auth_headers):
    supplier = make_supplier(db_session, store_name="Lumber Depot")
    first = make_estimate(db_session, [{"description": "Studs", "total": 80, "supplier_id": supplier.id}])
    second = make_estimate(db_session, [{"description": "Nails", "total": 20, "supplier_id": supplier.id}])

    response = client.get("/api/v1/procurement/summary", headers=auth_headers)

    assert response.status_code == 200
    groups = response.json()
    assert len(groups) == 1
    assert groups[0]["supplier_name"] == "Lumber Depot"
    assert groups[0]["total_cost"] == 100.0
    assert groups[0]["item_count"] == 2

    response = client.get(
        "/api/v1/procurement/summary", params={"estimate_ids": [second.id]}, headers=auth_headers
    )
    assert response.json()[0]["total_cost"] == 20.0
    assert first.id not in [e["estimate_id"] for e in response.json()[0]["estimates"]]


def test_procurement_requires_token(client):
    assert client.get("/api/v1/procurement/summary").status_code == 401

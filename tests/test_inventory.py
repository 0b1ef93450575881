"""
Dismantled-parts inventory ledger.
"""
import pytest
from fastapi.testclient import TestClient

from scrapdesk.services.inventory import calculate_available, calculate_status

from .conftest import create_invoice, create_vehicle, part


def _batch(client, headers, ctx, parts):
    return client.post(
        "/inventory",
        json={"invoice_id": ctx["invoice"]["id"], "vehicle_id": ctx["vehicle"]["id"], "parts": parts},
        headers=headers,
    )


def _generate_cod(client, headers, ctx):
    response = client.post(
        "/vehicle-compliance/vechile-cod",
        json={
            "invoice_id": ctx["invoice"]["id"],
            "vehicle_id": ctx["vehicle"]["id"],
            "cod_generated": True,
            "cod_inward_number": "COD-1",
            "cod_issue_date": "2024-06-01",
        },
        headers=headers,
    )
    assert response.status_code == 201, response.text


class TestLedgerRules:
    """Derived quantity and status."""

    def test_available_quantity(self):
        assert calculate_available(10, 5, 3) == 12

    @pytest.mark.parametrize(
        "condition,available,issued,expected",
        [
            ("DAMAGED", 5, 0, "DAMAGE_ONLY"),
            ("DAMAGED", 0, 0, "DAMAGE_ONLY"),
            ("USED", 0, 4, "SOLD_OUT"),
            ("USED", 3, 1, "PARTIAL_SOLD"),
            ("NEW", 3, 0, "AVAILABLE"),
        ],
    )
    def test_status_priority(self, condition, available, issued, expected):
        assert calculate_status(condition, available, issued) == expected


class TestCreateBatch:
    """POST /inventory records a vehicle's parts once."""

    def test_batch_creates_items_and_dismantles_vehicle(self, client: TestClient, tenant_a, purchased_vehicle):
        headers = tenant_a["staff_headers"]
        response = _batch(
            client,
            headers,
            purchased_vehicle,
            [part(opening_stock=10, quantity_received=2, quantity_issued=3), part(part_name="Seat", part_type="INTERIOR")],
        )
        assert response.status_code == 201, response.text
        items = {i["part_name"]: i for i in response.json()}
        alternator = items["Alternator"]
        assert alternator["available_quantity"] == 9
        assert alternator["status"] == "PARTIAL_SOLD"
        assert alternator["purchase_invoice_number"] == purchased_vehicle["invoice"]["invoice_number"]
        assert alternator["vehicle_model"] == "Swift"
        assert items["Seat"]["status"] == "AVAILABLE"
        assert alternator["batch_id"] == items["Seat"]["batch_id"]

        car = client.get(f"/invoice/vechile/{purchased_vehicle['vehicle']['id']}", headers=headers).json()
        assert car["vehicle_status"] == "DISMANTLED"

    def test_issued_cannot_exceed_available(self, client: TestClient, tenant_a, purchased_vehicle):
        response = _batch(
            client, tenant_a["staff_headers"], purchased_vehicle,
            [part(opening_stock=10, quantity_received=0, quantity_issued=12)],
        )
        assert response.status_code == 400
        assert "exceeds" in response.json()["detail"]

    def test_damaged_part_cannot_be_issued(self, client: TestClient, tenant_a, purchased_vehicle):
        response = _batch(
            client, tenant_a["staff_headers"], purchased_vehicle,
            [part(condition="DAMAGED", quantity_issued=1)],
        )
        assert response.status_code == 400

    def test_negative_counter(self, client: TestClient, tenant_a, purchased_vehicle):
        response = _batch(client, tenant_a["staff_headers"], purchased_vehicle, [part(quantity_received=-1)])
        assert response.status_code == 400
        assert response.json()["detail"] == "Quantity received cannot be negative for part Alternator"

    def test_rejected_batch_leaves_vehicle_purchased(self, client: TestClient, tenant_a, purchased_vehicle):
        headers = tenant_a["staff_headers"]
        _batch(client, headers, purchased_vehicle, [part(), part(part_name="Bad", quantity_issued=99)])
        assert client.get("/inventory", headers=headers).json() == []
        car = client.get(f"/invoice/vechile/{purchased_vehicle['vehicle']['id']}", headers=headers).json()
        assert car["vehicle_status"] == "PURCHASED"

    def test_second_batch_for_vehicle_is_rejected(self, client: TestClient, tenant_a, dismantled_vehicle):
        response = _batch(client, tenant_a["staff_headers"], dismantled_vehicle, [part()])
        assert response.status_code == 400
        assert response.json()["detail"] == "Dismantling already completed"

    def test_vehicle_must_belong_to_invoice(self, client: TestClient, tenant_a, purchased_vehicle):
        other = create_invoice(client, tenant_a["staff_headers"])
        response = client.post(
            "/inventory",
            json={"invoice_id": other["id"], "vehicle_id": purchased_vehicle["vehicle"]["id"], "parts": [part()]},
            headers=tenant_a["staff_headers"],
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Vehicle does not belong to invoice"

    def test_empty_parts_rejected(self, client: TestClient, tenant_a, purchased_vehicle):
        response = _batch(client, tenant_a["staff_headers"], purchased_vehicle, [])
        assert response.status_code == 400

    def test_part_documents_are_stored(self, client: TestClient, tenant_a, purchased_vehicle):
        doc = {
            "url": "http://files/engine.jpg",
            "storage_key": "inventory/engine.jpg",
            "provider": "local",
            "file_name": "engine.jpg",
            "mime_type": "image/jpeg",
            "size": 2048,
        }
        response = _batch(client, tenant_a["staff_headers"], purchased_vehicle, [part(documents=[doc])])
        stored = response.json()[0]["documents"][0]
        assert stored["storage_key"] == "inventory/engine.jpg"
        assert stored["uploaded_by"] == tenant_a["staff"]["id"]
        assert stored["uploaded_at"]


class TestReadInventory:
    """GET /inventory and GET /inventory/{id}"""

    def test_list_unpaginated_and_paginated(self, client: TestClient, tenant_a, dismantled_vehicle):
        headers = tenant_a["staff_headers"]
        assert len(client.get("/inventory", headers=headers).json()) == 2

        page = client.get("/inventory?page=1&limit=1", headers=headers).json()
        assert page["total"] == 2
        assert len(page["items"]) == 1

    def test_filters(self, client: TestClient, tenant_a, dismantled_vehicle):
        headers = tenant_a["staff_headers"]
        vehicle_id = dismantled_vehicle["vehicle"]["id"]
        assert len(client.get(f"/inventory?vehicle_id={vehicle_id}", headers=headers).json()) == 2
        assert client.get("/inventory?status=SOLD_OUT", headers=headers).json() == []

    def test_other_tenant_cannot_see_items(self, client: TestClient, tenant_b, dismantled_vehicle):
        item_id = dismantled_vehicle["parts"][0]["id"]
        assert client.get("/inventory", headers=tenant_b["staff_headers"]).json() == []
        assert client.get(f"/inventory/{item_id}", headers=tenant_b["staff_headers"]).status_code == 404


class TestUpdateInventory:
    """PATCH /inventory/{id} re-derives quantity and status."""

    def _alternator(self, ctx):
        return next(p for p in ctx["parts"] if p["part_name"] == "Alternator")

    def test_sale_updates_quantity_status_and_price(self, client: TestClient, tenant_a, dismantled_vehicle):
        item = self._alternator(dismantled_vehicle)
        response = client.patch(
            f"/inventory/{item['id']}",
            json={"quantity_issued": 10, "unit_price": 1500},
            headers=tenant_a["staff_headers"],
        )
        assert response.status_code == 200, response.text
        data = response.json()
        assert data["available_quantity"] == 0
        assert data["status"] == "SOLD_OUT"
        assert data["unit_price"] == 1500
        assert data["updated_by"] == tenant_a["staff"]["id"]

    def test_price_only_changes_during_sales(self, client: TestClient, tenant_a, dismantled_vehicle):
        item = self._alternator(dismantled_vehicle)
        response = client.patch(f"/inventory/{item['id']}", json={"unit_price": 99}, headers=tenant_a["staff_headers"])
        assert response.status_code == 400
        assert response.json()["detail"] == "Unit price can be updated only during sales"

    def test_update_cannot_overdraw(self, client: TestClient, tenant_a, dismantled_vehicle):
        item = self._alternator(dismantled_vehicle)
        response = client.patch(
            f"/inventory/{item['id']}", json={"quantity_issued": 11}, headers=tenant_a["staff_headers"]
        )
        assert response.status_code == 400

    def test_marking_damaged_with_issued_stock_is_rejected(self, client: TestClient, tenant_a, dismantled_vehicle):
        item = self._alternator(dismantled_vehicle)
        headers = tenant_a["staff_headers"]
        client.patch(f"/inventory/{item['id']}", json={"quantity_issued": 1}, headers=headers)
        response = client.patch(f"/inventory/{item['id']}", json={"condition": "DAMAGED"}, headers=headers)
        assert response.status_code == 400

    def test_damaged_part_reports_damage_only(self, client: TestClient, tenant_a, dismantled_vehicle):
        item = self._alternator(dismantled_vehicle)
        response = client.patch(
            f"/inventory/{item['id']}", json={"condition": "DAMAGED"}, headers=tenant_a["staff_headers"]
        )
        assert response.json()["status"] == "DAMAGE_ONLY"

    def test_derived_fields_are_not_writable(self, client: TestClient, tenant_a, dismantled_vehicle):
        item = self._alternator(dismantled_vehicle)
        response = client.patch(
            f"/inventory/{item['id']}", json={"available_quantity": 500}, headers=tenant_a["staff_headers"]
        )
        assert response.status_code == 400

    def test_update_blocked_after_cod(self, client: TestClient, tenant_a, dismantled_vehicle):
        headers = tenant_a["staff_headers"]
        _generate_cod(client, headers, dismantled_vehicle)
        item = self._alternator(dismantled_vehicle)
        response = client.patch(f"/inventory/{item['id']}", json={"quantity_received": 1}, headers=headers)
        assert response.status_code == 400
        assert response.json()["detail"] == "Inventory cannot be changed after COD is generated"


class TestDeleteInventory:
    """DELETE /inventory/{id} is reserved to admins."""

    def test_staff_cannot_delete(self, client: TestClient, tenant_a, dismantled_vehicle):
        item_id = dismantled_vehicle["parts"][0]["id"]
        assert client.delete(f"/inventory/{item_id}", headers=tenant_a["staff_headers"]).status_code == 403

    def test_admin_deletes(self, client: TestClient, tenant_a, dismantled_vehicle):
        item_id = dismantled_vehicle["parts"][0]["id"]
        response = client.delete(f"/inventory/{item_id}", headers=tenant_a["admin_headers"])
        assert response.status_code == 200
        assert response.json()["message"] == "Inventory deleted successfully"
        assert client.get(f"/inventory/{item_id}", headers=tenant_a["admin_headers"]).status_code == 404

    def test_delete_blocked_after_cod(self, client: TestClient, tenant_a, dismantled_vehicle):
        _generate_cod(client, tenant_a["staff_headers"], dismantled_vehicle)
        item_id = dismantled_vehicle["parts"][0]["id"]
        response = client.delete(f"/inventory/{item_id}", headers=tenant_a["admin_headers"])
        assert response.status_code == 400


class TestSecondVehicle:
    """Each vehicle gets its own batch."""

    def test_batches_are_per_vehicle(self, client: TestClient, tenant_a, dismantled_vehicle):
        headers = tenant_a["staff_headers"]
        invoice = create_invoice(client, headers)
        car = create_vehicle(client, headers, invoice["id"])
        response = _batch(client, headers, {"invoice": invoice, "vehicle": car}, [part()])
        assert response.status_code == 201
        assert len(client.get("/inventory", headers=headers).json()) == 3

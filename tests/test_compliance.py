"""
Certificate of Destruction records and RTO tracking.
"""
from fastapi.testclient import TestClient

from .conftest import create_invoice, create_vehicle


def _cod(ctx, **overrides):
    payload = {
        "invoice_id": ctx["invoice"]["id"],
        "vehicle_id": ctx["vehicle"]["id"],
        "cod_generated": True,
        "cod_inward_number": "COD-2024-001",
        "cod_issue_date": "2024-06-01",
        "rto_office": "KA-01 Koramangala",
    }
    payload.update(overrides)
    return payload


URL = "/vehicle-compliance/vechile-cod"


class TestCreateCodRecord:
    """POST /vehicle-compliance/vechile-cod"""

    def test_generate_cod_for_dismantled_vehicle(self, client: TestClient, tenant_a, dismantled_vehicle):
        response = client.post(URL, json=_cod(dismantled_vehicle), headers=tenant_a["staff_headers"])
        assert response.status_code == 201, response.text
        record = response.json()
        assert record["cod_generated"] is True
        assert record["cod_inward_number"] == "COD-2024-001"
        assert record["rto_status"] == "NOT_APPLIED"
        assert record["organization_id"] == tenant_a["org"]["id"]

    def test_cod_requires_dismantled_vehicle(self, client: TestClient, tenant_a, purchased_vehicle):
        response = client.post(URL, json=_cod(purchased_vehicle), headers=tenant_a["staff_headers"])
        assert response.status_code == 400
        assert response.json()["detail"] == "COD can be generated only after vehicle is DISMANTLED"

    def test_generated_cod_requires_inward_number_and_date(self, client: TestClient, tenant_a, dismantled_vehicle):
        response = client.post(
            URL, json=_cod(dismantled_vehicle, cod_issue_date=None), headers=tenant_a["staff_headers"]
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "COD inward number and issue date are required when COD is generated"

    def test_pending_record_cannot_carry_cod_details(self, client: TestClient, tenant_a, purchased_vehicle):
        response = client.post(
            URL, json=_cod(purchased_vehicle, cod_generated=False), headers=tenant_a["staff_headers"]
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "COD inward number and issue date are allowed only when COD is generated"

    def test_pending_record_for_purchased_vehicle(self, client: TestClient, tenant_a, purchased_vehicle):
        response = client.post(
            URL,
            json=_cod(purchased_vehicle, cod_generated=False, cod_inward_number=None, cod_issue_date=None),
            headers=tenant_a["staff_headers"],
        )
        assert response.status_code == 201
        assert response.json()["cod_generated"] is False

    def test_one_record_per_vehicle(self, client: TestClient, tenant_a, dismantled_vehicle):
        headers = tenant_a["staff_headers"]
        assert client.post(URL, json=_cod(dismantled_vehicle), headers=headers).status_code == 201
        response = client.post(URL, json=_cod(dismantled_vehicle, cod_inward_number="COD-2"), headers=headers)
        assert response.status_code == 400
        assert response.json()["detail"] == "COD already exists for this vehicle"

    def test_vehicle_must_belong_to_invoice(self, client: TestClient, tenant_a, dismantled_vehicle):
        headers = tenant_a["staff_headers"]
        other = create_invoice(client, headers)
        response = client.post(URL, json=_cod(dismantled_vehicle, invoice_id=other["id"]), headers=headers)
        assert response.status_code == 400
        assert response.json()["detail"] == "Vehicle does not belong to invoice"

    def test_other_tenant_vehicle_is_not_found(self, client: TestClient, tenant_b, dismantled_vehicle):
        response = client.post(URL, json=_cod(dismantled_vehicle), headers=tenant_b["staff_headers"])
        assert response.status_code == 404


class TestReadAndTrack:
    """Lookups and RTO tracking updates."""

    def _record(self, client, tenant, ctx):
        response = client.post(URL, json=_cod(ctx), headers=tenant["staff_headers"])
        assert response.status_code == 201, response.text
        return response.json()

    def test_lookup_by_id_and_vehicle(self, client: TestClient, tenant_a, dismantled_vehicle):
        record = self._record(client, tenant_a, dismantled_vehicle)
        headers = tenant_a["admin_headers"]
        assert client.get(f"{URL}/{record['id']}", headers=headers).json()["id"] == record["id"]
        by_vehicle = client.get(f"{URL}/vehicle/{dismantled_vehicle['vehicle']['id']}", headers=headers)
        assert by_vehicle.json()["id"] == record["id"]

    def test_missing_vehicle_record(self, client: TestClient, tenant_a, purchased_vehicle):
        response = client.get(f"{URL}/vehicle/{purchased_vehicle['vehicle']['id']}", headers=tenant_a["staff_headers"])
        assert response.status_code == 404

    def test_list_is_paginated_and_filtered(self, client: TestClient, tenant_a, tenant_b, dismantled_vehicle):
        headers = tenant_a["staff_headers"]
        self._record(client, tenant_a, dismantled_vehicle)
        invoice = create_invoice(client, headers)
        car = create_vehicle(client, headers, invoice["id"])
        client.post(
            URL,
            json={"invoice_id": invoice["id"], "vehicle_id": car["id"], "cod_generated": False},
            headers=headers,
        )

        page = client.get(URL, headers=headers).json()
        assert page["total"] == 2
        assert page["page"] == 1
        generated = client.get(f"{URL}?cod_generated=true", headers=headers).json()
        assert [r["vehicle_id"] for r in generated["items"]] == [dismantled_vehicle["vehicle"]["id"]]
        assert client.get(URL, headers=tenant_b["staff_headers"]).json()["total"] == 0

    def test_rto_tracking_update(self, client: TestClient, tenant_a, dismantled_vehicle):
        record = self._record(client, tenant_a, dismantled_vehicle)
        response = client.patch(
            f"{URL}/{record['id']}/rto",
            json={"rto_status": "APPROVED", "remarks": "Deregistered"},
            headers=tenant_a["staff_headers"],
        )
        assert response.status_code == 200
        assert response.json()["rto_status"] == "APPROVED"
        assert response.json()["remarks"] == "Deregistered"

        approved = client.get(f"{URL}?rto_status=APPROVED", headers=tenant_a["staff_headers"]).json()
        assert approved["total"] == 1

    def test_gating_fields_are_fixed(self, client: TestClient, tenant_a, dismantled_vehicle):
        record = self._record(client, tenant_a, dismantled_vehicle)
        response = client.patch(
            f"{URL}/{record['id']}/rto", json={"cod_generated": False}, headers=tenant_a["staff_headers"]
        )
        assert response.status_code == 400

    def test_other_tenant_cannot_track(self, client: TestClient, tenant_a, tenant_b, dismantled_vehicle):
        record = self._record(client, tenant_a, dismantled_vehicle)
        response = client.patch(
            f"{URL}/{record['id']}/rto", json={"rto_status": "APPLIED"}, headers=tenant_b["staff_headers"]
        )
        assert response.status_code == 404

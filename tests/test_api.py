"""
HTTP tests for the sales, inventory and clients routers
"""
from uuid import uuid4

import pytest


def _stone(api, gem_code="RUBY-001", quantity=5, **extra):
    payload = {
        "gem_code": gem_code,
        "stone_type": "Ruby",
        "carat": "2.0",
        "price_per_carat": "10000",
        "quantity": quantity,
    }
    payload.update(extra)
    response = api.post("/api/inventory", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def _sale(api, *lines, **header):
    payload = {"date": "2026-03-15", "items": [{"stone_ref": ref, "quantity": q} for ref, q in lines]}
    payload.update(header)
    return api.post("/api/sales", json=payload)


class TestHealth:

    def test_health(self, api):
        assert api.get("/health").json() == {"status": "healthy"}


class TestInventoryApi:

    def test_create_and_get(self, api):
        stone = _stone(api)
        assert stone["is_available"] is True
        assert float(stone["total_price"]) == 20000.0

        response = api.get(f"/api/inventory/{stone['id']}")
        assert response.status_code == 200
        assert response.json()["gem_code"] == "RUBY-001"

    def test_zero_quantity_not_available(self, api):
        assert _stone(api, quantity=0)["is_available"] is False

    def test_duplicate_gem_code(self, api):
        _stone(api)
        response = api.post("/api/inventory", json={
            "gem_code": "RUBY-001", "stone_type": "Ruby", "carat": "1", "price_per_carat": "1",
        })
        assert response.status_code == 400

    def test_gem_code_unique_ignoring_case(self, api):
        _stone(api)
        response = api.post("/api/inventory", json={
            "gem_code": "ruby-001", "stone_type": "Ruby", "carat": "1", "price_per_carat": "1",
        })
        assert response.status_code == 400
        assert len(api.get("/api/inventory").json()) == 1

    def test_list_filters(self, api):
        _stone(api, "RUBY-001")
        _stone(api, "RUBY-002", quantity=0)
        _stone(api, "EMR-001", stone_type="Emerald")

        codes = [s["gem_code"] for s in api.get("/api/inventory").json()]
        assert codes == ["EMR-001", "RUBY-001", "RUBY-002"]

        available = api.get("/api/inventory", params={"available_only": True}).json()
        assert [s["gem_code"] for s in available] == ["EMR-001", "RUBY-001"]

        rubies = api.get("/api/inventory", params={"stone_type": "ruby"}).json()
        assert len(rubies) == 2

    def test_patch_does_not_touch_quantity(self, api):
        stone = _stone(api)
        response = api.patch(f"/api/inventory/{stone['id']}", json={"grade": "AA", "quantity": 99})
        assert response.status_code == 200
        assert response.json()["grade"] == "AA"
        assert response.json()["quantity"] == 5

    def test_adjust_and_movements(self, api):
        stone = _stone(api)
        response = api.post(f"/api/inventory/{stone['id']}/adjust", json={"quantity_delta": -5, "notes": "broken"})
        assert response.status_code == 200
        assert response.json()["quantity"] == 0
        assert response.json()["is_available"] is False

        movements = api.get(f"/api/inventory/{stone['id']}/movements").json()
        assert len(movements) == 1
        assert movements[0]["reason"] == "ADJUSTMENT"
        assert movements[0]["notes"] == "broken"

    def test_adjust_below_zero_rejected(self, api):
        stone = _stone(api, quantity=2)
        response = api.post(f"/api/inventory/{stone['id']}/adjust", json={"quantity_delta": -3})
        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "InsufficientInventory"

    def test_resolve(self, api):
        stone = _stone(api)
        by_code = api.get("/api/inventory/resolve", params={"ref": "ruby-001"}).json()
        assert by_code["match_kind"] == "CODE"
        assert by_code["item"]["id"] == stone["id"]

        fuzzy = api.get(
            "/api/inventory/resolve", params={"ref": "old", "stone_type": "Ruby", "carat": "2.0"},
        ).json()
        assert fuzzy["match_kind"] == "FUZZY"
        assert fuzzy["is_fallback"] is True

        missing = api.get("/api/inventory/resolve", params={"ref": "NOPE"}).json()
        assert missing["match_kind"] == "NOT_FOUND"
        assert missing["item"] is None

    def test_missing_stone(self, api):
        assert api.get(f"/api/inventory/{uuid4()}").status_code == 404


class TestClientsApi:

    def test_create_list_get(self, api):
        created = api.post("/api/clients", json={"name": "Ravi", "business_name": "Ravi Gems", "city": "Jaipur"})
        assert created.status_code == 201
        client_id = created.json()["id"]

        assert api.get(f"/api/clients/{client_id}").json()["business_name"] == "Ravi Gems"
        assert len(api.get("/api/clients", params={"q": "gems"}).json()) == 1
        assert api.get("/api/clients", params={"q": "nobody"}).json() == []

    def test_missing_client(self, api):
        assert api.get(f"/api/clients/{uuid4()}").status_code == 404


class TestSalesApi:

    def test_create_sale(self, api):
        stone = _stone(api)
        response = _sale(api, ("RUBY-001", 3))
        assert response.status_code == 201, response.text
        body = response.json()
        assert body["sale_code"] == "SALE-2026-000001"
        assert float(body["total_with_tax"]) == 61800.0
        assert float(body["cgst"]) == 900.0
        assert body["totals_consistent"] is True
        assert body["items"][0]["stone_display_name"] == "Ruby (RUBY-001)"

        assert api.get(f"/api/inventory/{stone['id']}").json()["quantity"] == 2

    def test_insufficient_stock(self, api):
        stone = _stone(api)
        response = _sale(api, ("RUBY-001", 6))
        assert response.status_code == 400
        detail = response.json()["detail"]
        assert detail["error"] == "InsufficientInventory"
        assert detail["reference"] == "RUBY-001"
        assert detail["requested"] == 6
        assert detail["available"] == 5
        assert detail["line_index"] == 0
        assert api.get(f"/api/inventory/{stone['id']}").json()["quantity"] == 5
        assert api.get("/api/sales").json() == []

    def test_unknown_stone(self, api):
        _stone(api)
        response = _sale(api, ("RUBY-001", 1), ("NOPE", 1))
        assert response.status_code == 400
        detail = response.json()["detail"]
        assert detail["error"] == "StoneNotFound"
        assert detail["unresolved"] == [{"reference": "NOPE", "line_index": 1}]

    def test_validation_error(self, api):
        response = api.post("/api/sales", json={"date": "2026-03-15", "items": []})
        assert response.status_code == 422

    def test_update_and_delete(self, api):
        stone = _stone(api)
        sale_id = _sale(api, ("RUBY-001", 3)).json()["id"]

        response = api.put(f"/api/sales/{sale_id}", json={
            "date": "2026-03-16",
            "payment_status": "Paid",
            "items": [{"stone_ref": "RUBY-001", "quantity": 1}],
        })
        assert response.status_code == 200, response.text
        assert response.json()["payment_status"] == "Paid"
        assert api.get(f"/api/inventory/{stone['id']}").json()["quantity"] == 4

        assert api.delete(f"/api/sales/{sale_id}").status_code == 204
        assert api.get(f"/api/inventory/{stone['id']}").json()["quantity"] == 5
        assert api.get(f"/api/sales/{sale_id}").status_code == 404

    def test_missing_sale(self, api):
        response = api.delete(f"/api/sales/{uuid4()}")
        assert response.status_code == 404
        assert response.json()["detail"]["error"] == "SaleNotFound"

    def test_compensation_failure_is_500(self, api, monkeypatch):
        from gemtrade.services.errors import PersistenceFailed
        from gemtrade.services.stores import SaleStore

        _stone(api)

        def broken(self, *args):
            raise PersistenceFailed("Replace sale line items", "timeout")

        monkeypatch.setattr(SaleStore, "replace_line_items", broken)
        monkeypatch.setattr(SaleStore, "delete_sale", broken)

        response = _sale(api, ("RUBY-001", 1))
        assert response.status_code == 500
        detail = response.json()["detail"]
        assert detail["error"] == "CompensationFailed"
        assert detail["requires_manual_reconciliation"] is True

    @pytest.mark.parametrize("as_of,count", [("2026-03-01", 1), ("2026-04-01", 0)])
    def test_summary(self, api, as_of, count):
        _stone(api)
        _sale(api, ("RUBY-001", 1))
        summary = api.get("/api/sales/summary", params={"as_of": as_of}).json()
        assert summary["sales_count"] == count
        assert summary["available_items"] == 1

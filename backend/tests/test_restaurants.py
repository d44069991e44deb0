"""Restaurant setup, tax ID validation, updates and dashboard stats."""

import pytest

from siampos.services.restaurant_service import is_valid_thai_tax_id

RESTAURANTS = "/api/v1/restaurant"


class TestThaiTaxId:
    @pytest.mark.parametrize("tax_id", ["1234567890121", "9999999999994", "1111111111119"])
    def test_valid(self, tax_id):
        assert is_valid_thai_tax_id(tax_id)

    @pytest.mark.parametrize("tax_id", ["1234567890123", "123456789012", "12345678901211", "abcdefghijklm", ""])
    def test_invalid(self, tax_id):
        assert not is_valid_thai_tax_id(tax_id)


class TestCreateRestaurant:
    def _payload(self, **overrides):
        payload = {
            "name_th": "ครัวคุณยาย",
            "name_en": "Grandma's Kitchen",
            "tax_id": "1111111111119",
            "email": "hello@grandma.example.com",
            "promptpay_id": "0899999999",
        }
        payload.update(overrides)
        return payload

    def test_create(self, client):
        response = client.post(RESTAURANTS, json=self._payload())
        assert response.status_code == 201
        data = response.json()["data"]
        assert data["tax_id"] == "1111111111119"
        assert data["id"]

    def test_duplicate_tax_id(self, client, restaurant):
        response = client.post(RESTAURANTS, json=self._payload(tax_id=restaurant.tax_id))
        assert response.status_code == 409
        assert response.json()["code"] == "TAX_ID_EXISTS"

    def test_malformed_tax_id(self, client):
        response = client.post(RESTAURANTS, json=self._payload(tax_id="12345"))
        assert response.status_code == 400
        assert response.json()["details"][0]["field"] == "tax_id"

    def test_invalid_email(self, client):
        response = client.post(RESTAURANTS, json=self._payload(email="not-an-email"))
        assert response.status_code == 400


class TestValidateTaxId:
    def _validate(self, client, tax_id):
        response = client.post(f"{RESTAURANTS}/validate-tax-id", json={"tax_id": tax_id})
        assert response.status_code == 200
        return response.json()["data"]

    def test_valid_and_free(self, client):
        assert self._validate(client, "1111111111119")["valid"] is True

    def test_bad_checksum(self, client):
        result = self._validate(client, "1234567890123")
        assert result == {"valid": False, "message": "Invalid Thai tax ID"}

    def test_dashes_are_ignored(self, client):
        assert self._validate(client, "1-1111-11111-11-9")["valid"] is True

    def test_already_registered(self, client, restaurant):
        result = self._validate(client, restaurant.tax_id)
        assert result == {"valid": False, "message": "Tax ID is already registered"}


class TestReadAndUpdate:
    def test_staff_can_read_own_restaurant(self, client, restaurant, staff_headers):
        response = client.get(f"{RESTAURANTS}/{restaurant.id}", headers=staff_headers)
        assert response.status_code == 200
        assert response.json()["data"]["name_en"] == "Baan Thai"

    def test_owner_updates(self, client, restaurant, owner_headers):
        response = client.put(
            f"{RESTAURANTS}/{restaurant.id}",
            json={"name_en": "Baan Thai Express", "promptpay_id": "0811111111"},
            headers=owner_headers,
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["name_en"] == "Baan Thai Express"
        assert data["promptpay_id"] == "0811111111"
        assert data["name_th"] == restaurant.name_th

    def test_admin_updates(self, client, restaurant, admin_headers):
        response = client.put(f"{RESTAURANTS}/{restaurant.id}", json={"phone": "021234567"}, headers=admin_headers)
        assert response.status_code == 200

    def test_update_to_taken_tax_id(self, client, restaurant, other_restaurant, owner_headers):
        response = client.put(
            f"{RESTAURANTS}/{restaurant.id}", json={"tax_id": other_restaurant.tax_id}, headers=owner_headers
        )
        assert response.status_code == 409

    def test_keeping_own_tax_id_is_fine(self, client, restaurant, owner_headers):
        response = client.put(
            f"{RESTAURANTS}/{restaurant.id}", json={"tax_id": restaurant.tax_id}, headers=owner_headers
        )
        assert response.status_code == 200

    def test_requires_auth(self, client, restaurant):
        assert client.get(f"{RESTAURANTS}/{restaurant.id}").status_code == 401


class TestRestaurantStats:
    def test_counts_and_revenue(self, client, restaurant, owner, staff, staff_headers, owner_headers, order_payload):
        for _ in range(2):
            assert client.post("/api/v1/order", json=order_payload, headers=staff_headers).status_code == 201
        cancelled = client.post("/api/v1/order", json=order_payload, headers=staff_headers).json()["data"]
        client.patch(
            f"/api/v1/order/{cancelled['id']}/cancel", json={"reason": "customer left"}, headers=staff_headers
        )

        response = client.get(f"{RESTAURANTS}/{restaurant.id}/stats", headers=owner_headers)
        assert response.status_code == 200
        stats = response.json()["data"]
        assert stats["totalOrders"] == 3
        # cancelled orders earn nothing
        assert stats["totalRevenue"] == "526.50"
        assert stats["menuCount"] == 2
        assert stats["userCount"] == 2
        assert stats["period"] == "today"

    def test_empty_restaurant(self, client, restaurant, owner_headers):
        stats = client.get(f"{RESTAURANTS}/{restaurant.id}/stats?period=month", headers=owner_headers).json()["data"]
        assert stats["totalOrders"] == 0
        assert stats["totalRevenue"] == "0.00"
        assert stats["period"] == "month"

    def test_unknown_period(self, client, restaurant, owner_headers):
        response = client.get(f"{RESTAURANTS}/{restaurant.id}/stats?period=year", headers=owner_headers)
        assert response.status_code == 400

"""
Tables API Integration Tests
"""
import uuid
import pytest
from datetime import timedelta
from django.utils import timezone

from orders.models import Order
from tables.models import Table


@pytest.mark.django_db
class TestTablesAPI:
    def test_unauthenticated(self, api_client, table):
        response = api_client.get("/api/tables/")
        assert response.status_code in [401, 403]

    def test_list_returns_effective_statuses(self, authenticated_client, scenario_order, table_factory, branch_id):
        table_factory("T9", status=Table.TableStatus.OCCUPIED)

        response = authenticated_client.get("/api/tables/", {"branch_id": str(branch_id)})

        assert response.status_code == 200
        by_number = {t["table_number"]: t for t in response.data}
        assert by_number["T1"]["status"] == "occupied"
        assert by_number["T1"]["current_order_id"] == str(scenario_order.pk)
        assert by_number["T9"]["status"] == "available"
        assert by_number["T9"]["stored_status"] == "occupied"

    def test_list_rejects_malformed_branch(self, authenticated_client, db):
        response = authenticated_client.get("/api/tables/", {"branch_id": "not-a-uuid"})

        assert response.status_code == 400
        assert response.data["error"]["kind"] == "validation_error"

    def test_retrieve(self, authenticated_client, table):
        response = authenticated_client.get(f"/api/tables/{table.pk}/")

        assert response.status_code == 200
        assert response.data["table_number"] == "T1"
        assert response.data["status"] == "available"

    def test_retrieve_unknown(self, authenticated_client, db):
        response = authenticated_client.get(f"/api/tables/{uuid.uuid4()}/")

        assert response.status_code == 404
        assert response.data["error"]["kind"] == "not_found"

    def test_release_via_status(self, authenticated_client, scenario_order, table):
        response = authenticated_client.post(
            f"/api/tables/{table.pk}/status/", {"status": "available"}, format="json"
        )

        assert response.status_code == 200
        assert response.data["status"] == "available"
        scenario_order.refresh_from_db()
        assert scenario_order.status == Order.OrderStatus.CANCELLED

    def test_manual_occupied_rejected(self, authenticated_client, table):
        response = authenticated_client.post(
            f"/api/tables/{table.pk}/status/", {"status": "occupied"}, format="json"
        )

        assert response.status_code == 400
        assert response.data["error"]["kind"] == "validation_error"

    def test_reserve_and_cancel(self, authenticated_client, table):
        start = timezone.now() + timedelta(hours=1)
        response = authenticated_client.post(
            f"/api/tables/{table.pk}/reserve/",
            {
                "name": "Ada",
                "phone": "555-0100",
                "party_size": 3,
                "reserved_for": start.isoformat(),
                "reserved_until": (start + timedelta(hours=2)).isoformat(),
            },
            format="json",
        )

        assert response.status_code == 200, response.data
        assert response.data["status"] == "reserved"
        assert response.data["reserved_by"] == {"name": "Ada", "phone": "555-0100", "party_size": 3}

        response = authenticated_client.post(f"/api/tables/{table.pk}/cancel-reservation/")
        assert response.status_code == 200
        assert response.data["status"] == "available"

    def test_reserve_occupied_table_conflicts(self, authenticated_client, scenario_order, table):
        start = timezone.now() + timedelta(hours=1)
        response = authenticated_client.post(
            f"/api/tables/{table.pk}/reserve/",
            {
                "name": "Ada",
                "party_size": 2,
                "reserved_for": start.isoformat(),
                "reserved_until": (start + timedelta(hours=1)).isoformat(),
            },
            format="json",
        )

        assert response.status_code == 409
        assert response.data["error"]["kind"] == "invalid_state"

    def test_cancel_reservation_on_free_table(self, authenticated_client, table):
        response = authenticated_client.post(f"/api/tables/{table.pk}/cancel-reservation/")

        assert response.status_code == 409
        assert response.data["error"]["kind"] == "invalid_state"

    def test_stats(self, authenticated_client, scenario_order, second_table, branch_id):
        response = authenticated_client.get("/api/tables/stats/", {"branch_id": str(branch_id)})

        assert response.status_code == 200
        assert response.data["total"] == 2
        assert response.data["occupied"] == 1
        assert response.data["available"] == 1
        assert response.data["total_capacity"] == 6
        assert response.data["occupancy_rate"] == 50.0

    def test_stats_requires_branch(self, authenticated_client):
        response = authenticated_client.get("/api/tables/stats/")

        assert response.status_code == 400

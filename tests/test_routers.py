"""
HTTP surface tests through FastAPI's TestClient.

The database and the external inquiry source are replaced through
dependency overrides; the lifespan is not entered, so no MongoDB is needed.

Run with: pytest tests/test_routers.py -v
"""
import pytest
from fastapi.testclient import TestClient
from pymongo.errors import ServerSelectionTimeoutError

from app.core.database import get_database
from app.main import app
from app.routers.deps import get_external_client
from app.services.normalizer import normalize_external_inquiry
from conftest import AGENT_A, AGENT_B, FakeExternalClient, auth_header

ADMIN_ID = "65a1f0c2e4b0a1b2c3d4e5aa"
ADMIN = auth_header(ADMIN_ID, "admin")
AGENT = auth_header(AGENT_A, "agent")
AGENT_B_HEADER = auth_header(AGENT_B, "agent")


@pytest.fixture
def external():
    return FakeExternalClient([
        normalize_external_inquiry({"id": "ext-1", "name": "Amina", "email": "amina@example.com"}),
        normalize_external_inquiry({"id": "ext-2", "name": "Bilal", "email": "bilal@example.com"}),
    ])


@pytest.fixture
def client(db, external):
    app.dependency_overrides[get_database] = lambda: db
    app.dependency_overrides[get_external_client] = lambda: external
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()


class TestAuth:

    def test_missing_token(self, client):
        response = client.get("/api/inquiries")
        assert response.status_code == 401
        assert response.json() == {"success": False, "message": "Not authorized"}

    def test_bad_token(self, client):
        response = client.get("/api/inquiries", headers={"Authorization": "Bearer not.a.jwt"})
        assert response.status_code == 401

    def test_agent_blocked_from_admin_routes(self, client):
        assert client.get("/api/bookings", headers=AGENT).status_code == 403
        assert client.get("/api/agents", headers=AGENT).status_code == 403
        assert client.put("/api/inquiries/ext-1/assign", json={"assignedAgent": AGENT_A}, headers=AGENT).status_code == 403


class TestInquiryRoutes:

    def test_admin_list(self, client, db):
        db["inquiries"].seed({"externalId": "ext-1", "customerName": "Amina", "assignedAgent": AGENT_A})

        response = client.get("/api/inquiries", headers=ADMIN)

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert [(i["id"], i["isExternal"]) for i in body["data"]][0] == ("ext-2", True)
        assert body["data"][1]["externalId"] == "ext-1"
        assert body["data"][1]["assignedAgent"]["name"] == "Agent A"
        assert body["data"][1]["customerName"] == "Amina"

    def test_agent_list(self, client, db, external):
        db["inquiries"].seed(
            {"externalId": "ext-1", "assignedAgent": AGENT_A},
            {"externalId": "ext-9", "assignedAgent": AGENT_B},
        )

        data = client.get("/api/inquiries", headers=AGENT).json()["data"]

        assert [i["externalId"] for i in data] == ["ext-1"]
        assert external.calls == 0

    def test_assign_external_with_inquiry_data(self, client, db):
        response = client.put(
            "/api/inquiries/ext-2/assign",
            json={
                "assignedAgent": AGENT_B,
                "inquiryData": {"id": "ext-2", "name": "Bilal", "email": "bilal@example.com",
                                "package_name": "Silver", "price_triple": 1100},
            },
            headers=ADMIN,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Inquiry assigned to agent successfully"
        assert body["data"]["status"] == "in-progress"
        assert body["data"]["assignedAgent"] == {
            "id": AGENT_B, "name": "Agent B", "email": "b@agency.test", "source": "agents",
        }
        assert db["bookings"].docs[0]["packagePrice"] == "1100"

        listed = client.get("/api/inquiries", headers=ADMIN).json()["data"]
        assert [i["id"] for i in listed if i["isExternal"]] == ["ext-1"]

    def test_assign_unknown_inquiry(self, client):
        response = client.put("/api/inquiries/ext-404/assign", json={"assignedAgent": AGENT_A}, headers=ADMIN)
        assert response.status_code == 404
        assert "synced" in response.json()["message"]

    def test_assign_requires_agent(self, client):
        response = client.put("/api/inquiries/ext-1/assign", json={}, headers=ADMIN)
        assert response.status_code == 400
        assert response.json()["message"] == "Agent ID is required"

    def test_public_create(self, client, db):
        response = client.post("/api/inquiries", json={"name": "Omar", "email": "omar@example.com", "message": "Hi"})

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["customerName"] == "Omar"
        assert data["isExternal"] is False
        assert data["id"] == str(db["inquiries"].docs[0]["_id"])

    def test_public_create_requires_email(self, client):
        response = client.post("/api/inquiries", json={"name": "Omar"})
        assert response.status_code == 400

    def test_get_update_respond_delete(self, client, db):
        [doc] = db["inquiries"].seed({"externalId": "ext-3", "assignedAgent": AGENT_A, "status": "in-progress"})
        path = f"/api/inquiries/{doc['_id']}"

        assert client.get(path, headers=AGENT).json()["data"]["externalId"] == "ext-3"
        assert client.put(path, json={"status": "resolved"}, headers=AGENT).json()["data"]["status"] == "resolved"

        responses = client.post(f"{path}/responses", json={"message": "Called"}, headers=AGENT).json()["data"]["responses"]
        assert responses[0]["responder"] == AGENT_A

        assert client.post(f"{path}/responses", json={"message": ""}, headers=AGENT).status_code == 422
        assert client.delete(path, headers=AGENT).status_code == 403
        assert client.delete(path, headers=ADMIN).status_code == 200
        assert db["inquiries"].docs == []

    def test_forward_webhook_requires_api_key(self, client, db):
        [doc] = db["inquiries"].seed({"customerName": "Omar"})
        path = f"/api/inquiries/{doc['_id']}/forward-webhook"

        assert client.post(path).status_code == 401
        assert client.post(path, headers={"X-Api-Key": "wrong"}).status_code == 401

        # no webhook target configured in tests
        response = client.post(path, headers={"X-Api-Key": "test-admin-key"})
        assert response.status_code == 502
        assert response.json()["success"] is False

    def test_persistence_failure(self, client, db):
        db["inquiries"].fail = ServerSelectionTimeoutError("no primary")
        response = client.get("/api/inquiries", headers=ADMIN)
        assert response.status_code == 500
        assert response.json() == {"success": False, "message": "Failed to list inquiries"}

    def test_unexpected_failure(self, client, db):
        db["agents"].fail = RuntimeError("driver exploded")
        response = client.get("/api/agents", headers=ADMIN)
        assert response.status_code == 500
        assert response.json()["message"] == "Internal server error"
        assert "RuntimeError" in response.json()["details"]


class TestBookingRoutes:

    def test_create_and_list_mine(self, client):
        response = client.post(
            "/api/bookings",
            json={"customerName": "Omar", "customerEmail": "omar@example.com",
                  "package": "Gold", "date": "2026-05-01T00:00:00", "pnr": "ab12cd"},
            headers=AGENT,
        )
        assert response.status_code == 201
        assert response.json()["pnr"] == "AB12CD"

        mine = client.get("/api/bookings/my", headers=AGENT).json()
        assert [b["customerName"] for b in mine] == ["Omar"]

    def test_invalid_pnr(self, client):
        response = client.post(
            "/api/bookings",
            json={"customerName": "Omar", "customerEmail": "o@example.com",
                  "package": "Gold", "date": "2026-05-01T00:00:00", "pnr": "AB"},
            headers=AGENT,
        )
        assert response.status_code == 422

    def test_admin_approval_and_orphans(self, client, db):
        [doc] = db["bookings"].seed({"customerName": "Omar", "agent": AGENT_A, "inquiryId": "ext-1"})

        response = client.put(f"/api/bookings/{doc['_id']}/approve", headers=ADMIN)
        assert response.json()["booking"]["status"] == "confirmed"

        orphans = client.get("/api/bookings/orphans", headers=ADMIN).json()["data"]
        assert [o["id"] for o in orphans] == [str(doc["_id"])]

    def test_unknown_booking(self, client):
        assert client.get("/api/bookings/not-an-id", headers=ADMIN).status_code == 404


class TestAgentRoutes:

    def test_list_and_get(self, client):
        agents = client.get("/api/agents", headers=ADMIN).json()
        assert [a["name"] for a in agents] == ["Agent B"]
        assert "password" not in agents[0]

        assert client.get(f"/api/agents/{AGENT_B}", headers=ADMIN).json()["email"] == "b@agency.test"
        assert client.get(f"/api/agents/{AGENT_A}", headers=ADMIN).status_code == 404

    def test_performance(self, client, db):
        db["bookings"].seed({"agent": AGENT_A, "totalAmount": 300})
        body = client.get("/api/agents/performance", headers=ADMIN).json()
        assert body == {"ok": True, "data": [{"agent": AGENT_A, "bookings": 1, "profit": 300.0}]}

    def test_performance_with_text_totals(self, client, db):
        db["bookings"].seed(
            {"agent": AGENT_A, "costing": {"totals": {"profit": "250"}}},
            {"agent": AGENT_A, "costing": {"totals": {"totalSale": "n/a"}}},
        )
        response = client.get("/api/agents/performance", headers=ADMIN)
        assert response.status_code == 200
        assert response.json()["data"] == [{"agent": AGENT_A, "bookings": 2, "profit": 250.0}]

    def test_agent_updates_own_profile(self, client, db):
        response = client.put(
            f"/api/agents/{AGENT_B}",
            json={"phone": "555-0199", "monthlyTarget": 20, "role": "admin", "password": "x"},
            headers=AGENT_B_HEADER,
        )

        assert response.status_code == 200
        assert response.json()["phone"] == "555-0199"
        stored = db["agents"].docs[0]
        assert stored["monthlyTarget"] == 20
        assert "role" not in stored
        assert stored["password"] == "hashed"

    def test_agent_cannot_update_another(self, client, db):
        response = client.put(f"/api/agents/{AGENT_B}", json={"name": "Someone"}, headers=AGENT)
        assert response.status_code == 403
        assert db["agents"].docs[0]["name"] == "Agent B"

    def test_update_requires_a_field(self, client):
        response = client.put(f"/api/agents/{AGENT_B}", json={"role": "admin"}, headers=ADMIN)
        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_update_unknown_agent(self, client):
        response = client.put(f"/api/agents/{AGENT_A}", json={"name": "A"}, headers=ADMIN)
        assert response.status_code == 404

    def test_admin_updates_any_agent(self, client, db):
        response = client.put(f"/api/agents/{AGENT_B}", json={"department": "Hajj"}, headers=ADMIN)
        assert response.status_code == 200
        assert db["agents"].docs[0]["department"] == "Hajj"

    def test_delete(self, client, db):
        assert client.delete(f"/api/agents/{AGENT_B}", headers=AGENT_B_HEADER).status_code == 403
        assert len(db["agents"].docs) == 1

        response = client.delete(f"/api/agents/{AGENT_B}", headers=ADMIN)
        assert response.status_code == 200
        assert response.json() == {"message": "Agent removed"}
        assert db["agents"].docs == []

        assert client.delete(f"/api/agents/{AGENT_B}", headers=ADMIN).status_code == 404


class TestRoot:

    def test_banner(self, client):
        body = client.get("/").json()
        assert body["service"] == "Travel Back Office"
        assert body["status"] == "operational"

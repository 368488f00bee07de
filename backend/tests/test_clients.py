from sqlalchemy import delete

from autocrew.models import Membership
from autocrew.models.role import UserRole


def client_payload(company_name="Acme Corporation", **overrides):
    payload = {
        "company_name": company_name,
        "contact_person_name": "Jane Smith",
        "contact_email": "jane@acme.com",
        "plan": "professional",
    }
    payload.update(overrides)
    return payload


class TestCreateClient:
    async def test_generates_code_and_slug(self, client, super_headers):
        response = await client.post("/api/clients", json=client_payload(), headers=super_headers)

        assert response.status_code == 201
        body = response.json()
        assert body["client_code"] == "ACME-001"
        assert body["slug"] == "acme-corporation"
        assert body["status"] == "trial"

    async def test_same_name_gets_next_code_and_suffixed_slug(self, client, super_headers):
        first = await client.post("/api/clients", json=client_payload(), headers=super_headers)
        second = await client.post("/api/clients", json=client_payload("Acme Corp."), headers=super_headers)
        third = await client.post("/api/clients", json=client_payload(), headers=super_headers)

        assert first.json()["client_code"] == "ACME-001"
        assert second.json()["client_code"] == "ACME-002"
        assert second.json()["slug"] == "acme-corp"
        assert third.json()["client_code"] == "ACME-003"
        assert third.json()["slug"] == "acme-corporation-1"

    async def test_unusable_name_falls_back(self, client, super_headers):
        response = await client.post("/api/clients", json=client_payload("!!!"), headers=super_headers)

        assert response.status_code == 201
        assert response.json()["client_code"] == "CLIENT-001"
        assert response.json()["slug"] == "client-001"

    async def test_rejects_invalid_plan(self, client, super_headers):
        response = await client.post(
            "/api/clients", json=client_payload(plan="platinum"), headers=super_headers
        )
        assert response.status_code == 422

    async def test_org_admin_cannot_create(self, client, seed):
        org = await seed.client()
        user = await seed.user(orgs=(org,))
        headers = await seed.auth_headers(user)

        response = await client.post("/api/clients", json=client_payload(), headers=headers)

        assert response.status_code == 403
        assert response.json()["detail"] == "Permission denied: manage_clients"


class TestReadClients:
    async def test_org_admin_lists_only_own_clients(self, client, seed):
        org_a = await seed.client("Alpha Ltd")
        await seed.client("Beta Ltd")
        user = await seed.user(orgs=(org_a,))
        headers = await seed.auth_headers(user)

        response = await client.get("/api/clients", headers=headers)

        assert response.status_code == 200
        assert [row["id"] for row in response.json()] == [str(org_a.id)]

    async def test_member_of_nothing_lists_nothing(self, client, seed):
        await seed.client()
        user = await seed.user(role=UserRole.VIEWER)
        headers = await seed.auth_headers(user)

        response = await client.get("/api/clients", headers=headers)

        assert response.status_code == 200
        assert response.json() == []

    async def test_super_admin_lists_everything_with_filters(self, client, seed, super_headers):
        await seed.client("Alpha Ltd", plan="starter", status="active")
        await seed.client("Beta Ltd", plan="enterprise", status="inactive")

        response = await client.get("/api/clients", headers=super_headers)
        assert len(response.json()) == 2

        response = await client.get("/api/clients", params={"plan": "enterprise"}, headers=super_headers)
        assert [row["company_name"] for row in response.json()] == ["Beta Ltd"]

        response = await client.get("/api/clients", params={"status": "active"}, headers=super_headers)
        assert [row["company_name"] for row in response.json()] == ["Alpha Ltd"]

        response = await client.get(
            "/api/clients", params={"sort_by": "company_name", "order": "asc"}, headers=super_headers
        )
        assert [row["company_name"] for row in response.json()] == ["Alpha Ltd", "Beta Ltd"]

    async def test_foreign_client_looks_missing(self, client, seed):
        org_a = await seed.client("Alpha Ltd")
        org_b = await seed.client("Beta Ltd")
        user = await seed.user(orgs=(org_a,))
        headers = await seed.auth_headers(user)

        response = await client.get(f"/api/clients/{org_b.id}", headers=headers)

        assert response.status_code == 404
        assert response.json()["detail"] == "Client not found"

    async def test_membership_removed_after_login_takes_effect(self, client, seed, session_factory):
        org = await seed.client()
        user = await seed.user(orgs=(org,))
        headers = await seed.auth_headers(user)
        assert (await client.get(f"/api/clients/{org.id}", headers=headers)).status_code == 200

        async with session_factory() as db:
            await db.execute(delete(Membership).where(Membership.user_id == user.id))
            await db.commit()

        assert (await client.get(f"/api/clients/{org.id}", headers=headers)).status_code == 404

    async def test_list_client_crews(self, client, seed, super_headers):
        org = await seed.client()
        crew = await seed.crew(org)
        other = await seed.client()
        await seed.crew(other)

        response = await client.get(f"/api/clients/{org.id}/crews", headers=super_headers)

        assert response.status_code == 200
        assert [row["id"] for row in response.json()] == [str(crew.id)]


class TestUpdateDeleteClient:
    async def test_update_keeps_code_and_slug(self, client, super_headers):
        created = (await client.post("/api/clients", json=client_payload(), headers=super_headers)).json()

        response = await client.patch(
            f"/api/clients/{created['id']}",
            json={"company_name": "Globex Inc", "status": "active"},
            headers=super_headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["company_name"] == "Globex Inc"
        assert body["status"] == "active"
        assert body["client_code"] == created["client_code"]
        assert body["slug"] == created["slug"]

    async def test_required_field_cannot_be_cleared(self, client, seed, super_headers):
        org = await seed.client()

        response = await client.patch(
            f"/api/clients/{org.id}", json={"company_name": None}, headers=super_headers
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "company_name cannot be null"

    async def test_delete_cascades(self, client, seed, super_headers):
        org = await seed.client()
        crew = await seed.crew(org)
        await seed.conversation(crew)
        await seed.document(crew)

        response = await client.delete(f"/api/clients/{org.id}", headers=super_headers)
        assert response.status_code == 200
        assert response.json() == {"status": "deleted", "client_id": str(org.id)}

        assert (await client.get(f"/api/clients/{org.id}", headers=super_headers)).status_code == 404
        assert (await client.get(f"/api/crews/{crew.id}", headers=super_headers)).status_code == 404
        assert (await client.get("/api/conversations", headers=super_headers)).json() == []

    async def test_deleted_code_is_not_reused_while_higher_exists(self, client, super_headers):
        first = (await client.post("/api/clients", json=client_payload(), headers=super_headers)).json()
        await client.post("/api/clients", json=client_payload(), headers=super_headers)
        await client.delete(f"/api/clients/{first['id']}", headers=super_headers)

        response = await client.post("/api/clients", json=client_payload(), headers=super_headers)
        assert response.json()["client_code"] == "ACME-003"

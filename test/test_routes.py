"""
HTTP API tests: auth flow, scoped reads, campaigns, approvals and onboarding
"""

import pytest

from loyalty_panel.constants.roles import UserRole
from loyalty_panel.models import TenantStatus
from utils.seed import TEST_PASSWORD, create_location, create_program, create_tenant, create_user, login

ONBOARDING = {
    "business_name": "Kawiarnia Żółw",
    "business_type": "cafe",
    "contact_email": "owner@coderno.pl",
    "contact_phone": "+48 123 456 789",
    "contact_person": "Anna Nowak",
    "location_name": "Rynek",
    "location_address": "Rynek 5, Kraków",
    "stamps_required": 8,
    "reward_description": "Free cake",
}


@pytest.fixture
async def world(test_db):
    """Two tenants with one owner each, a manager, a viewer and a super admin."""
    coffee = await create_tenant(test_db, "Coderno Coffee")
    bakery = await create_tenant(test_db, "Bakery")
    await create_location(test_db, coffee)
    await create_location(test_db, bakery, "Stare Miasto")
    await create_program(test_db, coffee)
    await create_user(test_db, "admin@coderno.pl", UserRole.SUPER_ADMIN)
    await create_user(test_db, "owner@coderno.pl", UserRole.BUSINESS_OWNER, tenant_id=coffee.id)
    await create_user(test_db, "manager@coderno.pl", UserRole.MANAGER, tenant_id=coffee.id)
    await create_user(test_db, "viewer@coderno.pl", UserRole.VIEWER, tenant_id=coffee.id)
    return {"coffee": coffee, "bakery": bakery}


# ══════════════════════════════════════════════════════════════════════════════
# Auth
# ══════════════════════════════════════════════════════════════════════════════


class TestAuthRoutes:
    @pytest.mark.asyncio
    async def test_login_and_me(self, client, world):
        headers = await login(client, "owner@coderno.pl")
        response = await client.get("/auth/me", headers=headers)

        assert response.status_code == 200
        body = response.json()
        assert body["role"] == "business_owner"
        assert body["tenant_id"] == world["coffee"].id
        assert body["permissions"]["can_create_locations"] is True
        assert body["permissions"]["can_view_all_tenants"] is False

    @pytest.mark.asyncio
    async def test_wrong_password(self, client, world):
        response = await client.post("/auth/login", json={"email": "owner@coderno.pl", "password": "nope12345"})
        assert response.status_code == 401
        assert response.json()["error"]["status_code"] == 401

    @pytest.mark.asyncio
    async def test_account_without_role_cannot_sign_in(self, client, test_db):
        await create_user(test_db, "norole@coderno.pl")
        response = await client.post("/auth/login", json={"email": "norole@coderno.pl", "password": TEST_PASSWORD})
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_missing_token(self, client):
        response = await client.get("/auth/me")
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_logout_revokes_token(self, client, world):
        headers = await login(client, "owner@coderno.pl")
        assert (await client.post("/auth/logout", headers=headers)).status_code == 204
        assert (await client.get("/auth/me", headers=headers)).status_code == 401

    @pytest.mark.asyncio
    async def test_register_gives_viewer_without_tenant(self, client):
        response = await client.post(
            "/auth/register",
            json={"email": "new@coderno.pl", "password": "Secret123", "password_confirmation": "Secret123"},
        )
        assert response.status_code == 201
        user = response.json()["user"]
        assert user["role"] == "viewer"
        assert user["tenant_id"] is None

    @pytest.mark.asyncio
    async def test_register_password_mismatch(self, client):
        response = await client.post(
            "/auth/register",
            json={"email": "new@coderno.pl", "password": "Secret123", "password_confirmation": "Secret124"},
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_verify_password(self, client, world):
        headers = await login(client, "owner@coderno.pl")
        ok = await client.post("/auth/verify-password", json={"password": TEST_PASSWORD}, headers=headers)
        bad = await client.post("/auth/verify-password", json={"password": "wrong"}, headers=headers)
        assert ok.json() == {"valid": True}
        assert bad.json() == {"valid": False}


# ══════════════════════════════════════════════════════════════════════════════
# Dashboard / tenants
# ══════════════════════════════════════════════════════════════════════════════


class TestDashboardRoutes:
    @pytest.mark.asyncio
    async def test_super_admin_sees_everything(self, client, world):
        headers = await login(client, "admin@coderno.pl")
        response = await client.get("/dashboard", headers=headers)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["stats"]["total_tenants"] == 2
        assert data["stats"]["total_locations"] == 2

    @pytest.mark.asyncio
    async def test_owner_sees_own_tenant_only(self, client, world):
        headers = await login(client, "owner@coderno.pl")
        response = await client.get("/dashboard", headers=headers)

        data = response.json()["data"]
        assert data["scope"] == f"tenant:{world['coffee'].id}"
        assert [t["id"] for t in data["tenants"]] == [world["coffee"].id]
        assert data["stats"]["active_programs"] == 1

    @pytest.mark.asyncio
    async def test_owner_asking_for_other_tenant_gets_nothing(self, client, world):
        headers = await login(client, "owner@coderno.pl")
        response = await client.get("/dashboard", params={"tenant_id": world["bakery"].id}, headers=headers)

        data = response.json()["data"]
        assert data["tenants"] == []
        assert data["stats"]["total_customers"] == 0
        assert response.json()["summary"]["customers_trend"] == "0%"

    @pytest.mark.asyncio
    async def test_clear_cache(self, client, world):
        headers = await login(client, "owner@coderno.pl")
        assert (await client.post("/dashboard/cache/clear", headers=headers)).status_code == 204


class TestTenantRoutes:
    @pytest.mark.asyncio
    async def test_out_of_scope_tenant_is_not_found(self, client, world):
        headers = await login(client, "owner@coderno.pl")
        assert (await client.get(f"/tenants/{world['coffee'].id}", headers=headers)).status_code == 200
        assert (await client.get(f"/tenants/{world['bakery'].id}", headers=headers)).status_code == 404

    @pytest.mark.asyncio
    async def test_out_of_scope_list_is_empty(self, client, world):
        headers = await login(client, "owner@coderno.pl")
        response = await client.get(f"/tenants/{world['bakery'].id}/locations", headers=headers)
        assert response.json() == []

    @pytest.mark.asyncio
    async def test_manager_creates_location(self, client, world):
        headers = await login(client, "manager@coderno.pl")
        response = await client.post(
            f"/tenants/{world['coffee'].id}/locations",
            json={"name": "Oliwa", "address": "ul. Opacka 12, Gdańsk"},
            headers=headers,
        )
        assert response.status_code == 201
        assert response.json()["scan_code"].startswith("coderno-coffee-oliwa-")

    @pytest.mark.asyncio
    async def test_viewer_cannot_create_location(self, client, world):
        headers = await login(client, "viewer@coderno.pl")
        response = await client.post(
            f"/tenants/{world['coffee'].id}/locations",
            json={"name": "Oliwa", "address": "ul. Opacka 12, Gdańsk"},
            headers=headers,
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_activate_program(self, client, test_db, world):
        second = await create_program(test_db, world["coffee"], active=False, stamps_required=5)
        headers = await login(client, "owner@coderno.pl")

        response = await client.post(
            f"/tenants/{world['coffee'].id}/loyalty-programs/{second.id}/activate", headers=headers
        )
        programs = await client.get(f"/tenants/{world['coffee'].id}/loyalty-programs", headers=headers)

        assert response.status_code == 200
        assert len(programs.json()) == 2
        assert [p["id"] for p in programs.json() if p["active"]] == [second.id]

    @pytest.mark.asyncio
    async def test_manager_cannot_activate_program(self, client, test_db, world):
        second = await create_program(test_db, world["coffee"], active=False)
        headers = await login(client, "manager@coderno.pl")
        response = await client.post(
            f"/tenants/{world['coffee'].id}/loyalty-programs/{second.id}/activate", headers=headers
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_owner_updates_own_tenant(self, client, world):
        headers = await login(client, "owner@coderno.pl")
        response = await client.patch(
            f"/tenants/{world['coffee'].id}",
            json={"name": "Coderno Café", "logo_url": "https://cdn.test/logo.png", "status": "rejected"},
            headers=headers,
        )
        assert response.status_code == 200
        body = response.json()
        assert body["name"] == "Coderno Café"
        assert body["logo_url"] == "https://cdn.test/logo.png"
        assert body["contact_person"] == "Anna Nowak"
        assert body["status"] == "active"

    @pytest.mark.asyncio
    async def test_update_rejects_bad_contact_email(self, client, world):
        headers = await login(client, "owner@coderno.pl")
        response = await client.patch(
            f"/tenants/{world['coffee'].id}", json={"contact_email": "not-an-email"}, headers=headers
        )
        assert response.status_code == 400
        assert response.json()["error"]["details"]["field"] == "contact_email"

    @pytest.mark.asyncio
    async def test_update_needs_edit_permission_and_scope(self, client, world):
        manager = await login(client, "manager@coderno.pl")
        owner = await login(client, "owner@coderno.pl")
        denied = await client.patch(f"/tenants/{world['coffee'].id}", json={"name": "Renamed"}, headers=manager)
        other = await client.patch(f"/tenants/{world['bakery'].id}", json={"name": "Renamed"}, headers=owner)
        assert denied.status_code == 403
        assert denied.json()["error"]["details"]["required_permission"] == "can_edit_tenants"
        assert other.status_code == 404

    @pytest.mark.asyncio
    async def test_super_admin_deletes_tenant_with_password(self, client, test_db, world):
        headers = await login(client, "admin@coderno.pl")
        bakery = world["bakery"]
        response = await client.request(
            "DELETE",
            f"/tenants/{bakery.id}",
            json={"password": TEST_PASSWORD, "confirm_name": "Bakery"},
            headers=headers,
        )
        assert response.status_code == 204
        assert (await client.get(f"/tenants/{bakery.id}", headers=headers)).status_code == 404
        assert (await client.get(f"/tenants/{bakery.id}/locations", headers=headers)).json() == []
        tenants = (await client.get("/tenants", headers=headers)).json()
        assert [t["id"] for t in tenants] == [world["coffee"].id]

    @pytest.mark.asyncio
    async def test_delete_with_wrong_password_keeps_tenant(self, client, world):
        headers = await login(client, "admin@coderno.pl")
        bakery = world["bakery"]
        response = await client.request(
            "DELETE",
            f"/tenants/{bakery.id}",
            json={"password": "Wrong1234", "confirm_name": "Bakery"},
            headers=headers,
        )
        assert response.status_code == 400
        assert response.json()["error"]["details"]["field"] == "password"
        assert (await client.get(f"/tenants/{bakery.id}", headers=headers)).status_code == 200

    @pytest.mark.asyncio
    async def test_delete_needs_matching_name(self, client, world):
        headers = await login(client, "admin@coderno.pl")
        response = await client.request(
            "DELETE",
            f"/tenants/{world['bakery'].id}",
            json={"password": TEST_PASSWORD, "confirm_name": "bakery"},
            headers=headers,
        )
        assert response.status_code == 400
        assert response.json()["error"]["details"]["field"] == "confirm_name"

    @pytest.mark.asyncio
    async def test_owner_cannot_delete_own_tenant(self, client, world):
        headers = await login(client, "owner@coderno.pl")
        response = await client.request(
            "DELETE",
            f"/tenants/{world['coffee'].id}",
            json={"password": TEST_PASSWORD, "confirm_name": "Coderno Coffee"},
            headers=headers,
        )
        assert response.status_code == 403
        assert response.json()["error"]["details"]["required_permission"] == "can_delete_tenants"

    @pytest.mark.asyncio
    async def test_profile_completeness(self, client, world):
        headers = await login(client, "admin@coderno.pl")
        coffee = await client.get(f"/tenants/{world['coffee'].id}/profile-completeness", headers=headers)
        bakery = await client.get(f"/tenants/{world['bakery'].id}/profile-completeness", headers=headers)

        assert coffee.json() == {
            "tenant_id": world["coffee"].id,
            "score": 5,
            "max_score": 7,
            "percent": 71,
            "missing": ["logo", "billing"],
        }
        assert bakery.json()["score"] == 4
        assert "loyalty_program" in bakery.json()["missing"]

    @pytest.mark.asyncio
    async def test_profile_completeness_out_of_scope(self, client, world):
        headers = await login(client, "owner@coderno.pl")
        response = await client.get(f"/tenants/{world['bakery'].id}/profile-completeness", headers=headers)
        assert response.status_code == 404


# ══════════════════════════════════════════════════════════════════════════════
# Campaigns
# ══════════════════════════════════════════════════════════════════════════════


class TestCampaignRoutes:
    @pytest.mark.asyncio
    async def test_send_list_and_stats(self, client, world, onesignal):
        headers = await login(client, "owner@coderno.pl")
        sent = await client.post("/campaigns", json={"title": "Hello", "message": "Coffee -20%"}, headers=headers)

        assert sent.status_code == 201
        assert sent.json()["success"] is True
        assert sent.json()["recipients"] == 42
        filters = onesignal.payloads()[0]["filters"]
        assert filters[0]["value"] == world["coffee"].id

        history = await client.get("/campaigns", headers=headers)
        assert [c["id"] for c in history.json()] == [sent.json()["campaign_id"]]

        stats = await client.get(f"/campaigns/{sent.json()['campaign_id']}/stats", headers=headers)
        assert stats.json() == {"sent": 40, "delivered": 12, "failed": 2, "remaining": 0}

    @pytest.mark.asyncio
    async def test_provider_failure_is_bad_gateway(self, client, world, onesignal):
        onesignal.create_status = 400
        onesignal.create_body = {"errors": ["All included players are not subscribed"]}
        headers = await login(client, "owner@coderno.pl")

        response = await client.post("/campaigns", json={"title": "Hello", "message": "Hi"}, headers=headers)

        assert response.status_code == 502
        assert response.json()["success"] is False
        assert response.json()["provider_status"] == 400

    @pytest.mark.asyncio
    async def test_blank_title(self, client, world):
        headers = await login(client, "owner@coderno.pl")
        response = await client.post("/campaigns", json={"title": " ", "message": "Hi"}, headers=headers)
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_manager_cannot_send(self, client, world):
        headers = await login(client, "manager@coderno.pl")
        response = await client.post("/campaigns", json={"title": "Hello", "message": "Hi"}, headers=headers)
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_diagnostic_segment_is_admin_only(self, client, world):
        headers = await login(client, "owner@coderno.pl")
        segments = await client.get("/campaigns/segments", headers=headers)
        response = await client.post(
            "/campaigns",
            json={"title": "T", "message": "M", "segment": "test_all_subscribers", "confirm_all_subscribers": True},
            headers=headers,
        )

        assert "test_all_subscribers" not in [s["value"] for s in segments.json()]
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_super_admin_must_pick_a_tenant(self, client, world):
        headers = await login(client, "admin@coderno.pl")
        response = await client.post("/campaigns", json={"title": "Hello", "message": "Hi"}, headers=headers)
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_unknown_segment(self, client, world):
        headers = await login(client, "owner@coderno.pl")
        response = await client.post("/campaigns/preview", json={"segment": "vip"}, headers=headers)
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_preview(self, client, world, onesignal):
        headers = await login(client, "owner@coderno.pl")
        response = await client.post("/campaigns/preview", json={"segment": "all_customers"}, headers=headers)

        assert response.json() == {"segment": "all_customers", "count": 42, "supported": True, "warnings": []}
        assert len(onesignal.calls("DELETE")) == 1

    @pytest.mark.asyncio
    async def test_stats_of_other_tenants_campaign(self, client, world):
        owner = await login(client, "owner@coderno.pl")
        sent = await client.post("/campaigns", json={"title": "Hello", "message": "Hi"}, headers=owner)

        admin = await login(client, "admin@coderno.pl")
        viewer = await login(client, "viewer@coderno.pl")
        campaign_id = sent.json()["campaign_id"]
        assert (await client.get(f"/campaigns/{campaign_id}/stats", headers=admin)).status_code == 200
        assert (await client.get("/campaigns/missing/stats", headers=viewer)).status_code == 404


# ══════════════════════════════════════════════════════════════════════════════
# Approvals / onboarding
# ══════════════════════════════════════════════════════════════════════════════


class TestApprovalRoutes:
    @pytest.mark.asyncio
    async def test_super_admin_only(self, client, world):
        headers = await login(client, "owner@coderno.pl")
        assert (await client.get("/approvals/pending", headers=headers)).status_code == 403

    @pytest.mark.asyncio
    async def test_review_flow(self, client, test_db, world):
        pending = await create_tenant(test_db, "New Place", status=TenantStatus.pending)
        headers = await login(client, "admin@coderno.pl")

        count = await client.get("/approvals/pending/count", headers=headers)
        short = await client.post(f"/approvals/{pending.id}/reject", json={"reason": "no"}, headers=headers)
        approved = await client.post(f"/approvals/{pending.id}/approve", headers=headers)
        again = await client.post(f"/approvals/{pending.id}/approve", headers=headers)

        assert count.json() == {"count": 1}
        assert short.status_code == 400
        assert approved.json()["tenant"]["status"] == "active"
        assert again.status_code == 409

    @pytest.mark.asyncio
    async def test_unknown_tenant(self, client, world):
        headers = await login(client, "admin@coderno.pl")
        assert (await client.get("/approvals/missing", headers=headers)).status_code == 404


class TestOnboardingRoutes:
    @pytest.mark.asyncio
    async def test_register_then_onboard(self, client):
        registered = await client.post(
            "/auth/register",
            json={"email": "new@coderno.pl", "password": "Secret123", "password_confirmation": "Secret123"},
        )
        headers = {"Authorization": f"Bearer {registered.json()['access_token']}"}

        response = await client.post("/onboarding", json=ONBOARDING, headers=headers)
        me = await client.get("/auth/me", headers=headers)
        again = await client.post("/onboarding", json=ONBOARDING, headers=headers)

        assert response.status_code == 201
        assert me.json()["role"] == "business_owner"
        assert me.json()["tenant_id"] == response.json()["tenant_id"]
        assert again.status_code == 400

    @pytest.mark.asyncio
    async def test_validate_is_public(self, client):
        response = await client.post("/onboarding/validate", json={**ONBOARDING, "contact_phone": "12"})
        assert response.json()["valid"] is False
        assert [e["field"] for e in response.json()["errors"]] == ["contact_phone"]


class TestMonitoringRoutes:
    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")
        body = response.json()
        assert body["status"] == "healthy"
        assert body["checks"]["database"]["status"] == "healthy"
        assert body["checks"]["push_provider"]["status"] == "healthy"

    @pytest.mark.asyncio
    async def test_metrics(self, client):
        response = await client.get("/metrics")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")

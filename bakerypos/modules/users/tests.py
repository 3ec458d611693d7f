"""
Tests for joining a store and managing its team
"""

from uuid import UUID

from sqlalchemy import select

from bakerypos.conftest import auth_headers, reload
from bakerypos.modules.auth.models import User, UserRole, UserStatus
from bakerypos.modules.stores.models import Store


class TestCompleteProfile:
    """Admins found a store, everyone else joins one by invite code"""

    async def test_admin_creates_store(self, client, make_user, session_factory):
        founder = await make_user(None, role=UserRole.CASHIER)
        response = await client.post("/users/complete-profile", headers=auth_headers(founder), json={
            "role": "admin", "storeName": "Kue Lapis Ibu"
        })
        assert response.status_code == 200
        body = response.json()
        assert body["role"] == "admin"
        assert body["accessLevel"] == "admin"
        assert body["status"] == "active"

        async with session_factory() as session:
            store = (await session.execute(select(Store).where(Store.id == UUID(body["storeId"])))).scalar_one()
            assert store.name == "Kue Lapis Ibu"
            assert len(store.invite_code) == 8

    async def test_join_by_invite_code_is_pending(self, client, make_user, sample_store):
        baker = await make_user(None)
        response = await client.post("/users/complete-profile", headers=auth_headers(baker), json={
            "role": "kitchen", "inviteCode": "bake1234"
        })
        assert response.status_code == 200
        body = response.json()
        assert body["storeId"] == str(sample_store.id)
        assert body["status"] == "pending"
        assert body["accessLevel"] == "kitchen_display"

        # pending members are kept out until approved
        response = await client.get("/products", headers=auth_headers(baker))
        assert response.status_code == 403

    async def test_invite_code_is_required(self, client, make_user):
        baker = await make_user(None)
        response = await client.post("/users/complete-profile", headers=auth_headers(baker), json={"role": "cashier"})
        assert response.status_code == 400
        assert response.json()["detail"] == "Invite code is required"

    async def test_unknown_invite_code(self, client, make_user):
        baker = await make_user(None)
        response = await client.post("/users/complete-profile", headers=auth_headers(baker), json={
            "role": "cashier", "inviteCode": "NOPE0000"
        })
        assert response.status_code == 400

    async def test_already_bound_user_conflicts(self, client, cashier_headers):
        response = await client.post("/users/complete-profile", headers=cashier_headers, json={
            "role": "admin", "storeName": "Second Shop"
        })
        assert response.status_code == 409


class TestTeam:

    async def test_approve_pending_member(self, client, admin_headers, make_user, sample_store):
        pending = await make_user(sample_store, status=UserStatus.PENDING)
        response = await client.put(f"/users/{pending.id}/approve", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["status"] == "active"

        response = await client.get("/products", headers=auth_headers(pending))
        assert response.status_code == 200

    async def test_reject_member(self, client, admin_headers, make_user, sample_store):
        pending = await make_user(sample_store, status=UserStatus.PENDING)
        response = await client.put(f"/users/{pending.id}/reject", headers=admin_headers)
        assert response.json()["status"] == "rejected"

    async def test_list_team_is_store_scoped(self, client, admin_headers, admin_user, cashier_user, make_user, other_store):
        await make_user(other_store)
        response = await client.get("/users/team", headers=admin_headers)
        assert {member["id"] for member in response.json()} == {str(admin_user.id), str(cashier_user.id)}

    async def test_remove_member(self, client, admin_headers, cashier_user, session_factory):
        response = await client.delete(f"/users/{cashier_user.id}", headers=admin_headers)
        assert response.status_code == 200
        async with session_factory() as session:
            removed = await reload(session, User, cashier_user.id)
            assert removed.store_id is None
            assert removed.status == UserStatus.REJECTED

    async def test_admin_cannot_remove_self(self, client, admin_headers, admin_user):
        response = await client.delete(f"/users/{admin_user.id}", headers=admin_headers)
        assert response.status_code == 400

    async def test_other_store_member_is_not_found(self, client, admin_headers, make_user, other_store):
        stranger = await make_user(other_store, status=UserStatus.PENDING)
        response = await client.put(f"/users/{stranger.id}/approve", headers=admin_headers)
        assert response.status_code == 404

    async def test_cashier_cannot_manage_team(self, client, cashier_headers):
        response = await client.get("/users/team", headers=cashier_headers)
        assert response.status_code == 403

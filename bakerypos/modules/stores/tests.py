"""
Tests for stores: profile, invite codes and the timezone every report relies on
"""

import pytest

from bakerypos.conftest import auth_headers
from bakerypos.core.config import settings
from bakerypos.core.exceptions import ValidationError
from bakerypos.modules.auth.utils import create_session_token
from bakerypos.modules.stores.service import generate_invite_code, validate_timezone


class TestStoreHelpers:

    def test_invite_code_shape(self):
        code = generate_invite_code()
        assert len(code) == 8
        assert code.isalnum() and code == code.upper()

    def test_timezone_validation(self):
        assert validate_timezone("Asia/Jakarta") == "Asia/Jakarta"
        with pytest.raises(ValidationError):
            validate_timezone("Mars/Olympus_Mons")


class TestStoreEndpoints:

    async def test_get_my_store(self, client, cashier_headers, sample_store):
        response = await client.get("/stores/me", headers=cashier_headers)
        assert response.status_code == 200
        assert response.json()["name"] == sample_store.name
        assert response.json()["timezone"] == "UTC"

    async def test_admin_updates_store(self, client, admin_headers):
        response = await client.put("/stores/me", headers=admin_headers, json={
            "name": "Roti Bakar Sore", "currency": "usd", "timezone": "Asia/Makassar"
        })
        assert response.status_code == 200
        body = response.json()
        assert body["name"] == "Roti Bakar Sore"
        assert body["currency"] == "USD"
        assert body["timezone"] == "Asia/Makassar"

    async def test_invalid_timezone_is_rejected(self, client, admin_headers):
        response = await client.put("/stores/me", headers=admin_headers, json={"timezone": "Nowhere/Land"})
        assert response.status_code == 400

    async def test_cashier_cannot_update_store(self, client, cashier_headers):
        response = await client.put("/stores/me", headers=cashier_headers, json={"name": "Mine now"})
        assert response.status_code == 403

    async def test_regenerate_invite_code(self, client, admin_headers, sample_store):
        response = await client.post("/stores/me/invite-code", headers=admin_headers)
        assert response.status_code == 200
        code = response.json()["inviteCode"]
        assert len(code) == 8
        assert code != sample_store.invite_code

    async def test_user_without_store_is_refused(self, client, make_user):
        loner = await make_user(None)
        response = await client.get("/stores/me", headers=auth_headers(loner))
        assert response.status_code == 403

    async def test_session_cookie_is_accepted(self, client, cashier_user):
        client.cookies.set(settings.SESSION_COOKIE_NAME, create_session_token(cashier_user.id))
        response = await client.get("/stores/me")
        assert response.status_code == 200

    async def test_garbage_token_is_401(self, client):
        response = await client.get("/stores/me", headers={"Authorization": "Bearer not-a-token"})
        assert response.status_code == 401

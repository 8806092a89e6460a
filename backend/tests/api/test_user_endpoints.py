from __future__ import annotations

import pytest

from tests.factories.user import DEFAULT_PASSWORD, AdminFactory, UserFactory
from tests.helpers.auth import API, bearer, login


@pytest.fixture()
def admin_headers(client, session):
    AdminFactory(employee_id="ADM900", first_name="Avery", last_name="Quinn")
    session.commit()
    return bearer(login(client, "ADM900", DEFAULT_PASSWORD)["data"]["access_token"])


@pytest.fixture()
def member(session):
    user = UserFactory(employee_id="USR900", first_name="Morgan", last_name="Lee")
    session.commit()
    return user


@pytest.fixture()
def member_headers(client, member):
    return bearer(login(client, "USR900", DEFAULT_PASSWORD)["data"]["access_token"])


class TestOwnAccount:
    def test_update_profile(self, client, member, member_headers):
        resp = client.patch(
            f"{API}/users/profile",
            json={"first_name": "Morgana", "email": "MORGANA@example.com"},
            headers=member_headers,
        )

        assert resp.status_code == 200
        user = resp.get_json()["data"]["user"]
        assert user["first_name"] == "Morgana"
        assert user["email"] == "morgana@example.com"

    def test_update_profile_requires_a_field(self, client, member_headers):
        resp = client.patch(f"{API}/users/profile", json={}, headers=member_headers)

        assert resp.status_code == 400

    def test_change_password_then_login(self, client, member, member_headers):
        resp = client.patch(
            f"{API}/users/change-password",
            json={"old_password": DEFAULT_PASSWORD, "new_password": "Brand-new-1"},
            headers=member_headers,
        )

        assert resp.status_code == 200
        assert resp.get_json()["message"] == "Password updated successfully"
        assert login(client, "USR900", "Brand-new-1")["success"] is True

    def test_profile_routes_also_accept_put(self, client, member, member_headers):
        resp = client.put(
            f"{API}/users/profile", json={"last_name": "Leeward"}, headers=member_headers
        )
        assert resp.status_code == 200
        assert resp.get_json()["data"]["user"]["last_name"] == "Leeward"

        resp = client.put(
            f"{API}/users/change-password",
            json={"old_password": DEFAULT_PASSWORD, "new_password": "Brand-new-2"},
            headers=member_headers,
        )
        assert resp.status_code == 200
        assert login(client, "USR900", "Brand-new-2")["success"] is True

    def test_change_password_wrong_old(self, client, member_headers):
        resp = client.patch(
            f"{API}/users/change-password",
            json={"old_password": "not-it", "new_password": "Brand-new-1"},
            headers=member_headers,
        )

        assert resp.status_code == 400
        assert resp.get_json()["message"] == "Old password does not match"


class TestAdminDirectory:
    def test_regular_user_is_forbidden(self, client, member_headers):
        resp = client.get(f"{API}/users", headers=member_headers)

        assert resp.status_code == 403
        assert resp.get_json()["message"] == "Insufficient permissions"

    def test_list_is_cached_until_a_write(self, client, admin_headers, member):
        first = client.get(f"{API}/users?limit=1", headers=admin_headers)
        second = client.get(f"{API}/users?limit=1", headers=admin_headers)

        assert first.get_json()["message"] == "Users retrieved successfully"
        assert second.get_json()["message"] == "Users retrieved successfully (cached)"
        data = second.get_json()["data"]
        assert data["pagination"] == {"page": 1, "limit": 1, "total": 2, "pages": 2}
        assert len(data["users"]) == 1

        client.patch(f"{API}/users/{member.id}/deactivate", headers=admin_headers)
        third = client.get(f"{API}/users?limit=1", headers=admin_headers)
        assert third.get_json()["message"] == "Users retrieved successfully"

    def test_list_filters(self, client, admin_headers, member):
        resp = client.get(f"{API}/users?search=morg&role=USER", headers=admin_headers)

        users = resp.get_json()["data"]["users"]
        assert [u["id"] for u in users] == [member.id]

    def test_invalid_role_filter(self, client, admin_headers):
        resp = client.get(f"{API}/users?role=ROOT", headers=admin_headers)

        assert resp.status_code == 400
        assert "role" in resp.get_json()["details"]["errors"]

    def test_get_user(self, client, admin_headers, member):
        first = client.get(f"{API}/users/{member.id}", headers=admin_headers)
        second = client.get(f"{API}/users/{member.id}", headers=admin_headers)

        assert first.get_json()["message"] == "User found"
        assert second.get_json()["message"] == "User found (cached)"
        assert second.get_json()["data"]["user"]["employee_id"] == "USR900"

    def test_get_missing_user(self, client, admin_headers):
        resp = client.get(f"{API}/users/999999", headers=admin_headers)

        assert resp.status_code == 404
        assert resp.get_json()["code"] == "not_found"

    def test_deactivation_blocks_live_access_token(self, client, admin_headers, member, member_headers):
        resp = client.patch(f"{API}/users/{member.id}/deactivate", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.get_json()["data"]["user"]["is_active"] is False

        profile = client.get(f"{API}/auth/profile", headers=member_headers)
        assert profile.status_code == 401
        assert profile.get_json()["message"] == "User not found or inactive"

    def test_delete(self, client, admin_headers, member):
        resp = client.delete(f"{API}/users/{member.id}", headers=admin_headers)

        assert resp.status_code == 200
        assert client.get(f"{API}/users/{member.id}", headers=admin_headers).status_code == 404

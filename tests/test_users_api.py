import pytest

from conftest import PASSWORD, make_user
from app.models.user import UserRole


def registration(**overrides):
    body = {
        "username": "nina",
        "password": "hunter22",
        "name": "Nina Rao",
        "email": "nina@acme-corp.com",
        "department": "Engineering",
        "designation": "Engineer",
        "branch": "Pune",
        "eCode": "E1042",
        "band": "B2",
        "businessUnit": "Platform",
    }
    body.update(overrides)
    return body


class TestAuth:
    def test_register_returns_token_and_user(self, client):
        response = client.post("/api/register", json=registration())
        assert response.status_code == 201
        body = response.json()
        assert body["tokenType"] == "bearer"
        assert body["user"]["username"] == "nina"
        assert body["user"]["role"] == "employee"
        assert body["user"]["eCode"] == "E1042"
        assert "hashedPassword" not in body["user"]

        me = client.get("/api/user", headers={"Authorization": f"Bearer {body['accessToken']}"})
        assert me.status_code == 200
        assert me.json()["username"] == "nina"

    def test_duplicate_username(self, client):
        client.post("/api/register", json=registration())
        response = client.post("/api/register", json=registration(email="other@acme-corp.com"))
        assert response.status_code == 400

    def test_register_with_unknown_manager(self, client):
        response = client.post("/api/register", json=registration(managerId=99))
        assert response.status_code == 404

    def test_register_rejects_bad_band(self, client):
        response = client.post("/api/register", json=registration(band="senior"))
        assert response.status_code == 422

    def test_login(self, client, org):
        response = client.post("/api/login", json={"username": "emma", "password": PASSWORD})
        assert response.status_code == 200
        assert response.json()["user"]["id"] == org.emma.id

    def test_login_with_wrong_password(self, client, org):
        response = client.post("/api/login", json={"username": "emma", "password": "nope"})
        assert response.status_code == 401

    def test_inactive_user(self, client, db, auth_headers):
        gone = make_user(db, "gone", is_active=False)
        assert client.post("/api/login", json={"username": "gone", "password": PASSWORD}).status_code == 400
        assert client.get("/api/claims", headers=auth_headers(gone)).status_code == 400

    def test_garbage_token(self, client, org):
        response = client.get("/api/user", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    def test_logout(self, client, org, auth_headers):
        response = client.post("/api/logout", headers=auth_headers(org.emma))
        assert response.status_code == 200


class TestDirectory:
    def test_me(self, client, org, auth_headers):
        response = client.get("/api/users/me", headers=auth_headers(org.emma))
        assert response.json()["managerId"] == org.manoj.id

    def test_filters(self, client, org, auth_headers):
        headers = auth_headers(org.emma)
        engineering = client.get("/api/users", params={"department": "Engineering"}, headers=headers).json()
        assert [u["username"] for u in engineering] == ["manoj", "emma", "dina"]

        managers = client.get("/api/users", params={"role": "manager"}, headers=headers).json()
        assert [u["username"] for u in managers] == ["manoj", "dina"]

    def test_read_user(self, client, org, auth_headers):
        response = client.get(f"/api/users/{org.fiona.id}", headers=auth_headers(org.emma))
        assert response.json()["department"] == "Finance"
        assert client.get("/api/users/999", headers=auth_headers(org.emma)).status_code == 404


class TestAdminUpdates:
    def test_admin_changes_band_and_role(self, client, org, auth_headers):
        response = client.patch(
            f"/api/users/{org.manoj.id}", json={"band": "B4", "role": "manager"},
            headers=auth_headers(org.admin),
        )
        assert response.status_code == 200
        assert response.json()["band"] == "B4"

    def test_non_admin_refused(self, client, org, auth_headers):
        response = client.patch(
            f"/api/users/{org.emma.id}", json={"band": "B5"}, headers=auth_headers(org.manoj),
        )
        assert response.status_code == 403

    def test_reporting_cycle_refused(self, client, org, auth_headers):
        response = client.patch(
            f"/api/users/{org.manoj.id}", json={"managerId": org.emma.id},
            headers=auth_headers(org.admin),
        )
        assert response.status_code == 400

    def test_self_management_refused(self, client, org, auth_headers):
        response = client.patch(
            f"/api/users/{org.dina.id}", json={"managerId": org.dina.id},
            headers=auth_headers(org.admin),
        )
        assert response.status_code == 400

    def test_unknown_manager(self, client, org, auth_headers):
        response = client.patch(
            f"/api/users/{org.emma.id}", json={"managerId": 999}, headers=auth_headers(org.admin),
        )
        assert response.status_code == 404

    def test_reassigned_manager_gets_new_claims(self, client, org, auth_headers, submit_claim):
        client.patch(
            f"/api/users/{org.emma.id}", json={"managerId": org.dina.id}, headers=auth_headers(org.admin),
        )
        claim = submit_claim(org.emma, 100)
        assert claim["currentApproverId"] == org.dina.id

    def test_role_filter_value(self, client, db, org, auth_headers):
        make_user(db, "felix", role=UserRole.FINANCE, department="Finance", band="B3")
        finance = client.get("/api/users", params={"role": "finance"}, headers=auth_headers(org.admin)).json()
        assert [u["username"] for u in finance] == ["fiona", "felix"]

    @pytest.mark.parametrize("field", ["department", "role", "band", "businessUnit", "isActive"])
    def test_null_for_required_field_is_rejected(self, client, org, auth_headers, field):
        response = client.patch(
            f"/api/users/{org.emma.id}", json={field: None}, headers=auth_headers(org.admin),
        )
        assert response.status_code == 422

        emma = client.get(f"/api/users/{org.emma.id}", headers=auth_headers(org.admin)).json()
        assert emma["department"] == "Engineering"
        assert emma["role"] == "employee"

    def test_manager_can_be_cleared(self, client, org, auth_headers):
        response = client.patch(
            f"/api/users/{org.emma.id}", json={"managerId": None}, headers=auth_headers(org.admin),
        )
        assert response.status_code == 200
        assert response.json()["managerId"] is None

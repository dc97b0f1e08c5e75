import pytest

from csp_network.models import ActivityLog

from .conftest import PASSWORD

pytestmark = pytest.mark.django_db


def test_health_is_public(api):
    response = api.get("/api/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_login_opens_session_and_logs_activity(api, csp_user):
    response = api.post_json("/api/auth/login", {
        "username": "csp_agent", "password": PASSWORD, "role": "csp"
    })
    assert response.status_code == 200
    body = response.json()["user"]
    assert body["username"] == "csp_agent"
    assert body["role"] == "csp"
    assert body["fullName"] == csp_user.full_name
    assert "password" not in body

    me = api.get("/api/auth/me")
    assert me.status_code == 200
    assert me.json()["user"]["id"] == csp_user.id
    assert ActivityLog.objects.filter(user=csp_user, action="login").exists()


def test_login_requires_all_fields(api, csp_user):
    response = api.post_json("/api/auth/login", {"username": "csp_agent", "password": PASSWORD})
    assert response.status_code == 400
    assert "required" in response.json()["message"]


def test_login_with_wrong_password_is_401(api, csp_user):
    response = api.post_json("/api/auth/login", {
        "username": "csp_agent", "password": "nope", "role": "csp"
    })
    assert response.status_code == 401
    assert response.json()["message"] == "Invalid credentials"


def test_login_with_unknown_user_is_401(api, db):
    response = api.post_json("/api/auth/login", {
        "username": "ghost", "password": PASSWORD, "role": "admin"
    })
    assert response.status_code == 401


def test_login_with_wrong_role_is_403(api, csp_user):
    response = api.post_json("/api/auth/login", {
        "username": "csp_agent", "password": PASSWORD, "role": "admin"
    })
    assert response.status_code == 403
    assert response.json()["message"] == "Invalid role for this user"


def test_suspended_account_cannot_log_in(api, csp_user):
    csp_user.status = "suspended"
    csp_user.save()
    response = api.post_json("/api/auth/login", {
        "username": "csp_agent", "password": PASSWORD, "role": "csp"
    })
    assert response.status_code == 403


def test_malformed_json_is_400(api, db):
    response = api.post("/api/auth/login", data="{not json", content_type="application/json")
    assert response.status_code == 400


def test_me_without_session_is_401(api, db):
    assert api.get("/api/auth/me").status_code == 401


def test_logout_ends_session(csp_client, csp_user):
    response = csp_client.post_json("/api/auth/logout")
    assert response.status_code == 200
    assert csp_client.get("/api/auth/me").status_code == 401
    assert ActivityLog.objects.filter(user=csp_user, action="logout").exists()


def test_wrong_method_is_405(api, db):
    assert api.get("/api/auth/login").status_code == 405


def test_suspended_session_is_rejected(csp_client, csp_user):
    csp_user.status = "suspended"
    csp_user.save()
    assert csp_client.get("/api/csps").status_code == 403

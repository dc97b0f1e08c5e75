import pytest

from csp_network.models import ActivityLog, User

pytestmark = pytest.mark.django_db

NEW_USER = {
    "username": "new_fi",
    "password": "long-enough-1",
    "email": "new_fi@example.com",
    "fullName": "Nisha Fernandes",
    "phone": "9000012345",
    "role": "fi",
}


def test_list_users(admin_client, admin_user, auditor, csp_user):
    response = admin_client.get("/api/users")
    assert response.status_code == 200
    rows = response.json()["users"]
    assert [u["username"] for u in rows] == ["admin_user", "auditor_one", "csp_agent"]
    assert "password" not in rows[0]

    rows = admin_client.get("/api/users?role=auditor").json()["users"]
    assert [u["id"] for u in rows] == [auditor.id]


def test_users_endpoint_is_admin_only(bank_client):
    assert bank_client.get("/api/users").status_code == 403
    assert bank_client.post_json("/api/users", NEW_USER).status_code == 403


def test_create_user_hashes_password(admin_client, admin_user):
    response = admin_client.post_json("/api/users", NEW_USER)
    assert response.status_code == 201
    body = response.json()["user"]
    assert body["role"] == "fi"
    assert body["status"] == "active"
    assert body["fullName"] == "Nisha Fernandes"

    user = User.objects.get(username="new_fi")
    assert user.password != NEW_USER["password"]
    assert user.check_password(NEW_USER["password"])
    assert ActivityLog.objects.get(user=admin_user, action="create_user").details == {
        "newUserId": user.id, "role": "fi"
    }


def test_created_user_can_log_in(admin_client, api):
    admin_client.post_json("/api/users", NEW_USER)
    response = api.post_json("/api/auth/login", {
        "username": "new_fi", "password": NEW_USER["password"], "role": "fi"
    })
    assert response.status_code == 200


@pytest.mark.parametrize("field, value, message", [
    ("username", "admin_user", "Username already exists"),
    ("email", "ADMIN_USER@example.com", "Email already exists"),
])
def test_duplicate_user_is_409(admin_client, field, value, message):
    response = admin_client.post_json("/api/users", {**NEW_USER, field: value})
    assert response.status_code == 409
    assert response.json()["message"] == message


def test_create_user_validation(admin_client):
    response = admin_client.post_json("/api/users", {**NEW_USER, "password": "short", "role": "root"})
    assert response.status_code == 400
    assert set(response.json()["errors"]) == {"password", "role"}
    assert not User.objects.filter(username="new_fi").exists()


def test_suspending_user_blocks_their_session(admin_client, csp_client, csp_user):
    assert csp_client.get("/api/auth/me").status_code == 200

    response = admin_client.patch_json(f"/api/users/{csp_user.id}", {"status": "suspended"})
    assert response.status_code == 200
    assert response.json()["user"]["status"] == "suspended"
    assert csp_client.get("/api/auth/me").status_code == 403


def test_admin_cannot_deactivate_self(admin_client, admin_user):
    response = admin_client.patch_json(f"/api/users/{admin_user.id}", {"status": "inactive"})
    assert response.status_code == 400
    admin_user.refresh_from_db()
    assert admin_user.status == "active"


def test_user_status_validation(admin_client, csp_user):
    assert admin_client.patch_json(f"/api/users/{csp_user.id}", {"status": "banned"}).status_code == 400


def test_unknown_user_is_404(admin_client):
    assert admin_client.patch_json("/api/users/9999", {"status": "inactive"}).status_code == 404

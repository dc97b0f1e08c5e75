import pytest
import requests
import tenacity

from csp_network.models import Notification
from csp_network.services import NotificationService

pytestmark = pytest.mark.django_db


class FakeResponse:
    status_code = 202

    def raise_for_status(self):
        return None


def test_list_own_notifications(csp_client, csp_user, auditor):
    Notification.objects.create(user=csp_user, title="Hello", message="Welcome aboard")
    Notification.objects.create(user=auditor, title="Other", message="Not yours")
    response = csp_client.get("/api/notifications")
    assert response.status_code == 200
    rows = response.json()["notifications"]
    assert [n["title"] for n in rows] == ["Hello"]
    assert rows[0]["status"] == "unread"
    assert rows[0]["readAt"] is None


def test_mark_notification_read(csp_client, csp_user):
    notification = Notification.objects.create(user=csp_user, title="Hello", message="Hi")
    response = csp_client.patch_json(f"/api/notifications/{notification.id}")
    assert response.status_code == 200
    body = response.json()["notification"]
    assert body["status"] == "read"
    assert body["readAt"] is not None
    assert csp_client.get("/api/notifications?status=unread").json()["notifications"] == []


def test_cannot_mark_other_users_notification(csp_client, auditor):
    notification = Notification.objects.create(user=auditor, title="Other", message="Not yours")
    assert csp_client.patch_json(f"/api/notifications/{notification.id}").status_code == 403
    notification.refresh_from_db()
    assert notification.status == "unread"


def test_unknown_notification_is_404(csp_client):
    assert csp_client.patch_json("/api/notifications/404").status_code == 404


def test_mark_all_read(csp_client, csp_user, auditor):
    for title in ("One", "Two"):
        Notification.objects.create(user=csp_user, title=title, message="m")
    Notification.objects.create(user=auditor, title="Other", message="m")

    response = csp_client.post_json("/api/notifications/read-all")
    assert response.status_code == 200
    assert response.json()["updated"] == 2
    assert Notification.objects.filter(user=auditor, status="unread").count() == 1


def test_send_system_notification(admin_client, csp_user):
    response = admin_client.post_json("/api/notifications", {
        "userId": csp_user.id, "title": "Maintenance", "message": "Portal down at 22:00"
    })
    assert response.status_code == 201
    body = response.json()
    assert body["delivered"] is False
    assert body["notification"]["type"] == "system"
    assert body["notification"]["userId"] == csp_user.id


def test_send_email_notification(bank_client, csp_user, mailoutbox):
    response = bank_client.post_json("/api/notifications", {
        "userId": csp_user.id, "title": "KYC", "message": "Please upload documents", "type": "email"
    })
    assert response.status_code == 201
    assert response.json()["delivered"] is True
    assert len(mailoutbox) == 1
    assert mailoutbox[0].subject == "KYC"
    assert mailoutbox[0].to == [csp_user.email]


def test_send_sms_through_gateway(admin_client, csp_user, settings, monkeypatch):
    settings.NOTIFICATION_GATEWAY_URL = "https://gateway.example.com/send"
    settings.NOTIFICATION_GATEWAY_TOKEN = "token-123"
    calls = []

    def fake_post(url, json=None, headers=None, timeout=None):
        calls.append((url, json, headers))
        return FakeResponse()

    monkeypatch.setattr(requests, "post", fake_post)
    response = admin_client.post_json("/api/notifications", {
        "userId": csp_user.id, "title": "Float", "message": "Top up cash", "type": "sms"
    })
    assert response.status_code == 201
    assert response.json()["delivered"] is True
    url, payload, headers = calls[0]
    assert url == "https://gateway.example.com/send"
    assert payload == {"channel": "sms", "to": "9876543210", "title": "Float", "message": "Top up cash"}
    assert headers == {"Authorization": "Bearer token-123"}


def test_gateway_failure_is_retried_and_reported(admin_client, csp_user, settings, monkeypatch):
    settings.NOTIFICATION_GATEWAY_URL = "https://gateway.example.com/send"
    monkeypatch.setattr(NotificationService._post_to_gateway.retry, "wait", tenacity.wait_none())
    attempts = []

    def failing_post(*args, **kwargs):
        attempts.append(1)
        raise requests.exceptions.ConnectionError("gateway down")

    monkeypatch.setattr(requests, "post", failing_post)
    response = admin_client.post_json("/api/notifications", {
        "userId": csp_user.id, "title": "Float", "message": "Top up cash", "type": "whatsapp"
    })
    assert response.status_code == 201
    assert response.json()["delivered"] is False
    assert len(attempts) == 3
    assert Notification.objects.filter(user=csp_user, type="whatsapp").exists()


def test_sms_without_gateway_is_stored_only(admin_client, csp_user, settings):
    settings.NOTIFICATION_GATEWAY_URL = None
    response = admin_client.post_json("/api/notifications", {
        "userId": csp_user.id, "title": "Float", "message": "Top up cash", "type": "sms"
    })
    assert response.status_code == 201
    assert response.json()["delivered"] is False


def test_send_notification_requires_user(admin_client):
    response = admin_client.post_json("/api/notifications", {"title": "Broadcast", "message": "m"})
    assert response.status_code == 400
    assert "user" in response.json()["errors"]


def test_send_notification_forbidden_for_csp(csp_client, csp_user):
    response = csp_client.post_json("/api/notifications", {
        "userId": csp_user.id, "title": "t", "message": "m"
    })
    assert response.status_code == 403

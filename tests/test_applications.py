import pytest

from csp_network.models import ActivityLog, Application

pytestmark = pytest.mark.django_db

VALID_APPLICATION = {
    "firstName": "Meena",
    "lastName": "Sharma",
    "email": "meena@example.com",
    "phone": "+91 91234 56789",
    "aadhaarNumber": "123456789012",
    "address": "House 21, Gandhi Road, Jaipur",
    "education": "12th",
}


def test_submit_application_is_public_and_pending(api):
    response = api.post_json("/api/applications", VALID_APPLICATION)
    assert response.status_code == 201
    body = response.json()["application"]
    assert body["status"] == "pending"
    assert body["aadhaarNumber"] == "123456789012"
    assert body["reviewedBy"] is None

    application = Application.objects.get(id=body["id"])
    assert application.email == "meena@example.com"
    log = ActivityLog.objects.get(action="create_application")
    assert log.user is None
    assert log.details == {"applicationId": application.id}


def test_submitted_status_is_ignored(api):
    response = api.post_json("/api/applications", dict(VALID_APPLICATION, status="approved"))
    assert response.status_code == 201
    assert response.json()["application"]["status"] == "pending"


def test_submit_application_validation_errors(api):
    payload = dict(VALID_APPLICATION, aadhaarNumber="1234", phone="12ab", firstName="")
    response = api.post_json("/api/applications", payload)
    assert response.status_code == 400
    errors = response.json()["errors"]
    assert "aadhaarNumber" in errors
    assert "phone" in errors
    assert "firstName" in errors
    assert Application.objects.count() == 0


def test_list_applications_requires_admin_or_bank(api, csp_client, bank_client, application):
    assert api.get("/api/applications").status_code == 401
    assert csp_client.get("/api/applications").status_code == 403

    response = bank_client.get("/api/applications")
    assert response.status_code == 200
    assert [a["id"] for a in response.json()["applications"]] == [application.id]


def test_list_applications_filters_by_status(admin_client, application):
    assert admin_client.get("/api/applications?status=approved").json()["applications"] == []
    assert len(admin_client.get("/api/applications?status=pending").json()["applications"]) == 1


def test_review_application(admin_client, admin_user, application):
    response = admin_client.patch_json(f"/api/applications/{application.id}", {
        "status": "approved", "notes": "Documents verified"
    })
    assert response.status_code == 200
    body = response.json()["application"]
    assert body["status"] == "approved"
    assert body["notes"] == "Documents verified"
    assert body["reviewedBy"] == admin_user.id
    assert body["reviewedAt"] is not None
    assert ActivityLog.objects.filter(user=admin_user, action="approved_application").exists()


def test_review_application_rejects_invalid_status(admin_client, application):
    response = admin_client.patch_json(f"/api/applications/{application.id}", {"status": "pending"})
    assert response.status_code == 400
    application.refresh_from_db()
    assert application.status == "pending"


def test_review_unknown_application_is_404(admin_client, db):
    response = admin_client.patch_json("/api/applications/999", {"status": "rejected"})
    assert response.status_code == 404


def test_application_detail(bank_client, application):
    response = bank_client.get(f"/api/applications/{application.id}")
    assert response.status_code == 200
    assert response.json()["application"]["firstName"] == "Asha"

import pytest

from csp_network.models import ActivityLog

pytestmark = pytest.mark.django_db


@pytest.fixture
def logs(admin_user, csp_user):
    return [
        ActivityLog.objects.create(user=admin_user, action="login", ip_address="10.0.0.1"),
        ActivityLog.objects.create(user=csp_user, action="create_transaction", details={"amount": 10.0}),
        ActivityLog.objects.create(user=None, action="create_application"),
    ]


def test_list_activity_logs(bank_client, logs):
    response = bank_client.get("/api/activity-logs")
    assert response.status_code == 200
    rows = response.json()["activityLogs"]
    assert len(rows) == 3
    login = next(row for row in rows if row["action"] == "login")
    assert login["ipAddress"] == "10.0.0.1"
    assert login["userId"] == logs[0].user_id


def test_filter_activity_logs(admin_client, logs, csp_user):
    rows = admin_client.get(f"/api/activity-logs?userId={csp_user.id}").json()["activityLogs"]
    assert [row["action"] for row in rows] == ["create_transaction"]
    rows = admin_client.get("/api/activity-logs?action=create_application").json()["activityLogs"]
    assert [row["userId"] for row in rows] == [None]


def test_activity_log_limit(admin_client, logs):
    assert len(admin_client.get("/api/activity-logs?limit=2").json()["activityLogs"]) == 2


@pytest.mark.parametrize("query", ["limit=abc", "limit=0", "userId=me"])
def test_invalid_activity_log_query_is_400(admin_client, logs, query):
    assert admin_client.get(f"/api/activity-logs?{query}").status_code == 400


@pytest.mark.parametrize("client_fixture", ["csp_client", "fi_client", "auditor_client"])
def test_activity_logs_forbidden(request, client_fixture):
    client = request.getfixturevalue(client_fixture)
    assert client.get("/api/activity-logs").status_code == 403


def test_activity_logs_require_login(api, db):
    assert api.get("/api/activity-logs").status_code == 401

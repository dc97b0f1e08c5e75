from datetime import timedelta

import pytest
from django.utils import timezone

from csp_network.models import Audit

pytestmark = pytest.mark.django_db


def test_csp_stats(admin_client, csp, other_csp):
    response = admin_client.get("/api/stats/csps")
    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 2
    assert body["active"] == 2
    assert body["pending"] == 0
    assert body["averageScore"] == 72.5
    assert body["scoreBands"] == {"high": 1, "medium": 0, "low": 1}
    assert body["growth"] is None


def test_transaction_stats(bank_client, transaction):
    body = bank_client.get("/api/stats/transactions").json()
    assert body["total"] == 1
    assert body["volume"] == 2500.0
    assert body["flagged"] == 0
    assert body["today"] == 1
    assert body["byType"] == {"deposit": {"count": 1, "volume": 2500.0}}
    assert len(body["daily"]) == 7
    assert body["daily"][-1] == {
        "date": timezone.now().date().isoformat(), "count": 1, "volume": 2500.0
    }


def test_alert_stats(admin_client, alert):
    body = admin_client.get("/api/stats/alerts").json()
    assert body["total"] == 1
    assert body["high"] == 1
    assert body["critical"] == 0
    assert body["open"] == 1
    assert body["byStatus"] == {"new": 1}
    assert body["byType"] == {"compliance": 1}


def test_audit_stats(admin_client, audit, csp, auditor):
    Audit.objects.create(
        csp=csp, auditor=auditor, scheduled_date=timezone.now() - timedelta(days=1)
    )
    Audit.objects.create(
        csp=csp, auditor=auditor, scheduled_date=timezone.now() - timedelta(days=5),
        status="completed", rating=4,
    )
    body = admin_client.get("/api/stats/audits").json()
    assert body["total"] == 3
    assert body["scheduled"] == 2
    assert body["completed"] == 1
    assert body["inProgress"] == 0
    assert body["overdue"] == 1
    assert body["averageRating"] == 4.0


def test_unknown_stats_kind_is_400(admin_client):
    assert admin_client.get("/api/stats/weather").status_code == 400


def test_stats_forbidden_for_csp_agent(csp_client):
    assert csp_client.get("/api/stats/csps").status_code == 403

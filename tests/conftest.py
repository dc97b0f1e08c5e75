import json
from datetime import timedelta
from decimal import Decimal

import pytest
from django.test import Client
from django.utils import timezone

from csp_network.models import User, CSP, Transaction, Audit, Alert, Application

PASSWORD = "s3cret-pass"


def make_user(username, role, **extra):
    return User.objects.create_user(
        username=username,
        password=PASSWORD,
        email=f"{username}@example.com",
        full_name=extra.pop("full_name", username.replace("_", " ").title()),
        role=role,
        **extra,
    )


class JsonClient(Client):
    """Test client that sends JSON bodies for post/patch."""

    def post_json(self, path, data=None, **extra):
        return self.post(path, data=json.dumps(data or {}), content_type="application/json", **extra)

    def patch_json(self, path, data=None, **extra):
        return self.patch(path, data=json.dumps(data or {}), content_type="application/json", **extra)


@pytest.fixture
def api():
    return JsonClient()


@pytest.fixture
def admin_user(db):
    return make_user("admin_user", User.ROLE_ADMIN)


@pytest.fixture
def bank_user(db):
    return make_user("bank_officer", User.ROLE_BANK)


@pytest.fixture
def fi_user(db):
    return make_user("fi_agent", User.ROLE_FI)


@pytest.fixture
def auditor(db):
    return make_user("auditor_one", User.ROLE_AUDITOR, phone="+91 98765 43210")


@pytest.fixture
def other_auditor(db):
    return make_user("auditor_two", User.ROLE_AUDITOR)


@pytest.fixture
def csp_user(db):
    return make_user("csp_agent", User.ROLE_CSP, phone="9876543210")


@pytest.fixture
def other_csp_user(db):
    return make_user("csp_agent_two", User.ROLE_CSP)


def _client_for(user):
    client = JsonClient()
    client.force_login(user)
    return client


@pytest.fixture
def admin_client(admin_user):
    return _client_for(admin_user)


@pytest.fixture
def bank_client(bank_user):
    return _client_for(bank_user)


@pytest.fixture
def fi_client(fi_user):
    return _client_for(fi_user)


@pytest.fixture
def auditor_client(auditor):
    return _client_for(auditor)


@pytest.fixture
def csp_client(csp_user):
    return _client_for(csp_user)


def make_csp(user, **extra):
    defaults = {
        "address": "12 Market Road, Near Bus Stand",
        "city": "Pune",
        "state": "maharashtra",
        "pincode": "411001",
        "aadhaar_number": "123456789012",
        "location": {"type": "Point", "coordinates": [73.8567, 18.5204]},
        "status": "active",
    }
    defaults.update(extra)
    return CSP.objects.create(user=user, **defaults)


@pytest.fixture
def csp(csp_user):
    return make_csp(csp_user)


@pytest.fixture
def other_csp(other_csp_user):
    return make_csp(other_csp_user, city="Nagpur", pincode="440001", score=45)


@pytest.fixture
def transaction(csp):
    return Transaction.objects.create(
        csp=csp, type="deposit", amount=Decimal("2500.00"), customer_name="Ravi Kumar"
    )


@pytest.fixture
def audit(csp, auditor):
    return Audit.objects.create(
        csp=csp, auditor=auditor, scheduled_date=timezone.now() + timedelta(days=3)
    )


@pytest.fixture
def alert(csp):
    return Alert.objects.create(csp=csp, type="compliance", severity="high", message="KYC documents missing")


@pytest.fixture
def application(db):
    return Application.objects.create(
        first_name="Asha",
        last_name="Patil",
        email="asha@example.com",
        phone="9123456780",
        aadhaar_number="987654321098",
        address="Flat 4, Shanti Nagar, Pune",
        education="graduate",
    )

# csp_network/serializers.py
"""
Model to JSON conversion for the API. Wire names are camelCase, foreign
keys are exposed as their primary key, decimals as floats and datetimes as ISO
8601 strings.
"""
from datetime import date, datetime
from decimal import Decimal

from .utils import to_camel_case


def _json_value(value):
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def serialize_instance(instance, exclude=()):
    data = {}
    for field in instance._meta.concrete_fields:
        if field.name in exclude:
            continue
        # csp -> cspId, but assigned_to -> assignedTo
        name = field.attname if field.is_relation and "_" not in field.name else field.name
        data[to_camel_case(name)] = _json_value(getattr(instance, field.attname))
    return data


def serialize_user(user):
    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "fullName": user.full_name,
        "phone": user.phone,
        "role": user.role,
        "status": user.status,
        "createdAt": _json_value(user.date_joined),
    }


def serialize_session_user(user):
    """The slimmer shape returned by the auth endpoints."""
    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "role": user.role,
        "fullName": user.full_name,
    }


def serialize_csp(csp):
    return serialize_instance(csp)


def serialize_transaction(transaction):
    return serialize_instance(transaction)


def serialize_audit(audit):
    return serialize_instance(audit)


def serialize_alert(alert):
    return serialize_instance(alert)


def serialize_application(application):
    return serialize_instance(application)


def serialize_activity_log(log):
    return serialize_instance(log)


def serialize_notification(notification):
    return serialize_instance(notification)

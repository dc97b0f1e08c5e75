# csp_network/utils.py
import json
import logging
import re
from functools import wraps

from django.http import JsonResponse

logger = logging.getLogger(__name__)

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def get_client_ip(request):
    """Extracts client IP address from request headers."""
    x_forwarded_for = request.META.get("HTTP_X_FORWARDED_FOR")
    if x_forwarded_for:
        return x_forwarded_for.split(",")[0].strip()
    return request.META.get("REMOTE_ADDR")


def to_snake_case(name):
    return _CAMEL_BOUNDARY.sub("_", name).lower()


def to_camel_case(name):
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def parse_json_body(request):
    """
    Decode a JSON object body and return it with snake_case keys, ready to
    bind to a form. An empty body is treated as an empty object.
    Raises json.JSONDecodeError for malformed bodies.
    """
    if not request.body:
        return {}
    payload = json.loads(request.body)
    if not isinstance(payload, dict):
        raise json.JSONDecodeError("Expected a JSON object", request.body.decode(errors="replace"), 0)

    data = {}
    for key, value in payload.items():
        field = to_snake_case(key)
        # foreign keys arrive as cspId / auditorId / userId
        if field.endswith("_id") and field != "id":
            field = field[:-3]
        data[field] = value
    return data


def error_response(message, status, errors=None):
    body = {"message": message}
    if errors is not None:
        body["errors"] = errors
    return JsonResponse(body, status=status)


def form_errors(form):
    """Form errors keyed by the camelCase names the client sends."""
    return {
        to_camel_case(field) if field != "__all__" else "nonFieldErrors": list(messages)
        for field, messages in form.errors.items()
    }


def allowed_methods(*methods):
    def decorator(view_func):
        @wraps(view_func)
        def wrapper(request, *args, **kwargs):
            if request.method not in methods:
                return error_response("Invalid request method", 405)
            return view_func(request, *args, **kwargs)
        return wrapper
    return decorator


def login_required_json(view_func):
    """Rejects requests without an authenticated session with 401."""
    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        if not request.user.is_authenticated:
            return error_response("Unauthorized", 401)
        if not request.user.is_portal_active:
            return error_response("Account is not active", 403)
        return view_func(request, *args, **kwargs)
    return wrapper


def role_required(*roles):
    """Allows only session users holding one of the given roles: 401 without a session, 403 otherwise."""
    def decorator(view_func):
        @wraps(view_func)
        def wrapper(request, *args, **kwargs):
            user = request.user
            if not user.is_authenticated:
                return error_response("Unauthorized", 401)
            if user.role not in roles:
                logger.warning(f"Denied {request.method} {request.path} for {user.username}")
                return error_response("Unauthorized", 403)
            if not user.is_portal_active:
                return error_response("Account is not active", 403)
            return view_func(request, *args, **kwargs)
        return wrapper
    return decorator

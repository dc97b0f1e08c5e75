# csp_network/views.py
import json
import logging

from django.contrib.auth import authenticate, login, logout
from django.db import transaction as db_transaction
from django.db.models import Q
from django.http import JsonResponse
from django.utils import timezone
from django.views.decorators.csrf import csrf_exempt

from .forms import (
    ApplicationForm, ApplicationReviewForm, CSPForm, CSPUpdateForm, TransactionForm,
    AuditForm, AuditUpdateForm, AlertForm, AlertStatusForm, NotificationForm,
    UserForm, UserStatusForm
)
from .models import User, CSP, Transaction, Audit, Alert, Application, ActivityLog, Notification
from .reports import (
    ADMIN_ONLY_EXPORTS, STATS_BUILDERS, ExportError, csv_response, export_columns, export_rows
)
from .serializers import (
    serialize_user, serialize_session_user, serialize_csp, serialize_transaction,
    serialize_audit, serialize_alert, serialize_application, serialize_activity_log,
    serialize_notification
)
from .services import NotificationService, log_activity
from .utils import (
    allowed_methods, error_response, form_errors, login_required_json,
    parse_json_body, role_required, to_camel_case
)

# Configure the logger
logger = logging.getLogger(__name__)

ADMIN = User.ROLE_ADMIN
CSP_AGENT = User.ROLE_CSP
FI_AGENT = User.ROLE_FI
AUDITOR = User.ROLE_AUDITOR
BANK = User.ROLE_BANK

ACTIVITY_LOG_LIMIT = 500


def _invalid(form):
    return error_response("Validation failed", 400, form_errors(form))


def _current_csp(user):
    """The CSP outlet operated by a CSP agent, or None."""
    return CSP.objects.filter(user=user).order_by('id').first()


def _apply_partial(instance, form, data, fields):
    """Copy the cleaned values of the fields present in the payload onto instance."""
    changes = {}
    for field in fields:
        if field not in data:
            continue
        value = form.cleaned_data.get(field)
        if value in (None, "") and not instance._meta.get_field(field).null:
            continue
        setattr(instance, field, value)
        changes[to_camel_case(field)] = float(value) if field == "working_capital" else value
    return changes


# ---------------------------------------------------------------------------
# Health & authentication
# ---------------------------------------------------------------------------

@allowed_methods("GET")
def health(request):
    return JsonResponse({"status": "ok"})


@csrf_exempt
@allowed_methods("POST")
def login_view(request):
    """
    Session login. The caller must name the role they are signing in as and
    it must match the account's role.
    """
    try:
        data = parse_json_body(request)
        username = data.get("username")
        password = data.get("password")
        role = data.get("role")

        if not username or not password or not role:
            return error_response("Username, password and role are required", 400)

        user = authenticate(request, username=username, password=password)
        if user is None:
            logger.warning(f"Failed login attempt for {username}")
            return error_response("Invalid credentials", 401)

        if user.role != role:
            logger.warning(f"Login for {username} refused: role {role} requested, account is {user.role}")
            return error_response("Invalid role for this user", 403)

        if not user.is_portal_active:
            logger.warning(f"Login for {username} refused: account is {user.status}")
            return error_response("Account is not active", 403)

        login(request, user)
        log_activity(request, "login", {"role": user.role})
        logger.info(f"User {user.username} logged in as {user.role}")

        return JsonResponse({"user": serialize_session_user(user)})

    except json.JSONDecodeError:
        return error_response("Invalid JSON data", 400)
    except Exception as e:
        logger.error(f"Login error: {str(e)}")
        return error_response("Internal server error", 500)


@csrf_exempt
@allowed_methods("POST")
def logout_view(request):
    if request.user.is_authenticated:
        log_activity(request, "logout")
        logger.info(f"User {request.user.username} logged out")
    logout(request)
    return JsonResponse({"message": "Logged out successfully"})


@allowed_methods("GET")
@login_required_json
def me_view(request):
    return JsonResponse({"user": serialize_session_user(request.user)})


# ---------------------------------------------------------------------------
# Applications
# ---------------------------------------------------------------------------

@csrf_exempt
@allowed_methods("GET", "POST")
def applications(request):
    if request.method == "POST":
        return submit_application(request)
    return list_applications(request)


def submit_application(request):
    """Public CSP partner application. Always starts out pending."""
    try:
        form = ApplicationForm(parse_json_body(request))
        if not form.is_valid():
            return _invalid(form)

        application = form.save()
        log_activity(request, "create_application", {"applicationId": application.id})
        logger.info(f"Application {application.id} submitted by {application.email}")

        return JsonResponse({"application": serialize_application(application)}, status=201)

    except json.JSONDecodeError:
        return error_response("Invalid JSON data", 400)
    except Exception as e:
        logger.error(f"Application submission error: {str(e)}")
        return error_response("Failed to submit application", 500)


@role_required(ADMIN, BANK)
def list_applications(request):
    try:
        queryset = Application.objects.all().order_by('-created_at')
        status = request.GET.get('status')
        if status:
            queryset = queryset.filter(status=status)
        return JsonResponse({"applications": [serialize_application(a) for a in queryset]})
    except Exception as e:
        logger.error(f"Get applications error: {str(e)}")
        return error_response("Failed to retrieve applications", 500)


@csrf_exempt
@allowed_methods("GET", "PATCH")
@role_required(ADMIN, BANK)
def application_detail(request, application_id):
    if request.method == "PATCH":
        return review_application(request, application_id)
    try:
        application = Application.objects.get(id=application_id)
        return JsonResponse({"application": serialize_application(application)})
    except Application.DoesNotExist:
        return error_response("Application not found", 404)
    except Exception as e:
        logger.error(f"Get application error: {str(e)}")
        return error_response("Failed to retrieve application", 500)


def review_application(request, application_id):
    """Approve or reject an application (admin / bank officer)."""
    try:
        form = ApplicationReviewForm(parse_json_body(request))
        if not form.is_valid():
            return error_response(
                "Valid status (approved/rejected) is required", 400, form_errors(form)
            )

        application = Application.objects.get(id=application_id)
        old_status = application.status
        new_status = form.cleaned_data['status']

        application.status = new_status
        application.notes = form.cleaned_data['notes']
        application.reviewed_by = request.user
        application.reviewed_at = timezone.now()
        application.save()

        log_activity(request, f"{new_status}_application", {"applicationId": application.id})
        logger.info(
            f"Application {application_id} status changed from {old_status} to {new_status} "
            f"by {request.user.username}"
        )

        return JsonResponse({"application": serialize_application(application)})

    except Application.DoesNotExist:
        return error_response("Application not found", 404)
    except json.JSONDecodeError:
        return error_response("Invalid JSON data", 400)
    except Exception as e:
        logger.error(f"Review application error: {str(e)}")
        return error_response("Failed to update application", 500)


# ---------------------------------------------------------------------------
# CSPs
# ---------------------------------------------------------------------------

@csrf_exempt
@allowed_methods("GET", "POST")
@login_required_json
def csps(request):
    if request.method == "POST":
        return create_csp(request)
    return list_csps(request)


def list_csps(request):
    """
    List CSP outlets. Supports state, city, status, score band
    (high / medium / low) and a free-text ``q`` over address, city and Aadhaar.
    """
    try:
        queryset = CSP.objects.all().order_by('-created_at')

        for param in ('state', 'city', 'status'):
            value = request.GET.get(param)
            if value:
                queryset = queryset.filter(**{param: value})

        score = request.GET.get('score')
        if score == 'high':
            queryset = queryset.filter(score__gte=80)
        elif score == 'medium':
            queryset = queryset.filter(score__gte=50, score__lt=80)
        elif score == 'low':
            queryset = queryset.filter(score__lt=50)
        elif score:
            return error_response("Invalid score filter", 400)

        q = request.GET.get('q')
        if q:
            queryset = queryset.filter(
                Q(address__icontains=q) | Q(city__icontains=q) | Q(aadhaar_number__contains=q)
            )

        return JsonResponse({"csps": [serialize_csp(csp) for csp in queryset]})
    except Exception as e:
        logger.error(f"Get CSPs error: {str(e)}")
        return error_response("Failed to retrieve CSPs", 500)


@role_required(ADMIN, BANK)
def create_csp(request):
    try:
        form = CSPForm(parse_json_body(request))
        if not form.is_valid():
            return _invalid(form)

        csp = form.save()
        log_activity(request, "create_csp", {"cspId": csp.id, "userId": csp.user_id})
        logger.info(f"CSP {csp.id} created for user {csp.user_id} by {request.user.username}")

        return JsonResponse({"csp": serialize_csp(csp)}, status=201)

    except json.JSONDecodeError:
        return error_response("Invalid JSON data", 400)
    except Exception as e:
        logger.error(f"Create CSP error: {str(e)}")
        return error_response("Failed to create CSP", 500)


@csrf_exempt
@allowed_methods("GET", "PATCH")
@login_required_json
def csp_detail(request, csp_id):
    if request.method == "PATCH":
        return update_csp(request, csp_id)
    try:
        csp = CSP.objects.get(id=csp_id)
        if request.user.role == CSP_AGENT and csp.user_id != request.user.id:
            return error_response("Cannot view other CSPs", 403)
        return JsonResponse({"csp": serialize_csp(csp)})
    except CSP.DoesNotExist:
        return error_response("CSP not found", 404)
    except Exception as e:
        logger.error(f"Get CSP error: {str(e)}")
        return error_response("Failed to retrieve CSP", 500)


@role_required(ADMIN, BANK)
def update_csp(request, csp_id):
    """Change a CSP's status, score or working capital."""
    try:
        data = parse_json_body(request)
        form = CSPUpdateForm(data)
        if not form.is_valid():
            return _invalid(form)

        csp = CSP.objects.get(id=csp_id)
        old_status = csp.status
        changes = _apply_partial(csp, form, data, ("status", "score", "working_capital"))
        if not changes:
            return error_response("No updatable fields provided", 400)
        csp.save()

        log_activity(request, "update_csp", {"cspId": csp.id, "changes": changes})
        logger.info(f"CSP {csp.id} updated by {request.user.username}: {changes}")

        if csp.status != old_status:
            NotificationService().notify(
                csp.user,
                "CSP Status Updated",
                f"Your CSP outlet status changed from {old_status} to {csp.status}",
            )

        return JsonResponse({"csp": serialize_csp(csp)})

    except CSP.DoesNotExist:
        return error_response("CSP not found", 404)
    except json.JSONDecodeError:
        return error_response("Invalid JSON data", 400)
    except Exception as e:
        logger.error(f"Update CSP error: {str(e)}")
        return error_response("Failed to update CSP", 500)


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------

@csrf_exempt
@allowed_methods("GET", "POST")
@login_required_json
def transactions(request):
    if request.method == "POST":
        return create_transaction(request)
    return list_transactions(request)


def list_transactions(request):
    """CSP agents only see their own outlet's transactions."""
    try:
        queryset = Transaction.objects.all().order_by('-created_at')

        if request.user.role == CSP_AGENT:
            csp = _current_csp(request.user)
            if not csp:
                return JsonResponse({"transactions": []})
            queryset = queryset.filter(csp=csp)

        csp_id = request.GET.get('cspId')
        if csp_id:
            queryset = queryset.filter(csp_id=csp_id)
        tx_type = request.GET.get('type')
        if tx_type:
            queryset = queryset.filter(type=tx_type)
        flagged = request.GET.get('flagged')
        if flagged in ('true', 'false'):
            queryset = queryset.filter(flagged=flagged == 'true')

        return JsonResponse({"transactions": [serialize_transaction(t) for t in queryset]})
    except ValueError:
        return error_response("Invalid cspId", 400)
    except Exception as e:
        logger.error(f"Get transactions error: {str(e)}")
        return error_response("Failed to retrieve transactions", 500)


def create_transaction(request):
    try:
        form = TransactionForm(parse_json_body(request))
        if not form.is_valid():
            return _invalid(form)

        # Only CSP agents are restricted to their own outlet
        if request.user.role == CSP_AGENT:
            csp = _current_csp(request.user)
            if not csp:
                return error_response("No CSP profile found for this user", 403)
            if form.cleaned_data['csp'].id != csp.id:
                return error_response("Cannot create transactions for other CSPs", 403)

        with db_transaction.atomic():
            transaction = form.save()

        log_activity(request, "create_transaction", {
            "transactionId": transaction.id,
            "amount": float(transaction.amount),
            "type": transaction.type,
        })
        logger.info(
            f"Transaction {transaction.id} ({transaction.type} {transaction.amount}) "
            f"recorded at CSP {transaction.csp_id}"
        )

        return JsonResponse({"transaction": serialize_transaction(transaction)}, status=201)

    except json.JSONDecodeError:
        return error_response("Invalid JSON data", 400)
    except Exception as e:
        logger.error(f"Create transaction error: {str(e)}")
        return error_response("Failed to create transaction", 500)


# ---------------------------------------------------------------------------
# Audits
# ---------------------------------------------------------------------------

def _visible_audits(user):
    """Auditors see their assignments, CSP agents their outlet, everyone else all."""
    if user.role == AUDITOR:
        return Audit.objects.filter(auditor=user)
    if user.role == CSP_AGENT:
        csp = _current_csp(user)
        if not csp:
            return Audit.objects.none()
        return Audit.objects.filter(csp=csp)
    return Audit.objects.all()


@csrf_exempt
@allowed_methods("GET", "POST")
@login_required_json
def audits(request):
    if request.method == "POST":
        return create_audit(request)
    try:
        queryset = _visible_audits(request.user).order_by('-scheduled_date')
        status = request.GET.get('status')
        if status:
            queryset = queryset.filter(status=status)
        return JsonResponse({"audits": [serialize_audit(a) for a in queryset]})
    except Exception as e:
        logger.error(f"Get audits error: {str(e)}")
        return error_response("Failed to retrieve audits", 500)


@role_required(ADMIN, BANK)
def create_audit(request):
    """Assign an audit. The auditor is notified by the post_save signal."""
    try:
        form = AuditForm(parse_json_body(request))
        if not form.is_valid():
            return _invalid(form)

        audit = form.save()
        log_activity(request, "create_audit", {
            "auditId": audit.id,
            "cspId": audit.csp_id,
            "auditorId": audit.auditor_id,
        })
        logger.info(f"Audit {audit.id} of CSP {audit.csp_id} assigned to auditor {audit.auditor_id}")

        return JsonResponse({"audit": serialize_audit(audit)}, status=201)

    except json.JSONDecodeError:
        return error_response("Invalid JSON data", 400)
    except Exception as e:
        logger.error(f"Create audit error: {str(e)}")
        return error_response("Failed to create audit", 500)


@csrf_exempt
@allowed_methods("GET", "PATCH")
@login_required_json
def audit_detail(request, audit_id):
    if request.method == "PATCH":
        return update_audit(request, audit_id)
    try:
        audit = Audit.objects.get(id=audit_id)
        if not _visible_audits(request.user).filter(id=audit.id).exists():
            return error_response("Cannot view this audit", 403)
        return JsonResponse({"audit": serialize_audit(audit)})
    except Audit.DoesNotExist:
        return error_response("Audit not found", 404)
    except Exception as e:
        logger.error(f"Get audit error: {str(e)}")
        return error_response("Failed to retrieve audit", 500)


@role_required(ADMIN, BANK, AUDITOR)
def update_audit(request, audit_id):
    """
    Record audit progress or findings. Auditors may only update their own
    assignments. Completing an audit stamps completedDate and notifies admins.
    """
    try:
        data = parse_json_body(request)
        audit = Audit.objects.get(id=audit_id)

        if request.user.role == AUDITOR and audit.auditor_id != request.user.id:
            return error_response("Cannot update audits assigned to other auditors", 403)

        form = AuditUpdateForm(data)
        if not form.is_valid():
            return _invalid(form)

        old_status = audit.status
        _apply_partial(
            audit, form, data,
            ("status", "notes", "photos", "videos", "location", "rating", "issues")
        )
        audit.save()

        log_activity(request, "update_audit", {"auditId": audit.id, "status": audit.status})
        logger.info(
            f"Audit {audit.id} updated by {request.user.username}: {old_status} -> {audit.status}"
        )

        if audit.status == "completed" and old_status != "completed":
            NotificationService().notify_role(
                ADMIN,
                "Audit Completed",
                f"Audit #{audit.id} has been completed by {request.user.full_name}",
            )

        return JsonResponse({"audit": serialize_audit(audit)})

    except Audit.DoesNotExist:
        return error_response("Audit not found", 404)
    except json.JSONDecodeError:
        return error_response("Invalid JSON data", 400)
    except Exception as e:
        logger.error(f"Update audit error: {str(e)}")
        return error_response("Failed to update audit", 500)


# ---------------------------------------------------------------------------
# Alerts
# ---------------------------------------------------------------------------

def _visible_alerts(user):
    if user.role == CSP_AGENT:
        csp = _current_csp(user)
        if not csp:
            return Alert.objects.none()
        return Alert.objects.filter(csp=csp)
    return Alert.objects.all()


@csrf_exempt
@allowed_methods("GET", "POST")
@login_required_json
def alerts(request):
    if request.method == "POST":
        return create_alert(request)
    try:
        queryset = _visible_alerts(request.user).order_by('-created_at')
        for param in ('status', 'severity', 'type'):
            value = request.GET.get(param)
            if value:
                queryset = queryset.filter(**{param: value})
        return JsonResponse({"alerts": [serialize_alert(a) for a in queryset]})
    except Exception as e:
        logger.error(f"Get alerts error: {str(e)}")
        return error_response("Failed to retrieve alerts", 500)


@role_required(ADMIN, BANK, FI_AGENT)
def create_alert(request):
    """Raise an alert. The owning CSP agent is notified by the post_save signal."""
    try:
        form = AlertForm(parse_json_body(request))
        if not form.is_valid():
            return _invalid(form)

        alert = form.save()
        log_activity(request, "create_alert", {
            "alertId": alert.id,
            "type": alert.type,
            "severity": alert.severity,
        })
        logger.info(f"{alert.severity} {alert.type} alert {alert.id} raised by {request.user.username}")

        return JsonResponse({"alert": serialize_alert(alert)}, status=201)

    except json.JSONDecodeError:
        return error_response("Invalid JSON data", 400)
    except Exception as e:
        logger.error(f"Create alert error: {str(e)}")
        return error_response("Failed to create alert", 500)


@csrf_exempt
@allowed_methods("GET", "PATCH")
@login_required_json
def alert_detail(request, alert_id):
    if request.method == "PATCH":
        return update_alert(request, alert_id)
    try:
        alert = Alert.objects.get(id=alert_id)
        if not _visible_alerts(request.user).filter(id=alert.id).exists():
            return error_response("Cannot view this alert", 403)
        return JsonResponse({"alert": serialize_alert(alert)})
    except Alert.DoesNotExist:
        return error_response("Alert not found", 404)
    except Exception as e:
        logger.error(f"Get alert error: {str(e)}")
        return error_response("Failed to retrieve alert", 500)


@role_required(ADMIN, BANK, FI_AGENT)
def update_alert(request, alert_id):
    try:
        form = AlertStatusForm(parse_json_body(request))
        if not form.is_valid():
            return error_response("Valid status is required", 400, form_errors(form))

        alert = Alert.objects.get(id=alert_id)
        old_status = alert.status
        new_status = form.cleaned_data['status']

        alert.status = new_status
        if new_status in Alert.CLOSED_STATUSES:
            alert.resolved_by = request.user
            alert.resolved_at = timezone.now()
        elif new_status == "acknowledged" and alert.assigned_to_id is None:
            alert.assigned_to = request.user
        alert.save()

        log_activity(request, "update_alert", {"alertId": alert.id, "status": new_status})
        logger.info(
            f"Alert {alert.id} status changed from {old_status} to {new_status} by {request.user.username}"
        )

        return JsonResponse({"alert": serialize_alert(alert)})

    except Alert.DoesNotExist:
        return error_response("Alert not found", 404)
    except json.JSONDecodeError:
        return error_response("Invalid JSON data", 400)
    except Exception as e:
        logger.error(f"Update alert error: {str(e)}")
        return error_response("Failed to update alert", 500)


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------

@csrf_exempt
@allowed_methods("GET", "POST")
@login_required_json
def notifications(request):
    if request.method == "POST":
        return send_notification(request)
    try:
        queryset = Notification.objects.filter(user=request.user).order_by('-created_at')
        status = request.GET.get('status')
        if status:
            queryset = queryset.filter(status=status)
        return JsonResponse({"notifications": [serialize_notification(n) for n in queryset]})
    except Exception as e:
        logger.error(f"Get notifications error: {str(e)}")
        return error_response("Failed to retrieve notifications", 500)


@role_required(ADMIN, BANK)
def send_notification(request):
    """Store a notification for a user and push it out on its channel."""
    try:
        form = NotificationForm(parse_json_body(request))
        form.fields['user'].required = True
        if not form.is_valid():
            return _invalid(form)

        notification = form.save()
        delivered = NotificationService().deliver(notification)
        log_activity(request, "send_notification", {
            "notificationId": notification.id,
            "recipientId": notification.user_id,
            "type": notification.type,
        })

        return JsonResponse(
            {"notification": serialize_notification(notification), "delivered": delivered},
            status=201,
        )

    except json.JSONDecodeError:
        return error_response("Invalid JSON data", 400)
    except Exception as e:
        logger.error(f"Send notification error: {str(e)}")
        return error_response("Failed to send notification", 500)


@csrf_exempt
@allowed_methods("PATCH")
@login_required_json
def notification_detail(request, notification_id):
    """Mark one of the caller's notifications as read."""
    try:
        notification = Notification.objects.get(id=notification_id)
        if notification.user_id != request.user.id:
            return error_response("Cannot mark other users' notifications as read", 403)

        notification.mark_read()
        return JsonResponse({"notification": serialize_notification(notification)})

    except Notification.DoesNotExist:
        return error_response("Notification not found", 404)
    except Exception as e:
        logger.error(f"Mark notification as read error: {str(e)}")
        return error_response("Failed to update notification", 500)


@csrf_exempt
@allowed_methods("POST")
@login_required_json
def mark_all_notifications_read(request):
    try:
        updated = Notification.objects.filter(user=request.user, status="unread").update(
            status="read", read_at=timezone.now()
        )
        return JsonResponse({"message": f"Marked {updated} notifications as read", "updated": updated})
    except Exception as e:
        logger.error(f"Mark all notifications as read error: {str(e)}")
        return error_response("Failed to update notifications", 500)


# ---------------------------------------------------------------------------
# Activity logs & users
# ---------------------------------------------------------------------------

@allowed_methods("GET")
@role_required(ADMIN, BANK)
def activity_logs(request):
    try:
        queryset = ActivityLog.objects.select_related('user').order_by('-created_at')

        user_id = request.GET.get('userId')
        if user_id:
            queryset = queryset.filter(user_id=int(user_id))
        action = request.GET.get('action')
        if action:
            queryset = queryset.filter(action=action)

        limit = int(request.GET.get('limit', ACTIVITY_LOG_LIMIT))
        if limit < 1:
            return error_response("limit must be positive", 400)

        return JsonResponse({"activityLogs": [serialize_activity_log(log) for log in queryset[:limit]]})
    except ValueError:
        return error_response("Invalid query parameter", 400)
    except Exception as e:
        logger.error(f"Get activity logs error: {str(e)}")
        return error_response("Failed to retrieve activity logs", 500)


@csrf_exempt
@allowed_methods("GET", "POST")
@role_required(ADMIN)
def users(request):
    if request.method == "POST":
        return create_user(request)
    try:
        queryset = User.objects.all().order_by('id')
        for param in ('role', 'status'):
            value = request.GET.get(param)
            if value:
                queryset = queryset.filter(**{param: value})
        return JsonResponse({"users": [serialize_user(u) for u in queryset]})
    except Exception as e:
        logger.error(f"Get users error: {str(e)}")
        return error_response("Failed to retrieve users", 500)


def create_user(request):
    try:
        data = parse_json_body(request)

        if data.get('username') and User.objects.filter(username=data['username']).exists():
            return error_response("Username already exists", 409)
        if data.get('email') and User.objects.filter(email__iexact=data['email']).exists():
            return error_response("Email already exists", 409)

        form = UserForm(data)
        if not form.is_valid():
            return _invalid(form)

        user = form.save()
        log_activity(request, "create_user", {"newUserId": user.id, "role": user.role})
        logger.info(f"User {user.username} ({user.role}) created by {request.user.username}")

        return JsonResponse({"user": serialize_user(user)}, status=201)

    except json.JSONDecodeError:
        return error_response("Invalid JSON data", 400)
    except Exception as e:
        logger.error(f"Create user error: {str(e)}")
        return error_response("Failed to create user", 500)


@csrf_exempt
@allowed_methods("PATCH")
@role_required(ADMIN)
def user_detail(request, user_id):
    """Activate, deactivate or suspend an account."""
    try:
        form = UserStatusForm(parse_json_body(request))
        if not form.is_valid():
            return error_response("Valid status is required", 400, form_errors(form))

        user = User.objects.get(id=user_id)
        new_status = form.cleaned_data['status']
        if user.id == request.user.id and new_status != "active":
            return error_response("You cannot deactivate your own account", 400)

        old_status = user.status
        user.status = new_status
        user.save(update_fields=['status'])

        log_activity(request, "update_user_status", {"targetUserId": user.id, "status": new_status})
        logger.info(f"User {user.username} status changed from {old_status} to {new_status}")

        return JsonResponse({"user": serialize_user(user)})

    except User.DoesNotExist:
        return error_response("User not found", 404)
    except json.JSONDecodeError:
        return error_response("Invalid JSON data", 400)
    except Exception as e:
        logger.error(f"Update user status error: {str(e)}")
        return error_response("Failed to update user status", 500)


# ---------------------------------------------------------------------------
# Export & statistics
# ---------------------------------------------------------------------------

@allowed_methods("GET")
@role_required(ADMIN, BANK)
def export_data(request, export_type):
    """
    Export a table as JSON (``{"data": [...]}``) or as a CSV attachment.
    Query parameters: fromDate, toDate, columns (comma separated), format.
    """
    try:
        if export_type in ADMIN_ONLY_EXPORTS and request.user.role != ADMIN:
            return error_response("Unauthorized", 403)

        export_format = request.GET.get('format', 'json').lower()
        if export_format not in ('json', 'csv'):
            return error_response("Invalid export format", 400)

        columns = [c.strip() for c in request.GET.get('columns', '').split(',') if c.strip()]
        rows = export_rows(
            export_type,
            from_date=request.GET.get('fromDate'),
            to_date=request.GET.get('toDate'),
            columns=columns or None,
        )

        log_activity(request, "export_data", {
            "type": export_type,
            "count": len(rows),
            "format": export_format,
        })
        logger.info(f"{request.user.username} exported {len(rows)} {export_type} rows as {export_format}")

        if export_format == 'csv':
            return csv_response(rows, export_type, columns or export_columns(export_type))
        return JsonResponse({"data": rows})

    except ExportError as e:
        return error_response(str(e), 400)
    except Exception as e:
        logger.error(f"Export data error: {str(e)}")
        return error_response("Failed to export data", 500)


@allowed_methods("GET")
@role_required(ADMIN, BANK)
def stats(request, kind):
    builder = STATS_BUILDERS.get(kind)
    if builder is None:
        return error_response("Invalid statistics type", 400)
    try:
        return JsonResponse(builder())
    except Exception as e:
        logger.error(f"Get {kind} stats error: {str(e)}")
        return error_response("Failed to get statistics", 500)

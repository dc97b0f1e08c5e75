# csp_network/services.py
import logging

import requests
from django.conf import settings
from django.core.mail import send_mail
from tenacity import retry, stop_after_attempt, wait_fixed

from .models import ActivityLog, Notification, User
from .utils import get_client_ip

logger = logging.getLogger(__name__)


def log_activity(request, action, details=None, user=None):
    """Record an ActivityLog row for the acting session user."""
    if user is None and request.user.is_authenticated:
        user = request.user
    return ActivityLog.objects.create(
        user=user,
        action=action,
        details=details,
        ip_address=get_client_ip(request) or None,
        user_agent=request.META.get("HTTP_USER_AGENT", ""),
    )


def severity_for_risk_score(risk_score):
    """Map a 0-100 transaction risk score onto an alert severity."""
    if risk_score <= 40:
        return "low"
    elif risk_score <= 70:
        return "medium"
    elif risk_score <= 90:
        return "high"
    return "critical"


class NotificationService:
    """
    Stores notifications and pushes them out on their channel.
    System notifications are only stored. Email goes through Django's mail
    backend. SMS and WhatsApp are posted to the configured gateway.
    """

    GATEWAY_CHANNELS = ("sms", "whatsapp")

    def __init__(self):
        self.gateway_url = settings.NOTIFICATION_GATEWAY_URL
        self.gateway_token = settings.NOTIFICATION_GATEWAY_TOKEN

    def notify(self, user, title, message, type="system"):
        notification = Notification.objects.create(
            user=user, title=title, message=message, type=type
        )
        self.deliver(notification)
        return notification

    def notify_role(self, role, title, message, type="system"):
        recipients = User.objects.filter(role=role, status="active", is_active=True)
        return [self.notify(user, title, message, type) for user in recipients]

    def deliver(self, notification):
        """Push a stored notification out. Returns True when a channel accepted it."""
        user = notification.user
        if notification.type == "system" or user is None:
            return False

        try:
            if notification.type == "email":
                return self._send_email(notification) > 0
            if notification.type in self.GATEWAY_CHANNELS:
                if not self.gateway_url:
                    logger.info(
                        f"No notification gateway configured, {notification.type} "
                        f"notification {notification.id} stored only"
                    )
                    return False
                if not user.phone:
                    logger.warning(f"User {user.id} has no phone number for notification {notification.id}")
                    return False
                self._post_to_gateway(notification)
                return True
        except requests.exceptions.RequestException as e:
            logger.error(f"Gateway delivery failed for notification {notification.id}: {e}")
        except Exception as e:
            logger.error(f"Delivery failed for notification {notification.id}: {str(e)}")
        return False

    def _send_email(self, notification):
        return send_mail(
            notification.title,
            notification.message,
            settings.DEFAULT_FROM_EMAIL,
            [notification.user.email],
            fail_silently=False,
        )

    @retry(stop=stop_after_attempt(3), wait=wait_fixed(2), reraise=True)
    def _post_to_gateway(self, notification):
        response = requests.post(
            self.gateway_url,
            json={
                "channel": notification.type,
                "to": notification.user.phone,
                "title": notification.title,
                "message": notification.message,
            },
            headers={"Authorization": f"Bearer {self.gateway_token}"},
            timeout=5,
        )
        response.raise_for_status()
        return response

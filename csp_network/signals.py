# csp_network/signals.py

import logging

from django.conf import settings
from django.core.mail import send_mail
from django.db.models.signals import post_save
from django.dispatch import receiver
from django.utils import dateformat
from django.utils.dateparse import parse_date, parse_datetime
from .models import Audit, Alert, Transaction
from .services import NotificationService, severity_for_risk_score

logger = logging.getLogger(__name__)


@receiver(post_save, sender=Audit)
def notify_assigned_auditor(sender, instance, created, **kwargs):
    if created:
        scheduled = instance.scheduled_date
        if isinstance(scheduled, str):
            scheduled = parse_datetime(scheduled) or parse_date(scheduled)
        NotificationService().notify(
            instance.auditor,
            "New Audit Assignment",
            f"You have been assigned a new audit scheduled for {dateformat.format(scheduled, 'd/m/Y')}",
        )


@receiver(post_save, sender=Alert)
def notify_alerted_csp(sender, instance, created, **kwargs):
    if created and instance.csp_id:
        NotificationService().notify(
            instance.csp.user,
            f"New {instance.severity.upper()} Alert",
            instance.message,
        )


@receiver(post_save, sender=Transaction)
def raise_alert_for_flagged_transaction(sender, instance, created, **kwargs):
    if created and instance.flagged:
        alert = Alert.objects.create(
            csp=instance.csp,
            transaction=instance,
            type="fraud",
            severity=severity_for_risk_score(instance.risk_score),
            message=instance.flag_reason or f"Transaction {instance.id} was flagged for review",
        )
        logger.info(f"Flagged transaction {instance.id} raised {alert.severity} alert {alert.id}")


@receiver(post_save, sender=Alert)
def email_admin_on_critical_alert(sender, instance, created, **kwargs):
    if created and instance.severity == "critical":
        send_mail(
            "Critical CSP Alert Raised",
            f"Alert {instance.id} ({instance.type}) needs attention: {instance.message}",
            settings.DEFAULT_FROM_EMAIL,
            [settings.ADMIN_EMAIL],
            fail_silently=True,
        )

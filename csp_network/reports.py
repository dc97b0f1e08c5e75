# csp_network/reports.py
import csv
from datetime import datetime, time, timedelta

from django.conf import settings
from django.db.models import Avg, Count, Q, Sum
from django.http import HttpResponse
from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

from .models import User, CSP, Transaction, Audit, Alert, Application
from .serializers import (
    serialize_user, serialize_csp, serialize_transaction, serialize_audit,
    serialize_alert, serialize_application
)

# export type -> (queryset factory, row serializer, timestamp field)
EXPORT_SOURCES = {
    "csps": (lambda: CSP.objects.all(), serialize_csp, "created_at"),
    "transactions": (lambda: Transaction.objects.all(), serialize_transaction, "created_at"),
    "audits": (lambda: Audit.objects.all(), serialize_audit, "created_at"),
    "alerts": (lambda: Alert.objects.all(), serialize_alert, "created_at"),
    "applications": (lambda: Application.objects.all(), serialize_application, "created_at"),
    "users": (lambda: User.objects.all(), serialize_user, "date_joined"),
}

ADMIN_ONLY_EXPORTS = {"users"}


class ExportError(ValueError):
    """Raised for export parameters that cannot be honoured."""


def _parse_bound(value, name):
    if not value:
        return None
    try:
        day = parse_date(value)
        parsed = parse_datetime(value) if day is None else None
    except ValueError:
        raise ExportError(f"Invalid {name}: {value}")
    if day is not None:
        # a bare toDate covers the whole day
        parsed = datetime.combine(day, time.max if name == "toDate" else time.min)
    elif parsed is None:
        raise ExportError(f"Invalid {name}: {value}")
    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed)
    return parsed


def export_columns(export_type):
    """Every column an export of this type can carry, in row order."""
    if export_type not in EXPORT_SOURCES:
        raise ExportError("Invalid export type")
    queryset_factory, serializer, _ = EXPORT_SOURCES[export_type]
    return list(serializer(queryset_factory().model()))


def export_rows(export_type, from_date=None, to_date=None, columns=None):
    """
    Collect serialized rows for an export, newest first, limited to
    EXPORT_MAX_ROWS. ``columns`` keeps only the named keys, in that order.
    """
    known = export_columns(export_type)
    if columns:
        unknown = [column for column in columns if column not in known]
        if unknown:
            raise ExportError(f"Unknown columns: {', '.join(unknown)}")
    queryset_factory, serializer, timestamp_field = EXPORT_SOURCES[export_type]

    queryset = queryset_factory()
    start = _parse_bound(from_date, "fromDate")
    end = _parse_bound(to_date, "toDate")
    if start:
        queryset = queryset.filter(**{f"{timestamp_field}__gte": start})
    if end:
        queryset = queryset.filter(**{f"{timestamp_field}__lte": end})

    queryset = queryset.order_by(f"-{timestamp_field}")[:settings.EXPORT_MAX_ROWS]
    rows = [serializer(obj) for obj in queryset]

    if columns:
        rows = [{column: row[column] for column in columns} for row in rows]
    return rows


def csv_response(rows, export_type, fieldnames):
    response = HttpResponse(content_type='text/csv')
    filename = f"{export_type}_export_{timezone.now().strftime('%Y-%m-%dT%H-%M-%S')}.csv"
    response['Content-Disposition'] = f'attachment; filename="{filename}"'

    writer = csv.DictWriter(response, fieldnames=fieldnames)
    writer.writeheader()
    for row in rows:
        # nested JSON (locations, photo lists) is flattened to its repr
        writer.writerow({
            key: value if not isinstance(value, (dict, list)) else str(value)
            for key, value in row.items()
        })
    return response


def csp_stats():
    counts = dict(
        CSP.objects.values('status').annotate(count=Count('status')).values_list('status', 'count')
    )
    month_ago = timezone.now() - timedelta(days=30)
    total = sum(counts.values())
    new_this_month = CSP.objects.filter(created_at__gte=month_ago).count()
    previous_total = total - new_this_month
    growth = round(new_this_month / previous_total * 100, 1) if previous_total else None

    return {
        'total': total,
        'active': counts.get('active', 0),
        'pending': counts.get('pending', 0),
        'inactive': counts.get('inactive', 0),
        'suspended': counts.get('suspended', 0),
        'averageScore': CSP.objects.aggregate(avg=Avg('score'))['avg'],
        'scoreBands': {
            'high': CSP.objects.filter(score__gte=80).count(),
            'medium': CSP.objects.filter(score__gte=50, score__lt=80).count(),
            'low': CSP.objects.filter(score__lt=50).count(),
        },
        'growth': growth,
    }


def transaction_stats():
    today = timezone.now().date()
    totals = Transaction.objects.aggregate(
        total=Count('id'),
        volume=Sum('amount'),
        flagged=Count('id', filter=Q(flagged=True)),
    )
    by_type = {
        row['type']: {'count': row['count'], 'volume': float(row['volume'] or 0)}
        for row in Transaction.objects.values('type').annotate(count=Count('id'), volume=Sum('amount'))
    }

    daily = []
    for offset in range(6, -1, -1):
        day = today - timedelta(days=offset)
        day_totals = Transaction.objects.filter(created_at__date=day).aggregate(
            count=Count('id'), volume=Sum('amount')
        )
        daily.append({
            'date': day.isoformat(),
            'count': day_totals['count'],
            'volume': float(day_totals['volume'] or 0),
        })

    return {
        'total': totals['total'],
        'volume': float(totals['volume'] or 0),
        'flagged': totals['flagged'],
        'today': Transaction.objects.filter(created_at__date=today).count(),
        'byType': by_type,
        'daily': daily,
    }


def alert_stats():
    severity_counts = dict(
        Alert.objects.values('severity').annotate(count=Count('severity')).values_list('severity', 'count')
    )
    status_counts = dict(
        Alert.objects.values('status').annotate(count=Count('status')).values_list('status', 'count')
    )
    type_counts = dict(
        Alert.objects.values('type').annotate(count=Count('type')).values_list('type', 'count')
    )
    return {
        'total': sum(severity_counts.values()),
        'low': severity_counts.get('low', 0),
        'medium': severity_counts.get('medium', 0),
        'high': severity_counts.get('high', 0),
        'critical': severity_counts.get('critical', 0),
        'open': Alert.objects.exclude(status__in=Alert.CLOSED_STATUSES).count(),
        'byStatus': status_counts,
        'byType': type_counts,
    }


def audit_stats():
    status_counts = dict(
        Audit.objects.values('status').annotate(count=Count('status')).values_list('status', 'count')
    )
    now = timezone.now()
    return {
        'total': sum(status_counts.values()),
        'scheduled': status_counts.get('scheduled', 0),
        'inProgress': status_counts.get('in-progress', 0),
        'completed': status_counts.get('completed', 0),
        'failed': status_counts.get('failed', 0),
        'overdue': Audit.objects.filter(status='scheduled', scheduled_date__lt=now).count(),
        'averageRating': Audit.objects.filter(rating__isnull=False).aggregate(avg=Avg('rating'))['avg'],
    }


STATS_BUILDERS = {
    "csps": csp_stats,
    "transactions": transaction_stats,
    "alerts": alert_stats,
    "audits": audit_stats,
}

# csp_network/admin.py

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin
from django.urls import reverse
from django.utils import timezone
from django.utils.html import format_html
from .models import User, CSP, Transaction, Audit, Alert, Application, ActivityLog, Notification


class TransactionInline(admin.TabularInline):
    model = Transaction
    extra = 0
    fields = ("type", "amount", "status", "risk_score", "flagged", "created_at")
    readonly_fields = ("created_at",)
    show_change_link = True


class AlertInline(admin.TabularInline):
    model = Alert
    fk_name = "csp"
    extra = 0
    fields = ("type", "severity", "status", "message", "created_at")
    readonly_fields = ("created_at",)


@admin.register(User)
class PortalUserAdmin(UserAdmin):
    list_display = ("username", "full_name", "email", "role", "status", "date_joined")
    list_filter = ("role", "status", "is_staff")
    search_fields = ("username", "full_name", "email", "phone")
    ordering = ("username",)
    fieldsets = UserAdmin.fieldsets + (
        ("Portal", {"fields": ("full_name", "phone", "role", "status")}),
    )
    add_fieldsets = UserAdmin.add_fieldsets + (
        ("Portal", {"fields": ("email", "full_name", "phone", "role")}),
    )
    actions = ["activate_selected", "suspend_selected"]

    def activate_selected(self, request, queryset):
        queryset.update(status="active")
    activate_selected.short_description = "Activate selected users"

    def suspend_selected(self, request, queryset):
        queryset.exclude(pk=request.user.pk).update(status="suspended")
    suspend_selected.short_description = "Suspend selected users"


@admin.register(CSP)
class CSPAdmin(admin.ModelAdmin):
    list_display = (
        "id", "linked_user", "city", "state", "pincode", "status",
        "score", "score_band", "working_capital", "open_alerts", "created_at"
    )
    list_filter = ("status", "state")
    search_fields = ("address", "city", "aadhaar_number", "pan_number", "user__username")
    ordering = ("-created_at",)
    inlines = [TransactionInline, AlertInline]
    actions = ["activate_selected", "suspend_selected", "reset_score"]

    def linked_user(self, obj):
        url = reverse("admin:csp_network_user_change", args=[obj.user_id])
        return format_html('<a href="{}">{}</a>', url, obj.user.username)
    linked_user.short_description = "Agent"

    def open_alerts(self, obj):
        return obj.alerts.exclude(status__in=Alert.CLOSED_STATUSES).count()
    open_alerts.short_description = "Open Alerts"

    def activate_selected(self, request, queryset):
        queryset.update(status="active")
    activate_selected.short_description = "Activate selected CSPs"

    def suspend_selected(self, request, queryset):
        queryset.update(status="suspended")
    suspend_selected.short_description = "Suspend selected CSPs"

    def reset_score(self, request, queryset):
        queryset.update(score=100)
    reset_score.short_description = "Reset score to 100"


@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    list_display = ("id", "csp", "type", "amount", "status", "risk_score", "flagged", "created_at")
    list_filter = ("type", "status", "flagged")
    search_fields = ("customer_name", "customer_phone", "csp__city")
    ordering = ("-created_at",)


@admin.register(Audit)
class AuditAdmin(admin.ModelAdmin):
    list_display = ("id", "csp", "auditor", "scheduled_date", "status", "rating", "completed_date")
    list_filter = ("status",)
    search_fields = ("csp__city", "auditor__username", "notes")
    ordering = ("-scheduled_date",)


@admin.register(Alert)
class AlertAdmin(admin.ModelAdmin):
    list_display = (
        "id", "csp", "transaction", "type", "severity", "status", "is_open", "assigned_to", "created_at"
    )
    list_filter = ("status", "severity", "type")
    search_fields = ("message", "csp__city")
    ordering = ("-created_at",)
    actions = ["mark_as_resolved"]

    def is_open(self, obj):
        return obj.is_open
    is_open.boolean = True
    is_open.short_description = "Open"

    def mark_as_resolved(self, request, queryset):
        queryset.exclude(status__in=Alert.CLOSED_STATUSES).update(
            status="resolved", resolved_by=request.user, resolved_at=timezone.now()
        )
    mark_as_resolved.short_description = "Mark selected alerts as resolved"


@admin.register(Application)
class ApplicationAdmin(admin.ModelAdmin):
    def applicant(self, obj):
        return obj.full_name
    applicant.short_description = "Applicant"

    list_display = ("applicant", "email", "phone", "education", "status", "reviewed_by", "created_at")
    list_filter = ("status", "education", "created_at")
    search_fields = ("first_name", "last_name", "email", "aadhaar_number")
    ordering = ("-created_at",)
    actions = ["approve_selected", "reject_selected"]

    def approve_selected(self, request, queryset):
        queryset.update(status="approved", reviewed_by=request.user, reviewed_at=timezone.now())
    approve_selected.short_description = "Approve selected applications"

    def reject_selected(self, request, queryset):
        queryset.update(status="rejected", reviewed_by=request.user, reviewed_at=timezone.now())
    reject_selected.short_description = "Reject selected applications"


@admin.register(ActivityLog)
class ActivityLogAdmin(admin.ModelAdmin):
    list_display = ("action", "user", "ip_address", "created_at")
    list_filter = ("action",)
    search_fields = ("action", "user__username", "ip_address")
    ordering = ("-created_at",)
    readonly_fields = ("user", "action", "details", "ip_address", "user_agent", "created_at")


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ("title", "user", "type", "status", "created_at", "read_at")
    list_filter = ("type", "status")
    search_fields = ("title", "message", "user__username")
    ordering = ("-created_at",)


# Change admin site titles
admin.site.site_header = "CSP Portal"
admin.site.site_title = "CSP Portal Admin"
admin.site.index_title = "CSP Network Administration"

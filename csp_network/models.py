# csp_network/models.py
from django.db import models
from django.contrib.auth.models import AbstractUser, UserManager
from django.core.validators import MinValueValidator, MaxValueValidator
from django.utils import timezone


class PortalUserManager(UserManager):
    def create_superuser(self, username, email=None, password=None, **extra_fields):
        # Django superusers are portal administrators
        extra_fields.setdefault("role", User.ROLE_ADMIN)
        return super().create_superuser(username, email, password, **extra_fields)


class User(AbstractUser):
    """Portal account. The role decides which dashboard and API routes are available."""
    ROLE_ADMIN = "admin"
    ROLE_CSP = "csp"
    ROLE_FI = "fi"
    ROLE_AUDITOR = "auditor"
    ROLE_BANK = "bank"

    ROLE_CHOICES = [
        (ROLE_ADMIN, "Administrator"),
        (ROLE_CSP, "CSP Agent"),
        (ROLE_FI, "FI Agent"),
        (ROLE_AUDITOR, "Auditor"),
        (ROLE_BANK, "Bank Officer"),
    ]

    STATUS_CHOICES = [
        ("active", "Active"),
        ("inactive", "Inactive"),
        ("suspended", "Suspended"),
    ]

    email = models.EmailField(unique=True)
    full_name = models.CharField(max_length=255)
    phone = models.CharField(max_length=20, null=True, blank=True)
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default=ROLE_CSP)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="active")

    objects = PortalUserManager()

    @property
    def is_portal_active(self):
        return self.is_active and self.status == "active"

    def __str__(self):
        return f"{self.username} ({self.role})"


class CSP(models.Model):
    """A Customer Service Point outlet operated by a CSP agent."""
    STATUS_CHOICES = [
        ("pending", "Pending"),
        ("active", "Active"),
        ("inactive", "Inactive"),
        ("suspended", "Suspended"),
    ]

    user = models.ForeignKey(User, on_delete=models.PROTECT, related_name="csps")
    address = models.TextField()
    city = models.CharField(max_length=100)
    state = models.CharField(max_length=100)
    pincode = models.CharField(max_length=6)
    aadhaar_number = models.CharField(max_length=12)
    pan_number = models.CharField(max_length=10, null=True, blank=True)
    education = models.CharField(max_length=50, null=True, blank=True)
    photo_url = models.URLField(max_length=500, null=True, blank=True)
    location = models.JSONField(help_text="GeoJSON Point")
    # Stored column, changed only through admin actions
    score = models.IntegerField(
        default=100,
        validators=[MinValueValidator(0), MaxValueValidator(100)]
    )
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="pending")
    working_capital = models.DecimalField(max_digits=14, decimal_places=2, default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = "CSP"
        verbose_name_plural = "CSPs"

    @property
    def score_band(self):
        if self.score >= 80:
            return "high"
        elif self.score >= 50:
            return "medium"
        return "low"

    def __str__(self):
        return f"CSP {self.id} - {self.city}, {self.state} ({self.status})"


class Transaction(models.Model):
    TYPE_CHOICES = [
        ("deposit", "Cash Deposit"),
        ("withdrawal", "Cash Withdrawal"),
        ("transfer", "Money Transfer"),
        ("bill_payment", "Bill Payment"),
        ("account_opening", "Account Opening"),
    ]

    STATUS_CHOICES = [
        ("completed", "Completed"),
        ("pending", "Pending"),
        ("failed", "Failed"),
    ]

    csp = models.ForeignKey(CSP, on_delete=models.PROTECT, related_name="transactions")
    type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    amount = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        validators=[MinValueValidator(0)]
    )
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="completed")
    customer_phone = models.CharField(max_length=20, null=True, blank=True)
    customer_name = models.CharField(max_length=255, null=True, blank=True)
    location = models.JSONField(null=True, blank=True, help_text="GeoJSON Point for location verification")
    risk_score = models.IntegerField(
        default=0,
        validators=[MinValueValidator(0), MaxValueValidator(100)]
    )
    flagged = models.BooleanField(default=False)
    flag_reason = models.TextField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"Transaction {self.id} - {self.type} {self.amount} at CSP {self.csp_id}"


class Audit(models.Model):
    """Scheduled field inspection of a CSP outlet."""
    STATUS_CHOICES = [
        ("scheduled", "Scheduled"),
        ("in-progress", "In Progress"),
        ("completed", "Completed"),
        ("failed", "Failed"),
    ]

    csp = models.ForeignKey(CSP, on_delete=models.PROTECT, related_name="audits")
    auditor = models.ForeignKey(User, on_delete=models.PROTECT, related_name="audits")
    scheduled_date = models.DateTimeField()
    completed_date = models.DateTimeField(null=True, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="scheduled")
    notes = models.TextField(null=True, blank=True)
    photos = models.JSONField(null=True, blank=True)
    videos = models.JSONField(null=True, blank=True)
    location = models.JSONField(null=True, blank=True)
    rating = models.IntegerField(
        null=True,
        blank=True,
        validators=[MinValueValidator(1), MaxValueValidator(5)]
    )
    issues = models.JSONField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def save(self, *args, **kwargs):
        # Stamp the completion date the first time the audit is completed
        if self.status == "completed" and not self.completed_date:
            self.completed_date = timezone.now()
        super().save(*args, **kwargs)

    def __str__(self):
        return f"Audit {self.id} of CSP {self.csp_id} ({self.status})"


class Alert(models.Model):
    """Flagged fraud, compliance or system event tied to a CSP or transaction."""
    TYPE_CHOICES = [
        ("fraud", "Fraud Alert"),
        ("compliance", "Compliance Issue"),
        ("system", "System Alert"),
    ]

    SEVERITY_CHOICES = [
        ("low", "Low"),
        ("medium", "Medium"),
        ("high", "High"),
        ("critical", "Critical"),
    ]

    STATUS_CHOICES = [
        ("new", "New"),
        ("acknowledged", "Acknowledged"),
        ("resolved", "Resolved"),
        ("false_positive", "False Positive"),
    ]

    CLOSED_STATUSES = ("resolved", "false_positive")

    csp = models.ForeignKey(CSP, on_delete=models.PROTECT, null=True, blank=True, related_name="alerts")
    transaction = models.ForeignKey(
        Transaction, on_delete=models.PROTECT, null=True, blank=True, related_name="alerts"
    )
    type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    severity = models.CharField(max_length=20, choices=SEVERITY_CHOICES, default="medium")
    message = models.TextField()
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="new")
    assigned_to = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name="assigned_alerts"
    )
    resolved_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name="resolved_alerts"
    )
    resolved_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    @property
    def is_open(self):
        return self.status not in self.CLOSED_STATUSES

    def __str__(self):
        return f"{self.get_severity_display()} {self.type} alert {self.id} ({self.status})"


class Application(models.Model):
    """Registration request from a prospective CSP agent."""
    STATUS_CHOICES = [
        ("pending", "Pending Review"),
        ("approved", "Approved"),
        ("rejected", "Rejected"),
    ]

    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100)
    email = models.EmailField()
    phone = models.CharField(max_length=20)
    aadhaar_number = models.CharField(max_length=12)
    address = models.TextField()
    education = models.CharField(max_length=50)
    photo_url = models.URLField(max_length=500, null=True, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="pending")
    notes = models.TextField(null=True, blank=True)
    reviewed_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name="reviewed_applications"
    )
    reviewed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}"

    def __str__(self):
        return f"Application {self.id} - {self.full_name} ({self.status})"


class ActivityLog(models.Model):
    user = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name="activity_logs"
    )
    action = models.CharField(max_length=100)
    details = models.JSONField(null=True, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.action} by {self.user_id or 'anonymous'} at {self.created_at}"


class Notification(models.Model):
    TYPE_CHOICES = [
        ("sms", "SMS"),
        ("whatsapp", "WhatsApp"),
        ("email", "Email"),
        ("system", "System"),
    ]

    STATUS_CHOICES = [
        ("unread", "Unread"),
        ("read", "Read"),
    ]

    user = models.ForeignKey(
        User, on_delete=models.CASCADE, null=True, blank=True, related_name="notifications"
    )
    title = models.CharField(max_length=255)
    message = models.TextField()
    type = models.CharField(max_length=20, choices=TYPE_CHOICES, default="system")
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="unread")
    created_at = models.DateTimeField(auto_now_add=True)
    read_at = models.DateTimeField(null=True, blank=True)

    def mark_read(self):
        if self.status != "read":
            self.status = "read"
            self.read_at = timezone.now()
            self.save(update_fields=["status", "read_at"])

    def __str__(self):
        return f"Notification {self.id} to {self.user_id}: {self.title}"

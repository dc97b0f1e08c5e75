# csp_network/forms.py
import re

from django import forms
from .models import User, CSP, Transaction, Audit, Alert, Application, Notification

AADHAAR_RE = re.compile(r"^\d{12}$")
PAN_RE = re.compile(r"^[A-Z]{5}\d{4}[A-Z]$")
PINCODE_RE = re.compile(r"^\d{6}$")


def validate_phone(phone):
    digits = phone.replace(' ', '').replace('+', '').replace('-', '')
    if not digits.isdigit():
        raise forms.ValidationError("Please enter a valid phone number")
    if len(digits) < 10:
        raise forms.ValidationError("Phone number must be at least 10 digits")
    return phone


def validate_aadhaar(aadhaar_number):
    aadhaar_number = aadhaar_number.replace(' ', '')
    if not AADHAAR_RE.match(aadhaar_number):
        raise forms.ValidationError("Aadhaar number must be exactly 12 digits")
    return aadhaar_number


def validate_geo_point(location):
    """Accepts a GeoJSON Point: {"type": "Point", "coordinates": [lng, lat]}."""
    if not isinstance(location, dict) or location.get("type") != "Point":
        raise forms.ValidationError("Location must be a GeoJSON Point")
    coordinates = location.get("coordinates")
    if not isinstance(coordinates, (list, tuple)) or len(coordinates) != 2:
        raise forms.ValidationError("Point coordinates must be [longitude, latitude]")
    try:
        lng, lat = float(coordinates[0]), float(coordinates[1])
    except (TypeError, ValueError):
        raise forms.ValidationError("Point coordinates must be numbers")
    if not (-180 <= lng <= 180 and -90 <= lat <= 90):
        raise forms.ValidationError("Point coordinates are out of range")
    return location


class PortalModelForm(forms.ModelForm):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        # Columns with a database default may be left out of the payload
        self._defaulted = []
        for name, field in self.fields.items():
            if self._meta.model._meta.get_field(name).has_default():
                field.required = False
                self._defaulted.append(name)

    def clean(self):
        cleaned_data = super().clean()
        # An explicit null or "" falls back to the column default as well
        for name in self._defaulted:
            if name in cleaned_data and cleaned_data[name] in self.fields[name].empty_values:
                cleaned_data[name] = self._meta.model._meta.get_field(name).get_default()
        return cleaned_data


class ApplicationForm(PortalModelForm):
    class Meta:
        model = Application
        fields = [
            'first_name', 'last_name', 'email', 'phone', 'aadhaar_number',
            'address', 'education', 'photo_url'
        ]

    def clean_first_name(self):
        first_name = self.cleaned_data['first_name'].strip()
        if len(first_name) < 2:
            raise forms.ValidationError("First name must be at least 2 characters")
        return first_name

    def clean_last_name(self):
        last_name = self.cleaned_data['last_name'].strip()
        if len(last_name) < 2:
            raise forms.ValidationError("Last name must be at least 2 characters")
        return last_name

    def clean_phone(self):
        return validate_phone(self.cleaned_data['phone'])

    def clean_aadhaar_number(self):
        return validate_aadhaar(self.cleaned_data['aadhaar_number'])

    def clean_address(self):
        address = self.cleaned_data['address'].strip()
        if len(address) < 10:
            raise forms.ValidationError("Please provide a complete address")
        return address


class ApplicationReviewForm(forms.Form):
    status = forms.ChoiceField(choices=[("approved", "Approved"), ("rejected", "Rejected")])
    notes = forms.CharField(required=False)


class CSPForm(PortalModelForm):
    class Meta:
        model = CSP
        fields = [
            'user', 'address', 'city', 'state', 'pincode', 'aadhaar_number',
            'pan_number', 'education', 'photo_url', 'location', 'working_capital'
        ]

    def clean_user(self):
        user = self.cleaned_data['user']
        if user.role != User.ROLE_CSP:
            raise forms.ValidationError("CSP profiles can only belong to CSP agents")
        return user

    def clean_pincode(self):
        pincode = self.cleaned_data['pincode']
        if not PINCODE_RE.match(pincode):
            raise forms.ValidationError("Pincode must be exactly 6 digits")
        return pincode

    def clean_aadhaar_number(self):
        return validate_aadhaar(self.cleaned_data['aadhaar_number'])

    def clean_pan_number(self):
        pan_number = self.cleaned_data.get('pan_number')
        if pan_number:
            pan_number = pan_number.upper()
            if not PAN_RE.match(pan_number):
                raise forms.ValidationError("Please enter a valid PAN number")
        return pan_number

    def clean_location(self):
        return validate_geo_point(self.cleaned_data['location'])


class CSPUpdateForm(forms.Form):
    status = forms.ChoiceField(choices=CSP.STATUS_CHOICES, required=False)
    score = forms.IntegerField(min_value=0, max_value=100, required=False)
    working_capital = forms.DecimalField(max_digits=14, decimal_places=2, min_value=0, required=False)


class TransactionForm(PortalModelForm):
    class Meta:
        model = Transaction
        fields = [
            'csp', 'type', 'amount', 'status', 'customer_phone', 'customer_name',
            'location', 'risk_score', 'flagged', 'flag_reason'
        ]

    def clean_amount(self):
        amount = self.cleaned_data['amount']
        if amount <= 0:
            raise forms.ValidationError("Amount must be greater than zero")
        return amount

    def clean_customer_phone(self):
        customer_phone = self.cleaned_data.get('customer_phone')
        if customer_phone:
            validate_phone(customer_phone)
        return customer_phone

    def clean_location(self):
        location = self.cleaned_data.get('location')
        if location is not None:
            validate_geo_point(location)
        return location


class AuditForm(PortalModelForm):
    class Meta:
        model = Audit
        fields = ['csp', 'auditor', 'scheduled_date', 'status', 'notes']

    def clean_auditor(self):
        auditor = self.cleaned_data['auditor']
        if auditor.role != User.ROLE_AUDITOR:
            raise forms.ValidationError("Audits can only be assigned to auditors")
        return auditor


class AuditUpdateForm(forms.Form):
    status = forms.ChoiceField(choices=Audit.STATUS_CHOICES, required=False)
    notes = forms.CharField(required=False)
    photos = forms.JSONField(required=False)
    videos = forms.JSONField(required=False)
    location = forms.JSONField(required=False)
    rating = forms.IntegerField(min_value=1, max_value=5, required=False)
    issues = forms.JSONField(required=False)

    def _clean_url_list(self, name):
        value = self.cleaned_data.get(name)
        if value is not None and not (
            isinstance(value, list) and all(isinstance(item, str) for item in value)
        ):
            raise forms.ValidationError("Expected a list of URLs")
        return value

    def clean_photos(self):
        return self._clean_url_list('photos')

    def clean_videos(self):
        return self._clean_url_list('videos')

    def clean_location(self):
        location = self.cleaned_data.get('location')
        if location is not None:
            validate_geo_point(location)
        return location


class AlertForm(PortalModelForm):
    class Meta:
        model = Alert
        fields = ['csp', 'transaction', 'type', 'severity', 'message', 'assigned_to']

    def clean(self):
        cleaned_data = super().clean()
        csp = cleaned_data.get('csp')
        transaction = cleaned_data.get('transaction')
        if transaction and csp and transaction.csp_id != csp.id:
            raise forms.ValidationError("Transaction does not belong to the given CSP")
        if transaction and not csp:
            cleaned_data['csp'] = transaction.csp
        return cleaned_data


class AlertStatusForm(forms.Form):
    status = forms.ChoiceField(choices=[
        ("acknowledged", "Acknowledged"),
        ("resolved", "Resolved"),
        ("false_positive", "False Positive"),
    ])


class NotificationForm(PortalModelForm):
    class Meta:
        model = Notification
        fields = ['user', 'title', 'message', 'type']


class UserForm(PortalModelForm):
    password = forms.CharField(min_length=8, strip=False)

    class Meta:
        model = User
        fields = ['username', 'password', 'email', 'full_name', 'phone', 'role', 'status']

    def clean_phone(self):
        phone = self.cleaned_data.get('phone')
        if phone:
            validate_phone(phone)
        return phone

    def save(self, commit=True):
        user = super().save(commit=False)
        user.set_password(self.cleaned_data['password'])
        if commit:
            user.save()
        return user


class UserStatusForm(forms.Form):
    status = forms.ChoiceField(choices=User.STATUS_CHOICES)

# csp_network/urls.py - REST API, mounted under /api/
from django.urls import path
from . import views

app_name = 'csp_network'

urlpatterns = [
    path('health', views.health, name='health'),

    # SESSION AUTHENTICATION
    path('auth/login', views.login_view, name='login'),
    path('auth/logout', views.logout_view, name='logout'),
    path('auth/me', views.me_view, name='me'),

    # PARTNER APPLICATIONS (submission is public)
    path('applications', views.applications, name='applications'),
    path('applications/<int:application_id>', views.application_detail, name='application_detail'),

    # CSP OUTLETS & TRANSACTIONS
    path('csps', views.csps, name='csps'),
    path('csps/<int:csp_id>', views.csp_detail, name='csp_detail'),
    path('transactions', views.transactions, name='transactions'),

    # AUDITS & ALERTS
    path('audits', views.audits, name='audits'),
    path('audits/<int:audit_id>', views.audit_detail, name='audit_detail'),
    path('alerts', views.alerts, name='alerts'),
    path('alerts/<int:alert_id>', views.alert_detail, name='alert_detail'),

    # NOTIFICATIONS
    path('notifications', views.notifications, name='notifications'),
    path('notifications/read-all', views.mark_all_notifications_read, name='notifications_read_all'),
    path('notifications/<int:notification_id>', views.notification_detail, name='notification_detail'),

    # ADMINISTRATION
    path('activity-logs', views.activity_logs, name='activity_logs'),
    path('users', views.users, name='users'),
    path('users/<int:user_id>', views.user_detail, name='user_detail'),
    path('export/<str:export_type>', views.export_data, name='export_data'),
    path('stats/<str:kind>', views.stats, name='stats'),
]

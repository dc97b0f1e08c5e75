# csp_portal/urls.py
from django.contrib import admin
from django.urls import path, include

urlpatterns = [
    path("django-admin/", admin.site.urls),
    path("api/", include("csp_network.urls")),  # REST API consumed by the dashboard client
]

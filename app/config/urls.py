"""
URL configuration for the alias inbox service project.
"""
from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    path("admin/", admin.site.urls),
    path("", include("alias_inbox.urls")),
]

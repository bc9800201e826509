#!/usr/bin/env python
#
"""
URLS for the alias inbox app. Everything lives under `/api/`.
"""
# 3rd party imports
#
from django.urls import include, path, re_path
from rest_framework import routers

# Project imports
#
from .views import (
    AdminUserViewSet,
    AliasViewSet,
    EmailViewSet,
    login,
    logout,
    me,
    not_found,
    reset_confirm,
    reset_request,
    signup,
)

###########
# generate:
#  /aliases
#  /aliases/{local_part}
#  /emails
#  /emails/{pk}
#  /admin/users
#  /admin/users/{pk}
#
api_router = routers.SimpleRouter(trailing_slash=False)
api_router.register(r"aliases", AliasViewSet, basename="alias")
api_router.register(r"emails", EmailViewSet, basename="email")
api_router.register(r"admin/users", AdminUserViewSet, basename="admin-user")

app_name = "alias_inbox"
urlpatterns = [
    path("api/auth/signup", signup, name="signup"),
    path("api/auth/login", login, name="login"),
    path("api/auth/logout", logout, name="logout"),
    path("api/auth/reset/request", reset_request, name="reset-request"),
    path("api/auth/reset/confirm", reset_confirm, name="reset-confirm"),
    path("api/me", me, name="me"),
    path("api/", include(api_router.urls)),
    # Anything else under /api/ is a JSON 404, not django's HTML one.
    #
    re_path(r"^api/", not_found, name="not-found"),
]

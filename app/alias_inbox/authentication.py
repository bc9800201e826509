#!/usr/bin/env python
#
"""
Authenticating API requests with the `session` cookie.

The cookie carries the plaintext session token. There is no django session
and no CSRF token involved: the cookie is `SameSite=Lax` and the API only
accepts JSON bodies.
"""
# system imports
#
import logging

# 3rd party imports
#
from django.conf import settings
from rest_framework.authentication import BaseAuthentication
from rest_framework.permissions import BasePermission

# Project imports
#
from .tokens import sessions

logger = logging.getLogger("alias_inbox.authentication")


########################################################################
########################################################################
#
class SessionTokenAuthentication(BaseAuthentication):
    """
    Sets `request.user` to the Account whose session token is in the
    cookie. A missing, unknown, or expired token, or one belonging to a
    disabled account, leaves the request unauthenticated.
    """

    ####################################################################
    #
    def authenticate(self, request):
        token = request.COOKIES.get(settings.AUTH_COOKIE_NAME)
        if not token:
            return None
        account = sessions.verify(token)
        if account is None:
            return None
        return (account, token)

    ####################################################################
    #
    # Having an authenticate header makes DRF answer unauthenticated
    # requests with a 401 instead of a 403.
    #
    def authenticate_header(self, request):
        return f'Cookie realm="{settings.MAIL_DOMAIN}"'


########################################################################
########################################################################
#
class IsAdminAccount(BasePermission):
    message = "Forbidden"

    ####################################################################
    #
    def has_permission(self, request, view):
        return bool(getattr(request.user, "is_admin", False))


####################################################################
#
def set_session_cookie(request, response, token: str) -> None:
    response.set_cookie(
        settings.AUTH_COOKIE_NAME,
        token,
        max_age=settings.SESSION_TTL_SECONDS,
        path="/",
        secure=request.is_secure(),
        httponly=True,
        samesite="Lax",
    )


####################################################################
#
def clear_session_cookie(request, response) -> None:
    response.set_cookie(
        settings.AUTH_COOKIE_NAME,
        "",
        max_age=0,
        path="/",
        secure=request.is_secure(),
        httponly=True,
        samesite="Lax",
    )

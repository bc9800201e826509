#!/usr/bin/env python
#
"""
The JSON API.

Every response is `{"ok": true, ...}` or `{"ok": false, "error": "..."}`.
Errors are raised as `InboxError`s (or DRF's own exceptions) and turned in
to responses by `api_exception_handler()`, which is installed as the rest
framework's EXCEPTION_HANDLER.

The views are thin. They validate the request body, call the alias
registry, inbox, token service, or account lifecycle functions, and
serialize the result.
"""
# System imports
#
import logging
from typing import Any, Dict

# 3rd party imports
#
from django.conf import settings
from django.core.exceptions import PermissionDenied as DjangoPermissionDenied
from django.db import DatabaseError
from django.http import Http404
from rest_framework import exceptions as drf_exceptions
from rest_framework.decorators import (
    api_view,
    authentication_classes,
    permission_classes,
)
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import set_rollback
from rest_framework.viewsets import ViewSet

# Project imports
#
from . import accounts, aliases, inbox, tokens
from .authentication import (
    IsAdminAccount,
    clear_session_cookie,
    set_session_cookie,
)
from .exceptions import (
    InboxError,
    NotFoundError,
    TransientStoreError,
    ValidationError,
)
from .serializers import (
    AccountSerializer,
    AccountUpdateSerializer,
    AdminAccountSerializer,
    AliasCreateSerializer,
    AliasSerializer,
    EmailDetailSerializer,
    EmailSummarySerializer,
    LoginSerializer,
    ResetConfirmSerializer,
    ResetRequestSerializer,
    SignupSerializer,
    validated,
)

logger = logging.getLogger("alias_inbox.views")


####################################################################
#
def ok(status: int = 200, **data) -> Response:
    return Response({"ok": True, **data}, status=status)


####################################################################
#
def error_response(message: str, status: int) -> Response:
    return Response({"ok": False, "error": message}, status=status)


####################################################################
#
def json_body(request) -> Dict[str, Any]:
    """
    The request body as a dict. Anything that is not a JSON object is a
    ValidationError.
    """
    if "application/json" not in (request.content_type or "").lower():
        raise ValidationError("JSON required")
    data = request.data
    if not isinstance(data, dict):
        raise ValidationError("JSON required")
    return data


####################################################################
#
def api_exception_handler(exc, context):
    """
    Turn any exception raised by one of our API views in to an
    `{"ok": false, "error": ...}` response.

    Our own errors carry their status and a message that is safe to show.
    Anything we do not recognize is logged with its traceback and the
    client only gets "Server error".
    """
    # A failing store is reported as a TransientStoreError. The detail only
    # goes to the log.
    #
    if isinstance(exc, DatabaseError):
        logger.exception("Store error in %s: %s", context.get("view"), exc)
        exc = TransientStoreError()

    match exc:
        case InboxError():
            if exc.status_code >= 500:
                logger.error("API error: %r", exc)
                set_rollback()
            return error_response(exc.message, exc.status_code)

        case drf_exceptions.ParseError() | drf_exceptions.UnsupportedMediaType():
            return error_response("JSON required", 400)

        case (
            drf_exceptions.NotAuthenticated()
            | drf_exceptions.AuthenticationFailed()
        ):
            response = error_response("Unauthorized", 401)
            auth_header = getattr(exc, "auth_header", None)
            if auth_header:
                response["WWW-Authenticate"] = auth_header
            return response

        case drf_exceptions.PermissionDenied() | DjangoPermissionDenied():
            return error_response("Forbidden", 403)

        case (
            Http404()
            | drf_exceptions.NotFound()
            | drf_exceptions.MethodNotAllowed()
        ):
            return error_response("Not found", 404)

        case drf_exceptions.APIException():
            set_rollback()
            return error_response(str(exc.detail), exc.status_code)

    logger.exception("Unhandled API error in %s: %s", context.get("view"), exc)
    set_rollback()
    return error_response("Server error", 500)


####################################################################
#
@api_view(["POST"])
@permission_classes([AllowAny])
def signup(request):
    data = validated(SignupSerializer(data=json_body(request)))
    account = accounts.signup(data["username"], data["email"], data["pw"])
    response = ok()
    set_session_cookie(request, response, tokens.sessions.issue(account))
    return response


####################################################################
#
@api_view(["POST"])
@permission_classes([AllowAny])
def login(request):
    data = validated(LoginSerializer(data=json_body(request)))
    account = accounts.authenticate(data["id"], data["pw"])
    response = ok()
    set_session_cookie(request, response, tokens.sessions.issue(account))
    return response


####################################################################
#
@api_view(["POST"])
@authentication_classes([])
@permission_classes([AllowAny])
def logout(request):
    """
    Revoke the session in the cookie, if there is one, and clear the
    cookie. Always succeeds.
    """
    tokens.sessions.revoke(request.COOKIES.get(settings.AUTH_COOKIE_NAME, ""))
    response = ok()
    clear_session_cookie(request, response)
    return response


####################################################################
#
@api_view(["POST"])
@authentication_classes([])
@permission_classes([AllowAny])
def reset_request(request):
    """
    Always answers `{"ok": true}` for a well formed address, whether or
    not it belongs to an account.
    """
    data = validated(ResetRequestSerializer(data=json_body(request)))
    tokens.request_password_reset(data["email"])
    return ok()


####################################################################
#
@api_view(["POST"])
@authentication_classes([])
@permission_classes([AllowAny])
def reset_confirm(request):
    data = validated(ResetConfirmSerializer(data=json_body(request)))
    tokens.confirm_password_reset(data["token"], data["newPw"])
    return ok()


####################################################################
#
@api_view(["GET"])
@permission_classes([IsAuthenticated])
def me(request):
    return ok(user=AccountSerializer(request.user).data)


####################################################################
#
@api_view(["GET", "POST", "PUT", "PATCH", "DELETE"])
@authentication_classes([])
@permission_classes([AllowAny])
def not_found(request, *args, **kwargs):
    raise NotFoundError()


########################################################################
########################################################################
#
class AliasViewSet(ViewSet):
    """
    The aliases of the logged in account.
    """

    permission_classes = (IsAuthenticated,)
    lookup_field = "local_part"
    lookup_value_regex = "[^/]+"

    ####################################################################
    #
    def list(self, request):
        rows = aliases.list_aliases(request.user)
        return ok(aliases=AliasSerializer(rows, many=True).data)

    ####################################################################
    #
    def create(self, request):
        data = validated(AliasCreateSerializer(data=json_body(request)))
        alias = aliases.create_alias(request.user, data["local"])
        return ok(alias=AliasSerializer(alias).data)

    ####################################################################
    #
    def destroy(self, request, local_part=None):
        local_part = str(local_part or "").strip().lower()
        if not aliases.LOCAL_PART_RE.match(local_part):
            raise ValidationError("Mail invalid")
        aliases.delete_alias(request.user, local_part)
        return ok()


########################################################################
########################################################################
#
class EmailViewSet(ViewSet):
    """
    The inbox of the logged in account. Listing needs an `alias` query
    parameter naming one of the account's enabled aliases.
    """

    permission_classes = (IsAuthenticated,)
    lookup_value_regex = "[^/]+"

    ####################################################################
    #
    def list(self, request):
        rows = inbox.list_emails(
            request.user, request.query_params.get("alias", "")
        )
        return ok(emails=EmailSummarySerializer(rows, many=True).data)

    ####################################################################
    #
    def retrieve(self, request, pk=None):
        record = inbox.get_email(request.user, pk)
        return ok(email=EmailDetailSerializer(record).data)

    ####################################################################
    #
    def destroy(self, request, pk=None):
        inbox.delete_email(request.user, pk)
        return ok()


########################################################################
########################################################################
#
class AdminUserViewSet(ViewSet):
    """
    Account administration. Admin accounts only.
    """

    permission_classes = (IsAuthenticated, IsAdminAccount)
    lookup_value_regex = "[^/]+"

    ####################################################################
    #
    def list(self, request):
        rows = accounts.list_accounts()
        return ok(users=AdminAccountSerializer(rows, many=True).data)

    ####################################################################
    #
    def partial_update(self, request, pk=None):
        data = validated(AccountUpdateSerializer(data=json_body(request)))
        account = accounts.update_account(
            request.user,
            pk,
            alias_limit=data.get("alias_limit"),
            disabled=data.get("disabled"),
        )
        return ok(user=AdminAccountSerializer(account).data)

    ####################################################################
    #
    def destroy(self, request, pk=None):
        accounts.delete_account(request.user, pk)
        return ok()

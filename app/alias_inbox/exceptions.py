#!/usr/bin/env python
#
"""
The error taxonomy for the alias inbox service.

Every error carries the HTTP status it maps to and a message that is safe
to hand back to a client. The API exception handler turns these into
`{"ok": false, "error": message}` responses and the inbound mail router turns
them into one of its two terminal outcomes.
"""


########################################################################
########################################################################
#
class InboxError(Exception):
    """
    Base class for all of our errors.
    """

    status_code = 500
    default_message = "Server error"

    ####################################################################
    #
    def __init__(self, message: str | None = None):
        self.message = message if message is not None else self.default_message
        super().__init__(self.message)


########################################################################
#
class ValidationError(InboxError):
    """
    Malformed input. The user can correct it and try again.
    """

    status_code = 400
    default_message = "Bad request"


########################################################################
#
class AuthError(InboxError):
    """
    Missing, expired, or invalid credentials. Never says whether it was the
    user or the password that was wrong.
    """

    status_code = 401
    default_message = "Unauthorized"


########################################################################
#
class AuthorizationError(InboxError):
    """
    Acting on a resource that is not yours, or a non-admin hitting admin
    routes.
    """

    status_code = 403
    default_message = "Forbidden"


########################################################################
#
class NotFoundError(InboxError):
    status_code = 404
    default_message = "Not found"


########################################################################
#
class ConflictError(InboxError):
    """
    A uniqueness constraint in the store was violated.
    """

    status_code = 400
    default_message = "Conflict"


########################################################################
#
class TransientStoreError(InboxError):
    """
    Unexpected store or parse failure. The detail goes to the logs, the
    client only ever sees the generic message.
    """

    status_code = 500
    default_message = "Server error"


########################################################################
#
class InvalidLocalPart(ValidationError):
    default_message = "Mail tidak valid (a-z0-9._+- max 64)"


########################################################################
#
class AliasTaken(ConflictError):
    default_message = "Alias sudah dipakai"


########################################################################
#
class QuotaExceeded(AuthorizationError):
    default_message = "Limit alias tercapai"


########################################################################
#
class UsernameTaken(ConflictError):
    default_message = "Username/email sudah dipakai"


########################################################################
#
class UnsupportedHashParameter(InboxError):
    """
    Raised by the credential hasher when asked to use a work factor above
    what the platform supports. Callers verifying an old hash catch this
    and ask the user to reset their password.
    """

    status_code = 401
    default_message = "Parameter hash tidak didukung. Silakan reset password."

#!/usr/bin/env python
#
"""
Models for the alias inbox service: accounts, the bearer tokens that
authenticate them, the aliases they own, and the email delivered to those
aliases.
"""
# system imports
#
import logging
import uuid

# 3rd party imports
#
from django.conf import settings
from django.db import models
from django.utils.translation import gettext_lazy as _

# Project imports
#
from .hashers import (
    configured_iterations,
    derive_new_credential,
    verify_password,
)

logger = logging.getLogger("alias_inbox.models")


########################################################################
########################################################################
#
class Account(models.Model):
    """
    A member of the organization. An account owns aliases, and through
    them, the email delivered to those aliases.

    NOTE: This is deliberately not the django auth user model. The django
          admin still uses `django.contrib.auth` users for operators, while
          members authenticate with the bearer session tokens below.
    """

    ####################################################################
    #
    class Role(models.TextChoices):
        ADMIN = "admin", _("Admin")
        USER = "user", _("User")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    username = models.CharField(
        max_length=24,
        unique=True,
        help_text=_("Lower case, 3 to 24 characters of a-z, 0-9 and `_`."),
    )
    email = models.EmailField(
        unique=True,
        help_text=_(
            "Lower cased contact address. Password reset tokens are sent here."
        ),
    )
    pass_salt = models.CharField(max_length=64)
    pass_hash = models.CharField(max_length=64)

    # The work factor used when `pass_hash` was computed. Rows imported from
    # a schema without this column have it NULL and are verified with the
    # currently configured work factor.
    #
    pass_iters = models.IntegerField(null=True, blank=True)
    role = models.CharField(
        max_length=8, choices=Role.choices, default=Role.USER
    )
    alias_limit = models.PositiveIntegerField(
        default=0,
        help_text=_(
            "Maximum number of enabled aliases this account may own. "
            "Lowering it does not disable aliases that already exist."
        ),
    )
    disabled = models.BooleanField(
        default=False,
        help_text=_(
            "A disabled account can not log in, its sessions stop working, "
            "and mail to its aliases is rejected."
        ),
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=["role"], name="account_role_idx"),
            models.Index(
                fields=["created_at"], name="account_created_idx"
            ),
        ]
        ordering = ("-created_at",)

    ####################################################################
    #
    def __str__(self):
        return self.username

    ####################################################################
    #
    # DRF's `IsAuthenticated` only looks at this attribute. Any Account that
    # made it on to `request.user` was authenticated by a session token.
    #
    @property
    def is_authenticated(self) -> bool:
        return True

    ####################################################################
    #
    @property
    def is_admin(self) -> bool:
        return self.role == self.Role.ADMIN

    ####################################################################
    #
    def set_password(self, raw_password: str, save: bool = True) -> None:
        """
        Derive a new credential (with a fresh salt) for this account.
        """
        cred = derive_new_credential(raw_password)
        self.pass_salt = cred.salt
        self.pass_hash = cred.digest
        self.pass_iters = cred.iterations
        if save:
            self.save(update_fields=["pass_salt", "pass_hash", "pass_iters"])

    ####################################################################
    #
    def check_password(self, raw_password: str) -> bool:
        """
        Returns True if the password matches the stored credential.

        Raises `UnsupportedHashParameter` if the stored work factor is above
        what we can compute. The caller decides how to tell the user.
        """
        iterations = self.pass_iters or configured_iterations()
        return verify_password(
            raw_password, self.pass_salt, self.pass_hash, iterations
        )


########################################################################
########################################################################
#
class BearerToken(models.Model):
    """
    An opaque bearer secret. Only the one way digest of the secret is
    stored. Possession of the plaintext is the proof of authentication.
    """

    token_hash = models.CharField(primary_key=True, max_length=64)
    account = models.ForeignKey(Account, on_delete=models.CASCADE)
    expires_at = models.DateTimeField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        abstract = True

    ####################################################################
    #
    def __str__(self):
        return f"{self.account_id} until {self.expires_at.isoformat()}"


########################################################################
########################################################################
#
class SessionToken(BearerToken):
    """
    Created on login and signup. Sent to the browser in the `session`
    cookie.
    """

    class Meta:
        indexes = [
            models.Index(fields=["expires_at"], name="session_expires_idx"),
        ]


########################################################################
########################################################################
#
class ResetToken(BearerToken):
    """
    Single use password reset token. Consumed (deleted) when the password
    is changed with it.
    """

    class Meta:
        indexes = [
            models.Index(fields=["expires_at"], name="reset_expires_idx"),
        ]


########################################################################
########################################################################
#
class Alias(models.Model):
    """
    A local part on our one domain that is owned by an account. Inbound
    mail is routed to the owner through the alias.
    """

    local_part = models.CharField(primary_key=True, max_length=64)
    owner = models.ForeignKey(
        Account, on_delete=models.CASCADE, related_name="aliases"
    )
    disabled = models.BooleanField(
        default=False,
        help_text=_(
            "Mail to a disabled alias is rejected. Disabled aliases do not "
            "count against the owner's alias limit."
        ),
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name_plural = "aliases"
        indexes = [
            models.Index(
                fields=["owner", "disabled"], name="alias_owner_disabled_idx"
            ),
        ]
        ordering = ("-created_at",)

    ####################################################################
    #
    def __str__(self):
        return self.local_part

    ####################################################################
    #
    @property
    def email_address(self) -> str:
        return f"{self.local_part}@{settings.MAIL_DOMAIN}"


########################################################################
########################################################################
#
class EmailRecord(models.Model):
    """
    One accepted inbound message.

    NOTE: `owner` and `local_part` are copied from the alias at delivery
          time so reading an inbox does not need a join. `local_part` is
          intentionally not a foreign key: deleting an alias leaves its mail
          in place unless `ALIAS_DELETE_PURGES_EMAILS` is set.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    owner = models.ForeignKey(
        Account, on_delete=models.CASCADE, related_name="emails"
    )
    local_part = models.CharField(max_length=64)
    from_addr = models.CharField(max_length=512, blank=True, default="")
    to_addr = models.CharField(max_length=512, blank=True, default="")
    subject = models.TextField(blank=True, default="")
    date = models.CharField(
        max_length=64,
        blank=True,
        default="",
        help_text=_("ISO-8601 date from the message, empty if it had none."),
    )
    text = models.TextField(blank=True, default="")
    html = models.TextField(blank=True, default="")
    raw_key = models.CharField(
        max_length=256,
        null=True,
        blank=True,
        help_text=_("Key of the archived raw message in the blob store."),
    )
    size = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(
                fields=["owner", "local_part", "created_at"],
                name="email_owner_alias_idx",
            ),
        ]
        ordering = ("-created_at",)

    ####################################################################
    #
    def __str__(self):
        return f"{self.local_part}: {self.subject}"

    ####################################################################
    #
    @property
    def snippet(self) -> str:
        return (self.text or "")[:180]

    ####################################################################
    #
    @staticmethod
    def raw_key_for(email_id: uuid.UUID) -> str:
        return f"emails/{email_id}.eml"

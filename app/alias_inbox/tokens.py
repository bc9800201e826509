#!/usr/bin/env python
#
"""
Opaque bearer tokens: login sessions and password reset tokens.

Both kinds are issued and verified the same way. We generate 32 random
bytes, hand the base64url encoding of them to the caller exactly once, and
store only the SHA-256 digest of that string along with an expiry.

Verifying a token always re-checks the expiry and the owning account's
`disabled` flag, so disabling an account invalidates every outstanding
session without having to delete them. Purging expired rows is only
housekeeping.
"""
# system imports
#
import logging
import secrets
from datetime import timedelta
from typing import Optional, Type

# 3rd party imports
#
from django.conf import settings
from django.db import transaction
from django.utils import timezone

# Project imports
#
from .exceptions import ValidationError
from .models import Account, BearerToken, ResetToken, SessionToken
from .tasks import send_password_reset_email
from .utils import b64url_encode, sha256_b64url

TOKEN_BYTES = 32

logger = logging.getLogger("alias_inbox.tokens")


########################################################################
########################################################################
#
class BearerTokens:
    """
    Issue, verify, revoke, and purge one kind of bearer token.

    `ttl_setting` names the django setting holding the default lifetime in
    seconds for tokens of this kind.
    """

    ####################################################################
    #
    def __init__(self, model: Type[BearerToken], ttl_setting: str):
        self.model = model
        self.ttl_setting = ttl_setting

    ####################################################################
    #
    @property
    def default_ttl(self) -> int:
        return int(getattr(settings, self.ttl_setting))

    ####################################################################
    #
    def issue(self, account: Account, ttl: Optional[int] = None) -> str:
        """
        Create a new token for `account` and return its plaintext. The
        plaintext can not be recovered after this returns.
        """
        ttl = self.default_ttl if ttl is None else ttl
        plaintext = b64url_encode(secrets.token_bytes(TOKEN_BYTES))
        self.model.objects.create(
            token_hash=sha256_b64url(plaintext),
            account=account,
            expires_at=timezone.now() + timedelta(seconds=ttl),
        )
        return plaintext

    ####################################################################
    #
    def lookup(self, plaintext: str) -> Optional[BearerToken]:
        """
        The unexpired token row for `plaintext` whose account is enabled,
        with the account already loaded. None otherwise.
        """
        if not plaintext:
            return None
        return (
            self.model.objects.select_related("account")
            .filter(
                token_hash=sha256_b64url(plaintext),
                expires_at__gt=timezone.now(),
                account__disabled=False,
            )
            .first()
        )

    ####################################################################
    #
    def verify(self, plaintext: str) -> Optional[Account]:
        token = self.lookup(plaintext)
        return token.account if token else None

    ####################################################################
    #
    def revoke(self, plaintext: str) -> None:
        if not plaintext:
            return
        self.model.objects.filter(token_hash=sha256_b64url(plaintext)).delete()

    ####################################################################
    #
    def revoke_all(self, account_id) -> int:
        deleted, _ = self.model.objects.filter(account_id=account_id).delete()
        return deleted

    ####################################################################
    #
    def purge_expired(self) -> int:
        deleted, _ = self.model.objects.filter(
            expires_at__lte=timezone.now()
        ).delete()
        return deleted


sessions = BearerTokens(SessionToken, "SESSION_TTL_SECONDS")
reset_tokens = BearerTokens(ResetToken, "RESET_TTL_SECONDS")


####################################################################
#
def request_password_reset(email: str) -> None:
    """
    Issue a reset token for the enabled account with this email address and
    send it out in the background.

    Returns nothing, and behaves the same whether or not the address
    belongs to an account, so the endpoint can not be used to find out
    which addresses are registered.
    """
    email = str(email or "").strip().lower()
    account = Account.objects.filter(email=email, disabled=False).first()
    if account is None:
        logger.info("password reset requested for unknown address")
        return

    token = reset_tokens.issue(account)

    # A failure to queue the email must look the same to the caller as an
    # unknown address.
    #
    try:
        send_password_reset_email(account.email, token)
    except Exception as exc:
        logger.exception(
            "Unable to schedule reset email for account %s: %s",
            account.pk,
            exc,
        )


####################################################################
#
def confirm_password_reset(plaintext: str, new_password: str) -> Account:
    """
    Set a new password with a reset token. The new credential and the
    deletion of the consumed token happen in one transaction.

    Other unexpired reset tokens for the same account are left alone and
    stay usable until they expire.
    """
    token = reset_tokens.lookup(str(plaintext or "").strip())
    if token is None:
        raise ValidationError("Token invalid/expired")

    account = token.account
    with transaction.atomic():
        # Consuming the token is conditional so only one of two concurrent
        # confirmations with the same token can change the password.
        #
        consumed, _ = ResetToken.objects.filter(
            token_hash=token.token_hash
        ).delete()
        if consumed != 1:
            raise ValidationError("Token invalid/expired")
        account.set_password(new_password)

    logger.info("password reset for account %s", account.pk)
    return account


####################################################################
#
def purge_expired_tokens() -> None:
    """
    Delete expired sessions and reset tokens. Each kind is purged on its
    own so a failure on one does not stop the other.
    """
    for kind in (sessions, reset_tokens):
        try:
            n = kind.purge_expired()
            if n:
                logger.info(
                    "purged %d expired %s rows", n, kind.model.__name__
                )
        except Exception as exc:
            logger.exception(
                "unable to purge expired %s rows: %s",
                kind.model.__name__,
                exc,
            )

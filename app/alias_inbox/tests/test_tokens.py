#!/usr/bin/env python
#
"""
Test session and password reset tokens.
"""
# system imports
#
from datetime import timedelta

# 3rd party imports
#
import pytest
from django.utils import timezone

# Project imports
#
from ..exceptions import ValidationError
from ..models import ResetToken, SessionToken
from ..tokens import (
    confirm_password_reset,
    purge_expired_tokens,
    request_password_reset,
    reset_tokens,
    sessions,
)
from ..utils import sha256_b64url
from .factories import DEFAULT_PASSWORD

pytestmark = pytest.mark.django_db


####################################################################
#
def test_issue_and_verify(account_factory):
    account = account_factory()
    token = sessions.issue(account)

    # Only the digest is stored.
    #
    assert not SessionToken.objects.filter(token_hash=token).exists()
    row = SessionToken.objects.get(token_hash=sha256_b64url(token))
    assert row.account == account

    assert sessions.verify(token) == account
    assert sessions.verify(token + "x") is None
    assert sessions.verify("") is None


####################################################################
#
def test_expired_token_does_not_verify(account_factory):
    account = account_factory()
    token = sessions.issue(account, ttl=60)
    SessionToken.objects.filter(account=account).update(
        expires_at=timezone.now() - timedelta(seconds=1)
    )
    assert sessions.verify(token) is None


####################################################################
#
def test_disabled_account_token_does_not_verify(account_factory):
    account = account_factory()
    token = sessions.issue(account)
    account.disabled = True
    account.save()
    assert sessions.verify(token) is None

    # The row is still there. Re-enabling makes it work again.
    #
    account.disabled = False
    account.save()
    assert sessions.verify(token) == account


####################################################################
#
def test_revoke(account_factory):
    account = account_factory()
    t1 = sessions.issue(account)
    t2 = sessions.issue(account)
    sessions.revoke(t1)
    assert sessions.verify(t1) is None
    assert sessions.verify(t2) == account

    assert sessions.revoke_all(account.pk) == 1
    assert sessions.verify(t2) is None


####################################################################
#
def test_reset_request_unknown_email_is_silent(mocker):
    send = mocker.patch("alias_inbox.tokens.send_password_reset_email")
    request_password_reset("nobody@nowhere.example")
    send.assert_not_called()
    assert ResetToken.objects.count() == 0


####################################################################
#
def test_reset_request_disabled_account(account_factory, mocker):
    send = mocker.patch("alias_inbox.tokens.send_password_reset_email")
    account = account_factory(disabled=True)
    request_password_reset(account.email)
    send.assert_not_called()


####################################################################
#
def test_reset_flow(account_factory, mocker):
    send = mocker.patch("alias_inbox.tokens.send_password_reset_email")
    account = account_factory()

    request_password_reset(f"  {account.email.upper()} ")
    send.assert_called_once()
    to_addr, token = send.call_args.args
    assert to_addr == account.email
    assert reset_tokens.verify(token) == account

    confirm_password_reset(token, "a brand new password")
    account.refresh_from_db()
    assert account.check_password("a brand new password")
    assert not account.check_password(DEFAULT_PASSWORD)

    # Single use.
    #
    with pytest.raises(ValidationError) as exc_info:
        confirm_password_reset(token, "yet another password")
    assert exc_info.value.message == "Token invalid/expired"


####################################################################
#
def test_reset_token_consumed_once(account_factory, mocker):
    account = account_factory()
    token = reset_tokens.issue(account)

    # Another confirmation consumed the token after this one looked it up.
    #
    stale = reset_tokens.lookup(token)
    confirm_password_reset(token, "the winning password")
    mocker.patch.object(reset_tokens, "lookup", return_value=stale)

    with pytest.raises(ValidationError) as exc_info:
        confirm_password_reset(token, "the losing password")
    assert exc_info.value.message == "Token invalid/expired"
    account.refresh_from_db()
    assert account.check_password("the winning password")


####################################################################
#
def test_reset_other_tokens_stay_valid(account_factory):
    account = account_factory()
    t1 = reset_tokens.issue(account)
    t2 = reset_tokens.issue(account)
    confirm_password_reset(t1, "first new password")
    assert reset_tokens.verify(t2) == account


####################################################################
#
def test_reset_expired_token(account_factory):
    account = account_factory()
    token = reset_tokens.issue(account)
    ResetToken.objects.update(expires_at=timezone.now() - timedelta(hours=2))
    with pytest.raises(ValidationError):
        confirm_password_reset(token, "irrelevant password")


####################################################################
#
def test_purge_expired_tokens(account_factory):
    account = account_factory()
    live_session = sessions.issue(account)
    sessions.issue(account, ttl=-10)
    live_reset = reset_tokens.issue(account)
    reset_tokens.issue(account, ttl=-10)
    assert SessionToken.objects.count() == 2
    assert ResetToken.objects.count() == 2

    purge_expired_tokens()

    assert SessionToken.objects.count() == 1
    assert ResetToken.objects.count() == 1
    assert sessions.verify(live_session) == account
    assert reset_tokens.verify(live_reset) == account

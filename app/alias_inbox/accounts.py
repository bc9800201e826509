#!/usr/bin/env python
#
"""
Account lifecycle: signing up, logging in, the admin knobs (alias limit
and enablement), and deleting an account along with everything that exists
only because the account does.
"""
# system imports
#
import logging
import uuid
from typing import List, Optional

# 3rd party imports
#
from django.conf import settings
from django.db import IntegrityError, transaction

# Project imports
#
from .exceptions import (
    AuthError,
    NotFoundError,
    UnsupportedHashParameter,
    UsernameTaken,
    ValidationError,
)
from .models import Account, Alias, EmailRecord
from .tasks import delete_archived_blob_keys
from .tokens import reset_tokens, sessions

LIST_ACCOUNTS_LIMIT = 200

logger = logging.getLogger("alias_inbox.accounts")


####################################################################
#
def signup(username: str, email: str, password: str) -> Account:
    """
    Create an account. The very first account is an admin, every one after
    that is a user with the default alias limit.

    `username` and `email` are expected to already be validated and lower
    cased.
    """
    is_first = not Account.objects.exists()
    account = Account(
        username=username,
        email=email,
        role=Account.Role.ADMIN if is_first else Account.Role.USER,
        alias_limit=settings.DEFAULT_ALIAS_LIMIT,
    )
    account.set_password(password, save=False)
    try:
        with transaction.atomic():
            account.save(force_insert=True)
    except IntegrityError:
        raise UsernameTaken()

    logger.info(
        "New account %s '%s' (%s)", account.pk, account.username, account.role
    )
    return account


####################################################################
#
def authenticate(identifier: str, password: str) -> Account:
    """
    Look up the account by username or email and check its password.

    Every failure (no such account, disabled, wrong password) is the same
    AuthError so the caller can not tell them apart. The one exception is a
    stored hash we can no longer compute, where the user is told to reset
    their password.
    """
    identifier = str(identifier or "").strip().lower()
    account = (
        Account.objects.filter(username=identifier).first()
        or Account.objects.filter(email=identifier).first()
    )
    if account is None or account.disabled:
        raise AuthError("Login gagal")

    try:
        ok = account.check_password(password)
    except UnsupportedHashParameter as exc:
        logger.warning(
            "Account %s has an unsupported password hash: %s", account.pk, exc
        )
        raise AuthError(UnsupportedHashParameter.default_message)

    if not ok:
        raise AuthError("Login gagal")
    return account


####################################################################
#
def list_accounts() -> List[Account]:
    return list(Account.objects.order_by("-created_at")[:LIST_ACCOUNTS_LIMIT])


####################################################################
#
def _parse_id(target_id) -> uuid.UUID:
    try:
        return uuid.UUID(str(target_id))
    except ValueError:
        raise NotFoundError()


####################################################################
#
def _get_account(target_id) -> Account:
    try:
        return Account.objects.get(pk=_parse_id(target_id))
    except Account.DoesNotExist:
        raise NotFoundError()


####################################################################
#
def update_account(
    admin: Account,
    target_id,
    alias_limit: Optional[int] = None,
    disabled: Optional[bool] = None,
) -> Account:
    """
    Apply an admin's change of alias limit and/or enablement to an account.

    Lowering the limit leaves existing aliases alone. Disabling an account
    cuts off its sessions and inbound mail immediately, since both check
    the flag every time.
    """
    if alias_limit is None and disabled is None:
        raise ValidationError("No fields")
    if alias_limit is not None and not (
        0 <= alias_limit <= settings.ALIAS_LIMIT_MAX
    ):
        raise ValidationError("alias_limit invalid")

    account = _get_account(target_id)
    if disabled:
        check_can_disable(account)
    fields = []
    if alias_limit is not None:
        account.alias_limit = alias_limit
        fields.append("alias_limit")
    if disabled is not None:
        account.disabled = disabled
        fields.append("disabled")
    account.save(update_fields=fields)

    logger.info(
        "Admin %s updated account %s: %s",
        admin.pk,
        account.pk,
        ", ".join(f"{f}={getattr(account, f)}" for f in fields),
    )
    return account


####################################################################
#
def set_quota(admin: Account, target_id, n: int) -> Account:
    return update_account(admin, target_id, alias_limit=n)


####################################################################
#
def set_enabled(admin: Account, target_id, enabled: bool) -> Account:
    return update_account(admin, target_id, disabled=not enabled)


####################################################################
#
def check_can_delete(account: Account) -> None:
    """
    Raise ValidationError if deleting `account` would leave no admin.
    """
    if not account.is_admin:
        return
    others = Account.objects.filter(role=Account.Role.ADMIN).exclude(
        pk=account.pk
    )
    if not others.exists():
        raise ValidationError("Tidak bisa menghapus admin terakhir")


####################################################################
#
def check_can_disable(account: Account) -> None:
    """
    Raise ValidationError if disabling `account` would leave no enabled
    admin to log in with.
    """
    if not account.is_admin or account.disabled:
        return
    others = Account.objects.filter(
        role=Account.Role.ADMIN, disabled=False
    ).exclude(pk=account.pk)
    if not others.exists():
        raise ValidationError("Tidak bisa menonaktifkan admin terakhir")


####################################################################
#
def delete_account(admin: Account, target_id) -> None:
    """
    Delete an account and everything it owns.

    An admin can not delete their own account this way, and the last admin
    can not be deleted at all.
    """
    if _parse_id(target_id) == admin.pk:
        raise ValidationError("Tidak bisa menghapus akun sendiri")

    account = _get_account(target_id)
    check_can_delete(account)

    keys = purge_account_records(account.pk)
    logger.info(
        "Admin %s deleted account %s '%s' (%d archived messages)",
        admin.pk,
        account.pk,
        account.username,
        len(keys),
    )


####################################################################
#
def purge_account_records(account_id) -> List[str]:
    """
    Remove an account's rows in a fixed order: sessions, reset tokens,
    email records, aliases, and finally the account itself. The archived
    raw messages of the deleted email records are then scheduled for
    deletion.

    Each step only deletes whatever is still there, so if this is
    interrupted it can be run again for the same id to finish the job.
    Returns the blob keys that were scheduled for deletion.
    """
    keys = [
        k
        for k in EmailRecord.objects.filter(owner_id=account_id).values_list(
            "raw_key", flat=True
        )
        if k
    ]

    sessions.revoke_all(account_id)
    reset_tokens.revoke_all(account_id)
    EmailRecord.objects.filter(owner_id=account_id).delete()
    Alias.objects.filter(owner_id=account_id).delete()
    Account.objects.filter(pk=account_id).delete()

    # Blob deletion failures do not undo anything above. An orphaned blob is
    # a bounded leak, the rows are what matter.
    #
    try:
        delete_archived_blob_keys(keys)
    except Exception as exc:
        logger.exception(
            "Unable to schedule deletion of %d archived messages for "
            "account %s: %s",
            len(keys),
            account_id,
            exc,
        )
    return keys

#!/usr/bin/env python
#
"""
The alias registry. Maps a local part on our domain to the account that
owns it and keeps each account within its alias limit.

Only enabled aliases count against the limit. The limit is read from the
account row at the time of the request, and lowering it never disables
aliases that already exist.
"""
# system imports
#
import logging
import re
from typing import List, Optional

# 3rd party imports
#
from django.conf import settings
from django.db import IntegrityError, transaction

# Project imports
#
from .exceptions import (
    AliasTaken,
    InvalidLocalPart,
    NotFoundError,
    QuotaExceeded,
)
from .models import Account, Alias, EmailRecord
from .tasks import delete_archived_blob_keys

LOCAL_PART_RE = re.compile(r"^[a-z0-9][a-z0-9._+-]{0,63}$")

logger = logging.getLogger("alias_inbox.aliases")


####################################################################
#
def normalize_local_part(local_part: str) -> str:
    """
    Lower case and strip `local_part`, raising InvalidLocalPart if what is
    left is not an acceptable alias.
    """
    local_part = str(local_part or "").strip().lower()
    if not LOCAL_PART_RE.match(local_part):
        raise InvalidLocalPart()
    return local_part


####################################################################
#
def _check_quota(owner: Account) -> None:
    """
    Raise QuotaExceeded if `owner` may not have one more enabled alias.
    """
    limit = (
        Account.objects.filter(pk=owner.pk)
        .values_list("alias_limit", flat=True)
        .first()
    )
    limit = limit or 0
    enabled = Alias.objects.filter(owner_id=owner.pk, disabled=False).count()
    if enabled >= limit:
        raise QuotaExceeded()


####################################################################
#
def create_alias(owner: Account, local_part: str) -> Alias:
    """
    Create a new enabled alias for `owner`.

    NOTE: Two concurrent creations by the same account can both pass the
          quota check. That race is accepted. Two concurrent creations of the
          same local part can not both succeed, the primary key sees to that.
    """
    local_part = normalize_local_part(local_part)
    _check_quota(owner)
    if Alias.objects.filter(local_part=local_part).exists():
        raise AliasTaken()

    try:
        with transaction.atomic():
            alias = Alias.objects.create(local_part=local_part, owner=owner)
    except IntegrityError:
        raise AliasTaken()

    logger.info("Account %s created alias '%s'", owner.pk, local_part)
    return alias


####################################################################
#
def list_aliases(owner: Account) -> List[Alias]:
    return list(Alias.objects.filter(owner=owner).order_by("-created_at"))


####################################################################
#
def owned_alias(owner: Account, local_part: str) -> Optional[Alias]:
    """
    The enabled alias `local_part` if `owner` owns it, otherwise None.
    """
    local_part = str(local_part or "").strip().lower()
    if not local_part:
        return None
    return Alias.objects.filter(
        local_part=local_part, owner=owner, disabled=False
    ).first()


####################################################################
#
def delete_alias(owner: Account, local_part: str) -> None:
    """
    Hard delete an alias owned by `owner`.

    The email delivered to the alias is left alone unless the
    `ALIAS_DELETE_PURGES_EMAILS` setting is true, in which case the records
    and their archived raw messages go too.
    """
    local_part = str(local_part or "").strip().lower()
    deleted, _ = Alias.objects.filter(
        local_part=local_part, owner=owner
    ).delete()
    if not deleted:
        raise NotFoundError()

    logger.info("Account %s deleted alias '%s'", owner.pk, local_part)
    if settings.ALIAS_DELETE_PURGES_EMAILS:
        purge_alias_emails(owner, local_part)


####################################################################
#
def purge_alias_emails(owner: Account, local_part: str) -> int:
    """
    Delete the email records for one of `owner`'s local parts and schedule
    the removal of their archived raw messages.
    """
    emails = EmailRecord.objects.filter(owner=owner, local_part=local_part)
    keys = [k for k in emails.values_list("raw_key", flat=True) if k]
    deleted, _ = emails.delete()
    delete_archived_blob_keys(keys)
    return deleted


####################################################################
#
def set_alias_disabled(alias: Alias, disabled: bool) -> Alias:
    """
    Enable or disable an alias. Enabling one counts against the owner's
    limit the same way creating one does.
    """
    if alias.disabled == disabled:
        return alias
    if not disabled:
        _check_quota(alias.owner)
    alias.disabled = disabled
    alias.save(update_fields=["disabled"])
    logger.info(
        "Alias '%s' %s", alias.local_part, "disabled" if disabled else "enabled"
    )
    return alias

#!/usr/bin/env python
#
"""
Reading an account's inbox: the messages delivered to one of its aliases,
a single message, and deleting a message.
"""
# system imports
#
import logging
import uuid
from typing import List

# 3rd party imports
#
from django.db.models.functions import Substr

# Project imports
#
from .aliases import LOCAL_PART_RE, owned_alias
from .exceptions import AuthorizationError, NotFoundError, ValidationError
from .models import Account, EmailRecord
from .tasks import delete_archived_blob_keys

LIST_EMAILS_LIMIT = 50
SNIPPET_CHARS = 180

logger = logging.getLogger("alias_inbox.inbox")


####################################################################
#
def list_emails(owner: Account, local_part: str) -> List[EmailRecord]:
    """
    The newest messages delivered to `local_part`, which must be an
    enabled alias owned by `owner`. Each record is annotated with a
    `snippet` of its text body and the bodies themselves are not loaded.
    """
    local_part = str(local_part or "").strip().lower()
    if not local_part or not LOCAL_PART_RE.match(local_part):
        raise ValidationError("alias required")
    if owned_alias(owner, local_part) is None:
        raise AuthorizationError("Alias bukan milikmu / disabled")

    return list(
        EmailRecord.objects.filter(owner=owner, local_part=local_part)
        .defer("text", "html")
        .annotate(text_snippet=Substr("text", 1, SNIPPET_CHARS))
        .order_by("-created_at")[:LIST_EMAILS_LIMIT]
    )


####################################################################
#
def get_email(owner: Account, email_id) -> EmailRecord:
    try:
        email_id = uuid.UUID(str(email_id))
        return EmailRecord.objects.get(pk=email_id, owner=owner)
    except (ValueError, EmailRecord.DoesNotExist):
        raise NotFoundError()


####################################################################
#
def delete_email(owner: Account, email_id) -> None:
    """
    Delete one of `owner`'s messages and schedule deletion of its archived
    raw message, if it has one.
    """
    record = get_email(owner, email_id)
    raw_key = record.raw_key
    record.delete()
    logger.info("Account %s deleted email %s", owner.pk, email_id)
    if raw_key:
        delete_archived_blob_keys([raw_key])

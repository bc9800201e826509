#!/usr/bin/env python
#
"""
Huey dispatchable (and periodic) tasks.

Everything in here is fire and forget. The request or message that
scheduled the task has already been answered, so failures are logged and
never reported back to whoever caused them.
"""
# system imports
#
import logging
from typing import List
from urllib.parse import quote

# 3rd party imports
#
from django.conf import settings
from django.utils.html import format_html
from huey import crontab
from huey.contrib.djhuey import db_periodic_task, db_task
from postmarker.core import PostmarkClient
from postmarker.exceptions import ClientError
from requests import RequestException

# Project imports
#
from .blobstore import BlobStore, get_blob_store
from .utils import chunked

RESET_EMAIL_SUBJECT = "Reset password"

logger = logging.getLogger("alias_inbox.tasks")


####################################################################
#
@db_task()
def archive_raw_message(key: str, raw: bytes) -> None:
    """
    Write the raw bytes of an accepted message to the blob store. The email
    record already points at `key` and stays in place if this fails.
    """
    store = get_blob_store()
    if store is None:
        logger.warning(
            "No blob store configured, not archiving message '%s'", key
        )
        return
    try:
        store.put(key, raw)
    except Exception as exc:
        logger.exception("Unable to archive message '%s': %s", key, exc)


####################################################################
#
@db_task()
def delete_archived_blobs(keys: List[str]) -> None:
    """
    Remove archived raw messages. Orphaned blobs left behind by a failure
    here are an accepted leak: the email records are already gone.
    """
    store = get_blob_store()
    if store is None or not keys:
        return
    try:
        store.delete_many(keys)
        logger.info("Deleted %d archived messages", len(keys))
    except Exception as exc:
        logger.exception(
            "Unable to delete %d archived messages: %s", len(keys), exc
        )


####################################################################
#
def delete_archived_blob_keys(keys: List[str]) -> None:
    """
    Schedule deletion of `keys`, one task per batch the blob store accepts
    in a single bulk delete.

    Failing to queue a batch is logged and does not stop the remaining
    batches. Whatever deleted the email records has already happened.
    """
    for batch in chunked([k for k in keys if k], BlobStore.MAX_DELETE_BATCH):
        try:
            delete_archived_blobs(batch)
        except Exception as exc:
            logger.exception(
                "Unable to schedule deletion of %d archived messages: %s",
                len(batch),
                exc,
            )


####################################################################
#
def reset_link(token: str) -> str:
    base = (settings.APP_BASE_URL or "").rstrip("/")
    if not base:
        return ""
    return f"{base}/reset#token={quote(token, safe='')}"


####################################################################
#
@db_task()
def send_password_reset_email(to_addr: str, token: str) -> None:
    """
    Mail a password reset token through Postmark.

    Without `RESET_EMAIL_API_KEY` this logs and does nothing: the token
    exists but can only be handed out by an operator.
    """
    if not settings.RESET_EMAIL_API_KEY:
        logger.info("RESET_EMAIL_API_KEY not set, skipping reset email")
        return

    from_addr = (
        settings.RESET_EMAIL_FROM
        or f"Org_Lemah <no-reply@{settings.MAIL_DOMAIN}>"
    )
    link = reset_link(token)
    html_body = format_html(
        '<div style="font-family:Arial,sans-serif">'
        '<h3 style="margin:0 0 10px">Reset Password</h3>'
        "<p>Gunakan token berikut untuk reset password:</p>"
        '<p style="font-size:16px"><b>{}</b></p>'
        "{}"
        '<p style="color:#64748b">Jika bukan kamu, abaikan email ini.</p>'
        "</div>",
        token,
        (
            format_html(
                '<p>Atau klik link: <a href="{}">{}</a></p>', link, link
            )
            if link
            else ""
        ),
    )
    text_body = "Gunakan token berikut untuk reset password:\n\n" + token
    if link:
        text_body += f"\n\nAtau klik link: {link}"
    text_body += "\n\nJika bukan kamu, abaikan email ini.\n"

    client = PostmarkClient(server_token=settings.RESET_EMAIL_API_KEY)
    try:
        client.emails.send(
            From=from_addr,
            To=to_addr,
            Subject=RESET_EMAIL_SUBJECT,
            HtmlBody=str(html_body),
            TextBody=text_body,
        )
    except (ClientError, RequestException) as exc:
        logger.error("Failed to send reset email to %s: %r", to_addr, exc)
        return
    logger.info("Sent reset email to %s", to_addr)


####################################################################
#
@db_periodic_task(crontab(minute="*/30"))
def purge_expired_tokens_task() -> None:
    """
    Housekeeping. Verification checks expiry itself, so nothing depends on
    this running.
    """
    # Imported here because tokens dispatches tasks from this module.
    #
    from .tokens import purge_expired_tokens

    purge_expired_tokens()

#!/usr/bin/env python
#
"""
Inbound mail routing.

`route_inbound_message()` is called by the inbound transport once per
(message, recipient). It decides whether the message is accepted, and if
so, parses it and stores it as an `EmailRecord` in the owning account's
inbox.

A message ends in exactly one of two ways: accepted, or rejected with a
reason. A rejection is either permanent (the sending server should bounce
the message) or temporary (the sending server should try again later).
Nothing raised while handling a message escapes from here.
"""
# system imports
#
import email
import email.policy
import logging
import uuid
from datetime import UTC, datetime
from email.message import EmailMessage
from typing import BinaryIO, Callable, Optional, Union, cast

# 3rd party imports
#
from django.conf import settings
from pydantic import BaseModel

# Project imports
#
from .blobstore import archive_enabled
from .models import Alias, EmailRecord
from .tasks import archive_raw_message
from .utils import split_email_address

BAD_RECIPIENT = "Bad recipient"
UNKNOWN_RECIPIENT = "Unknown recipient"
MESSAGE_TOO_LARGE = "Message too large"
TEMPORARY_ERROR = "Temporary processing error"

# Matches the column size of `EmailRecord.from_addr` and `to_addr`.
#
ADDR_MAX_CHARS = 512

logger = logging.getLogger("alias_inbox.inbound")


########################################################################
########################################################################
#
class ParsedMessage(BaseModel):
    """
    The parts of a message we keep in an email record.
    """

    subject: str = ""
    date: str = ""
    from_addr: str = ""
    text: str = ""
    html: str = ""


########################################################################
########################################################################
#
class Outcome(BaseModel):
    accepted: bool
    reason: Optional[str] = None
    temporary: bool = False
    email_id: Optional[uuid.UUID] = None


########################################################################
########################################################################
#
class InboundMessage:
    """
    One message as handed to us by the inbound transport.

    `raw` is either the message bytes or a binary stream to read them from.
    `raw_size` is the size the transport reported, if it reported one.
    Calling `set_reject()` marks the message as refused. If it is never
    called the message was accepted.
    """

    ####################################################################
    #
    def __init__(
        self,
        mail_from: str,
        rcpt_to: str,
        raw: Union[bytes, BinaryIO],
        raw_size: Optional[int] = None,
    ):
        self.mail_from = mail_from or ""
        self.rcpt_to = rcpt_to or ""
        self.raw = raw
        self.raw_size = raw_size
        self.reject_reason: Optional[str] = None
        self.reject_temporary = False

    ####################################################################
    #
    def __repr__(self):
        return (
            f"<InboundMessage from={self.mail_from!r} to={self.rcpt_to!r} "
            f"size={self.raw_size!r}>"
        )

    ####################################################################
    #
    def set_reject(self, reason: str, temporary: bool = False) -> None:
        self.reject_reason = reason
        self.reject_temporary = temporary

    ####################################################################
    #
    @property
    def rejected(self) -> bool:
        return self.reject_reason is not None

    ####################################################################
    #
    def read_raw(self, limit: int) -> bytes:
        """
        Read at most `limit` bytes of the raw message.
        """
        if isinstance(self.raw, (bytes, bytearray, memoryview)):
            return bytes(self.raw[:limit])
        return self.raw.read(limit)


####################################################################
#
def _iso_date(msg: EmailMessage) -> str:
    """
    The message's Date header as an ISO-8601 UTC timestamp, or "" if there
    is no usable one.
    """
    try:
        hdr = msg["date"]
        dt = getattr(hdr, "datetime", None)
    except Exception:
        return ""
    if not isinstance(dt, datetime):
        return ""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return (
        dt.astimezone(UTC)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


####################################################################
#
def _from_addr(msg: EmailMessage) -> str:
    try:
        hdr = msg["from"]
        addresses = getattr(hdr, "addresses", ())
    except Exception:
        return ""
    for addr in addresses:
        if addr.addr_spec and addr.addr_spec != "<>":
            return addr.addr_spec
    return ""


####################################################################
#
def _body_text(msg: EmailMessage, subtype: str) -> str:
    """
    The content of the preferred `text/<subtype>` part, or "".

    NOTE: A part with a charset python does not know about is decoded as
          utf-8 with replacement characters instead of being dropped.
    """
    part = msg.get_body(preferencelist=(subtype,))
    if part is None:
        return ""
    try:
        return part.get_content()
    except (LookupError, UnicodeDecodeError):
        payload = part.get_payload(decode=True) or b""
        return payload.decode("utf-8", errors="replace")


####################################################################
#
def parse_message(raw: bytes) -> ParsedMessage:
    """
    Turn raw RFC 5322 bytes in to the fields we store.
    """
    msg = cast(
        EmailMessage,
        email.message_from_bytes(raw, policy=email.policy.default),
    )
    try:
        subject = str(msg.get("subject", "") or "")
    except Exception:
        subject = ""

    return ParsedMessage(
        subject=subject,
        date=_iso_date(msg),
        from_addr=_from_addr(msg),
        text=_body_text(msg, "plain"),
        html=_body_text(msg, "html"),
    )


####################################################################
#
def _reject(
    message: InboundMessage, reason: str, temporary: bool = False
) -> Outcome:
    message.set_reject(reason, temporary=temporary)
    return Outcome(accepted=False, reason=reason, temporary=temporary)


####################################################################
#
def route_inbound_message(
    message: InboundMessage,
    parser: Optional[Callable[[bytes], ParsedMessage]] = None,
) -> Outcome:
    """
    Decide the fate of one inbound message, storing it if it is accepted.

    The checks happen in this order, and the first one to fail decides the
    rejection:

      1. the recipient is `local@<MAIL_DOMAIN>` ("Bad recipient")
      2. `local` is an enabled alias of an enabled account ("Unknown
         recipient")
      3. the message is no bigger than `MAX_STORE_BYTES` ("Message too
         large"). If the transport gave us a size we check it before reading
         anything. The parser never sees an oversized message.

    Anything unexpected is a temporary rejection so the sender retries.
    """
    parser = parser or parse_message
    try:
        return _route(message, parser)
    except Exception as exc:
        logger.exception("Failed to process inbound %r: %s", message, exc)
        return _reject(message, TEMPORARY_ERROR, temporary=True)


####################################################################
#
def _route(
    message: InboundMessage, parser: Callable[[bytes], ParsedMessage]
) -> Outcome:
    parts = split_email_address(message.rcpt_to)
    if parts is None or parts[1] != settings.MAIL_DOMAIN.lower():
        logger.info("Rejecting %r: bad recipient", message)
        return _reject(message, BAD_RECIPIENT)
    local_part, _ = parts

    # Missing alias, disabled alias, and disabled owner all look the same
    # from the outside.
    #
    alias = (
        Alias.objects.select_related("owner")
        .filter(local_part=local_part)
        .first()
    )
    if alias is None or alias.disabled or alias.owner.disabled:
        logger.info("Rejecting %r: unknown recipient", message)
        return _reject(message, UNKNOWN_RECIPIENT)

    max_bytes = settings.MAX_STORE_BYTES
    if message.raw_size and message.raw_size > max_bytes:
        logger.info("Rejecting %r: too large", message)
        return _reject(message, MESSAGE_TOO_LARGE)

    raw = message.read_raw(max_bytes + 1)
    if len(raw) > max_bytes:
        logger.info("Rejecting %r: too large after reading", message)
        return _reject(message, MESSAGE_TOO_LARGE)

    parsed = parser(raw)

    max_chars = settings.MAX_TEXT_CHARS
    email_id = uuid.uuid4()
    raw_key = EmailRecord.raw_key_for(email_id) if archive_enabled() else None
    record = EmailRecord.objects.create(
        id=email_id,
        owner=alias.owner,
        local_part=alias.local_part,
        from_addr=(parsed.from_addr or message.mail_from)[:ADDR_MAX_CHARS],
        to_addr=message.rcpt_to[:ADDR_MAX_CHARS],
        subject=parsed.subject,
        date=parsed.date,
        text=parsed.text[:max_chars],
        html=parsed.html[:max_chars],
        raw_key=raw_key,
        size=len(raw) or message.raw_size or 0,
    )
    logger.info(
        "Accepted message %s for '%s' (%d bytes)",
        record.id,
        record.local_part,
        record.size,
    )

    # The record is already committed. Failing to archive the raw message
    # leaves a dangling `raw_key` but the message is still delivered.
    #
    if raw_key:
        try:
            archive_raw_message(raw_key, raw)
        except Exception as exc:
            logger.exception(
                "Unable to schedule archival of '%s': %s", raw_key, exc
            )

    return Outcome(accepted=True, email_id=record.id)

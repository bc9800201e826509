#!/usr/bin/env python
#
"""
Test the inbound aiosmtpd handler.
"""
# 3rd party imports
#
import pytest
from asgiref.sync import sync_to_async

# Project imports
#
from ..inbound import TEMPORARY_ERROR
from ..management.commands.inbound_aiosmtpd import InboundHandler
from ..models import EmailRecord

# The handler runs the router in a worker thread, so the rows it reads and
# writes have to be committed.
#
pytestmark = pytest.mark.django_db(transaction=True)


####################################################################
#
@pytest.mark.asyncio
async def test_rcpt_domain(aiosmtp_session, aiosmtp_envelope):
    handler = InboundHandler("Example.COM")
    envelope = aiosmtp_envelope()

    resp = await handler.handle_RCPT(
        None, aiosmtp_session, envelope, "anything@example.com", []
    )
    assert resp == "250 OK"
    resp = await handler.handle_RCPT(
        None, aiosmtp_session, envelope, "someone@other.example", []
    )
    assert resp == "550 5.7.1 Bad recipient"
    resp = await handler.handle_RCPT(
        None, aiosmtp_session, envelope, "garbage", []
    )
    assert resp == "550 5.7.1 Bad recipient"
    assert envelope.rcpt_tos == ["anything@example.com"]


####################################################################
#
@pytest.mark.asyncio
async def test_data_delivered(aiosmtp_session, aiosmtp_envelope, alias_factory):
    alias = await sync_to_async(alias_factory)()
    envelope = aiosmtp_envelope(
        rcpt_tos=[f"{alias.local_part}@example.com"], subject="hello there"
    )

    resp = await InboundHandler().handle_DATA(None, aiosmtp_session, envelope)

    assert resp == "250 OK"
    record = await EmailRecord.objects.aget(local_part=alias.local_part)
    assert record.subject == "hello there"
    assert record.size == len(envelope.original_content)


####################################################################
#
@pytest.mark.asyncio
async def test_data_partial_reject(
    aiosmtp_session, aiosmtp_envelope, alias_factory
):
    alias = await sync_to_async(alias_factory)()
    envelope = aiosmtp_envelope(
        rcpt_tos=[
            f"{alias.local_part}@example.com",
            "nobody-here@example.com",
        ]
    )

    resp = await InboundHandler().handle_DATA(None, aiosmtp_session, envelope)

    assert resp == "550 5.1.1 nobody-here@example.com: Unknown recipient"
    n = await EmailRecord.objects.filter(local_part=alias.local_part).acount()
    assert n == 1


####################################################################
#
@pytest.mark.asyncio
async def test_data_too_large(
    settings, aiosmtp_session, aiosmtp_envelope, alias_factory
):
    settings.MAX_STORE_BYTES = 64
    alias = await sync_to_async(alias_factory)()
    envelope = aiosmtp_envelope(rcpt_tos=[f"{alias.local_part}@example.com"])

    resp = await InboundHandler().handle_DATA(None, aiosmtp_session, envelope)

    rcpt = f"{alias.local_part}@example.com"
    assert resp == f"550 5.1.1 {rcpt}: Message too large"
    assert await EmailRecord.objects.acount() == 0


####################################################################
#
@pytest.mark.asyncio
async def test_data_temporary_failure(
    aiosmtp_session, aiosmtp_envelope, alias_factory, mocker
):
    mocker.patch(
        "alias_inbox.inbound.parse_message", side_effect=RuntimeError("boom")
    )
    alias = await sync_to_async(alias_factory)()
    envelope = aiosmtp_envelope(
        rcpt_tos=[f"{alias.local_part}@example.com", "nobody-here@example.com"]
    )

    resp = await InboundHandler().handle_DATA(None, aiosmtp_session, envelope)

    assert resp == f"451 4.3.0 {TEMPORARY_ERROR}"
    assert await EmailRecord.objects.acount() == 0

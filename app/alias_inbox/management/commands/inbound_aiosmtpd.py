#!/usr/bin/env python
#
"""
An AsyncIO SMTP Daemon that receives email from the internet at large for
the aliases on our domain.

- It refuses recipients that are not on our domain at RCPT time.
- On DATA every recipient is handed to the inbound mail router, which
  decides if the message is stored or rejected.
- A permanent rejection is answered with a 550 so the sender bounces the
  message. A temporary one is answered with a 451 so the sender retries.
"""
# system imports
#
import asyncio
import logging
import ssl
import time
from typing import List, Optional

# 3rd party imports
#
import sentry_sdk
from aiosmtpd.controller import Controller
from aiosmtpd.smtp import SMTP, Envelope as SMTPEnvelope, Session as SMTPSession
from asgiref.sync import sync_to_async
from django.conf import settings
from django.core.management.base import BaseCommand
from sentry_sdk.integrations.asyncio import AsyncioIntegration

# Project imports
#
from alias_inbox.inbound import InboundMessage, route_inbound_message
from alias_inbox.utils import split_email_address

LISTEN_PORT = 25
LISTEN_HOST = "0.0.0.0"

logger = logging.getLogger("alias_inbox.inbound_aiosmtpd")


########################################################################
########################################################################
#
class SentryController(Controller):
    """
    Make sure sentry is configured to run if enabled.
    """

    ####################################################################
    #
    def _run(self, *args, **kwargs):
        """
        Hook sentry_io's AsyncioIntegration in to our event loop.
        """
        asyncio.set_event_loop(self.loop)
        if settings.SENTRY_DSN is not None:
            sentry_sdk.init(
                dsn=settings.SENTRY_DSN,
                traces_sample_rate=settings.SENTRY_TRACES_SAMPLE_RATE,
                integrations=[
                    AsyncioIntegration(),
                ],
                environment="devel" if settings.DEBUG else "production",
            )
        super()._run(*args, **kwargs)


########################################################################
########################################################################
#
class InboundHandler:
    """
    The aiosmtpd handler. RCPT only checks the domain: whether the local
    part is a live alias is the router's call, made once the message is in
    hand.
    """

    ####################################################################
    #
    def __init__(self, domain: Optional[str] = None):
        self.domain = (domain or settings.MAIL_DOMAIN).lower()

    ####################################################################
    #
    async def handle_RCPT(
        self,
        server: SMTP,
        session: SMTPSession,
        envelope: SMTPEnvelope,
        address: str,
        rcpt_options: List[str],
    ) -> str:
        parts = split_email_address(address)
        if parts is None or parts[1] != self.domain:
            logger.info("handle_RCPT: not relaying for '%s'", address)
            return "550 5.7.1 Bad recipient"
        envelope.rcpt_tos.append(address)
        return "250 OK"

    ####################################################################
    #
    async def handle_DATA(
        self, server: SMTP, session: SMTPSession, envelope: SMTPEnvelope
    ) -> str:
        """
        Route the message to each recipient. The response is the worst of
        the outcomes: any temporary failure makes the whole transaction a
        451, otherwise any rejection makes it a 550.

        NOTE: With more than one recipient a 451 means recipients that were
              already accepted will get the message again on retry.
        """
        raw = envelope.original_content or envelope.content or b""
        if isinstance(raw, str):
            raw = raw.encode("utf-8")

        temporary: List[str] = []
        permanent: List[str] = []
        for rcpt_to in envelope.rcpt_tos:
            message = InboundMessage(
                mail_from=envelope.mail_from or "",
                rcpt_to=rcpt_to,
                raw=raw,
                raw_size=len(raw),
            )
            await sync_to_async(route_inbound_message)(message)
            if not message.rejected:
                continue
            if message.reject_temporary:
                temporary.append(message.reject_reason)
            else:
                permanent.append(f"{rcpt_to}: {message.reject_reason}")

        if temporary:
            return f"451 4.3.0 {temporary[0]}"
        if permanent:
            return f"550 5.1.1 {'; '.join(permanent)}"
        return "250 OK"


########################################################################
########################################################################
#
class Command(BaseCommand):
    help = (
        "Runs a SMTP daemon that receives email for the aliases on our "
        "domain and stores it in the owning account's inbox."
    )

    ####################################################################
    #
    def add_arguments(self, parser):
        parser.add_argument(
            "--server_hostname",
            type=str,
            action="store",
            default=settings.MAIL_DOMAIN,
        )
        parser.add_argument(
            "--listen_host",
            type=str,
            action="store",
            default=LISTEN_HOST,
        )
        parser.add_argument(
            "--listen_port",
            type=int,
            action="store",
            default=LISTEN_PORT,
        )
        parser.add_argument("--ssl_key", action="store", default=None)
        parser.add_argument("--ssl_cert", action="store", default=None)

    ####################################################################
    #
    def handle(self, *args, **options):
        server_hostname = options["server_hostname"]
        listen_host = options["listen_host"]
        listen_port = options["listen_port"]
        ssl_cert_file = options["ssl_cert"]
        ssl_key_file = options["ssl_key"]

        logger.info(
            "Listening on %s:%d for '%s', cert: '%s', key: '%s'",
            listen_host,
            listen_port,
            settings.MAIL_DOMAIN,
            ssl_cert_file,
            ssl_key_file,
        )

        # If `listen_host` contains commas we are going to assume it is a set
        # of ip addressses separated by commas.
        #
        if "," in listen_host:
            listen_host = [x.strip() for x in listen_host.split(",")]

        # STARTTLS is offered when we have a certificate, but never required:
        # plenty of sending servers on the internet do not do TLS.
        #
        tls_context = None
        if ssl_cert_file and ssl_key_file:
            tls_context = ssl.create_default_context(ssl.Purpose.CLIENT_AUTH)
            tls_context.check_hostname = False
            tls_context.load_cert_chain(ssl_cert_file, ssl_key_file)

        controller = SentryController(
            InboundHandler(),
            hostname=listen_host,
            server_hostname=server_hostname,
            port=listen_port,
            tls_context=tls_context,
            require_starttls=False,
        )
        logger.info("Starting controller")
        controller.start()
        try:
            while True:
                time.sleep(300)
        except KeyboardInterrupt:
            logger.warning("Keyboard interrupt, exiting")
        finally:
            controller.stop()

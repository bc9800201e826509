#!/usr/bin/env python
#
"""
pytest fixtures for our tests
"""
# system imports
#
import email.policy
from email.headerregistry import Address
from email.message import EmailMessage
from typing import Callable

# 3rd party imports
#
import pytest
from aiosmtpd.smtp import Envelope as SMTPEnvelope, Session as SMTPSession
from huey.api import Huey
from huey.contrib.djhuey import HUEY
from pytest_factoryboy import register
from rest_framework.test import APIClient

# Project imports
#
from ..models import Account
from ..tokens import sessions
from .factories import AccountFactory, AliasFactory, EmailRecordFactory

# This is the magic where we create fixtures that use factories to
# generate the right kind of object.
#
# NOTE: `register(FooFactory)` provides the fixture `foo_factory`
#
register(AccountFactory)
register(AliasFactory)
register(EmailRecordFactory)

MAIL_DOMAIN = "example.com"


####################################################################
#
@pytest.fixture(autouse=True)
def huey_immediate_mode(settings) -> Huey:
    """
    Huey tasks are invoked immediately inline. Cannot think of a case
    where we would not want this to happen automatically while running
    tests. Especially since there is no easy to invoke a huey task directly
    (ie: without it trying to run as a huey task.)
    """
    immediate = HUEY.immediate
    HUEY.immediate = True
    settings.HUEY["immediate"] = True
    yield HUEY
    HUEY.immediate = immediate


####################################################################
#
@pytest.fixture(autouse=True)
def inbox_settings(settings):
    """
    Known values for the settings our code reads, whatever the
    environment the tests run in says. The hash work factor is the
    minimum so tests that create accounts stay fast.
    """
    settings.MAIL_DOMAIN = MAIL_DOMAIN
    settings.DEFAULT_ALIAS_LIMIT = 3
    settings.ALIAS_LIMIT_MAX = 1000
    settings.SESSION_TTL_SECONDS = 1209600
    settings.RESET_TTL_SECONDS = 3600
    settings.MAX_STORE_BYTES = 262144
    settings.MAX_TEXT_CHARS = 200000
    settings.PASSWORD_HASH_ITERATIONS = 10000
    settings.RESET_EMAIL_API_KEY = ""
    settings.RESET_EMAIL_FROM = ""
    settings.APP_BASE_URL = "https://inbox.example.com"
    settings.MAIL_ARCHIVE_BACKEND = ""
    settings.ALIAS_DELETE_PURGES_EMAILS = False
    return settings


####################################################################
#
@pytest.fixture
def local_archive(settings, tmp_path):
    """
    Turn on raw message archival to a directory under `tmp_path`. Returns
    the directory.
    """
    archive_dir = tmp_path / "archive"
    settings.MAIL_ARCHIVE_BACKEND = "local"
    settings.MAIL_ARCHIVE_DIR = str(archive_dir)
    return archive_dir


####################################################################
#
@pytest.fixture
def admin_account(account_factory) -> Account:
    return account_factory(role=Account.Role.ADMIN, alias_limit=10)


####################################################################
#
@pytest.fixture
def api_client():
    """
    fixture for DRF's APIClient object.
    """
    return APIClient


####################################################################
#
@pytest.fixture
def logged_in_client(api_client) -> Callable[[Account], APIClient]:
    """
    Returns a function that gives you an APIClient carrying a valid
    session cookie for the given account.
    """

    def make_client(account: Account) -> APIClient:
        client = api_client()
        client.cookies["session"] = sessions.issue(account)
        return client

    return make_client


####################################################################
#
@pytest.fixture
def email_factory(faker):
    """
    Returns a factory that creates email.message.EmailMessages with a
    text part and an html alternative.
    """

    def make_email(**kwargs):
        """
        if kwargs for 'subject', 'msg_from', 'to', or 'text' are provided use
        those in the message instead of faker generated ones.
        """
        msg = EmailMessage()
        msg["Message-ID"] = f"<{faker.uuid4()}@{faker.domain_name()}>"
        msg["Subject"] = kwargs.get("subject", faker.sentence())
        msg["Date"] = kwargs.get("date", "Tue, 13 Oct 2026 09:30:00 +0200")
        if "msg_from" not in kwargs:
            username, domain_name = faker.email().split("@")
            msg["From"] = Address(faker.name(), username, domain_name)
        else:
            msg["From"] = kwargs["msg_from"]

        if "to" not in kwargs:
            msg["To"] = Address(faker.name(), "inbox", MAIL_DOMAIN)
        else:
            msg["To"] = kwargs["to"]

        text = kwargs.get("text", "\n".join(faker.paragraphs(nb=5)))
        msg.set_content(text)
        paragraphs = "\n".join(f"<p>{x}</p>" for x in text.split("\n"))
        msg.add_alternative(
            f"<html><head></head><body>{paragraphs}</body></html>",
            subtype="html",
        )
        return msg

    return make_email


####################################################################
#
@pytest.fixture
def aiosmtp_session(faker) -> SMTPSession:
    """
    When testing handlers we need a aiosmtp.smtp.Session
    """
    sess = SMTPSession(None)
    sess.peer = (faker.ipv4(), faker.pyint(0, 65535))
    return sess


####################################################################
#
@pytest.fixture
def aiosmtp_envelope(email_factory):
    """
    Similar to (and uses) email_factory to create a SMTPEnvelope.
    """

    def make_envelope(rcpt_tos=(), **kwargs):
        env = SMTPEnvelope()
        env.mail_from = kwargs.get("msg_from", "sender@elsewhere.example")
        env.rcpt_tos.extend(rcpt_tos)
        msg = email_factory(**kwargs)
        env.content = msg.as_bytes(policy=email.policy.default)
        env.original_content = env.content
        return env

    return make_envelope

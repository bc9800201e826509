#!/usr/bin/env python
#
"""
Make sure our factories produce usable objects.
"""
# 3rd party imports
#
import pytest

# Project imports
#
from .factories import DEFAULT_PASSWORD

pytestmark = pytest.mark.django_db


####################################################################
#
def test_account_factory(account_factory):
    account = account_factory()
    account.refresh_from_db()
    assert account.check_password(DEFAULT_PASSWORD)
    assert account.pass_iters == 10_000

    other = account_factory(password="something else")
    other.refresh_from_db()
    assert other.check_password("something else")


####################################################################
#
def test_alias_factory(alias_factory):
    alias = alias_factory()
    assert alias.owner.aliases.get() == alias


####################################################################
#
def test_email_record_factory(email_record_factory, alias_factory):
    alias = alias_factory()
    record = email_record_factory(owner=alias.owner, local_part=alias.local_part)
    assert record.owner == alias.owner
    assert record.to_addr == f"{alias.local_part}@example.com"
    assert record.snippet == record.text[:180]

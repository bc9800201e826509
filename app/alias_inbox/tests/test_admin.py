#!/usr/bin/env python
#
"""
Test the django admin hooks that go through our account and alias code.
"""
# 3rd party imports
#
import pytest
from django.urls import reverse

# Project imports
#
from ..models import Account, Alias, EmailRecord

pytestmark = pytest.mark.django_db


####################################################################
#
def test_admin_delete_account(
    admin_client,
    local_archive,
    account_factory,
    alias_factory,
    email_record_factory,
):
    target = account_factory()
    alias = alias_factory(owner=target)
    blob = local_archive / "emails" / "x.eml"
    blob.parent.mkdir(parents=True)
    blob.write_bytes(b"raw")
    email_record_factory(
        owner=target, local_part=alias.local_part, raw_key="emails/x.eml"
    )

    url = reverse("admin:alias_inbox_account_delete", args=[target.pk])
    resp = admin_client.post(url, {"post": "yes"})

    assert resp.status_code == 302
    assert not Account.objects.filter(pk=target.pk).exists()
    assert not Alias.objects.filter(pk=alias.pk).exists()
    assert not EmailRecord.objects.filter(owner_id=target.pk).exists()
    assert not blob.exists()


####################################################################
#
def test_admin_enable_aliases_respects_limit(
    admin_client, account_factory, alias_factory
):
    owner = account_factory(alias_limit=1)
    a = alias_factory(owner=owner, disabled=True)
    b = alias_factory(owner=owner, disabled=True)

    url = reverse("admin:alias_inbox_alias_changelist")
    resp = admin_client.post(
        url,
        {"action": "enable_aliases", "_selected_action": [a.pk, b.pk]},
    )

    assert resp.status_code == 302
    assert Alias.objects.filter(owner=owner, disabled=False).count() == 1


####################################################################
#
def test_admin_keeps_last_admin_account(admin_client, admin_account):
    url = reverse("admin:alias_inbox_account_delete", args=[admin_account.pk])
    resp = admin_client.post(url, {"post": "yes"})
    assert resp.status_code == 403

    resp = admin_client.post(
        reverse("admin:alias_inbox_account_changelist"),
        {
            "action": "delete_selected",
            "_selected_action": [admin_account.pk],
            "post": "yes",
        },
    )
    assert resp.status_code in (302, 403)
    assert Account.objects.filter(pk=admin_account.pk).exists()


####################################################################
#
def test_admin_disable_keeps_last_admin_enabled(
    admin_client, admin_account, account_factory
):
    member = account_factory()

    resp = admin_client.post(
        reverse("admin:alias_inbox_account_changelist"),
        {
            "action": "disable_accounts",
            "_selected_action": [admin_account.pk, member.pk],
        },
    )

    assert resp.status_code == 302
    admin_account.refresh_from_db()
    member.refresh_from_db()
    assert not admin_account.disabled
    assert member.disabled

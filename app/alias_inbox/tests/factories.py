#!/usr/bin/env python
#
"""
Factories for testing all of our models and related code
"""
# system imports
#
import logging
from typing import Any, Sequence

# 3rd party imports
#
import factory
from factory import post_generation
from factory.django import DjangoModelFactory
from faker import Faker

# Project imports
#
from ..models import Account, Alias, EmailRecord

fake = Faker()

# The password every AccountFactory account gets unless one is passed in.
#
DEFAULT_PASSWORD = "correct horse battery"

logger = logging.getLogger("alias_inbox.tests.factories")


########################################################################
########################################################################
#
class AccountFactory(DjangoModelFactory):
    username = factory.Sequence(lambda n: f"member_{n}")
    email = factory.LazyAttribute(lambda o: f"{o.username}@members.example")
    role = Account.Role.USER
    alias_limit = 3

    @post_generation
    def password(self, create: bool, extracted: Sequence[Any], **kwargs):
        password = extracted if extracted else DEFAULT_PASSWORD
        self.set_password(password, save=create)

    class Meta:
        model = Account
        django_get_or_create = ("username",)
        skip_postgeneration_save = True


########################################################################
########################################################################
#
class AliasFactory(DjangoModelFactory):
    local_part = factory.Sequence(lambda n: f"alias.{n}")
    owner = factory.SubFactory(AccountFactory)

    class Meta:
        model = Alias
        django_get_or_create = ("local_part",)


########################################################################
########################################################################
#
class EmailRecordFactory(DjangoModelFactory):
    """
    Pass `owner` and `local_part` from an alias to put the record in that
    alias's inbox.
    """

    owner = factory.SubFactory(AccountFactory)
    local_part = factory.Sequence(lambda n: f"inbox.{n}")
    from_addr = factory.Faker("email")
    to_addr = factory.LazyAttribute(lambda o: f"{o.local_part}@example.com")
    subject = factory.Faker("sentence")
    text = factory.Faker("paragraph", nb_sentences=8)
    html = factory.LazyAttribute(lambda o: f"<p>{o.text}</p>")
    size = factory.LazyAttribute(lambda o: len(o.text) + len(o.html))

    class Meta:
        model = EmailRecord

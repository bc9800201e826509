#!/usr/bin/env python
#
"""
Serializers for the rest framework: validating request bodies and shaping
our models for responses.

The API reports one error at a time, as a plain string, so every input
field maps all of its failure modes to a single message.
"""
# system imports
#
from typing import Any, Dict

# 3rd party imports
#
from rest_framework import serializers

# Project imports
#
from .exceptions import ValidationError
from .models import Account, Alias, EmailRecord

USERNAME_RE = r"^[a-z0-9_]{3,24}$"
EMAIL_RE = r"^[^\s@]+@[^\s@]+\.[^\s@]+$"
MIN_PASSWORD_LENGTH = 8


####################################################################
#
def _messages(msg: str) -> Dict[str, str]:
    """
    The same message for every way a field can fail validation.
    """
    return {
        k: msg
        for k in (
            "required",
            "null",
            "blank",
            "invalid",
            "min_length",
            "max_length",
            "min_value",
            "max_value",
            "max_string_length",
        )
    }


########################################################################
########################################################################
#
class NormalizedRegexField(serializers.RegexField):
    """
    A RegexField that strips and lower cases its input before matching.
    """

    ####################################################################
    #
    def to_internal_value(self, data):
        if isinstance(data, (str, int)):
            data = str(data).strip().lower()
        return super().to_internal_value(data)


####################################################################
#
def validated(serializer: serializers.Serializer) -> Dict[str, Any]:
    """
    Validate `serializer` and return its data, raising our ValidationError
    with the first error message if it is not valid.
    """
    if serializer.is_valid():
        return serializer.validated_data
    for errors in serializer.errors.values():
        if isinstance(errors, list) and errors:
            raise ValidationError(str(errors[0]))
        if isinstance(errors, str):
            raise ValidationError(errors)
    raise ValidationError()


########################################################################
########################################################################
#
class SignupSerializer(serializers.Serializer):
    username = NormalizedRegexField(
        USERNAME_RE, error_messages=_messages("Username 3-24, a-z0-9_")
    )
    email = NormalizedRegexField(
        EMAIL_RE, max_length=254, error_messages=_messages("Email tidak valid")
    )
    pw = serializers.CharField(
        min_length=MIN_PASSWORD_LENGTH,
        trim_whitespace=False,
        error_messages=_messages("Password minimal 8 karakter"),
    )


########################################################################
########################################################################
#
class LoginSerializer(serializers.Serializer):
    id = serializers.CharField(error_messages=_messages("Lengkapi data"))
    pw = serializers.CharField(
        trim_whitespace=False, error_messages=_messages("Lengkapi data")
    )


########################################################################
########################################################################
#
class ResetRequestSerializer(serializers.Serializer):
    email = NormalizedRegexField(
        EMAIL_RE, error_messages=_messages("Email tidak valid")
    )


########################################################################
########################################################################
#
class ResetConfirmSerializer(serializers.Serializer):
    token = serializers.CharField(error_messages=_messages("Token wajib"))
    newPw = serializers.CharField(
        min_length=MIN_PASSWORD_LENGTH,
        trim_whitespace=False,
        error_messages=_messages("Password minimal 8 karakter"),
    )


########################################################################
########################################################################
#
class AliasCreateSerializer(serializers.Serializer):
    # The format is checked by the alias registry so that its error is the
    # one reported.
    #
    local = serializers.CharField(
        allow_blank=True,
        error_messages=_messages("Mail tidak valid (a-z0-9._+- max 64)"),
    )


########################################################################
########################################################################
#
class AccountUpdateSerializer(serializers.Serializer):
    """
    An admin's changes to an account. Either field may be left out, but
    not both.
    """

    alias_limit = serializers.IntegerField(
        required=False,
        min_value=0,
        error_messages=_messages("alias_limit invalid"),
    )
    disabled = serializers.BooleanField(
        required=False, error_messages=_messages("disabled invalid")
    )


########################################################################
########################################################################
#
class AccountSerializer(serializers.ModelSerializer):
    class Meta:
        model = Account
        fields = ["id", "username", "email", "role", "alias_limit"]


########################################################################
########################################################################
#
class AdminAccountSerializer(serializers.ModelSerializer):
    class Meta:
        model = Account
        fields = [
            "id",
            "username",
            "email",
            "role",
            "alias_limit",
            "disabled",
            "created_at",
        ]


########################################################################
########################################################################
#
class AliasSerializer(serializers.ModelSerializer):
    email_address = serializers.CharField(read_only=True)

    class Meta:
        model = Alias
        fields = ["local_part", "email_address", "disabled", "created_at"]


########################################################################
########################################################################
#
class EmailSummarySerializer(serializers.ModelSerializer):
    """
    A row in an inbox listing. `snippet` comes from the `text_snippet`
    annotation added by `inbox.list_emails()`.
    """

    snippet = serializers.CharField(source="text_snippet", read_only=True)

    class Meta:
        model = EmailRecord
        fields = [
            "id",
            "from_addr",
            "to_addr",
            "subject",
            "date",
            "size",
            "created_at",
            "snippet",
        ]


########################################################################
########################################################################
#
class EmailDetailSerializer(serializers.ModelSerializer):
    class Meta:
        model = EmailRecord
        fields = [
            "id",
            "local_part",
            "from_addr",
            "to_addr",
            "subject",
            "date",
            "text",
            "html",
            "raw_key",
            "size",
            "created_at",
        ]

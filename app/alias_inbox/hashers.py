#!/usr/bin/env python
#
"""
Password credential hashing.

PBKDF2-HMAC-SHA256 with a per account random salt and a tunable work factor.
The work factor is clamped to [PBKDF2_MIN_ITERATIONS, PBKDF2_MAX_ITERATIONS].
The ceiling is a hard limit: asking for more raises
`UnsupportedHashParameter` instead of silently computing something else, so
a login against an old, too expensive hash can be turned in to "please
reset your password".

The work factor used for a hash is stored alongside it on the Account.
"""
# system imports
#
import hashlib
import logging
import secrets
from typing import NamedTuple

# 3rd party imports
#
from django.conf import settings
from django.utils.crypto import constant_time_compare, pbkdf2

# Project imports
#
from .exceptions import UnsupportedHashParameter
from .utils import b64url_decode, b64url_encode

PBKDF2_MIN_ITERATIONS = 10_000
PBKDF2_MAX_ITERATIONS = 100_000
SALT_BYTES = 16
DIGEST_BYTES = 32

logger = logging.getLogger("alias_inbox.hashers")


########################################################################
########################################################################
#
class Credential(NamedTuple):
    salt: str
    digest: str
    iterations: int


####################################################################
#
def clamp_iterations(value) -> int:
    """
    Coerce `value` to an int inside the supported range. Anything that is
    not a number falls back to the ceiling.
    """
    try:
        n = int(value)
    except (TypeError, ValueError):
        n = PBKDF2_MAX_ITERATIONS
    return min(PBKDF2_MAX_ITERATIONS, max(PBKDF2_MIN_ITERATIONS, n))


####################################################################
#
def configured_iterations() -> int:
    return clamp_iterations(
        getattr(settings, "PASSWORD_HASH_ITERATIONS", PBKDF2_MAX_ITERATIONS)
    )


####################################################################
#
def hash_password(password: str, salt: bytes, iterations: int) -> str:
    """
    Returns the base64url (no padding) PBKDF2-SHA256 digest of `password`.

    Raises UnsupportedHashParameter if `iterations` is above the ceiling or
    not a positive number.
    """
    if iterations > PBKDF2_MAX_ITERATIONS:
        raise UnsupportedHashParameter(
            f"PBKDF2 iterations too high (max {PBKDF2_MAX_ITERATIONS}, "
            f"got {iterations})"
        )
    if iterations < 1:
        raise UnsupportedHashParameter(
            f"PBKDF2 iterations must be positive, got {iterations}"
        )
    digest = pbkdf2(
        password,
        salt,
        iterations,
        dklen=DIGEST_BYTES,
        digest=hashlib.sha256,
    )
    return b64url_encode(digest)


####################################################################
#
def derive_new_credential(password: str) -> Credential:
    """
    A fresh salt and digest for `password` using the configured work factor.
    """
    iterations = configured_iterations()
    salt = secrets.token_bytes(SALT_BYTES)
    digest = hash_password(password, salt, iterations)
    return Credential(b64url_encode(salt), digest, iterations)


####################################################################
#
def verify_password(
    password: str, salt: str, expected_digest: str, iterations: int
) -> bool:
    """
    Recompute the digest with the stored salt and work factor and compare
    it in constant time.
    """
    digest = hash_password(password, b64url_decode(salt), iterations)
    return constant_time_compare(digest, expected_digest)

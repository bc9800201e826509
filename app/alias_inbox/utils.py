#!/usr/bin/env python
#
"""
Utilitities used by our app. We want to separate them from views, models,
and tasks so we can import them in all of those other modules without loops and
weirdness.
"""
# system imports
#
import base64
import hashlib
import logging
from typing import Iterable, Iterator, List, Optional, Tuple

logger = logging.getLogger("alias_inbox.utils")


####################################################################
#
def b64url_encode(data: bytes) -> str:
    """
    URL-safe base64 without the trailing `=` padding.
    """
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


####################################################################
#
def b64url_decode(value: str) -> bytes:
    """
    Inverse of `b64url_encode`. Puts back whatever padding was stripped.
    """
    value = str(value or "")
    padding = "=" * (-len(value) % 4)
    return base64.urlsafe_b64decode(value + padding)


####################################################################
#
def sha256_b64url(value: str) -> str:
    """
    The one way digest we store for bearer tokens.
    """
    return b64url_encode(hashlib.sha256(value.encode("utf-8")).digest())


####################################################################
#
def split_email_address(address: str) -> Optional[Tuple[str, str]]:
    """
    Split `local@domain` in to its lower cased parts. Returns None if the
    address does not have exactly one `@` or either side is empty.
    """
    address = str(address or "").strip().lower()
    if address.count("@") != 1:
        return None
    local, domain = address.split("@")
    if not local or not domain:
        return None
    return local, domain


####################################################################
#
def chunked(items: Iterable[str], size: int) -> Iterator[List[str]]:
    """
    Yield successive lists of at most `size` items.
    """
    chunk: List[str] = []
    for item in items:
        chunk.append(item)
        if len(chunk) >= size:
            yield chunk
            chunk = []
    if chunk:
        yield chunk

"""Canonical message construction and HMAC-SHA256 signing.

The signed message is a fixed sequence of ``tag + value + "\\n"`` lines::

    TLS.identifier:<identifier>
    TLS.sdkappid:<sdkappid>
    TLS.time:<time>
    TLS.expire:<expire>
    TLS.userbuf:<standard base64 of userbuf>     (only when present)

Issuers and verifiers in every language must produce these bytes exactly;
any difference shows up only as a signature mismatch.
"""
from __future__ import annotations

import base64
import hashlib
import hmac
from typing import Union

Key = Union[str, bytes]

_IDENTIFIER = b"TLS.identifier:"
_SDKAPPID = b"TLS.sdkappid:"
_TIME = b"TLS.time:"
_EXPIRE = b"TLS.expire:"
_USERBUF = b"TLS.userbuf:"
_NEWLINE = b"\n"


def key_bytes(key: Key) -> bytes:
    """Return the raw HMAC key; text keys are UTF-8 encoded."""
    if isinstance(key, str):
        return key.encode("utf-8")
    return bytes(key)


def canonical_message(
    identifier: str,
    sdkappid: int,
    time: int,
    expire: int,
    userbuf: bytes | None = None,
) -> bytes:
    """Build the byte string that is HMAC-signed.

    *userbuf* of ``None`` omits the ``TLS.userbuf`` line entirely; an empty
    buffer still contributes a line with an empty value.
    """
    parts = [
        _IDENTIFIER, identifier.encode("utf-8"), _NEWLINE,
        _SDKAPPID, str(sdkappid).encode("ascii"), _NEWLINE,
        _TIME, str(time).encode("ascii"), _NEWLINE,
        _EXPIRE, str(expire).encode("ascii"), _NEWLINE,
    ]
    if userbuf is not None:
        parts += [_USERBUF, base64.b64encode(userbuf), _NEWLINE]
    return b"".join(parts)


def sign(
    key: Key,
    identifier: str,
    sdkappid: int,
    time: int,
    expire: int,
    userbuf: bytes | None = None,
) -> bytes:
    """Compute the raw HMAC-SHA256 of the canonical message."""
    message = canonical_message(identifier, sdkappid, time, expire, userbuf)
    return hmac.new(key_bytes(key), message, hashlib.sha256).digest()


def signatures_match(expected: bytes, actual: bytes) -> bool:
    """Compare two MACs in constant time."""
    return hmac.compare_digest(expected, actual)

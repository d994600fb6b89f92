"""Envelope codec — JSON, zlib and URL-safe base64 around a TokenDocument.

Token format
------------
::

    token = urlsafe_b64(zlib(json(document)))

The URL-safe alphabet is standard base64 with ``+`` -> ``*``, ``/`` -> ``-``
and the ``=`` padding written as ``_``, so the token can be dropped into a
query string without escaping. The inner JSON carries its binary fields
in standard base64: the two layers are independent.
"""
from __future__ import annotations

import base64
import binascii
import json
import zlib

from pydantic import ValidationError

from tls_sig.config import get_settings
from tls_sig.envelope.deflate import check_canonical
from tls_sig.envelope.document import TokenDocument
from tls_sig.envelope.pool import CompressorPool, get_pool
from tls_sig.errors import MalformedTokenError

_TO_URL = bytes.maketrans(b"+/=", b"*-_")
_FROM_URL = bytes.maketrans(b"*-_", b"+/=")


# ---------------------------------------------------------------------------
# URL-safe base64
# ---------------------------------------------------------------------------


def urlsafe_b64encode(data: bytes) -> str:
    return base64.b64encode(data).translate(_TO_URL).decode("ascii")


def urlsafe_b64decode(text: str) -> bytes:
    """Decode the URL-safe alphabet.

    Only the canonical encoding of a byte string is accepted, so two
    different token strings never decode to the same bytes.

    Raises
    ------
    MalformedTokenError
        On characters outside the alphabet (whitespace included), bad
        padding or non-zero padding bits.
    """
    try:
        encoded = text.encode("ascii")
    except UnicodeEncodeError as exc:
        raise MalformedTokenError("token contains non-ASCII characters") from exc
    if any(c in encoded for c in b"+/="):
        raise MalformedTokenError("token uses the standard base64 alphabet")
    standard = encoded.translate(_FROM_URL)
    try:
        data = base64.b64decode(standard, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise MalformedTokenError(f"token is not valid base64: {exc}") from exc
    if base64.b64encode(data) != standard:
        raise MalformedTokenError("token is not canonically encoded")
    return data


# ---------------------------------------------------------------------------
# Pack / unpack
# ---------------------------------------------------------------------------


def pack(
    document: TokenDocument,
    *,
    compression_level: int | None = None,
    pool: CompressorPool | None = None,
) -> str:
    """Serialize, compress and encode *document* into a token string.

    Parameters
    ----------
    document:
        A signed document.
    compression_level:
        zlib level; defaults to ``SigSettings.compression_level``.
        Ignored when *pool* is given.
    pool:
        Compressor pool to draw from; defaults to the shared pool for the
        chosen level.

    Raises
    ------
    MalformedTokenError
        When the document cannot be serialized (e.g. text that is not
        encodable as UTF-8).
    """
    if pool is None:
        settings = get_settings()
        level = settings.compression_level if compression_level is None else compression_level
        pool = get_pool(level, settings.pool_max_idle)

    try:
        payload = json.dumps(
            document.to_wire(), separators=(",", ":"), ensure_ascii=False
        ).encode("utf-8")
    except (TypeError, ValueError) as exc:
        raise MalformedTokenError(f"document cannot be serialized: {exc}") from exc

    with pool.checkout() as compressor:
        compressor.write(payload)
        compressed = compressor.finish()
    return urlsafe_b64encode(compressed)


def unpack(token: str, *, max_size: int | None = None) -> TokenDocument:
    """Decode a token string back into a :class:`TokenDocument`.

    Parameters
    ----------
    token:
        Token string as produced by :func:`pack`.
    max_size:
        Largest decompressed document accepted, in bytes; defaults to
        ``SigSettings.max_token_size``.

    Raises
    ------
    MalformedTokenError
        When any stage (base64, zlib, padding bits, JSON, field
        validation) fails.
    """
    if not isinstance(token, str):
        raise MalformedTokenError(f"token must be str, got {type(token).__name__}")
    limit = get_settings().max_token_size if max_size is None else max_size

    payload = _decompress(urlsafe_b64decode(token), limit)
    try:
        data = json.loads(payload)
    except (ValueError, RecursionError) as exc:
        raise MalformedTokenError(f"token payload is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise MalformedTokenError("token payload is not a JSON object")
    try:
        return TokenDocument.from_wire(data)
    except ValidationError as exc:
        raise MalformedTokenError(
            f"token payload has invalid fields: {exc.error_count()} error(s)"
        ) from exc


def _decompress(data: bytes, limit: int) -> bytes:
    decompressor = zlib.decompressobj()
    try:
        payload = decompressor.decompress(data, limit + 1)
    except zlib.error as exc:
        raise MalformedTokenError(f"token is not a valid zlib stream: {exc}") from exc
    if len(payload) > limit:
        raise MalformedTokenError(f"token payload exceeds {limit} bytes")
    if not decompressor.eof:
        raise MalformedTokenError("token zlib stream is truncated")
    if decompressor.unused_data:
        raise MalformedTokenError("token has trailing data after the zlib stream")
    check_canonical(data)
    return payload

"""Envelope — the transport form of a signed TokenDocument.

Quick start
-----------
::

    from tls_sig.envelope import TokenDocument, pack, unpack

    doc = TokenDocument("alice", 1400000000, time=1700000000, expire=86400).signed(key)
    token = pack(doc)
    assert unpack(token) == doc
"""
from __future__ import annotations

from tls_sig.envelope.codec import pack, unpack, urlsafe_b64decode, urlsafe_b64encode
from tls_sig.envelope.document import VERSION, TokenDocument, WireDocument
from tls_sig.envelope.pool import Compressor, CompressorPool, get_pool

__all__ = [
    "Compressor",
    "CompressorPool",
    "TokenDocument",
    "VERSION",
    "WireDocument",
    "get_pool",
    "pack",
    "unpack",
    "urlsafe_b64decode",
    "urlsafe_b64encode",
]

"""Canonical message and HMAC-SHA256 signing shared by issuer and verifier."""
from __future__ import annotations

from tls_sig.signing.canonical import Key, canonical_message, key_bytes, sign, signatures_match

__all__ = ["Key", "canonical_message", "key_bytes", "sign", "signatures_match"]

"""tls-sig — issue and verify UserSig / PrivateMapKey authorization tokens.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Example
-------
>>> import tls_sig
>>> tls_sig.__version__
'0.1.0'

Quick start
-----------
::

    from tls_sig import (
        # Issuance / verification
        TLSSigAPI, gen_user_sig, gen_private_map_key, verify_user_sig,
        # Building blocks
        TokenDocument, pack, unpack, encode_userbuf, Privilege,
        # Results and errors
        VerificationResult, VerificationStatus, VerificationError,
    )
"""
from __future__ import annotations

__version__: str = "0.1.0"

# ------------------------------------------------------------------
# Entry points
# ------------------------------------------------------------------
from tls_sig.api import (
    TLSSigAPI,
    gen_private_map_key,
    gen_private_map_key_with_string_room_id,
    gen_user_sig,
    gen_user_sig_with_buf,
    issue_document,
    verify_user_sig,
    verify_user_sig_with_buf,
)

# ------------------------------------------------------------------
# Time and configuration
# ------------------------------------------------------------------
from tls_sig.clock import Clock, FixedClock, SystemClock
from tls_sig.config import SigSettings, get_settings

# ------------------------------------------------------------------
# Envelope
# ------------------------------------------------------------------
from tls_sig.envelope import CompressorPool, TokenDocument, pack, unpack

# ------------------------------------------------------------------
# Errors
# ------------------------------------------------------------------
from tls_sig.errors import (
    IdentifierMismatchError,
    MalformedTokenError,
    SdkAppIDMismatchError,
    SignatureMismatchError,
    TLSSigError,
    TokenExpiredError,
    UserBufDecodingError,
    UserBufEncodingError,
    UserBufMismatchError,
    UserBufTypeMismatchError,
    VerificationError,
    VerificationStatus,
)

# ------------------------------------------------------------------
# Signing, user buffer, verification
# ------------------------------------------------------------------
from tls_sig.signing import canonical_message, sign, signatures_match
from tls_sig.userbuf import Privilege, UserBufRecord, decode_userbuf, encode_userbuf
from tls_sig.verification import VerificationResult, verify_document, verify_token

__all__ = [
    # version
    "__version__",
    # entry points
    "TLSSigAPI",
    "gen_private_map_key",
    "gen_private_map_key_with_string_room_id",
    "gen_user_sig",
    "gen_user_sig_with_buf",
    "issue_document",
    "verify_user_sig",
    "verify_user_sig_with_buf",
    # time / config
    "Clock",
    "FixedClock",
    "SigSettings",
    "SystemClock",
    "get_settings",
    # envelope
    "CompressorPool",
    "TokenDocument",
    "pack",
    "unpack",
    # errors
    "IdentifierMismatchError",
    "MalformedTokenError",
    "SdkAppIDMismatchError",
    "SignatureMismatchError",
    "TLSSigError",
    "TokenExpiredError",
    "UserBufDecodingError",
    "UserBufEncodingError",
    "UserBufMismatchError",
    "UserBufTypeMismatchError",
    "VerificationError",
    "VerificationStatus",
    # signing
    "canonical_message",
    "sign",
    "signatures_match",
    # user buffer
    "Privilege",
    "UserBufRecord",
    "decode_userbuf",
    "encode_userbuf",
    # verification
    "VerificationResult",
    "verify_document",
    "verify_token",
]

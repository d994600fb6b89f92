"""tls-sig error hierarchy.

Every verification failure kind has a status value and a concrete
exception class. Verification functions return a
:class:`~tls_sig.verification.VerificationResult`; callers that prefer
exceptions use :meth:`VerificationResult.raise_for_status`.

Hierarchy
---------
::

    TLSSigError
    +-- UserBufEncodingError      (also ValueError)
    +-- UserBufDecodingError      (also ValueError)
    +-- VerificationError
        +-- MalformedTokenError
        +-- SdkAppIDMismatchError
        +-- IdentifierMismatchError
        +-- TokenExpiredError
        +-- UserBufTypeMismatchError
        +-- UserBufMismatchError
        +-- SignatureMismatchError

All verification failures are terminal: the token must be rejected and a
freshly issued one obtained.
"""
from __future__ import annotations

from enum import Enum


class VerificationStatus(str, Enum):
    """Terminal state of the verification state machine."""

    VALID = "valid"
    MALFORMED_INPUT = "malformed_input"
    SDKAPPID_MISMATCH = "sdkappid_mismatch"
    IDENTIFIER_MISMATCH = "identifier_mismatch"
    EXPIRED = "expired"
    USERBUF_TYPE_MISMATCH = "userbuf_type_mismatch"
    USERBUF_MISMATCH = "userbuf_mismatch"
    SIGNATURE_MISMATCH = "signature_mismatch"


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------


class TLSSigError(Exception):
    """Base class for all tls-sig errors."""


# ---------------------------------------------------------------------------
# User buffer codec
# ---------------------------------------------------------------------------


class UserBufEncodingError(TLSSigError, ValueError):
    """Raised when a value cannot be represented in the user buffer layout."""

    def __init__(self, field_name: str, length: int) -> None:
        self.field_name = field_name
        self.length = length
        super().__init__(
            f"{field_name} is {length} bytes long; the user buffer length "
            "prefix is 16 bits (max 65535)"
        )


class UserBufDecodingError(TLSSigError, ValueError):
    """Raised when bytes do not form a valid user buffer record."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Invalid user buffer: {reason}")


# ---------------------------------------------------------------------------
# Verification
# ---------------------------------------------------------------------------


class VerificationError(TLSSigError):
    """Base class for token verification failures.

    Attributes
    ----------
    status:
        The :class:`VerificationStatus` this error corresponds to.
    """

    status: VerificationStatus = VerificationStatus.MALFORMED_INPUT
    message: str = "token verification failed"

    def __init__(self, message: str | None = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)


class MalformedTokenError(VerificationError):
    """Raised when a token cannot be decoded, decompressed or parsed.

    Also raised on the issuance side when a document cannot be serialized.
    """

    status = VerificationStatus.MALFORMED_INPUT
    message = "token is malformed"


class SdkAppIDMismatchError(VerificationError):
    status = VerificationStatus.SDKAPPID_MISMATCH
    message = "sdkappid does not match"


class IdentifierMismatchError(VerificationError):
    status = VerificationStatus.IDENTIFIER_MISMATCH
    message = "identifier does not match"


class TokenExpiredError(VerificationError):
    """Raised when the token's validity window has passed.

    Parameters
    ----------
    expired_at:
        Absolute expiry of the token (UNIX seconds).
    now:
        The verification time (UNIX seconds).
    """

    status = VerificationStatus.EXPIRED
    message = "token expired"

    def __init__(self, expired_at: int, now: int) -> None:
        self.expired_at = expired_at
        self.now = now
        super().__init__(f"token expired at {expired_at}, now is {now}")


class UserBufTypeMismatchError(VerificationError):
    """Raised when exactly one of expected/carried user buffer is present."""

    status = VerificationStatus.USERBUF_TYPE_MISMATCH
    message = "user buffer presence does not match"


class UserBufMismatchError(VerificationError):
    status = VerificationStatus.USERBUF_MISMATCH
    message = "user buffer does not match"


class SignatureMismatchError(VerificationError):
    status = VerificationStatus.SIGNATURE_MISMATCH
    message = "signature does not match"


ERRORS_BY_STATUS: dict[VerificationStatus, type[VerificationError]] = {
    VerificationStatus.MALFORMED_INPUT: MalformedTokenError,
    VerificationStatus.SDKAPPID_MISMATCH: SdkAppIDMismatchError,
    VerificationStatus.IDENTIFIER_MISMATCH: IdentifierMismatchError,
    VerificationStatus.EXPIRED: TokenExpiredError,
    VerificationStatus.USERBUF_TYPE_MISMATCH: UserBufTypeMismatchError,
    VerificationStatus.USERBUF_MISMATCH: UserBufMismatchError,
    VerificationStatus.SIGNATURE_MISMATCH: SignatureMismatchError,
}

__all__ = [
    "ERRORS_BY_STATUS",
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
]

"""Verifier — validate a UserSig against the expected caller context.

Checks run in a fixed order and stop at the first failure:

1. the envelope decodes               -> MALFORMED_INPUT
2. sdkappid matches                   -> SDKAPPID_MISMATCH
3. identifier matches                 -> IDENTIFIER_MISMATCH
4. ``now <= time + expire``           -> EXPIRED
5. user buffer presence matches       -> USERBUF_TYPE_MISMATCH
   user buffer bytes match            -> USERBUF_MISMATCH
6. recomputed signature matches       -> SIGNATURE_MISMATCH

A token carrying a user buffer is never accepted by a caller that did
not ask for one, and vice versa.
"""
from __future__ import annotations

import hmac
import logging
from dataclasses import dataclass
from typing import Optional

from tls_sig.clock import Clock, TimeLike, resolve_clock, to_unix
from tls_sig.envelope.codec import unpack
from tls_sig.envelope.document import TokenDocument
from tls_sig.errors import (
    ERRORS_BY_STATUS,
    MalformedTokenError,
    TokenExpiredError,
    VerificationStatus,
)
from tls_sig.signing.canonical import Key, signatures_match

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of verifying one token.

    Parameters
    ----------
    status:
        ``VALID`` or the first failing check.
    reason:
        Human-readable explanation of a failure (empty on success).
    document:
        The decoded document, or None when decoding failed.
    now:
        The verification time used, UNIX seconds.
    """

    status: VerificationStatus
    reason: str = ""
    document: Optional[TokenDocument] = None
    now: Optional[int] = None

    @property
    def valid(self) -> bool:
        return self.status is VerificationStatus.VALID

    def __bool__(self) -> bool:
        return self.valid

    def raise_for_status(self) -> None:
        """Raise the :class:`~tls_sig.errors.VerificationError` for a failure.

        Does nothing when the result is valid.
        """
        if self.valid:
            return
        if self.status is VerificationStatus.EXPIRED and self.document is not None:
            raise TokenExpiredError(self.document.expires_at, self.now or 0)
        raise ERRORS_BY_STATUS[self.status](self.reason or None)


def verify_document(
    document: TokenDocument,
    sdkappid: int,
    key: Key,
    identifier: str,
    now: TimeLike | None = None,
    userbuf: bytes | None = None,
    *,
    clock: Clock | None = None,
) -> VerificationResult:
    """Run checks 2-6 against an already decoded document.

    Parameters
    ----------
    document:
        Decoded token document.
    sdkappid:
        Application id the token must belong to.
    key:
        Shared signing key.
    identifier:
        Identity the token must be issued to.
    now:
        Verification time (datetime or UNIX seconds); defaults to *clock*.
    userbuf:
        Expected user buffer, or None when the token must carry none.
    clock:
        Time source used when *now* is omitted.
    """
    now_ts = to_unix(now) if now is not None else resolve_clock(clock).now()

    def fail(status: VerificationStatus, reason: str) -> VerificationResult:
        logger.debug("UserSig for %r rejected: %s (%s)", identifier, status.value, reason)
        return VerificationResult(status=status, reason=reason, document=document, now=now_ts)

    if document.sdkappid != sdkappid:
        return fail(
            VerificationStatus.SDKAPPID_MISMATCH,
            f"token sdkappid {document.sdkappid} != {sdkappid}",
        )
    if document.identifier != identifier:
        return fail(VerificationStatus.IDENTIFIER_MISMATCH, "token identifier does not match")
    if now_ts > document.expires_at:
        return fail(
            VerificationStatus.EXPIRED,
            f"token expired at {document.expires_at}, now is {now_ts}",
        )
    if (userbuf is None) != (document.userbuf is None):
        expected = "a" if userbuf is not None else "no"
        return fail(
            VerificationStatus.USERBUF_TYPE_MISMATCH,
            f"expected {expected} user buffer",
        )
    if userbuf is not None and not hmac.compare_digest(userbuf, document.userbuf or b""):
        return fail(VerificationStatus.USERBUF_MISMATCH, "user buffer does not match")
    if not signatures_match(document.compute_signature(key), document.signature):
        return fail(VerificationStatus.SIGNATURE_MISMATCH, "signature does not match")

    return VerificationResult(status=VerificationStatus.VALID, document=document, now=now_ts)


def verify_token(
    token: str,
    sdkappid: int,
    key: Key,
    identifier: str,
    now: TimeLike | None = None,
    userbuf: bytes | None = None,
    *,
    clock: Clock | None = None,
    max_size: int | None = None,
) -> VerificationResult:
    """Decode *token* and verify it; see :func:`verify_document`.

    Never raises for a bad token: malformed input is reported as
    ``MALFORMED_INPUT``.
    """
    try:
        document = unpack(token, max_size=max_size)
    except MalformedTokenError as exc:
        logger.debug("UserSig for %r rejected: malformed (%s)", identifier, exc)
        now_ts = to_unix(now) if now is not None else resolve_clock(clock).now()
        return VerificationResult(
            status=VerificationStatus.MALFORMED_INPUT, reason=str(exc), now=now_ts
        )
    return verify_document(document, sdkappid, key, identifier, now, userbuf, clock=clock)

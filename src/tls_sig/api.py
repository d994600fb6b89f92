"""Issuance and verification entry points.

UserSig
    Proves that *identifier* may use application *sdkappid* until
    ``time + expire``. Issued with :func:`gen_user_sig`.
PrivateMapKey
    A UserSig that also carries a user buffer restricting the identity to
    one room and a set of :class:`~tls_sig.userbuf.Privilege` bits.
    Issued with :func:`gen_private_map_key` (numeric room id) or
    :func:`gen_private_map_key_with_string_room_id`.

Example
-------
::

    from tls_sig import TLSSigAPI

    api = TLSSigAPI(1400000000, "shared-secret")
    usersig = api.gen_user_sig("alice", expire=86400)
    assert api.verify_user_sig("alice", usersig).valid
"""
from __future__ import annotations

import logging

from tls_sig.clock import Clock, TimeLike, resolve_clock
from tls_sig.config import SigSettings, get_settings
from tls_sig.envelope.codec import pack
from tls_sig.envelope.document import INT64_MAX, INT64_MIN, UINT64_MAX, TokenDocument
from tls_sig.envelope.pool import get_pool
from tls_sig.errors import MalformedTokenError
from tls_sig.signing.canonical import Key
from tls_sig.userbuf.record import encode_userbuf
from tls_sig.verification.verifier import VerificationResult, verify_token

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Issuance
# ---------------------------------------------------------------------------


def issue_document(
    sdkappid: int,
    key: Key,
    identifier: str,
    expire: int,
    userbuf: bytes | None = None,
    *,
    clock: Clock | None = None,
) -> TokenDocument:
    """Build a document stamped with the current time and sign it.

    Raises
    ------
    MalformedTokenError
        When the identifier cannot be encoded for signing, or a numeric
        field falls outside the range the wire form accepts (unsigned
        64-bit ``sdkappid``, signed 64-bit ``time`` and ``expire``).
    """
    issued_at = resolve_clock(clock).now()
    _check_range("sdkappid", sdkappid, 0, UINT64_MAX)
    _check_range("expire", expire, INT64_MIN, INT64_MAX)
    _check_range("time", issued_at, INT64_MIN, INT64_MAX)
    document = TokenDocument(
        identifier=identifier,
        sdkappid=sdkappid,
        time=issued_at,
        expire=expire,
        userbuf=userbuf,
    )
    try:
        return document.signed(key)
    except UnicodeEncodeError as exc:
        raise MalformedTokenError(f"identifier cannot be encoded: {exc}") from exc


def _check_range(name: str, value: int, low: int, high: int) -> None:
    if not low <= value <= high:
        raise MalformedTokenError(f"{name} {value} is outside [{low}, {high}]")


def gen_user_sig_with_buf(
    sdkappid: int,
    key: Key,
    identifier: str,
    expire: int,
    userbuf: bytes | None,
    *,
    clock: Clock | None = None,
    settings: SigSettings | None = None,
) -> str:
    """Issue a UserSig carrying the opaque *userbuf* (None for none)."""
    settings = settings or get_settings()
    document = issue_document(sdkappid, key, identifier, expire, userbuf, clock=clock)
    token = pack(document, pool=get_pool(settings.compression_level, settings.pool_max_idle))
    logger.debug(
        "Issued UserSig for %r (sdkappid=%d, expire=%d, userbuf=%s)",
        identifier,
        sdkappid,
        expire,
        "yes" if userbuf is not None else "no",
    )
    return token


def gen_user_sig(
    sdkappid: int,
    key: Key,
    identifier: str,
    expire: int,
    *,
    clock: Clock | None = None,
    settings: SigSettings | None = None,
) -> str:
    """Issue a UserSig valid for *expire* seconds from now."""
    return gen_user_sig_with_buf(
        sdkappid, key, identifier, expire, None, clock=clock, settings=settings
    )


def gen_private_map_key(
    sdkappid: int,
    key: Key,
    identifier: str,
    expire: int,
    room_id: int,
    privilege_map: int,
    *,
    clock: Clock | None = None,
    settings: SigSettings | None = None,
) -> str:
    """Issue a PrivateMapKey for a numeric room id."""
    userbuf = encode_userbuf(identifier, sdkappid, room_id, expire, privilege_map, 0, "", clock=clock)
    return gen_user_sig_with_buf(
        sdkappid, key, identifier, expire, userbuf, clock=clock, settings=settings
    )


def gen_private_map_key_with_string_room_id(
    sdkappid: int,
    key: Key,
    identifier: str,
    expire: int,
    room_str: str,
    privilege_map: int,
    *,
    clock: Clock | None = None,
    settings: SigSettings | None = None,
) -> str:
    """Issue a PrivateMapKey for a string room id."""
    userbuf = encode_userbuf(identifier, sdkappid, 0, expire, privilege_map, 0, room_str, clock=clock)
    return gen_user_sig_with_buf(
        sdkappid, key, identifier, expire, userbuf, clock=clock, settings=settings
    )


# ---------------------------------------------------------------------------
# Verification
# ---------------------------------------------------------------------------


def verify_user_sig(
    sdkappid: int,
    key: Key,
    identifier: str,
    usersig: str,
    now: TimeLike | None = None,
    *,
    clock: Clock | None = None,
    settings: SigSettings | None = None,
) -> VerificationResult:
    """Check that *usersig* is a valid, buffer-free UserSig at *now*."""
    settings = settings or get_settings()
    return verify_token(
        usersig, sdkappid, key, identifier, now, None,
        clock=clock, max_size=settings.max_token_size,
    )


def verify_user_sig_with_buf(
    sdkappid: int,
    key: Key,
    identifier: str,
    usersig: str,
    now: TimeLike | None,
    userbuf: bytes | None,
    *,
    clock: Clock | None = None,
    settings: SigSettings | None = None,
) -> VerificationResult:
    """Check *usersig* at *now*, requiring it to carry exactly *userbuf*."""
    settings = settings or get_settings()
    return verify_token(
        usersig, sdkappid, key, identifier, now, userbuf,
        clock=clock, max_size=settings.max_token_size,
    )


# ---------------------------------------------------------------------------
# Facade
# ---------------------------------------------------------------------------


class TLSSigAPI:
    """Signer/verifier bound to one application id and shared key.

    Parameters
    ----------
    sdkappid:
        Application id.
    key:
        Shared secret provisioned out of band.
    settings:
        Optional settings; defaults to :func:`~tls_sig.config.get_settings`.
    clock:
        Optional time source; defaults to the system clock.
    """

    def __init__(
        self,
        sdkappid: int,
        key: Key,
        *,
        settings: SigSettings | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.sdkappid = sdkappid
        self._key = key
        self.settings = settings or get_settings()
        self.clock = resolve_clock(clock)

    def gen_user_sig(self, identifier: str, expire: int | None = None) -> str:
        return gen_user_sig(
            self.sdkappid, self._key, identifier, self._expire(expire),
            clock=self.clock, settings=self.settings,
        )

    def gen_user_sig_with_buf(
        self, identifier: str, userbuf: bytes | None, expire: int | None = None
    ) -> str:
        return gen_user_sig_with_buf(
            self.sdkappid, self._key, identifier, self._expire(expire), userbuf,
            clock=self.clock, settings=self.settings,
        )

    def gen_private_map_key(
        self, identifier: str, room_id: int, privilege_map: int, expire: int | None = None
    ) -> str:
        return gen_private_map_key(
            self.sdkappid, self._key, identifier, self._expire(expire), room_id, privilege_map,
            clock=self.clock, settings=self.settings,
        )

    def gen_private_map_key_with_string_room_id(
        self, identifier: str, room_str: str, privilege_map: int, expire: int | None = None
    ) -> str:
        return gen_private_map_key_with_string_room_id(
            self.sdkappid, self._key, identifier, self._expire(expire), room_str, privilege_map,
            clock=self.clock, settings=self.settings,
        )

    def verify_user_sig(
        self, identifier: str, usersig: str, now: TimeLike | None = None
    ) -> VerificationResult:
        return verify_user_sig(
            self.sdkappid, self._key, identifier, usersig, now,
            clock=self.clock, settings=self.settings,
        )

    def verify_user_sig_with_buf(
        self,
        identifier: str,
        usersig: str,
        now: TimeLike | None,
        userbuf: bytes | None,
    ) -> VerificationResult:
        """Same argument order as the module-level :func:`verify_user_sig_with_buf`."""
        return verify_user_sig_with_buf(
            self.sdkappid, self._key, identifier, usersig, now, userbuf,
            clock=self.clock, settings=self.settings,
        )

    def _expire(self, expire: int | None) -> int:
        return self.settings.default_expire if expire is None else expire

    def __repr__(self) -> str:
        return f"TLSSigAPI(sdkappid={self.sdkappid!r})"

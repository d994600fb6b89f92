"""UserBufRecord — binary permission descriptor carried in PrivateMapKey tokens.

Layout
------
All integers are unsigned big-endian::

    +---------+----------+----------+----------+---------+----------+-----------+--------------+
    | ver (1) | len (2)  | identity | sdkappid | room id | expiry   | privilege | account type |
    |         |          | (len)    | (4)      | (4)     | (4)      | map (4)   | (4)          |
    +---------+----------+----------+----------+---------+----------+-----------+--------------+

Version 1 records append ``room string length (2) + room string`` after
the account type. Version 0 records carry a numeric room id instead and
have no trailer.

``expiry`` is an absolute UNIX timestamp computed when the record is
built. It is independent of the token document's ``time + expire``.
"""
from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import IntEnum, IntFlag

from tls_sig.clock import Clock, resolve_clock
from tls_sig.errors import UserBufDecodingError, UserBufEncodingError

_U16_MAX = 0xFFFF
_U32_MASK = 0xFFFFFFFF

# sdkappid, room id, expiry, privilege map, account type
_FIXED = struct.Struct(">IIIII")
_LENGTH = struct.Struct(">H")


class UserBufVersion(IntEnum):
    """Which room identifier the record carries."""

    NUMERIC_ROOM = 0
    STRING_ROOM = 1


class Privilege(IntFlag):
    """Room privilege bits. Only the low 8 bits are meaningful.

    ``ALL`` (255) grants every privilege in the room; ``ROOM_JOIN |
    AUDIO_RECV | VIDEO_RECV`` (42) is a receive-only participant.
    """

    NONE = 0
    ROOM_CREATE = 1
    ROOM_JOIN = 2
    AUDIO_SEND = 4
    AUDIO_RECV = 8
    VIDEO_SEND = 16
    VIDEO_RECV = 32
    SUBSTREAM_VIDEO_SEND = 64
    SUBSTREAM_VIDEO_RECV = 128
    ALL = 255


@dataclass(frozen=True)
class UserBufRecord:
    """Decoded form of the user buffer.

    Parameters
    ----------
    identity:
        The account the record was issued to.
    sdkappid:
        Application id, truncated to 32 bits.
    room_id:
        Numeric room id; ``0`` for string-room records.
    absolute_expiry:
        UNIX timestamp after which the room privileges lapse.
    privilege_map:
        Privilege bits (see :class:`Privilege`).
    account_type:
        Reserved classification tag, usually ``0``.
    room_str:
        String room id. Non-empty selects the version 1 layout.
    """

    identity: str
    sdkappid: int
    room_id: int
    absolute_expiry: int
    privilege_map: int
    account_type: int = 0
    room_str: str = ""

    # ------------------------------------------------------------------
    # Factory
    # ------------------------------------------------------------------

    @classmethod
    def build(
        cls,
        identity: str,
        sdkappid: int,
        room_id: int,
        duration: int,
        privilege_map: int,
        account_type: int = 0,
        room_str: str = "",
        *,
        clock: Clock | None = None,
    ) -> "UserBufRecord":
        """Build a record whose expiry is ``clock.now() + duration``.

        Integer fields are masked to 32 bits, so negative or oversized
        values wrap exactly as they do on the wire.
        """
        expiry = resolve_clock(clock).now() + duration
        return cls(
            identity=identity,
            sdkappid=sdkappid & _U32_MASK,
            room_id=room_id & _U32_MASK,
            absolute_expiry=expiry & _U32_MASK,
            privilege_map=privilege_map & _U32_MASK,
            account_type=account_type & _U32_MASK,
            room_str=room_str,
        )

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def version(self) -> UserBufVersion:
        return UserBufVersion.STRING_ROOM if self.room_str else UserBufVersion.NUMERIC_ROOM

    @property
    def privileges(self) -> Privilege:
        """The meaningful privilege bits as a :class:`Privilege` flag."""
        return Privilege(self.privilege_map & 0xFF)

    def encoded_length(self) -> int:
        length = 1 + 2 + len(self.identity.encode("utf-8")) + _FIXED.size
        if self.room_str:
            length += 2 + len(self.room_str.encode("utf-8"))
        return length

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_bytes(self) -> bytes:
        """Encode the record to its binary layout.

        Raises
        ------
        UserBufEncodingError
            When the identity or room string does not fit a 16-bit length.
        """
        identity = self.identity.encode("utf-8")
        if len(identity) > _U16_MAX:
            raise UserBufEncodingError("identity", len(identity))

        buf = bytearray()
        buf.append(self.version)
        buf += _LENGTH.pack(len(identity))
        buf += identity
        buf += _FIXED.pack(
            self.sdkappid & _U32_MASK,
            self.room_id & _U32_MASK,
            self.absolute_expiry & _U32_MASK,
            self.privilege_map & _U32_MASK,
            self.account_type & _U32_MASK,
        )
        if self.room_str:
            room = self.room_str.encode("utf-8")
            if len(room) > _U16_MAX:
                raise UserBufEncodingError("room_str", len(room))
            buf += _LENGTH.pack(len(room))
            buf += room
        return bytes(buf)

    @classmethod
    def from_bytes(cls, data: bytes) -> "UserBufRecord":
        """Parse a binary user buffer.

        Raises
        ------
        UserBufDecodingError
            On truncated input, an unknown version byte, trailing bytes or
            text that is not valid UTF-8.
        """
        view = memoryview(bytes(data))
        if len(view) < 1 + _LENGTH.size:
            raise UserBufDecodingError("record is too short")

        version_byte = view[0]
        try:
            version = UserBufVersion(version_byte)
        except ValueError:
            raise UserBufDecodingError(f"unknown format version {version_byte}") from None

        offset = 1
        identity, offset = _read_string(view, offset, "identity")

        if len(view) < offset + _FIXED.size:
            raise UserBufDecodingError("record is truncated inside the fixed fields")
        sdkappid, room_id, expiry, privilege_map, account_type = _FIXED.unpack_from(view, offset)
        offset += _FIXED.size

        room_str = ""
        if version is UserBufVersion.STRING_ROOM:
            room_str, offset = _read_string(view, offset, "room string")

        if offset != len(view):
            raise UserBufDecodingError(f"{len(view) - offset} trailing bytes")

        return cls(
            identity=identity,
            sdkappid=sdkappid,
            room_id=room_id,
            absolute_expiry=expiry,
            privilege_map=privilege_map,
            account_type=account_type,
            room_str=room_str,
        )

    def to_dict(self) -> dict[str, object]:
        """Serialize to a plain dictionary (used by the CLI)."""
        return {
            "version": int(self.version),
            "identity": self.identity,
            "sdkappid": self.sdkappid,
            "room_id": self.room_id,
            "room_str": self.room_str,
            "absolute_expiry": self.absolute_expiry,
            "privilege_map": self.privilege_map,
            "account_type": self.account_type,
        }


def _read_string(view: memoryview, offset: int, what: str) -> tuple[str, int]:
    if len(view) < offset + _LENGTH.size:
        raise UserBufDecodingError(f"record is truncated before the {what} length")
    (length,) = _LENGTH.unpack_from(view, offset)
    offset += _LENGTH.size
    end = offset + length
    if len(view) < end:
        raise UserBufDecodingError(f"{what} length {length} exceeds the record")
    try:
        text = bytes(view[offset:end]).decode("utf-8")
    except UnicodeDecodeError as exc:
        raise UserBufDecodingError(f"{what} is not valid UTF-8") from exc
    return text, end


# ---------------------------------------------------------------------------
# Function API
# ---------------------------------------------------------------------------


def encode_userbuf(
    identity: str,
    sdkappid: int,
    room_id: int,
    duration: int,
    privilege_map: int,
    account_type: int = 0,
    room_str: str = "",
    *,
    clock: Clock | None = None,
) -> bytes:
    """Build and encode a user buffer in one step.

    A non-empty *room_str* selects the string-room layout, in which case
    *room_id* is conventionally ``0``.
    """
    record = UserBufRecord.build(
        identity,
        sdkappid,
        room_id,
        duration,
        privilege_map,
        account_type,
        room_str,
        clock=clock,
    )
    return record.to_bytes()


def decode_userbuf(data: bytes) -> UserBufRecord:
    """Parse *data* into a :class:`UserBufRecord`."""
    return UserBufRecord.from_bytes(data)

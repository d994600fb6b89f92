"""User buffer — the binary permission descriptor of a PrivateMapKey.

Quick start
-----------
::

    from tls_sig.userbuf import Privilege, encode_userbuf, decode_userbuf

    buf = encode_userbuf(
        "alice", 1400000000, room_id=0, duration=3600,
        privilege_map=Privilege.ROOM_JOIN | Privilege.AUDIO_RECV,
        room_str="room42",
    )
    record = decode_userbuf(buf)
    print(record.room_str, record.privileges)
"""
from __future__ import annotations

from tls_sig.userbuf.record import (
    Privilege,
    UserBufRecord,
    UserBufVersion,
    decode_userbuf,
    encode_userbuf,
)

__all__ = [
    "Privilege",
    "UserBufRecord",
    "UserBufVersion",
    "decode_userbuf",
    "encode_userbuf",
]

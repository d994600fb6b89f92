"""TokenDocument — the signed artifact inside a UserSig envelope.

Wire form
---------
The document travels as a JSON object::

    {"TLS.ver": "2.0", "TLS.identifier": "alice", "TLS.sdkappid": 1400000000,
     "TLS.expire": 86400, "TLS.time": 1700000000,
     "TLS.userbuf": "<base64>", "TLS.sig": "<base64>"}

Empty strings and zero numbers are left out. The user buffer is written
whenever it is present, even when empty, because presence is part of the
signed content. Binary fields use standard (padded) base64.
"""
from __future__ import annotations

import base64
import binascii
import dataclasses
from dataclasses import dataclass
from typing import Any, Optional

from pydantic import BaseModel, Field, StrictInt, StrictStr, field_validator

from tls_sig.signing.canonical import Key, sign, signatures_match

VERSION: str = "2.0"

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1
UINT64_MAX = 2**64 - 1


@dataclass(frozen=True)
class TokenDocument:
    """A UserSig document.

    Parameters
    ----------
    identifier:
        The subject identity.
    sdkappid:
        Application id (unsigned 64-bit).
    time:
        Issue time, UNIX seconds.
    expire:
        Validity duration in seconds, counted from ``time``.
    userbuf:
        Optional permission descriptor. ``None`` is absent; ``b""`` is
        present and empty, and signs differently.
    signature:
        Raw HMAC-SHA256 over the other fields; empty until signed.
    version:
        Format tag, ``"2.0"`` for documents issued here.
    """

    identifier: str
    sdkappid: int
    time: int
    expire: int
    userbuf: Optional[bytes] = None
    signature: bytes = b""
    version: str = VERSION

    @property
    def expires_at(self) -> int:
        """Absolute expiry, UNIX seconds."""
        return self.time + self.expire

    @property
    def has_userbuf(self) -> bool:
        return self.userbuf is not None

    # ------------------------------------------------------------------
    # Signing
    # ------------------------------------------------------------------

    def compute_signature(self, key: Key) -> bytes:
        """HMAC of this document's fields; the stored signature is ignored."""
        return sign(key, self.identifier, self.sdkappid, self.time, self.expire, self.userbuf)

    def signed(self, key: Key) -> "TokenDocument":
        """Return a copy carrying the signature for *key*."""
        return dataclasses.replace(self, signature=self.compute_signature(key))

    def signature_valid(self, key: Key) -> bool:
        return signatures_match(self.compute_signature(key), self.signature)

    # ------------------------------------------------------------------
    # Wire (de)serialization
    # ------------------------------------------------------------------

    def to_wire(self) -> dict[str, Any]:
        """Sparse JSON-ready mapping in the wire key order."""
        wire: dict[str, Any] = {}
        if self.version:
            wire["TLS.ver"] = self.version
        if self.identifier:
            wire["TLS.identifier"] = self.identifier
        if self.sdkappid:
            wire["TLS.sdkappid"] = self.sdkappid
        if self.expire:
            wire["TLS.expire"] = self.expire
        if self.time:
            wire["TLS.time"] = self.time
        if self.userbuf is not None:
            wire["TLS.userbuf"] = base64.b64encode(self.userbuf).decode("ascii")
        if self.signature:
            wire["TLS.sig"] = base64.b64encode(self.signature).decode("ascii")
        return wire

    @classmethod
    def from_wire(cls, data: Any) -> "TokenDocument":
        """Validate a decoded JSON value and build a document.

        Raises
        ------
        pydantic.ValidationError
            When *data* is not an object or a field has the wrong type.
        """
        wire = WireDocument.model_validate(data)
        return cls(
            identifier=wire.identifier,
            sdkappid=wire.sdkappid,
            time=wire.time,
            expire=wire.expire,
            userbuf=wire.userbuf,
            signature=wire.signature or b"",
            version=wire.version,
        )


class WireDocument(BaseModel):
    """Validation model for the JSON document. Missing keys take zero values."""

    model_config = {"extra": "ignore", "frozen": True}

    version: StrictStr = Field(default="", alias="TLS.ver")
    identifier: StrictStr = Field(default="", alias="TLS.identifier")
    sdkappid: StrictInt = Field(default=0, alias="TLS.sdkappid", ge=0, le=UINT64_MAX)
    expire: StrictInt = Field(default=0, alias="TLS.expire", ge=INT64_MIN, le=INT64_MAX)
    time: StrictInt = Field(default=0, alias="TLS.time", ge=INT64_MIN, le=INT64_MAX)
    userbuf: Optional[bytes] = Field(default=None, alias="TLS.userbuf")
    signature: Optional[bytes] = Field(default=b"", alias="TLS.sig")

    @field_validator("userbuf", "signature", mode="before")
    @classmethod
    def decode_base64(cls, value: Any) -> Any:
        """Binary fields arrive as standard base64 text."""
        if value is None:
            return None
        if not isinstance(value, str):
            raise ValueError("expected a base64 string")
        try:
            return base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ValueError(f"invalid base64: {exc}") from exc

    @field_validator("identifier", "version")
    @classmethod
    def require_utf8(cls, value: str) -> str:
        """Reject lone surrogates smuggled in through JSON escapes."""
        try:
            value.encode("utf-8")
        except UnicodeEncodeError as exc:
            raise ValueError("text is not valid UTF-8") from exc
        return value

"""Tests for tls_sig.envelope — document wire form, pack() and unpack()."""
from __future__ import annotations

import base64
import json
import zlib

import pytest

from tls_sig.envelope.codec import pack, unpack, urlsafe_b64decode, urlsafe_b64encode
from tls_sig.envelope.document import VERSION, TokenDocument
from tls_sig.envelope.pool import CompressorPool
from tls_sig.errors import MalformedTokenError


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

KEY = b"envelope-test-key"


def make_document(userbuf: bytes | None = None) -> TokenDocument:
    return TokenDocument(
        identifier="alice",
        sdkappid=1400000000,
        time=1700000000,
        expire=86400,
        userbuf=userbuf,
    ).signed(KEY)


def raw_token(payload: bytes) -> str:
    """Wrap arbitrary bytes in zlib + URL-safe base64."""
    return urlsafe_b64encode(zlib.compress(payload))


def json_token(obj: object) -> str:
    return raw_token(json.dumps(obj).encode("utf-8"))


# ---------------------------------------------------------------------------
# TokenDocument
# ---------------------------------------------------------------------------


class TestTokenDocument:
    def test_expires_at(self) -> None:
        assert make_document().expires_at == 1700000000 + 86400

    def test_default_version(self) -> None:
        assert make_document().version == VERSION == "2.0"

    def test_signed_sets_signature(self) -> None:
        doc = make_document()
        assert len(doc.signature) == 32
        assert doc.signature_valid(KEY)

    def test_signature_excludes_itself(self) -> None:
        doc = make_document()
        assert doc.signed(KEY).signature == doc.signature

    def test_signature_invalid_for_other_key(self) -> None:
        assert make_document().signature_valid(b"other") is False

    def test_has_userbuf(self) -> None:
        assert make_document().has_userbuf is False
        assert make_document(b"").has_userbuf is True


class TestToWire:
    def test_key_order(self) -> None:
        wire = make_document(b"\x01").to_wire()
        assert list(wire) == [
            "TLS.ver",
            "TLS.identifier",
            "TLS.sdkappid",
            "TLS.expire",
            "TLS.time",
            "TLS.userbuf",
            "TLS.sig",
        ]

    def test_absent_userbuf_omitted(self) -> None:
        assert "TLS.userbuf" not in make_document().to_wire()

    def test_empty_userbuf_kept(self) -> None:
        assert make_document(b"").to_wire()["TLS.userbuf"] == ""

    def test_zero_fields_omitted(self) -> None:
        doc = TokenDocument(identifier="", sdkappid=0, time=0, expire=0)
        assert doc.to_wire() == {"TLS.ver": "2.0"}

    def test_binary_fields_standard_base64(self) -> None:
        doc = make_document(b"\xfb\xff\xfe")
        wire = doc.to_wire()
        assert wire["TLS.userbuf"] == "+//+"
        assert base64.b64decode(wire["TLS.sig"]) == doc.signature


# ---------------------------------------------------------------------------
# URL-safe base64
# ---------------------------------------------------------------------------


class TestUrlsafeBase64:
    def test_alphabet_substitution(self) -> None:
        assert urlsafe_b64encode(b"\xfb\xff\xfe") == "*--*"
        assert urlsafe_b64encode(b"\xff") == "-w__"

    def test_decode_inverse(self) -> None:
        assert urlsafe_b64decode("-w__") == b"\xff"

    def test_rejects_standard_alphabet(self) -> None:
        with pytest.raises(MalformedTokenError):
            urlsafe_b64decode("+w==")

    def test_rejects_missing_padding(self) -> None:
        with pytest.raises(MalformedTokenError):
            urlsafe_b64decode("-w")

    def test_rejects_non_ascii(self) -> None:
        with pytest.raises(MalformedTokenError):
            urlsafe_b64decode("é")

    def test_rejects_non_canonical_padding_bits(self) -> None:
        # "-x__" decodes to the same byte as "-w__" with a stray low bit.
        with pytest.raises(MalformedTokenError, match="canonical"):
            urlsafe_b64decode("-x__")

    @pytest.mark.parametrize("text", [" -w__", "-w__\n", "-w __"])
    def test_rejects_whitespace(self, text: str) -> None:
        with pytest.raises(MalformedTokenError):
            urlsafe_b64decode(text)


# ---------------------------------------------------------------------------
# pack()
# ---------------------------------------------------------------------------


class TestPack:
    def test_token_is_url_safe(self) -> None:
        token = pack(make_document(b"\xfb\xff" * 40))
        assert not set(token) & set("+/=")

    def test_default_is_uncompressed_zlib(self) -> None:
        token = pack(make_document())
        raw = urlsafe_b64decode(token)
        assert raw[:2] == b"\x78\x01"

    def test_payload_is_compact_json(self) -> None:
        token = pack(make_document())
        payload = zlib.decompress(urlsafe_b64decode(token))
        assert payload.startswith(b'{"TLS.ver":"2.0","TLS.identifier":"alice"')

    def test_compression_level_only_changes_size(self) -> None:
        doc = make_document(b"A" * 500)
        plain = pack(doc, compression_level=0)
        compressed = pack(doc, compression_level=9)
        assert len(compressed) < len(plain)
        assert unpack(plain) == unpack(compressed) == doc

    def test_explicit_pool(self) -> None:
        pool = CompressorPool(level=6, max_idle=1)
        token = pack(make_document(), pool=pool)
        assert unpack(token) == make_document()
        assert pool.idle_count() == 1

    def test_unencodable_identifier_raises_malformed(self) -> None:
        doc = TokenDocument(identifier="\ud800", sdkappid=1, time=1, expire=1)
        with pytest.raises(MalformedTokenError):
            pack(doc)


# ---------------------------------------------------------------------------
# unpack()
# ---------------------------------------------------------------------------


class TestUnpackRoundTrip:
    def test_without_userbuf(self) -> None:
        doc = make_document()
        assert unpack(pack(doc)) == doc

    def test_with_userbuf(self) -> None:
        doc = make_document(b"\x00\x01\x02")
        assert unpack(pack(doc)).userbuf == b"\x00\x01\x02"

    def test_empty_userbuf_stays_present(self) -> None:
        restored = unpack(pack(make_document(b"")))
        assert restored.userbuf == b""

    def test_absent_userbuf_stays_absent(self) -> None:
        assert unpack(pack(make_document())).userbuf is None

    def test_expire_preserved(self) -> None:
        assert unpack(pack(make_document())).expire == 86400

    def test_non_ascii_identifier(self) -> None:
        doc = TokenDocument(identifier="ünï", sdkappid=1, time=2, expire=3).signed(KEY)
        assert unpack(pack(doc)).identifier == "ünï"


class TestUnpackForeignDocuments:
    def test_missing_fields_take_zero_values(self) -> None:
        doc = unpack(json_token({"TLS.identifier": "bob"}))
        assert doc.identifier == "bob"
        assert doc.sdkappid == 0
        assert doc.time == 0
        assert doc.expire == 0
        assert doc.userbuf is None
        assert doc.signature == b""
        assert doc.version == ""

    def test_unknown_keys_ignored(self) -> None:
        doc = unpack(json_token({"TLS.identifier": "bob", "extra": [1, 2]}))
        assert doc.identifier == "bob"

    def test_null_userbuf_is_absent(self) -> None:
        assert unpack(json_token({"TLS.userbuf": None})).userbuf is None

    def test_trailing_newline_json(self) -> None:
        token = raw_token(b'{"TLS.identifier":"bob","TLS.time":5}\n')
        assert unpack(token).time == 5


class TestUnpackMalformed:
    @pytest.mark.parametrize(
        "token",
        ["", "not a token", "AAAA", "eJw_", "!!!!"],
    )
    def test_garbage(self, token: str) -> None:
        with pytest.raises(MalformedTokenError):
            unpack(token)

    def test_not_a_string(self) -> None:
        with pytest.raises(MalformedTokenError):
            unpack(b"abc")  # type: ignore[arg-type]

    def test_not_zlib(self) -> None:
        with pytest.raises(MalformedTokenError, match="zlib"):
            unpack(urlsafe_b64encode(b'{"TLS.identifier":"x"}'))

    def test_truncated_stream(self) -> None:
        compressed = zlib.compress(b'{"TLS.identifier":"x"}')
        with pytest.raises(MalformedTokenError):
            unpack(urlsafe_b64encode(compressed[:-3]))

    def test_trailing_data(self) -> None:
        compressed = zlib.compress(b'{"TLS.identifier":"x"}') + b"junk"
        with pytest.raises(MalformedTokenError, match="trailing"):
            unpack(urlsafe_b64encode(compressed))

    def test_stored_header_padding_bits(self) -> None:
        raw = bytearray(urlsafe_b64decode(pack(make_document())))
        raw[2] |= 0x40
        assert zlib.decompress(bytes(raw)) == zlib.decompress(urlsafe_b64decode(pack(make_document())))
        with pytest.raises(MalformedTokenError, match="padding"):
            unpack(urlsafe_b64encode(bytes(raw)))

    def test_invalid_json(self) -> None:
        with pytest.raises(MalformedTokenError, match="JSON"):
            unpack(raw_token(b"{not json"))

    def test_invalid_utf8(self) -> None:
        with pytest.raises(MalformedTokenError):
            unpack(raw_token(b'{"TLS.identifier":"\xff"}'))

    def test_json_array(self) -> None:
        with pytest.raises(MalformedTokenError, match="object"):
            unpack(json_token([1, 2, 3]))

    @pytest.mark.parametrize(
        "field, value",
        [
            ("TLS.sdkappid", "1400000000"),
            ("TLS.sdkappid", -1),
            ("TLS.sdkappid", 2**64),
            ("TLS.time", 1.5),
            ("TLS.expire", True),
            ("TLS.identifier", 42),
            ("TLS.userbuf", "not base64!"),
            ("TLS.userbuf", 7),
            ("TLS.sig", "@@@@"),
        ],
    )
    def test_wrong_field_types(self, field: str, value: object) -> None:
        with pytest.raises(MalformedTokenError):
            unpack(json_token({field: value}))

    def test_lone_surrogate_identifier(self) -> None:
        token = raw_token(b'{"TLS.identifier":"\\ud800"}')
        with pytest.raises(MalformedTokenError):
            unpack(token)

    def test_payload_size_limit(self) -> None:
        token = json_token({"TLS.identifier": "x" * 200})
        with pytest.raises(MalformedTokenError, match="exceeds"):
            unpack(token, max_size=100)
        assert unpack(token, max_size=1000).identifier == "x" * 200

    def test_deeply_nested_json(self) -> None:
        token = raw_token(b"[" * 50000 + b"]" * 50000)
        with pytest.raises(MalformedTokenError):
            unpack(token, max_size=200000)

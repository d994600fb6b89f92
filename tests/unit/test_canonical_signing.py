"""Tests for tls_sig.signing.canonical — canonical message and HMAC-SHA256."""
from __future__ import annotations

import base64
import hashlib
import hmac

from tls_sig.signing.canonical import canonical_message, key_bytes, sign, signatures_match


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

KEY = "5bd2850fff3ecb11d7c805251c51ee463a25727bddc2385f3fa8bfee1bb93b5e"


# ---------------------------------------------------------------------------
# canonical_message()
# ---------------------------------------------------------------------------


class TestCanonicalMessage:
    def test_without_userbuf(self) -> None:
        message = canonical_message("alice", 1400000000, 1700000000, 86400)
        assert message == (
            b"TLS.identifier:alice\n"
            b"TLS.sdkappid:1400000000\n"
            b"TLS.time:1700000000\n"
            b"TLS.expire:86400\n"
        )

    def test_with_userbuf_uses_standard_base64(self) -> None:
        userbuf = b"\xfb\xff\xfe"  # encodes to "+//+" in standard base64
        message = canonical_message("alice", 1, 2, 3, userbuf)
        assert message.endswith(b"TLS.userbuf:+//+\n")

    def test_userbuf_line_is_last(self) -> None:
        message = canonical_message("alice", 1, 2, 3, b"abc")
        lines = message.split(b"\n")
        assert lines[-2] == b"TLS.userbuf:" + base64.b64encode(b"abc")
        assert lines[-1] == b""

    def test_empty_userbuf_differs_from_absent(self) -> None:
        absent = canonical_message("alice", 1, 2, 3, None)
        empty = canonical_message("alice", 1, 2, 3, b"")
        assert absent != empty
        assert empty == absent + b"TLS.userbuf:\n"

    def test_negative_values_in_decimal(self) -> None:
        message = canonical_message("a", 0, -5, -1)
        assert b"TLS.time:-5\n" in message
        assert b"TLS.expire:-1\n" in message

    def test_identifier_utf8(self) -> None:
        message = canonical_message("ünï", 1, 2, 3)
        assert message.startswith("TLS.identifier:ünï\n".encode("utf-8"))


# ---------------------------------------------------------------------------
# sign()
# ---------------------------------------------------------------------------


class TestSign:
    def test_is_hmac_sha256_of_canonical_message(self) -> None:
        expected = hmac.new(
            KEY.encode("utf-8"),
            canonical_message("alice", 1400000000, 1700000000, 86400),
            hashlib.sha256,
        ).digest()
        assert sign(KEY, "alice", 1400000000, 1700000000, 86400) == expected

    def test_deterministic(self) -> None:
        first = sign(KEY, "alice", 1, 2, 3, b"buf")
        second = sign(KEY, "alice", 1, 2, 3, b"buf")
        assert first == second

    def test_output_is_32_bytes(self) -> None:
        assert len(sign(KEY, "alice", 1, 2, 3)) == 32

    def test_str_and_bytes_keys_agree(self) -> None:
        assert sign(KEY, "alice", 1, 2, 3) == sign(KEY.encode("utf-8"), "alice", 1, 2, 3)

    def test_different_keys_differ(self) -> None:
        assert sign("k1", "alice", 1, 2, 3) != sign("k2", "alice", 1, 2, 3)

    def test_each_field_affects_mac(self) -> None:
        base = sign(KEY, "alice", 1, 2, 3, b"x")
        assert sign(KEY, "alicf", 1, 2, 3, b"x") != base
        assert sign(KEY, "alice", 9, 2, 3, b"x") != base
        assert sign(KEY, "alice", 1, 9, 3, b"x") != base
        assert sign(KEY, "alice", 1, 2, 9, b"x") != base
        assert sign(KEY, "alice", 1, 2, 3, b"y") != base
        assert sign(KEY, "alice", 1, 2, 3, None) != base

    def test_presence_of_empty_userbuf_changes_mac(self) -> None:
        assert sign(KEY, "alice", 1, 2, 3, b"") != sign(KEY, "alice", 1, 2, 3, None)


# ---------------------------------------------------------------------------
# signatures_match() / key_bytes()
# ---------------------------------------------------------------------------


class TestSignaturesMatch:
    def test_equal(self) -> None:
        mac = sign(KEY, "alice", 1, 2, 3)
        assert signatures_match(mac, bytes(mac)) is True

    def test_different(self) -> None:
        mac = sign(KEY, "alice", 1, 2, 3)
        tampered = bytes([mac[0] ^ 1]) + mac[1:]
        assert signatures_match(mac, tampered) is False

    def test_different_length(self) -> None:
        mac = sign(KEY, "alice", 1, 2, 3)
        assert signatures_match(mac, mac[:-1]) is False


class TestKeyBytes:
    def test_str_is_utf8_encoded(self) -> None:
        assert key_bytes("clé") == "clé".encode("utf-8")

    def test_bytes_pass_through(self) -> None:
        assert key_bytes(b"\x00\x01") == b"\x00\x01"

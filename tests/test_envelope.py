"""
Unit tests for the token envelope codec.
"""

import json

import pytest
from jwcrypto import jwk
from jwcrypto.common import base64url_decode, base64url_encode, json_encode

from dultool import envelope
from dultool.errors import EnvelopeError, ErrorKind
from dultool.keys import hmac_key
from dultool.policy import Algorithm

SECRET = "test-secret-0123456789abcdef0123456789"


def _header(token: bytes) -> dict:
    return json.loads(base64url_decode(token.decode("ascii").split(".")[0]))


def _raw(header: dict, payload: bytes = b"hello", signature: str = "") -> str:
    return ".".join([base64url_encode(json_encode(header)), base64url_encode(payload), signature])


class TestEncode:
    """Tests for envelope.encode()."""

    def test_unsecured_form(self):
        """Unsecured tokens have an empty signature segment."""
        token = envelope.encode(Algorithm.NONE, "pub1", b"hello")
        parts = token.decode("ascii").split(".")

        assert len(parts) == 3
        assert parts[2] == ""
        assert _header(token) == {"alg": "none", "iss": "pub1"}
        assert base64url_decode(parts[1]) == b"hello"

    def test_hmac_form(self):
        """HS256 tokens are three non-empty base64url segments."""
        token = envelope.encode(Algorithm.HS256, "pub1", b"hello", signing_key=hmac_key(SECRET))
        parts = token.decode("ascii").split(".")

        assert len(parts) == 3
        assert all(parts)
        assert _header(token) == {"alg": "HS256", "iss": "pub1"}

    def test_rsa_form_carries_jku(self, rsa_key):
        """RS256 tokens carry the key location in 'jku'."""
        url = "https://keys.example.org/tokens/jwk/pub1/keys.json"
        token = envelope.encode(
            Algorithm.RS256, "pub1", b"hello", key_location=url, signing_key=rsa_key
        )

        assert _header(token) == {"alg": "RS256", "iss": "pub1", "jku": url}

    def test_jku_only_for_rsa(self):
        """A key location is never written into HMAC or unsecured headers."""
        url = "https://keys.example.org/tokens/jwk/pub1/keys.json"
        token = envelope.encode(Algorithm.NONE, "pub1", b"x", key_location=url)
        assert "jku" not in _header(token)

    def test_signed_without_key(self):
        """Signed algorithms need a key."""
        with pytest.raises(ValueError, match="signing key"):
            envelope.encode(Algorithm.HS256, "pub1", b"hello")


class TestDecode:
    """Tests for envelope.decode()."""

    def test_decode_unsecured(self):
        """decode() reads algorithm, issuer and payload of unsecured tokens."""
        env = envelope.decode(envelope.encode(Algorithm.NONE, "pub1", b"hello"))

        assert env.algorithm == "none"
        assert env.issuer == "pub1"
        assert env.payload == b"hello"
        assert env.signature == b""
        assert env.is_signed is False

    def test_decode_two_segment_unsecured(self):
        """The two-segment unsecured spelling is accepted."""
        raw = _raw({"alg": "none", "iss": "pub1"}).rstrip(".")
        env = envelope.decode(raw)

        assert env.issuer == "pub1"
        assert env.payload == b"hello"

    def test_decode_signed_needs_no_key(self, rsa_key):
        """decode() extracts header fields of signed tokens without a key."""
        url = "https://keys.example.org/tokens/jwk/pub1/keys.json"
        token = envelope.encode(
            Algorithm.RS256, "pub1", b"hello", key_location=url, signing_key=rsa_key
        )
        env = envelope.decode(token)

        assert env.algorithm == "RS256"
        assert env.key_location == url
        assert len(env.signature) == 256
        assert env.token == token.decode("ascii")

    def test_decode_strips_whitespace(self):
        """Trailing newlines from files are ignored."""
        token = envelope.encode(Algorithm.NONE, "pub1", b"hello") + b"\n"
        assert envelope.decode(token).payload == b"hello"

    def test_decode_keeps_unknown_algorithm(self):
        """Unknown algorithms decode; policy decides what to do with them."""
        env = envelope.decode(_raw({"alg": "ES256", "iss": "pub1"}, signature="c2ln"))
        assert env.algorithm == "ES256"

    def test_decode_missing_issuer(self):
        """A missing issuer is not a decoding error."""
        env = envelope.decode(_raw({"alg": "none"}))
        assert env.issuer is None

    def test_binary_payload(self):
        """Payloads are opaque bytes."""
        payload = bytes(range(256))
        env = envelope.decode(envelope.encode(Algorithm.NONE, "pub1", payload))
        assert env.payload == payload

    @pytest.mark.parametrize(
        "raw",
        [
            "",
            "onlyone",
            "a.b.c.d",
            "!!!.aGVsbG8.",
            base64url_encode("not json") + ".aGVsbG8.",
            base64url_encode("[1, 2]") + ".aGVsbG8.",
            _raw({"iss": "pub1"}),
            _raw({"alg": 5, "iss": "pub1"}),
            _raw({"alg": "none", "iss": 42}),
            _raw({"alg": "RS256", "iss": "pub1", "jku": ["x"]}, signature="c2ln"),
            _raw({"alg": "none", "iss": "pub1"}, signature="c2ln"),
            _raw({"alg": "HS256", "iss": "pub1"}),
            _raw({"alg": "HS256", "iss": "pub1"}).rstrip("."),
        ],
    )
    def test_malformed(self, raw):
        """Malformed tokens raise EnvelopeError of kind MalformedEnvelope."""
        with pytest.raises(EnvelopeError) as exc:
            envelope.decode(raw)
        assert exc.value.kind is ErrorKind.MALFORMED_ENVELOPE

    def test_non_ascii(self):
        """Non-ASCII bytes are malformed."""
        with pytest.raises(EnvelopeError):
            envelope.decode("é.é.".encode("utf-8"))


class TestVerifySignature:
    """Tests for envelope.verify_signature()."""

    def test_hmac(self):
        """The right secret verifies, another does not."""
        env = envelope.decode(
            envelope.encode(Algorithm.HS256, "pub1", b"hello", signing_key=hmac_key(SECRET))
        )

        assert envelope.verify_signature(env, hmac_key(SECRET)) is True
        assert envelope.verify_signature(env, hmac_key(SECRET + "x")) is False

    def test_rsa(self, rsa_key, other_rsa_key):
        """RSA tokens verify with the matching public key only."""
        env = envelope.decode(envelope.encode(Algorithm.RS256, "pub1", b"hello", signing_key=rsa_key))
        public = jwk.JWK.from_json(rsa_key.export_public())
        other = jwk.JWK.from_json(other_rsa_key.export_public())

        assert envelope.verify_signature(env, public) is True
        assert envelope.verify_signature(env, other) is False

    def test_wrong_key_type(self, rsa_key):
        """An RSA key cannot verify an HMAC token."""
        env = envelope.decode(
            envelope.encode(Algorithm.HS256, "pub1", b"hello", signing_key=hmac_key(SECRET))
        )
        public = jwk.JWK.from_json(rsa_key.export_public())
        assert envelope.verify_signature(env, public) is False

    def test_unsecured_never_verifies(self):
        """Unsecured tokens have nothing to verify."""
        env = envelope.decode(envelope.encode(Algorithm.NONE, "pub1", b"hello"))
        assert envelope.verify_signature(env, hmac_key(SECRET)) is False

    @pytest.mark.parametrize("key", [jwk.JWK(), None])
    def test_empty_key(self, rsa_key, key):
        """A missing or empty key fails instead of skipping verification."""
        env = envelope.decode(envelope.encode(Algorithm.RS256, "pub1", b"hello", signing_key=rsa_key))
        assert envelope.verify_signature(env, key) is False

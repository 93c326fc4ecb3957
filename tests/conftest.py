"""
Shared pytest fixtures for dultool tests.
"""

import pytest
from jwcrypto import jwk

from dultool import Signer, StaticKeyResolver, TrustConfig, Verifier

PREFIX = "https://keys.example.org/tokens/jwk/"
ISSUER = "pub1"
KEY_LOCATION = PREFIX + "pub1/keys.json"


@pytest.fixture(scope="session")
def rsa_key() -> jwk.JWK:
    """RSA private key shared by the whole session (generation is slow)."""
    return jwk.JWK.generate(kty="RSA", size=2048, kid="pub1-2024")


@pytest.fixture(scope="session")
def other_rsa_key() -> jwk.JWK:
    """A second, unrelated RSA private key."""
    return jwk.JWK.generate(kty="RSA", size=2048, kid="intruder")


@pytest.fixture
def public_keys(rsa_key) -> list:
    """The published key set matching ``rsa_key``."""
    return [jwk.JWK.from_json(rsa_key.export_public())]


@pytest.fixture
def config() -> TrustConfig:
    """Trust settings with a test secret and key server."""
    return TrustConfig(
        hmac_secret="test-secret-0123456789abcdef0123456789",
        jku_prefix=PREFIX,
        jku_timeout=1.0,
    )


@pytest.fixture
def resolver(public_keys) -> StaticKeyResolver:
    """Resolver publishing ``public_keys`` at ``KEY_LOCATION``."""
    return StaticKeyResolver({KEY_LOCATION: public_keys})


@pytest.fixture
def signer(config) -> Signer:
    return Signer(config)


@pytest.fixture
def verifier(config, resolver) -> Verifier:
    return Verifier(config, key_resolver=resolver)


@pytest.fixture
def sample_payload() -> bytes:
    """Sample payload for signing tests."""
    return b'{"doi": "10.5555/12345678", "event": "download"}'


def tamper(token: bytes) -> bytes:
    """Flip one character in the middle of the signature segment."""
    header, payload, signature = token.decode("ascii").split(".")
    middle = len(signature) // 2
    flipped = "B" if signature[middle] == "A" else "A"
    signature = signature[:middle] + flipped + signature[middle + 1:]
    return ".".join([header, payload, signature]).encode("ascii")

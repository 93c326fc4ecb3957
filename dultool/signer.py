"""
dultool Signer - issues tokens at a chosen producer trust level.

Level 1 tokens carry only the issuer claim, level 2 tokens are HMAC-signed
with the shared secret, and level 3 tokens are RSA-signed and point at the
producer's published key set through ``jku``.
"""

import logging
from typing import Optional

from jwcrypto import jwk
from jwcrypto.common import JWException

from dultool import envelope
from dultool.config import TrustConfig
from dultool.errors import ErrorKind, SigningError
from dultool.keys import hmac_key, is_rsa_private_key
from dultool.policy import (
    MIN_ISSUER_LENGTH,
    Algorithm,
    ProducerLevel,
    algorithm_for_producer_level,
    check_key_location,
)

logger = logging.getLogger(__name__)


class Signer:
    """
    Signs payloads into tokens.

    Example:
        >>> signer = Signer(TrustConfig())
        >>> token = signer.sign(ProducerLevel.SHARED_SECRET, "pub1", b"hello")

        # Level 3 needs the private key and the published key location
        >>> token = signer.sign(3, "pub1", b"hello", private_key=key,
        ...                     key_location="https://dul.crossref.org/tokens/jwk/pub1.json")
    """

    def __init__(self, config: Optional[TrustConfig] = None):
        self.config = config or TrustConfig()

    def sign(
        self,
        level: ProducerLevel,
        issuer: str,
        payload: bytes,
        private_key: Optional[jwk.JWK] = None,
        key_location: Optional[str] = None,
    ) -> bytes:
        """
        Sign ``payload`` as ``issuer`` at the given producer level.

        Args:
            level: Producer trust level (1, 2 or 3).
            issuer: Producer ID, carried in the ``iss`` header.
            payload: Payload bytes.
            private_key: RSA private key, level 3 only.
            key_location: URL of the published key set, level 3 only.

        Returns:
            The serialized token.

        Raises:
            SigningError: Carrying the ``ErrorKind`` of the failure.
        """
        if not issuer or len(issuer) < MIN_ISSUER_LENGTH:
            raise SigningError(
                ErrorKind.ISSUER_UNKNOWN, "PRODUCER_ID must be at least 2 characters."
            )

        try:
            level = ProducerLevel(level)
        except ValueError:
            raise SigningError(
                ErrorKind.CONFIGURATION_ERROR, f"Unrecognised PRODUCER_LEVEL of: {level}"
            )
        algorithm = algorithm_for_producer_level(level)
        logger.debug(f"Signing {len(payload)} bytes for {issuer!r} at level {int(level)} ({algorithm.value})")

        if algorithm is Algorithm.NONE:
            return envelope.encode(algorithm, issuer, payload)
        if algorithm is Algorithm.HS256:
            return self._sign_hmac(issuer, payload)
        return self._sign_rsa(issuer, payload, private_key, key_location)

    def _sign_hmac(self, issuer: str, payload: bytes) -> bytes:
        if not self.config.hmac_secret:
            raise SigningError(ErrorKind.MISSING_SIGNING_SECRET, "No shared secret configured.")
        try:
            key = hmac_key(self.config.hmac_secret)
        except ValueError as e:
            raise SigningError(ErrorKind.SIGNING_KEY_ERROR, f"Invalid shared secret: {e}")

        try:
            return envelope.encode(Algorithm.HS256, issuer, payload, signing_key=key)
        except (JWException, ValueError) as e:
            raise SigningError(ErrorKind.SIGNING_KEY_ERROR, f"Unexpected error signing with HMAC: {e}")

    def _sign_rsa(
        self,
        issuer: str,
        payload: bytes,
        private_key: Optional[jwk.JWK],
        key_location: Optional[str],
    ) -> bytes:
        if not is_rsa_private_key(private_key):
            raise SigningError(
                ErrorKind.MISSING_KEY_MATERIAL, "An RSA private key is required for level 3."
            )
        if not key_location:
            raise SigningError(
                ErrorKind.MISSING_KEY_LOCATION,
                f"JKU_URL not supplied or didn't exist. Supplied: {key_location}",
            )

        # Mirrors the verifier's whitelist check
        check_key_location(key_location, issuer, self.config.jku_prefix, SigningError)

        try:
            return envelope.encode(
                Algorithm.RS256, issuer, payload, key_location=key_location, signing_key=private_key
            )
        except (JWException, ValueError) as e:
            raise SigningError(ErrorKind.SIGNING_KEY_ERROR, f"Unexpected error signing with RSA: {e}")

"""
dultool token envelope codec.

Serializes and parses the compact token forms:

- unsecured (level 1): ``b64(header).b64(payload).`` with an empty
  signature segment; the two-segment ``b64(header).b64(payload)`` spelling
  is accepted on input.
- signed (levels 2 and 3): JWS compact serialization
  ``b64(header).b64(payload).b64(signature)``.

The header is a JSON object carrying ``alg``, the custom ``iss`` claim and,
for RSA tokens, ``jku``. Decoding never needs a key, so the issuer can be
read from tokens whose signatures will later fail.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union

from jwcrypto import jwk, jws
from jwcrypto.common import JWException, base64url_decode, base64url_encode, json_decode, json_encode

from dultool.errors import EnvelopeError
from dultool.policy import Algorithm

logger = logging.getLogger(__name__)

_B64URL = re.compile(r"^[A-Za-z0-9_-]*$")


@dataclass(frozen=True)
class Envelope:
    """
    A decoded token. Never mutated after decoding.

    Attributes:
        algorithm: The raw ``alg`` header value.
        issuer: The ``iss`` header claim, if present.
        payload: The opaque payload bytes.
        key_location: The ``jku`` header value, if present.
        signature: Raw signature bytes, empty for unsecured tokens.
        header: The full decoded header.
        token: The compact text the envelope was decoded from.
    """

    algorithm: str
    issuer: Optional[str]
    payload: bytes
    key_location: Optional[str] = None
    signature: bytes = b""
    header: Dict[str, Any] = field(default_factory=dict)
    token: str = ""

    @property
    def is_signed(self) -> bool:
        return self.algorithm != Algorithm.NONE.value


def build_header(
    algorithm: Algorithm, issuer: str, key_location: Optional[str] = None
) -> Dict[str, str]:
    """Header for a new token; ``jku`` is only carried by RSA tokens."""
    header = {"alg": Algorithm(algorithm).value, "iss": issuer}
    if key_location and Algorithm(algorithm) is Algorithm.RS256:
        header["jku"] = key_location
    return header


def encode(
    algorithm: Algorithm,
    issuer: str,
    payload: bytes,
    key_location: Optional[str] = None,
    signing_key: Optional[jwk.JWK] = None,
) -> bytes:
    """
    Serialize a token.

    Args:
        algorithm: ``none``, ``HS256`` or ``RS256``.
        issuer: Value of the ``iss`` header claim.
        payload: Payload bytes.
        key_location: ``jku`` URL, RSA tokens only.
        signing_key: Key for signed algorithms, ignored for ``none``.

    Returns:
        The compact serialization as ASCII bytes.

    Raises:
        ValueError: If a signed algorithm is requested without a key.
    """
    header = build_header(algorithm, issuer, key_location)

    if Algorithm(algorithm) is Algorithm.NONE:
        segments = [
            base64url_encode(json_encode(header)),
            base64url_encode(payload),
            "",
        ]
        return ".".join(segments).encode("ascii")

    if signing_key is None:
        raise ValueError(f"Algorithm {header['alg']} requires a signing key")

    token = jws.JWS(payload)
    token.add_signature(signing_key, None, json_encode(header))
    return token.serialize(compact=True).encode("ascii")


def _segment(value: str, name: str) -> bytes:
    if not _B64URL.match(value):
        raise EnvelopeError(f"Invalid base64url in token {name}")
    try:
        return base64url_decode(value)
    except ValueError as e:
        raise EnvelopeError(f"Invalid base64url in token {name}: {e}")


def decode(data: Union[bytes, str]) -> Envelope:
    """
    Parse a compact token without verifying it.

    Raises:
        EnvelopeError: On a wrong segment count, invalid base64url, a header
            that is not a JSON object, a missing ``alg``, or a signature
            segment inconsistent with the algorithm.
    """
    if isinstance(data, bytes):
        try:
            data = data.decode("ascii")
        except UnicodeDecodeError:
            raise EnvelopeError("Token is not ASCII text")

    text = data.strip()
    parts = text.split(".")
    if len(parts) not in (2, 3):
        raise EnvelopeError(f"Expected 2 or 3 token segments, got {len(parts)}")

    try:
        header = json_decode(_segment(parts[0], "header"))
    except ValueError as e:
        raise EnvelopeError(f"Invalid token header JSON: {e}")
    if not isinstance(header, dict):
        raise EnvelopeError("Token header is not a JSON object")

    algorithm = header.get("alg")
    if not isinstance(algorithm, str) or not algorithm:
        raise EnvelopeError("Token header has no 'alg'")

    issuer = header.get("iss")
    if issuer is not None and not isinstance(issuer, str):
        raise EnvelopeError("Token 'iss' header is not a string")

    key_location = header.get("jku")
    if key_location is not None and not isinstance(key_location, str):
        raise EnvelopeError("Token 'jku' header is not a string")

    payload = _segment(parts[1], "payload")
    signature = _segment(parts[2], "signature") if len(parts) == 3 else b""

    if algorithm == Algorithm.NONE.value:
        if signature:
            raise EnvelopeError("Unsecured token carries a signature")
    elif len(parts) != 3 or not signature:
        raise EnvelopeError(f"Token with alg {algorithm} has no signature")

    logger.debug(f"Decoded envelope alg={algorithm} iss={issuer!r}")
    return Envelope(
        algorithm=algorithm,
        issuer=issuer,
        payload=payload,
        key_location=key_location,
        signature=signature,
        header=header,
        token=text,
    )


def verify_signature(envelope: Envelope, key: jwk.JWK) -> bool:
    """
    Check the envelope's signature against one key.

    Returns:
        True if the signature verifies, False otherwise.
    """
    if not envelope.is_signed:
        return False
    # jwcrypto skips verification for a falsy key, and an empty JWK is falsy
    if not isinstance(key, jwk.JWK) or not key.get("kty"):
        logger.debug("Signature verification failed: no usable key")
        return False

    token = jws.JWS()
    try:
        token.deserialize(envelope.token)
        token.verify(key)
    except (JWException, ValueError, TypeError) as e:
        logger.debug(f"Signature verification failed: {e}")
        return False
    return True

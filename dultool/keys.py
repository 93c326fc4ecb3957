"""
Key material loading for dultool.

Turns the raw inputs each trust level needs into jwcrypto ``JWK`` objects:
the shared secret (level 2), the producer's RSA private key (level 3) and
published public key sets (level 3 verification).
"""

import json
import logging
from pathlib import Path
from typing import Any, List, Optional, Union

from jwcrypto import jwk
from jwcrypto.common import JWException, base64url_encode

from dultool.errors import ErrorKind, SigningError

logger = logging.getLogger(__name__)

# HS256 keys must carry at least as many bits as the hash output
MIN_HMAC_SECRET_BYTES = 32


def hmac_key(secret: str) -> jwk.JWK:
    """
    Build the symmetric JWK for HS256 from the shared secret.

    Raises:
        ValueError: If the secret is too short to key HMAC-SHA256.
    """
    raw = secret.encode("utf-8")
    if len(raw) < MIN_HMAC_SECRET_BYTES:
        raise ValueError(
            f"Shared secret is {len(raw) * 8} bits, HS256 needs at least "
            f"{MIN_HMAC_SECRET_BYTES * 8}"
        )
    return jwk.JWK(kty="oct", k=base64url_encode(raw))


def load_private_key(path: Optional[Union[str, Path]]) -> jwk.JWK:
    """
    Load the producer's RSA private key from a JWK JSON or PEM file.

    Args:
        path: Filesystem path to the key file.

    Returns:
        The private key as a JWK.

    Raises:
        SigningError: ``MissingKeyMaterial`` if the path is missing, the file
            does not exist or cannot be read as an RSA private key.
    """
    if not path or not Path(path).is_file():
        raise SigningError(
            ErrorKind.MISSING_KEY_MATERIAL,
            f"JWK not supplied or didn't exist. Supplied: {path}",
        )

    data = Path(path).read_bytes()
    try:
        if data.lstrip().startswith(b"{"):
            key = jwk.JWK.from_json(data.decode("utf-8"))
        else:
            key = jwk.JWK.from_pem(data)
    except (JWException, ValueError, TypeError) as e:
        raise SigningError(ErrorKind.MISSING_KEY_MATERIAL, f"Error reading JWK: {e}")

    logger.debug(f"Loaded private key from {path} (kid={key.get('kid')})")
    return key


def is_rsa_private_key(key: Any) -> bool:
    """True if ``key`` is a JWK holding an RSA private key."""
    return isinstance(key, jwk.JWK) and key.get("kty") == "RSA" and key.has_private


def parse_key_set(document: Union[str, bytes, dict]) -> List[jwk.JWK]:
    """
    Parse a JWK Set document, keeping the published key order.

    Raises:
        ValueError: If the document is not a non-empty JWK Set.
    """
    if isinstance(document, (str, bytes)):
        document = json.loads(document)

    if not isinstance(document, dict) or not isinstance(document.get("keys"), list):
        raise ValueError("Key set document has no 'keys' list")

    keys = []
    for entry in document["keys"]:
        if not isinstance(entry, dict) or not entry.get("kty"):
            raise ValueError(f"Invalid key in key set: no 'kty' in {entry!r}")
        try:
            keys.append(jwk.JWK(**entry))
        except (JWException, ValueError, TypeError) as e:
            raise ValueError(f"Invalid key in key set: {e}")

    if not keys:
        raise ValueError("Key set is empty")
    return keys

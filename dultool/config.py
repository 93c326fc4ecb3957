# dultool/config.py
"""
Centralized configuration for dultool.

Deployment values are read from environment variables with defaults, and
bundled into an immutable ``TrustConfig`` that is injected into the Signer
and Verifier. Tests and embedders build a ``TrustConfig`` directly.

Environment Variables:
    DUL_HMAC_SECRET: Shared secret for level 2 tokens
    DUL_JKU_PREFIX: Whitelisted key server prefix for level 3 key locations
    DUL_JKU_TIMEOUT: Seconds to wait for the key server (default: 10)

    PRODUCER_LEVEL: 1, 2 or 3 (default: 3), read by ``sign``
    PRODUCER_ID: Issuer claim, required by ``sign``
    JWK: Path to the RSA private key, required by level 3 ``sign``
    JKU_URL: Public key set URL, required by level 3 ``sign``
    CONSUMER_LEVEL: strict or relaxed (default: strict), read by ``validate``
"""

import os
from dataclasses import dataclass
from typing import Final, Optional

from dultool.errors import ConfigurationError
from dultool.policy import ConsumerMode, ProducerLevel

# =============================================================================
# Trust Configuration
# =============================================================================

# Published shared secret of the level 2 tier
HMAC_SECRET: Final[str] = os.getenv(
    "DUL_HMAC_SECRET",
    "dul-77d343c3-f8e8-48d9-9e14-1e52aa8611e8"
)

# Only key locations under this prefix are ever fetched
JKU_PREFIX: Final[str] = os.getenv(
    "DUL_JKU_PREFIX",
    "https://dul.crossref.org/tokens/jwk/"
)

# Overridden per process through DUL_JKU_TIMEOUT, see TrustConfig.from_env
JKU_TIMEOUT: Final[float] = 10.0

# =============================================================================
# Producer / Consumer Defaults
# =============================================================================

DEFAULT_PRODUCER_LEVEL: Final[str] = "3"
DEFAULT_CONSUMER_LEVEL: Final[str] = "strict"


@dataclass(frozen=True)
class TrustConfig:
    """
    Immutable trust settings shared by signer and verifier.

    Attributes:
        hmac_secret: Shared secret for HS256 tokens.
        jku_prefix: Whitelisted key server prefix.
        jku_timeout: Timeout in seconds for the key set fetch.
    """

    hmac_secret: str = HMAC_SECRET
    jku_prefix: str = JKU_PREFIX
    jku_timeout: float = JKU_TIMEOUT

    @classmethod
    def from_env(cls) -> "TrustConfig":
        """Build a config from the current environment."""
        try:
            timeout = float(os.getenv("DUL_JKU_TIMEOUT", str(JKU_TIMEOUT)))
        except ValueError:
            raise ConfigurationError(
                f"DUL_JKU_TIMEOUT must be a number, got {os.getenv('DUL_JKU_TIMEOUT')!r}"
            )
        return cls(
            hmac_secret=os.getenv("DUL_HMAC_SECRET", HMAC_SECRET),
            jku_prefix=os.getenv("DUL_JKU_PREFIX", JKU_PREFIX),
            jku_timeout=timeout,
        )


# =============================================================================
# Helper Functions
# =============================================================================

def _env(name: str) -> Optional[str]:
    value = os.environ.get(name)
    return value if value else None


def get_producer_level() -> ProducerLevel:
    """Read PRODUCER_LEVEL, defaulting to 3."""
    return ProducerLevel.parse(_env("PRODUCER_LEVEL") or DEFAULT_PRODUCER_LEVEL)


def get_consumer_mode() -> ConsumerMode:
    """Read CONSUMER_LEVEL, defaulting to strict."""
    return ConsumerMode.parse(_env("CONSUMER_LEVEL") or DEFAULT_CONSUMER_LEVEL)


def get_producer_id() -> Optional[str]:
    """Read PRODUCER_ID, the issuer claim."""
    return _env("PRODUCER_ID")


def get_jwk_path() -> Optional[str]:
    """Read JWK, the private key path."""
    return _env("JWK")


def get_jku_url() -> Optional[str]:
    """Read JKU_URL, the public key set location."""
    return _env("JKU_URL")

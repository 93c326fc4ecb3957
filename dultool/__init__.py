"""
dultool - tiered producer/consumer token signing.

Producers issue tokens at one of three trust levels (unsigned, shared-secret
HMAC, RSA with a published key set) and consumers validate them in strict
or relaxed mode, recovering the payload and the producer's issuer claim.
"""

__version__ = "0.1.0"

from .config import TrustConfig
from .envelope import Envelope, decode, encode
from .errors import (
    ConfigurationError,
    DulError,
    EnvelopeError,
    ErrorKind,
    KeyFetchError,
    SigningError,
    VerificationError,
)
from .policy import (
    Algorithm,
    ConsumerMode,
    ProducerLevel,
    algorithm_for_producer_level,
    is_algorithm_allowed_in_strict_mode,
)
from .resolver import HttpKeyResolver, KeyResolver, StaticKeyResolver
from .signer import Signer
from .verifier import VerificationResult, Verifier

__all__ = [
    "__version__",
    # Core
    "Signer",
    "Verifier",
    "VerificationResult",
    "TrustConfig",
    # Envelope
    "Envelope",
    "encode",
    "decode",
    # Policy
    "Algorithm",
    "ProducerLevel",
    "ConsumerMode",
    "algorithm_for_producer_level",
    "is_algorithm_allowed_in_strict_mode",
    # Key resolution
    "KeyResolver",
    "HttpKeyResolver",
    "StaticKeyResolver",
    # Errors
    "ErrorKind",
    "DulError",
    "EnvelopeError",
    "SigningError",
    "VerificationError",
    "KeyFetchError",
    "ConfigurationError",
]

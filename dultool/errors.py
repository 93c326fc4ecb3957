"""
dultool error kinds.

Every failure of signing or verification is terminal for the call and is
described by an ``ErrorKind``. The Signer raises ``SigningError``; the
Verifier folds its failures into a ``VerificationResult`` and only raises
``VerificationError`` when the caller asks for it via ``unwrap()``.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Inspectable reason a sign or verify operation failed."""

    MALFORMED_ENVELOPE = "MalformedEnvelope"
    ISSUER_UNKNOWN = "IssuerUnknown"
    ALGORITHM_NOT_ALLOWED = "AlgorithmNotAllowed"
    HMAC_VERIFICATION_FAILED = "HmacVerificationFailed"
    RSA_VERIFICATION_FAILED = "RsaVerificationFailed"
    MISSING_KEY_LOCATION = "MissingKeyLocation"
    URL_PREFIX_REJECTED = "UrlPrefixRejected"
    ISSUER_URL_MISMATCH = "IssuerUrlMismatch"
    KEY_FETCH_FAILED = "KeyFetchFailed"
    MISSING_KEY_MATERIAL = "MissingKeyMaterial"
    MISSING_SIGNING_SECRET = "MissingSigningSecret"
    SIGNING_KEY_ERROR = "SigningKeyError"
    CONFIGURATION_ERROR = "ConfigurationError"


class DulError(Exception):
    """Base class for all dultool errors."""

    def __init__(self, kind: ErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.kind.value}: {self.message})"


class EnvelopeError(DulError):
    """The token could not be parsed as an envelope."""

    def __init__(self, message: str):
        super().__init__(ErrorKind.MALFORMED_ENVELOPE, message)


class SigningError(DulError):
    """A token could not be issued."""


class VerificationError(DulError):
    """A token was rejected."""


class KeyFetchError(DulError):
    """The public key set could not be retrieved from the key location."""

    def __init__(self, message: str):
        super().__init__(ErrorKind.KEY_FETCH_FAILED, message)


class ConfigurationError(DulError):
    """An environment or configuration value was unusable."""

    def __init__(self, message: str):
        super().__init__(ErrorKind.CONFIGURATION_ERROR, message)

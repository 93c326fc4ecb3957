"""
dultool Verifier - authenticates tokens according to the consumer mode.

Verification is a linear sequence with no retries:

1. decode the envelope;
2. require an issuer claim of at least two characters;
3. relaxed mode stops here and returns the payload, signatures are not
   looked at;
4. strict mode gates the algorithm, then checks the HMAC with the shared
   secret, or checks the key location against the whitelist, fetches the
   published key set and verifies the RSA signature with its first key.

Every failure ends the call with a ``VerificationResult`` carrying the
``ErrorKind``; a payload is only ever returned from a successful run.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple, Union

from dultool import envelope
from dultool.config import TrustConfig
from dultool.errors import DulError, ErrorKind, VerificationError
from dultool.keys import hmac_key
from dultool.policy import (
    MIN_ISSUER_LENGTH,
    Algorithm,
    ConsumerMode,
    check_key_location,
    is_algorithm_allowed_in_strict_mode,
)
from dultool.resolver import HttpKeyResolver, KeyResolver

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of verifying one token."""

    valid: bool
    """Whether the token was accepted under the requested mode."""

    payload: Optional[bytes] = None
    """The payload, only set when valid."""

    issuer: Optional[str] = None
    """The claimed issuer, whenever the envelope carried one."""

    algorithm: Optional[str] = None
    """The token's ``alg`` header, once decoded."""

    error: Optional[ErrorKind] = None
    """Why the token was rejected."""

    message: Optional[str] = None
    """Human readable detail for the rejection."""

    def unwrap(self) -> Tuple[bytes, str]:
        """
        Return ``(payload, issuer)`` or raise.

        Raises:
            VerificationError: If the token was rejected.
        """
        if not self.valid:
            raise VerificationError(self.error, self.message or self.error.value)
        return self.payload, self.issuer


class Verifier:
    """
    Verifies tokens.

    Example:
        >>> verifier = Verifier(TrustConfig())
        >>> result = verifier.verify(token, ConsumerMode.STRICT)
        >>> if result.valid:
        ...     handle(result.payload, result.issuer)
        ... else:
        ...     log(result.error, result.message)
    """

    def __init__(
        self,
        config: Optional[TrustConfig] = None,
        key_resolver: Optional[KeyResolver] = None,
    ):
        """
        Args:
            config: Trust settings; defaults to ``TrustConfig()``.
            key_resolver: Source of published key sets; defaults to an
                ``HttpKeyResolver`` using the configured timeout.
        """
        self.config = config or TrustConfig()
        self.key_resolver = key_resolver or HttpKeyResolver(timeout=self.config.jku_timeout)

    def verify(
        self, token: Union[bytes, str], mode: ConsumerMode = ConsumerMode.STRICT
    ) -> VerificationResult:
        """
        Verify ``token`` under ``mode``.

        Args:
            token: The compact token.
            mode: ``strict`` or ``relaxed``.

        Returns:
            A VerificationResult; never raises for a rejected token.
        """
        mode = ConsumerMode(mode)

        try:
            env = envelope.decode(token)
        except DulError as e:
            logger.warning(f"Rejected malformed token: {e.message}")
            return VerificationResult(valid=False, error=e.kind, message=e.message)

        # An empty issuer would make prefix + issuer match every key location.
        if not env.issuer or len(env.issuer) < MIN_ISSUER_LENGTH:
            logger.warning("Rejected token without a usable 'iss'")
            return VerificationResult(
                valid=False,
                issuer=env.issuer,
                algorithm=env.algorithm,
                error=ErrorKind.ISSUER_UNKNOWN,
                message="The PRODUCER_ID was not supplied in the 'iss' header field.",
            )

        if mode is ConsumerMode.RELAXED:
            logger.debug(f"Relaxed mode: accepting {env.algorithm} token from {env.issuer!r} unchecked")
            return self._accept(env)

        try:
            self._check_strict(env)
        except DulError as e:
            logger.warning(f"Rejected {env.algorithm} token from {env.issuer!r}: {e.message}")
            return VerificationResult(
                valid=False,
                issuer=env.issuer,
                algorithm=env.algorithm,
                error=e.kind,
                message=e.message,
            )

        return self._accept(env)

    def _accept(self, env: envelope.Envelope) -> VerificationResult:
        return VerificationResult(
            valid=True, payload=env.payload, issuer=env.issuer, algorithm=env.algorithm
        )

    def _check_strict(self, env: envelope.Envelope) -> None:
        if not is_algorithm_allowed_in_strict_mode(env.algorithm):
            raise VerificationError(
                ErrorKind.ALGORITHM_NOT_ALLOWED,
                f"Strict mode does not allow the algorithm: {env.algorithm}",
            )

        if env.algorithm == Algorithm.HS256.value:
            self._check_hmac(env)
        else:
            self._check_rsa(env)

    def _check_hmac(self, env: envelope.Envelope) -> None:
        try:
            key = hmac_key(self.config.hmac_secret or "")
        except ValueError as e:
            raise VerificationError(
                ErrorKind.HMAC_VERIFICATION_FAILED, f"Shared secret unusable: {e}"
            )

        if not envelope.verify_signature(env, key):
            raise VerificationError(
                ErrorKind.HMAC_VERIFICATION_FAILED,
                "Failed to validate input with HMAC (Level 2) signature.",
            )

    def _check_rsa(self, env: envelope.Envelope) -> None:
        if not env.key_location:
            raise VerificationError(
                ErrorKind.MISSING_KEY_LOCATION, "RSA token has no 'jku' key location."
            )

        check_key_location(env.key_location, env.issuer, self.config.jku_prefix, VerificationError)

        try:
            keys = self.key_resolver.resolve(env.key_location)
        except DulError as e:
            raise VerificationError(ErrorKind.KEY_FETCH_FAILED, e.message)
        if not keys:
            raise VerificationError(
                ErrorKind.KEY_FETCH_FAILED, f"Key set at {env.key_location} is empty"
            )

        if not envelope.verify_signature(env, keys[0]):
            raise VerificationError(
                ErrorKind.RSA_VERIFICATION_FAILED,
                "Failed to validate input with RSA (Level 3) signature.",
            )

"""
dultool trust level policy.

Pure decision logic: which algorithm a producer level signs with, which
algorithms a strict consumer accepts, and the whitelist rule binding a
key-location URL to the issuer that claims it.
"""

import logging
from enum import Enum, IntEnum
from typing import Optional, Type

from dultool.errors import ConfigurationError, DulError, ErrorKind

logger = logging.getLogger(__name__)


class Algorithm(str, Enum):
    """JWS ``alg`` values understood by dultool."""

    NONE = "none"
    HS256 = "HS256"
    RS256 = "RS256"


class ProducerLevel(IntEnum):
    """Producer trust level, in increasing order of assurance."""

    UNSIGNED = 1
    SHARED_SECRET = 2
    PUBLISHED_KEY = 3

    @classmethod
    def parse(cls, value: Optional[str]) -> "ProducerLevel":
        """Parse ``"1"``, ``"2"`` or ``"3"``."""
        try:
            return cls(int(str(value).strip()))
        except ValueError:
            raise ConfigurationError(f"Unrecognised PRODUCER_LEVEL of: {value}")


class ConsumerMode(str, Enum):
    """Consumer trust mode."""

    RELAXED = "relaxed"
    STRICT = "strict"

    @classmethod
    def parse(cls, value: Optional[str]) -> "ConsumerMode":
        """Parse ``strict`` or ``relaxed``; ``3`` is the legacy spelling of strict."""
        text = str(value).strip().lower()
        if text == "3":
            return cls.STRICT
        try:
            return cls(text)
        except ValueError:
            raise ConfigurationError(f"Unrecognised CONSUMER_LEVEL value of: {value}")


MIN_ISSUER_LENGTH = 2

STRICT_ALGORITHMS = frozenset({Algorithm.HS256.value, Algorithm.RS256.value})

_PRODUCER_ALGORITHMS = {
    ProducerLevel.UNSIGNED: Algorithm.NONE,
    ProducerLevel.SHARED_SECRET: Algorithm.HS256,
    ProducerLevel.PUBLISHED_KEY: Algorithm.RS256,
}


def algorithm_for_producer_level(level: ProducerLevel) -> Algorithm:
    """Return the algorithm a producer at ``level`` signs with."""
    return _PRODUCER_ALGORITHMS[ProducerLevel(level)]


def is_algorithm_allowed_in_strict_mode(algorithm: str) -> bool:
    """Only signed algorithms pass strict mode; ``none`` never does."""
    return str(getattr(algorithm, "value", algorithm)) in STRICT_ALGORITHMS


def check_key_location(
    key_location: str,
    issuer: str,
    prefix: str,
    error_cls: Type[DulError] = DulError,
) -> None:
    """
    Apply the whitelist rule to a key-location URL.

    The URL must live under ``prefix`` and, more narrowly, under
    ``prefix + issuer``, so an issuer can only be verified against keys
    published in its own namespace.

    Args:
        key_location: The ``jku`` URL.
        issuer: The claimed issuer.
        prefix: The whitelisted key server prefix.
        error_cls: Exception type to raise on violation.

    Raises:
        error_cls: With kind ``UrlPrefixRejected`` or ``IssuerUrlMismatch``.
    """
    if not key_location.startswith(prefix):
        logger.warning(f"Key location {key_location!r} outside whitelist {prefix!r}")
        raise error_cls(
            ErrorKind.URL_PREFIX_REJECTED,
            f"JKU_URL had the wrong prefix. Got '{key_location}', expected '{prefix}'",
        )

    expected = prefix + issuer
    if not key_location.startswith(expected):
        logger.warning(f"Key location {key_location!r} not in namespace of issuer {issuer!r}")
        raise error_cls(
            ErrorKind.ISSUER_URL_MISMATCH,
            "JKU_URL had the wrong prefix for the PRODUCER_ID. "
            f"Got '{key_location}', expected '{expected}'",
        )

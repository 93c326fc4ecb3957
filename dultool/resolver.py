"""
Public key set resolution for level 3 tokens.

The verifier only calls a resolver after the key location has passed the
whitelist rule. Resolution is a single blocking GET: no cache, no retry,
and redirects are not followed so the fetched URL is the checked URL.
"""

import logging
from abc import ABC, abstractmethod
from typing import List, Optional

import httpx
from jwcrypto import jwk

from dultool.errors import KeyFetchError
from dultool.keys import parse_key_set

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0  # seconds


class KeyResolver(ABC):
    """Abstract interface for key set resolvers."""

    @abstractmethod
    def resolve(self, key_location: str) -> List[jwk.JWK]:
        """
        Return the key set published at ``key_location``.

        Raises:
            KeyFetchError: If no usable key set could be obtained.
        """
        pass


class HttpKeyResolver(KeyResolver):
    """
    Fetches JWK Sets over HTTP(S).

    Example:
        >>> resolver = HttpKeyResolver(timeout=5.0)
        >>> keys = resolver.resolve("https://dul.crossref.org/tokens/jwk/pub1.json")
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        verify_ssl: bool = True,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """
        Args:
            timeout: HTTP request timeout in seconds.
            verify_ssl: Whether to verify TLS certificates.
            transport: Optional httpx transport, e.g. ``httpx.MockTransport``.
        """
        self._timeout = timeout
        self._verify_ssl = verify_ssl
        self._transport = transport

    def resolve(self, key_location: str) -> List[jwk.JWK]:
        logger.debug(f"Fetching key set from {key_location}")
        try:
            with httpx.Client(
                timeout=self._timeout,
                verify=self._verify_ssl,
                transport=self._transport,
                follow_redirects=False,
            ) as client:
                response = client.get(
                    key_location,
                    headers={"Accept": "application/jwk-set+json, application/json"},
                )
                response.raise_for_status()
                document = response.json()
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise KeyFetchError(f"Could not fetch key set from {key_location}: {e}")
        except ValueError as e:
            raise KeyFetchError(f"Key set at {key_location} is not JSON: {e}")

        try:
            keys = parse_key_set(document)
        except ValueError as e:
            raise KeyFetchError(f"Key set at {key_location} is unusable: {e}")

        logger.debug(f"Resolved {len(keys)} key(s) from {key_location}")
        return keys


class StaticKeyResolver(KeyResolver):
    """
    Serves key sets from memory, keyed by location.

    For offline deployments and tests.
    """

    def __init__(self, key_sets: Optional[dict] = None):
        self._key_sets = dict(key_sets or {})
        self.requested: List[str] = []

    def add(self, key_location: str, keys: List[jwk.JWK]) -> None:
        """Publish ``keys`` at ``key_location``."""
        self._key_sets[key_location] = list(keys)

    def resolve(self, key_location: str) -> List[jwk.JWK]:
        self.requested.append(key_location)
        keys = self._key_sets.get(key_location)
        if not keys:
            raise KeyFetchError(f"No key set published at {key_location}")
        return list(keys)

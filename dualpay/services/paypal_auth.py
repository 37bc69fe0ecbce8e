"""
PayPal credential broker.

Exchanges the server-held client id/secret for a short-lived bearer token
(client-credentials grant) and keeps one token per environment in memory
until it is close to expiry or a dependent call reports it as rejected.
"""
import enum
import logging
import os
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Mapping, Optional, Tuple

import httpx

from dualpay.core.errors import InvalidRequestError, MissingCredentialsError, UpstreamAuthError
from dualpay.core.logging_config import sanitize_log_data

logger = logging.getLogger(__name__)

TOKEN_PATH = "/v1/oauth2/token"
DEFAULT_TIMEOUT = 15.0
# Tokens are treated as expired this many seconds before PayPal says so
EXPIRY_LEEWAY_SECONDS = 60
# Used when the token response omits expires_in
DEFAULT_EXPIRES_IN = 3600


class PayPalEnvironment(str, enum.Enum):
    LIVE = "live"
    SANDBOX = "sandbox"

    @property
    def api_base(self) -> str:
        if self is PayPalEnvironment.SANDBOX:
            return "https://api-m.sandbox.paypal.com"
        return "https://api-m.paypal.com"

    @classmethod
    def parse(cls, value) -> "PayPalEnvironment":
        """Strict parse: only `live` and `sandbox` are accepted."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise InvalidRequestError(f"Unknown PayPal environment: {value!r}", field="env")

    @classmethod
    def from_query(cls, value: Optional[str]) -> "PayPalEnvironment":
        """Query-string rule: exactly `sandbox` selects sandbox, anything else is live."""
        return cls.SANDBOX if value == "sandbox" else cls.LIVE


@dataclass
class AccessToken:
    """Bearer token for one PayPal environment. Never leaves the process."""
    environment: PayPalEnvironment
    token: str = field(repr=False)
    issued_at: float
    expires_in: int
    api_base: str

    def is_expired(self, now: float, leeway: int = EXPIRY_LEEWAY_SECONDS) -> bool:
        return now >= self.issued_at + self.expires_in - leeway


# environment -> (client_id, client_secret)
Credentials = Dict[PayPalEnvironment, Tuple[Optional[str], Optional[str]]]


def load_paypal_credentials(environ: Optional[Mapping[str, str]] = None) -> Credentials:
    """
    Read client id/secret pairs per environment.

    The browser-safe PUBLIC_PAYPAL_CLIENT_ID(_SANDBOX) serves as the client id
    when the server-only variable is not set.
    """
    if environ is None:
        environ = os.environ
    return {
        PayPalEnvironment.LIVE: (
            environ.get("PAYPAL_CLIENT_ID") or environ.get("PUBLIC_PAYPAL_CLIENT_ID"),
            environ.get("PAYPAL_CLIENT_SECRET"),
        ),
        PayPalEnvironment.SANDBOX: (
            environ.get("PAYPAL_CLIENT_ID_SANDBOX") or environ.get("PUBLIC_PAYPAL_CLIENT_ID_SANDBOX"),
            environ.get("PAYPAL_CLIENT_SECRET_SANDBOX"),
        ),
    }


class PayPalCredentialBroker:
    """Memoizing token source, one cache slot per environment."""

    def __init__(
        self,
        credentials: Credentials,
        http_client: Optional[httpx.Client] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._credentials = dict(credentials)
        self._http = http_client or httpx.Client(timeout=DEFAULT_TIMEOUT)
        self._clock = clock
        self._tokens: Dict[PayPalEnvironment, AccessToken] = {}
        # One lock per environment so a cache miss is fetched once
        self._locks: Dict[PayPalEnvironment, threading.Lock] = {env: threading.Lock() for env in PayPalEnvironment}

    def _credentials_for(self, environment: PayPalEnvironment) -> Tuple[str, str]:
        client_id, secret = self._credentials.get(environment, (None, None))
        if not client_id or not secret:
            suffix = "_SANDBOX" if environment is PayPalEnvironment.SANDBOX else ""
            raise MissingCredentialsError(
                f"Missing PayPal credentials for {environment.value}. "
                f"Set PAYPAL_CLIENT_ID{suffix} and PAYPAL_CLIENT_SECRET{suffix}.",
                provider="paypal",
                environment=environment.value,
            )
        return client_id, secret

    def _cached(self, environment: PayPalEnvironment) -> Optional[AccessToken]:
        token = self._tokens.get(environment)
        if token is not None and not token.is_expired(self._clock()):
            return token
        return None

    def get_access_token(self, environment) -> AccessToken:
        """
        Get a valid access token for the environment.

        Args:
            environment: PayPalEnvironment or its string value

        Returns:
            AccessToken, reused from cache when still valid

        Raises:
            InvalidRequestError: unknown environment
            MissingCredentialsError: client id or secret not configured
            UpstreamAuthError: the token endpoint rejected the exchange
        """
        environment = PayPalEnvironment.parse(environment)
        client_id, secret = self._credentials_for(environment)

        token = self._cached(environment)
        if token is not None:
            return token

        with self._locks[environment]:
            # Another caller may have filled the slot while we waited
            token = self._cached(environment)
            if token is not None:
                return token
            token = self._exchange(environment, client_id, secret)
            self._tokens[environment] = token
            return token

    def invalidate(self, environment, token: Optional[AccessToken] = None) -> None:
        """
        Drop the cached token for an environment.

        When `token` is given, only drop it if it is still the cached one, so
        a caller holding a stale token does not evict a fresh replacement.
        """
        environment = PayPalEnvironment.parse(environment)
        with self._locks[environment]:
            current = self._tokens.get(environment)
            if current is None:
                return
            if token is None or current.token == token.token:
                del self._tokens[environment]
                logger.info(f"Invalidated PayPal access token for env={environment.value}")

    def _exchange(self, environment: PayPalEnvironment, client_id: str, secret: str) -> AccessToken:
        url = f"{environment.api_base}{TOKEN_PATH}"
        issued_at = self._clock()
        try:
            response = self._http.post(
                url,
                auth=(client_id, secret),
                data={"grant_type": "client_credentials"},
                headers={"Accept": "application/json"},
            )
        except httpx.HTTPError as e:
            logger.error(f"PayPal token request failed for env={environment.value}: {e}")
            raise UpstreamAuthError(f"Failed to reach PayPal token endpoint: {e}", status_code=0, body=str(e))

        if not response.is_success:
            logger.error(f"PayPal token exchange rejected for env={environment.value}: status={response.status_code}")
            raise UpstreamAuthError(
                f"Failed to get token ({response.status_code}): {response.text}",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            data = response.json()
            access_token = data["access_token"]
        except (ValueError, KeyError, TypeError):
            raise UpstreamAuthError(
                "PayPal token response did not contain an access_token",
                status_code=response.status_code,
                body=response.text,
            )

        logger.debug(f"PayPal token response: {sanitize_log_data(data)}")
        try:
            expires_in = int(data.get("expires_in") or DEFAULT_EXPIRES_IN)
        except (ValueError, TypeError):
            raise UpstreamAuthError(
                f"PayPal token response had an invalid expires_in: {data.get('expires_in')!r}",
                status_code=response.status_code,
                body=response.text,
            )
        logger.info(f"Obtained PayPal access token for env={environment.value}, expires_in={expires_in}s")
        return AccessToken(
            environment=environment,
            token=access_token,
            issued_at=issued_at,
            expires_in=expires_in,
            api_base=environment.api_base,
        )

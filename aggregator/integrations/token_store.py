"""
Per-provider access token lifecycle.
Holds the current TokenData for each provider and returns a valid one,
refreshing or re-authenticating as needed. Refresh/create is single-flight
per provider so concurrent requests never re-authenticate twice.
"""

import asyncio
from collections.abc import Callable
from datetime import UTC, datetime
from enum import Enum
from typing import Any

import structlog

from aggregator.integrations.errors import ProviderAuthError
from aggregator.integrations.registry import ProviderRegistry
from aggregator.models.catalog import Provider, TokenData

logger = structlog.get_logger()


class TokenState(str, Enum):
    """Where a provider's token sits in its lifecycle."""

    NO_TOKEN = "no_token"
    VALID = "valid"
    ACCESS_EXPIRED = "access_expired"
    BOTH_EXPIRED = "both_expired"


def classify_token(token: TokenData | None, now: datetime) -> TokenState:
    """
    Classify a token against the current time.

    Args:
        token: Current token data, or None if never created
        now: Timezone-aware current time

    Returns:
        TokenState for the token
    """
    if token is None:
        return TokenState.NO_TOKEN
    if now < token.access_token_expiry:
        return TokenState.VALID
    if token.refresh_token and now < token.refresh_token_expiry:
        return TokenState.ACCESS_EXPIRED
    return TokenState.BOTH_EXPIRED


def _utcnow() -> datetime:
    return datetime.now(UTC)


class TokenStore:
    """Process-wide token holder, one lifecycle per provider."""

    def __init__(
        self,
        registry: ProviderRegistry,
        credentials: dict[Provider, dict[str, Any]] | None = None,
        now: Callable[[], datetime] = _utcnow,
    ):
        """
        Initialize the token store.

        Args:
            registry: Source of each provider's adapter (token parsing) and client
            credentials: Optional per-provider credentials passed to authenticate()
            now: Clock returning an aware datetime
        """
        self.registry = registry
        self.credentials = credentials or {}
        self._now = now
        self._tokens: dict[Provider, TokenData] = {}
        # One renewal in flight per provider; every waiter shares its outcome
        self._renewals: dict[Provider, asyncio.Task[TokenData]] = {}

    def current(self, provider: Provider) -> TokenData | None:
        """Return the cached token without validating it."""
        return self._tokens.get(provider)

    def seed(self, provider: Provider, token: TokenData) -> None:
        """Prime the store with a token obtained elsewhere."""
        self._tokens[provider] = token

    def invalidate(self, provider: Provider) -> None:
        """Drop the cached token; the next call re-authenticates."""
        self._tokens.pop(provider, None)

    async def get_valid_token(self, provider: Provider) -> TokenData:
        """
        Return a valid token for the provider.

        Valid tokens are returned unchanged. An expired access token with a
        live refresh token is refreshed; otherwise a new token is created.
        Concurrent callers share a single renewal attempt, including its
        failure. No retries happen here.

        Raises:
            ProviderAuthError: If refresh or creation fails
        """
        current = self._tokens.get(provider)
        if classify_token(current, self._now()) == TokenState.VALID:
            return current

        renewal = self._renewals.get(provider)
        if renewal is None:
            renewal = asyncio.create_task(self._renew(provider))
            self._renewals[provider] = renewal
            renewal.add_done_callback(lambda task: self._renewal_done(provider, task))
        else:
            logger.debug("Waiting on in-flight token renewal", provider=provider.value)

        # A cancelled caller must not cancel the renewal other callers wait on
        return await asyncio.shield(renewal)

    def _renewal_done(self, provider: Provider, task: asyncio.Task[TokenData]) -> None:
        if self._renewals.get(provider) is task:
            del self._renewals[provider]

    async def _renew(self, provider: Provider) -> TokenData:
        current = self._tokens.get(provider)
        state = classify_token(current, self._now())
        if state == TokenState.VALID:
            return current

        if state == TokenState.ACCESS_EXPIRED:
            token = await self._refresh(provider, current)
        else:
            token = await self._create(provider)

        self._tokens[provider] = token
        return token

    async def _refresh(self, provider: Provider, current: TokenData) -> TokenData:
        logger.info("Refreshing provider token", provider=provider.value)
        client = self.registry.get_client(provider)
        try:
            raw = await client.refresh(current.refresh_token)
            token = self.registry.get_adapter(provider).parse_token(raw)
        except ProviderAuthError:
            logger.error("Provider token refresh failed", provider=provider.value)
            raise
        except Exception as e:
            logger.error(
                "Provider token refresh failed",
                provider=provider.value,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise ProviderAuthError(provider, f"token refresh failed: {e}") from e
        logger.info("Provider token refreshed", provider=provider.value)
        return token

    async def _create(self, provider: Provider) -> TokenData:
        logger.info("Creating new provider token", provider=provider.value)
        client = self.registry.get_client(provider)
        try:
            raw = await client.authenticate(self.credentials.get(provider))
            token = self.registry.get_adapter(provider).parse_token(raw)
        except ProviderAuthError:
            logger.error("Provider authentication failed", provider=provider.value)
            raise
        except Exception as e:
            logger.error(
                "Provider authentication failed",
                provider=provider.value,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise ProviderAuthError(provider, f"authentication failed: {e}") from e
        logger.info("Provider token created", provider=provider.value)
        return token

"""
Client for the Vairified Partner API.

Usage:
    from vairified import Match, Vairified

    async with Vairified(api_key="vair_pk_xxx") as client:
        member = await client.get_member("vair_mem_0ABC123def456GHI789jk")
        print(member.name, member.rating)

        results = await client.search(city="Austin", rating_min=4.0)
        for player in results:
            print(player.name, player.rating)

        result = await client.submit_match(Match(...))
        if result.ok:
            print(f"Submitted {result.num_games} games")

If the API key has the "dry-run" scope, match submissions are validated
but not persisted.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any, Optional

import httpx
import pydantic

from .core.config import DEFAULT_ENVIRONMENT, Environment, Settings
from .core.http import BaseApiClient
from .errors import ConfigurationError
from .models import Match, MatchResult, Member, Player, RatingUpdate, SearchFilters, SearchResults
from .oauth import AuthorizationResponse, TokenResponse, prepare_scopes

logger = logging.getLogger(__name__)


def _resolve_environment(value: str | Environment) -> Environment:
    try:
        return Environment(value)
    except ValueError:
        raise ConfigurationError(
            f"Unknown environment {value!r}, expected one of: "
            + ", ".join(e.value for e in Environment)
        ) from None


class Vairified(BaseApiClient):
    """
    Client for the Vairified Partner API.

    Args:
        api_key: Partner API key; falls back to ``VAIRIFIED_API_KEY``
        env: Environment preset (production, staging, local); falls back to
            ``VAIRIFIED_ENV``, then production
        base_url: Explicit API base URL, takes precedence over ``env``
        timeout: Request timeout in seconds (default 30)
        transport: Custom httpx transport (mainly for tests)
        settings: Settings to read fallbacks from (defaults to the environment)

    Raises:
        ConfigurationError: If no API key is available, the environment is unknown
            or the VAIRIFIED_* settings are malformed
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        *,
        env: Optional[str | Environment] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        settings: Optional[Settings] = None,
    ):
        if settings is None:
            try:
                settings = Settings()
            except pydantic.ValidationError as e:
                raise ConfigurationError(f"Invalid VAIRIFIED_* environment settings: {e}") from e

        api_key = api_key or settings.api_key
        if not api_key:
            raise ConfigurationError(
                "API key required. Pass api_key or set the VAIRIFIED_API_KEY environment variable."
            )

        if env is not None:
            environment = _resolve_environment(env)
        elif settings.env:
            try:
                environment = Environment(settings.env)
            except ValueError:
                logger.warning(f"Unknown VAIRIFIED_ENV {settings.env!r}, using {DEFAULT_ENVIRONMENT.value}")
                environment = DEFAULT_ENVIRONMENT
        else:
            environment = DEFAULT_ENVIRONMENT

        if base_url:
            resolved_url = base_url
        elif env is None and settings.base_url:
            resolved_url = settings.base_url
        else:
            resolved_url = environment.base_url

        timeout = timeout if timeout is not None else settings.timeout
        if timeout <= 0:
            raise ConfigurationError(f"Timeout must be positive, got {timeout}")

        super().__init__(
            api_key=api_key,
            base_url=resolved_url,
            timeout=timeout,
            transport=transport,
        )
        self.env = environment
        logger.debug(f"Vairified client using {self.base_url} (env={environment.value})")

    def __repr__(self) -> str:
        return f"Vairified(env={self.env.value!r}, base_url={self.base_url!r})"

    # =========================================================================
    # Members
    # =========================================================================

    async def get_member(self, player_id: str) -> Member:
        """
        Get a connected member by their external ID.

        The player must have connected their account to your application via
        OAuth. Fetching a member also subscribes you to their rating updates.

        Args:
            player_id: External player ID (vair_mem_xxx format)

        Raises:
            NotFoundError: If the member does not exist or the ID is invalid
        """
        data = await self._get("/partner/member", {"id": player_id})
        return Member.from_api(data, self)

    # =========================================================================
    # Search
    # =========================================================================

    async def search(self, filters: Optional[SearchFilters] = None, **criteria: Any) -> SearchResults:
        """
        Search for players.

        Pass a SearchFilters or the same fields as keyword arguments:

            results = await client.search(city="Austin", rating_min=4.0, vairified_only=True)
            if results.has_more:
                more = await results.next_page()
        """
        if filters is None:
            filters = SearchFilters(**criteria)
        elif criteria:
            filters = SearchFilters(**{**filters.model_dump(), **criteria})

        data = await self._get("/partner/search", filters.to_params())
        return SearchResults.from_api(data, self, filters)

    async def find_player(self, name: str) -> Optional[Player]:
        """Find a single player by name; None when nothing matches."""
        results = await self.search(name=name, limit=1)
        return results.at(0)

    # =========================================================================
    # Matches
    # =========================================================================

    async def submit_match(self, match: Match) -> MatchResult:
        """Submit a single match."""
        return await self.submit_matches([match])

    async def submit_matches(self, matches: Iterable[Match]) -> MatchResult:
        """
        Submit multiple matches in one request.

        Raises:
            PreconditionError: If a match is missing a player on either team
        """
        body = {"matches": [match.to_wire() for match in matches]}
        data = await self._post("/partner/matches", body)
        result = MatchResult.model_validate(data)
        if result.dry_run:
            logger.info(f"Dry run: {result.num_matches} matches validated, nothing persisted")
        return result

    # =========================================================================
    # Rating Updates
    # =========================================================================

    async def get_rating_updates(self) -> list[RatingUpdate]:
        """Get rating updates for subscribed members."""
        data = await self._get("/partner/rating-updates")
        return [RatingUpdate.from_api(update, self) for update in data.get("updates") or []]

    async def test_webhook(self, webhook_url: str) -> dict[str, Any]:
        """Send a test webhook to ``webhook_url``."""
        return await self._post("/partner/webhook-test", {"webhookUrl": webhook_url})

    # =========================================================================
    # OAuth
    # =========================================================================

    async def start_oauth(
        self,
        redirect_uri: str,
        scopes: Optional[Iterable[str]] = None,
        state: Optional[str] = None,
    ) -> AuthorizationResponse:
        """
        Start an OAuth authorization flow.

        ``profile:read`` is always requested. Defaults to profile:read and
        rating:read.

        Args:
            redirect_uri: Your application's callback URL
            scopes: Permission scopes to request
            state: CSRF protection state, echoed back in the response

        Raises:
            OAuthError: ``invalid_scope`` for unknown scopes, or if the API
                rejects the request
        """
        scope_list = prepare_scopes(scopes)
        body = {"redirectUri": redirect_uri, "scope": ",".join(scope_list)}
        if state is not None:
            body["state"] = state
        data = await self._post("/partner/oauth/authorize", body, oauth=True)
        return AuthorizationResponse(
            authorization_url=data["authorizationUrl"],
            code=data["code"],
            state=state,
        )

    async def exchange_token(self, code: str, redirect_uri: str) -> TokenResponse:
        """
        Exchange an authorization code for access and refresh tokens.

        Raises:
            OAuthError: If the code is invalid or expired
        """
        data = await self._post(
            "/partner/oauth/token",
            {"code": code, "redirectUri": redirect_uri},
            oauth=True,
        )
        return TokenResponse.model_validate(data)

    async def refresh_access_token(self, refresh_token: str) -> TokenResponse:
        """
        Refresh an expired access token.

        Raises:
            OAuthError: ``invalid_grant`` if the refresh token was revoked
        """
        data = await self._post(
            "/partner/oauth/refresh",
            {"refreshToken": refresh_token},
            oauth=True,
        )
        return TokenResponse.model_validate(data)

    async def revoke_connection(self, player_id: str) -> None:
        """
        Disconnect a player from your application.

        Raises:
            OAuthError: If the API rejects the revocation (any 4xx except 401/429)
            VairifiedError: For 401, 429 and server errors, mapped as on any
                other endpoint
        """
        await self._post("/partner/oauth/revoke", {"playerId": player_id}, oauth=True)

    async def get_available_scopes(self) -> list[dict[str, Any]]:
        """List OAuth scopes with id, name and description."""
        data = await self._get("/partner/oauth/scopes")
        return data.get("scopes") or []

    # =========================================================================
    # Account
    # =========================================================================

    async def get_usage(self) -> dict[str, Any]:
        """Get API usage statistics for your partner account."""
        return await self._get("/partner/usage")

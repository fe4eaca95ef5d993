"""
Tests for the Vairified client against a mocked Partner API.
"""

import asyncio
import json
from datetime import datetime, timezone

import httpx
import pytest

from conftest import API_KEY, BASE_URL
from vairified import (
    AuthenticationError,
    ConfigurationError,
    Environment,
    Match,
    Member,
    NotFoundError,
    OAuthError,
    PreconditionError,
    RateLimitError,
    RequestTimeoutError,
    SearchFilters,
    Settings,
    TransportError,
    Vairified,
    VairifiedError,
)

MEMBER = {
    "id": "vair_mem_0ABC123def456GHI789jk",
    "firstName": "John",
    "lastName": "Doe",
    "rating": 4.25,
    "isVairified": True,
    "ratingSplits": {"VG": 4.25, "VM": 4.1},
    "grantedScopes": ["profile:read", "rating:read"],
}


def body_of(request: httpx.Request) -> dict:
    return json.loads(request.content)


# =========================================================================
# Configuration
# =========================================================================


class TestConfiguration:
    """Client construction and base URL resolution."""

    def test_api_key_required(self):
        with pytest.raises(ConfigurationError, match="API key required"):
            Vairified()

    def test_api_key_from_environment(self, monkeypatch):
        monkeypatch.setenv("VAIRIFIED_API_KEY", "vair_pk_from_env")
        client = Vairified()
        assert client.api_key == "vair_pk_from_env"

    def test_explicit_api_key_wins(self, monkeypatch):
        monkeypatch.setenv("VAIRIFIED_API_KEY", "vair_pk_from_env")
        assert Vairified("vair_pk_explicit").api_key == "vair_pk_explicit"

    def test_defaults_to_production(self):
        client = Vairified(API_KEY)
        assert client.env is Environment.PRODUCTION
        assert client.base_url == "https://api-next.vairified.com/api/v1"
        assert client.timeout == 30.0

    @pytest.mark.parametrize(
        "env,url",
        [
            ("staging", "https://api-staging.vairified.com/api/v1"),
            ("local", "http://localhost:3001/api/v1"),
            (Environment.PRODUCTION, "https://api-next.vairified.com/api/v1"),
        ],
    )
    def test_environment_presets(self, env, url):
        assert Vairified(API_KEY, env=env).base_url == url

    def test_env_from_environment_variable(self, monkeypatch):
        monkeypatch.setenv("VAIRIFIED_ENV", "staging")
        client = Vairified(API_KEY)
        assert client.env is Environment.STAGING
        assert client.base_url == "https://api-staging.vairified.com/api/v1"

    def test_unknown_env_variable_falls_back_to_production(self, monkeypatch, caplog):
        monkeypatch.setenv("VAIRIFIED_ENV", "qa")
        client = Vairified(API_KEY)
        assert client.env is Environment.PRODUCTION
        assert "Unknown VAIRIFIED_ENV" in caplog.text

    def test_explicit_env_beats_environment_variables(self, monkeypatch):
        monkeypatch.setenv("VAIRIFIED_ENV", "staging")
        monkeypatch.setenv("VAIRIFIED_BASE_URL", "https://custom.example.com/api/v1")
        assert Vairified(API_KEY, env="local").base_url == "http://localhost:3001/api/v1"

    def test_base_url_from_environment_variable(self, monkeypatch):
        monkeypatch.setenv("VAIRIFIED_ENV", "staging")
        monkeypatch.setenv("VAIRIFIED_BASE_URL", "https://custom.example.com/api/v1")
        assert Vairified(API_KEY).base_url == "https://custom.example.com/api/v1"

    def test_explicit_base_url_wins(self):
        client = Vairified(API_KEY, env="staging", base_url="https://custom.example.com/api/v1/")
        assert client.base_url == "https://custom.example.com/api/v1"

    def test_unknown_env_rejected(self):
        with pytest.raises(ConfigurationError, match="Unknown environment"):
            Vairified(API_KEY, env="qa")

    def test_timeout(self, monkeypatch):
        assert Vairified(API_KEY, timeout=5).timeout == 5
        monkeypatch.setenv("VAIRIFIED_TIMEOUT", "12.5")
        assert Vairified(API_KEY).timeout == 12.5

    @pytest.mark.parametrize("timeout", [0, -1])
    def test_timeout_must_be_positive(self, timeout):
        with pytest.raises(ConfigurationError):
            Vairified(API_KEY, timeout=timeout)

    def test_malformed_environment_setting(self, monkeypatch):
        monkeypatch.setenv("VAIRIFIED_TIMEOUT", "abc")
        with pytest.raises(ConfigurationError, match="VAIRIFIED_"):
            Vairified(API_KEY, timeout=5)

    def test_explicit_settings_skip_environment(self, monkeypatch):
        monkeypatch.setenv("VAIRIFIED_TIMEOUT", "abc")
        client = Vairified(API_KEY, settings=Settings(_env_file=None, timeout=7))
        assert client.timeout == 7

    def test_repr_hides_api_key(self):
        assert API_KEY not in repr(Vairified(API_KEY))


# =========================================================================
# Request execution
# =========================================================================


class TestRequests:
    async def test_headers(self, api, client):
        api.json("GET", "/partner/usage", {"requests": 1})
        await client.get_usage()
        request = api.last_request
        assert request.headers["X-API-Key"] == API_KEY
        assert request.headers["Accept"] == "application/json"
        assert str(request.url) == f"{BASE_URL}/partner/usage"

    async def test_lazy_client_without_context_manager(self, api):
        api.json("GET", "/partner/usage", {"requests": 1})
        client = Vairified(API_KEY, base_url=BASE_URL, transport=api.transport)
        try:
            assert await client.get_usage() == {"requests": 1}
        finally:
            await client.close()

    async def test_context_manager_reuses_lazy_client(self, api):
        client = Vairified(API_KEY, base_url=BASE_URL, transport=api.transport)
        lazy = client.client
        async with client:
            assert client.client is lazy
        assert lazy.is_closed

    async def test_non_json_success_body(self, api, client):
        api.route("GET", "/partner/usage", lambda request: httpx.Response(200, text="<html>oops</html>"))
        with pytest.raises(VairifiedError, match="Invalid JSON response") as exc_info:
            await client.get_usage()
        assert exc_info.value.status_code == 200
        assert exc_info.value.response == "<html>oops</html>"

    async def test_rate_limit(self, api, client):
        api.json("GET", "/partner/usage", {"message": "Rate limit exceeded"}, status=429, headers={"Retry-After": "60"})
        with pytest.raises(RateLimitError) as exc_info:
            await client.get_usage()
        assert exc_info.value.retry_after == 60
        assert exc_info.value.status_code == 429
        assert len(api.requests) == 1

    async def test_server_error(self, api, client):
        api.json("GET", "/partner/usage", {"message": "Internal server error"}, status=500)
        with pytest.raises(VairifiedError) as exc_info:
            await client.get_usage()
        assert type(exc_info.value) is VairifiedError
        assert exc_info.value.status_code == 500
        assert exc_info.value.message == "Internal server error"

    async def test_invalid_api_key(self, api, client):
        api.json("GET", "/partner/usage", {"message": "Invalid API key"}, status=401)
        with pytest.raises(AuthenticationError):
            await client.get_usage()

    async def test_timeout(self, api):
        async def slow(request):
            await asyncio.sleep(1)
            return httpx.Response(200, json={})

        api.route("GET", "/partner/usage", slow)
        async with Vairified(API_KEY, base_url=BASE_URL, timeout=0.05, transport=api.transport) as client:
            with pytest.raises(RequestTimeoutError) as exc_info:
                await client.get_usage()
        assert exc_info.value.status_code is None

    async def test_httpx_timeout(self, api, client):
        def timeout(request):
            raise httpx.ReadTimeout("read timed out", request=request)

        api.route("GET", "/partner/usage", timeout)
        with pytest.raises(RequestTimeoutError):
            await client.get_usage()

    async def test_connection_failure(self, api, client):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        api.route("GET", "/partner/usage", refuse)
        with pytest.raises(TransportError) as exc_info:
            await client.get_usage()
        assert not isinstance(exc_info.value, RequestTimeoutError)
        assert exc_info.value.status_code is None


# =========================================================================
# Members
# =========================================================================


class TestMembers:
    async def test_get_member(self, api, client):
        api.json("GET", "/partner/member", MEMBER)
        member = await client.get_member(MEMBER["id"])

        assert api.last_request.url.params["id"] == MEMBER["id"]
        assert isinstance(member, Member)
        assert member.name == "John Doe"
        assert member.rating_splits.mixed == 4.1
        assert member.has_scope("rating:read")

    async def test_member_not_found(self, api, client):
        api.json("GET", "/partner/member", {"message": "Member not found"}, status=404)
        with pytest.raises(NotFoundError, match="Member not found"):
            await client.get_member("vair_mem_missing")

    async def test_refresh_returns_new_member(self, api, client):
        api.json("GET", "/partner/member", MEMBER)
        member = await client.get_member(MEMBER["id"])

        api.json("GET", "/partner/member", {**MEMBER, "rating": 4.4})
        refreshed = await member.refresh()

        assert refreshed is not member
        assert refreshed.rating == 4.4
        assert member.rating == 4.25


# =========================================================================
# Search
# =========================================================================


class TestSearch:
    async def test_search_params(self, api, client):
        api.json("GET", "/partner/search", {"players": [], "total": 0, "page": 1, "limit": 20})
        await client.search(city="Austin", rating_min=4.0, vairified_only=True, age_min=30, age_max=50)

        params = api.last_request.url.params
        assert params["city"] == "Austin"
        assert params["rating1"] == "4.0"
        assert params["vairified"] == "true"
        assert params["ageFilterType"] == "range"
        assert params["age1"] == "30"
        assert params["age2"] == "50"
        assert params["limit"] == "20"
        assert "offset" not in params

    async def test_search_envelope(self, api, client):
        api.json(
            "GET",
            "/partner/search",
            {
                "players": [
                    {"id": "vair_mem_1", "displayName": "Jane S.", "rating": 4.0, "isVairified": True},
                    {"id": "vair_mem_2", "displayName": "Pat Q.", "rating": "3.75"},
                ],
                "total": 45,
                "page": 1,
                "limit": 20,
            },
        )
        results = await client.search(city="Austin")
        assert len(results) == 2
        assert results[1].rating == 3.75
        assert results.has_more
        assert results.pages == 3

    async def test_search_bare_list(self, api, client):
        api.json("GET", "/partner/search", [{"memberId": "vair_mem_9", "memberLongname": "Pat Q.", "primaryRating": 4.5}])
        results = await client.search(name="Pat")
        assert results.total == 1
        assert results[0].id == "vair_mem_9"
        assert not results.has_more

    async def test_search_with_filters_and_overrides(self, api, client):
        api.json("GET", "/partner/search", {"players": [], "total": 0})
        filters = SearchFilters(city="Austin", limit=50)
        results = await client.search(filters, state="TX")

        params = api.last_request.url.params
        assert params["city"] == "Austin"
        assert params["state"] == "TX"
        assert params["limit"] == "50"
        assert results.filters.state == "TX"

    async def test_next_page(self, api, client):
        api.json("GET", "/partner/search", {"players": [{"id": "a"}], "total": 45, "page": 1, "limit": 20})
        first = await client.search(city="Austin")

        api.json("GET", "/partner/search", {"players": [{"id": "b"}], "total": 45, "page": 2, "limit": 20})
        second = await first.next_page()

        params = api.last_request.url.params
        assert params["offset"] == "20"
        assert params["city"] == "Austin"
        assert second.page == 2
        assert second[0].id == "b"

    async def test_next_page_on_last_page(self, api, client):
        api.json("GET", "/partner/search", {"players": [], "total": 45, "page": 3, "limit": 20})
        results = await client.search(page=3)
        with pytest.raises(PreconditionError, match="No more pages"):
            await results.next_page()
        assert len(api.requests) == 1

    async def test_find_player(self, api, client):
        api.json("GET", "/partner/search", {"players": [{"id": "vair_mem_1", "displayName": "Jane S."}], "total": 3})
        player = await client.find_player("Jane")
        assert player.id == "vair_mem_1"
        params = api.last_request.url.params
        assert params["member"] == "Jane"
        assert params["limit"] == "1"

    async def test_find_player_no_match(self, api, client):
        api.json("GET", "/partner/search", {"players": [], "total": 0})
        assert await client.find_player("Nobody") is None


# =========================================================================
# Matches and rating updates
# =========================================================================


class TestMatches:
    async def test_submit_match(self, api, client):
        api.json("POST", "/partner/matches", {"success": True, "numMatches": 1, "numGames": 2})
        match = Match(
            event="Weekly League",
            bracket="4.0 Doubles",
            date=datetime(2026, 1, 21, 12, 0, tzinfo=timezone.utc),
            team1=["p1", "p2"],
            team2=["p3", "p4"],
            scores=[(11, 9), (11, 7)],
            identifier="SDK-test",
        )
        result = await client.submit_match(match)

        assert result.ok
        assert result.num_games == 2
        body = body_of(api.last_request)
        assert len(body["matches"]) == 1
        assert body["matches"][0]["identifier"] == "SDK-test"
        assert body["matches"][0]["teamA"]["game2"] == 11
        assert body["matches"][0]["teamB"]["player2"] == "p4"

    async def test_submit_matches_dry_run(self, api, client):
        api.json("POST", "/partner/matches", {"success": True, "dryRun": True, "numMatches": 2})
        matches = [
            Match(event="E", bracket="B", date="2026-01-21T12:00:00Z", team1=["p1"], team2=["p2"], scores=[(11, 3)]),
            Match(event="E", bracket="B", date="2026-01-21T13:00:00Z", team1=["p3"], team2=["p4"], scores=[(4, 11)]),
        ]
        result = await client.submit_matches(matches)
        assert result.is_dry_run
        assert len(body_of(api.last_request)["matches"]) == 2

    async def test_invalid_match_sends_nothing(self, api, client):
        match = Match(event="E", bracket="B", date="2026-01-21T12:00:00Z", team1=[""], team2=["p2"], scores=[])
        with pytest.raises(PreconditionError):
            await client.submit_match(match)
        assert api.requests == []

    async def test_rejected_match(self, api, client):
        api.json("POST", "/partner/matches", {"message": "Unknown player p9"}, status=400)
        match = Match(event="E", bracket="B", date="2026-01-21T12:00:00Z", team1=["p9"], team2=["p2"], scores=[])
        with pytest.raises(VairifiedError) as exc_info:
            await client.submit_match(match)
        assert exc_info.value.status_code == 400


class TestRatingUpdates:
    async def test_get_rating_updates(self, api, client):
        api.json(
            "GET",
            "/partner/rating-updates",
            {
                "updates": [
                    {
                        "id": MEMBER["id"],
                        "memberName": "John Doe",
                        "previousRating": 4.0,
                        "newRating": 4.25,
                        "changedAt": "2026-01-21T12:00:00Z",
                    }
                ]
            },
        )
        updates = await client.get_rating_updates()
        assert len(updates) == 1
        assert updates[0].improved

        api.json("GET", "/partner/member", MEMBER)
        member = await updates[0].get_member()
        assert member.name == "John Doe"
        assert api.last_request.url.params["id"] == MEMBER["id"]

    async def test_no_updates(self, api, client):
        api.json("GET", "/partner/rating-updates", {})
        assert await client.get_rating_updates() == []

    async def test_webhook(self, api, client):
        api.json("POST", "/partner/webhook-test", {"success": True, "statusCode": 200})
        result = await client.test_webhook("https://myapp.com/hooks/vairified")
        assert result["success"] is True
        assert body_of(api.last_request) == {"webhookUrl": "https://myapp.com/hooks/vairified"}


# =========================================================================
# OAuth
# =========================================================================


class TestOAuth:
    async def test_start_oauth_adds_profile_read(self, api, client):
        api.json(
            "POST",
            "/partner/oauth/authorize",
            {"authorizationUrl": "https://vairified.com/connect?code=abc", "code": "abc"},
        )
        auth = await client.start_oauth("https://myapp.com/callback", scopes=["rating:read"], state="xyz")

        assert auth.authorization_url == "https://vairified.com/connect?code=abc"
        assert auth.code == "abc"
        assert auth.state == "xyz"
        assert body_of(api.last_request) == {
            "redirectUri": "https://myapp.com/callback",
            "scope": "rating:read,profile:read",
            "state": "xyz",
        }

    async def test_start_oauth_default_scopes(self, api, client):
        api.json("POST", "/partner/oauth/authorize", {"authorizationUrl": "https://x", "code": "c"})
        auth = await client.start_oauth("https://myapp.com/callback")
        body = body_of(api.last_request)
        assert body["scope"] == "profile:read,rating:read"
        assert "state" not in body
        assert auth.state is None

    async def test_invalid_scope_sends_nothing(self, api, client):
        with pytest.raises(OAuthError) as exc_info:
            await client.start_oauth("https://myapp.com/callback", scopes=["admin:all"])
        assert exc_info.value.error_code == "invalid_scope"
        assert api.requests == []

    async def test_exchange_token(self, api, client):
        api.json(
            "POST",
            "/partner/oauth/token",
            {
                "accessToken": "at_123",
                "refreshToken": "rt_456",
                "expiresIn": 3600,
                "scope": "profile:read,rating:read",
                "playerId": MEMBER["id"],
            },
        )
        tokens = await client.exchange_token("abc", "https://myapp.com/callback")

        assert tokens.access_token == "at_123"
        assert tokens.refresh_token == "rt_456"
        assert tokens.expires_in == 3600
        assert tokens.scope == ["profile:read", "rating:read"]
        assert tokens.player_id == MEMBER["id"]
        assert body_of(api.last_request) == {"code": "abc", "redirectUri": "https://myapp.com/callback"}

    async def test_refresh_invalid_grant(self, api, client):
        api.json(
            "POST",
            "/partner/oauth/refresh",
            {"message": "Refresh token revoked", "error": "invalid_grant"},
            status=400,
        )
        with pytest.raises(OAuthError) as exc_info:
            await client.refresh_access_token("rt_456")
        assert exc_info.value.error_code == "invalid_grant"
        assert exc_info.value.status_code == 400
        assert body_of(api.last_request) == {"refreshToken": "rt_456"}

    async def test_refresh_access_token(self, api, client):
        api.json("POST", "/partner/oauth/refresh", {"accessToken": "at_new", "expiresIn": 3600})
        tokens = await client.refresh_access_token("rt_456")
        assert tokens.access_token == "at_new"
        assert tokens.scope == []

    async def test_revoke_connection(self, api, client):
        api.route("POST", "/partner/oauth/revoke", lambda request: httpx.Response(204))
        assert await client.revoke_connection(MEMBER["id"]) is None
        assert body_of(api.last_request) == {"playerId": MEMBER["id"]}

    async def test_revoke_forbidden(self, api, client):
        api.json("POST", "/partner/oauth/revoke", {"message": "Not connected"}, status=403)
        with pytest.raises(OAuthError) as exc_info:
            await client.revoke_connection(MEMBER["id"])
        assert exc_info.value.status_code == 403

    async def test_revoke_server_error(self, api, client):
        api.json("POST", "/partner/oauth/revoke", {"message": "Internal server error"}, status=500)
        with pytest.raises(VairifiedError) as exc_info:
            await client.revoke_connection(MEMBER["id"])
        assert type(exc_info.value) is VairifiedError
        assert exc_info.value.status_code == 500

    async def test_oauth_endpoint_auth_failure(self, api, client):
        api.json("POST", "/partner/oauth/token", {"message": "Invalid API key"}, status=401)
        with pytest.raises(AuthenticationError):
            await client.exchange_token("abc", "https://myapp.com/callback")

    async def test_get_available_scopes(self, api, client):
        scopes = [{"id": "profile:read", "name": "Profile", "description": "Basic profile"}]
        api.json("GET", "/partner/oauth/scopes", {"scopes": scopes})
        assert await client.get_available_scopes() == scopes


class TestUsage:
    async def test_get_usage(self, api, client):
        usage = {"requestsToday": 12, "requestsThisMonth": 340, "limit": 10000}
        api.json("GET", "/partner/usage", usage)
        assert await client.get_usage() == usage

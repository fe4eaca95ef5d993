"""
OAuth helpers for the "Connect with Vairified" flow.

The flow itself runs through the client:

    auth = await client.start_oauth("https://myapp.com/callback", state=generate_state())
    # redirect the user to auth.authorization_url, then on callback:
    tokens = await client.exchange_token(code, "https://myapp.com/callback")

This module holds the scope registry and the response types.
"""

from __future__ import annotations

import secrets
from collections.abc import Iterable
from typing import Any, Optional

import httpx
from pydantic import Field, field_validator

from .core.config import DEFAULT_ENVIRONMENT
from .core.types import ApiModel
from .errors import OAuthError

# Scope -> what it grants
SCOPES: dict[str, str] = {
    "profile:read": "Access your name, location, and verification status",
    "profile:email": "Access your email address",
    "rating:read": "View your current rating and rating splits",
    "rating:history": "View your complete rating history",
    "match:submit": "Submit match results on your behalf",
    "webhook:subscribe": "Receive notifications when your rating changes",
}

PROFILE_READ = "profile:read"

DEFAULT_SCOPES: tuple[str, ...] = ("profile:read", "rating:read")


class AuthorizationResponse(ApiModel):
    """Response from starting an OAuth authorization."""

    authorization_url: str
    code: str
    state: Optional[str] = None


class TokenResponse(ApiModel):
    """Response from exchanging an authorization code or refresh token."""

    access_token: str
    refresh_token: Optional[str] = None
    expires_in: int = 0
    scope: list[str] = Field(default_factory=list)
    player_id: Optional[str] = None

    @field_validator("scope", mode="before")
    @classmethod
    def _split_scope(cls, value: Any) -> Any:
        # The API sends granted scopes as a comma-separated string
        if isinstance(value, str):
            return [s.strip() for s in value.split(",") if s.strip()]
        return value


def validate_scope(scope: str) -> bool:
    """Check if a scope is known."""
    return scope in SCOPES


def describe_scope(scope: str) -> str:
    """Human-readable description of a scope."""
    return SCOPES.get(scope, f"Unknown scope: {scope}")


def describe_scopes(scopes: Iterable[str]) -> list[dict[str, str]]:
    return [{"scope": scope, "description": describe_scope(scope)} for scope in scopes]


def prepare_scopes(scopes: Optional[Iterable[str]] = None) -> list[str]:
    """
    Deduplicate requested scopes and make sure ``profile:read`` is included.

    Raises:
        OAuthError: ``invalid_scope`` if any scope is unknown
    """
    scope_list = list(dict.fromkeys(DEFAULT_SCOPES if scopes is None else scopes))
    if PROFILE_READ not in scope_list:
        scope_list.append(PROFILE_READ)

    for scope in scope_list:
        if not validate_scope(scope):
            raise OAuthError(f"Invalid scope: {scope}", error_code="invalid_scope")
    return scope_list


def generate_state() -> str:
    """Random 32-character hex string for CSRF protection."""
    return secrets.token_hex(16)


def get_authorization_url(
    redirect_uri: str,
    scopes: Optional[Iterable[str]] = None,
    state: Optional[str] = None,
    base_url: Optional[str] = None,
) -> str:
    """
    Build the authorize URL to redirect users to.

    Partners normally POST to ``/partner/oauth/authorize`` via
    ``Vairified.start_oauth`` instead; this builds the equivalent
    front-end URL by hand.
    """
    base_url = (base_url or DEFAULT_ENVIRONMENT.base_url).rstrip("/")
    params = {
        "redirect_uri": redirect_uri,
        "scope": ",".join(prepare_scopes(scopes)),
        "response_type": "code",
    }
    if state:
        params["state"] = state
    return str(httpx.URL(f"{base_url}/partner/oauth/authorize", params=params))

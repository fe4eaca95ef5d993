"""
Vairified Python client

Async client for the Vairified Partner API.

Key Features:
- Opaque external IDs (vair_mem_xxx format) for privacy
- OAuth-based player consent for data access
- Tiered access: public search vs connected member data

Usage:
    from vairified import Vairified

    async with Vairified(api_key="vair_pk_xxx") as client:
        member = await client.get_member("vair_mem_xxx")
        print(member.name, member.rating_splits.mixed)
"""

from .client import Vairified
from .core.config import Environment, Settings
from .errors import (
    AuthenticationError,
    ClientNotAttachedError,
    ConfigurationError,
    NotFoundError,
    OAuthError,
    PreconditionError,
    RateLimitError,
    RequestTimeoutError,
    TransportError,
    VairifiedError,
    ValidationError,
)
from .models import (
    Match,
    MatchResult,
    Member,
    Player,
    PlayerSource,
    RatingSplit,
    RatingSplits,
    RatingUpdate,
    SearchFilters,
    SearchResults,
)
from .oauth import (
    DEFAULT_SCOPES,
    SCOPES,
    AuthorizationResponse,
    TokenResponse,
    describe_scope,
    describe_scopes,
    generate_state,
    get_authorization_url,
    validate_scope,
)

__version__ = "1.0.0"

__all__ = [
    # Client
    "Vairified",
    "Environment",
    "Settings",
    # Errors
    "VairifiedError",
    "RateLimitError",
    "AuthenticationError",
    "NotFoundError",
    "ValidationError",
    "OAuthError",
    "TransportError",
    "RequestTimeoutError",
    "ConfigurationError",
    "PreconditionError",
    "ClientNotAttachedError",
    # Models
    "Match",
    "MatchResult",
    "Member",
    "Player",
    "PlayerSource",
    "RatingSplit",
    "RatingSplits",
    "RatingUpdate",
    "SearchFilters",
    "SearchResults",
    # OAuth
    "SCOPES",
    "DEFAULT_SCOPES",
    "AuthorizationResponse",
    "TokenResponse",
    "describe_scope",
    "describe_scopes",
    "generate_state",
    "get_authorization_url",
    "validate_scope",
]

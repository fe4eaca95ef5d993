"""
Wire payload types for the Vairified Partner API.

These models describe the JSON exactly as the API sends it (camelCase keys,
optional fields, ratings that may be numeric strings). Domain objects in
``vairified.models`` are built from them.

Player data comes in three shapes:

- MemberData: connected members from ``/partner/member`` (full name, splits, scopes)
- SearchPlayerData: current ``/partner/search`` entries (privacy-redacted display name)
- LegacySearchPlayerData: older search entries (``memberId``, ``memberLongname``, ...)

The caller picks MemberData or SearchPlayerPayload from the endpoint it
called. Within search results, ``search_player_format`` is the single place
that tells the current and legacy shapes apart.
"""

from __future__ import annotations

import math
from typing import Annotated, Any, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Discriminator,
    Field,
    Tag,
    TypeAdapter,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel


def coerce_rating(value: Any) -> float:
    """Convert a wire rating to a float; unparseable or non-finite values become 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        rating = float(value)
    else:
        try:
            rating = float(str(value).strip())
        except ValueError:
            return 0.0
    return rating if math.isfinite(rating) else 0.0


class ApiModel(BaseModel):
    """Base for models read from API JSON: camelCase aliases, nulls treated as missing."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data


# =============================================================================
# Player Payloads
# =============================================================================


class MemberData(ApiModel):
    """Player data from the member endpoint (requires OAuth connection)."""

    id: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    rating: float = 0.0
    is_vairified: bool = False
    rating_splits: dict[str, Any] = Field(default_factory=dict)
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    granted_scopes: list[str] = Field(default_factory=list)

    @field_validator("rating", mode="before")
    @classmethod
    def _rating(cls, value: Any) -> float:
        return coerce_rating(value)


class SearchPlayerData(ApiModel):
    """Player data from the search endpoint (public, limited data)."""

    id: str
    display_name: Optional[str] = None
    # Some deployments return full names in search results as well
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    rating: float = 0.0
    is_vairified: bool = False
    is_connected: bool = False
    rating_splits: dict[str, Any] = Field(default_factory=dict)
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None

    @field_validator("rating", mode="before")
    @classmethod
    def _rating(cls, value: Any) -> float:
        return coerce_rating(value)


class LegacySearchPlayerData(ApiModel):
    """Older search result format, still returned by some API versions."""

    member_id: str
    member_longname: Optional[str] = None
    age: Optional[int] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None
    country: Optional[str] = None
    gender: Optional[str] = None
    primary_rating: float = 0.0
    vairified: bool = False
    wheelchair: bool = False
    rating_splits: dict[str, Any] = Field(default_factory=dict)

    @field_validator("primary_rating", mode="before")
    @classmethod
    def _rating(cls, value: Any) -> float:
        return coerce_rating(value)

    def to_current(self) -> SearchPlayerData:
        """Map onto the current search shape."""
        return SearchPlayerData(
            id=self.member_id,
            display_name=self.member_longname,
            rating=self.primary_rating,
            is_vairified=self.vairified,
            rating_splits=self.rating_splits,
            city=self.city,
            state=self.state,
            country=self.country,
        )


def search_player_format(value: Any) -> str:
    """Discriminator for search entries: ``legacy`` or ``current``."""
    if isinstance(value, dict):
        return "legacy" if "memberId" in value or "member_id" in value else "current"
    return "legacy" if isinstance(value, LegacySearchPlayerData) else "current"


SearchPlayerPayload = Annotated[
    Union[
        Annotated[SearchPlayerData, Tag("current")],
        Annotated[LegacySearchPlayerData, Tag("legacy")],
    ],
    Discriminator(search_player_format),
]

search_player_adapter: TypeAdapter[Union[SearchPlayerData, LegacySearchPlayerData]] = TypeAdapter(
    SearchPlayerPayload
)


# =============================================================================
# Envelopes
# =============================================================================


class SearchResultsData(ApiModel):
    """Search response envelope; missing paging fields are filled by the caller."""

    players: list[SearchPlayerPayload] = Field(default_factory=list)
    total: Optional[int] = None
    page: Optional[int] = None
    limit: Optional[int] = None

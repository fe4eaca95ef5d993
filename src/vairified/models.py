"""
Domain models for the Vairified Partner API.

These are the objects returned by ``Vairified`` methods:
- Player / Member: people, with ratings broken down by category
- Match / MatchResult: match submission input and outcome
- RatingUpdate: rating change notifications for subscribed members
- SearchResults: one page of search results

All models are immutable. Objects that support follow-up calls
(``Member.refresh``, ``RatingUpdate.get_member``, ``SearchResults.next_page``)
keep a non-owning reference to the client that produced them.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, computed_field, field_validator

from .core.http import QueryValue
from .core.types import (
    ApiModel,
    LegacySearchPlayerData,
    MemberData,
    SearchPlayerData,
    SearchResultsData,
    coerce_rating,
    search_player_adapter,
)
from .errors import ClientNotAttachedError, PreconditionError

if TYPE_CHECKING:
    from .client import Vairified

logger = logging.getLogger(__name__)


class DomainModel(ApiModel):
    """Immutable API model with an optional handle to the owning client."""

    _client: Any = PrivateAttr(default=None)

    def _attach(self, client: Optional[Vairified]):
        self._client = client
        return self

    def _require_client(self) -> Vairified:
        if self._client is None:
            raise ClientNotAttachedError(f"{type(self).__name__} is not connected to a client")
        return self._client


# =============================================================================
# Rating Splits
# =============================================================================

# Canonical category name -> legacy abbreviation
LEGACY_SPLIT_KEYS: dict[str, str] = {
    "open": "VO",
    "gender": "VG",
    "mixed": "VM",
    "recreational": "R",
    "singles": "S",
}


class RatingSplit(ApiModel):
    """A single rating split with metadata."""

    rating: float = 0.0
    abbr: str = ""
    date_played: Optional[str] = Field(default=None, alias="date_played")

    @field_validator("rating", mode="before")
    @classmethod
    def _rating(cls, value: Any) -> float:
        return coerce_rating(value)

    @classmethod
    def from_api(cls, value: Any) -> RatingSplit:
        """Build from either a bare number or a ``{rating, abbr, date_played}`` object."""
        if isinstance(value, Mapping):
            return cls.model_validate(dict(value))
        return cls(rating=coerce_rating(value))


class RatingSplits(ApiModel):
    """
    Rating breakdown by category.

    Keys are whatever the API sends: canonical names (``open``, ``mixed``)
    or legacy abbreviations (``VO``, ``VM``). The named properties try the
    canonical key first, then the abbreviation.
    """

    splits: dict[str, RatingSplit] = Field(default_factory=dict)

    @classmethod
    def from_api(cls, data: Optional[Mapping[str, Any]]) -> RatingSplits:
        return cls(splits={str(key): RatingSplit.from_api(value) for key, value in (data or {}).items()})

    def get(self, category: str) -> Optional[float]:
        """Get the rating for a category key, or None."""
        split = self.splits.get(category)
        return split.rating if split is not None else None

    def _named(self, name: str) -> Optional[float]:
        rating = self.get(name)
        if rating is None:
            rating = self.get(LEGACY_SPLIT_KEYS[name])
        return rating

    @property
    def open(self) -> Optional[float]:
        """Open division rating."""
        return self._named("open")

    @property
    def gender(self) -> Optional[float]:
        """Same-gender doubles rating."""
        return self._named("gender")

    @property
    def mixed(self) -> Optional[float]:
        """Mixed doubles rating."""
        return self._named("mixed")

    @property
    def recreational(self) -> Optional[float]:
        return self._named("recreational")

    @property
    def singles(self) -> Optional[float]:
        return self._named("singles")

    @computed_field
    @property
    def best(self) -> Optional[float]:
        """Highest positive rating across all categories."""
        ratings = [split.rating for split in self.splits.values() if split.rating > 0]
        return max(ratings) if ratings else None

    def to_dict(self) -> dict[str, dict[str, Any]]:
        return {key: {"rating": split.rating, "abbr": split.abbr} for key, split in self.splits.items()}

    def __len__(self) -> int:
        return len(self.splits)

    def __contains__(self, category: object) -> bool:
        return category in self.splits

    def __iter__(self) -> Iterator[str]:  # type: ignore[override]
        return iter(self.splits)


# =============================================================================
# Players
# =============================================================================


class PlayerSource(str, Enum):
    """Which API payload a Player was built from."""

    SEARCH = "search"
    LEGACY_SEARCH = "legacy_search"
    MEMBER = "member"


class Player(DomainModel):
    """
    A player in the Vairified system.

    From public search only limited data is available (display name,
    location, rating). Full profile data requires an OAuth connection,
    see ``Member``.
    """

    id: str
    display_name: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    rating: float = 0.0
    is_vairified: bool = False
    is_connected: bool = False
    rating_splits: RatingSplits = Field(default_factory=RatingSplits)
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    source: PlayerSource = PlayerSource.SEARCH

    @classmethod
    def from_search(cls, data: Any) -> Player:
        """Build a Player from a search result entry (current or legacy format)."""
        if isinstance(data, (SearchPlayerData, LegacySearchPlayerData)):
            payload = data
        else:
            payload = search_player_adapter.validate_python(data)
        source = PlayerSource.SEARCH
        if isinstance(payload, LegacySearchPlayerData):
            source = PlayerSource.LEGACY_SEARCH
            payload = payload.to_current()
        return cls._from_search_payload(payload, source)

    @classmethod
    def _from_search_payload(cls, payload: SearchPlayerData, source: PlayerSource) -> Player:
        return cls(
            id=payload.id,
            display_name=payload.display_name,
            first_name=payload.first_name,
            last_name=payload.last_name,
            rating=payload.rating,
            is_vairified=payload.is_vairified,
            is_connected=payload.is_connected,
            rating_splits=RatingSplits.from_api(payload.rating_splits),
            city=payload.city,
            state=payload.state,
            country=payload.country,
            source=source,
        )

    @computed_field
    @property
    def name(self) -> str:
        """Full name, or the display name when the full name is not available."""
        if self.first_name and self.last_name:
            return f"{self.first_name} {self.last_name}".strip()
        return self.display_name or ""

    @computed_field
    @property
    def verified_rating(self) -> Optional[float]:
        """Best verified rating across category splits."""
        return self.rating_splits.best

    def __str__(self) -> str:
        verified = " ✓" if self.is_vairified else ""
        return f"{self.name} ({self.rating:.2f}){verified}"


class Member(Player):
    """
    A member with full profile access (requires OAuth connection).

    ``refresh()`` returns a new Member with the latest data; the original
    object is left unchanged.
    """

    email: Optional[str] = None
    granted_scopes: list[str] = Field(default_factory=list)
    is_connected: bool = True
    source: PlayerSource = PlayerSource.MEMBER

    @classmethod
    def from_api(cls, data: Any, client: Optional[Vairified] = None) -> Member:
        """Build a Member from the member endpoint payload."""
        payload = data if isinstance(data, MemberData) else MemberData.model_validate(data)
        member = cls(
            id=payload.id,
            first_name=payload.first_name,
            last_name=payload.last_name,
            email=payload.email,
            rating=payload.rating,
            is_vairified=payload.is_vairified,
            rating_splits=RatingSplits.from_api(payload.rating_splits),
            city=payload.city,
            state=payload.state,
            country=payload.country,
            granted_scopes=payload.granted_scopes,
        )
        return member._attach(client)

    def has_scope(self, scope: str) -> bool:
        """Check if the player has granted a specific scope."""
        return scope in self.granted_scopes

    async def refresh(self) -> Member:
        """Fetch the latest data for this member."""
        return await self._require_client().get_member(self.id)


# =============================================================================
# Matches
# =============================================================================

MAX_GAMES = 5

GameScore = tuple[int, int]


def generate_match_id() -> str:
    """Generate a unique match identifier."""
    return f"SDK-{uuid.uuid4().hex[:12]}"


def _to_utc_iso(value: datetime) -> str:
    """ISO-8601 in UTC with millisecond precision, e.g. 2026-01-21T12:00:00.000Z."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class Match:
    """
    A match to submit to the Vairified Partner API.

    Teams hold one player id each for singles or two for doubles; both
    teams must be the same size. Scores are ``(team1, team2)`` pairs, one
    per game, at most five games (the submission format has five game
    slots). ``date`` accepts a datetime or an ISO-8601 string; naive
    datetimes are taken as UTC.

    Example:
        match = Match(
            event="Weekly League",
            bracket="4.0 Doubles",
            date=datetime.now(timezone.utc),
            team1=["p1", "p2"],
            team2=["p3", "p4"],
            scores=[(11, 9), (11, 7)],
        )
    """

    event: str
    bracket: str
    date: datetime
    team1: Sequence[str]
    team2: Sequence[str]
    scores: Sequence[GameScore]
    match_type: str = "SIDEOUT"
    source: str = "PARTNER"
    location: Optional[str] = None
    identifier: str = field(default_factory=generate_match_id)

    def __post_init__(self):
        date = self.date
        if isinstance(date, str):
            date = datetime.fromisoformat(date)
        object.__setattr__(self, "date", date)
        object.__setattr__(self, "team1", tuple(self.team1))
        object.__setattr__(self, "team2", tuple(self.team2))
        object.__setattr__(self, "scores", tuple((int(a), int(b)) for a, b in self.scores))

        if len(self.team1) not in (1, 2) or len(self.team1) != len(self.team2):
            raise ValueError(
                f"Teams must both have 1 (singles) or 2 (doubles) players, "
                f"got {len(self.team1)} and {len(self.team2)}"
            )
        if len(self.scores) > MAX_GAMES:
            raise ValueError(f"A match can have at most {MAX_GAMES} games, got {len(self.scores)}")

    @property
    def format(self) -> Literal["SINGLES", "DOUBLES"]:
        return "SINGLES" if len(self.team1) == 1 else "DOUBLES"

    @property
    def winner(self) -> Literal[0, 1, 2]:
        """Team that won the most games (1 or 2), or 0 on a tie."""
        team1_wins = sum(1 for s1, s2 in self.scores if s1 > s2)
        team2_wins = sum(1 for s1, s2 in self.scores if s2 > s1)
        if team1_wins > team2_wins:
            return 1
        if team2_wins > team1_wins:
            return 2
        return 0

    @property
    def score_summary(self) -> str:
        """Score summary like ``"11-9, 11-7"``."""
        return ", ".join(f"{s1}-{s2}" for s1, s2 in self.scores)

    def to_wire(self) -> dict[str, Any]:
        """
        Convert to the submission format.

        team1 maps to ``teamA`` and team2 to ``teamB``; game ``n`` scores go to
        ``teamA.gameN`` / ``teamB.gameN``.

        Raises:
            PreconditionError: If either team has no first player
        """
        if not self.team1[0] or not self.team2[0]:
            raise PreconditionError("Match must have at least one player per team")

        team_a: dict[str, Any] = {"player1": self.team1[0]}
        team_b: dict[str, Any] = {"player1": self.team2[0]}
        if len(self.team1) > 1 and self.team1[1]:
            team_a["player2"] = self.team1[1]
        if len(self.team2) > 1 and self.team2[1]:
            team_b["player2"] = self.team2[1]

        for n, (s1, s2) in enumerate(self.scores[:MAX_GAMES], start=1):
            team_a[f"game{n}"] = s1
            team_b[f"game{n}"] = s2

        data: dict[str, Any] = {
            "identifier": self.identifier,
            "bracket": self.bracket,
            "event": self.event,
            "format": self.format,
            "matchDate": _to_utc_iso(self.date),
            "matchSource": self.source,
            "matchType": self.match_type,
            "teamA": team_a,
            "teamB": team_b,
        }
        if self.location is not None:
            data["location"] = self.location
        return data


class MatchResult(ApiModel):
    """Result of a match submission."""

    success: bool = False
    num_matches: int = 0
    num_games: int = 0
    dry_run: bool = False
    message: Optional[str] = None
    errors: list[str] = Field(default_factory=list)

    @property
    def is_dry_run(self) -> bool:
        return self.dry_run

    @computed_field
    @property
    def ok(self) -> bool:
        """True when the submission succeeded without errors."""
        return self.success and not self.errors


# =============================================================================
# Rating Updates
# =============================================================================


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RatingUpdate(DomainModel):
    """A rating change notification."""

    id: str
    member_name: Optional[str] = None
    previous_rating: float = 0.0
    new_rating: float = 0.0
    changed_at: datetime = Field(default_factory=_utcnow)
    rating_splits: RatingSplits = Field(default_factory=RatingSplits)

    @field_validator("previous_rating", "new_rating", mode="before")
    @classmethod
    def _rating(cls, value: Any) -> float:
        return coerce_rating(value)

    @field_validator("rating_splits", mode="before")
    @classmethod
    def _splits(cls, value: Any) -> Any:
        if isinstance(value, RatingSplits):
            return value
        return RatingSplits.from_api(value)

    @classmethod
    def from_api(cls, data: Any, client: Optional[Vairified] = None) -> RatingUpdate:
        return cls.model_validate(data)._attach(client)

    @computed_field
    @property
    def change(self) -> float:
        return self.new_rating - self.previous_rating

    @computed_field
    @property
    def improved(self) -> bool:
        return self.change > 0

    async def get_member(self) -> Member:
        """Fetch the member associated with this update."""
        return await self._require_client().get_member(self.id)

    def __str__(self) -> str:
        direction = "↑" if self.improved else "↓"
        name = f" ({self.member_name})" if self.member_name else ""
        return f"{self.id}{name}: {self.previous_rating:.2f} {direction} {self.new_rating:.2f}"


# =============================================================================
# Search
# =============================================================================


class SearchFilters(BaseModel):
    """
    Filters for player search.

    Age filters resolve to one mode: ``age`` (exact) takes precedence,
    then ``age_min`` + ``age_max`` (range), ``age_min`` (above) or
    ``age_max`` (below).
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    zip_code: Optional[str] = None
    rating_min: Optional[float] = None
    rating_max: Optional[float] = None
    gender: Optional[Literal["MALE", "FEMALE"]] = None
    vairified_only: bool = False
    age: Optional[int] = None
    age_min: Optional[int] = None
    age_max: Optional[int] = None
    sort_by: Optional[str] = None
    sort_order: Literal["asc", "desc"] = "desc"
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=100)

    def to_params(self) -> dict[str, QueryValue]:
        """Translate to search endpoint query parameters."""
        params: dict[str, QueryValue] = {"limit": self.limit}

        if self.name:
            params["member"] = self.name
        if self.city:
            params["city"] = self.city
        if self.state:
            params["state"] = self.state
        if self.country:
            params["country"] = self.country
        if self.zip_code:
            params["zip"] = self.zip_code
        if self.rating_min is not None:
            params["rating1"] = self.rating_min
        if self.rating_max is not None:
            params["rating2"] = self.rating_max
        if self.gender:
            params["gender"] = self.gender
        if self.vairified_only:
            params["vairified"] = True
        if self.sort_by:
            params["sortField"] = self.sort_by
            params["sortDirection"] = self.sort_order

        params.update(self._age_params())

        if self.page > 1:
            params["offset"] = (self.page - 1) * self.limit

        return params

    def _age_params(self) -> dict[str, QueryValue]:
        if self.age is not None:
            if self.age_min is not None or self.age_max is not None:
                logger.warning(f"Exact age {self.age} given with an age range; ignoring the range")
            return {"ageFilterType": "exact", "age1": self.age}
        if self.age_min is not None and self.age_max is not None:
            return {"ageFilterType": "range", "age1": self.age_min, "age2": self.age_max}
        if self.age_min is not None:
            return {"ageFilterType": "above", "age1": self.age_min}
        if self.age_max is not None:
            return {"ageFilterType": "below", "age1": self.age_max}
        return {}


class SearchResults(DomainModel):
    """
    One page of search results.

    Iterate over it for the players on this page; ``next_page()`` fetches
    the following page with the same filters.
    """

    players: list[Player] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    limit: int = 20
    filters: SearchFilters = Field(default_factory=SearchFilters)

    @classmethod
    def from_api(
        cls,
        data: Any,
        client: Optional[Vairified] = None,
        filters: Optional[SearchFilters] = None,
    ) -> SearchResults:
        """
        Build from a search response.

        Accepts the ``{players, total, page, limit}`` envelope or a bare list
        of players, which is treated as a single complete page.
        """
        filters = filters or SearchFilters()
        if isinstance(data, list):
            data = {"players": data, "total": len(data), "page": filters.page, "limit": filters.limit}

        envelope = SearchResultsData.model_validate(data)
        players = [Player.from_search(entry) for entry in envelope.players]

        results = cls(
            players=players,
            total=envelope.total if envelope.total is not None else len(players),
            page=envelope.page if envelope.page is not None else filters.page,
            limit=envelope.limit if envelope.limit is not None else filters.limit,
            filters=filters,
        )
        return results._attach(client)

    @computed_field
    @property
    def has_more(self) -> bool:
        return self.page * self.limit < self.total

    @computed_field
    @property
    def pages(self) -> int:
        if self.limit <= 0:
            return 0
        return -(-self.total // self.limit)

    def at(self, index: int) -> Optional[Player]:
        """Player at ``index``, or None when out of range."""
        try:
            return self.players[index]
        except IndexError:
            return None

    def __len__(self) -> int:
        return len(self.players)

    def __iter__(self) -> Iterator[Player]:  # type: ignore[override]
        return iter(self.players)

    def __getitem__(self, index: int) -> Player:
        return self.players[index]

    async def next_page(self) -> SearchResults:
        """
        Fetch the next page with the same filters.

        Raises:
            ClientNotAttachedError: If these results were built without a client
            PreconditionError: If this is the last page
        """
        client = self._require_client()
        if not self.has_more:
            raise PreconditionError("No more pages")
        return await client.search(self.filters.model_copy(update={"page": self.page + 1}))

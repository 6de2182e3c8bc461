"""Core domain models for media identification.

This module defines the structures that flow through the resolution pipeline:
- MediaIdentity: what the extractors parse out of a file or folder name.
- SearchCandidate: one hit from the metadata provider.
- ResolvedMedia: the type resolver's decision (kind + ordered candidates).
- DetailedMedia: the final, detail-enriched result, as a tagged union of
  TvMedia and MovieMedia discriminated on ``kind``.

Design:
- All models are pydantic so results can be serialized into task records and
  CLI JSON output without custom encoders.
- Candidate sequences are never mutated in place; reordering produces a new
  list (see core.type_resolver.promote_to_front).
"""

from datetime import date
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, field_validator


class MediaKind(str, Enum):
    """Kind of media a candidate or a resolution refers to."""

    MOVIE = "movie"
    TV = "tv"
    COLLECTION = "collection"
    NONE = "none"


class MediaIdentity(BaseModel):
    """Structured identity parsed from a file or folder name."""

    title: str
    """Show or movie title; never empty."""
    year: int | None = None
    season: int | None = None
    episode: int | None = None

    @field_validator("title")
    @classmethod
    def title_not_empty(cls, value: str) -> str:
        """Strip the title and reject empty values."""
        value = value.strip()
        if not value:
            raise ValueError("title must not be empty")
        return value

    @property
    def has_season_or_episode(self) -> bool:
        """Whether season or episode information was found."""
        return self.season is not None or self.episode is not None


class SearchCandidate(BaseModel):
    """A single search hit returned by the metadata provider."""

    external_id: int | None = None
    """Provider ID; required before any detail fetch."""
    display_name: str
    original_name: str | None = None
    release_year: int | None = None
    overview: str | None = None
    popularity: float | None = None
    kind: MediaKind


class ResolvedMedia(BaseModel):
    """Outcome of type resolution.

    ``candidates`` already has the selected candidate at position 0;
    ``selected_index`` records where it sat in the provider's ordering.
    """

    kind: MediaKind
    identity: MediaIdentity
    candidates: list[SearchCandidate] = Field(default_factory=list)
    selected_index: int = 0
    is_collection: bool = False
    collection_member_ids: list[int] = Field(default_factory=list)
    is_theatrical: bool = False

    @property
    def selected(self) -> SearchCandidate | None:
        """The candidate chosen for detail fetching, if any."""
        return self.candidates[0] if self.candidates else None


class EpisodeInfo(BaseModel):
    """One episode inside a fetched season."""

    episode_number: int
    name: str | None = None
    overview: str | None = None
    air_date: date | None = None
    still_path: str | None = None


class SeasonDetail(BaseModel):
    """Season detail for a TV show, including its episode list."""

    id: int | None = None
    season_number: int
    name: str | None = None
    overview: str | None = None
    poster_path: str | None = None
    episodes: list[EpisodeInfo] = Field(default_factory=list)


class MovieDetail(BaseModel):
    """Movie detail as returned by the provider."""

    id: int
    title: str
    original_title: str | None = None
    overview: str | None = None
    release_date: date | None = None
    runtime: int | None = None
    poster_path: str | None = None
    backdrop_path: str | None = None
    collection_id: int | None = None


class CollectionDetail(BaseModel):
    """A movie collection and the IDs of the movies it contains."""

    id: int
    name: str
    part_ids: list[int] = Field(default_factory=list)


class _DetailedMediaBase(BaseModel):
    external_id: int
    title: str
    """Title as extracted from the name (what the user's files call it)."""
    display_name: str
    """Title as named by the provider."""
    episode: int | None = None
    episode_title: str | None = None
    resolved: ResolvedMedia


class TvMedia(_DetailedMediaBase):
    """A resolved TV show, with the detail of the identified season."""

    kind: Literal["tv"] = "tv"
    season: int
    season_detail: SeasonDetail


class MovieMedia(_DetailedMediaBase):
    """A resolved movie."""

    kind: Literal["movie"] = "movie"
    movie: MovieDetail


DetailedMedia = Annotated[Union[TvMedia, MovieMedia], Field(discriminator="kind")]

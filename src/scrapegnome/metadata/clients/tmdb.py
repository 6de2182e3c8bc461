# WARNING: API key loading from .env is for LOCAL DEVELOPMENT ONLY.
# Never commit your .env file or distribute your API keys.

"""TMDB metadata provider client.

Implements the MetadataProvider interface for The Movie Database (TMDB) v3 API.
Transport, HTTP and malformed-payload failures surface as ProviderError
carrying the endpoint.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import httpx

from scrapegnome.core.errors import ProviderError
from scrapegnome.metadata.base import MetadataProvider
from scrapegnome.metadata.settings import TMDB_API_URL, Settings
from scrapegnome.models.core import (
    CollectionDetail,
    EpisodeInfo,
    MediaKind,
    MovieDetail,
    SearchCandidate,
    SeasonDetail,
)

logger = logging.getLogger(__name__)

YEAR_LENGTH = 4  # Minimum length for a valid year string


class TMDBClient(MetadataProvider):
    """Client for The Movie Database (TMDB) API.

    The client is stateless apart from its configuration, so one instance can be
    shared by every queue worker.
    """

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = TMDB_API_URL,
        timeout: float = 30.0,
    ) -> None:
        """Initialize the client with an API key and endpoint."""
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "TMDBClient":
        """Build a client from environment settings.

        Raises:
            MissingAPIKeyError: If TMDB_API_KEY is not configured.
        """
        settings = settings or Settings()
        settings.require_keys()
        return cls(
            settings.TMDB_API_KEY or "",
            base_url=settings.TMDB_BASE_URL,
            timeout=settings.HTTP_TIMEOUT,
        )

    async def _get(self, endpoint: str, **params: Any) -> dict[str, Any]:
        url = f"{self.base_url}{endpoint}"
        query = {"api_key": self.api_key, **params}
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.get(url, params=query)
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPStatusError as exc:
            raise ProviderError(
                f"TMDB returned HTTP {exc.response.status_code} for {endpoint}",
                endpoint=endpoint,
            ) from exc
        except httpx.HTTPError as exc:
            raise ProviderError(
                f"TMDB request to {endpoint} failed: {exc}", endpoint=endpoint
            ) from exc
        except ValueError as exc:
            raise ProviderError(
                f"TMDB returned invalid JSON for {endpoint}", endpoint=endpoint
            ) from exc
        logger.debug("TMDB %s %s -> ok", endpoint, params)
        return data

    async def search_movie(self, query: str, language: str) -> list[SearchCandidate]:
        """Search movies by title."""
        endpoint = "/search/movie"
        data = await self._get(endpoint, query=query, language=language)
        with _parsing(endpoint):
            return [
                SearchCandidate(
                    external_id=item.get("id"),
                    display_name=item.get("title") or item.get("original_title") or "",
                    original_name=item.get("original_title"),
                    release_year=_extract_year(item.get("release_date")),
                    overview=item.get("overview") or None,
                    popularity=item.get("popularity"),
                    kind=MediaKind.MOVIE,
                )
                for item in data.get("results", [])
            ]

    async def search_tv(self, query: str, language: str) -> list[SearchCandidate]:
        """Search TV shows by title."""
        endpoint = "/search/tv"
        data = await self._get(endpoint, query=query, language=language)
        with _parsing(endpoint):
            return [
                SearchCandidate(
                    external_id=item.get("id"),
                    display_name=item.get("name") or item.get("original_name") or "",
                    original_name=item.get("original_name"),
                    release_year=_extract_year(item.get("first_air_date")),
                    overview=item.get("overview") or None,
                    popularity=item.get("popularity"),
                    kind=MediaKind.TV,
                )
                for item in data.get("results", [])
            ]

    async def search_collection(
        self, query: str, language: str
    ) -> list[SearchCandidate]:
        """Search movie collections by title."""
        endpoint = "/search/collection"
        data = await self._get(endpoint, query=query, language=language)
        with _parsing(endpoint):
            return [
                SearchCandidate(
                    external_id=item.get("id"),
                    display_name=item.get("name") or item.get("original_name") or "",
                    original_name=item.get("original_name"),
                    overview=item.get("overview") or None,
                    kind=MediaKind.COLLECTION,
                )
                for item in data.get("results", [])
            ]

    async def movie_detail(self, movie_id: int, language: str) -> MovieDetail:
        """Fetch full movie detail, including its collection membership."""
        endpoint = f"/movie/{movie_id}"
        data = await self._get(endpoint, language=language)
        with _parsing(endpoint):
            collection = data.get("belongs_to_collection") or {}
            return MovieDetail(
                id=data["id"],
                title=data.get("title") or data.get("original_title") or "",
                original_title=data.get("original_title"),
                overview=data.get("overview") or None,
                release_date=data.get("release_date") or None,
                runtime=data.get("runtime"),
                poster_path=data.get("poster_path"),
                backdrop_path=data.get("backdrop_path"),
                collection_id=collection.get("id"),
            )

    async def season_detail(
        self, tv_id: int, season_number: int, language: str
    ) -> SeasonDetail:
        """Fetch one TV season with its episodes."""
        endpoint = f"/tv/{tv_id}/season/{season_number}"
        data = await self._get(endpoint, language=language)
        with _parsing(endpoint):
            episodes = [
                EpisodeInfo(
                    episode_number=item["episode_number"],
                    name=item.get("name"),
                    overview=item.get("overview") or None,
                    air_date=item.get("air_date") or None,
                    still_path=item.get("still_path"),
                )
                for item in data.get("episodes", [])
            ]
            return SeasonDetail(
                id=data.get("id"),
                season_number=data.get("season_number", season_number),
                name=data.get("name"),
                overview=data.get("overview") or None,
                poster_path=data.get("poster_path"),
                episodes=episodes,
            )

    async def collection_detail(
        self, collection_id: int, language: str
    ) -> CollectionDetail:
        """Fetch a collection and its member movie IDs."""
        endpoint = f"/collection/{collection_id}"
        data = await self._get(endpoint, language=language)
        with _parsing(endpoint):
            return CollectionDetail(
                id=data["id"],
                name=data.get("name") or "",
                part_ids=[part["id"] for part in data.get("parts", []) if "id" in part],
            )


@contextmanager
def _parsing(endpoint: str) -> Iterator[None]:
    """Re-raise payload conversion failures as ProviderError."""
    # pydantic's ValidationError is a ValueError
    try:
        yield
    except (KeyError, TypeError, AttributeError, ValueError) as exc:
        raise ProviderError(
            f"TMDB returned an unexpected payload for {endpoint}: {exc!r}",
            endpoint=endpoint,
        ) from exc


def _extract_year(date_str: str | None) -> int | None:
    """Extracts the year as int from a YYYY-MM-DD string, or returns None."""
    if date_str and len(date_str) >= YEAR_LENGTH and date_str[:YEAR_LENGTH].isdigit():
        return int(date_str[:YEAR_LENGTH])
    return None

"""In-memory doubles for the metadata provider, completion service and resolver.

No network: every answer is configured up front, and every call is recorded so
tests can assert on what the pipeline asked for.
"""

import asyncio
from typing import Optional

from scrapegnome.core.errors import ProviderError
from scrapegnome.llm.ollama_client import LLMUnavailableError
from scrapegnome.metadata.base import MetadataProvider
from scrapegnome.models.core import (
    CollectionDetail,
    EpisodeInfo,
    MediaIdentity,
    MediaKind,
    MovieDetail,
    MovieMedia,
    ResolvedMedia,
    SearchCandidate,
    SeasonDetail,
    TvMedia,
)
from scrapegnome.models.queue import QueueConfig, ScrapingTaskData


def tv(external_id: int, name: str, year: Optional[int] = None) -> SearchCandidate:
    return SearchCandidate(
        external_id=external_id, display_name=name, release_year=year, kind=MediaKind.TV
    )


def movie(external_id: int, name: str, year: Optional[int] = None) -> SearchCandidate:
    return SearchCandidate(
        external_id=external_id,
        display_name=name,
        release_year=year,
        kind=MediaKind.MOVIE,
    )


def collection(external_id: int, name: str) -> SearchCandidate:
    return SearchCandidate(
        external_id=external_id, display_name=name, kind=MediaKind.COLLECTION
    )


def season(number: int, *episode_names: str) -> SeasonDetail:
    return SeasonDetail(
        season_number=number,
        episodes=[
            EpisodeInfo(episode_number=i, name=name)
            for i, name in enumerate(episode_names, start=1)
        ],
    )


class FakeProvider(MetadataProvider):
    """MetadataProvider answering from dictionaries keyed by query / id."""

    def __init__(
        self,
        *,
        movies: Optional[dict[str, list[SearchCandidate]]] = None,
        tv_shows: Optional[dict[str, list[SearchCandidate]]] = None,
        collections: Optional[dict[str, list[SearchCandidate]]] = None,
        seasons: Optional[dict[tuple[int, int], SeasonDetail]] = None,
        movie_details: Optional[dict[int, MovieDetail]] = None,
        collection_details: Optional[dict[int, CollectionDetail]] = None,
        failing: tuple[str, ...] = (),
    ) -> None:
        self.movies = movies or {}
        self.tv_shows = tv_shows or {}
        self.collections = collections or {}
        self.seasons = seasons or {}
        self.movie_details = movie_details or {}
        self.collection_details = collection_details or {}
        self.failing = set(failing)
        self.calls: list[tuple] = []

    def _record(self, method: str, *args: object) -> None:
        self.calls.append((method, *args))
        if method in self.failing:
            raise ProviderError(f"{method} unavailable", endpoint=method)

    async def search_movie(self, query: str, language: str) -> list[SearchCandidate]:
        self._record("search_movie", query, language)
        return list(self.movies.get(query, []))

    async def search_tv(self, query: str, language: str) -> list[SearchCandidate]:
        self._record("search_tv", query, language)
        return list(self.tv_shows.get(query, []))

    async def search_collection(
        self, query: str, language: str
    ) -> list[SearchCandidate]:
        self._record("search_collection", query, language)
        return list(self.collections.get(query, []))

    async def movie_detail(self, movie_id: int, language: str) -> MovieDetail:
        self._record("movie_detail", movie_id, language)
        return self.movie_details.get(movie_id) or MovieDetail(
            id=movie_id, title=f"Movie {movie_id}"
        )

    async def season_detail(
        self, tv_id: int, season_number: int, language: str
    ) -> SeasonDetail:
        self._record("season_detail", tv_id, season_number, language)
        try:
            return self.seasons[(tv_id, season_number)]
        except KeyError:
            raise ProviderError(f"season {season_number} of {tv_id} not found")

    async def collection_detail(
        self, collection_id: int, language: str
    ) -> CollectionDetail:
        self._record("collection_detail", collection_id, language)
        try:
            return self.collection_details[collection_id]
        except KeyError:
            raise ProviderError(f"collection {collection_id} not found")

    def count(self, method: str) -> int:
        return sum(1 for call in self.calls if call[0] == method)


class FakeCompletion:
    """CompletionService replaying scripted responses (or raising errors)."""

    def __init__(self, *responses: "str | Exception") -> None:
        self.responses = list(responses)
        self.prompts: list[str] = []
        self.temperatures: list[Optional[float]] = []

    async def complete(self, prompt: str, *, temperature: Optional[float] = None) -> str:
        self.prompts.append(prompt)
        self.temperatures.append(temperature)
        if not self.responses:
            raise LLMUnavailableError("no scripted response left")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def make_tv_media(title: str, external_id: int = 1, episode: int = 1) -> TvMedia:
    identity = MediaIdentity(title=title, season=1, episode=episode)
    candidate = tv(external_id, title)
    return TvMedia(
        external_id=external_id,
        title=title,
        display_name=title,
        season=1,
        season_detail=season(1, "Pilot"),
        episode=episode,
        resolved=ResolvedMedia(kind=MediaKind.TV, identity=identity, candidates=[candidate]),
    )


def make_movie_media(title: str, external_id: int = 2) -> MovieMedia:
    identity = MediaIdentity(title=title)
    return MovieMedia(
        external_id=external_id,
        title=title,
        display_name=title,
        movie=MovieDetail(id=external_id, title=title),
        resolved=ResolvedMedia(
            kind=MediaKind.MOVIE,
            identity=identity,
            candidates=[movie(external_id, title)],
        ),
    )


class ScriptedResolver:
    """Stands in for MediaResolver in queue tests.

    ``outcomes`` maps a file name to a list of results or exceptions consumed
    one per attempt; the last entry repeats. Unknown names resolve to a TV
    result. ``delays`` adds a per-name sleep before answering.
    """

    def __init__(
        self,
        outcomes: Optional[dict[str, list[object]]] = None,
        delays: Optional[dict[str, float]] = None,
    ) -> None:
        self.outcomes = outcomes or {}
        self.delays = delays or {}
        self.calls: list[str] = []
        self.active = 0
        self.max_active = 0

    async def resolve(
        self, name: str, is_directory: bool = False, full_path: Optional[str] = None
    ) -> TvMedia | MovieMedia:
        self.calls.append(name)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if name in self.delays:
                await asyncio.sleep(self.delays[name])
            script = self.outcomes.get(name)
            if not script:
                return make_tv_media(name)
            outcome = script.pop(0) if len(script) > 1 else script[0]
            if isinstance(outcome, BaseException):
                raise outcome
            return outcome  # type: ignore[return-value]
        finally:
            self.active -= 1


def fast_queue_config(**overrides: object) -> QueueConfig:
    """QueueConfig with intervals short enough for tests."""
    values: dict[str, object] = {
        "concurrency": 1,
        "retry_delay": 0.01,
        "max_retry_delay": 0.05,
        "queue_poll_interval": 0.01,
        "error_retry_interval": 0.01,
        "processing_timeout": 5.0,
        "timeout_cleanup_interval": 60.0,
    }
    values.update(overrides)
    return QueueConfig.model_validate(values)


def task_data(name: str, **fields: object) -> ScrapingTaskData:
    return ScrapingTaskData.model_validate(
        {"file_path": f"/media/Show/{name}", "file_name": name, **fields}
    )

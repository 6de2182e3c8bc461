"""Base abstraction for metadata providers.

Defines the interface the resolution pipeline consumes. Provider clients must
inherit from this class and implement its methods; tests substitute in-memory
fakes. Any method may raise ProviderError. Search callers treat that as an
empty result; detail callers let it propagate.
"""

from abc import ABC, abstractmethod

from scrapegnome.models.core import (
    CollectionDetail,
    MovieDetail,
    SearchCandidate,
    SeasonDetail,
)


class MetadataProvider(ABC):
    """Abstract base class for metadata providers."""

    @abstractmethod
    async def search_movie(self, query: str, language: str) -> list[SearchCandidate]:
        """Search movies by title, in provider order."""
        raise NotImplementedError

    @abstractmethod
    async def search_tv(self, query: str, language: str) -> list[SearchCandidate]:
        """Search TV shows by title, in provider order."""
        raise NotImplementedError

    @abstractmethod
    async def search_collection(
        self, query: str, language: str
    ) -> list[SearchCandidate]:
        """Search movie collections by title, in provider order."""
        raise NotImplementedError

    @abstractmethod
    async def movie_detail(self, movie_id: int, language: str) -> MovieDetail:
        """Fetch full movie detail."""
        raise NotImplementedError

    @abstractmethod
    async def season_detail(
        self, tv_id: int, season_number: int, language: str
    ) -> SeasonDetail:
        """Fetch one season of a TV show, including its episode list."""
        raise NotImplementedError

    @abstractmethod
    async def collection_detail(
        self, collection_id: int, language: str
    ) -> CollectionDetail:
        """Fetch a collection and the IDs of its member movies."""
        raise NotImplementedError

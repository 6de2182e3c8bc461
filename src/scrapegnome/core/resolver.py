"""Retrieval orchestrator: turns a file or folder name into DetailedMedia.

Pipeline for one attempt:
    1. Extract an identity (pattern rules, or the model with pattern fallback).
    2. Search movies, TV shows and collections concurrently; a failing search
       counts as an empty result for that query only.
    3. Resolve the media type (deterministic or model-assisted).
    4. Fetch detail for the top candidate (season detail for TV, movie detail
       for movies) and attach the episode title when it is in range.

A file that fails all of this gets exactly one more attempt using its parent
folder's name, after which the original file's episode number is overlaid on
the result. If that attempt fails too, the original error is raised.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path

from scrapegnome.core.episode_parser import (
    DEFAULT_SEASON,
    extract_episode,
    extract_identity,
)
from scrapegnome.core.errors import AmbiguousResultError, ExtractionError
from scrapegnome.core.patterns import DEFAULT_PATTERNS, PatternConfig
from scrapegnome.core.type_resolver import (
    SearchResults,
    annotate_collection,
    resolve_media_type,
    resolve_media_type_with_llm,
)
from scrapegnome.llm.completion import CompletionService
from scrapegnome.llm.prompt_orchestrator import extract_identity_via_model
from scrapegnome.metadata.base import MetadataProvider
from scrapegnome.models.core import (
    MediaIdentity,
    MediaKind,
    MovieMedia,
    ResolvedMedia,
    SearchCandidate,
    SeasonDetail,
    TvMedia,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolverConfig:
    """Explicit configuration for one resolver instance."""

    language: str = "zh-CN"
    use_llm: bool = False
    patterns: PatternConfig = field(default_factory=lambda: DEFAULT_PATTERNS)


def episode_title(season: SeasonDetail, episode: int | None) -> str | None:
    """Return the name of *episode* (1-based) in *season*, if it exists."""
    if episode is None or not 1 <= episode <= len(season.episodes):
        return None
    return season.episodes[episode - 1].name


class MediaResolver:
    """Resolve names against a metadata provider.

    Args:
        provider: Metadata provider used for searches and detail fetches.
        config: Language, pipeline choice and pattern tables.
        completion: Completion service; required when ``config.use_llm``.
        log: Logger for policy decisions; defaults to this module's logger.
    """

    def __init__(
        self,
        provider: MetadataProvider,
        config: ResolverConfig | None = None,
        completion: CompletionService | None = None,
        log: logging.Logger | None = None,
    ) -> None:
        self.provider = provider
        self.config = config or ResolverConfig()
        if self.config.use_llm and completion is None:
            raise ValueError("A completion service is required when use_llm is set")
        self.completion = completion
        self.log = log or logger

    async def resolve(
        self, name: str, is_directory: bool = False, full_path: str | None = None
    ) -> TvMedia | MovieMedia:
        """Resolve one file or folder name.

        Args:
            name: Bare file or folder name.
            is_directory: Whether *name* is a folder.
            full_path: Full path of a file, enabling the parent-folder fallback.

        Returns:
            TvMedia or MovieMedia for the selected candidate.

        Raises:
            ScrapeGnomeError: The error of the first attempt when every attempt
                fails (ExtractionError, AmbiguousResultError or ProviderError).
        """
        try:
            return await self._resolve_once(name, is_directory)
        except Exception as exc:
            parent_name = Path(full_path).parent.name if full_path else ""
            if is_directory or not parent_name:
                raise
            self.log.info(
                'Resolving "%s" failed (%s); trying parent folder "%s"',
                name,
                exc,
                parent_name,
            )
            try:
                media = await self._resolve_once(parent_name, True)
                return self._overlay_episode(media, name)
            except Exception as parent_exc:
                self.log.warning(
                    'Parent folder "%s" also failed: %s', parent_name, parent_exc
                )
                raise exc

    async def _resolve_once(
        self, name: str, is_directory: bool
    ) -> TvMedia | MovieMedia:
        identity = await self._identify(name, is_directory)
        results = await self._search(identity.title)
        resolved = await self._choose(identity, results, name)
        return await self._fetch_detail(resolved, is_directory)

    async def _identify(self, name: str, is_directory: bool) -> MediaIdentity:
        if self.config.use_llm and self.completion is not None:
            return await extract_identity_via_model(
                name,
                self.completion,
                is_directory=is_directory,
                patterns=self.config.patterns,
                log=self.log,
            )
        return extract_identity(
            name, is_directory, self.config.patterns, log=self.log
        )

    async def _search_one(
        self, kind: MediaKind, query: str
    ) -> list[SearchCandidate]:
        search = {
            MediaKind.MOVIE: self.provider.search_movie,
            MediaKind.TV: self.provider.search_tv,
            MediaKind.COLLECTION: self.provider.search_collection,
        }[kind]
        try:
            return await search(query, self.config.language)
        except Exception as exc:
            self.log.warning(
                '%s search for "%s" failed (%s); treating as no results',
                kind.value,
                query,
                exc,
            )
            return []

    async def _search(self, query: str) -> SearchResults:
        movies, tv, collections = await asyncio.gather(
            self._search_one(MediaKind.MOVIE, query),
            self._search_one(MediaKind.TV, query),
            self._search_one(MediaKind.COLLECTION, query),
        )
        return SearchResults(movies=movies, tv=tv, collections=collections)

    async def _choose(
        self, identity: MediaIdentity, results: SearchResults, name: str
    ) -> ResolvedMedia:
        if self.config.use_llm and self.completion is not None:
            resolved = await resolve_media_type_with_llm(
                identity, results, name, self.completion, log=self.log
            )
        else:
            resolved = resolve_media_type(
                identity, results, name, self.config.patterns, log=self.log
            )
        self._ensure_selectable(resolved)
        return await annotate_collection(
            resolved, results, self.provider, self.config.language, log=self.log
        )

    def _ensure_selectable(self, resolved: ResolvedMedia) -> None:
        identity = resolved.identity
        top = resolved.selected
        if resolved.kind is MediaKind.NONE or top is None:
            raise AmbiguousResultError(f'No match found for "{identity.title}"')
        # Without a model there is no way to pick among several candidates.
        if not self.config.use_llm and len(resolved.candidates) > 1:
            raise AmbiguousResultError(
                f'{len(resolved.candidates)} {resolved.kind.value} candidates '
                f'match "{identity.title}"; cannot choose one'
            )
        if top.external_id is None:
            raise AmbiguousResultError(
                f'Selected candidate "{top.display_name}" has no external id'
            )

    async def _fetch_detail(
        self, resolved: ResolvedMedia, is_directory: bool
    ) -> TvMedia | MovieMedia:
        identity = resolved.identity
        top = resolved.selected
        if top is None or top.external_id is None:
            raise AmbiguousResultError(f'No selectable match for "{identity.title}"')

        if resolved.kind is MediaKind.TV:
            season = identity.season if identity.season is not None else DEFAULT_SEASON
            detail = await self.provider.season_detail(
                top.external_id, season, self.config.language
            )
            episode = None if is_directory else identity.episode
            return TvMedia(
                external_id=top.external_id,
                title=identity.title,
                display_name=top.display_name,
                season=season,
                season_detail=detail,
                episode=episode,
                episode_title=episode_title(detail, episode),
                resolved=resolved,
            )
        if resolved.kind is MediaKind.MOVIE:
            movie = await self.provider.movie_detail(
                top.external_id, self.config.language
            )
            return MovieMedia(
                external_id=top.external_id,
                title=identity.title,
                display_name=top.display_name,
                movie=movie,
                resolved=resolved,
            )
        raise AmbiguousResultError(f"Cannot fetch detail for kind {resolved.kind.value}")

    def _overlay_episode(
        self, media: TvMedia | MovieMedia, file_name: str
    ) -> TvMedia | MovieMedia:
        episode = extract_episode(file_name, self.config.patterns)
        if not episode:
            raise ExtractionError(
                f'Could not extract an episode number from file name "{file_name}"'
            )
        update: dict[str, object] = {"episode": episode}
        if isinstance(media, TvMedia):
            update["episode_title"] = episode_title(media.season_detail, episode)
        return media.model_copy(update=update)

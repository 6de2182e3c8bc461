"""Movie vs TV vs collection disambiguation.

Two modes consume the same three result sets from the metadata provider:

- resolve_media_type: deterministic heuristics (season/episode signal,
  theatrical marker, title similarity).
- resolve_media_type_with_llm: asks the completion service for a single
  ``type:index`` answer, with a count-based fallback.

Both return a ResolvedMedia whose candidate list starts with the selected
candidate (see promote_to_front). annotate_collection adds collection
membership for movie results and never fails the resolution.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import TypeVar

from scrapegnome.core.fuzzy_matcher import calculate_title_similarity
from scrapegnome.core.patterns import DEFAULT_PATTERNS, PatternConfig
from scrapegnome.llm.completion import CompletionService
from scrapegnome.llm.prompt_orchestrator import (
    TYPE_CHOICE_TEMPERATURE,
    build_type_choice_prompt,
    parse_type_choice,
)
from scrapegnome.metadata.base import MetadataProvider
from scrapegnome.models.core import (
    MediaIdentity,
    MediaKind,
    ResolvedMedia,
    SearchCandidate,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class SearchResults:
    """The three parallel candidate lists returned for one query."""

    movies: list[SearchCandidate] = field(default_factory=list)
    tv: list[SearchCandidate] = field(default_factory=list)
    collections: list[SearchCandidate] = field(default_factory=list)

    def for_kind(self, kind: MediaKind) -> list[SearchCandidate]:
        if kind is MediaKind.MOVIE:
            return self.movies
        if kind is MediaKind.TV:
            return self.tv
        if kind is MediaKind.COLLECTION:
            return self.collections
        return []


def promote_to_front(items: Sequence[T], index: int) -> list[T]:
    """Return a new list with ``items[index]`` first and the rest in order.

    Raises:
        IndexError: If *index* is out of range.
    """
    if not 0 <= index < len(items):
        raise IndexError(f"index {index} out of range for {len(items)} items")
    return [items[index], *items[:index], *items[index + 1 :]]


def _select(
    kind: MediaKind,
    identity: MediaIdentity,
    results: SearchResults,
    index: int = 0,
    **flags: bool,
) -> ResolvedMedia:
    if kind is MediaKind.NONE:
        return ResolvedMedia(kind=kind, identity=identity)
    return ResolvedMedia(
        kind=kind,
        identity=identity,
        candidates=promote_to_front(results.for_kind(kind), index),
        selected_index=index,
        **flags,
    )


def _single_set(results: SearchResults) -> MediaKind | None:
    if not results.movies and not results.tv:
        return MediaKind.NONE
    if results.tv and not results.movies:
        return MediaKind.TV
    if results.movies and not results.tv:
        return MediaKind.MOVIE
    return None


def resolve_media_type(
    identity: MediaIdentity,
    results: SearchResults,
    file_name: str,
    patterns: PatternConfig = DEFAULT_PATTERNS,
    *,
    log: logging.Logger | None = None,
) -> ResolvedMedia:
    """Pick movie or TV deterministically.

    Rules, first match wins:
        1. No movie or TV results: kind ``none``.
        2. Only one of the two sets is non-empty: that set.
        3. Identity has a season or episode and TV results exist: TV.
        4. File name carries a theatrical marker: movie, flagged theatrical.
        5. Otherwise compare the title against each set's top candidate;
           the higher similarity wins and ties go to TV.

    The top candidate of the chosen set is selected.
    """
    log = log or logger
    kind = _single_set(results)
    if kind is not None:
        log.debug("Single result set for %r: %s", identity.title, kind.value)
        return _select(kind, identity, results)

    if identity.has_season_or_episode:
        log.debug("Season/episode present for %r; choosing TV", identity.title)
        return _select(MediaKind.TV, identity, results)

    if patterns.theatrical_marker.search(file_name):
        log.debug("Theatrical marker in %r; choosing movie", file_name)
        return _select(MediaKind.MOVIE, identity, results, is_theatrical=True)

    movie_score = calculate_title_similarity(
        identity.title, results.movies[0].display_name
    )
    tv_score = calculate_title_similarity(identity.title, results.tv[0].display_name)
    log.info(
        "Title similarity for %r: movie=%.2f tv=%.2f",
        identity.title,
        movie_score,
        tv_score,
    )
    kind = MediaKind.MOVIE if movie_score > tv_score else MediaKind.TV
    return _select(kind, identity, results)


def _fallback_kind(identity: MediaIdentity, results: SearchResults) -> MediaKind:
    if identity.has_season_or_episode and results.tv:
        return MediaKind.TV
    return MediaKind.TV if len(results.tv) >= len(results.movies) else MediaKind.MOVIE


async def resolve_media_type_with_llm(
    identity: MediaIdentity,
    results: SearchResults,
    file_name: str,
    completion: CompletionService,
    *,
    log: logging.Logger | None = None,
) -> ResolvedMedia:
    """Let the completion service pick the media type and candidate.

    The model sees up to three candidates per type and must answer
    ``tv:N`` or ``movie:N`` (1-based). An unparsable or out-of-range answer,
    or a failing service, falls back to: TV when the identity has a season or
    episode and TV results exist, else the set with more results (ties to TV).
    """
    log = log or logger
    kind = _single_set(results)
    if kind is not None:
        return _select(kind, identity, results)

    prompt = build_type_choice_prompt(
        file_name=file_name,
        identity=identity,
        tv_results=results.tv,
        movie_results=results.movies,
    )
    choice = None
    try:
        answer = await completion.complete(prompt, temperature=TYPE_CHOICE_TEMPERATURE)
    except Exception as exc:
        log.warning("Model type choice failed for %r: %s", file_name, exc)
    else:
        choice = parse_type_choice(answer, len(results.tv), len(results.movies))
        if choice is None:
            log.warning("Unusable model type choice for %r: %r", file_name, answer)

    if choice is None:
        kind = _fallback_kind(identity, results)
        log.info("Falling back to %s for %r", kind.value, file_name)
        return _select(kind, identity, results)

    kind, index = choice
    log.info("Model chose %s:%d for %r", kind.value, index + 1, file_name)
    return _select(kind, identity, results, index)


async def annotate_collection(
    resolved: ResolvedMedia,
    results: SearchResults,
    provider: MetadataProvider,
    language: str,
    *,
    log: logging.Logger | None = None,
) -> ResolvedMedia:
    """Mark a movie resolution as part of a collection.

    Fetches the first collection result and intersects its member IDs with
    the movie result IDs. Any provider failure leaves *resolved* unchanged.
    """
    log = log or logger
    if resolved.kind is not MediaKind.MOVIE or not results.collections:
        return resolved
    collection_id = results.collections[0].external_id
    if collection_id is None:
        log.info("Collection result for %r has no id", resolved.identity.title)
        return resolved
    try:
        detail = await provider.collection_detail(collection_id, language)
    except Exception as exc:
        log.warning(
            "Collection lookup %s failed (%s); skipping collection annotation",
            collection_id,
            exc,
        )
        return resolved

    movie_ids = {c.external_id for c in results.movies if c.external_id is not None}
    members = [part_id for part_id in detail.part_ids if part_id in movie_ids]
    if not members:
        return resolved
    log.info("%r belongs to collection %r", resolved.identity.title, detail.name)
    return resolved.model_copy(
        update={"is_collection": True, "collection_member_ids": members}
    )

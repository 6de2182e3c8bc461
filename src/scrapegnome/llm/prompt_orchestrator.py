"""Prompt orchestrator for the natural-language identification path.

Builds prompts from Jinja2 templates, recovers JSON from unconstrained model
output and turns it into a MediaIdentity. Every failure on this path (service
errors, unparsable output, missing title) falls back to deterministic pattern
extraction instead of propagating.
"""

import json
import logging
import re

from scrapegnome.core.episode_parser import DEFAULT_SEASON, extract_identity
from scrapegnome.core.errors import ModelParseError
from scrapegnome.core.numerals import label_to_int
from scrapegnome.core.patterns import DEFAULT_PATTERNS, PatternConfig
from scrapegnome.llm.completion import CompletionService
from scrapegnome.models.core import MediaIdentity, MediaKind, SearchCandidate
from scrapegnome.prompts.prompt_loader import render_prompt

logger = logging.getLogger(__name__)

FENCED_BLOCK = re.compile(r"```(?:json)?\n?([\s\S]*?)\n?```")
BRACE_SPAN = re.compile(r"\{[\s\S]*?\}")
TITLE_VALUE = re.compile(r"""['"]title['"]\s*:\s*['"](.+?)['"]""")
SEASON_VALUE = re.compile(r"""['"]season['"]\s*:\s*(\d+)""")
EPISODE_VALUE = re.compile(r"""['"]episode['"]\s*:\s*(\d+)""")

TYPE_CHOICE_ANSWER = re.compile(r"(tv|movie):(\d+)", re.IGNORECASE)
TYPE_CHOICE_LIMIT = 3  # candidates shown per media type
TYPE_CHOICE_TEMPERATURE = 0.1


def build_identity_prompt(*, name: str, is_directory: bool = False) -> str:
    """Build the identity extraction prompt for a file or folder name."""
    return render_prompt("identity.j2", name=name, is_directory=is_directory)


def build_type_choice_prompt(
    *,
    file_name: str,
    identity: MediaIdentity,
    tv_results: list[SearchCandidate],
    movie_results: list[SearchCandidate],
) -> str:
    """Build the movie-vs-TV choice prompt.

    Only the first TYPE_CHOICE_LIMIT candidates of each type are shown, numbered
    from 1.
    """
    return render_prompt(
        "type_choice.j2",
        file_name=file_name,
        identity_json=identity.model_dump_json(exclude_none=True),
        tv_options=tv_results[:TYPE_CHOICE_LIMIT],
        movie_options=movie_results[:TYPE_CHOICE_LIMIT],
    )


def _loads_lenient(text: str) -> object:
    """Parse JSON, retrying with single quotes normalised to double quotes."""
    try:
        return json.loads(text)
    except ValueError:
        return json.loads(text.replace("'", '"'))


def _from_fenced_block(response: str) -> object:
    match = FENCED_BLOCK.search(response)
    if not match or not match.group(1).strip():
        return None
    return _loads_lenient(match.group(1).strip())


def _from_raw_json(response: str) -> object:
    return json.loads(response.strip())


def _from_brace_span(response: str) -> object:
    match = BRACE_SPAN.search(response)
    if not match:
        return None
    return _loads_lenient(match.group(0))


def _from_key_value_regex(response: str) -> object:
    title = TITLE_VALUE.search(response)
    if not title:
        return None
    result: dict[str, object] = {"title": title.group(1)}
    season = SEASON_VALUE.search(response)
    if season:
        result["season"] = int(season.group(1))
    episode = EPISODE_VALUE.search(response)
    if episode:
        result["episode"] = int(episode.group(1))
    return result


def extract_json_object(response: str) -> dict[str, object]:
    """Recover a JSON object from free-form model output.

    Strategies run in a fixed order and each one only runs when the previous
    raised or produced no object: fenced code block, whole response, first
    ``{...}`` span, then per-key regexes. Fenced blocks and brace spans are
    parsed as-is first and only retried with single quotes normalised.

    Raises:
        ModelParseError: If no strategy yields a JSON object.
    """
    for strategy in [
        _from_fenced_block,
        _from_raw_json,
        _from_brace_span,
        _from_key_value_regex,
    ]:
        try:
            parsed = strategy(response)
        except ValueError as exc:
            logger.debug("%s could not parse model output: %s", strategy.__name__, exc)
            continue
        if isinstance(parsed, dict):
            return parsed
    raise ModelParseError(f"No JSON object found in model output: {response[:200]!r}")


def _as_int(value: object) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str):
        return label_to_int(value)
    return None


def identity_from_payload(payload: dict[str, object]) -> MediaIdentity:
    """Convert a recovered JSON object into a MediaIdentity.

    Raises:
        ModelParseError: If the object has no usable title.
    """
    title = payload.get("title")
    if not isinstance(title, str) or not title.strip():
        raise ModelParseError(f"Model output has no title: {payload!r}")
    season = _as_int(payload.get("season"))
    episode = _as_int(payload.get("episode"))
    if season is None and episode is not None:
        season = DEFAULT_SEASON
    return MediaIdentity(
        title=title,
        year=_as_int(payload.get("year")),
        season=season,
        episode=episode,
    )


async def extract_identity_via_model(
    name: str,
    completion: CompletionService,
    *,
    is_directory: bool = False,
    patterns: PatternConfig = DEFAULT_PATTERNS,
    log: logging.Logger | None = None,
) -> MediaIdentity:
    """Ask the completion service for an identity, falling back to patterns.

    Args:
        name: The bare file or folder name.
        completion: Service used for the model call.
        is_directory: Whether *name* is a folder.
        patterns: Pattern tables for the deterministic fallback.
        log: Logger to report fallbacks on.

    Returns:
        The model-derived identity, or the pattern extractor's result when the
        model call or its output is unusable.

    Raises:
        ExtractionError: Only from the deterministic fallback.
    """
    log = log or logger
    prompt = build_identity_prompt(name=name, is_directory=is_directory)
    try:
        response = await completion.complete(prompt)
        identity = identity_from_payload(extract_json_object(response))
    except Exception as exc:
        log.warning(
            "Model extraction failed for %r (%s); using pattern extraction", name, exc
        )
        return extract_identity(name, is_directory, patterns, log=log)
    log.info("Model extracted identity from %r: %s", name, identity)
    return identity


def parse_type_choice(
    answer: str, tv_count: int, movie_count: int
) -> tuple[MediaKind, int] | None:
    """Parse a ``type:index`` answer into a media kind and 0-based index.

    Returns None when the answer has no such token or the index is out of the
    bounds of that type's result list.
    """
    match = TYPE_CHOICE_ANSWER.search(answer.strip())
    if not match:
        return None
    kind = MediaKind(match.group(1).lower())
    index = int(match.group(2)) - 1
    count = tv_count if kind is MediaKind.TV else movie_count
    if 0 <= index < count:
        return kind, index
    return None

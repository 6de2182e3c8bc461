"""Deterministic title/year/season/episode extraction from names.

Parses file and folder names using the ordered tables in core.patterns:
- Files have their suffixes (extension, resolution, codec tags) removed first;
  folders are matched as-is.
- The first title rule with a non-empty ``title`` group wins.
- Season comes from the title rule when it captures one, otherwise from the
  season rules, otherwise defaults to 1 (logged, not an error).
- Files must also yield an episode number; folders never need one.
"""

import logging

from scrapegnome.core.errors import ExtractionError
from scrapegnome.core.numerals import label_to_int
from scrapegnome.core.patterns import DEFAULT_PATTERNS, PatternConfig
from scrapegnome.models.core import MediaIdentity

logger = logging.getLogger(__name__)

DEFAULT_SEASON = 1
# Separator debris left at the edges of a lazily matched title ("Show A -").
TITLE_TRIM_CHARS = " \t-_"


def clean_name(name: str, patterns: PatternConfig = DEFAULT_PATTERNS) -> str:
    """Remove known suffix patterns from a file name, one rule after another.

    Names without any whitespace ("Show.Name.S01E02.mkv") additionally get
    their dot/underscore separators turned into spaces.
    """
    cleaned = name
    for pattern in patterns.suffix_patterns:
        cleaned = pattern.sub("", cleaned)
    if not any(ch.isspace() for ch in cleaned):
        cleaned = patterns.separator_pattern.sub(" ", cleaned).strip()
    return cleaned


def _first_number(text: str, rules: tuple) -> int | None:
    for rule in rules:
        match = rule.search(text)
        if match and match.lastindex and match.group(1):
            return label_to_int(match.group(1))
    return None


def extract_season(text: str, patterns: PatternConfig = DEFAULT_PATTERNS) -> int | None:
    """Return the season number found by the first matching season rule."""
    return _first_number(text, patterns.season_patterns)


def extract_episode(
    name: str, patterns: PatternConfig = DEFAULT_PATTERNS, *, clean: bool = True
) -> int | None:
    """Return the episode number found by the first matching episode rule.

    Args:
        name: A file name (or an already cleaned name with ``clean=False``).
        patterns: Pattern tables to use.
        clean: Strip suffix patterns before matching.

    Returns:
        The episode number, or None when no rule matches.
    """
    text = clean_name(name, patterns) if clean else name
    return _first_number(text, patterns.episode_patterns)


def extract_identity(
    name: str,
    is_directory: bool = False,
    patterns: PatternConfig = DEFAULT_PATTERNS,
    *,
    log: logging.Logger | None = None,
) -> MediaIdentity:
    """Parse a file or folder name into a MediaIdentity.

    Args:
        name: The bare file or folder name (no parent path).
        is_directory: Whether *name* is a folder.
        patterns: Pattern tables to use.
        log: Logger to report policy decisions on.

    Returns:
        The parsed identity. ``season`` is always set.

    Raises:
        ExtractionError: If no title rule matches, the matched title is empty,
            or a file name yields no episode number.
    """
    log = log or logger
    kind = "folder" if is_directory else "file"
    cleaned = name if is_directory else clean_name(name, patterns)
    title_rules = (
        patterns.folder_title_patterns if is_directory else patterns.file_title_patterns
    )

    for rule in title_rules:
        match = rule.search(cleaned)
        if not match:
            continue
        groups = match.groupdict()
        if not groups.get("title"):
            continue
        title = groups["title"].strip(TITLE_TRIM_CHARS)
        if not title:
            raise ExtractionError(
                f'Empty title extracted from {kind} name "{name}" '
                f'(rule {rule.pattern!r}, cleaned name "{cleaned}")'
            )

        year = int(groups["year"]) if groups.get("year") else None

        season: int | None = None
        if groups.get("season"):
            season = label_to_int(groups["season"])
        if season is None:
            season = extract_season(cleaned, patterns)
        if season is None:
            log.info(
                'Could not determine season for "%s"; defaulting to season %d',
                cleaned,
                DEFAULT_SEASON,
            )
            season = DEFAULT_SEASON

        episode: int | None = None
        if not is_directory:
            episode = extract_episode(cleaned, patterns, clean=False)
            if not episode:
                raise ExtractionError(
                    f'Could not extract an episode number from file name "{name}"'
                )

        identity = MediaIdentity(title=title, year=year, season=season, episode=episode)
        log.debug("Extracted %s identity from %r: %s", kind, name, identity)
        return identity

    raise ExtractionError(f'Could not extract a title from {kind} name "{name}"')

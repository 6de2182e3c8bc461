"""Ordered pattern tables for filename and folder-name parsing.

Each table is tried strictly in order and the first structural match wins, so
the order of every tuple below is part of the extractor's observable
behaviour. Reorder only together with the tests in tests/core.

Design:
- Title rules expose named groups: ``title`` (required), and optionally
  ``season`` (ASCII or CJK numerals), ``episode``, ``year`` and ``subgroup``.
- Season and episode rules capture the number in group 1.
- Suffix rules are applied to file names (never folder names) one after the
  other before any matching; scene-style separators are then normalised.
"""

import re
from dataclasses import dataclass, field

# Suffix clean-up for file names. Release tags inside brackets are kept so the
# "[SubGroup] Title [NN]" rules still anchor; only the brackets emptied by the
# resolution/codec rules are dropped.
SUFFIX_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"\d{3,4}p"),  # 1080p, 720p
    re.compile(r"x26[45]", re.IGNORECASE),  # x264 / x265
    re.compile(r"\.(?:mkv|mp4|avi|rmvb|wmv|mov|m2ts|ts)$", re.IGNORECASE),
    re.compile(r"\[\s*\]"),
    re.compile(r"\(\s*\)"),
)

FILE_TITLE_PATTERNS: tuple[re.Pattern[str], ...] = (
    # Title S01E02
    re.compile(r"^(?P<title>.+?)\s+S\d+E\d+\b", re.IGNORECASE),
    # Title 第二季
    re.compile(r"^(?P<title>.+?)\s+第(?P<season>[一二三四五六七八九十]+)季"),
    # Title 第二季 第3话
    re.compile(
        r"^(?P<title>.+?)\s+第(?P<season>[一二三四五六七八九十]+)季\s+第(?P<episode>\d+)[話话集]"
    ),
    # [SubGroup] Title [NN] [tags]
    re.compile(
        r"^\[(?P<subgroup>[^\]]+)\]\s*(?P<title>.+?)\s*\[(?P<episode>\d{1,2})\](?:\s*\[[^\]]+\])+"
    ),
    # [SubGroup] Title [NN][tags]
    re.compile(
        r"^\[(?P<subgroup>[^\]]+)\]\s*(?P<title>.+?)\s*\[(?P<episode>\d+)\](?:\[.+?\])+"
    ),
    # [SubGroup] Title - NN
    re.compile(r"^\[(?P<subgroup>[^\]]+)\]\s*(?P<title>.+?)\s*-\s*(?P<episode>\d+)"),
    # Title - NN [SubGroup]
    re.compile(r"(?P<title>.+?)\s*-\s*(?P<episode>\d+)\s*\[(?P<subgroup>[^\]]+)\]"),
    # Title NN
    re.compile(r"(?P<title>.+?)\s+(?P<episode>\d+)"),
    # Title S2 - NN
    re.compile(r"(?P<title>.+?)\s+S(?P<season>\d+)\s*-\s*(?P<episode>\d+)"),
    # [SubGroup] Title [NN]
    re.compile(r"^\[(?P<subgroup>[^\]]+)\]\s*(?P<title>.+?)\s*\[(?P<episode>\d+)\]"),
    # [SubGroup] Title (Year) - NN
    re.compile(
        r"^\[(?P<subgroup>[^\]]+)\]\s*(?P<title>.+?)\s*\((?P<year>\d{4})\)\s*-\s*(?P<episode>\d+)"
    ),
)

FOLDER_TITLE_PATTERNS: tuple[re.Pattern[str], ...] = (
    # [BDMV][date][id][Title][version]
    re.compile(
        r"\[BDMV\](?:\[\d+\])?(?:\[[^\]]+\])?\[(?P<title>[^\]]+)\](?:\[[^\]]+\])?"
    ),
    # [BDMV] Title
    re.compile(r"\[BDMV\]\s+(?P<title>.+?)(?:\s+\[|\s*$)"),
    # Title (Year)
    re.compile(r"^(?P<title>.+?)\s+\((?P<year>\d{4})\)"),
    # Title 第二季
    re.compile(r"^(?P<title>.+?)\s+第(?P<season>[一二三四五六七八九十]+)季$"),
    # Bare title
    re.compile(r"^(?P<title>[^\[]+?)$"),
    # [SubGroup] Title
    re.compile(r"^\[(?P<subgroup>[^\]]+)\]\s*(?P<title>.+?)(?:\s+\[|\s*$)"),
)

SEASON_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"S(\d{1,2})(?!eason)", re.IGNORECASE),  # S01
    re.compile(r"season\s+(\d{1,2})", re.IGNORECASE),  # season 1
    re.compile(r"Season\s+(\d{1,2})", re.IGNORECASE),  # Season 1
    re.compile(r"第([一二三四五六七八九十百千\d]+)[季]"),  # 第二季 / 第2季
    re.compile(r"(\d+)(?:nd|rd|th)\s+Season", re.IGNORECASE),  # 2nd Season
    re.compile(r"Part\s+(\d+)", re.IGNORECASE),  # Part 2
)

EPISODE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"- (\d{1,3}(?:\.\d+)?)", re.IGNORECASE),  # - 01, - 01.5
    re.compile(r"E(\d{1,3}(?:\.\d+)?)", re.IGNORECASE),  # E01
    re.compile(r"EP(\d{1,3}(?:\.\d+)?)", re.IGNORECASE),  # EP01
    re.compile(r"episode\s+(\d{1,2})", re.IGNORECASE),  # episode 1
    re.compile(r"Episode\s+(\d{1,2})", re.IGNORECASE),  # Episode 1
    re.compile(r"第(\d{1,3}(?:\.\d+)?)([話话集])?"),  # 第01话 / 第01集
    re.compile(r"\[(\d{1,3}(?:\.\d+)?)(?:v\d)?\]"),  # [01], [01v2]
    re.compile(r"SP(\d{1,2})"),  # SP01
)

# Scene-style names ("Show.Name.S01E02") use dots or underscores instead of
# spaces; they are turned into spaces when a file name has no whitespace.
SEPARATOR_PATTERN = re.compile(r"[._]+")

# Movie-vs-TV hint: theatrical releases and OVAs resolve to movies first.
THEATRICAL_MARKER = re.compile(r"剧场版|theatrical|OVA|movie", re.IGNORECASE)


@dataclass(frozen=True)
class PatternConfig:
    """Bundle of pattern tables used by the pattern extractor.

    Passed explicitly to the extractors so alternative rule sets can be
    injected (e.g. in tests) without touching module state.
    """

    suffix_patterns: tuple[re.Pattern[str], ...] = field(
        default_factory=lambda: SUFFIX_PATTERNS
    )
    file_title_patterns: tuple[re.Pattern[str], ...] = field(
        default_factory=lambda: FILE_TITLE_PATTERNS
    )
    folder_title_patterns: tuple[re.Pattern[str], ...] = field(
        default_factory=lambda: FOLDER_TITLE_PATTERNS
    )
    season_patterns: tuple[re.Pattern[str], ...] = field(
        default_factory=lambda: SEASON_PATTERNS
    )
    episode_patterns: tuple[re.Pattern[str], ...] = field(
        default_factory=lambda: EPISODE_PATTERNS
    )
    separator_pattern: re.Pattern[str] = SEPARATOR_PATTERN
    theatrical_marker: re.Pattern[str] = THEATRICAL_MARKER


DEFAULT_PATTERNS = PatternConfig()

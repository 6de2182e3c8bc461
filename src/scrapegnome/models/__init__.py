"""Data models for scrapegnome."""

from scrapegnome.models.core import (
    CollectionDetail,
    DetailedMedia,
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
from scrapegnome.models.queue import (
    QueueConfig,
    QueueStats,
    ScrapingTask,
    ScrapingTaskData,
    TaskQueryOptions,
    TaskResult,
    TaskStatus,
)

__all__ = [
    "CollectionDetail",
    "DetailedMedia",
    "EpisodeInfo",
    "MediaIdentity",
    "MediaKind",
    "MovieDetail",
    "MovieMedia",
    "QueueConfig",
    "QueueStats",
    "ResolvedMedia",
    "ScrapingTask",
    "ScrapingTaskData",
    "SearchCandidate",
    "SeasonDetail",
    "TaskQueryOptions",
    "TaskResult",
    "TaskStatus",
    "TvMedia",
]

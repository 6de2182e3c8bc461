"""Client implementations for metadata providers."""

from scrapegnome.metadata.clients.tmdb import TMDBClient

__all__ = ["TMDBClient"]

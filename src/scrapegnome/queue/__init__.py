"""Retryable, concurrency-bounded scraping task queue."""

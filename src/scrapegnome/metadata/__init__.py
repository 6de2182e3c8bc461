"""Metadata provider interface, TMDB client and settings."""

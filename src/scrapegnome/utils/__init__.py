"""Utility helpers: persistent configuration and logging setup."""

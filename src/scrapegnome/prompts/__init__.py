"""Jinja2 prompt templates for the language-model paths."""

"""Core identification and resolution logic for scrapegnome."""

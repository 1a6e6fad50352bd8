"""Domain services: identity, curriculum loading, progress and moderation."""

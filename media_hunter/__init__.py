"""Curriculum Media Hunter: browse educational media by grade, category and topic."""

__version__ = "0.1.0"

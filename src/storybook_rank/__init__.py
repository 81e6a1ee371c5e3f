"""Storybook Rank: read-count ranking and popularity for books, pages and songs."""

__version__ = "0.1.0"

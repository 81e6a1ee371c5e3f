# src/storybook_rank/schemas/__init__.py
"""Pydantic schemas for the Storybook Rank API."""

from .scored import BookOut, PageOut, PopularityOut, ReadRecorded, SongOut

__all__ = ["BookOut", "PageOut", "PopularityOut", "ReadRecorded", "SongOut"]

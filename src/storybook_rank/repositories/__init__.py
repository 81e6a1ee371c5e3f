"""Data access helpers for scored entities."""

from .scored_store import ScoredRecordStore

__all__ = ["ScoredRecordStore"]

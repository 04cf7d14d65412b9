"""Readers for the legacy forum store."""

from .base import BaseReader, SourceQuery, SourceRow, DEFAULT_CHUNK_SIZE
from .database import SqlSourceReader

__all__ = [
    "BaseReader",
    "SourceQuery",
    "SourceRow",
    "DEFAULT_CHUNK_SIZE",
    "SqlSourceReader",
]

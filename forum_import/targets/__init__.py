"""Targets the importer writes into."""

from .base import BaseTarget
from .database import SqlTarget
from .memory import MemoryTarget

__all__ = [
    "BaseTarget",
    "SqlTarget",
    "MemoryTarget",
]

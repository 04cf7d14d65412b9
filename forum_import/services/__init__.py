"""Transform services for the forum importer."""

from .reformatter import ContentReformatter
from .mentions import MentionExtractor
from .reactions import ReactionAggregator, parse_liked_by
from . import mappers

__all__ = [
    "ContentReformatter",
    "MentionExtractor",
    "ReactionAggregator",
    "parse_liked_by",
    "mappers",
]

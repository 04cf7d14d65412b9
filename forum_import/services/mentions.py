"""Extracts mentioned users from target-dialect content."""

import logging
from typing import Optional, Set

from .reformatter import MENTION, parse_document

logger = logging.getLogger(__name__)


class MentionExtractor:
    """Collects the distinct user ids referenced by mention elements."""

    def __init__(self, mention_tag: str = MENTION):
        self.mention_tag = mention_tag

    def extract(self, content: Optional[str]) -> Set[int]:
        if not content:
            return set()

        user_ids = set()
        for element in parse_document(content).iter(self.mention_tag):
            raw_id = element.get("id", "")
            try:
                user_ids.add(int(raw_id))
            except ValueError:
                logger.debug(f"Ignoring mention with non-numeric id {raw_id!r}")
        return user_ids

"""Turns legacy likes into reactions and recomputes content scores."""

import logging
from typing import Iterable, List, Optional

from ..models.drafts import ReactionDraft, ReactionType
from ..targets.base import BaseTarget

logger = logging.getLogger(__name__)


def parse_liked_by(value: Optional[str]) -> List[int]:
    """Split a comma-joined list of liking user ids.

    Empty and zero entries are dropped; duplicates are kept.
    """
    if not value:
        return []

    user_ids = []
    for part in str(value).split(","):
        part = part.strip()
        if part and int(part):
            user_ids.append(int(part))
    return user_ids


class ReactionAggregator:
    """Replaces a post's or comment's reactions and recomputes its score."""

    def __init__(self, target: BaseTarget, reaction_type: ReactionType):
        self.target = target
        self.reaction_type = reaction_type

    def apply(self, content_type: str, content_id: int, user_ids: Iterable[int]) -> int:
        """
        Sync reactions for one piece of content.

        Args:
            content_type: "post" or "comment"
            content_id: Target id of the content
            user_ids: Legacy ids of the users who liked it, one reaction each

        Returns:
            The recomputed score
        """
        self.target.delete_reactions(content_type, content_id)

        for user_id in user_ids:
            self.target.create(ReactionDraft(
                reaction_type_id=self.reaction_type.id,
                user_id=user_id,
                content_type=content_type,
                content_id=content_id,
            ))

        score = self.target.recompute_score(content_type, content_id)
        logger.debug(f"Recomputed {content_type} #{content_id} score: {score}")
        return score

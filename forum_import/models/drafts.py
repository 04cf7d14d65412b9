"""Target-schema drafts produced by the entity mappers.

A draft is a fully typed value ready to persist. Mappers either produce one
or return a ``Skip`` / ``Fail`` outcome; they never produce a partial draft.
"""

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, ClassVar, Dict, Optional, Union

POST_CONTENT = "post"
COMMENT_CONTENT = "comment"

# Content type -> table holding that content.
CONTENT_TABLES = {
    POST_CONTENT: "posts",
    COMMENT_CONTENT: "comments",
}


@dataclass(frozen=True)
class Skip:
    """A row intentionally excluded by import policy."""
    reason: str


@dataclass(frozen=True)
class Fail:
    """A row that could not be mapped."""
    reason: str


class EntityDraft:
    """Base for drafts: knows its target table."""

    table: ClassVar[str] = ""

    def to_row(self) -> Dict[str, Any]:
        """Column values for the target table."""
        return asdict(self)


@dataclass(frozen=True)
class UserDraft(EntityDraft):
    table: ClassVar[str] = "users"

    id: int
    name: str
    email: Optional[str] = None
    email_verified_at: Optional[datetime] = None
    locale: Optional[str] = None
    bio: Optional[str] = None
    avatar: Optional[str] = None
    created_at: Optional[datetime] = None
    last_seen_at: Optional[datetime] = None
    notifications_read_at: Optional[datetime] = None
    suspended_until: Optional[datetime] = None


@dataclass(frozen=True)
class GroupDraft(EntityDraft):
    table: ClassVar[str] = "groups"

    id: int
    name: str
    color: Optional[str] = None
    is_public: bool = False


@dataclass(frozen=True)
class GroupMembershipDraft(EntityDraft):
    table: ClassVar[str] = "group_user"

    group_id: int
    user_id: int


@dataclass(frozen=True)
class ChannelDraft(EntityDraft):
    table: ClassVar[str] = "channels"

    id: int
    name: str
    slug: str
    description: Optional[str] = None
    is_listed: bool = True

    def to_row(self) -> Dict[str, Any]:
        # Listing lives in the structure table, not on the channel row.
        row = asdict(self)
        row.pop("is_listed")
        return row


@dataclass(frozen=True)
class PostDraft(EntityDraft):
    table: ClassVar[str] = "posts"

    id: int
    channel_id: int
    user_id: Optional[int]
    title: str
    slug: Optional[str]
    parsed_body: str
    created_at: datetime
    last_activity_at: datetime
    comment_count: int = 0
    score: int = 0
    is_locked: bool = False


@dataclass(frozen=True)
class CommentDraft(EntityDraft):
    table: ClassVar[str] = "comments"

    id: int
    post_id: int
    user_id: Optional[int]
    parsed_body: str
    created_at: datetime
    parent_id: Optional[int] = None
    edited_at: Optional[datetime] = None
    reply_count: Optional[int] = None
    score: int = 0


@dataclass(frozen=True)
class PostReadStateDraft(EntityDraft):
    table: ClassVar[str] = "post_user"

    post_id: int
    user_id: int
    last_read_at: Optional[datetime] = None
    notifications: Optional[str] = None


@dataclass(frozen=True)
class ReactionType:
    """The reaction type seeded at the start of a run."""
    id: int
    name: str
    score: int


@dataclass(frozen=True)
class ReactionDraft(EntityDraft):
    table: ClassVar[str] = "reactions"

    reaction_type_id: int
    user_id: int
    content_type: str
    content_id: int


@dataclass(frozen=True)
class MentionLink(EntityDraft):
    table: ClassVar[str] = "mentions"

    content_type: str
    content_id: int
    user_id: int

    def to_row(self) -> Dict[str, Any]:
        return {
            "content_type": self.content_type,
            "content_id": self.content_id,
            "mentionable_type": "user",
            "mentionable_id": self.user_id,
        }


MapResult = Union[EntityDraft, Skip, Fail]

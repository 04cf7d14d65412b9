"""Data models for the forum importer."""

from .config import ImportConfig
from .context import (
    ChannelIndex,
    IdentifierMap,
    MappingContext,
    UserIndex,
    GROUP_ID_MAP,
)
from .drafts import (
    ChannelDraft,
    CommentDraft,
    EntityDraft,
    Fail,
    GroupDraft,
    GroupMembershipDraft,
    MentionLink,
    PostDraft,
    PostReadStateDraft,
    ReactionDraft,
    ReactionType,
    Skip,
    UserDraft,
)
from .report import (
    EntityReport,
    ImportReport,
    ImportStatus,
    RowFailure,
    RowSkip,
)
from .rows import (
    DiscussionRow,
    DiscussionUserRow,
    GroupRow,
    GroupUserRow,
    PostRow,
    SourceRowModel,
    TagRow,
    UserRow,
)

__all__ = [
    "ImportConfig",
    "ChannelIndex",
    "IdentifierMap",
    "MappingContext",
    "UserIndex",
    "GROUP_ID_MAP",
    "ChannelDraft",
    "CommentDraft",
    "EntityDraft",
    "Fail",
    "GroupDraft",
    "GroupMembershipDraft",
    "MentionLink",
    "PostDraft",
    "PostReadStateDraft",
    "ReactionDraft",
    "ReactionType",
    "Skip",
    "UserDraft",
    "EntityReport",
    "ImportReport",
    "ImportStatus",
    "RowFailure",
    "RowSkip",
    "DiscussionRow",
    "DiscussionUserRow",
    "GroupRow",
    "GroupUserRow",
    "PostRow",
    "SourceRowModel",
    "TagRow",
    "UserRow",
]

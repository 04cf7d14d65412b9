"""Pure mapping functions from validated legacy rows to target drafts.

Every mapper takes one row plus the immutable ``MappingContext`` and returns
a draft, ``Skip(reason)`` or ``Fail(reason)``. Mappers never touch the source
or target stores.
"""

from datetime import datetime, timezone
from typing import Optional, Union

from ..errors import MalformedContentError
from ..models.context import MappingContext
from ..models.drafts import (
    ChannelDraft,
    CommentDraft,
    Fail,
    GroupDraft,
    GroupMembershipDraft,
    PostDraft,
    PostReadStateDraft,
    Skip,
    UserDraft,
)
from ..models.rows import (
    DiscussionRow,
    DiscussionUserRow,
    GroupRow,
    GroupUserRow,
    PostRow,
    TagRow,
    UserRow,
)
from .reformatter import ContentReformatter

# Largest instant a signed 32-bit Unix timestamp can hold.
MAX_TIMESTAMP = datetime.fromtimestamp(2**31 - 1, tz=timezone.utc)

NOTIFICATION_PREFERENCES = ("follow", "ignore")

_reformatter = ContentReformatter()


def clamp_timestamp(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    return min(value, MAX_TIMESTAMP)


def map_user(row: UserRow, context: MappingContext) -> Union[UserDraft, Skip]:
    # Accounts without a username are placeholders, not people.
    if not row.username:
        return Skip("user has no username")

    return UserDraft(
        id=row.id,
        name=row.username,
        email=row.email,
        email_verified_at=context.now if row.is_email_confirmed else None,
        locale=row.locale,
        bio=row.bio,
        avatar=row.avatar_url,
        created_at=row.joined_at,
        last_seen_at=row.last_seen_at,
        notifications_read_at=row.read_notifications_at,
        suspended_until=clamp_timestamp(row.suspended_until),
    )


def map_group(row: GroupRow, context: MappingContext) -> GroupDraft:
    is_system = context.group_map.is_system(row.id)
    return GroupDraft(
        id=context.group_map.remap(row.id),
        name=row.name_singular,
        color=(row.color or "").lstrip("#") or None,
        is_public=not is_system and not row.is_hidden,
    )


def map_group_membership(row: GroupUserRow, context: MappingContext) -> GroupMembershipDraft:
    return GroupMembershipDraft(
        group_id=context.group_map.remap(row.group_id),
        user_id=row.user_id,
    )


def map_channel(row: TagRow, context: MappingContext) -> Union[ChannelDraft, Skip]:
    if row.position is None:
        return Skip("tag has no position")
    if row.parent_id is not None:
        return Skip(f"tag is a child of tag {row.parent_id}")

    return ChannelDraft(
        id=row.id,
        name=row.name,
        slug=row.slug,
        description=row.description,
        is_listed=True,
    )


def map_post(row: DiscussionRow, context: MappingContext) -> Union[PostDraft, Skip, Fail]:
    if row.hidden_at is not None:
        return Skip("discussion is hidden")
    if row.is_private:
        return Skip("discussion is private")

    channel_id = row.tag_id or context.fallback_channel_id
    if channel_id is None:
        return Fail("no channel has been imported to hold this post")

    try:
        parsed_body = _reformatter.reformat(row.content)
    except MalformedContentError as e:
        return Fail(str(e))

    return PostDraft(
        id=row.id,
        channel_id=channel_id,
        user_id=row.user_id,
        title=row.title,
        slug=row.slug,
        parsed_body=parsed_body,
        created_at=row.created_at,
        last_activity_at=row.last_posted_at or row.created_at,
        # The legacy count includes the opening post.
        comment_count=max(0, (row.comment_count or 0) - 1),
        is_locked=row.is_locked,
    )


def map_comment(row: PostRow, context: MappingContext) -> Union[CommentDraft, Skip, Fail]:
    if row.number == 1:
        return Skip("post opens its discussion")
    if row.type != "comment":
        return Skip(f"post is of type {row.type!r}")
    if row.hidden_at is not None:
        return Skip("post is hidden")
    if row.is_private:
        return Skip("post is private")

    try:
        parsed_body = _reformatter.reformat(row.content)
    except MalformedContentError as e:
        return Fail(str(e))

    return CommentDraft(
        id=row.id,
        post_id=row.discussion_id,
        parent_id=row.mentions_post_id,
        user_id=row.user_id,
        parsed_body=parsed_body,
        created_at=row.created_at,
        edited_at=row.edited_at,
        reply_count=row.reply_count or None,
    )


def map_post_read_state(row: DiscussionUserRow, context: MappingContext) -> PostReadStateDraft:
    subscription = row.subscription if row.subscription in NOTIFICATION_PREFERENCES else None
    return PostReadStateDraft(
        post_id=row.discussion_id,
        user_id=row.user_id,
        last_read_at=row.last_read_at,
        notifications=subscription,
    )

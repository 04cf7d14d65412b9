"""The legacy reads behind each import phase."""

from typing import Sequence

from sqlalchemy import and_, false, func, select

from .base import BaseReader, SourceQuery
from ..models.rows import (
    DiscussionRow,
    DiscussionUserRow,
    GroupRow,
    GroupUserRow,
    PostRow,
    TagRow,
    UserRow,
)


def users_query(reader: BaseReader) -> SourceQuery:
    users = reader.table("users")
    return SourceQuery(
        entity="users",
        source=users,
        columns=(users,),
        row_model=UserRow,
        order_by=(users.c.id,),
    )


def groups_query(reader: BaseReader) -> SourceQuery:
    groups = reader.table("groups")
    return SourceQuery(
        entity="groups",
        source=groups,
        columns=(groups,),
        row_model=GroupRow,
        order_by=(groups.c.id,),
    )


def group_memberships_query(reader: BaseReader) -> SourceQuery:
    group_user = reader.table("group_user")
    return SourceQuery(
        entity="group memberships",
        source=group_user,
        columns=(group_user.c.group_id, group_user.c.user_id),
        row_model=GroupUserRow,
        order_by=(group_user.c.group_id, group_user.c.user_id),
        key_columns=("group_id", "user_id"),
    )


def channels_query(reader: BaseReader) -> SourceQuery:
    """Top-level positioned tags, in position order."""
    tags = reader.table("tags")
    return SourceQuery(
        entity="channels",
        source=tags,
        columns=(tags,),
        row_model=TagRow,
        filters=(tags.c.position.isnot(None), tags.c.parent_id.is_(None)),
        order_by=(tags.c.position, tags.c.id),
    )


def posts_query(reader: BaseReader, channel_ids: Sequence[int]) -> SourceQuery:
    """Visible public discussions with their first post's body, channel and likes."""
    discussions = reader.table("discussions")
    posts = reader.table("posts")
    discussion_tag = reader.table("discussion_tag")
    post_likes = reader.table("post_likes")

    tag_id = (
        select(func.min(discussion_tag.c.tag_id))
        .where(
            discussion_tag.c.discussion_id == discussions.c.id,
            discussion_tag.c.tag_id.in_(list(channel_ids)),
        )
        .correlate(discussions)
        .scalar_subquery()
        .label("tag_id")
    )
    liked_by = (
        select(func.group_concat(post_likes.c.user_id))
        .where(post_likes.c.post_id == discussions.c.first_post_id)
        .correlate(discussions)
        .scalar_subquery()
        .label("liked_by")
    )

    return SourceQuery(
        entity="posts",
        source=discussions.outerjoin(posts, posts.c.id == discussions.c.first_post_id),
        columns=(discussions, posts.c.content),
        row_model=DiscussionRow,
        filters=(discussions.c.hidden_at.is_(None), discussions.c.is_private == false()),
        projections=(tag_id, liked_by),
        order_by=(discussions.c.id,),
    )


def post_read_states_query(reader: BaseReader) -> SourceQuery:
    """Per-user read state of the discussions imported as posts."""
    discussion_user = reader.table("discussion_user")
    discussions = reader.table("discussions")
    return SourceQuery(
        entity="post read states",
        source=discussion_user.join(
            discussions, discussions.c.id == discussion_user.c.discussion_id
        ),
        columns=(discussion_user,),
        row_model=DiscussionUserRow,
        filters=(discussions.c.hidden_at.is_(None), discussions.c.is_private == false()),
        order_by=(discussion_user.c.discussion_id, discussion_user.c.user_id),
        key_columns=("discussion_id", "user_id"),
    )


def comments_query(reader: BaseReader) -> SourceQuery:
    """Visible public replies with their parent reply, reply count and likes."""
    posts = reader.table("posts")
    discussions = reader.table("discussions")
    mentions = reader.table("post_mentions_post")
    post_likes = reader.table("post_likes")

    # A reply can only hang off another reply, never off the opening post.
    mentioned = posts.alias("mentioned")
    parent_id = (
        select(func.min(mentions.c.mentions_post_id))
        .select_from(
            mentions.join(
                mentioned,
                and_(mentions.c.mentions_post_id == mentioned.c.id, mentioned.c.number != 1),
            )
        )
        .where(mentions.c.post_id == posts.c.id)
        .correlate(posts)
        .scalar_subquery()
        .label("mentions_post_id")
    )
    replies = mentions.alias("replies")
    reply_count = (
        select(func.count())
        .select_from(replies)
        .where(replies.c.mentions_post_id == posts.c.id)
        .correlate(posts)
        .scalar_subquery()
        .label("reply_count")
    )
    liked_by = (
        select(func.group_concat(post_likes.c.user_id))
        .where(post_likes.c.post_id == posts.c.id)
        .correlate(posts)
        .scalar_subquery()
        .label("liked_by")
    )

    return SourceQuery(
        entity="comments",
        source=posts.join(discussions, discussions.c.id == posts.c.discussion_id),
        columns=(posts,),
        row_model=PostRow,
        filters=(
            posts.c.number != 1,
            posts.c.type == "comment",
            posts.c.hidden_at.is_(None),
            posts.c.is_private == false(),
            discussions.c.hidden_at.is_(None),
            discussions.c.is_private == false(),
        ),
        projections=(parent_id, reply_count, liked_by),
        order_by=(posts.c.id,),
    )

"""Strict schemas for rows read from the legacy forum tables.

Each legacy table the importer reads gets one pydantic model. Fields without
a default are required columns: a batch missing one of them is a schema
problem and aborts the run. Fields with a default are columns added by
optional legacy extensions and may be absent.
"""

from datetime import datetime, timezone
from typing import Annotated, Any, Dict, Optional, Set, Type, TypeVar

from dateutil import parser as date_parser
from pydantic import BaseModel, ConfigDict, ValidationError, BeforeValidator

from ..errors import RowValidationError

ZERO_DATES = ("0000-00-00", "0000-00-00 00:00:00")


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Coerce a legacy timestamp into an aware UTC datetime.

    Legacy values are stored without a zone and are UTC.
    """
    if value is None or value == "" or value in ZERO_DATES:
        return None

    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = date_parser.parse(str(value))
        except (ValueError, OverflowError) as e:
            raise ValueError(f"invalid timestamp {value!r}") from e

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


Timestamp = Annotated[Optional[datetime], BeforeValidator(parse_timestamp)]
RequiredTimestamp = Annotated[datetime, BeforeValidator(parse_timestamp)]

RowT = TypeVar("RowT", bound="SourceRowModel")


class SourceRowModel(BaseModel):
    """Base class for validated legacy rows."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    @classmethod
    def required_columns(cls) -> Set[str]:
        """Columns that must be present in every fetched row."""
        return {name for name, info in cls.model_fields.items() if info.is_required()}

    @classmethod
    def from_source(cls: Type[RowT], raw: Dict[str, Any]) -> RowT:
        """Validate a raw source row, raising a row-level error on bad values."""
        try:
            return cls.model_validate(raw)
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
                for err in e.errors()
            )
            raise RowValidationError(
                f"Invalid {cls.__name__}: {problems}",
                row_id=raw.get("id"),
            ) from e


class UserRow(SourceRowModel):
    id: int
    username: Optional[str]
    email: Optional[str]
    is_email_confirmed: bool
    avatar_url: Optional[str]
    joined_at: Timestamp
    last_seen_at: Timestamp
    read_notifications_at: Timestamp
    suspended_until: Timestamp
    locale: Optional[str] = None
    bio: Optional[str] = None


class GroupRow(SourceRowModel):
    id: int
    name_singular: str
    color: Optional[str]
    is_hidden: Optional[bool] = None


class GroupUserRow(SourceRowModel):
    group_id: int
    user_id: int


class TagRow(SourceRowModel):
    id: int
    name: str
    slug: str
    description: Optional[str]
    position: Optional[int]
    parent_id: Optional[int]


class DiscussionRow(SourceRowModel):
    """A discussion joined to its first post and its tag / like projections."""

    id: int
    user_id: Optional[int]
    title: str
    slug: Optional[str]
    created_at: RequiredTimestamp
    last_posted_at: Timestamp
    comment_count: Optional[int]
    hidden_at: Timestamp
    is_private: bool
    content: Optional[str]
    tag_id: Optional[int]
    liked_by: Optional[str]
    is_locked: bool = False


class PostRow(SourceRowModel):
    """A reply post with its parent, reply-count and like projections."""

    id: int
    discussion_id: int
    number: Optional[int]
    user_id: Optional[int]
    type: str
    content: Optional[str]
    created_at: RequiredTimestamp
    edited_at: Timestamp
    hidden_at: Timestamp
    is_private: bool
    mentions_post_id: Optional[int]
    reply_count: Optional[int]
    liked_by: Optional[str]


class DiscussionUserRow(SourceRowModel):
    discussion_id: int
    user_id: int
    last_read_at: Timestamp
    subscription: Optional[str] = None

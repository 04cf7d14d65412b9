"""Shared fixtures: a small legacy forum in SQLite and an in-memory target."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pytest
from sqlalchemy import MetaData, Table, create_engine, text
from sqlalchemy.engine import Engine

from forum_import.models.config import ImportConfig
from forum_import.models.context import MappingContext
from forum_import.readers.database import SqlSourceReader
from forum_import.targets.memory import MemoryTarget

LEGACY_DDL = [
    """
    CREATE TABLE users (
        id INTEGER PRIMARY KEY,
        username TEXT,
        email TEXT,
        is_email_confirmed INTEGER NOT NULL DEFAULT 0,
        avatar_url TEXT,
        joined_at DATETIME,
        last_seen_at DATETIME,
        read_notifications_at DATETIME,
        suspended_until DATETIME,
        bio TEXT
    )
    """,
    """
    CREATE TABLE groups (
        id INTEGER PRIMARY KEY,
        name_singular TEXT NOT NULL,
        name_plural TEXT,
        color TEXT,
        icon TEXT,
        is_hidden INTEGER NOT NULL DEFAULT 0
    )
    """,
    "CREATE TABLE group_user (user_id INTEGER NOT NULL, group_id INTEGER NOT NULL)",
    """
    CREATE TABLE tags (
        id INTEGER PRIMARY KEY,
        name TEXT NOT NULL,
        slug TEXT NOT NULL,
        description TEXT,
        position INTEGER,
        parent_id INTEGER
    )
    """,
    """
    CREATE TABLE discussions (
        id INTEGER PRIMARY KEY,
        title TEXT NOT NULL,
        comment_count INTEGER NOT NULL DEFAULT 1,
        created_at DATETIME NOT NULL,
        user_id INTEGER,
        first_post_id INTEGER,
        last_posted_at DATETIME,
        slug TEXT,
        is_private INTEGER NOT NULL DEFAULT 0,
        hidden_at DATETIME,
        is_locked INTEGER NOT NULL DEFAULT 0
    )
    """,
    """
    CREATE TABLE posts (
        id INTEGER PRIMARY KEY,
        discussion_id INTEGER NOT NULL,
        number INTEGER,
        created_at DATETIME NOT NULL,
        user_id INTEGER,
        type TEXT,
        content TEXT,
        edited_at DATETIME,
        hidden_at DATETIME,
        is_private INTEGER NOT NULL DEFAULT 0
    )
    """,
    "CREATE TABLE discussion_tag (discussion_id INTEGER NOT NULL, tag_id INTEGER NOT NULL)",
    """
    CREATE TABLE discussion_user (
        user_id INTEGER NOT NULL,
        discussion_id INTEGER NOT NULL,
        last_read_at DATETIME,
        last_read_post_number INTEGER,
        subscription TEXT
    )
    """,
    "CREATE TABLE post_likes (post_id INTEGER NOT NULL, user_id INTEGER NOT NULL)",
    "CREATE TABLE post_mentions_post (post_id INTEGER NOT NULL, mentions_post_id INTEGER NOT NULL)",
]

T0 = datetime(2021, 3, 1, 12, 0, 0)


class LegacyForum:
    """Helper for seeding rows into the legacy SQLite database."""

    def __init__(self, engine: Engine):
        self.engine = engine
        self.metadata = MetaData()

    def insert(self, table_name: str, *rows: dict[str, Any]) -> None:
        table = Table(table_name, self.metadata, autoload_with=self.engine)
        with self.engine.begin() as conn:
            conn.execute(table.insert(), list(rows))

    def discussion(
        self,
        discussion_id: int,
        content: str | None = "<t>Hello</t>",
        *,
        tags: tuple[int, ...] = (),
        likes: tuple[int, ...] = (),
        **fields: Any,
    ) -> None:
        """A discussion with its opening post (number 1, id = discussion id * 100)."""
        first_post_id = discussion_id * 100
        values = {
            "id": discussion_id,
            "title": f"Discussion {discussion_id}",
            "slug": f"discussion-{discussion_id}",
            "comment_count": 1,
            "created_at": T0,
            "user_id": 1,
            "first_post_id": first_post_id,
            "last_posted_at": T0,
        }
        values.update(fields)
        self.insert("discussions", values)
        self.insert("posts", {
            "id": first_post_id,
            "discussion_id": discussion_id,
            "number": 1,
            "created_at": values["created_at"],
            "user_id": values["user_id"],
            "type": "comment",
            "content": content,
        })
        for tag_id in tags:
            self.insert("discussion_tag", {"discussion_id": discussion_id, "tag_id": tag_id})
        for user_id in likes:
            self.insert("post_likes", {"post_id": first_post_id, "user_id": user_id})

    def reply(
        self,
        post_id: int,
        discussion_id: int,
        number: int,
        content: str | None = "<t>Reply</t>",
        *,
        likes: tuple[int, ...] = (),
        mentions: tuple[int, ...] = (),
        **fields: Any,
    ) -> None:
        values = {
            "id": post_id,
            "discussion_id": discussion_id,
            "number": number,
            "created_at": T0,
            "user_id": 1,
            "type": "comment",
            "content": content,
        }
        values.update(fields)
        self.insert("posts", values)
        for user_id in likes:
            self.insert("post_likes", {"post_id": post_id, "user_id": user_id})
        for mentioned in mentions:
            self.insert("post_mentions_post", {"post_id": post_id, "mentions_post_id": mentioned})


@pytest.fixture
def legacy_engine(tmp_path: Path) -> Engine:
    engine = create_engine(f"sqlite:///{tmp_path / 'legacy.db'}")
    with engine.begin() as conn:
        for statement in LEGACY_DDL:
            conn.execute(text(statement))
    yield engine
    engine.dispose()


@pytest.fixture
def legacy(legacy_engine: Engine) -> LegacyForum:
    return LegacyForum(legacy_engine)


@pytest.fixture
def reader(legacy_engine: Engine) -> SqlSourceReader:
    return SqlSourceReader(legacy_engine, chunk_size=2)


@pytest.fixture
def target() -> MemoryTarget:
    return MemoryTarget()


@pytest.fixture
def config(tmp_path: Path) -> ImportConfig:
    return ImportConfig(name="test-import", output_dir=str(tmp_path / "out"), save_report=False)


@pytest.fixture
def context() -> MappingContext:
    return MappingContext(now=datetime(2024, 1, 1, tzinfo=timezone.utc))

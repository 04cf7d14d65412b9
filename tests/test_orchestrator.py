"""End-to-end import runs from a SQLite legacy forum into the memory target."""

from __future__ import annotations

import json
from dataclasses import replace
from pathlib import Path

import pytest
from sqlalchemy import text

from forum_import.errors import SourceSchemaError
from forum_import.models.config import ImportConfig
from forum_import.models.context import MappingContext
from forum_import.models.report import ImportStatus
from forum_import.orchestrator import ImportOrchestrator
from forum_import.readers.database import SqlSourceReader
from forum_import.targets.memory import MemoryTarget

from conftest import T0, LegacyForum

PHASES = [
    "users",
    "groups",
    "group memberships",
    "channels",
    "posts",
    "post read states",
    "comments",
]


@pytest.fixture
def forum(legacy: LegacyForum) -> LegacyForum:
    legacy.insert(
        "users",
        {"id": 1, "username": "alice", "email": "alice@example.com", "is_email_confirmed": 1},
        {"id": 2, "username": "bob", "email": "bob@example.com", "is_email_confirmed": 0},
        {"id": 3, "username": "", "email": None, "is_email_confirmed": 0},
        {"id": 4, "username": "carol", "email": "carol@example.com", "is_email_confirmed": 1},
    )
    legacy.insert(
        "groups",
        {"id": 1, "name_singular": "Admin", "color": "#B72A2A", "is_hidden": 0},
        {"id": 2, "name_singular": "Guest", "color": None, "is_hidden": 0},
        {"id": 3, "name_singular": "Member", "color": None, "is_hidden": 0},
        {"id": 4, "name_singular": "Mod", "color": "#123456", "is_hidden": 0},
    )
    legacy.insert(
        "group_user",
        {"user_id": 1, "group_id": 1},
        {"user_id": 2, "group_id": 4},
        {"user_id": 4, "group_id": 3},
    )
    legacy.insert(
        "tags",
        {"id": 10, "name": "General", "slug": "general", "position": 0, "parent_id": None},
        {"id": 11, "name": "Support", "slug": "support", "position": 1, "parent_id": None},
        {"id": 12, "name": "Child", "slug": "child", "position": 2, "parent_id": 10},
        {"id": 13, "name": "Loose", "slug": "loose", "position": None, "parent_id": None},
    )

    legacy.discussion(
        1,
        '<r><p>Thanks <USERMENTION id="2" username="bob">@bob</USERMENTION></p></r>',
        tags=(11,),
        likes=(2, 2, 4),
        comment_count=3,
    )
    legacy.discussion(2, tags=(12,))
    legacy.discussion(3, hidden_at=T0)
    legacy.discussion(4, is_private=1)
    legacy.discussion(5, "<t>broken")

    legacy.reply(
        101,
        1,
        2,
        '<r><USERMENTION id="4" username="carol">@carol</USERMENTION> '
        '<USERMENTION id="99" username="ghost">@ghost</USERMENTION></r>',
    )
    legacy.reply(
        102,
        1,
        3,
        '<r><POSTMENTION id="101">@bob#101</POSTMENTION> agreed</r>',
        mentions=(101,),
        likes=(1,),
    )
    legacy.reply(301, 3, 2)

    legacy.insert(
        "discussion_user",
        {"user_id": 1, "discussion_id": 1, "last_read_at": T0, "subscription": "follow"},
        {"user_id": 2, "discussion_id": 1, "last_read_at": T0, "subscription": None},
        {"user_id": 1, "discussion_id": 3, "last_read_at": T0, "subscription": None},
    )
    return legacy


@pytest.fixture
def orchestrator(
    forum: LegacyForum,
    reader: SqlSourceReader,
    target: MemoryTarget,
    config: ImportConfig,
    context: MappingContext,
) -> ImportOrchestrator:
    return ImportOrchestrator(reader, target, config, context)


def test_full_run_imports_every_phase(orchestrator: ImportOrchestrator, target: MemoryTarget) -> None:
    report = orchestrator.run()

    assert report.status == ImportStatus.COMPLETED
    assert list(report.entities) == PHASES
    for entity in report.entities.values():
        assert entity.status == ImportStatus.COMPLETED
        assert entity.imported + entity.skipped + entity.failed == entity.attempted

    users = report.get("users")
    assert (users.attempted, users.imported, users.skipped) == (4, 3, 1)
    assert users.skips[0].row_id == 3
    assert sorted(row["id"] for row in target.rows("users")) == [1, 2, 4]


def test_groups_and_memberships_are_remapped(orchestrator: ImportOrchestrator, target: MemoryTarget) -> None:
    orchestrator.run()

    groups = {row["id"]: row for row in target.rows("groups")}
    assert groups[3]["name"] == "Admin"
    assert groups[1]["name"] == "Guest"
    assert groups[2]["name"] == "Member"
    assert groups[4]["is_public"] is True
    assert groups[4]["color"] == "123456"
    assert sorted((row["group_id"], row["user_id"]) for row in target.rows("group_user")) == [
        (2, 4),
        (3, 1),
        (4, 2),
    ]


def test_channels_and_post_placement(orchestrator: ImportOrchestrator, target: MemoryTarget) -> None:
    report = orchestrator.run()

    assert [row["id"] for row in target.rows("channels")] == [10, 11]
    assert report.get("channels").attempted == 2

    posts = {row["id"]: row for row in target.rows("posts")}
    assert sorted(posts) == [1, 2]
    assert posts[1]["channel_id"] == 11
    # Discussion 2 is only tagged with a child tag, so it lands in the first channel.
    assert posts[2]["channel_id"] == 10
    assert posts[1]["comment_count"] == 2
    assert posts[1]["parsed_body"] == '<r><p>Thanks <MENTION id="2" name="bob">@bob</MENTION></p></r>'


def test_hidden_and_private_discussions_are_not_imported(
    orchestrator: ImportOrchestrator, target: MemoryTarget
) -> None:
    report = orchestrator.run()

    posts = report.get("posts")
    assert 3 not in {row["id"] for row in target.rows("posts")}
    assert 4 not in {row["id"] for row in target.rows("posts")}
    assert posts.imported + posts.skipped + posts.failed == posts.attempted
    assert 301 not in {row["id"] for row in target.rows("comments")}


def test_malformed_row_fails_alone(orchestrator: ImportOrchestrator, target: MemoryTarget) -> None:
    """Test one malformed post among valid ones is recorded and later phases still run."""
    report = orchestrator.run()

    posts = report.get("posts")
    assert posts.attempted == 3
    assert posts.imported == 2
    assert posts.failed == 1
    assert posts.failures[0].row_id == 5
    assert "Malformed content" in posts.failures[0].message

    assert report.get("comments").status == ImportStatus.COMPLETED
    assert report.get("comments").imported == 2
    assert "#5: " in report.format_summary()


def test_likes_become_reactions(orchestrator: ImportOrchestrator, target: MemoryTarget) -> None:
    orchestrator.run()

    assert target.tables["posts"][(1,)]["score"] == 3
    assert target.tables["posts"][(2,)]["score"] == 0
    assert target.tables["comments"][(102,)]["score"] == 1
    assert sorted(r["user_id"] for r in target.reactions_for("post", 1)) == [2, 2, 4]


def test_comment_threading(orchestrator: ImportOrchestrator, target: MemoryTarget) -> None:
    orchestrator.run()

    comments = {row["id"]: row for row in target.rows("comments")}
    assert comments[101]["post_id"] == 1
    assert comments[101]["parent_id"] is None
    assert comments[101]["reply_count"] == 1
    assert comments[102]["parent_id"] == 101
    assert comments[102]["reply_count"] is None
    assert comments[102]["parsed_body"] == "<r> agreed</r>"


def test_mentions_link_imported_users_only(orchestrator: ImportOrchestrator, target: MemoryTarget) -> None:
    orchestrator.run()

    links = sorted(
        (row["content_type"], row["content_id"], row["mentionable_id"]) for row in target.rows("mentions")
    )
    assert links == [("comment", 101, 4), ("post", 1, 2)]


def test_read_states(orchestrator: ImportOrchestrator, target: MemoryTarget) -> None:
    orchestrator.run()

    states = sorted((row["post_id"], row["user_id"], row["notifications"]) for row in target.rows("post_user"))
    assert states == [(1, 1, "follow"), (1, 2, None)]


def test_rerun_on_populated_target_fails_on_duplicates(
    orchestrator: ImportOrchestrator,
    reader: SqlSourceReader,
    target: MemoryTarget,
    config: ImportConfig,
    context: MappingContext,
) -> None:
    orchestrator.run()

    report = ImportOrchestrator(reader, target, config, context).run()

    assert report.status == ImportStatus.COMPLETED
    users = report.get("users")
    assert (users.imported, users.skipped, users.failed) == (0, 1, 3)
    assert all("Duplicate entry" in f.message for f in users.failures)
    assert report.get("posts").imported == 0


def test_schema_error_aborts_run(
    forum: LegacyForum,
    reader: SqlSourceReader,
    target: MemoryTarget,
    config: ImportConfig,
    context: MappingContext,
) -> None:
    with forum.engine.begin() as conn:
        conn.execute(text("DROP TABLE discussion_tag"))
    orchestrator = ImportOrchestrator(reader, target, config, context)

    with pytest.raises(SourceSchemaError):
        orchestrator.run()

    report = orchestrator.report
    assert report.status == ImportStatus.FAILED
    assert "discussion_tag" in report.error
    assert report.get("channels").status == ImportStatus.COMPLETED
    assert report.get("posts").status == ImportStatus.FAILED
    assert report.get("comments") is None
    assert target.rows("posts") == []


def test_report_is_saved(
    forum: LegacyForum,
    reader: SqlSourceReader,
    target: MemoryTarget,
    config: ImportConfig,
    context: MappingContext,
) -> None:
    config = replace(config, save_report=True)

    ImportOrchestrator(reader, target, config, context).run()

    saved = list((Path(config.output_dir) / "logs").glob("import_report_*.json"))
    assert len(saved) == 1
    data = json.loads(saved[0].read_text())
    assert data["status"] == "completed"
    assert data["entities"]["posts"]["failed"] == 1
    assert data["entities"]["posts"]["failures"][0]["row_id"] == 5


def test_unreadable_dates_stay_row_level(
    legacy: LegacyForum,
    reader: SqlSourceReader,
    target: MemoryTarget,
    config: ImportConfig,
    context: MappingContext,
) -> None:
    with legacy.engine.begin() as conn:
        conn.execute(text(
            "INSERT INTO users (id, username, is_email_confirmed, suspended_until) VALUES "
            "(1, 'alice', 1, '0000-00-00 00:00:00'), (2, 'bob', 0, 'not a date')"
        ))

    report = ImportOrchestrator(reader, target, config, context).run()

    assert report.status == ImportStatus.COMPLETED
    users = report.get("users")
    assert (users.imported, users.failed) == (1, 1)
    assert users.failures[0].row_id == 2
    assert "suspended_until" in users.failures[0].message
    assert target.tables["users"][(1,)]["suspended_until"] is None

"""Relational target writing straight into the new platform's tables."""

from contextlib import contextmanager, nullcontext
from typing import Dict, Iterator, Optional, Union
import logging

from sqlalchemy import column, create_engine, delete, func, insert, select, table, text, update
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError, SQLAlchemyError

from .base import BaseTarget
from ..errors import PersistenceError, TargetUnavailableError
from ..models.drafts import CONTENT_TABLES, ReactionType

logger = logging.getLogger(__name__)

REACTION_ICON = "emoji:👍"

reaction_sets = table("reaction_sets", column("id"), column("name"))
reaction_types = table(
    "reaction_types",
    column("id"),
    column("reaction_set_id"),
    column("name"),
    column("icon"),
    column("score"),
)
reactions = table(
    "reactions",
    column("id"),
    column("reaction_type_id"),
    column("user_id"),
    column("content_type"),
    column("content_id"),
)


class SqlTarget(BaseTarget):
    """
    Writes drafts into the target database with SQLAlchemy Core.

    Each source row commits on its own, writes and all, so that a rejected
    row never takes its neighbours down with it. Writes outside a row commit
    individually. In dry-run mode the whole run happens inside one
    transaction that is rolled back on close, each row guarded by a
    savepoint.
    """

    def __init__(
        self,
        engine: Union[Engine, str],
        dry_run: bool = False,
        disable_foreign_key_checks: bool = True,
    ):
        """
        Initialize the target.

        Args:
            engine: SQLAlchemy engine or database URL of the target store
            dry_run: Roll every write back when the target is closed
            disable_foreign_key_checks: Turn off FK checks for the session (MySQL)
        """
        super().__init__(dry_run=dry_run)
        if isinstance(engine, str):
            try:
                engine = create_engine(engine)
            except SQLAlchemyError as e:
                raise TargetUnavailableError(f"Invalid target database URL: {e}") from e
        self.engine = engine
        self.disable_foreign_key_checks = disable_foreign_key_checks
        self._conn: Optional[Connection] = None
        self._outer = None
        self._in_row = False

    def open(self) -> None:
        try:
            self._conn = self.engine.connect()
            if self.dry_run:
                self._outer = self._conn.begin()
            if self.disable_foreign_key_checks and self.engine.dialect.name == "mysql":
                if self.dry_run:
                    self._conn.execute(text("SET foreign_key_checks = 0"))
                else:
                    with self._conn.begin():
                        self._conn.execute(text("SET foreign_key_checks = 0"))
        except (OperationalError, InterfaceError) as e:
            raise TargetUnavailableError(f"Failed to connect to target: {e}") from e

        logger.info(
            f"Writing to {self.engine.url.render_as_string(hide_password=True)}"
            + (" (dry run, rolled back on close)" if self.dry_run else "")
        )

    def close(self) -> None:
        if self._conn is None:
            return
        if self._outer is not None:
            self._outer.rollback()
            self._outer = None
        self._conn.close()
        self._conn = None

    @contextmanager
    def _transaction(self) -> Iterator[Connection]:
        if self._conn is None:
            self.open()
        conn = self._conn
        if self._in_row:
            scope = nullcontext()
        elif self.dry_run:
            scope = conn.begin_nested()
        else:
            scope = conn.begin()
        try:
            with scope:
                yield conn
        except IntegrityError as e:
            raise PersistenceError(f"Rejected by target: {e.orig}") from e
        except (OperationalError, InterfaceError) as e:
            raise TargetUnavailableError(f"Lost connection to target: {e}") from e
        except SQLAlchemyError as e:
            raise PersistenceError(f"Target write failed: {e}") from e

    @contextmanager
    def _atomic(self) -> Iterator[None]:
        with self._transaction():
            self._in_row = True
            try:
                yield
            finally:
                self._in_row = False

    def insert(self, table_name: str, row: Dict[str, object]) -> None:
        target = table(table_name, *(column(name) for name in row))
        with self._transaction() as conn:
            conn.execute(insert(target).values(**row))

    def seed_reaction_type(self, name: str, score: int) -> ReactionType:
        with self._transaction() as conn:
            set_id = conn.execute(insert(reaction_sets).values(name=name)).lastrowid
            type_id = conn.execute(
                insert(reaction_types).values(
                    reaction_set_id=set_id,
                    name=name,
                    icon=REACTION_ICON,
                    score=score,
                )
            ).lastrowid
        logger.info(f"Seeded reaction type {name!r} (#{type_id}, weight {score})")
        return ReactionType(id=type_id, name=name, score=score)

    def delete_reactions(self, content_type: str, content_id: int) -> int:
        with self._transaction() as conn:
            result = conn.execute(
                delete(reactions).where(
                    reactions.c.content_type == content_type,
                    reactions.c.content_id == content_id,
                )
            )
            return result.rowcount

    def recompute_score(self, content_type: str, content_id: int) -> int:
        content = table(CONTENT_TABLES[content_type], column("id"), column("score"))
        weight = (
            select(func.coalesce(func.sum(reaction_types.c.score), 0))
            .select_from(
                reactions.join(reaction_types, reaction_types.c.id == reactions.c.reaction_type_id)
            )
            .where(
                reactions.c.content_type == content_type,
                reactions.c.content_id == content_id,
            )
        )
        with self._transaction() as conn:
            score = int(conn.execute(weight).scalar_one())
            conn.execute(update(content).where(content.c.id == content_id).values(score=score))
        return score

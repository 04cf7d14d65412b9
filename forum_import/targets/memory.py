"""In-memory target used for dry runs."""

from collections import defaultdict
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple
import itertools

from .base import BaseTarget
from ..errors import PersistenceError
from ..models.drafts import CONTENT_TABLES, ReactionType

# Primary key columns of the target tables; tables not listed get surrogate ids.
TABLE_KEYS: Dict[str, Tuple[str, ...]] = {
    "users": ("id",),
    "groups": ("id",),
    "group_user": ("group_id", "user_id"),
    "channels": ("id",),
    "structure": ("content_type", "content_id"),
    "posts": ("id",),
    "comments": ("id",),
    "post_user": ("post_id", "user_id"),
    "mentions": ("content_type", "content_id", "mentionable_type", "mentionable_id"),
}


class MemoryTarget(BaseTarget):
    """
    Keeps imported rows in dictionaries keyed by primary key.

    Enforces key uniqueness the way the real store does, so a dry run
    surfaces the same identifier collisions a real run would. Writes made
    inside a row are journalled and undone when the row fails.
    """

    def __init__(self, dry_run: bool = True):
        super().__init__(dry_run=dry_run)
        self.tables: Dict[str, Dict[Any, Dict[str, Any]]] = defaultdict(dict)
        self.reaction_types: Dict[int, ReactionType] = {}
        self._ids = itertools.count(1)
        self._undo: Optional[List[Callable[[], None]]] = None

    @contextmanager
    def _atomic(self) -> Iterator[None]:
        self._undo = []
        try:
            yield
        except Exception:
            for undo in reversed(self._undo):
                undo()
            raise
        finally:
            self._undo = None

    def _journal(self, undo: Callable[[], None]) -> None:
        if self._undo is not None:
            self._undo.append(undo)

    def insert(self, table: str, row: Dict[str, object]) -> None:
        columns = TABLE_KEYS.get(table)
        if columns is None:
            key = next(self._ids)
            row = {"id": key, **row}
        else:
            key = tuple(row[name] for name in columns)
            if key in self.tables[table]:
                raise PersistenceError(
                    f"Duplicate entry {', '.join(str(k) for k in key)} for {table} primary key"
                )
        self.tables[table][key] = dict(row)
        self._journal(lambda: self.tables[table].pop(key))

    def seed_reaction_type(self, name: str, score: int) -> ReactionType:
        reaction_type = ReactionType(id=len(self.reaction_types) + 1, name=name, score=score)
        self.reaction_types[reaction_type.id] = reaction_type
        return reaction_type

    def delete_reactions(self, content_type: str, content_id: int) -> int:
        stale = [key for key, row in self.tables["reactions"].items()
                 if row["content_type"] == content_type and row["content_id"] == content_id]
        reactions = self.tables["reactions"]
        for key in stale:
            removed = reactions.pop(key)
            self._journal(lambda key=key, removed=removed: reactions.__setitem__(key, removed))
        return len(stale)

    def reactions_for(self, content_type: str, content_id: int) -> List[Dict[str, Any]]:
        return [row for row in self.tables["reactions"].values()
                if row["content_type"] == content_type and row["content_id"] == content_id]

    def recompute_score(self, content_type: str, content_id: int) -> int:
        score = sum(
            self.reaction_types[row["reaction_type_id"]].score
            for row in self.reactions_for(content_type, content_id)
        )
        content = self.tables[CONTENT_TABLES[content_type]].get((content_id,))
        if content is None:
            raise PersistenceError(f"No {content_type} #{content_id} to score")
        previous = content["score"]
        self._journal(lambda: content.__setitem__("score", previous))
        content["score"] = score
        return score

    def rows(self, table: str) -> List[Dict[str, Any]]:
        """Rows of a table in insertion order."""
        return list(self.tables[table].values())

"""Base target interface for the new platform's store."""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Dict, Iterator

from ..models.drafts import ChannelDraft, EntityDraft, ReactionType


class BaseTarget(ABC):
    """
    Base class for import targets.

    A target is the bulk-import path into the new platform: it writes
    historical rows directly and never fires the platform's runtime hooks
    (notifications, search indexing) that interactive creation would.
    Rows are written with the identifiers the drafts carry.
    """

    def __init__(self, dry_run: bool = False):
        """
        Initialize the target.

        Args:
            dry_run: Whether writes are kept out of the real store
        """
        self.dry_run = dry_run
        self._created: Dict[str, int] = {}
        self._structure_position = 0

    def __enter__(self) -> "BaseTarget":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def open(self) -> None:
        """Prepare the store for a bulk import."""

    def close(self) -> None:
        """Release the store."""

    @contextmanager
    def row(self) -> Iterator[None]:
        """
        Group the writes of one source row into a single unit.

        Either everything written inside the block persists or, when the
        block raises, none of it does.
        """
        created = dict(self._created)
        position = self._structure_position
        try:
            with self._atomic():
                yield
        except Exception:
            self._created = created
            self._structure_position = position
            raise

    @abstractmethod
    def _atomic(self) -> Iterator[None]:
        """Context manager making the enclosed writes all-or-nothing."""

    def create(self, draft: EntityDraft) -> None:
        """
        Persist one draft.

        Raises:
            PersistenceError: The store rejected the row
            TargetUnavailableError: The store could not be reached
        """
        self.insert(draft.table, draft.to_row())
        if isinstance(draft, ChannelDraft):
            self._structure_position += 1
            self.insert("structure", {
                "content_type": "channel",
                "content_id": draft.id,
                "position": self._structure_position,
                "is_listed": draft.is_listed,
            })
        self._created[draft.table] = self._created.get(draft.table, 0) + 1

    @abstractmethod
    def insert(self, table: str, row: Dict[str, object]) -> None:
        """Insert one row into a target table."""

    @abstractmethod
    def seed_reaction_type(self, name: str, score: int) -> ReactionType:
        """Create the reaction type legacy likes are imported as."""

    @abstractmethod
    def delete_reactions(self, content_type: str, content_id: int) -> int:
        """Delete every reaction on a piece of content; returns how many went."""

    @abstractmethod
    def recompute_score(self, content_type: str, content_id: int) -> int:
        """Set the content's score to the sum of its reactions' weights and return it."""

    @property
    def created_counts(self) -> Dict[str, int]:
        """Rows written per target table so far."""
        return dict(self._created)

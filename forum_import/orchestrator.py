"""Import orchestrator - sequences the entity phases of a forum import."""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, List, Optional

from .errors import FatalImportError, MappingError, RowError
from .models.config import ImportConfig
from .models.context import ChannelIndex, MappingContext, UserIndex
from .models.drafts import (
    COMMENT_CONTENT,
    POST_CONTENT,
    EntityDraft,
    Fail,
    MentionLink,
    Skip,
)
from .models.report import EntityReport, ImportReport, ImportStatus, utcnow
from .readers import queries
from .readers.base import BaseReader, SourceQuery, SourceRow
from .services import mappers
from .services.mentions import MentionExtractor
from .services.reactions import ReactionAggregator, parse_liked_by
from .targets.base import BaseTarget

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Phase:
    """One entity kind: where its rows come from, how they map, what follows a write."""
    entity: str
    build_query: Callable[[BaseReader, MappingContext], SourceQuery]
    mapper: Callable[[Any, MappingContext], Any]
    after_persist: Optional[Callable[[Any, EntityDraft], None]] = None


class ImportOrchestrator:
    """
    Orchestrates a complete forum import.

    Handles:
    - Seeding the reaction type legacy likes become
    - Running each entity phase in dependency order
    - Isolating row-level failures into the report
    - Aborting on connectivity or schema failures
    - Saving the run report
    """

    def __init__(
        self,
        reader: BaseReader,
        target: BaseTarget,
        config: Optional[ImportConfig] = None,
        context: Optional[MappingContext] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            reader: Reader over the legacy store
            target: Bulk-import target for the new platform
            config: Run configuration
            context: Starting mapping context (system group map, clock)
        """
        self.config = config or ImportConfig()
        self.reader = reader
        self.target = target
        self.context = context or MappingContext()
        self.mentions = MentionExtractor()
        self.channels = ChannelIndex()
        self.users = UserIndex()
        self.aggregator: Optional[ReactionAggregator] = None
        self.report: Optional[ImportReport] = None

    def phases(self) -> List[Phase]:
        """The phases of a run, each depending on everything before it."""
        return [
            Phase("users", lambda r, c: queries.users_query(r), mappers.map_user, self._track_user),
            Phase("groups", lambda r, c: queries.groups_query(r), mappers.map_group),
            Phase(
                "group memberships",
                lambda r, c: queries.group_memberships_query(r),
                mappers.map_group_membership,
            ),
            Phase(
                "channels",
                lambda r, c: queries.channels_query(r),
                mappers.map_channel,
                self._track_channel,
            ),
            Phase(
                "posts",
                lambda r, c: queries.posts_query(r, c.channel_ids),
                mappers.map_post,
                self._finish_post,
            ),
            Phase(
                "post read states",
                lambda r, c: queries.post_read_states_query(r),
                mappers.map_post_read_state,
            ),
            Phase(
                "comments",
                lambda r, c: queries.comments_query(r),
                mappers.map_comment,
                self._finish_comment,
            ),
        ]

    def run(self) -> ImportReport:
        """
        Run the complete import.

        Returns:
            ImportReport with per-entity counts and row failures

        Raises:
            FatalImportError: A source or target failure aborted the run
        """
        self.report = ImportReport(name=self.config.name, dry_run=self.config.dry_run)
        self.report.started_at = utcnow()
        self.report.status = ImportStatus.RUNNING

        try:
            with self.target:
                self._seed_reactions()
                for phase in self.phases():
                    self._run_phase(phase)

            self.report.status = ImportStatus.COMPLETED
            logger.info("=== IMPORT COMPLETED ===")

        except FatalImportError as e:
            logger.error(f"Import aborted: {e}")
            self.report.status = ImportStatus.FAILED
            self.report.error = str(e)
            raise

        finally:
            self.report.completed_at = utcnow()
            if self.config.save_report:
                self._save_report()

        return self.report

    def _seed_reactions(self) -> None:
        try:
            reaction_type = self.target.seed_reaction_type(
                self.config.reaction_type_name,
                self.config.reaction_type_score,
            )
        except RowError as e:
            raise FatalImportError(f"Could not seed reaction type: {e}") from e
        self.aggregator = ReactionAggregator(self.target, reaction_type)

    def _run_phase(self, phase: Phase) -> None:
        """Run one phase: count, then stream, map and persist every row."""
        if phase.entity == "posts":
            # Channels are settled once posts start referencing them.
            self.context = self.context.with_channels(self.channels.freeze())

        entry = self.report.start_entity(phase.entity)

        try:
            query = phase.build_query(self.reader, self.context)
            entry.total = self.reader.count(query)
            logger.info(f"Importing {entry.total} {phase.entity}...")

            for batch in self.reader.stream(query):
                for raw in batch:
                    self._import_row(phase, query, raw, entry)
                logger.info(f"Processed {entry.attempted}/{entry.total} {phase.entity}")

        except FatalImportError:
            entry.status = ImportStatus.FAILED
            raise

        finally:
            entry.completed_at = utcnow()

        entry.status = ImportStatus.COMPLETED
        logger.info(
            f"Imported {entry.imported}/{entry.attempted} {phase.entity} "
            f"({entry.skipped} skipped, {entry.failed} failed)"
        )

    def _import_row(
        self,
        phase: Phase,
        query: SourceQuery,
        raw: SourceRow,
        entry: EntityReport,
    ) -> None:
        """Import a single row; anything short of a fatal error stays in the report."""
        row_id = query.row_id(raw)

        try:
            row = query.row_model.from_source(raw)
            result = phase.mapper(row, self.context)

            if isinstance(result, Skip):
                entry.record_skip(row_id, result.reason)
                logger.debug(f"Skipped {phase.entity} #{row_id}: {result.reason}")
                return
            if isinstance(result, Fail):
                raise MappingError(result.reason, row_id=row_id)

            # The draft and its reactions, score and mention links land together.
            with self.target.row():
                self.target.create(result)
                if phase.after_persist is not None:
                    phase.after_persist(row, result)

        except FatalImportError:
            raise

        except Exception as e:
            prefix = f"Error importing {phase.entity} #{row_id}: " if row_id is not None else ""
            logger.warning(prefix + str(e))
            entry.record_failure(row_id, str(e))
            return

        entry.record_imported()

    def _track_user(self, row, draft) -> None:
        self.users.add(draft.id)

    def _track_channel(self, row, draft) -> None:
        self.channels.add(draft.id)

    def _finish_post(self, row, draft) -> None:
        self.aggregator.apply(POST_CONTENT, draft.id, self._known_likes(row))
        self._link_mentions(POST_CONTENT, draft.id, draft.parsed_body)

    def _finish_comment(self, row, draft) -> None:
        self.aggregator.apply(COMMENT_CONTENT, draft.id, self._known_likes(row))
        self._link_mentions(COMMENT_CONTENT, draft.id, draft.parsed_body)

    def _known_likes(self, row) -> List[int]:
        """Liking user ids that were imported, one entry per like."""
        return self.users.keep_known(parse_liked_by(row.liked_by))

    def _link_mentions(self, content_type: str, content_id: int, body: str) -> None:
        """Record a mention link for every imported user the content mentions."""
        mentioned = self.mentions.extract(body)
        known = self.users.known(mentioned)
        if len(known) < len(mentioned):
            logger.debug(
                f"{content_type} #{content_id} mentions users that were not imported: "
                f"{sorted(mentioned - known)}"
            )

        for user_id in sorted(known):
            self.target.create(MentionLink(
                content_type=content_type,
                content_id=content_id,
                user_id=user_id,
            ))

    def _save_report(self) -> None:
        """Save the import report."""
        logs_dir = Path(self.config.output_dir) / "logs"
        logs_dir.mkdir(parents=True, exist_ok=True)
        filepath = logs_dir / f"import_report_{utcnow().strftime('%Y%m%d_%H%M%S')}.json"
        with open(filepath, 'w') as f:
            json.dump(self.report.to_dict(), f, indent=2, default=str)
        logger.info(f"Saved import report to {filepath}")

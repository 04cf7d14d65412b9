"""Error taxonomy for the importer.

Fatal errors abort the whole run. Row errors are caught at the orchestrator's
per-row boundary, recorded in the import report and the row is skipped.
"""

from typing import Optional


class ForumImportError(Exception):
    """Base class for all importer errors."""


class FatalImportError(ForumImportError):
    """An error that makes continuing the run pointless (connectivity, schema)."""


class SourceUnavailableError(FatalImportError):
    """A count or fetch against the legacy store failed."""


class SourceSchemaError(FatalImportError):
    """A legacy table does not have the columns its row schema requires."""

    def __init__(self, entity: str, missing: list):
        self.entity = entity
        self.missing = sorted(missing)
        super().__init__(
            f"Legacy {entity} rows are missing required columns: {', '.join(self.missing)}"
        )


class TargetUnavailableError(FatalImportError):
    """The target store could not be reached."""


class RowError(ForumImportError):
    """An error confined to a single source row."""

    def __init__(self, message: str, row_id: Optional[int] = None):
        self.row_id = row_id
        super().__init__(message)


class MalformedContentError(RowError):
    """Legacy rich-text content is not well-formed XML."""


class RowValidationError(RowError):
    """A source row value does not fit its schema."""


class MappingError(RowError):
    """A mapper could not resolve a relation the draft requires."""


class PersistenceError(RowError):
    """The target store rejected a write (duplicate identifier, constraint)."""

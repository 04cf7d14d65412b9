"""Base source reader interface."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple, Type
import logging

from sqlalchemy import Date, DateTime, Select, String, Time, func, select, type_coerce
from sqlalchemy.sql.expression import ColumnElement, FromClause

from ..errors import SourceSchemaError
from ..models.rows import SourceRowModel

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 1000

SourceRow = Dict[str, Any]


def raw_temporal_columns(entries: Tuple[Any, ...]) -> Tuple[Any, ...]:
    """
    Expand tables into their columns and select date/time columns as raw text.

    Legacy stores hold zero-dates and other values the driver cannot turn
    into a datetime. Reading them as text leaves the conversion to the row
    schema, where a bad value only fails its own row.
    """
    columns = []
    for entry in entries:
        for col in (entry.c if isinstance(entry, FromClause) else (entry,)):
            if isinstance(getattr(col, "type", None), (DateTime, Date, Time)):
                col = type_coerce(col, String).label(col.name)
            columns.append(col)
    return tuple(columns)


@dataclass(frozen=True)
class SourceQuery:
    """
    Description of one ordered read over the legacy store.

    ``columns`` are the plain columns of the primary table, ``projections``
    the labelled correlated subqueries (min / count / group_concat) added on
    top. The count query uses the same source and filters but no projections.
    """
    entity: str
    source: FromClause
    columns: Tuple[Any, ...]
    row_model: Type[SourceRowModel]
    order_by: Tuple[ColumnElement, ...]
    filters: Tuple[ColumnElement, ...] = ()
    projections: Tuple[ColumnElement, ...] = ()
    key_columns: Tuple[str, ...] = field(default=("id",))

    def select_statement(self, offset: int = 0, limit: Optional[int] = None) -> Select:
        stmt = select(*raw_temporal_columns(self.columns), *self.projections).select_from(self.source)
        if self.filters:
            stmt = stmt.where(*self.filters)
        stmt = stmt.order_by(*self.order_by)
        if limit is not None:
            stmt = stmt.limit(limit).offset(offset)
        return stmt

    def count_statement(self) -> Select:
        stmt = select(func.count()).select_from(self.source)
        if self.filters:
            stmt = stmt.where(*self.filters)
        return stmt

    def row_id(self, row: SourceRow) -> Optional[Any]:
        """Identifier used when reporting on a row."""
        values = [row.get(column) for column in self.key_columns]
        if len(values) == 1:
            return values[0]
        if all(v is None for v in values):
            return None
        return ":".join(str(v) for v in values)


class BaseReader(ABC):
    """
    Base class for legacy store readers.

    Readers page through one query at a time as a single ordered cursor
    split into fixed-size chunks. Any failure here is fatal to the run.
    """

    def __init__(self, chunk_size: int = DEFAULT_CHUNK_SIZE):
        """
        Initialize the reader.

        Args:
            chunk_size: Number of rows per fetched batch
        """
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        self.chunk_size = chunk_size

    @abstractmethod
    def table(self, name: str) -> FromClause:
        """Look up a legacy table by name."""

    @abstractmethod
    def count(self, query: SourceQuery) -> int:
        """Total number of rows the query will yield."""

    @abstractmethod
    def fetch_batch(self, query: SourceQuery, offset: int, limit: int) -> List[SourceRow]:
        """
        Fetch one batch of rows.

        Args:
            query: The query to page through
            offset: Position of the first row in the overall ordering
            limit: Maximum rows to fetch

        Returns:
            List of rows as column -> value dictionaries
        """

    def stream(self, query: SourceQuery, offset: int = 0) -> Iterator[List[SourceRow]]:
        """
        Stream rows in batches, starting at ``offset``.

        Yields:
            Batches of rows, in the query's order across batch boundaries
        """
        checked = False

        while True:
            batch = self.fetch_batch(query, offset=offset, limit=self.chunk_size)
            if not batch:
                break

            if not checked:
                self.check_columns(query, batch[0])
                checked = True

            logger.debug(f"Fetched {len(batch)} {query.entity} rows at offset {offset}")
            yield batch
            offset += len(batch)

            if len(batch) < self.chunk_size:
                break

    def check_columns(self, query: SourceQuery, row: SourceRow) -> None:
        """Fail fast when a fetched row lacks a column its schema requires."""
        missing = query.row_model.required_columns() - set(row)
        if missing:
            raise SourceSchemaError(query.entity, list(missing))

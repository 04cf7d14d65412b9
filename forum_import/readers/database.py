"""Relational reader for the legacy forum database."""

from typing import Dict, List, Union
import logging

from sqlalchemy import MetaData, Table, create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import NoSuchTableError, SQLAlchemyError

from .base import BaseReader, SourceQuery, SourceRow, DEFAULT_CHUNK_SIZE
from ..errors import SourceSchemaError, SourceUnavailableError

logger = logging.getLogger(__name__)


class SqlSourceReader(BaseReader):
    """
    Reads the legacy store through SQLAlchemy Core.

    Tables are reflected on first use so that every column the legacy
    installation actually has (including extension columns) is selected.
    Only SELECT statements are ever issued.
    """

    def __init__(
        self,
        engine: Union[Engine, str],
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ):
        """
        Initialize the reader.

        Args:
            engine: SQLAlchemy engine or database URL of the legacy store
            chunk_size: Number of rows per fetched batch
        """
        super().__init__(chunk_size)
        if isinstance(engine, str):
            try:
                engine = create_engine(engine)
            except SQLAlchemyError as e:
                raise SourceUnavailableError(f"Invalid source database URL: {e}") from e
        self.engine = engine
        self._metadata = MetaData()
        self._tables: Dict[str, Table] = {}

    def table(self, name: str) -> Table:
        """Reflect (once) and return a legacy table."""
        if name not in self._tables:
            try:
                self._tables[name] = Table(name, self._metadata, autoload_with=self.engine)
            except NoSuchTableError as e:
                raise SourceSchemaError(name, [f"table {name}"]) from e
            except SQLAlchemyError as e:
                raise SourceUnavailableError(f"Failed to inspect legacy table {name}: {e}") from e
            logger.debug(f"Reflected legacy table {name} ({len(self._tables[name].columns)} columns)")
        return self._tables[name]

    def count(self, query: SourceQuery) -> int:
        try:
            with self.engine.connect() as conn:
                return int(conn.execute(query.count_statement()).scalar_one())
        except SQLAlchemyError as e:
            raise SourceUnavailableError(f"Failed to count {query.entity}: {e}") from e

    def fetch_batch(self, query: SourceQuery, offset: int, limit: int) -> List[SourceRow]:
        stmt = query.select_statement(offset=offset, limit=limit)
        try:
            with self.engine.connect() as conn:
                result = conn.execute(stmt)
                return [dict(row._mapping) for row in result]
        except SQLAlchemyError as e:
            raise SourceUnavailableError(
                f"Failed to fetch {query.entity} at offset {offset}: {e}"
            ) from e
        except (ValueError, TypeError) as e:
            # A result processor choked on a value the driver handed back.
            raise SourceUnavailableError(
                f"Undecodable {query.entity} value at offset {offset}: {e}"
            ) from e

    def close(self) -> None:
        self.engine.dispose()

    def __repr__(self) -> str:
        return f"SqlSourceReader(url={self.engine.url!r}, chunk_size={self.chunk_size})"


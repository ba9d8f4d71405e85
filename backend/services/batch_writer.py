"""
Batched persistence gateway.

Writes are split into chunks that are executed and committed one after the
other. A failing chunk is rolled back and aborts the whole flush; chunks
committed before it stay in place.
"""
import logging
from typing import Iterable, List, Optional, Sequence

from sqlalchemy import delete, insert
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError

from services.errors import PersistenceChunkFailed
from utils.batching import chunked

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 100

_UPSERT_DIALECTS = {
    'sqlite': sqlite_insert,
    'postgresql': pg_insert,
}


class BatchWriter:
    """
    Chunked insert / upsert / delete against the catalog database.

    Args:
        session: SQLAlchemy session (``db.session`` inside the app)
        chunk_size: Default rows per chunk
    """

    def __init__(self, session, chunk_size: int = DEFAULT_CHUNK_SIZE):
        self.session = session
        self.chunk_size = chunk_size

    def insert(self, model, rows: Sequence[dict], chunk_size: Optional[int] = None) -> int:
        """Insert new rows. Returns the number of rows written."""
        table = model.__table__
        return self._apply(table, rows, chunk_size,
                           lambda chunk: self.session.execute(insert(table), chunk))

    def upsert(self, model, rows: Sequence[dict], conflict_keys: Optional[Iterable[str]] = None,
               chunk_size: Optional[int] = None) -> int:
        """
        Insert rows, replacing the non-key columns of rows that already exist.

        Args:
            conflict_keys: Columns of a unique constraint identifying a row
                           (primary key if omitted)
        """
        table = model.__table__
        keys = list(conflict_keys) if conflict_keys else [c.name for c in table.primary_key.columns]
        dialect_insert = self._upsert_construct()

        def execute(chunk):
            stmt = dialect_insert(table)
            replaced = {
                column: stmt.excluded[column]
                for column in chunk[0].keys() if column not in keys
            }
            stmt = stmt.on_conflict_do_update(index_elements=keys, set_=replaced)
            self.session.execute(stmt, chunk)

        return self._apply(table, rows, chunk_size, execute)

    def delete(self, model, ids: Sequence[int], chunk_size: Optional[int] = None) -> int:
        """Delete rows by primary key id."""
        table = model.__table__
        return self._apply(table, ids, chunk_size,
                           lambda chunk: self.session.execute(delete(table).where(table.c.id.in_(chunk))))

    def _upsert_construct(self):
        dialect = self.session.get_bind().dialect.name
        construct = _UPSERT_DIALECTS.get(dialect)
        if construct is None:
            raise ValueError(f"Upsert is not supported on the '{dialect}' dialect")
        return construct

    def _apply(self, table, items: Sequence, chunk_size: Optional[int], execute) -> int:
        items: List = list(items)
        if not items:
            return 0

        size = chunk_size or self.chunk_size
        written = 0
        for index, chunk in enumerate(chunked(items, size)):
            try:
                execute(chunk)
                self.session.commit()
            except SQLAlchemyError as e:
                self.session.rollback()
                logger.error("[BatchWriter] %s chunk %d failed: %s", table.name, index, e)
                raise PersistenceChunkFailed(table.name, index, index * size, e) from e
            written += len(chunk)

        logger.info("[BatchWriter] %s: %d rows in %d chunks", table.name, written,
                    (written + size - 1) // size)
        return written

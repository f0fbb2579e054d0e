# ledger/db/store.py
"""
Generic table access used by every ledger service.

A Store wraps an Engine; `Store.begin()` yields a Unit bound to one
transaction. Units offer select / insert / update / delete keyed by a table
and a filter, plus the atomic increment used for payment allocation.
Driver failures never leak out as SQLAlchemy exceptions: integrity
violations become ConflictError, anything else StoreError.
"""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Union

from sqlalchemy import Table, and_, select, true
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.sql.elements import ColumnElement

from ledger.errors import ConflictError, StoreError

logger = logging.getLogger(__name__)

Row = Dict[str, Any]
Filter = Union[Mapping[str, Any], ColumnElement, None]


def translate_error(exc: SQLAlchemyError, action: str):
    if isinstance(exc, IntegrityError):
        return ConflictError(f"{action} rejected by database constraint: {exc.orig}")
    return StoreError(f"{action} failed: {exc}")


def _where(table: Table, filter: Filter):
    if filter is None:
        return true()
    if isinstance(filter, ColumnElement):
        return filter

    clauses = []
    for name, value in filter.items():
        col = table.c[name]
        if value is None:
            clauses.append(col.is_(None))
        elif isinstance(value, (list, tuple, set, frozenset)):
            clauses.append(col.in_(list(value)))
        else:
            clauses.append(col == value)
    return and_(true(), *clauses)


class Unit:
    """Table operations bound to one open transaction."""

    def __init__(self, conn: Connection):
        self.conn = conn

    def execute(self, stmt, action: str = "Query"):
        try:
            return self.conn.execute(stmt)
        except SQLAlchemyError as exc:
            raise translate_error(exc, action) from exc

    def select(
        self,
        table: Table,
        filter: Filter = None,
        order_by: Iterable = (),
    ) -> List[Row]:
        stmt = select(table).where(_where(table, filter)).order_by(*order_by)
        rows = self.execute(stmt, f"Reading {table.name}").mappings().all()
        return [dict(row) for row in rows]

    def first(self, table: Table, filter: Filter = None) -> Optional[Row]:
        rows = self.select(table, filter, order_by=(table.c.id,))
        return rows[0] if rows else None

    def insert(self, table: Table, rows: Union[Row, List[Row]]) -> List[Row]:
        if isinstance(rows, Mapping):
            rows = [rows]

        inserted = []
        for values in rows:
            result = self.execute(table.insert().values(**values), f"Inserting into {table.name}")
            new_id = result.inserted_primary_key[0]
            inserted.append(self.first(table, {"id": new_id}))
        return inserted

    def update(self, table: Table, patch: Row, filter: Filter) -> int:
        stmt = table.update().where(_where(table, filter)).values(**patch)
        return self.execute(stmt, f"Updating {table.name}").rowcount

    def delete(self, table: Table, filter: Filter) -> int:
        stmt = table.delete().where(_where(table, filter))
        return self.execute(stmt, f"Deleting from {table.name}").rowcount

    def increment(
        self,
        table: Table,
        column: str,
        amount: int,
        row_id: int,
        ceiling: Optional[str] = None,
    ) -> int:
        """
        UPDATE table SET column = column + amount WHERE id = row_id
        [AND column + amount <= ceiling]

        Returns the number of rows changed: 0 means the row is missing or the
        ceiling would have been crossed.
        """
        col = table.c[column]
        conditions = [table.c.id == row_id]
        if ceiling is not None:
            conditions.append(col + amount <= table.c[ceiling])
        stmt = table.update().where(and_(*conditions)).values({column: col + amount})
        return self.execute(stmt, f"Updating {table.name}.{column}").rowcount

    @contextmanager
    def savepoint(self) -> Iterator["Unit"]:
        """Nested transaction; an exception inside rolls back only this block."""
        try:
            nested = self.conn.begin_nested()
        except SQLAlchemyError as exc:
            raise translate_error(exc, "Opening savepoint") from exc
        try:
            yield self
        except BaseException:
            nested.rollback()
            raise
        else:
            try:
                nested.commit()
            except SQLAlchemyError as exc:
                raise translate_error(exc, "Releasing savepoint") from exc


class Store:
    def __init__(self, engine: Engine):
        self.engine = engine

    @contextmanager
    def begin(self) -> Iterator[Unit]:
        """Open a transaction; commit on success, roll back on any exception."""
        try:
            with self.engine.begin() as conn:
                yield Unit(conn)
        except SQLAlchemyError as exc:
            # raised by BEGIN / COMMIT themselves
            logger.error("Transaction failed: %s", exc)
            raise translate_error(exc, "Transaction") from exc

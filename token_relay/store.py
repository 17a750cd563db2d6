"""SQL-backed state -> token store.

Every statement is built with the SQLAlchemy expression language so state and
token values always travel as bound parameters.
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Iterator, Optional

from sqlalchemy import BigInteger, Column, MetaData, String, Table, Text, create_engine, delete, insert, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import InterfaceError, OperationalError, SQLAlchemyError

DEFAULT_TABLE = "access_tokens"


class StoreError(Exception):
    """Raised when a store operation fails."""


class StoreUnavailable(StoreError):
    """Raised when the database cannot be reached."""


@dataclass(frozen=True)
class TokenRecord:
    state: str
    token: str


def _build_table(name: str) -> Table:
    return Table(
        name,
        MetaData(),
        Column("state", String(64), primary_key=True),
        Column("token", Text, nullable=False),
        Column("created_at", BigInteger, nullable=True),
    )


@contextmanager
def _translate_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except (OperationalError, InterfaceError) as exc:
        raise StoreUnavailable(f"{operation}: database unavailable") from exc
    except SQLAlchemyError as exc:
        raise StoreError(f"{operation} failed") from exc


class TokenStore:
    """Write-once, read-once records keyed by state.

    Records are never updated. With ``ttl_seconds`` set, records older than the
    TTL are treated as absent and can be removed with :meth:`purge_expired`;
    without it they live until collected.
    """

    def __init__(
        self,
        engine: Engine,
        table_name: str = DEFAULT_TABLE,
        *,
        ttl_seconds: Optional[int] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._engine = engine
        self._table = _build_table(table_name)
        self._ttl = ttl_seconds
        self._clock = clock

    @classmethod
    def from_config(cls, config) -> "TokenStore":
        with _translate_errors("connect"):
            engine = create_engine(config.database_url(), pool_pre_ping=True, future=True)
        store = cls(engine, config.dbtable, ttl_seconds=config.token_ttl_seconds)
        if config.create_tables:
            store.create_schema()
        return store

    @property
    def table_name(self) -> str:
        return self._table.name

    def create_schema(self) -> None:
        """Create the token table if it does not exist yet."""
        with _translate_errors("create_schema"):
            self._table.metadata.create_all(self._engine, checkfirst=True)

    def _now(self) -> int:
        return int(self._clock())

    def _expired(self, created_at: Optional[int]) -> bool:
        if self._ttl is None or created_at is None:
            return False
        return self._now() - created_at > self._ttl

    def insert(self, state: str, token: str) -> None:
        """Store ``token`` under ``state``. A state already present is a StoreError."""
        stmt = insert(self._table).values(state=state, token=token, created_at=self._now())
        with _translate_errors("insert"), self._engine.begin() as conn:
            conn.execute(stmt)

    def lookup(self, state: str) -> Optional[TokenRecord]:
        stmt = select(self._table.c.token, self._table.c.created_at).where(self._table.c.state == state).limit(1)
        with _translate_errors("lookup"), self._engine.connect() as conn:
            row = conn.execute(stmt).first()
        if row is None or self._expired(row.created_at):
            return None
        return TokenRecord(state=state, token=row.token)

    def delete(self, state: str) -> None:
        """Remove the record for ``state``; removing an absent state is a no-op."""
        with _translate_errors("delete"), self._engine.begin() as conn:
            conn.execute(delete(self._table).where(self._table.c.state == state))

    def pop(self, state: str) -> Optional[TokenRecord]:
        """Fetch and remove the record for ``state`` in a single transaction.

        The record is only returned when this call's DELETE removed the row, so
        two concurrent callers can never both receive the same token.
        """
        table = self._table
        with _translate_errors("pop"), self._engine.begin() as conn:
            row = conn.execute(
                select(table.c.token, table.c.created_at).where(table.c.state == state).limit(1)
            ).first()
            if row is None:
                return None
            removed = conn.execute(delete(table).where(table.c.state == state)).rowcount
        if not removed or self._expired(row.created_at):
            return None
        return TokenRecord(state=state, token=row.token)

    def purge_expired(self) -> int:
        """Delete records older than the TTL and return how many were removed."""
        if self._ttl is None:
            return 0
        cutoff = self._now() - self._ttl
        stmt = delete(self._table).where(self._table.c.created_at < cutoff)
        with _translate_errors("purge_expired"), self._engine.begin() as conn:
            return conn.execute(stmt).rowcount

"""Facade over a single database table used by the CRUD widget.

The facade is configured with a :class:`~app.schemas.crud.TableConfig` and
works on whatever table that names by reflecting it through SQLAlchemy Core,
so the same code serves a top-level table and a child table scoped to one
parent row. Sort columns and directions coming from the outside are never
passed through to SQL: anything other than the configured id or value column
falls back to the value column in ascending order.
"""

from __future__ import annotations

import logging
import weakref
from collections.abc import Iterator, Mapping
from typing import Any

from sqlalchemy import MetaData, Table, delete, func, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.schemas.crud import TableConfig

logger = logging.getLogger(__name__)

SORT_ASC = "ASC"
SORT_DESC = "DESC"

# Reflected tables, one MetaData per engine.
_METADATA: weakref.WeakKeyDictionary = weakref.WeakKeyDictionary()


class TableFacadeError(Exception):
    """Base class for errors raised by :class:`TableFacade`."""


class InvalidArgument(TableFacadeError, ValueError):
    """An id, foreign key or payload that the facade refuses to act on."""


class ConstraintViolation(TableFacadeError):
    """A delete was blocked because other rows still reference the row."""


def coerce_positive_int(value: Any) -> int | None:
    """Return ``value`` as a positive int, or None when it is not one."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    if isinstance(value, str):
        text = value.strip()
        if not text.isdigit():
            return None
        number = int(text)
        return number if number > 0 else None
    return None


def is_foreign_key_violation(exc: IntegrityError) -> bool:
    orig = getattr(exc, "orig", None)
    # psycopg / psycopg2 expose the SQLSTATE
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate == "23503":
        return True
    raw = str(orig or exc).lower()
    return "foreign key" in raw


class ItemSelection:
    """Lazy, countable page of rows.

    ``count()`` runs a COUNT over the filtered table, ignoring the page
    window, so the paginator can be built without loading every row.
    """

    def __init__(self, db: Session, statement, count_statement) -> None:
        self._db = db
        self._statement = statement
        self._count_statement = count_statement
        self._rows: list[dict[str, Any]] | None = None
        self._count: int | None = None

    def count(self) -> int:
        if self._count is None:
            self._count = int(self._db.scalar(self._count_statement) or 0)
        return self._count

    def all(self) -> list[dict[str, Any]]:
        if self._rows is None:
            result = self._db.execute(self._statement).mappings().all()
            self._rows = [dict(row) for row in result]
        return self._rows

    def __iter__(self) -> Iterator[dict[str, Any]]:
        return iter(self.all())

    def __len__(self) -> int:
        return len(self.all())


class TableFacade:
    def __init__(self, db: Session, config: TableConfig) -> None:
        self.db = db
        self.config = config

    # Reflection ------------------------------------------------------------

    def _reflect(self, table_name: str) -> Table:
        bind = self.db.get_bind()
        metadata = _METADATA.get(bind)
        if metadata is None:
            metadata = MetaData()
            _METADATA[bind] = metadata
        if table_name in metadata.tables:
            return metadata.tables[table_name]
        return Table(table_name, metadata, autoload_with=self.db.connection())

    @property
    def table(self) -> Table:
        table = self._reflect(self.config.table_name)
        for column in (self.config.id_column, self.config.value_column):
            if column not in table.c:
                raise TableFacadeError(
                    f"Column {column!r} not found in table {self.config.table_name!r}"
                )
        return table

    def _scope_filters(self, table: Table) -> list:
        if not self.config.is_scoped:
            return []
        if self.config.foreign_key_value is None:
            raise InvalidArgument("invalid foreign key")
        return [table.c[self.config.foreign_key_column] == self.config.foreign_key_value]

    # Reads -----------------------------------------------------------------

    def resolve_sort(
        self, sort_column: str | None, sort_direction: str | None
    ) -> tuple[str, str]:
        """Return a (column, direction) pair that is safe to order by."""
        allowed = (self.config.value_column, self.config.id_column)
        column = sort_column or self.config.value_column
        if column not in allowed:
            return self.config.value_column, SORT_ASC
        direction = (sort_direction or "").strip().upper()
        if direction != SORT_DESC:
            direction = SORT_ASC
        return column, direction

    def list_items(
        self,
        sort_column: str | None = None,
        sort_direction: str = SORT_ASC,
        page_offset: int = 0,
        page_size: int = 100,
    ) -> ItemSelection:
        table = self.table
        column_name, direction = self.resolve_sort(sort_column, sort_direction)
        column = table.c[column_name]
        filters = self._scope_filters(table)
        page_offset = max(0, int(page_offset))
        page_size = max(1, int(page_size))

        order = [column.desc() if direction == SORT_DESC else column.asc()]
        if column_name != self.config.id_column:
            # Stable paging across rows that share a value.
            order.append(table.c[self.config.id_column].asc())

        statement = (
            select(table)
            .where(*filters)
            .order_by(*order)
            .limit(page_size)
            .offset(page_offset * page_size)
        )
        count_statement = select(func.count()).select_from(table).where(*filters)
        return ItemSelection(self.db, statement, count_statement)

    def get_item(self, item_id: Any) -> dict[str, Any] | None:
        item_id = coerce_positive_int(item_id)
        if item_id is None:
            return None
        table = self.table
        row = (
            self.db.execute(select(table).where(table.c[self.config.id_column] == item_id))
            .mappings()
            .first()
        )
        return dict(row) if row is not None else None

    # Writes ----------------------------------------------------------------

    def _require_id(self, item_id: Any) -> int:
        value = coerce_positive_int(item_id)
        if value is None:
            raise InvalidArgument("invalid item id")
        return value

    @staticmethod
    def _require_name(data: Mapping[str, Any]) -> Any:
        name = data.get("name")
        if name is None:
            raise InvalidArgument("name is required")
        return name

    def update_item(self, data: Mapping[str, Any]) -> int:
        """Set the value column of row ``data['id']``; return rows updated."""
        item_id = self._require_id(data.get("id"))
        name = self._require_name(data)
        table = self.table
        statement = (
            update(table)
            .where(table.c[self.config.id_column] == item_id)
            .values({self.config.value_column: name})
        )
        try:
            result = self.db.execute(statement)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info(
            "Updated %s id=%s (%d row(s))", self.config.table_name, item_id, result.rowcount
        )
        return result.rowcount

    def delete_item(self, item_id: Any) -> None:
        item_id = self._require_id(item_id)
        table = self.table
        try:
            self.db.execute(delete(table).where(table.c[self.config.id_column] == item_id))
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            if is_foreign_key_violation(exc):
                logger.warning(
                    "Delete of %s id=%s blocked by a foreign key", self.config.table_name, item_id
                )
                raise ConstraintViolation(
                    f"{self.config.table_name} {item_id} is still referenced"
                ) from exc
            raise
        except Exception:
            self.db.rollback()
            raise
        logger.info("Deleted %s id=%s", self.config.table_name, item_id)

    def _parent_exists(self) -> bool:
        parent = self._reflect(self.config.parent_table_name)
        statement = select(parent.c[self.config.parent_id_column]).where(
            parent.c[self.config.parent_id_column] == self.config.foreign_key_value
        )
        return self.db.execute(statement).first() is not None

    def add_item(self, data: Mapping[str, Any]) -> dict[str, Any] | None:
        """Insert a row, scoped to the parent row when a parent is configured."""
        name = self._require_name(data)
        table = self.table
        values = {self.config.value_column: name}
        if self.config.is_scoped:
            if self.config.foreign_key_value is None or not self._parent_exists():
                raise InvalidArgument("invalid foreign key")
            values[self.config.foreign_key_column] = self.config.foreign_key_value
        try:
            result = self.db.execute(insert(table).values(values))
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        new_id = result.inserted_primary_key[0] if result.inserted_primary_key else None
        logger.info("Inserted %s id=%s", self.config.table_name, new_id)
        if new_id is None:
            return None
        return self.get_item(new_id)

from __future__ import annotations

import logging
from typing import Any, Iterable

from sqlalchemy import Table, inspect, text
from sqlalchemy.dialects import sqlite
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncConnection

from db.models import Base, mapped_public_table_names


log = logging.getLogger("werkstatt.db")

DUPLICATE_COLUMN_MARKERS = ("duplicate column", "already exists")


async def fetch_public_tables(connection: AsyncConnection) -> set[str]:
    def _sync_tables(sync_connection) -> set[str]:
        return set(inspect(sync_connection).get_table_names())

    return await connection.run_sync(_sync_tables)


async def fetch_public_columns(connection: AsyncConnection) -> dict[str, set[str]]:
    def _sync_columns(sync_connection) -> dict[str, set[str]]:
        inspector = inspect(sync_connection)
        columns_by_table: dict[str, set[str]] = {}
        for table_name in inspector.get_table_names():
            columns_by_table[table_name] = {column["name"] for column in inspector.get_columns(table_name)}
        return columns_by_table

    return await connection.run_sync(_sync_columns)


def _model_table_map() -> dict[str, Table]:
    return {table.name: table for table in Base.metadata.sorted_tables}


def _required_model_columns(required_tables: Iterable[str]) -> dict[str, set[str]]:
    mapped = {table.name: {column.name for column in table.columns} for table in Base.metadata.sorted_tables}
    required_list = list(required_tables)
    unknown = sorted(table for table in required_list if table not in mapped)
    if unknown:
        raise RuntimeError(f"Schema guard references unmapped tables: {', '.join(unknown)}")
    return {table: mapped[table] for table in required_list}


def _resolve_required_tables(required_tables: Iterable[str] | None) -> list[str]:
    if required_tables is None:
        return list(mapped_public_table_names())
    return list(required_tables)


def _sql_literal(value: object) -> str:
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, (int, float)):
        return str(value)
    text_value = str(value).replace("'", "''")
    return f"'{text_value}'"


def _column_default_sql(column: Any) -> str | None:
    if column.server_default is not None and column.server_default.arg is not None:
        arg = column.server_default.arg
        if hasattr(arg, "compile"):
            compiled = str(arg.compile(dialect=sqlite.dialect(), compile_kwargs={"literal_binds": True}))
            # SQLite refuses non-constant defaults on ADD COLUMN.
            if compiled.upper() in {"CURRENT_TIMESTAMP", "NOW()"}:
                return None
            return compiled
        return _sql_literal(arg)

    default = column.default
    if default is not None and getattr(default, "is_scalar", False):
        return _sql_literal(default.arg)

    return None


def _build_add_column_sql(table_name: str, column: Any) -> str:
    type_sql = column.type.compile(dialect=sqlite.dialect())
    default_sql = _column_default_sql(column)

    default_clause = f" DEFAULT {default_sql}" if default_sql is not None else ""
    # NOT NULL without a usable default cannot be added to a populated table.
    not_null_clause = " NOT NULL" if (not column.nullable and default_sql is not None) else ""

    return f'ALTER TABLE "{table_name}" ADD COLUMN "{column.name}" {type_sql}{default_clause}{not_null_clause}'


def _is_duplicate_column_error(exc: OperationalError) -> bool:
    message = str(getattr(exc, "orig", exc)).lower()
    return any(marker in message for marker in DUPLICATE_COLUMN_MARKERS)


async def add_column_if_missing(connection: AsyncConnection, table_name: str, column: Any) -> bool:
    ddl = _build_add_column_sql(table_name, column)
    try:
        await connection.execute(text(ddl))
    except OperationalError as exc:
        if _is_duplicate_column_error(exc):
            log.debug("Column %s.%s already exists", table_name, column.name)
            return False
        raise
    return True


async def ensure_required_schema(
    connection: AsyncConnection,
    required_tables: Iterable[str] | None = None,
) -> list[str]:
    required_list = _resolve_required_tables(required_tables)
    table_map = _model_table_map()
    missing_mapped = sorted(table for table in required_list if table not in table_map)
    if missing_mapped:
        raise RuntimeError(f"Schema guard references unmapped tables: {', '.join(missing_mapped)}")

    changes: list[str] = []

    existing_tables = await fetch_public_tables(connection)
    missing_tables = [table for table in required_list if table not in existing_tables]
    if missing_tables:
        create_tables: list[Table] = [table_map[name] for name in missing_tables]

        def _sync_create(sync_connection):
            Base.metadata.create_all(sync_connection, tables=create_tables, checkfirst=True)

        await connection.run_sync(_sync_create)
        changes.extend([f"create_table:{name}" for name in missing_tables])

    existing_columns = await fetch_public_columns(connection)
    for table_name in required_list:
        expected_table = table_map[table_name]
        known_columns = existing_columns.get(table_name, set())
        for column in expected_table.columns:
            if column.name in known_columns:
                continue
            if await add_column_if_missing(connection, table_name, column):
                changes.append(f"add_column:{table_name}.{column.name}")
            known_columns.add(column.name)
        existing_columns[table_name] = known_columns

    return changes


async def validate_required_tables(connection: AsyncConnection, required_tables: Iterable[str] | None = None) -> None:
    required_list = _resolve_required_tables(required_tables)

    existing = await fetch_public_tables(connection)
    missing = sorted([table for table in required_list if table not in existing])
    if missing:
        raise RuntimeError(f"Missing required DB tables: {', '.join(missing)}")

    expected_columns = _required_model_columns(required_list)
    existing_columns = await fetch_public_columns(connection)
    missing_columns: list[str] = []
    for table in required_list:
        missing_for_table = sorted(expected_columns[table] - existing_columns.get(table, set()))
        if missing_for_table:
            missing_columns.append(f"{table}({', '.join(missing_for_table)})")

    if missing_columns:
        raise RuntimeError(f"Missing required DB columns: {'; '.join(missing_columns)}")

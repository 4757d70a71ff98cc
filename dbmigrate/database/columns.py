"""
Column helpers for migrations.

Columns built here are plain SQLAlchemy columns, so they can be passed to
DDLBuilder.add_column or collected with table() for DDLBuilder.create_table.
Defaults are rendered as server defaults because a migration changes the
schema, not rows.
"""
from typing import Any, Optional, Union

from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    Double,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    text as sql_text,
)


def _server_default(value: Any):
    if value is None:
        return None
    if isinstance(value, bool):
        return sql_text("TRUE" if value else "FALSE")
    if isinstance(value, (int, float)):
        return sql_text(str(value))
    return str(value)


def _column(
    name: str,
    type_,
    primary_key: bool = False,
    nullable: bool = True,
    unique: bool = False,
    default: Any = None,
    autoincrement: Union[bool, str] = "auto",
) -> Column:
    return Column(
        name,
        type_,
        primary_key=primary_key,
        nullable=nullable and not primary_key,
        unique=unique,
        server_default=_server_default(default),
        autoincrement=autoincrement,
    )


def integer(name: str, **kwargs) -> Column:
    """INTEGER column"""
    return _column(name, Integer(), **kwargs)


def big_integer(name: str, **kwargs) -> Column:
    """BIGINT column"""
    return _column(name, BigInteger(), **kwargs)


def varchar(name: str, length: int = 255, **kwargs) -> Column:
    """VARCHAR(length) column"""
    return _column(name, String(length), **kwargs)


def text(name: str, **kwargs) -> Column:
    """TEXT column"""
    return _column(name, Text(), **kwargs)


def boolean(name: str, **kwargs) -> Column:
    """BOOLEAN column"""
    return _column(name, Boolean(), **kwargs)


def double(name: str, **kwargs) -> Column:
    """DOUBLE column"""
    return _column(name, Double(), **kwargs)


def table(name: str, *columns: Column, metadata: Optional[MetaData] = None) -> Table:
    """
    Describe a table for DDLBuilder.create_table.

    Each call gets its own MetaData unless one is passed in, so the same
    table name can be described differently by different migrations.
    """
    return Table(name, metadata if metadata is not None else MetaData(), *columns)

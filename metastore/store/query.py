"""
Attribute filters over parent entity tables.

filter_has_attribute() builds an EXISTS predicate restricting a parent
table to the rows that own a given attribute, optionally with an exact
stored value. Filters compose with AND in find_parents().

Value matching is against the raw stored text, not the decoded value:
non-string values are first encoded the way set() would store them, so
``filter_has_attribute(Book, "pages", 320)`` matches rows storing "320".
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from ..codec import classify, encode
from ..schema import AttributeTableDef
from ..storage import Database


@dataclass(frozen=True)
class AttributeFilter:
    """EXISTS predicate on a parent table.

    Attributes:
        table_def: Entity type being filtered
        key: Attribute that must exist
        value: Raw stored text it must equal (None = any value)
    """

    table_def: AttributeTableDef
    key: str
    value: Optional[str] = None

    def to_sql(self, parent_alias: str = "p") -> tuple[str, list[Any]]:
        """Render as a SQL predicate.

        Args:
            parent_alias: Alias of the parent table in the outer query

        Returns:
            Tuple of (predicate, params)
        """
        td = self.table_def
        sql = (
            f"EXISTS (SELECT 1 FROM {td.attribute_table} m "
            f"WHERE m.{td.foreign_key} = {parent_alias}.{td.parent_key} AND m.key = ?"
        )
        params: list[Any] = [self.key]
        if self.value is not None:
            sql += " AND m.value = ?"
            params.append(self.value)
        return sql + ")", params


def filter_has_attribute(
    table_def: AttributeTableDef,
    key: str,
    value: Any = None,
) -> AttributeFilter:
    """Build a filter for parents owning attribute ``key``.

    Args:
        table_def: Entity type to filter
        key: Attribute name
        value: Optional value the stored text must equal

    Returns:
        AttributeFilter
    """
    if value is not None and not isinstance(value, str):
        value = encode(value, classify(value))
    return AttributeFilter(table_def=table_def, key=key, value=value)


def find_parents(
    database: Database,
    table_def: AttributeTableDef,
    *filters: AttributeFilter,
    limit: int | None = None,
    offset: int = 0,
) -> list[Any]:
    """Ids of parent entities matching every filter.

    Args:
        database: Storage holding both tables
        table_def: Entity type whose parent table is queried
        *filters: Filters combined with AND
        limit: Maximum ids to return
        offset: Pagination offset

    Returns:
        Parent ids in ascending order
    """
    query = f"SELECT p.{table_def.parent_key} FROM {table_def.parent_table} p"
    params: list[Any] = []

    clauses = []
    for f in filters:
        if f.table_def != table_def:
            raise ValueError(
                f"Filter on '{f.table_def.name}' cannot apply to '{table_def.name}'"
            )
        clause, clause_params = f.to_sql("p")
        clauses.append(clause)
        params.extend(clause_params)

    if clauses:
        query += " WHERE " + " AND ".join(clauses)
    query += f" ORDER BY p.{table_def.parent_key}"
    if limit is not None:
        query += " LIMIT ? OFFSET ?"
        params.extend([limit, offset])

    return [row[0] for row in database.fetch_all(query, params)]

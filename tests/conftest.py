"""Shared fixtures: small schemas and in-memory data sources."""

import pytest

from erd_core.datasource import InMemoryDataSource
from erd_core.models import ColumnSpec, RelationshipEdge, TableMeta, TableRef


def make_table(table_id: str, column_count: int = 3) -> TableMeta:
    """Table with an `id` primary key followed by `col_1..col_n` columns."""
    columns = [ColumnSpec(name="id", data_type="integer", is_nullable=False, is_primary_key=True)]
    columns += [ColumnSpec(name=f"col_{i}", data_type="text") for i in range(1, column_count)]
    return TableMeta(id=table_id, columns=columns)


def fk(source: str, target: str, column: str | None = None) -> RelationshipEdge:
    """Foreign key `source.<target>_id -> target.id`."""
    column = column or f"{target.rsplit('.', 1)[-1]}_id"
    return RelationshipEdge(
        source_table=source, source_column=column, target_table=target, target_column="id"
    )


def make_tables(table_ids: list[str], schema: str | None = "public") -> list[tuple[TableRef, TableMeta]]:
    return [(TableRef(id=t, schema_name=schema), make_table(t)) for t in table_ids]


def make_source(
    table_ids: list[str],
    relationships: list[RelationshipEdge] | None = None,
    schema: str | None = "public",
    **kwargs
) -> InMemoryDataSource:
    return InMemoryDataSource(make_tables(table_ids, schema), relationships, **kwargs)


SHOP_TABLES = [
    "public.orders",
    "public.customers",
    "public.products",
    "public.warehouses",
    "public.suppliers",
]

SHOP_RELATIONSHIPS = [
    fk("public.orders", "public.customers"),
    fk("public.orders", "public.products"),
    fk("public.orders", "public.warehouses"),
    fk("public.products", "public.suppliers"),
]


@pytest.fixture(name="shop_source")
def shop_data_source() -> InMemoryDataSource:
    """Five-table shop schema; `orders` references three tables."""
    return make_source(SHOP_TABLES, SHOP_RELATIONSHIPS)


@pytest.fixture(name="large_source")
def twenty_table_data_source() -> InMemoryDataSource:
    """Twenty tables in `public` joined by twenty-five relationships."""
    table_ids = [f"public.t{i:02d}" for i in range(20)]
    relationships = [fk(table_ids[i], table_ids[i - 1], "prev_id") for i in range(1, 20)]
    relationships += [fk(table_ids[i], table_ids[0], "root_id") for i in range(14, 20)]
    return make_source(table_ids, relationships)


@pytest.fixture(name="schema_dict")
def shop_schema_dict() -> dict:
    """JSON-style schema using camelCase keys, as a metadata service would."""
    return {
        "tables": [
            {
                "tableName": "public.customers",
                "schema": "public",
                "columns": [
                    {"name": "id", "dataType": "integer", "isNullable": False, "isPrimaryKey": True},
                    {"name": "email", "dataType": "character varying"},
                ],
            },
            {
                "id": "public.orders",
                "schema": "public",
                "columns": [
                    {"name": "id", "data_type": "integer", "is_primary_key": True, "is_nullable": False},
                    {"name": "customer_id", "data_type": "integer"},
                ],
                "ddl": "CREATE TABLE public.orders (id integer PRIMARY KEY);",
            },
            {"id": "audit_log", "columns": [{"name": "message"}]},
        ],
        "relationships": [
            {
                "sourceTable": "public.orders",
                "sourceColumn": "customer_id",
                "targetTable": "public.customers",
                "targetColumn": "id",
            },
        ],
    }

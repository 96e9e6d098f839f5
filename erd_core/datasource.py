"""
Data sources supplying table metadata to the loader.

A data source is anything implementing the async `DataSource` protocol:
- InMemoryDataSource: tables and relationships held in memory (JSON files, tests)
- HttpDataSource: a metadata REST service, queried with httpx
"""

import asyncio
import json
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Optional, Protocol, runtime_checkable
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from .errors import DataSourceError
from .models import RelationshipEdge, TableMeta, TableRef


logger = logging.getLogger(__name__)


@runtime_checkable
class DataSource(Protocol):
    """Interface the loader consumes."""

    async def list_tables(self) -> list[TableRef]:
        ...

    async def get_table_properties(self, table_id: str) -> Optional[TableMeta]:
        """Table properties, or None if the table no longer exists."""
        ...

    async def get_relationships(self, table_id: str) -> list[RelationshipEdge]:
        """Relationships in which `table_id` is the source or the target."""
        ...

    async def generate_ddl(self, table_id: str) -> str:
        ...


def render_create_table(table: TableMeta) -> str:
    """Minimal CREATE TABLE statement for a table without stored DDL."""
    lines = []
    for col in table.columns:
        line = f"    {col.name} {col.data_type or 'TEXT'}"
        if not col.is_nullable:
            line += " NOT NULL"
        lines.append(line)
    primary_keys = [c.name for c in table.columns if c.is_primary_key]
    if primary_keys:
        lines.append(f"    PRIMARY KEY ({', '.join(primary_keys)})")
    body = ",\n".join(lines)
    return f"CREATE TABLE {table.id} (\n{body}\n);"


class InMemoryDataSource:
    """
    Data source backed by in-memory tables.

    Features:
    - Optional artificial latency to exercise batching
    - Failure injection per (operation, table_id) for error-path tests
    - In-flight tracking (`max_in_flight`) to observe request concurrency
    """

    def __init__(
        self,
        tables: list[tuple[TableRef, TableMeta]],
        relationships: list[RelationshipEdge] | None = None,
        ddl: dict[str, str] | None = None,
        latency: float = 0.0,
        fail_on: set[tuple[str, str]] | None = None
    ):
        self._refs = [ref for ref, _ in tables]
        self._tables = {meta.id: meta for _, meta in tables}
        self._relationships = list(relationships or [])
        self._ddl = dict(ddl or {})
        self._latency = latency
        self.fail_on: set[tuple[str, str]] = set(fail_on or ())
        self.calls: list[tuple[str, str]] = []
        self._in_flight = 0
        self.max_in_flight = 0

    @classmethod
    def from_dict(cls, data: dict, **kwargs) -> "InMemoryDataSource":
        """
        Build a source from a JSON-style dict.

        Expected shape:
            {"tables": [{"id": "public.orders", "schema": "public",
                         "columns": [...], "ddl": "..."}],
             "relationships": [{"source_table": ..., ...}]}
        """
        tables: list[tuple[TableRef, TableMeta]] = []
        ddl: dict[str, str] = {}
        for entry in data.get("tables", []):
            ref = TableRef(**entry)
            meta = TableMeta(**entry)
            tables.append((ref, meta))
            if entry.get("ddl"):
                ddl[meta.id] = entry["ddl"]
        relationships = [RelationshipEdge(**r) for r in data.get("relationships", [])]
        return cls(tables, relationships, ddl=ddl, **kwargs)

    @classmethod
    def from_file(cls, file_path: str | Path, **kwargs) -> "InMemoryDataSource":
        path = Path(file_path)
        if not path.exists():
            raise FileNotFoundError(f"Schema file not found: {path}")
        with open(path, 'r') as f:
            return cls.from_dict(json.load(f), **kwargs)

    def remove_table(self, table_id: str):
        """Drop a table's properties while keeping it enumerable (schema drift)."""
        self._tables.pop(table_id, None)

    @property
    def in_flight(self) -> int:
        """Requests currently awaiting a response."""
        return self._in_flight

    async def _enter(self, operation: str, table_id: str = ""):
        self.calls.append((operation, table_id))
        self._in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self._in_flight)
        try:
            if (operation, table_id) in self.fail_on:
                await asyncio.sleep(0)
                raise DataSourceError(operation, "injected failure", table_id or None)
            await asyncio.sleep(self._latency)
        finally:
            self._in_flight -= 1

    async def list_tables(self) -> list[TableRef]:
        await self._enter("list_tables")
        return list(self._refs)

    async def get_table_properties(self, table_id: str) -> Optional[TableMeta]:
        await self._enter("get_table_properties", table_id)
        return self._tables.get(table_id)

    async def get_relationships(self, table_id: str) -> list[RelationshipEdge]:
        await self._enter("get_relationships", table_id)
        return [r for r in self._relationships if r.touches(table_id)]

    async def generate_ddl(self, table_id: str) -> str:
        await self._enter("generate_ddl", table_id)
        if table_id in self._ddl:
            return self._ddl[table_id]
        table = self._tables.get(table_id)
        if table is None:
            raise DataSourceError("generate_ddl", "table not found", table_id)
        return render_create_table(table)


@contextmanager
def _parsing(operation: str, table_id: Optional[str] = None):
    """Report a response body that does not fit the models as a DataSourceError."""
    try:
        yield
    except (ValidationError, TypeError, AttributeError) as e:
        raise DataSourceError(operation, f"malformed response: {e}", table_id) from e


class HttpDataSource:
    """
    Data source backed by a metadata REST service.

    Endpoints:
    - GET /tables                       -> [{"id", "schema"}]
    - GET /tables/{id}                  -> {"id", "columns": [...]} or 404
    - GET /tables/{id}/relationships    -> [{"source_table", ...}]
    - GET /tables/{id}/ddl              -> {"ddl": "..."}
    """

    def __init__(self, base_url: str, timeout: float = 30.0, client: httpx.AsyncClient | None = None):
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(base_url=self.base_url, timeout=timeout)

    async def aclose(self):
        await self._client.aclose()

    async def _get(self, operation: str, endpoint: str, table_id: Optional[str] = None) -> Optional[object]:
        """GET `endpoint`; None on 404, DataSourceError on any other failure."""
        try:
            response = await self._client.get(endpoint)
        except httpx.HTTPError as e:
            logger.warning("%s request to %s failed: %s", operation, endpoint, e)
            raise DataSourceError(operation, f"connection failed: {e}", table_id) from e

        if response.status_code == 404:
            return None
        if response.status_code >= 400:
            try:
                detail = response.json().get("detail", response.text)
            except (json.JSONDecodeError, AttributeError):
                detail = response.text
            raise DataSourceError(operation, f"API error ({response.status_code}): {detail}", table_id)

        try:
            return response.json()
        except json.JSONDecodeError as e:
            raise DataSourceError(operation, "invalid JSON response", table_id) from e

    def _table_path(self, table_id: str, suffix: str = "") -> str:
        return f"/tables/{quote(table_id, safe='')}{suffix}"

    async def list_tables(self) -> list[TableRef]:
        data = await self._get("list_tables", "/tables")
        with _parsing("list_tables"):
            return [TableRef(**t) for t in data or []]

    async def get_table_properties(self, table_id: str) -> Optional[TableMeta]:
        data = await self._get("get_table_properties", self._table_path(table_id), table_id)
        if data is None:
            return None
        with _parsing("get_table_properties", table_id):
            return TableMeta(**data)

    async def get_relationships(self, table_id: str) -> list[RelationshipEdge]:
        data = await self._get(
            "get_relationships", self._table_path(table_id, "/relationships"), table_id
        )
        with _parsing("get_relationships", table_id):
            return [RelationshipEdge(**r) for r in data or []]

    async def generate_ddl(self, table_id: str) -> str:
        data = await self._get("generate_ddl", self._table_path(table_id, "/ddl"), table_id)
        if data is None:
            raise DataSourceError("generate_ddl", "table not found", table_id)
        return data.get("ddl", "") if isinstance(data, dict) else str(data)

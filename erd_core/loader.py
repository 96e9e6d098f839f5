"""
Progressive diagram loading.

Fetches table properties and relationships from a DataSource in fixed-size
concurrent batches, reporting progress after every batch. Batches run one
after another, so no more than LOAD_BATCH_SIZE requests are in flight at a
time (the related-table burst of a single-table load is the one exception).

A load is all-or-nothing: any DataSourceError aborts it with a LoadError and
nothing partial is returned.
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Optional, Union

from pydantic import BaseModel, Field

from .datasource import DataSource
from .errors import DataSourceError, ErdError, LoadError
from .models import (
    LoadProgress, LoadScope, RelationshipEdge, SingleTable, TableMeta,
)


logger = logging.getLogger(__name__)

LOAD_BATCH_SIZE = 5
DEFAULT_SCHEMA = "default"


class LoadResult(BaseModel):
    """Tables and deduplicated relationships of one completed load."""
    scope: LoadScope = Field(discriminator="kind")
    tables: list[TableMeta] = Field(default_factory=list)
    relationships: list[RelationshipEdge] = Field(default_factory=list)

    @property
    def anchor_id(self) -> Optional[str]:
        return self.scope.table_id if isinstance(self.scope, SingleTable) else None


LoadEvent = Union[LoadProgress, LoadResult]


def scope_label(scope: LoadScope) -> str:
    if isinstance(scope, SingleTable):
        return f"table {scope.table_id}"
    return f"schema {scope.schema_name}"


def in_schema(schema_name: Optional[str], scope_schema: str) -> bool:
    """Tables reported without a schema belong to the default schema."""
    if schema_name:
        return schema_name == scope_schema
    return scope_schema == DEFAULT_SCHEMA


def dedupe_relationships(relationships: list[RelationshipEdge]) -> list[RelationshipEdge]:
    """Drop repeated (source, source column, target, target column) edges, keeping order."""
    seen: set[tuple[str, str, str, str]] = set()
    unique: list[RelationshipEdge] = []
    for rel in relationships:
        key = rel.key()
        if key in seen:
            continue
        seen.add(key)
        unique.append(rel)
    return unique


def _batches(items: list, size: int):
    for start in range(0, len(items), size):
        yield start, items[start:start + size]


async def _gather_batch(aws) -> list:
    """
    Await one batch of fetches together.

    If any fetch fails, the rest of the batch is cancelled and awaited before
    the error propagates, so nothing from an aborted load keeps running.
    """
    tasks = [asyncio.ensure_future(a) for a in aws]
    try:
        return await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


async def _enumerate(source: DataSource, scope: LoadScope) -> list[str]:
    if isinstance(scope, SingleTable):
        return [scope.table_id]
    refs = await source.list_tables()
    return [r.id for r in refs if in_schema(r.schema_name, scope.schema_name)]


async def _load_events(
    source: DataSource,
    scope: LoadScope,
    batch_size: int
) -> AsyncIterator[LoadEvent]:
    table_ids = await _enumerate(source, scope)
    total = len(table_ids)
    yield LoadProgress(loaded=0, total=total)

    tables: list[TableMeta] = []
    for start, batch in _batches(table_ids, batch_size):
        results = await _gather_batch(source.get_table_properties(t) for t in batch)
        tables.extend(t for t in results if t is not None)
        yield LoadProgress(loaded=min(start + batch_size, total), total=total)

    dropped = total - len(tables)
    if dropped:
        logger.info("Dropped %d table(s) that no longer exist", dropped)

    relationships: list[RelationshipEdge] = []
    if isinstance(scope, SingleTable):
        if tables:
            relationships = await source.get_relationships(scope.table_id)
            loaded_ids = {t.id for t in tables}
            related: list[str] = []
            for rel in relationships:
                for table_id in (rel.source_table, rel.target_table):
                    if table_id not in loaded_ids and table_id not in related:
                        related.append(table_id)
            # Immediate neighbors only; fetched in one burst
            results = await _gather_batch(source.get_table_properties(t) for t in related)
            tables.extend(t for t in results if t is not None)
    else:
        for _, batch in _batches(tables, batch_size):
            results = await _gather_batch(source.get_relationships(t.id) for t in batch)
            for batch_rels in results:
                relationships.extend(batch_rels)

    yield LoadResult(scope=scope, tables=tables, relationships=dedupe_relationships(relationships))


async def load_events(
    source: DataSource,
    scope: LoadScope,
    batch_size: int = LOAD_BATCH_SIZE
) -> AsyncIterator[LoadEvent]:
    """
    Stream a diagram load.

    Yields LoadProgress values (starting with `loaded=0`, non-decreasing,
    never above `total`) and finally exactly one LoadResult.

    Raises:
        LoadError: if the data source failed at any point
    """
    label = scope_label(scope)
    logger.info("Loading diagram for %s", label)
    try:
        async for event in _load_events(source, scope, batch_size):
            yield event
    except DataSourceError as e:
        logger.error("Diagram load for %s aborted: %s", label, e)
        raise LoadError(label, e) from e


async def load_diagram(
    source: DataSource,
    scope: LoadScope,
    on_progress: Callable[[LoadProgress], Optional[Awaitable[None]]] | None = None,
    batch_size: int = LOAD_BATCH_SIZE
) -> LoadResult:
    """
    Run a complete load, forwarding progress to `on_progress`.

    `on_progress` may be a plain function or a coroutine function.
    """
    result: Optional[LoadResult] = None
    async for event in load_events(source, scope, batch_size):
        if isinstance(event, LoadProgress):
            if on_progress is not None:
                outcome = on_progress(event)
                if asyncio.iscoroutine(outcome):
                    await outcome
        else:
            result = event

    if result is None:
        raise LoadError(scope_label(scope), ErdError("load finished without a result"))
    logger.info(
        "Loaded %d table(s) and %d relationship(s) for %s",
        len(result.tables), len(result.relationships), scope_label(scope),
    )
    return result


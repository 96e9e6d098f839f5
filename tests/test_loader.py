"""Tests for the progressive loader."""

import asyncio

import pytest

from erd_core.datasource import InMemoryDataSource
from erd_core.errors import LoadError
from erd_core.loader import (
    LOAD_BATCH_SIZE,
    LoadResult,
    dedupe_relationships,
    in_schema,
    load_diagram,
    load_events,
)
from erd_core.models import LoadProgress, SingleTable, TableRef, WholeSchema

from .conftest import fk, make_source, make_table


async def _collect(source, scope, batch_size: int = LOAD_BATCH_SIZE) -> list:
    return [event async for event in load_events(source, scope, batch_size)]


def test_schema_load_reports_monotonic_progress(large_source: InMemoryDataSource) -> None:
    """Progress starts at zero, never decreases and ends at the total."""
    events = asyncio.run(_collect(large_source, WholeSchema(schema_name="public")))
    progress = [e for e in events if isinstance(e, LoadProgress)]

    assert progress[0] == LoadProgress(loaded=0, total=20)
    loaded = [p.loaded for p in progress]
    assert loaded == sorted(loaded)
    assert loaded == [0, 5, 10, 15, 20]
    assert all(p.total == 20 for p in progress)
    assert isinstance(events[-1], LoadResult)
    assert sum(isinstance(e, LoadResult) for e in events) == 1


def test_partial_last_batch_reports_total() -> None:
    source = make_source([f"public.t{i}" for i in range(7)])
    events = asyncio.run(_collect(source, WholeSchema(schema_name="public")))
    assert [e.loaded for e in events if isinstance(e, LoadProgress)] == [0, 5, 7]


def test_batches_limit_concurrency() -> None:
    source = make_source([f"public.t{i}" for i in range(23)], latency=0.001)
    asyncio.run(load_diagram(source, WholeSchema(schema_name="public")))
    assert source.max_in_flight == LOAD_BATCH_SIZE


def test_schema_load_collects_all_relationships(large_source: InMemoryDataSource) -> None:
    result = asyncio.run(load_diagram(large_source, WholeSchema(schema_name="public")))
    assert len(result.tables) == 20
    # Each edge is reported by both endpoints, yet appears once
    assert len(result.relationships) == 25
    assert result.anchor_id is None


def test_dedupe_keeps_first_occurrence_order() -> None:
    a = fk("public.a", "public.b")
    b = fk("public.b", "public.c")
    assert dedupe_relationships([a, b, a, b, a]) == [a, b]


def test_single_table_load_fetches_neighbors(shop_source: InMemoryDataSource) -> None:
    result = asyncio.run(load_diagram(shop_source, SingleTable(table_id="public.orders")))

    assert [t.id for t in result.tables] == [
        "public.orders", "public.customers", "public.products", "public.warehouses",
    ]
    assert len(result.relationships) == 3
    assert result.anchor_id == "public.orders"
    # Second-degree neighbors are not fetched
    assert ("get_table_properties", "public.suppliers") not in shop_source.calls
    assert ("list_tables", "") not in shop_source.calls


def test_single_table_progress_counts_anchor_only(shop_source: InMemoryDataSource) -> None:
    events = asyncio.run(_collect(shop_source, SingleTable(table_id="public.orders")))
    progress = [e for e in events if isinstance(e, LoadProgress)]
    assert progress == [LoadProgress(loaded=0, total=1), LoadProgress(loaded=1, total=1)]


def test_missing_anchor_loads_nothing(shop_source: InMemoryDataSource) -> None:
    result = asyncio.run(load_diagram(shop_source, SingleTable(table_id="public.gone")))
    assert result.tables == []
    assert result.relationships == []


def test_tables_that_vanished_are_dropped() -> None:
    source = make_source(["public.a", "public.b", "public.c"], [fk("public.a", "public.b")])
    source.remove_table("public.b")
    result = asyncio.run(load_diagram(source, WholeSchema(schema_name="public")))
    assert [t.id for t in result.tables] == ["public.a", "public.c"]


def test_empty_schema_is_not_an_error() -> None:
    source = make_source(["public.a"])
    events = asyncio.run(_collect(source, WholeSchema(schema_name="reporting")))
    assert events[0] == LoadProgress(loaded=0, total=0)
    assert events[-1].tables == []


def test_tables_without_schema_belong_to_default() -> None:
    tables = [
        (TableRef(id="audit_log"), make_table("audit_log")),
        (TableRef(id="public.a", schema_name="public"), make_table("public.a")),
    ]
    source = InMemoryDataSource(tables)
    result = asyncio.run(load_diagram(source, WholeSchema(schema_name="default")))
    assert [t.id for t in result.tables] == ["audit_log"]
    assert in_schema(None, "default")
    assert not in_schema(None, "public")
    assert in_schema("public", "public")


@pytest.mark.parametrize(
    "failing_call",
    [
        ("list_tables", ""),
        ("get_table_properties", "public.t07"),
        ("get_relationships", "public.t12"),
    ],
)
def test_data_source_failure_aborts_load(failing_call: tuple[str, str]) -> None:
    source = make_source([f"public.t{i:02d}" for i in range(15)], fail_on={failing_call})
    with pytest.raises(LoadError) as exc_info:
        asyncio.run(load_diagram(source, WholeSchema(schema_name="public")))

    assert exc_info.value.retryable
    assert exc_info.value.user_message.startswith("Failed to load diagram for schema public")


def test_related_table_failure_aborts_single_table_load(shop_source: InMemoryDataSource) -> None:
    shop_source.fail_on.add(("get_table_properties", "public.products"))
    with pytest.raises(LoadError):
        asyncio.run(load_diagram(shop_source, SingleTable(table_id="public.orders")))



def test_failed_batch_cancels_sibling_fetches() -> None:
    """Nothing from an aborted batch is left running once LoadError surfaces."""
    source = make_source(
        [f"public.t{i}" for i in range(5)],
        latency=0.05,
        fail_on={("get_table_properties", "public.t0")},
    )
    with pytest.raises(LoadError):
        asyncio.run(load_diagram(source, WholeSchema(schema_name="public")))
    assert source.in_flight == 0


def test_load_without_result_is_a_load_error(monkeypatch: pytest.MonkeyPatch) -> None:
    async def progress_only(source, scope, batch_size):
        yield LoadProgress(loaded=0, total=0)

    monkeypatch.setattr("erd_core.loader._load_events", progress_only)
    with pytest.raises(LoadError, match="without a result"):
        asyncio.run(load_diagram(make_source([]), WholeSchema(schema_name="public")))

def test_progress_callback_may_be_async(shop_source: InMemoryDataSource) -> None:
    seen: list[LoadProgress] = []

    async def record(progress: LoadProgress) -> None:
        seen.append(progress)

    asyncio.run(load_diagram(shop_source, WholeSchema(schema_name="public"), on_progress=record))
    assert [p.loaded for p in seen] == [0, 5]

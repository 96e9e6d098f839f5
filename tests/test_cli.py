"""Tests for the erd-layout command line."""

import json
from pathlib import Path

import pytest

import erd_cli


@pytest.fixture(name="schema_file")
def shop_schema_file(tmp_path: Path, schema_dict: dict) -> Path:
    path = tmp_path / "schema.json"
    path.write_text(json.dumps(schema_dict))
    return path


def _run(capsys: pytest.CaptureFixture[str], *argv: str) -> tuple[int, dict]:
    with pytest.raises(SystemExit) as exc_info:
        erd_cli.main(list(argv))
    return exc_info.value.code, json.loads(capsys.readouterr().out)


def test_scene_for_table(capsys: pytest.CaptureFixture[str], schema_file: Path) -> None:
    code, data = _run(capsys, "scene", str(schema_file), "--table", "public.orders")

    assert code == 0
    assert data["status"] == "ok"
    assert [n["id"] for n in data["scene"]["nodes"]] == ["public.orders", "public.customers"]
    assert data["scene"]["nodes"][0]["is_anchor"]


def test_scene_with_search_and_detail(capsys: pytest.CaptureFixture[str], schema_file: Path) -> None:
    code, data = _run(
        capsys, "scene", str(schema_file), "--schema", "public",
        "--detail", "compact", "--search", "o", "--step", "1",
    )

    assert code == 0
    assert data["scene"]["detail"] == "compact"
    assert data["scene"]["search"] == {"query": "o", "match_count": 2, "current_index": 1}


def test_summary_for_default_schema(capsys: pytest.CaptureFixture[str], schema_file: Path) -> None:
    code, data = _run(capsys, "summary", str(schema_file), "--schema", "default")
    assert code == 0
    assert data["summary"]["title"] == "default - Schema Diagram"
    assert data["summary"]["table_count"] == 1


def test_ddl(capsys: pytest.CaptureFixture[str], schema_file: Path) -> None:
    code, data = _run(capsys, "ddl", str(schema_file), "--table", "public.orders")
    assert code == 0
    assert data["ddl"] == "CREATE TABLE public.orders (id integer PRIMARY KEY);"


def test_missing_file(capsys: pytest.CaptureFixture[str], tmp_path: Path) -> None:
    code, data = _run(capsys, "summary", str(tmp_path / "nope.json"), "--schema", "public")
    assert code == 1
    assert data["status"] == "error"
    assert "not found" in data["error"]


def test_invalid_file(capsys: pytest.CaptureFixture[str], tmp_path: Path) -> None:
    path = tmp_path / "broken.json"
    path.write_text("{not json")
    code, data = _run(capsys, "summary", str(path), "--schema", "public")
    assert code == 1
    assert data["error"].startswith("Invalid schema file")


def test_scope_is_required(capsys: pytest.CaptureFixture[str], schema_file: Path) -> None:
    with pytest.raises(SystemExit) as exc_info:
        erd_cli.main(["scene", str(schema_file)])
    assert exc_info.value.code == 2

#!/usr/bin/env python3
"""ERD layout CLI - lay out a schema file and print the scene as JSON."""

import argparse
import asyncio
import json
import logging
import sys

from erd_backend.session import DiagramSession
from erd_core.errors import DataSourceError, LoadError
from erd_core.datasource import InMemoryDataSource
from erd_core.models import DetailLevel, SingleTable, ViewportSize, WholeSchema


class CommandFailed(Exception):
    """Carries the JSON error payload of a failed command."""

    def __init__(self, payload: dict):
        self.payload = payload
        super().__init__(payload.get("error"))


def _json_out(data, code=0):
    print(json.dumps(data))
    sys.exit(code)


def _scope(args):
    if args.table:
        return SingleTable(table_id=args.table)
    return WholeSchema(schema_name=args.schema)


async def _open_session(args) -> DiagramSession:
    """Load the requested scope from the schema file into a fresh session."""
    try:
        source = InMemoryDataSource.from_file(args.file)
    except FileNotFoundError as e:
        raise CommandFailed({"status": "error", "error": str(e)})
    except (json.JSONDecodeError, ValueError) as e:
        raise CommandFailed({"status": "error", "error": f"Invalid schema file: {e}"})

    session = DiagramSession(source, ViewportSize(width=args.width, height=args.height))
    try:
        await session.load(_scope(args))
    except LoadError as e:
        raise CommandFailed({"status": "error", "error": e.user_message, "retryable": e.retryable})
    return session


# ── Commands ─────────────────────────────────────────────────────────────────

async def cmd_scene(args):
    session = await _open_session(args)
    if args.detail:
        session.set_detail(DetailLevel(args.detail))
        session.fit_to_screen()
    if args.search:
        session.set_search(args.search)
        for _ in range(args.step):
            session.next_match()
    return {"status": "ok", **session.get_state()}


async def cmd_summary(args):
    session = await _open_session(args)
    scene = session.get_scene()
    return {
        "status": "ok",
        "summary": scene.summary.model_dump() if scene.summary else None,
        "detail": scene.detail.value,
        "diagnostics": [i.to_dict() for i in session.diagnostics()],
    }


async def cmd_ddl(args):
    session = await _open_session(args)
    try:
        ddl = await session.copy_ddl()
    except (ValueError, DataSourceError) as e:
        raise CommandFailed({"status": "error", "error": str(e)})
    return {"status": "ok", "ddl": ddl}


def _add_scope_args(p, table_only=False):
    p.add_argument("file", help="JSON schema file")
    if table_only:
        p.add_argument("--table", required=True)
        p.set_defaults(schema=None)
    else:
        group = p.add_mutually_exclusive_group(required=True)
        group.add_argument("--table", default=None)
        group.add_argument("--schema", default=None)
    p.add_argument("--width", type=float, default=1200)
    p.add_argument("--height", type=float, default=800)


def main(argv=None):
    parser = argparse.ArgumentParser(prog="erd-layout", description=__doc__)
    parser.add_argument("--log-level", default="WARNING")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("scene")
    _add_scope_args(p)
    p.add_argument("--detail", choices=[d.value for d in DetailLevel], default=None)
    p.add_argument("--search", default=None)
    p.add_argument("--step", type=int, default=0, help="Advance N matches after searching")

    p = sub.add_parser("summary")
    _add_scope_args(p)

    p = sub.add_parser("ddl")
    _add_scope_args(p, table_only=True)

    args = parser.parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(), stream=sys.stderr)

    cmd_map = {
        "scene": cmd_scene,
        "summary": cmd_summary,
        "ddl": cmd_ddl,
    }
    try:
        result = asyncio.run(cmd_map[args.command](args))
    except CommandFailed as e:
        _json_out(e.payload, 1)
    _json_out(result)


if __name__ == "__main__":
    main()

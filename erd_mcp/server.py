#!/usr/bin/env python3
"""
ERD Layout MCP Server

Provides MCP tools for AI agents to open and navigate relationship diagrams.
All changes are immediately reflected in the frontend via WebSocket updates.
"""

import json
import os
from typing import Optional

import httpx
from mcp.server.fastmcp import FastMCP

# Backend API URL
API_BASE = os.environ.get("ERD_API_BASE", "http://127.0.0.1:8765/api")

# Create MCP server
mcp = FastMCP("erd-layout")


class BackendError(Exception):
    """The backend answered with an error status."""


# --- HTTP Client Helper ---

def api_request(method: str, endpoint: str, **kwargs) -> dict:
    """Make a request to the diagram backend."""
    url = f"{API_BASE}{endpoint}"
    with httpx.Client(timeout=60.0) as client:
        if method == "GET":
            response = client.get(url, params=kwargs.get("params"))
        elif method == "POST":
            response = client.post(url, json=kwargs.get("json"), params=kwargs.get("params"))
        elif method == "DELETE":
            response = client.delete(url)
        else:
            raise ValueError(f"Unknown method: {method}")

        if response.status_code >= 400:
            detail = response.json().get("detail", "Unknown error")
            if isinstance(detail, dict):
                detail = detail.get("message", detail)
            raise BackendError(f"API error: {detail}")

        return response.json()


def _compact_scene(state: dict) -> dict:
    """Drop node geometry and labels; agents only need names and counts."""
    scene = state.get("scene", {})
    return {
        "scope": state.get("scope"),
        "error": state.get("error"),
        "summary": scene.get("summary"),
        "detail": scene.get("detail"),
        "tables": [n["id"] for n in scene.get("nodes", [])],
        "relationships": [
            f"{e['source_table']}.{e['source_column']} -> {e['target_table']}.{e['target_column']}"
            for e in scene.get("edges", [])
        ],
        "diagnostics": state.get("diagnostics", []),
    }


# ============================================================================
# LOADING TOOLS
# ============================================================================

@mcp.tool()
def erd_open_table(table: str) -> str:
    """
    Open the ER diagram of one table and its foreign-key neighbors.

    Args:
        table: Qualified table name, e.g. "public.orders"

    Returns the tables and relationships now shown.
    """
    result = api_request("POST", "/diagram/load", json={"table": table})
    return json.dumps(_compact_scene(result), indent=2)


@mcp.tool()
def erd_open_schema(schema_name: str) -> str:
    """
    Open the diagram of every table in a schema.

    Args:
        schema_name: Schema to show ("default" for tables without a schema)

    Returns the tables and relationships now shown.
    """
    result = api_request("POST", "/diagram/load", json={"schema_name": schema_name})
    return json.dumps(_compact_scene(result), indent=2)


@mcp.tool()
def erd_get_current() -> str:
    """
    Get a summary of the diagram currently shown.

    Use this to see which tables and relationships are on screen before
    searching or navigating.
    """
    result = api_request("GET", "/diagram")
    return json.dumps(_compact_scene(result), indent=2)


@mcp.tool()
def erd_get_ddl() -> str:
    """Get the CREATE TABLE statement of the table the diagram was opened from."""
    result = api_request("GET", "/diagram/ddl")
    return result.get("ddl", "")


# ============================================================================
# NAVIGATION TOOLS
# ============================================================================

@mcp.tool()
def erd_search(query: str) -> str:
    """
    Search tables by name and center the view on the first match.

    Args:
        query: Case-insensitive substring of the table name

    Returns the match count, the current match index and the matching tables.
    """
    result = api_request("POST", "/search", json={"query": query})
    return json.dumps(result, indent=2)


@mcp.tool()
def erd_search_step(direction: str = "next") -> str:
    """
    Move to the next or previous search match (wraps around).

    Args:
        direction: "next" or "previous"
    """
    if direction not in ("next", "previous"):
        return json.dumps({"success": False, "error": "direction must be 'next' or 'previous'"})
    result = api_request("POST", f"/search/{direction}")
    return json.dumps(result, indent=2)


@mcp.tool()
def erd_set_detail(level: Optional[str] = None) -> str:
    """
    Switch between detailed (columns shown) and compact (names only) views.

    Args:
        level: "detailed", "compact", or omit to toggle
    """
    result = api_request("POST", "/diagram/detail", json={"level": level})
    return json.dumps(result, indent=2)


@mcp.tool()
def erd_fit_to_screen() -> str:
    """Zoom and pan so the whole diagram is visible."""
    result = api_request("POST", "/viewport/fit")
    return json.dumps(result, indent=2)


# ============================================================================
# MAIN
# ============================================================================

def main():
    mcp.run()


if __name__ == "__main__":
    main()

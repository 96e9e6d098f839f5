"""
ERD Core - Models, layout, routing, viewport math, search and loading.

This module provides the computation layer used by the backend API, the
MCP tools and the CLI, ensuring a single source of truth for diagram logic.
"""

from .models import (
    # Enums
    DetailLevel,
    ArrowType,
    PathKind,
    NodeHighlight,
    # Core models
    ColumnSpec,
    TableRef,
    TableMeta,
    TableNode,
    RelationshipEdge,
    Bounds,
    ViewportSize,
    ViewportState,
    LoadProgress,
    SearchState,
    SearchStatus,
    SingleTable,
    WholeSchema,
    LoadScope,
    EdgePath,
    RoutedEdge,
    TableLabel,
    Scene,
    SceneSummary,
)

from .errors import ErdError, DataSourceError, LoadError
from .sizing import table_height, table_width, resolve_detail_level
from .layout import layout_tables, grid_layout, circular_layout
from .routing import route_edge, route_relationships, is_simplified
from .datasource import DataSource, InMemoryDataSource, HttpDataSource
from .loader import LoadResult, load_diagram, load_events, dedupe_relationships
from .validation import validate_diagram, ValidationIssue, IssueSeverity, IssueCode
from .analysis import summarize_diagram
from .scene import build_scene, layout_scene

__all__ = [
    # Enums
    "DetailLevel",
    "ArrowType",
    "PathKind",
    "NodeHighlight",
    # Models
    "ColumnSpec",
    "TableRef",
    "TableMeta",
    "TableNode",
    "RelationshipEdge",
    "Bounds",
    "ViewportSize",
    "ViewportState",
    "LoadProgress",
    "SearchState",
    "SearchStatus",
    "SingleTable",
    "WholeSchema",
    "LoadScope",
    "EdgePath",
    "RoutedEdge",
    "TableLabel",
    "Scene",
    "SceneSummary",
    # Errors
    "ErdError",
    "DataSourceError",
    "LoadError",
    # Sizing
    "table_height",
    "table_width",
    "resolve_detail_level",
    # Layout
    "layout_tables",
    "grid_layout",
    "circular_layout",
    # Routing
    "route_edge",
    "route_relationships",
    "is_simplified",
    # Data sources
    "DataSource",
    "InMemoryDataSource",
    "HttpDataSource",
    # Loading
    "LoadResult",
    "load_diagram",
    "load_events",
    "dedupe_relationships",
    # Diagnostics
    "validate_diagram",
    "ValidationIssue",
    "IssueSeverity",
    "IssueCode",
    "summarize_diagram",
    # Scene
    "build_scene",
    "layout_scene",
]

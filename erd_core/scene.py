"""
Scene assembly: layout, routing, labels and search overlay in one snapshot.
"""

from typing import Optional

from . import search as search_ops
from .analysis import summarize_diagram
from .labels import table_label
from .layout import layout_tables
from .models import (
    DetailLevel, LoadScope, RelationshipEdge, Scene, SearchState, TableMeta, TableNode,
    ViewportState,
)
from .routing import is_simplified, route_relationships


def build_scene(
    nodes: list[TableNode],
    relationships: list[RelationshipEdge],
    detail: DetailLevel,
    viewport: ViewportState,
    search_state: Optional[SearchState] = None,
    scope: Optional[LoadScope] = None,
    anchor_id: Optional[str] = None
) -> Scene:
    """
    Combine already positioned nodes with routed edges and overlays.

    Args:
        nodes: Output of layout_tables
        relationships: Deduplicated relationships; unresolvable ones are skipped
        detail: Detail level the nodes were sized for
        viewport: Current viewport
        search_state: Current search, if any
        scope: Scope the diagram was loaded for (used for the title)
        anchor_id: Anchor table, for edge emphasis

    Returns:
        A complete Scene
    """
    search_state = search_state or SearchState()
    simplified = is_simplified(len(nodes))
    edges = route_relationships(nodes, relationships, anchor_id, simplified)

    return Scene(
        nodes=nodes,
        edges=edges,
        viewport=viewport,
        detail=detail,
        simplified=simplified,
        highlights=search_ops.highlights(search_state, nodes),
        labels={n.id: table_label(n, detail) for n in nodes},
        search=search_ops.status(search_state),
        summary=summarize_diagram(scope, nodes, [e.relationship for e in edges]),
    )


def layout_scene(
    tables: list[TableMeta],
    relationships: list[RelationshipEdge],
    anchor_id: Optional[str],
    detail: DetailLevel,
    viewport: ViewportState,
    search_state: Optional[SearchState] = None,
    scope: Optional[LoadScope] = None
) -> Scene:
    """Lay out `tables` and build the scene in one call."""
    nodes = layout_tables(tables, anchor_id, detail)
    return build_scene(nodes, relationships, detail, viewport, search_state, scope, anchor_id)

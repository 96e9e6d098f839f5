"""
Edge routing between positioned table nodes.

An edge leaves the side of the source rectangle that faces the target and
enters the facing side of the target. Which pair of sides is used depends on
the dominant axis between the two node centers.
"""

from typing import Optional

from .models import (
    ArrowType, EdgePath, PathKind, Point, RelationshipEdge, RoutedEdge, TableNode,
)


# Node count above which edges are drawn as straight lines
SIMPLIFIED_RENDERING_THRESHOLD = 10

ANCHOR_STROKE_WIDTH = 1.5
DEFAULT_STROKE_WIDTH = 1.0


def is_simplified(node_count: int) -> bool:
    """Straight edges and no shadows for large diagrams."""
    return node_count > SIMPLIFIED_RENDERING_THRESHOLD


def get_optimal_sides(source: TableNode, target: TableNode) -> tuple[str, str]:
    """Calculate connection sides based on relative node positions."""
    sx, sy = source.center()
    tx, ty = target.center()
    dx = tx - sx
    dy = ty - sy

    if abs(dx) > abs(dy):
        return ('right', 'left') if dx > 0 else ('left', 'right')
    else:
        return ('bottom', 'top') if dy > 0 else ('top', 'bottom')


def _anchor_point(node: TableNode, side: str) -> Point:
    cx, cy = node.center()
    if side == 'right':
        return Point(x=node.x + node.width, y=cy)
    if side == 'left':
        return Point(x=node.x, y=cy)
    if side == 'bottom':
        return Point(x=cx, y=node.y + node.height)
    return Point(x=cx, y=node.y)


def route_edge(source: TableNode, target: TableNode, simplified: bool = False) -> EdgePath:
    """
    Compute the path of an edge from `source` to `target`.

    Args:
        source: Referencing table node
        target: Referenced table node
        simplified: Emit a straight line instead of a cubic curve

    Returns:
        EdgePath; cubic control points sit at the midpoint of the dominant axis
    """
    source_side, target_side = get_optimal_sides(source, target)
    start = _anchor_point(source, source_side)
    end = _anchor_point(target, target_side)

    if simplified:
        return EdgePath(kind=PathKind.LINE, start=start, end=end)

    if source_side in ('left', 'right'):
        mid_x = (start.x + end.x) / 2
        control1 = Point(x=mid_x, y=start.y)
        control2 = Point(x=mid_x, y=end.y)
    else:
        mid_y = (start.y + end.y) / 2
        control1 = Point(x=start.x, y=mid_y)
        control2 = Point(x=end.x, y=mid_y)

    return EdgePath(kind=PathKind.CUBIC, start=start, end=end, control1=control1, control2=control2)


def route_relationships(
    nodes: list[TableNode],
    relationships: list[RelationshipEdge],
    anchor_id: Optional[str] = None,
    simplified: Optional[bool] = None
) -> list[RoutedEdge]:
    """
    Route every relationship whose endpoints are both on the canvas.

    Relationships pointing at tables that were not loaded are skipped.

    Args:
        nodes: Positioned nodes
        relationships: Deduplicated relationships
        anchor_id: Anchor table; edges touching it are emphasized
        simplified: Override for straight edges (derived from node count if None)

    Returns:
        List of RoutedEdge in relationship order
    """
    if simplified is None:
        simplified = is_simplified(len(nodes))

    node_map = {n.id: n for n in nodes}
    routed: list[RoutedEdge] = []

    for rel in relationships:
        source = node_map.get(rel.source_table)
        target = node_map.get(rel.target_table)
        if source is None or target is None:
            continue

        emphasized = rel.touches(anchor_id)
        routed.append(RoutedEdge(
            relationship=rel,
            path=route_edge(source, target, simplified),
            emphasized=emphasized,
            stroke_width=ANCHOR_STROKE_WIDTH if emphasized else DEFAULT_STROKE_WIDTH,
            arrow_end=ArrowType.ARROW.value,
        ))

    return routed

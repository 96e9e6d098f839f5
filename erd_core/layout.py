"""
Layout algorithms for table nodes.

Two strategies, picked by node count and anchor presence:
- Circular: the anchor table at the origin, its neighbors on a ring around it
- Grid: row-packed grid where each row is as tall as its tallest node

Layout is deterministic and pure: it builds new TableNode objects from
table metadata and never reads previous positions.
"""

import logging
import math
from typing import Optional

from .models import DetailLevel, TableMeta, TableNode, display_name_for
from .sizing import table_height, table_width


logger = logging.getLogger(__name__)

# Default layout parameters
GRID_GAP_X = 40
GRID_GAP_Y = 30
CIRCLE_MAX_TABLES = 6
CIRCLE_MIN_RADIUS = 300
CIRCLE_BASE_RADIUS = 150
CIRCLE_RADIUS_PER_TABLE = 50


def _make_node(table: TableMeta, detail: DetailLevel, is_anchor: bool = False) -> TableNode:
    return TableNode(
        id=table.id,
        display_name=display_name_for(table.id),
        columns=list(table.columns),
        width=table_width(detail),
        height=table_height(table.columns, detail),
        is_anchor=is_anchor,
    )


def circle_radius(satellite_count: int) -> float:
    """Radius of the ring holding `satellite_count` tables around the anchor."""
    return max(CIRCLE_MIN_RADIUS, CIRCLE_BASE_RADIUS + satellite_count * CIRCLE_RADIUS_PER_TABLE)


def circular_layout(anchor: TableNode, others: list[TableNode]) -> list[TableNode]:
    """
    Center the anchor on the origin and spread the others on a ring.

    The first satellite sits due north; the rest follow clockwise in screen
    coordinates at equal angular steps. Each satellite's center lands on the
    ring.

    Args:
        anchor: Node to place at the origin
        others: Remaining nodes, in input order

    Returns:
        Anchor followed by the satellites (modified in-place)
    """
    anchor.x = -anchor.width / 2
    anchor.y = -anchor.height / 2

    if others:
        radius = circle_radius(len(others))
        angle_step = 2 * math.pi / len(others)
        for i, node in enumerate(others):
            angle = angle_step * i - math.pi / 2
            node.x = math.cos(angle) * radius - node.width / 2
            node.y = math.sin(angle) * radius - node.height / 2

    return [anchor, *others]


def grid_layout(
    nodes: list[TableNode],
    gap_x: float = GRID_GAP_X,
    gap_y: float = GRID_GAP_Y,
    columns: int | None = None
) -> list[TableNode]:
    """
    Arrange nodes in a row-packed grid.

    Args:
        nodes: Nodes to arrange, already in placement order
        gap_x: Horizontal gap between columns
        gap_y: Vertical gap between rows
        columns: Number of columns (ceil(sqrt(n)) if None)

    Returns:
        The same list of nodes (modified in-place)
    """
    if not nodes:
        return nodes

    if columns is None:
        columns = math.ceil(math.sqrt(len(nodes)))

    # Row heights: tallest node in each row
    row_heights: list[float] = []
    for start in range(0, len(nodes), columns):
        row_heights.append(max(n.height for n in nodes[start:start + columns]))

    row_offsets: list[float] = []
    current_y = 0.0
    for height in row_heights:
        row_offsets.append(current_y)
        current_y += height + gap_y

    for i, node in enumerate(nodes):
        row = i // columns
        col = i % columns
        node.x = col * (node.width + gap_x)
        node.y = row_offsets[row]

    return nodes


def layout_tables(
    tables: list[TableMeta],
    anchor_id: Optional[str] = None,
    detail: DetailLevel = DetailLevel.DETAILED
) -> list[TableNode]:
    """
    Position every table of a diagram.

    Args:
        tables: Table metadata in load order
        anchor_id: Table the diagram was opened from, if any
        detail: Active detail level (drives node sizes)

    Returns:
        New TableNode list; the anchor (when present) comes first
    """
    if not tables:
        return []

    anchor_table = None
    if anchor_id is not None:
        anchor_table = next((t for t in tables if t.id == anchor_id), None)
        if anchor_table is None:
            logger.debug("Anchor %s not in loaded tables, using grid layout", anchor_id)

    others = [_make_node(t, detail) for t in tables if t is not anchor_table]

    if anchor_table is not None:
        anchor = _make_node(anchor_table, detail, is_anchor=True)
        if len(tables) <= CIRCLE_MAX_TABLES:
            return circular_layout(anchor, others)
        return grid_layout([anchor, *others])

    return grid_layout(others)

"""
Table node sizing.

Heights depend on the column count and the detail level; widths are fixed
per detail level. Detailed nodes show at most MAX_DISPLAY_COLUMNS rows and a
"+N more" badge for the rest, so node size stays bounded on wide tables.
"""

from .models import ColumnSpec, DetailLevel


TABLE_WIDTH = 220
TABLE_WIDTH_COMPACT = 160
HEADER_HEIGHT = 36
HEADER_HEIGHT_COMPACT = 32
ROW_HEIGHT = 22
PADDING = 12
OVERFLOW_BADGE_HEIGHT = 20
MAX_DISPLAY_COLUMNS = 8

# Node count above which a diagram switches to compact mode on its own
COMPACT_MODE_THRESHOLD = 15


def table_width(detail: DetailLevel) -> float:
    """Width of every node at the given detail level."""
    return TABLE_WIDTH_COMPACT if detail == DetailLevel.COMPACT else TABLE_WIDTH


def table_height(columns: list[ColumnSpec], detail: DetailLevel) -> float:
    """
    Height of a table node.

    Args:
        columns: Columns of the table, in display order
        detail: Active detail level

    Returns:
        Header-only height in compact mode, otherwise header plus visible rows,
        the overflow badge when rows were cut, and bottom padding
    """
    if detail == DetailLevel.COMPACT:
        return HEADER_HEIGHT_COMPACT

    visible = min(len(columns), MAX_DISPLAY_COLUMNS)
    has_more = len(columns) > MAX_DISPLAY_COLUMNS
    return (
        HEADER_HEIGHT
        + visible * ROW_HEIGHT
        + (OVERFLOW_BADGE_HEIGHT if has_more else 0)
        + PADDING
    )


def resolve_detail_level(current: DetailLevel, node_count: int) -> DetailLevel:
    """Downgrade to compact once the diagram is large; never upgrade."""
    if current == DetailLevel.DETAILED and node_count > COMPACT_MODE_THRESHOLD:
        return DetailLevel.COMPACT
    return current

"""Text drawn inside table nodes."""

from .models import ColumnLabel, DetailLevel, TableLabel, TableNode
from .sizing import MAX_DISPLAY_COLUMNS


TITLE_MAX_LEN = 18
TITLE_MAX_LEN_COMPACT = 14
COLUMN_MAX_LEN = 16
COLUMN_MAX_LEN_PK = 14
TYPE_MAX_LEN = 12

# Long type names shortened for display
TYPE_ABBREVIATIONS = [
    ("character varying", "varchar"),
    ("timestamp without time zone", "timestamp"),
    ("timestamp with time zone", "timestamptz"),
    ("double precision", "double"),
]


def truncate_text(text: str, max_len: int) -> str:
    return text[:max_len - 1] + "…" if len(text) > max_len else text


def format_data_type(data_type: str) -> str:
    lowered = data_type.lower()
    for long_name, short_name in TYPE_ABBREVIATIONS:
        if long_name in lowered:
            return short_name
    if len(lowered) > TYPE_MAX_LEN:
        return lowered[:10] + "…"
    return lowered


def table_label(node: TableNode, detail: DetailLevel) -> TableLabel:
    """
    Build the label of a table node.

    Compact nodes get a title and a column-count badge. Detailed nodes list
    the first MAX_DISPLAY_COLUMNS columns and a "+N more" line for the rest.
    """
    if detail == DetailLevel.COMPACT:
        return TableLabel(
            title=truncate_text(node.display_name, TITLE_MAX_LEN_COMPACT),
            column_count=len(node.columns),
        )

    rows = []
    for col in node.columns[:MAX_DISPLAY_COLUMNS]:
        rows.append(ColumnLabel(
            marker="PK" if col.is_primary_key else "",
            name=truncate_text(col.name, COLUMN_MAX_LEN_PK if col.is_primary_key else COLUMN_MAX_LEN),
            data_type=format_data_type(col.data_type),
        ))

    hidden = len(node.columns) - MAX_DISPLAY_COLUMNS
    return TableLabel(
        title=truncate_text(node.display_name, TITLE_MAX_LEN),
        rows=rows,
        overflow=f"+{hidden} more" if hidden > 0 else None,
    )

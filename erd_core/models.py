"""
Core data models for relationship diagrams.

These models define the canonical schema for a laid-out diagram:
- Columns and tables as supplied by the data source
- Positioned table nodes and routed relationship edges
- Viewport, search and load-progress state

Field Naming Convention:
- Relationships use `source_table`/`target_table` (the referencing table is the source)
- JSON serialization outputs snake_case field names
- For input compatibility, camelCase keys from metadata services are accepted and converted
"""

from enum import Enum
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


class DetailLevel(str, Enum):
    """Global rendering verbosity of a diagram."""
    DETAILED = "detailed"  # Header plus column rows
    COMPACT = "compact"    # Header only


class ArrowType(str, Enum):
    """Arrow types for edge endpoints."""
    NONE = "none"
    ARROW = "arrow"


class PathKind(str, Enum):
    """Geometry of a routed edge."""
    LINE = "line"
    CUBIC = "cubic"


class NodeHighlight(str, Enum):
    """Search overlay for a single node."""
    NORMAL = "normal"
    MATCH = "match"
    CURRENT = "current"
    DIMMED = "dimmed"


_CAMEL_KEYS = {
    "dataType": "data_type",
    "isNullable": "is_nullable",
    "isPrimaryKey": "is_primary_key",
    "sourceTable": "source_table",
    "sourceColumn": "source_column",
    "targetTable": "target_table",
    "targetColumn": "target_column",
    "tableName": "id",
    "schema": "schema_name",
}


def _convert_camel_keys(data: Any) -> Any:
    if isinstance(data, dict):
        data = dict(data)
        for old, new in _CAMEL_KEYS.items():
            if old in data and new not in data:
                data[new] = data.pop(old)
    return data


def display_name_for(table_id: str) -> str:
    """Unqualified name of a table (`public.orders` -> `orders`)."""
    return table_id.rsplit(".", 1)[-1]


class ColumnSpec(BaseModel):
    """A single column of a table."""
    model_config = ConfigDict(frozen=True)

    name: str
    data_type: str = ""
    is_nullable: bool = True
    is_primary_key: bool = False

    @model_validator(mode='before')
    @classmethod
    def convert_legacy_fields(cls, data: Any) -> Any:
        """Accept camelCase keys (`dataType`, `isPrimaryKey`, ...)."""
        return _convert_camel_keys(data)


class TableRef(BaseModel):
    """A table identifier returned by enumeration."""
    id: str
    schema_name: Optional[str] = None

    @model_validator(mode='before')
    @classmethod
    def convert_legacy_fields(cls, data: Any) -> Any:
        return _convert_camel_keys(data)


class TableMeta(BaseModel):
    """Properties of one table as fetched from the data source."""
    id: str
    columns: list[ColumnSpec] = Field(default_factory=list)

    @model_validator(mode='before')
    @classmethod
    def convert_legacy_fields(cls, data: Any) -> Any:
        return _convert_camel_keys(data)


class TableNode(BaseModel):
    """A table positioned on the diagram canvas."""
    id: str
    display_name: str
    columns: list[ColumnSpec] = Field(default_factory=list)
    x: float = 0
    y: float = 0
    width: float = 0
    height: float = 0
    is_anchor: bool = False

    def center(self) -> tuple[float, float]:
        """Get the center point of the node."""
        return (self.x + self.width / 2, self.y + self.height / 2)

    def bounds(self) -> tuple[float, float, float, float]:
        """Get the bounding box (x, y, right, bottom)."""
        return (self.x, self.y, self.x + self.width, self.y + self.height)


class RelationshipEdge(BaseModel):
    """
    A foreign key from `source_table.source_column` to `target_table.target_column`.

    Edges are hashable; two edges with the same 4-tuple are the same edge.
    """
    model_config = ConfigDict(frozen=True)

    source_table: str
    source_column: str
    target_table: str
    target_column: str

    @model_validator(mode='before')
    @classmethod
    def convert_legacy_fields(cls, data: Any) -> Any:
        """Accept camelCase keys (`sourceTable`, `targetColumn`, ...)."""
        return _convert_camel_keys(data)

    def key(self) -> tuple[str, str, str, str]:
        return (self.source_table, self.source_column, self.target_table, self.target_column)

    def touches(self, table_id: Optional[str]) -> bool:
        """True if either endpoint is `table_id`."""
        return table_id is not None and table_id in (self.source_table, self.target_table)


class Bounds(BaseModel):
    """Axis-aligned bounding box of a node set."""
    min_x: float = 0
    min_y: float = 0
    max_x: float = 0
    max_y: float = 0

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    @property
    def is_empty(self) -> bool:
        return self.width <= 0 and self.height <= 0

    @classmethod
    def from_nodes(cls, nodes: list[TableNode]) -> "Bounds":
        """Fold over node rectangles; zero-rect for an empty node set."""
        if not nodes:
            return cls()
        return cls(
            min_x=min(n.x for n in nodes),
            min_y=min(n.y for n in nodes),
            max_x=max(n.x + n.width for n in nodes),
            max_y=max(n.y + n.height for n in nodes),
        )


class ViewportSize(BaseModel):
    """Pixel size of the host's drawing area."""
    width: float = Field(gt=0)
    height: float = Field(gt=0)


class ViewportState(BaseModel):
    """
    Pan/zoom of the diagram canvas.

    Screen coordinates are `pan + zoom * world`. Zoom is clamped into
    `[zoom_min, zoom_max]` whenever a state is built.
    """
    model_config = ConfigDict(frozen=True)

    zoom: float = 1.0
    pan_x: float = 0.0
    pan_y: float = 0.0
    zoom_min: float = 0.25
    zoom_max: float = 3.0

    @model_validator(mode='before')
    @classmethod
    def clamp_zoom(cls, data: Any) -> Any:
        if isinstance(data, dict):
            zoom_min = data.get("zoom_min", 0.25)
            zoom_max = data.get("zoom_max", 3.0)
            if zoom_min > zoom_max:
                raise ValueError("zoom_min must not exceed zoom_max")
            zoom = data.get("zoom", 1.0)
            data = {**data, "zoom": min(max(zoom, zoom_min), zoom_max)}
        return data

    def replace(self, **changes: float) -> "ViewportState":
        """Return a validated copy with `changes` applied (zoom re-clamped)."""
        return ViewportState(**{**self.model_dump(), **changes})


class DragAnchor(BaseModel):
    """Pointer position minus pan at the start of a drag."""
    model_config = ConfigDict(frozen=True)

    x: float
    y: float


class LoadProgress(BaseModel):
    """Number of tables whose properties have been fetched so far."""
    model_config = ConfigDict(frozen=True)

    loaded: int = 0
    total: int = 0

    @property
    def percent(self) -> int:
        if self.total <= 0:
            return 0
        return round(self.loaded / self.total * 100)


class SearchState(BaseModel):
    """Current search query, its ordered matches and the selected match."""
    query: str = ""
    matches: list[TableNode] = Field(default_factory=list)
    current_index: int = 0

    @property
    def is_active(self) -> bool:
        return bool(self.query.strip())


class SearchStatus(BaseModel):
    """What a host needs for a "3 / 12" style indicator."""
    query: str = ""
    match_count: int = 0
    current_index: int = 0


# --- Load scopes ---

class SingleTable(BaseModel):
    """Diagram of one table and its immediate foreign-key neighbors."""
    kind: Literal["table"] = "table"
    table_id: str


class WholeSchema(BaseModel):
    """Diagram of every table in a schema."""
    kind: Literal["schema"] = "schema"
    schema_name: str


LoadScope = Union[SingleTable, WholeSchema]


# --- Routed geometry ---

class Point(BaseModel):
    x: float
    y: float


class EdgePath(BaseModel):
    """A straight line or a cubic curve between two points."""
    kind: PathKind
    start: Point
    end: Point
    control1: Optional[Point] = None
    control2: Optional[Point] = None

    def to_svg(self) -> str:
        """SVG path data for this edge."""
        start = f"M{_fmt(self.start.x)},{_fmt(self.start.y)}"
        if self.kind == PathKind.LINE or self.control1 is None or self.control2 is None:
            return f"{start} L{_fmt(self.end.x)},{_fmt(self.end.y)}"
        return (
            f"{start} C{_fmt(self.control1.x)},{_fmt(self.control1.y)} "
            f"{_fmt(self.control2.x)},{_fmt(self.control2.y)} "
            f"{_fmt(self.end.x)},{_fmt(self.end.y)}"
        )


def _fmt(value: float) -> str:
    return f"{value:g}"


class RoutedEdge(BaseModel):
    """A relationship with its computed path and stroke styling."""
    relationship: RelationshipEdge
    path: EdgePath
    emphasized: bool = False   # Touches the anchor table
    stroke_width: float = 1.0
    arrow_end: str = ArrowType.ARROW.value

    def to_json_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        return {
            **self.relationship.model_dump(),
            "path": self.path.to_svg(),
            "kind": self.path.kind.value,
            "emphasized": self.emphasized,
            "stroke_width": self.stroke_width,
            "arrow_end": self.arrow_end,
        }


# --- Labels ---

class ColumnLabel(BaseModel):
    """One rendered column row."""
    marker: str = ""   # "PK" for primary key columns
    name: str
    data_type: str


class TableLabel(BaseModel):
    """All text drawn inside a table node."""
    title: str
    rows: list[ColumnLabel] = Field(default_factory=list)
    overflow: Optional[str] = None       # "+N more"
    column_count: Optional[int] = None   # Compact mode badge


# --- Scene ---

class SceneSummary(BaseModel):
    """Header information for a diagram."""
    title: str
    table_count: int = 0
    relationship_count: int = 0
    most_connected: list[dict] = Field(default_factory=list)
    orphan_count: int = 0


class Scene(BaseModel):
    """
    A complete renderable snapshot.
    This is what the host paints; it is rebuilt on every state change.
    """
    nodes: list[TableNode] = Field(default_factory=list)
    edges: list[RoutedEdge] = Field(default_factory=list)
    viewport: ViewportState = Field(default_factory=ViewportState)
    detail: DetailLevel = DetailLevel.DETAILED
    simplified: bool = False
    highlights: dict[str, NodeHighlight] = Field(default_factory=dict)
    labels: dict[str, TableLabel] = Field(default_factory=dict)
    search: SearchStatus = Field(default_factory=SearchStatus)
    summary: Optional[SceneSummary] = None

    def get_node(self, node_id: str) -> Optional[TableNode]:
        """Get a node by ID (O(n))."""
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def to_json_dict(self) -> dict:
        """Convert to JSON-serializable dict with paths rendered as SVG data."""
        return {
            "nodes": [n.model_dump() for n in self.nodes],
            "edges": [e.to_json_dict() for e in self.edges],
            "viewport": self.viewport.model_dump(),
            "detail": self.detail.value,
            "simplified": self.simplified,
            "highlights": {k: v.value for k, v in self.highlights.items()},
            "labels": {k: v.model_dump() for k, v in self.labels.items()},
            "search": self.search.model_dump(),
            "summary": self.summary.model_dump() if self.summary else None,
        }

"""
Diagram analysis - Connection counts and header summaries.
"""

from dataclasses import dataclass
from typing import Optional

from .models import (
    RelationshipEdge, SceneSummary, SingleTable, LoadScope, TableNode, display_name_for,
)


@dataclass
class TableConnectionInfo:
    """Connection information for a single table."""
    table_id: str
    label: str
    incoming: int = 0   # Relationships referencing this table
    outgoing: int = 0   # Foreign keys declared on this table

    @property
    def total(self) -> int:
        return self.incoming + self.outgoing


def calculate_table_connections(
    nodes: list[TableNode],
    relationships: list[RelationshipEdge]
) -> dict[str, TableConnectionInfo]:
    """
    Calculate connection counts for all tables on the canvas.

    Args:
        nodes: Positioned table nodes
        relationships: Relationships to count

    Returns:
        Dictionary mapping table_id to TableConnectionInfo
    """
    connections: dict[str, TableConnectionInfo] = {}
    for node in nodes:
        connections[node.id] = TableConnectionInfo(
            table_id=node.id,
            label=node.display_name
        )

    for rel in relationships:
        if rel.source_table in connections:
            connections[rel.source_table].outgoing += 1
        if rel.target_table in connections:
            connections[rel.target_table].incoming += 1

    return connections


def diagram_title(scope: Optional[LoadScope]) -> str:
    if scope is None:
        return "Diagram"
    if isinstance(scope, SingleTable):
        return f"{display_name_for(scope.table_id)} - ER Diagram"
    return f"{scope.schema_name} - Schema Diagram"


def summarize_diagram(
    scope: Optional[LoadScope],
    nodes: list[TableNode],
    relationships: list[RelationshipEdge],
    top_n: int = 5
) -> SceneSummary:
    """
    Generate the header summary of a diagram.

    Args:
        scope: Scope the diagram was loaded for
        nodes: Positioned table nodes
        relationships: Relationships drawn on the canvas
        top_n: Number of top connected tables to include

    Returns:
        SceneSummary with title, counts and most connected tables
    """
    connections = calculate_table_connections(nodes, relationships)

    sorted_by_connections = sorted(
        connections.values(),
        key=lambda x: x.total,
        reverse=True
    )
    most_connected = [
        {
            "id": c.table_id,
            "label": c.label,
            "connections": c.total,
            "incoming": c.incoming,
            "outgoing": c.outgoing
        }
        for c in sorted_by_connections[:top_n] if c.total > 0
    ]

    orphan_count = sum(1 for c in connections.values() if c.total == 0)

    return SceneSummary(
        title=diagram_title(scope),
        table_count=len(nodes),
        relationship_count=len(relationships),
        most_connected=most_connected,
        orphan_count=orphan_count
    )

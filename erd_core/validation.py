"""
Diagram diagnostics - Check loaded diagrams for non-fatal conditions.

None of these stop a diagram from rendering. They explain what the host
shows instead: an empty state, an unanchored grid, or missing edges.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .models import RelationshipEdge, TableMeta


class IssueSeverity(str, Enum):
    """Severity levels for diagnostics."""
    WARNING = "warning"  # Something requested could not be shown
    INFO = "info"        # Informational, may be intentional


class IssueCode(str, Enum):
    EMPTY_SCOPE = "empty_scope"
    ANCHOR_NOT_FOUND = "anchor_not_found"
    DANGLING_RELATIONSHIP = "dangling_relationship"
    SELF_REFERENCE = "self_reference"


@dataclass
class ValidationIssue:
    """A single diagnostic about a loaded diagram."""
    severity: IssueSeverity
    code: IssueCode
    message: str
    table_id: str | None = None
    relationship: tuple[str, str, str, str] | None = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        result = {
            "type": self.severity.value,
            "code": self.code.value,
            "message": self.message
        }
        if self.table_id:
            result["table_id"] = self.table_id
        if self.relationship:
            result["relationship"] = list(self.relationship)
        return result


def validate_diagram(
    tables: list[TableMeta],
    relationships: list[RelationshipEdge],
    anchor_id: Optional[str] = None
) -> list[ValidationIssue]:
    """
    Diagnose a loaded diagram.

    Checks for:
    - Empty scope (no tables) - INFO
    - Anchor table missing from the loaded set - WARNING
    - Relationships with an endpoint that was not loaded - WARNING
    - Self-referencing relationships - INFO

    Args:
        tables: Loaded tables
        relationships: Deduplicated relationships
        anchor_id: Table the diagram was opened from, if any

    Returns:
        List of ValidationIssue objects
    """
    issues: list[ValidationIssue] = []

    if not tables:
        issues.append(ValidationIssue(
            severity=IssueSeverity.INFO,
            code=IssueCode.EMPTY_SCOPE,
            message="No tables found",
            table_id=anchor_id
        ))
        return issues

    table_ids = {t.id for t in tables}

    if anchor_id is not None and anchor_id not in table_ids:
        issues.append(ValidationIssue(
            severity=IssueSeverity.WARNING,
            code=IssueCode.ANCHOR_NOT_FOUND,
            message=f"Table {anchor_id} was not found; showing an unanchored layout",
            table_id=anchor_id
        ))

    for rel in relationships:
        missing = [t for t in (rel.source_table, rel.target_table) if t not in table_ids]
        if missing:
            issues.append(ValidationIssue(
                severity=IssueSeverity.WARNING,
                code=IssueCode.DANGLING_RELATIONSHIP,
                message=f"Relationship references table(s) not loaded: {', '.join(missing)}",
                relationship=rel.key()
            ))
        elif rel.source_table == rel.target_table:
            issues.append(ValidationIssue(
                severity=IssueSeverity.INFO,
                code=IssueCode.SELF_REFERENCE,
                message=f"Self-referencing relationship on {rel.source_table}.{rel.source_column}",
                table_id=rel.source_table,
                relationship=rel.key()
            ))

    return issues


def validation_summary(issues: list[ValidationIssue]) -> dict:
    """
    Create a summary of diagnostics.

    Args:
        issues: List of validation issues

    Returns:
        Dictionary with counts by severity
    """
    return {
        "total": len(issues),
        "warnings": len([i for i in issues if i.severity == IssueSeverity.WARNING]),
        "info": len([i for i in issues if i.severity == IssueSeverity.INFO]),
        "empty": any(i.code == IssueCode.EMPTY_SCOPE for i in issues)
    }

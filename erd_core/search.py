"""
Table search with ordered, wrap-around navigation.

Highlights are computed as an overlay over the current node set rather than
stored on nodes, so they can never go stale when the node set changes.
"""

from typing import Optional

from .models import NodeHighlight, SearchState, SearchStatus, TableNode


def search(nodes: list[TableNode], query: str) -> list[TableNode]:
    """
    Find nodes whose qualified or display name contains `query`.

    Matching is case-insensitive. A blank query matches nothing.
    """
    if not query.strip():
        return []
    needle = query.lower()
    return [
        n for n in nodes
        if needle in n.display_name.lower() or needle in n.id.lower()
    ]


def update_query(nodes: list[TableNode], query: str) -> SearchState:
    """New search state for `query`; the first match becomes current."""
    return SearchState(query=query, matches=search(nodes, query), current_index=0)


def refresh(state: SearchState, nodes: list[TableNode]) -> SearchState:
    """Recompute matches against a new node set, keeping the index in range."""
    matches = search(nodes, state.query)
    index = min(state.current_index, len(matches) - 1) if matches else 0
    return SearchState(query=state.query, matches=matches, current_index=max(index, 0))


def go_to_match(state: SearchState, index: int) -> SearchState:
    """Select match `index`, wrapping in both directions."""
    if not state.matches:
        return state
    wrapped = index % len(state.matches)
    return state.model_copy(update={"current_index": wrapped})


def next_match(state: SearchState) -> SearchState:
    return go_to_match(state, state.current_index + 1)


def previous_match(state: SearchState) -> SearchState:
    return go_to_match(state, state.current_index - 1)


def current_match(state: SearchState) -> Optional[TableNode]:
    if not state.matches:
        return None
    return state.matches[state.current_index]


def highlight_for(state: SearchState, node_id: str) -> NodeHighlight:
    """Overlay for one node: current match, other match, dimmed or normal."""
    if not state.is_active:
        return NodeHighlight.NORMAL
    for i, match in enumerate(state.matches):
        if match.id == node_id:
            return NodeHighlight.CURRENT if i == state.current_index else NodeHighlight.MATCH
    return NodeHighlight.DIMMED


def highlights(state: SearchState, nodes: list[TableNode]) -> dict[str, NodeHighlight]:
    return {node.id: highlight_for(state, node.id) for node in nodes}


def status(state: SearchState) -> SearchStatus:
    return SearchStatus(
        query=state.query,
        match_count=len(state.matches),
        current_index=state.current_index,
    )

"""
Diagram Session - Host-side state for one open diagram.

This module implements:
- Loading a scope through the progressive loader, discarding stale results
- Detail level, viewport and search state, replaced wholesale on every change
- Change and progress callbacks for real-time sync
- Scene snapshots built on demand from the current state
"""

import logging
from typing import Callable, Optional

from erd_core import search as search_ops
from erd_core import viewport as viewport_ops
from erd_core.datasource import DataSource
from erd_core.errors import LoadError
from erd_core.layout import layout_tables
from erd_core.loader import LoadResult, load_diagram, scope_label
from erd_core.models import (
    Bounds, DetailLevel, DragAnchor, LoadProgress, LoadScope, Scene, SearchState, SingleTable,
    TableNode, ViewportSize, ViewportState,
)
from erd_core.scene import build_scene
from erd_core.sizing import resolve_detail_level
from erd_core.validation import ValidationIssue, validate_diagram


logger = logging.getLogger(__name__)

DEFAULT_VIEWPORT_SIZE = ViewportSize(width=1200, height=800)


class DiagramSession:
    """
    Manages a single diagram's loaded data and view state.

    Features:
    - Generation counter so results of superseded loads are ignored
    - Auto-downgrade to compact detail for large diagrams
    - Auto-fit after every successful load
    - Search that keeps the current match in view

    Layout is recomputed from the loaded tables whenever the table set or the
    detail level changes; positions are never patched incrementally.
    """

    def __init__(
        self,
        source: Optional[DataSource] = None,
        viewport_size: ViewportSize = DEFAULT_VIEWPORT_SIZE
    ):
        self._source = source
        self._scope: Optional[LoadScope] = None
        self._generation = 0
        self._result: Optional[LoadResult] = None
        self._nodes: list[TableNode] = []
        self._detail = DetailLevel.DETAILED
        self._viewport = viewport_ops.initial_viewport()
        self._viewport_size = viewport_size
        self._search = SearchState()
        self._progress = LoadProgress()
        self._is_loading = False
        self._error: Optional[str] = None
        self._pan_mode = True
        self._drag: Optional[DragAnchor] = None
        self._on_change_callbacks: list[Callable] = []
        self._on_progress_callbacks: list[Callable] = []

    # --- Properties ---

    @property
    def source(self) -> Optional[DataSource]:
        return self._source

    @source.setter
    def source(self, value: Optional[DataSource]):
        self._source = value

    @property
    def scope(self) -> Optional[LoadScope]:
        return self._scope

    @property
    def anchor_id(self) -> Optional[str]:
        return self._scope.table_id if isinstance(self._scope, SingleTable) else None

    @property
    def is_loading(self) -> bool:
        return self._is_loading

    @property
    def progress(self) -> LoadProgress:
        return self._progress

    @property
    def error(self) -> Optional[str]:
        """User-facing message of the last failed load, if any."""
        return self._error

    @property
    def detail(self) -> DetailLevel:
        return self._detail

    @property
    def viewport(self) -> ViewportState:
        return self._viewport

    @property
    def viewport_size(self) -> ViewportSize:
        return self._viewport_size

    @property
    def search_state(self) -> SearchState:
        return self._search

    @property
    def nodes(self) -> list[TableNode]:
        return self._nodes

    @property
    def result(self) -> Optional[LoadResult]:
        return self._result

    # --- Callbacks ---

    def on_change(self, callback: Callable):
        """Register a callback for state changes."""
        self._on_change_callbacks.append(callback)

    def on_progress(self, callback: Callable):
        """Register a callback receiving each LoadProgress of the active load."""
        self._on_progress_callbacks.append(callback)

    def _notify_change(self):
        for callback in self._on_change_callbacks:
            callback()

    def _notify_progress(self, progress: LoadProgress):
        for callback in self._on_progress_callbacks:
            callback(progress)

    # --- Loading ---

    async def load(self, scope: LoadScope) -> bool:
        """
        Load `scope`, replacing whatever diagram was shown.

        Returns:
            True if this load's result was applied, False if a newer load
            superseded it while it was running

        Raises:
            ValueError: if no data source is configured
            LoadError: if the data source failed (the session shows no diagram)
        """
        if self._source is None:
            raise ValueError("No data source configured")

        self._generation += 1
        generation = self._generation
        self._scope = scope
        self._is_loading = True
        self._error = None
        self._progress = LoadProgress()
        self._notify_progress(self._progress)
        self._notify_change()

        def forward(progress: LoadProgress):
            if generation != self._generation:
                return
            self._progress = progress
            self._notify_progress(progress)

        try:
            result = await load_diagram(self._source, scope, on_progress=forward)
        except Exception as e:
            if generation != self._generation:
                logger.debug("Ignoring failure of superseded load for %s", scope_label(scope))
                return False
            if not isinstance(e, LoadError):
                logger.exception("Unexpected failure loading %s", scope_label(scope))
            self._clear_diagram(e.user_message if isinstance(e, LoadError) else str(e))
            raise
        finally:
            if generation == self._generation:
                self._is_loading = False

        if generation != self._generation:
            logger.debug("Discarding stale result for %s", scope_label(scope))
            return False

        self._apply_result(result)
        return True

    def _clear_diagram(self, error: str):
        """Show no diagram, only the error of the failed load."""
        self._is_loading = False
        self._error = error or "Unknown error"
        self._result = None
        self._nodes = []
        self._search = search_ops.refresh(self._search, [])
        self._notify_change()

    async def reload(self) -> bool:
        """Load the current scope again from scratch."""
        if self._scope is None:
            raise ValueError("No diagram loaded")
        return await self.load(self._scope)

    def _apply_result(self, result: LoadResult):
        previous = self._result
        if previous is None or previous.scope != result.scope:
            self._detail = DetailLevel.DETAILED
        self._result = result
        self._is_loading = False
        self._detail = resolve_detail_level(self._detail, len(result.tables))
        self._viewport = viewport_ops.initial_viewport(len(result.tables))
        self._relayout()
        self._fit()
        self._notify_change()

    def _relayout(self):
        tables = self._result.tables if self._result else []
        self._nodes = layout_tables(tables, self.anchor_id, self._detail)
        self._search = search_ops.refresh(self._search, self._nodes)

    def diagnostics(self) -> list[ValidationIssue]:
        if self._result is None:
            return []
        return validate_diagram(self._result.tables, self._result.relationships, self.anchor_id)

    # --- Detail level ---

    def set_detail(self, detail: DetailLevel):
        if detail == self._detail:
            return
        self._detail = detail
        self._relayout()
        self._notify_change()

    def toggle_detail(self) -> DetailLevel:
        self.set_detail(
            DetailLevel.DETAILED if self._detail == DetailLevel.COMPACT else DetailLevel.COMPACT
        )
        return self._detail

    # --- Viewport ---

    def set_viewport_size(self, width: float, height: float):
        self._viewport_size = ViewportSize(width=width, height=height)
        self._notify_change()

    def zoom_by(self, delta: float):
        self._viewport = viewport_ops.zoom_by(self._viewport, delta)
        self._notify_change()

    def zoom_in(self):
        self._viewport = viewport_ops.zoom_in(self._viewport)
        self._notify_change()

    def zoom_out(self):
        self._viewport = viewport_ops.zoom_out(self._viewport)
        self._notify_change()

    def pan_by(self, dx: float, dy: float):
        self._viewport = viewport_ops.pan_by(self._viewport, dx, dy)
        self._notify_change()

    def wheel(self, delta_x: float, delta_y: float, zoom_modifier: bool = False):
        self._viewport = viewport_ops.apply_wheel(self._viewport, delta_x, delta_y, zoom_modifier)
        self._notify_change()

    @property
    def pan_mode(self) -> bool:
        return self._pan_mode

    @property
    def is_panning(self) -> bool:
        return self._drag is not None

    def set_pan_mode(self, enabled: bool):
        self._pan_mode = enabled
        self._notify_change()

    def press(self, x: float, y: float, button: int = 0) -> bool:
        """Pointer pressed at (x, y); True if this starts a pan."""
        self._drag = viewport_ops.begin_drag(self._viewport, x, y, button, self._pan_mode)
        return self._drag is not None

    def drag(self, x: float, y: float):
        """Pointer moved; pans only while a drag is active."""
        if self._drag is None:
            return
        self._viewport = viewport_ops.drag_to(self._viewport, self._drag, x, y)
        self._notify_change()

    def release(self):
        self._drag = None

    def _fit(self):
        self._viewport = viewport_ops.fit_to_bounds(
            self._viewport, Bounds.from_nodes(self._nodes), self._viewport_size
        )

    def fit_to_screen(self):
        self._fit()
        self._notify_change()

    def node_at(self, x: float, y: float) -> Optional[TableNode]:
        """Node under a screen point."""
        return viewport_ops.hit_test(self._viewport, self._nodes, x, y)

    # --- Search ---

    def _follow_current_match(self):
        match = search_ops.current_match(self._search)
        if match is not None:
            self._viewport = viewport_ops.center_on(self._viewport, match, self._viewport_size)

    def set_search(self, query: str) -> SearchState:
        """Replace the query; the view follows the first match."""
        self._search = search_ops.update_query(self._nodes, query)
        self._follow_current_match()
        self._notify_change()
        return self._search

    def next_match(self) -> SearchState:
        self._search = search_ops.next_match(self._search)
        self._follow_current_match()
        self._notify_change()
        return self._search

    def previous_match(self) -> SearchState:
        self._search = search_ops.previous_match(self._search)
        self._follow_current_match()
        self._notify_change()
        return self._search

    def clear_search(self):
        self._search = SearchState()
        self._notify_change()

    # --- DDL ---

    async def copy_ddl(self) -> str:
        """CREATE TABLE statement of the anchor table."""
        if self._source is None:
            raise ValueError("No data source configured")
        anchor_id = self.anchor_id
        if anchor_id is None:
            raise ValueError("DDL is only available for single-table diagrams")
        return await self._source.generate_ddl(anchor_id)

    # --- Snapshots ---

    def get_scene(self) -> Scene:
        relationships = self._result.relationships if self._result else []
        return build_scene(
            self._nodes,
            relationships,
            self._detail,
            self._viewport,
            self._search,
            self._scope,
            self.anchor_id,
        )

    def get_state(self) -> dict:
        """Complete state for API responses."""
        return {
            "scope": self._scope.model_dump() if self._scope else None,
            "loading": self._is_loading,
            "progress": {**self._progress.model_dump(), "percent": self._progress.percent},
            "error": self._error,
            "retryable": self._error is not None,
            "viewport_size": self._viewport_size.model_dump(),
            "zoom_percent": viewport_ops.zoom_percent(self._viewport),
            "pan_mode": self._pan_mode,
            "diagnostics": [i.to_dict() for i in self.diagnostics()],
            "scene": self.get_scene().to_json_dict(),
        }


# Global instance
diagram_session = DiagramSession()

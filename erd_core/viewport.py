"""
Viewport math: zoom, pan, fit-to-bounds and coordinate transforms.

All functions are pure and return a new ViewportState. The transform is
always translate-then-scale:

    screen = pan + zoom * world
    world  = (screen - pan) / zoom
"""

from .models import Bounds, DragAnchor, TableNode, ViewportSize, ViewportState
from .sizing import COMPACT_MODE_THRESHOLD


ZOOM_MAX = 3.0
ZOOM_MIN_SMALL = 0.25
ZOOM_MIN_LARGE = 0.1
ZOOM_STEP = 0.1

FIT_MARGIN = 80
MAX_FIT_ZOOM = 1.2


def zoom_limits(node_count: int) -> tuple[float, float]:
    """
    Zoom range for a diagram of `node_count` tables.

    Large diagrams may zoom further out so the whole schema fits on screen.
    """
    if node_count > COMPACT_MODE_THRESHOLD:
        return (ZOOM_MIN_LARGE, ZOOM_MAX)
    return (ZOOM_MIN_SMALL, ZOOM_MAX)


def initial_viewport(node_count: int = 0) -> ViewportState:
    zoom_min, zoom_max = zoom_limits(node_count)
    return ViewportState(zoom=1.0, pan_x=0.0, pan_y=0.0, zoom_min=zoom_min, zoom_max=zoom_max)


def zoom_by(state: ViewportState, delta: float) -> ViewportState:
    return state.replace(zoom=state.zoom + delta)


def zoom_in(state: ViewportState) -> ViewportState:
    return zoom_by(state, ZOOM_STEP)


def zoom_out(state: ViewportState) -> ViewportState:
    return zoom_by(state, -ZOOM_STEP)


def pan_by(state: ViewportState, dx: float, dy: float) -> ViewportState:
    """Translate the canvas. Content may be panned fully off-screen."""
    return state.replace(pan_x=state.pan_x + dx, pan_y=state.pan_y + dy)


def apply_wheel(
    state: ViewportState,
    delta_x: float,
    delta_y: float,
    zoom_modifier: bool = False
) -> ViewportState:
    """
    Handle a mouse-wheel event.

    With the zoom modifier (Ctrl/Cmd) held, scrolling down zooms out and
    scrolling up zooms in by one step. Otherwise the wheel pans.
    """
    if zoom_modifier:
        return zoom_by(state, -ZOOM_STEP if delta_y > 0 else ZOOM_STEP)
    return pan_by(state, -delta_x, -delta_y)


def fit_to_bounds(
    state: ViewportState,
    bounds: Bounds,
    size: ViewportSize,
    margin: float = FIT_MARGIN,
    max_fit_zoom: float = MAX_FIT_ZOOM
) -> ViewportState:
    """
    Choose zoom and pan so `bounds` (padded by `margin`) fills the viewport.

    Args:
        state: Current viewport
        bounds: World-space bounds of the content
        size: Viewport size in pixels
        margin: World-space padding added to the content size
        max_fit_zoom: Upper bound so tiny diagrams are not blown up

    Returns:
        New viewport state with the padded bounds centered. If the fitted
        zoom is below `zoom_min`, the range is widened to include it.
    """
    if bounds.is_empty:
        return state

    content_width = bounds.width + margin
    content_height = bounds.height + margin
    scale = min(size.width / content_width, size.height / content_height, max_fit_zoom)
    scale = min(scale, state.zoom_max)

    center_x = (bounds.min_x + bounds.max_x) / 2
    center_y = (bounds.min_y + bounds.max_y) / 2

    return state.replace(
        zoom=scale,
        zoom_min=min(state.zoom_min, scale),
        pan_x=size.width / 2 - center_x * scale,
        pan_y=size.height / 2 - center_y * scale,
    )


def center_on(state: ViewportState, node: TableNode, size: ViewportSize) -> ViewportState:
    """Pan so the node's center lands at the viewport center; zoom is kept."""
    cx, cy = node.center()
    return state.replace(
        pan_x=size.width / 2 - cx * state.zoom,
        pan_y=size.height / 2 - cy * state.zoom,
    )


def world_to_screen(state: ViewportState, x: float, y: float) -> tuple[float, float]:
    return (state.pan_x + state.zoom * x, state.pan_y + state.zoom * y)


def screen_to_world(state: ViewportState, x: float, y: float) -> tuple[float, float]:
    return ((x - state.pan_x) / state.zoom, (y - state.pan_y) / state.zoom)


def hit_test(state: ViewportState, nodes: list[TableNode], x: float, y: float) -> TableNode | None:
    """Topmost node under the screen point (x, y), or None."""
    wx, wy = screen_to_world(state, x, y)
    for node in reversed(nodes):
        left, top, right, bottom = node.bounds()
        if left <= wx <= right and top <= wy <= bottom:
            return node
    return None


def zoom_percent(state: ViewportState) -> int:
    return round(state.zoom * 100)


# --- Drag to pan ---

MIDDLE_BUTTON = 1


def begin_drag(
    state: ViewportState,
    x: float,
    y: float,
    button: int = 0,
    pan_mode: bool = True
) -> DragAnchor | None:
    """
    Start a drag at screen point (x, y).

    The primary button pans only in pan mode; the middle button always pans.
    Returns None when the press does not start a pan.
    """
    if not pan_mode and button != MIDDLE_BUTTON:
        return None
    return DragAnchor(x=x - state.pan_x, y=y - state.pan_y)


def drag_to(state: ViewportState, anchor: DragAnchor, x: float, y: float) -> ViewportState:
    """Pan so the point grabbed at `begin_drag` stays under the pointer."""
    return state.replace(pan_x=x - anchor.x, pan_y=y - anchor.y)

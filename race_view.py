# race_view.py

import logging
import math
from typing import Optional

import numpy as np
from PyQt6.QtCore import QLineF, QPointF, QRectF, Qt, QTimer, pyqtSignal
from PyQt6.QtGui import QBrush, QPainter
from PyQt6.QtWidgets import QGraphicsItem, QGraphicsScene, QGraphicsView

from camera_tracker import CameraState
from race_graph_data import GraphEdge, GraphNode, ShapeKind
from race_graph_items import BACKGROUND_COLOR, MERGE_RADIUS_RATIO, BranchLabel, CommitBlock, EdgeLine, MergeSphere
from race_session import RaceSession

FRAME_INTERVAL_MS = 16
FIELD_OF_VIEW_DEGREES = 45.0
NEAR_PLANE = 0.5
MIN_CAMERA_DISTANCE = 5.0
MAX_CAMERA_DISTANCE = 400.0
ZOOM_STEP = 1.1
LABEL_LIFT = 10.0
LABEL_WORLD_SIZE = 1.0
WORLD_UP = np.array([0.0, 1.0, 0.0])


def camera_basis(camera: CameraState) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """(right, up, forward) unit vectors of a camera looking from position to target."""
    forward = camera.target - camera.position
    norm = np.linalg.norm(forward)
    forward = forward / norm if norm > 0 else np.array([0.0, 0.0, -1.0])
    right = np.cross(forward, WORLD_UP)
    if np.linalg.norm(right) < 1e-9:
        right = np.array([1.0, 0.0, 0.0])
    right = right / np.linalg.norm(right)
    up = np.cross(right, forward)
    return right, up, forward


def focal_length(viewport_height: float, fov_degrees: float = FIELD_OF_VIEW_DEGREES) -> float:
    return (viewport_height / 2) / math.tan(math.radians(fov_degrees) / 2)


def project_point(camera: CameraState, point, focal: float, basis=None) -> Optional[tuple[float, float, float]]:
    """
    Perspective projection of a world point into view coordinates centered on the viewport.

    Returns (x, y, depth) with y growing downwards, or None behind the near plane.
    """
    right, up, forward = basis if basis is not None else camera_basis(camera)
    offset = np.asarray(point, dtype=float) - camera.position
    depth = float(np.dot(offset, forward))
    if depth <= NEAR_PLANE:
        return None
    scale = focal / depth
    return float(np.dot(offset, right)) * scale, -float(np.dot(offset, up)) * scale, depth


def zoom_camera(camera: CameraState, factor: float) -> CameraState:
    """Moves the camera along its view direction, keeping the distance within limits."""
    offset = camera.position - camera.target
    distance = float(np.linalg.norm(offset))
    if distance == 0:
        return camera.copy()
    new_distance = min(max(distance * factor, MIN_CAMERA_DISTANCE), MAX_CAMERA_DISTANCE)
    return CameraState(camera.target + offset * (new_distance / distance), camera.target.copy())


def pan_camera(camera: CameraState, dx: float, dy: float, world_per_pixel: float) -> CameraState:
    """Slides camera and target together over the ground plane (map-style panning)."""
    right, _, forward = camera_basis(camera)
    ground_forward = np.array([forward[0], 0.0, forward[2]])
    norm = np.linalg.norm(ground_forward)
    ground_forward = ground_forward / norm if norm > 0 else np.array([0.0, 0.0, -1.0])
    shift = (-dx * right + dy * ground_forward) * world_per_pixel
    return CameraState(camera.position + shift, camera.target + shift)


class RaceView(QGraphicsView):
    commit_clicked = pyqtSignal(str)
    render_failed = pyqtSignal(str)

    def __init__(self, session: RaceSession, parent=None):
        super().__init__(parent)
        self.scene = QGraphicsScene(self)
        self.setScene(self.scene)
        self.setBackgroundBrush(QBrush(BACKGROUND_COLOR))
        self.setRenderHint(QPainter.RenderHint.Antialiasing)
        self.setHorizontalScrollBarPolicy(Qt.ScrollBarPolicy.ScrollBarAlwaysOff)
        self.setVerticalScrollBarPolicy(Qt.ScrollBarPolicy.ScrollBarAlwaysOff)
        self.setMouseTracking(True)

        self.session = session
        self._visible_nodes: list[GraphNode] = []
        self._visible_edges: list[GraphEdge] = []
        self._failed = False
        self._drag_origin: Optional[QPointF] = None
        self._drag_moved = False
        self._node_items: dict[str, QGraphicsItem] = {}
        self._edge_items: dict[GraphEdge, EdgeLine] = {}
        self._label_items: dict[str, BranchLabel] = {}
        self._last_camera: Optional[CameraState] = None
        self._dirty = True

        self.session.frame_updated.connect(self.set_visible)

        self._frame_timer = QTimer(self)
        self._frame_timer.setInterval(FRAME_INTERVAL_MS)
        self._frame_timer.timeout.connect(self._on_frame)
        self._frame_timer.start()

    def set_visible(self, nodes: list, edges: list):
        self._visible_nodes = nodes
        self._visible_edges = edges
        self._sync_items()
        self._dirty = True

    def node_item(self, sha: str) -> Optional[QGraphicsItem]:
        return self._node_items.get(sha)

    def reset_fault(self):
        self._failed = False
        self._dirty = True

    def resizeEvent(self, event):
        super().resizeEvent(event)
        size = self.viewport().size()
        self.scene.setSceneRect(QRectF(-size.width() / 2, -size.height() / 2, size.width(), size.height()))
        self._dirty = True

    def _sync_items(self):
        """Adds and removes scene items so they match the visible set; surviving items keep their state."""
        wanted_nodes = {node.sha: node for node in self._visible_nodes}
        for sha, item in list(self._node_items.items()):
            if wanted_nodes.get(sha) is not item.node:
                self.scene.removeItem(item)
                del self._node_items[sha]
        for node in self._visible_nodes:
            if node.sha not in self._node_items:
                item_class = MergeSphere if node.shape is ShapeKind.MERGE else CommitBlock
                item = item_class(node, QRectF())
                self.scene.addItem(item)
                self._node_items[node.sha] = item

        wanted_edges = set(self._visible_edges)
        for edge, line in list(self._edge_items.items()):
            if edge not in wanted_edges:
                self.scene.removeItem(line)
                del self._edge_items[edge]
        for edge in self._visible_edges:
            if edge not in self._edge_items:
                line = EdgeLine(edge, QLineF())
                self.scene.addItem(line)
                self._edge_items[edge] = line

        wanted_labels = {node.branch_name for node in self._visible_nodes if node.branch_name}
        for name, label in list(self._label_items.items()):
            if name not in wanted_labels:
                self.scene.removeItem(label)
                del self._label_items[name]
        for name in wanted_labels:
            if name not in self._label_items:
                label = BranchLabel(name, 1)
                label.setZValue(1)
                self.scene.addItem(label)
                self._label_items[name] = label

    def _clear_items(self):
        self.scene.clear()
        self._node_items.clear()
        self._edge_items.clear()
        self._label_items.clear()

    def _on_frame(self):
        if self._failed:
            return
        camera = self.session.advance_frame()
        if camera is self._last_camera and not self._dirty:
            return
        try:
            self.redraw(camera)
        except Exception as e:
            logging.exception("Rendering the race scene failed")
            self._failed = True
            self._clear_items()
            self.render_failed.emit(str(e))
            return
        self._last_camera = camera
        self._dirty = False

    def redraw(self, camera: CameraState):
        """Moves the existing scene items to where ``camera`` sees them."""
        if not self._visible_nodes:
            return

        config = self.session.config
        focal = focal_length(max(self.viewport().height(), 1))
        basis = camera_basis(camera)
        projected: dict[str, tuple[float, float, float]] = {}

        for node in self._visible_nodes:
            item = self._node_items[node.sha]
            screen = project_point(camera, node.position, focal, basis)
            if screen is None:
                item.setVisible(False)
                continue
            projected[node.sha] = screen
            x, y, depth = screen
            scale = focal / depth
            if node.shape is ShapeKind.MERGE:
                radius = config.cube_size * MERGE_RADIUS_RATIO * scale
                item.setRect(QRectF(x - radius, y - radius, 2 * radius, 2 * radius))
            else:
                width = config.cube_size * scale
                height = max(node.height * scale, 1.0)
                item.setRect(QRectF(x - width / 2, y - height / 2, width, height))
            item.setZValue(-depth)
            item.setVisible(True)

        for edge, line in self._edge_items.items():
            start = projected.get(edge.from_sha)
            end = projected.get(edge.to_sha)
            if start is None or end is None:
                line.setVisible(False)
                continue
            line.setLine(QLineF(start[0], start[1], end[0], end[1]))
            line.setZValue(-max(start[2], end[2]) - 1)
            line.setVisible(True)

        anchors = self._branch_anchors()
        for name, label in self._label_items.items():
            screen = project_point(camera, anchors[name], focal, basis)
            if screen is None:
                label.setVisible(False)
                continue
            label.set_point_size(LABEL_WORLD_SIZE * focal / screen[2])
            label.center_on(screen[0], screen[1])
            label.setVisible(True)

    def _branch_anchors(self) -> dict[str, np.ndarray]:
        config = self.session.config
        anchors: dict[str, np.ndarray] = {}
        for node in self._visible_nodes:
            if node.branch_name and node.branch_name not in anchors:
                anchors[node.branch_name] = np.array(
                    [node.position[0], config.baseline_offset + LABEL_LIFT, node.position[2] + config.timeline_gap]
                )
        return anchors

    def wheelEvent(self, event):
        factor = 1.0 / ZOOM_STEP if event.angleDelta().y() > 0 else ZOOM_STEP
        self.session.camera.set_manual_state(zoom_camera(self.session.camera.state, factor))
        event.accept()

    def mousePressEvent(self, event):
        if event.button() == Qt.MouseButton.LeftButton:
            self._drag_origin = event.position()
            self._drag_moved = False
        super().mousePressEvent(event)

    def mouseMoveEvent(self, event):
        if self._drag_origin is not None:
            delta = event.position() - self._drag_origin
            if abs(delta.x()) + abs(delta.y()) > 2:
                self._drag_moved = True
            if self._drag_moved:
                camera = self.session.camera.state
                distance = float(np.linalg.norm(camera.position - camera.target))
                world_per_pixel = distance / focal_length(max(self.viewport().height(), 1))
                self.session.camera.set_manual_state(pan_camera(camera, delta.x(), delta.y(), world_per_pixel))
                self._drag_origin = event.position()
        super().mouseMoveEvent(event)

    def mouseReleaseEvent(self, event):
        if event.button() == Qt.MouseButton.LeftButton and not self._drag_moved:
            item = self.itemAt(event.position().toPoint())
            if isinstance(item, (CommitBlock, MergeSphere)):
                self.commit_clicked.emit(item.node.sha)
        self._drag_origin = None
        self._drag_moved = False
        super().mouseReleaseEvent(event)

# race_session.py

import logging
from typing import Iterable, Optional

from PyQt6.QtCore import QObject, pyqtSignal

from camera_tracker import CameraState, CameraTracker
from playback import PlaybackController
from race_graph_data import BranchCommits, CommitRecord, GraphEdge, GraphNode, RaceLayout
from race_graph_layout import LayoutConfig, calculate_race_layout


class RaceSession(QObject):
    """Owns the positioned graph, the single playback run and the camera follow state."""

    layout_ready = pyqtSignal(object)  # RaceLayout
    frame_updated = pyqtSignal(list, list)  # (visible nodes, visible edges)
    playback_finished = pyqtSignal()

    def __init__(self, config: Optional[LayoutConfig] = None, parent=None):
        super().__init__(parent)
        self.config = config or LayoutConfig()
        self.layout = RaceLayout()
        self.visible: list[GraphNode] = []
        self._nodes_by_sha: dict[str, GraphNode] = {}

        self.playback = PlaybackController(self.config.tick_interval_ms, self)
        self.playback.revealed.connect(self._on_revealed)
        self.playback.finished.connect(self._on_finished)
        self.camera = CameraTracker(self.config)

    @property
    def is_animating(self) -> bool:
        return self.playback.is_revealing

    def start_cycle(self, branch_commits: Iterable[BranchCommits]) -> RaceLayout:
        """Replaces the current graph and replays it from an empty scene."""
        self.stop()
        self.visible = []

        self.layout = calculate_race_layout(branch_commits, self.config)
        self._nodes_by_sha = self.layout.node_map()
        self.layout_ready.emit(self.layout)
        self.frame_updated.emit([], [])

        if self.layout.nodes:
            self.camera.activate()
            self.playback.start(self.layout.nodes)
            logging.info("Started race with %d commits", len(self.layout.nodes))
        return self.layout

    def stop(self):
        self.playback.stop()
        self.camera.deactivate()

    def advance_frame(self) -> CameraState:
        """Called once per rendered frame; moves the camera only while revealing."""
        if self.playback.is_revealing:
            return self.camera.update(self.visible)
        return self.camera.state

    def edges_for(self, visible: list[GraphNode]) -> list[GraphEdge]:
        shown = {node.sha for node in visible}
        return [edge for edge in self.layout.edges if edge.from_sha in shown and edge.to_sha in shown]

    def select_commit(self, sha: str) -> Optional[CommitRecord]:
        node = self._nodes_by_sha.get(sha)
        return node.record if node else None

    def node(self, sha: str) -> Optional[GraphNode]:
        return self._nodes_by_sha.get(sha)

    def _on_revealed(self, generation: int, visible: list):
        if generation != self.playback.generation:
            return
        self.visible = visible
        self.frame_updated.emit(visible, self.edges_for(visible))

    def _on_finished(self, generation: int):
        if generation != self.playback.generation:
            return
        self.camera.deactivate()
        self.playback_finished.emit()

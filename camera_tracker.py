# camera_tracker.py

from typing import Optional, Sequence

import numpy as np

from race_graph_data import GraphNode
from race_graph_layout import LayoutConfig

DEFAULT_CAMERA_POSITION = (0.0, 20.0, 50.0)


class CameraState:
    def __init__(self, position, target):
        self.position: np.ndarray = np.asarray(position, dtype=float)
        self.target: np.ndarray = np.asarray(target, dtype=float)

    def copy(self) -> "CameraState":
        return CameraState(self.position.copy(), self.target.copy())

    def __repr__(self) -> str:
        return f"CameraState(position={self.position.tolist()}, target={self.target.tolist()})"


def default_camera() -> CameraState:
    return CameraState(DEFAULT_CAMERA_POSITION, (0.0, 0.0, 0.0))


def frontier_target(node: GraphNode, baseline: float) -> np.ndarray:
    """Look-at point on the floor under the node, whatever its height."""
    return np.array([node.position[0], baseline, node.position[2]], dtype=float)


def ideal_camera(node: GraphNode, config: LayoutConfig) -> CameraState:
    target = frontier_target(node, config.baseline_offset)
    return CameraState(target + np.asarray(config.camera_offset, dtype=float), target)


def advance_camera(current: CameraState, ideal: CameraState, damping: float) -> CameraState:
    """One step of exponential smoothing toward ``ideal``."""
    return CameraState(
        current.position + (ideal.position - current.position) * damping,
        current.target + (ideal.target - current.target) * damping,
    )


class CameraTracker:
    """
    Follows the frontier node while playback is revealing.

    The first frame of a run snaps to the ideal view; later frames ease toward it.
    While inactive the camera is left alone so manual pan and zoom stick.
    """

    def __init__(self, config: LayoutConfig, state: Optional[CameraState] = None):
        self.config = config
        self._state = state or default_camera()
        self._active = False
        self._needs_snap = True

    @property
    def state(self) -> CameraState:
        return self._state

    @property
    def is_active(self) -> bool:
        return self._active

    def activate(self):
        self._active = True
        self._needs_snap = True

    def deactivate(self):
        self._active = False

    def set_manual_state(self, state: CameraState):
        self._state = state

    def update(self, visible: Sequence[GraphNode]) -> CameraState:
        if not self._active or not visible:
            return self._state

        ideal = ideal_camera(visible[-1], self.config)
        if self._needs_snap:
            self._state = ideal
            self._needs_snap = False
        else:
            self._state = advance_camera(self._state, ideal, self.config.damping_factor)
        return self._state

import os
import sys
import unittest

import numpy as np

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))
sys.path.append(os.path.dirname(os.path.abspath(__file__)))
from camera_tracker import CameraState
from commit_info_panel import render_commit_html
from race_factories import fork_pairs, make_node, make_record, qt_app
from race_graph_data import BranchCommits, BranchRef, ColorWeight, CommitStats
from race_graph_items import CALM_COLOR, HOT_COLOR, HOVER_COLOR, TRUNK_COLOR, CommitBlock, commit_tooltip, node_color
from race_session import RaceSession
from race_view import (
    MAX_CAMERA_DISTANCE,
    MIN_CAMERA_DISTANCE,
    RaceView,
    camera_basis,
    focal_length,
    pan_camera,
    project_point,
    zoom_camera,
)

app = None


def setUpModule():
    global app
    app = qt_app()


class TestProjection(unittest.TestCase):
    def setUp(self):
        self.camera = CameraState([0, 0, 10], [0, 0, 0])

    def test_basis_of_camera_looking_down_negative_z(self):
        right, up, forward = camera_basis(self.camera)
        np.testing.assert_allclose(right, [1, 0, 0], atol=1e-9)
        np.testing.assert_allclose(up, [0, 1, 0], atol=1e-9)
        np.testing.assert_allclose(forward, [0, 0, -1], atol=1e-9)

    def test_focal_length(self):
        self.assertAlmostEqual(focal_length(200, 90), 100.0)

    def test_target_projects_to_center(self):
        x, y, depth = project_point(self.camera, [0, 0, 0], 100.0)
        self.assertAlmostEqual(x, 0.0)
        self.assertAlmostEqual(y, 0.0)
        self.assertAlmostEqual(depth, 10.0)

    def test_screen_y_grows_downwards(self):
        x, y, _ = project_point(self.camera, [1, 2, 0], 100.0)
        self.assertAlmostEqual(x, 10.0)
        self.assertAlmostEqual(y, -20.0)

    def test_far_points_shrink(self):
        near = project_point(self.camera, [1, 0, 0], 100.0)
        far = project_point(self.camera, [1, 0, -30], 100.0)
        self.assertLess(far[0], near[0])

    def test_points_behind_camera_are_culled(self):
        self.assertIsNone(project_point(self.camera, [0, 0, 20], 100.0))


class TestCameraControls(unittest.TestCase):
    def test_zoom_keeps_target(self):
        camera = CameraState([0, 0, 10], [0, 0, 0])
        zoomed = zoom_camera(camera, 0.8)
        np.testing.assert_allclose(zoomed.position, [0, 0, 8])
        np.testing.assert_allclose(zoomed.target, camera.target)

    def test_zoom_is_clamped(self):
        camera = CameraState([0, 0, 10], [0, 0, 0])
        self.assertAlmostEqual(np.linalg.norm(zoom_camera(camera, 0.01).position), MIN_CAMERA_DISTANCE)
        self.assertAlmostEqual(np.linalg.norm(zoom_camera(camera, 1000).position), MAX_CAMERA_DISTANCE)

    def test_pan_moves_camera_and_target_together(self):
        camera = CameraState([0, 10, 10], [0, 0, 0])
        panned = pan_camera(camera, 10, 0, 0.1)
        np.testing.assert_allclose(panned.position - camera.position, [-1, 0, 0], atol=1e-9)
        np.testing.assert_allclose(panned.target - camera.target, [-1, 0, 0], atol=1e-9)

        forward = pan_camera(camera, 0, 10, 0.1)
        shift = forward.position - camera.position
        self.assertAlmostEqual(shift[1], 0.0)
        self.assertAlmostEqual(shift[2], -1.0)


class TestCommitPresentation(unittest.TestCase):
    def test_node_color(self):
        self.assertEqual(node_color(ColorWeight(is_trunk=True, t=1.0)).name(), TRUNK_COLOR.name())
        self.assertEqual(node_color(ColorWeight(is_trunk=False, t=0.0)).name(), CALM_COLOR.name())
        self.assertEqual(node_color(ColorWeight(is_trunk=False, t=1.0)).name(), HOT_COLOR.name())

    def test_info_html_escapes_fetched_values(self):
        record = make_record("abcdef1234", total=7)
        record.message = "<script>alert(1)</script>\nsecond line"
        record.author_login = "<b>mallory</b>"
        record.html_url = "https://github.com/o/r/commit/abcdef1234"
        body = render_commit_html(record, "feat")
        self.assertNotIn("<script>", body)
        self.assertIn("&lt;script&gt;", body)
        self.assertIn("&lt;b&gt;mallory&lt;/b&gt;", body)
        self.assertIn("second line", body)
        self.assertIn(">abcdef1<", body)
        self.assertIn("++ 7", body)
        self.assertIn("feat", body)

    def test_info_html_without_stats(self):
        record = make_record("abc")
        record.message = ""
        body = render_commit_html(record)
        self.assertIn("++ 0", body)
        self.assertIn("No message provided.", body)
        self.assertNotIn("Branch:", body)

    def test_tooltip(self):
        node = make_node("abc", total=3)
        node.record.stats = CommitStats(additions=2, deletions=1, total=3)
        node.branch_name = "feat"
        tip = commit_tooltip(node)
        self.assertIn("Branch: feat", tip)
        self.assertIn("+2 -1", tip)
        self.assertIn("Message: Commit abc", tip)


class TestRaceViewItems(unittest.TestCase):
    def setUp(self):
        self.session = RaceSession()
        self.view = RaceView(self.session)
        self.view.resize(800, 600)
        self.session.start_cycle(fork_pairs())
        for _ in range(3):
            self.session.playback.tick()
        self.view._on_frame()

    def tearDown(self):
        self.session.stop()
        self.view._frame_timer.stop()
        self.view.deleteLater()

    def zoom_in(self):
        self.session.camera.set_manual_state(zoom_camera(self.session.camera.state, 0.8))

    def test_hovered_block_keeps_highlight_across_frames(self):
        block = self.view.node_item("A")
        self.assertIsInstance(block, CommitBlock)
        block.set_hovered(True)

        self.view._on_frame()
        self.zoom_in()
        self.view._on_frame()

        self.assertIs(self.view.node_item("A"), block)
        self.assertIs(block.scene(), self.view.scene)
        self.assertEqual(block.brush().color().name(), HOVER_COLOR.name())

    def test_items_move_with_camera(self):
        block = self.view.node_item("B")
        before = block.rect()
        self.zoom_in()
        self.view._on_frame()
        self.assertGreater(block.rect().width(), before.width())

    def test_items_follow_visible_set(self):
        self.assertEqual(len(self.view._edge_items), 2)
        self.session.start_cycle([BranchCommits(BranchRef("main", "X"), [make_record("X")])])
        self.assertIsNone(self.view.node_item("A"))
        self.assertEqual(self.view._edge_items, {})

        self.session.playback.tick()
        self.view._on_frame()
        self.assertIsNotNone(self.view.node_item("X"))
        # one block and the branch label
        self.assertEqual(len(self.view.scene.items()), 2)


if __name__ == "__main__":
    unittest.main()

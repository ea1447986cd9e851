import json
import os
import shutil
import sys
import tempfile
import unittest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))
from settings import Settings


class TestSettings(unittest.TestCase):
    def setUp(self):
        self.config_dir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.config_dir)

    def test_defaults(self):
        settings = Settings(self.config_dir)
        self.assertEqual(settings.get_recent_repositories(), [])
        self.assertEqual(settings.get_max_branches(), 10)
        self.assertEqual(settings.get_commits_per_branch(), 30)
        self.assertEqual(settings.get_layout_overrides(), {})

    def test_recent_repositories_are_deduplicated_and_persisted(self):
        settings = Settings(self.config_dir)
        settings.add_recent_repository("o/a")
        settings.add_recent_repository("o/b")
        settings.add_recent_repository("o/a")
        self.assertEqual(settings.get_recent_repositories(), ["o/a", "o/b"])

        reloaded = Settings(self.config_dir)
        self.assertEqual(reloaded.get_recent_repositories(), ["o/a", "o/b"])
        self.assertEqual(reloaded.get_last_repository(), "o/a")

    def test_recent_list_is_capped(self):
        settings = Settings(self.config_dir)
        settings.settings["max_recent"] = 2
        for name in ("o/1", "o/2", "o/3"):
            settings.add_recent_repository(name)
        self.assertEqual(settings.get_recent_repositories(), ["o/3", "o/2"])

    def test_file_overrides(self):
        with open(os.path.join(self.config_dir, "settings.json"), "w") as f:
            json.dump({"max_branches": 4, "layout": {"lane_width": 8}}, f)
        settings = Settings(self.config_dir)
        self.assertEqual(settings.get_max_branches(), 4)
        self.assertEqual(settings.get_layout_overrides(), {"lane_width": 8})

    def test_corrupt_file_keeps_defaults(self):
        with open(os.path.join(self.config_dir, "settings.json"), "w") as f:
            f.write("{not json")
        settings = Settings(self.config_dir)
        self.assertEqual(settings.get_max_branches(), 10)


if __name__ == "__main__":
    unittest.main()

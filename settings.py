import json
import logging
import os
from pathlib import Path

from github_client import COMMITS_PER_BRANCH, MAX_BRANCHES


class Settings:
    def __init__(self, config_dir: str = None):
        # 配置目录，默认在用户主目录下
        self.config_dir = config_dir or os.path.join(str(Path.home()), ".commit_race")
        try:
            os.makedirs(self.config_dir, exist_ok=True)
        except OSError as e:
            logging.warning("Cannot create settings folder %s: %s", self.config_dir, e)

        self.config_file = os.path.join(self.config_dir, "settings.json")

        # 默认设置
        self.settings = {
            "recent_repositories": [],  # 最近可视化过的仓库
            "last_repository": "https://github.com/microsoft/vscode",
            "max_recent": 10,
            "max_branches": MAX_BRANCHES,
            "commits_per_branch": COMMITS_PER_BRANCH,
            "layout": {},  # LayoutConfig 覆盖项
        }

        self.load_settings()

    def load_settings(self):
        """加载设置"""
        try:
            if os.path.exists(self.config_file):
                with open(self.config_file, "r", encoding="utf-8") as f:
                    saved_settings = json.load(f)
                    self.settings.update(saved_settings)
        except (OSError, ValueError) as e:
            logging.warning("Loading settings failed: %s", e)

    def save_settings(self):
        """保存设置"""
        try:
            with open(self.config_file, "w", encoding="utf-8") as f:
                json.dump(self.settings, f, ensure_ascii=False, indent=2)
        except OSError as e:
            logging.warning("Saving settings failed: %s", e)

    def add_recent_repository(self, repository: str):
        """添加最近可视化的仓库"""
        self.settings["last_repository"] = repository

        recent = self.settings["recent_repositories"]
        if repository in recent:
            recent.remove(repository)
        recent.insert(0, repository)
        self.settings["recent_repositories"] = recent[: self.settings["max_recent"]]

        self.save_settings()

    def get_recent_repositories(self):
        return self.settings["recent_repositories"]

    def get_last_repository(self):
        return self.settings.get("last_repository") or ""

    def get_max_branches(self) -> int:
        return int(self.settings.get("max_branches", MAX_BRANCHES))

    def get_commits_per_branch(self) -> int:
        return int(self.settings.get("commits_per_branch", COMMITS_PER_BRANCH))

    def get_layout_overrides(self) -> dict:
        return self.settings.get("layout") or {}


# 创建全局settings实例
settings = Settings()

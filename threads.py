import asyncio

from PyQt6.QtCore import QThread, pyqtSignal

from github_client import COMMITS_PER_BRANCH, MAX_BRANCHES, fetch_repository
from local_repo_source import load_local_repository


class RepositoryFetchThread(QThread):
    """Fetches branches and commits of a GitHub repository in the background"""

    finished = pyqtSignal(int, list)  # (request_id, list[BranchCommits])
    error = pyqtSignal(int, str)  # (request_id, message)

    def __init__(
        self,
        request_id: int,
        repo_url: str,
        max_branches: int = MAX_BRANCHES,
        commits_per_branch: int = COMMITS_PER_BRANCH,
        parent=None,
    ):
        super().__init__(parent)
        self.request_id = request_id
        self.repo_url = repo_url
        self.max_branches = max_branches
        self.commits_per_branch = commits_per_branch

    def run(self):
        try:
            loop = asyncio.new_event_loop()
            asyncio.set_event_loop(loop)
            try:
                result = loop.run_until_complete(
                    fetch_repository(self.repo_url, self.max_branches, self.commits_per_branch)
                )
            finally:
                loop.close()
            self.finished.emit(self.request_id, result)
        except Exception as e:
            self.error.emit(self.request_id, str(e))


class LocalRepositoryThread(QThread):
    """Reads branches and commits of a local clone in the background"""

    finished = pyqtSignal(int, list)
    error = pyqtSignal(int, str)

    def __init__(
        self,
        request_id: int,
        repo_path: str,
        max_branches: int = MAX_BRANCHES,
        commits_per_branch: int = COMMITS_PER_BRANCH,
        parent=None,
    ):
        super().__init__(parent)
        self.request_id = request_id
        self.repo_path = repo_path
        self.max_branches = max_branches
        self.commits_per_branch = commits_per_branch

    def run(self):
        try:
            result = load_local_repository(self.repo_path, self.max_branches, self.commits_per_branch)
            self.finished.emit(self.request_id, result)
        except Exception as e:
            self.error.emit(self.request_id, str(e))

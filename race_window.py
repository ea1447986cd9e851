import logging

from PyQt6.QtGui import QGuiApplication
from PyQt6.QtWidgets import QFileDialog, QHBoxLayout, QLineEdit, QMainWindow, QPushButton, QVBoxLayout, QWidget

from commit_info_panel import CommitInfoPanel, LegendWidget
from github_client import MalformedRepoUrlError, parse_repo_url
from notification_widget import NotificationWidget
from race_graph_layout import LayoutConfig, has_renderable_commits
from race_session import RaceSession
from race_view import RaceView
from settings import settings
from threads import LocalRepositoryThread, RepositoryFetchThread

RENDER_FAULT_MESSAGE = "Something went wrong in the 3D scene. Please try a different repository."


class RaceWindow(QMainWindow):
    def __init__(self):
        super().__init__()
        self.setWindowTitle(self.tr("Commit Race"))

        screen = QGuiApplication.primaryScreen()
        if screen:
            geometry = screen.availableGeometry()
            self.setGeometry(
                geometry.x() + int(geometry.width() * 0.1),
                geometry.y() + int(geometry.height() * 0.1),
                int(geometry.width() * 0.8),
                int(geometry.height() * 0.8),
            )
        else:
            self.resize(1024, 768)

        self.settings = settings
        self.is_loading = False
        self._request_id = 0
        self._threads = []

        self.session = RaceSession(LayoutConfig.from_settings(self.settings.get_layout_overrides()), self)
        self.session.playback.started.connect(lambda _generation: self.update_controls())
        self.session.playback_finished.connect(self.update_controls)

        main_widget = QWidget()
        self.setCentralWidget(main_widget)
        main_layout = QVBoxLayout()
        main_layout.setContentsMargins(0, 0, 0, 0)
        main_layout.setSpacing(0)
        main_widget.setLayout(main_layout)

        # 顶部输入栏
        input_layout = QHBoxLayout()
        input_layout.setContentsMargins(8, 8, 8, 8)
        self.url_input = QLineEdit()
        self.url_input.setPlaceholderText("e.g., https://github.com/facebook/react")
        self.url_input.setText(self.settings.get_last_repository())
        self.url_input.returnPressed.connect(self.fetch_repo)
        input_layout.addWidget(self.url_input)

        self.fetch_button = QPushButton(self.tr("Fetch Commits"))
        self.fetch_button.clicked.connect(self.fetch_repo)
        input_layout.addWidget(self.fetch_button)

        self.local_button = QPushButton(self.tr("Open Local..."))
        self.local_button.clicked.connect(self.open_local_repo)
        input_layout.addWidget(self.local_button)
        main_layout.addLayout(input_layout)

        self.race_view = RaceView(self.session)
        self.race_view.commit_clicked.connect(self.on_commit_clicked)
        self.race_view.render_failed.connect(self.on_render_failed)
        main_layout.addWidget(self.race_view)

        # 悬浮面板
        self.info_panel = CommitInfoPanel(self)
        self.legend = LegendWidget(self)
        self.notification_widget = NotificationWidget(self)
        self.reposition_overlays()

    def update_controls(self):
        busy = self.is_loading or self.session.is_animating
        self.url_input.setEnabled(not busy)
        self.fetch_button.setEnabled(not busy)
        self.local_button.setEnabled(not busy)
        if self.is_loading:
            self.fetch_button.setText(self.tr("Fetching..."))
        elif self.session.is_animating:
            self.fetch_button.setText(self.tr("Animating..."))
        else:
            self.fetch_button.setText(self.tr("Fetch Commits"))

    def fetch_repo(self):
        """拉取 GitHub 仓库（使用线程）"""
        repo_url = self.url_input.text().strip()
        try:
            parse_repo_url(repo_url)
        except MalformedRepoUrlError as e:
            self.notification_widget.show_error(str(e))
            return

        self._request_id += 1
        thread = RepositoryFetchThread(
            self._request_id, repo_url, self.settings.get_max_branches(), self.settings.get_commits_per_branch()
        )
        self._start_thread(thread)
        self.settings.add_recent_repository(repo_url)
        logging.info("Fetching %s (request %d)", repo_url, self._request_id)

    def open_local_repo(self):
        folder_path = QFileDialog.getExistingDirectory(self, self.tr("Select Git Repository"))
        if not folder_path:
            return
        self._request_id += 1
        thread = LocalRepositoryThread(
            self._request_id, folder_path, self.settings.get_max_branches(), self.settings.get_commits_per_branch()
        )
        self._start_thread(thread)
        logging.info("Loading local repository %s (request %d)", folder_path, self._request_id)

    def _start_thread(self, thread):
        self.is_loading = True
        self.update_controls()
        thread.finished.connect(self.handle_fetch_finished)
        thread.error.connect(self.handle_fetch_error)
        self._threads.append(thread)
        thread.start()

    def _forget_finished_threads(self):
        self._threads = [t for t in self._threads if t.isRunning()]

    def handle_fetch_finished(self, request_id: int, branch_commits: list):
        if request_id != self._request_id:
            logging.debug("Dropping stale result of request %d", request_id)
            return
        self.is_loading = False
        self._forget_finished_threads()

        if not has_renderable_commits(branch_commits):
            self.notification_widget.show_error(self.tr("No commits found for this repository."))
            self.update_controls()
            return

        self.info_panel.close_panel()
        self.race_view.reset_fault()
        layout = self.session.start_cycle(branch_commits)
        logging.info("Finished fetching %d commits. Starting animation...", len(layout))
        self.update_controls()

    def handle_fetch_error(self, request_id: int, error_message: str):
        if request_id != self._request_id:
            return
        self.is_loading = False
        self._forget_finished_threads()
        logging.error("Fetch failed: %s", error_message)
        self.notification_widget.show_error(f"{self.tr('Fetch failed')}: {error_message}")
        self.update_controls()

    def on_commit_clicked(self, sha: str):
        if self.info_panel.current_sha == sha:
            self.info_panel.close_panel()
            return
        record = self.session.select_commit(sha)
        if record is None:
            return
        node = self.session.node(sha)
        self.info_panel.show_commit(record, node.branch_name if node else None)
        self.reposition_overlays()

    def on_render_failed(self, error_message: str):
        self.session.stop()
        self.notification_widget.show_error(self.tr(RENDER_FAULT_MESSAGE))
        self.update_controls()

    def resizeEvent(self, event):
        super().resizeEvent(event)
        self.reposition_overlays()

    def reposition_overlays(self):
        margin = 10
        top = self.race_view.geometry().top() + margin
        self.info_panel.setGeometry(
            self.width() - self.info_panel.width() - margin,
            top,
            self.info_panel.width(),
            max(200, int(self.height() * 0.6)),
        )
        self.legend.move(margin, self.height() - self.legend.height() - margin)
        if self.notification_widget.isVisible():
            self.notification_widget.raise_()

    def closeEvent(self, event):
        self.session.stop()
        for thread in self._threads:
            thread.wait(2000)
        super().closeEvent(event)

import html
from typing import Optional

from PyQt6.QtCore import Qt, pyqtSignal
from PyQt6.QtWidgets import QFrame, QHBoxLayout, QLabel, QPushButton, QTextBrowser, QVBoxLayout

from race_graph_data import CommitRecord
from race_graph_items import CALM_COLOR, HOT_COLOR, MERGE_EDGE_COLOR, MERGE_FILL_COLOR, TRUNK_COLOR

PANEL_STYLE = """
    QFrame {
        background-color: rgba(20, 22, 36, 230);
        border: 1px solid #444;
        border-radius: 5px;
        color: #eee;
    }
    QTextBrowser {
        background: transparent;
        border: none;
        color: #eee;
    }
"""


def render_commit_html(record: CommitRecord, branch_name: Optional[str] = None) -> str:
    """HTML body for the info panel; every value coming from the fetch source is escaped."""
    stats = record.stats
    additions = stats.additions if stats else 0
    deletions = stats.deletions if stats else 0
    author = html.escape(record.display_author)
    date = record.author_date.strftime("%Y/%m/%d %H:%M") if record.author_date else "N/A"
    message = html.escape(record.message.strip() or "No message provided.").replace("\n", "<br>")

    avatar = ""
    if record.avatar_url:
        avatar = f"<img src='{html.escape(record.avatar_url)}' width='40' height='40'> "
    sha_link = html.escape(record.short_sha)
    if record.html_url:
        sha_link = f"<a href='{html.escape(record.html_url)}'>{sha_link}</a>"
    branch_line = f"<p><b>Branch:</b> {html.escape(branch_name)}</p>" if branch_name else ""

    return (
        f"<p>{avatar}<span style='color:#999'>Author</span><br><b>{author}</b></p>"
        f"<p><b>Date:</b> {date}</p>"
        f"<p><span style='color:#3fb950'>++ {additions}</span> &nbsp; "
        f"<span style='color:#f85149'>-- {deletions}</span></p>"
        f"{branch_line}"
        f"<p style='color:#999'>Commit Message</p>"
        f"<pre style='white-space: pre-wrap; word-wrap: break-word;'>{message}</pre>"
        f"<p><b>SHA:</b> {sha_link}</p>"
    )


class CommitInfoPanel(QFrame):
    """Details of the commit selected in the race view"""

    closed = pyqtSignal()

    def __init__(self, parent=None):
        super().__init__(parent)
        self.setStyleSheet(PANEL_STYLE)
        self.setFixedWidth(300)
        self.current_sha: Optional[str] = None

        layout = QVBoxLayout(self)
        header = QHBoxLayout()
        header.addStretch()
        self.close_button = QPushButton("X")
        self.close_button.setFixedSize(24, 24)
        self.close_button.clicked.connect(self.close_panel)
        header.addWidget(self.close_button)
        layout.addLayout(header)

        self.browser = QTextBrowser()
        self.browser.setOpenExternalLinks(True)
        self.browser.setTextInteractionFlags(
            Qt.TextInteractionFlag.TextSelectableByMouse | Qt.TextInteractionFlag.LinksAccessibleByMouse
        )
        layout.addWidget(self.browser)
        self.hide()

    def show_commit(self, record: CommitRecord, branch_name: Optional[str] = None):
        self.current_sha = record.sha
        self.browser.setHtml(render_commit_html(record, branch_name))
        self.show()
        self.raise_()

    def close_panel(self):
        self.current_sha = None
        self.browser.clear()
        self.hide()
        self.closed.emit()


def _swatch(color, text: str, line: bool = False) -> str:
    size = "width='18' height='3'" if line else "width='12' height='12'"
    return (
        f"<tr><td><table {size} cellspacing='0'><tr><td bgcolor='{color.name()}'></td></tr></table></td>"
        f"<td>&nbsp;{text}</td></tr>"
    )


class LegendWidget(QLabel):
    def __init__(self, parent=None):
        super().__init__(parent)
        self.setStyleSheet("background-color: rgba(20, 22, 36, 200); color: #eee; padding: 6px; border-radius: 5px;")
        self.setTextFormat(Qt.TextFormat.RichText)
        self.setText(
            "<b>Legend</b><table>"
            + _swatch(TRUNK_COLOR, "Main Branch")
            + _swatch(CALM_COLOR, "Feature Branch (small change)")
            + _swatch(HOT_COLOR, "Feature Branch (large change)")
            + _swatch(MERGE_FILL_COLOR, "Merge Commit")
            + _swatch(MERGE_EDGE_COLOR, "Merge Path", line=True)
            + "</table><p>Newest &rarr; Oldest</p>"
        )
        self.adjustSize()

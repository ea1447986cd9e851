from PyQt6.QtCore import QTimer, Qt
from PyQt6.QtWidgets import QFrame, QLabel, QPushButton, QSizePolicy, QVBoxLayout

NOTIFICATION_TIMEOUT_MS = 7000
INFO_BORDER = "#3b82f6"
ERROR_BORDER = "#ef4444"


class NotificationWidget(QFrame):
    def __init__(self, parent=None):
        super().__init__(parent)

        self.setFixedWidth(320)
        self.setMinimumHeight(50)
        self._apply_style(INFO_BORDER)
        self.setFrameShape(QFrame.Shape.StyledPanel)
        self.hide()

        layout = QVBoxLayout(self)
        self.setLayout(layout)

        self.message_label = QLabel()
        self.message_label.setWordWrap(True)
        self.message_label.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Expanding)

        self.close_button = QPushButton("Close")
        self.close_button.clicked.connect(self.hide_widget)
        self.close_button.setSizePolicy(QSizePolicy.Policy.Fixed, QSizePolicy.Policy.Fixed)

        layout.addWidget(self.message_label)
        layout.addWidget(self.close_button, alignment=Qt.AlignmentFlag.AlignRight)

        self.hide_timer = QTimer(self)
        self.hide_timer.setSingleShot(True)
        self.hide_timer.timeout.connect(self.hide_widget)

    def _apply_style(self, border_color: str):
        self.setStyleSheet(f"""
            NotificationWidget {{
                background-color: #1f2233;
                border: 1px solid {border_color};
                border-radius: 5px;
            }}
            QLabel {{ color: #eee; }}
        """)

    def show_message(self, message: str, is_error: bool = False):
        self._apply_style(ERROR_BORDER if is_error else INFO_BORDER)
        self.message_label.setText(message)
        self.adjustSize()
        if self.parentWidget():
            parent_rect = self.parentWidget().rect()
            self.move(parent_rect.right() - self.width() - 10, parent_rect.bottom() - self.height() - 10)
        self.show()
        self.hide_timer.start(NOTIFICATION_TIMEOUT_MS)
        self.raise_()

    def show_error(self, message: str):
        self.show_message(message, is_error=True)

    def hide_widget(self):
        self.hide()
        if self.hide_timer.isActive():
            self.hide_timer.stop()

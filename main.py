import logging
import os
import sys

from PyQt6.QtWidgets import QApplication

from race_window import RaceWindow

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(filename)s:%(lineno)d - %(message)s"


def configure_logging():
    # 根据环境变量设置日志级别
    log_level = logging.DEBUG if os.getenv("DEBUG") == "1" else logging.INFO
    logging.basicConfig(level=log_level, format=LOG_FORMAT)
    if os.getenv("LOG_TO_FILE") == "1":
        file_handler = logging.FileHandler("commit_race.log")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logging.getLogger().addHandler(file_handler)


def main():
    configure_logging()
    app = QApplication(sys.argv)
    app.setApplicationName("Commit Race")

    window = RaceWindow()
    window.show()
    window.activateWindow()
    window.raise_()

    sys.exit(app.exec())


if __name__ == "__main__":
    main()

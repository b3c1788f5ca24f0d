"""
MyMemo - entry point.
"""
import logging
import sys

from PyQt6.QtWidgets import QApplication

from manager import MemoManager


def setup_logging(level=logging.INFO):
    logging.basicConfig(
        level=level,
        format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def main():
    setup_logging()
    app = QApplication(sys.argv)
    # Memos live on in the tray after the last window closes
    app.setQuitOnLastWindowClosed(False)

    manager = MemoManager()
    app.aboutToQuit.connect(manager.store.save_now)
    return app.exec()


if __name__ == "__main__":
    sys.exit(main())

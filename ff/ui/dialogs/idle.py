"""'Welcome back' dialog shown after an idle auto-pause."""

from PySide6.QtCore import Qt
from PySide6.QtGui import QFont
from PySide6.QtWidgets import (
    QDialog,
    QLabel,
    QPushButton,
    QVBoxLayout,
)
from ff.core.idle import ReconciliationRequest, Resolution
from ff.util import format_duration


class IdleDialog(QDialog):

    def __init__(self, parent, request: ReconciliationRequest):
        super().__init__(parent)
        self.setWindowTitle("Welcome Back!")
        self.setWindowFlags(self.windowFlags() | Qt.WindowStaysOnTopHint)
        self.setModal(True)

        self.request = request
        # Read by MainWindow after the dialog closes
        self.resolution = None

        lay = QVBoxLayout(self)
        lay.setSpacing(12)

        title = QLabel("Welcome Back!")
        title.setFont(QFont("Calibri", 14, QFont.Bold))
        lay.addWidget(title)

        away = QLabel(f"You were away for {format_duration(request.idle_duration)}")
        away.setFont(QFont("Calibri", 11))
        lay.addWidget(away)

        body = QLabel("Your timer was paused while you were away. What would you like to do with this time?")
        body.setWordWrap(True)
        body.setFont(QFont("Calibri", 11))
        lay.addWidget(body)

        discard_btn = QPushButton("Discard idle time")
        discard_btn.setFont(QFont("Calibri", 12))
        discard_btn.clicked.connect(lambda: self._choose(Resolution.DISCARD))
        lay.addWidget(discard_btn)

        keep_btn = QPushButton("Keep all time")
        keep_btn.setFont(QFont("Calibri", 12))
        keep_btn.clicked.connect(lambda: self._choose(Resolution.KEEP_ALL))
        lay.addWidget(keep_btn)

    def _choose(self, resolution):
        self.resolution = resolution
        self.accept()

    # Closing the window without picking counts as keeping the time, the pause is never silently eaten.
    def reject(self):
        if self.resolution is None:
            self.resolution = Resolution.KEEP_ALL
        super().reject()

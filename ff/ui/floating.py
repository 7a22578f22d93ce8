from PySide6.QtCore import Qt, QTimer
from PySide6.QtGui import QFont
from PySide6.QtWidgets import (
    QHBoxLayout,
    QLabel,
    QPushButton,
    QVBoxLayout,
    QWidget,
)
from ff.core.timer_state import TimerMode
from ff.ui.sync import TimerMirror
from ff.util import format_duration

WIDGET_WIDTH = 260
_IDLE_FLASH = "#f97316"
_DEFAULT_COLOR = "#007AFF"


# Small always-on-top timer display. Everything it shows comes from the mirror, and its buttons only send commands
# back to the main window.
class FloatingWidget(QWidget):

    def __init__(self, mirror: TimerMirror, on_show_main=None):
        super().__init__(None)
        self.setWindowTitle("FlowForge Timer")
        self.setWindowFlags(Qt.Tool | Qt.FramelessWindowHint | Qt.WindowStaysOnTopHint)
        self.setFixedWidth(WIDGET_WIDTH)

        self._mirror = mirror
        self._on_show_main = on_show_main
        self._drag_pos = None
        self._flash_on = False

        lay = QHBoxLayout(self)
        lay.setContentsMargins(10, 6, 10, 6)

        text_col = QVBoxLayout()
        self._time_lbl = QLabel("00:00:00")
        self._time_lbl.setFont(QFont("Calibri", 16, QFont.Bold))
        self._project_lbl = QLabel("No timer")
        self._project_lbl.setFont(QFont("Calibri", 10))
        text_col.addWidget(self._time_lbl)
        text_col.addWidget(self._project_lbl)
        lay.addLayout(text_col, 1)

        self._pause_btn = QPushButton("⏸")
        self._pause_btn.setFixedSize(28, 28)
        self._pause_btn.clicked.connect(self._mirror.toggle_pause)
        lay.addWidget(self._pause_btn)

        self._stop_btn = QPushButton("■")
        self._stop_btn.setFixedSize(28, 28)
        self._stop_btn.setToolTip("Stop")
        self._stop_btn.clicked.connect(lambda: self._mirror.send_command("stop"))
        lay.addWidget(self._stop_btn)

        if on_show_main is not None:
            main_btn = QPushButton("↗")
            main_btn.setFixedSize(28, 28)
            main_btn.setToolTip("Open main window")
            main_btn.clicked.connect(on_show_main)
            lay.addWidget(main_btn)

        # Blink while the timer is idle-paused or a break is due
        self._flash_timer = QTimer(self)
        self._flash_timer.setInterval(600)
        self._flash_timer.timeout.connect(self._flash)

        self._mirror.changed.connect(self._refresh)
        self._refresh()

    def showEvent(self, event):
        super().showEvent(event)
        self._mirror.request_sync()

    def _refresh(self):
        snap = self._mirror.snapshot
        mode = self._mirror.mode
        active = mode is not TimerMode.IDLE
        self._pause_btn.setEnabled(active)
        self._stop_btn.setEnabled(active)

        if not active:
            self._time_lbl.setText("00:00:00")
            self._project_lbl.setText("No timer")
            self._set_color(None)
            self._flash_timer.stop()
            return

        self._time_lbl.setText(format_duration(snap.get("elapsed_seconds", 0)))
        self._pause_btn.setText("⏸" if mode is TimerMode.RUNNING else "▶")
        self._pause_btn.setToolTip("Pause" if mode is TimerMode.RUNNING else "Resume")
        if self._mirror.idle_paused or self._mirror.break_active:
            self._project_lbl.setText("IDLE" if self._mirror.idle_paused else "Take a Break!")
            if not self._flash_timer.isActive():
                self._flash_timer.start()
        else:
            self._project_lbl.setText(snap.get("project_name") or "")
            self._flash_timer.stop()
            self._set_color(snap.get("project_color") or _DEFAULT_COLOR)

    def _set_color(self, color):
        self._time_lbl.setStyleSheet(f"color: {color};" if color else "")
        border = color or "#888888"
        self.setStyleSheet(f"FloatingWidget {{ border: 2px solid {border}; border-radius: 8px; }}")

    def _flash(self):
        self._flash_on = not self._flash_on
        self._set_color(_IDLE_FLASH if self._flash_on else None)

    # Drag anywhere on the widget to move it
    def mousePressEvent(self, event):
        if event.button() == Qt.LeftButton:
            self._drag_pos = event.globalPosition().toPoint() - self.frameGeometry().topLeft()
            event.accept()

    def mouseMoveEvent(self, event):
        if self._drag_pos is not None and event.buttons() & Qt.LeftButton:
            self.move(event.globalPosition().toPoint() - self._drag_pos)
            event.accept()

    def mouseReleaseEvent(self, event):
        self._drag_pos = None

    def closeEvent(self, event):
        self._flash_timer.stop()
        event.accept()

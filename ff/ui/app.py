import sys
import uuid
from datetime import datetime
from PySide6.QtCore import Qt, QTimer
from PySide6.QtGui import QFont, QIcon, QKeySequence, QShortcut
from PySide6.QtWidgets import (
    QApplication,
    QComboBox,
    QFrame,
    QHBoxLayout,
    QInputDialog,
    QLabel,
    QMainWindow,
    QMessageBox,
    QPushButton,
    QStyle,
    QSystemTrayIcon,
    QVBoxLayout,
    QWidget,
)
from ff.common.logger import log
from ff.common.setup import PATHS
from ff.core import config
from ff.core.controller import TimerController
from ff.core.engine import TimerEngine, TimerEvent
from ff.core.events import TIME_ENTRY_SAVED, TIMER_BREAK_TOGGLE, TIMER_IDLE_TOGGLE
from ff.core.idle import IdleReconciler
from ff.core.pomodoro import BreakReminder
from ff.core.time_entries import TimeEntrySaveError, TimeEntryStore, calculate_duration
from ff.core.timer_state import Project, TimerMode
from ff.ui.dialogs.idle import IdleDialog
from ff.ui.effects import QtTimerEffects
from ff.ui.floating import FloatingWidget
from ff.ui.idle_monitor import IdleMonitor
from ff.ui.sync import SyncBroadcaster, SyncChannel, TimerMirror
from ff.util import format_duration, format_duration_short
from ff.util.idle_time import get_idle_seconds

_STATUS_TEXT = {
    TimerMode.IDLE: ("Ready", "#888888"),
    TimerMode.RUNNING: ("Tracking", "#22c55e"),
    TimerMode.PAUSED: ("Paused", "#f97316"),
}
_PROJECT_COLORS = ["#007AFF", "#34C759", "#FF9500", "#FF3B30", "#AF52DE", "#FF2D55", "#5856D6", "#00C7BE"]


# ---------------------------------------------------------------------------
# Main window
# ---------------------------------------------------------------------------

# Main window of the FlowForge timer. Owns the one TimerEngine for the process and everything that reads or drives it:
# the sync broadcaster for the floating widget, the idle monitor, and crash-recovery persistence.
class MainWindow(QMainWindow):

    def __init__(self):
        super().__init__()
        self.setWindowTitle("FlowForge Timer")
        icon_path = PATHS.assets / "icon.ico"
        icon = QIcon(str(icon_path)) if icon_path.exists() else self.style().standardIcon(QStyle.SP_ComputerIcon)
        self.setWindowIcon(icon)

        # -- Load unified state --
        self._state = config.load_state()
        self.settings = self._state["settings"]
        self.projects = [Project.from_dict(p) for p in self._state["projects"]]

        # -- Timer core --
        self.engine = TimerEngine(config.load_timer_state())
        self.engine.add_listener(self._on_timer_event)
        self.entries = TimeEntryStore()

        self._tray = None
        if QSystemTrayIcon.isSystemTrayAvailable():
            self._tray = QSystemTrayIcon(icon, self)
            self._tray.setToolTip("FlowForge Timer")
            self._tray.show()

        self.channel = SyncChannel(self)
        self.controller = TimerController(
            self.engine, self.entries,
            settings=self.settings,
            effects=QtTimerEffects(self._tray),
            publish=self.channel.publish,
        )
        self.broadcaster = SyncBroadcaster(self.engine, self.controller, self.channel, parent=self)
        self._unsubscribe_saved = self.channel.subscribe(TIME_ENTRY_SAVED, lambda payload: self._update_today())

        # -- Idle detection --
        self.reconciler = IdleReconciler(
            self.engine, get_idle_seconds,
            on_idle_toggle=lambda active: self.channel.publish(TIMER_IDLE_TOGGLE, {"active": active}),
        )
        self.reconciler.configure(self.settings["enable_idle_detection"], self.settings["idle_threshold_minutes"])
        self.idle_monitor = IdleMonitor(self.reconciler, parent=self)
        self.idle_monitor.reconciliation_requested.connect(self._on_idle_return)
        self._idle_dialog = None

        # -- Pomodoro break reminder --
        self.break_reminder = BreakReminder(
            self.controller,
            enabled=self.settings["pomodoro_enabled"],
            work_minutes=self.settings["pomodoro_work_minutes"],
            break_minutes=self.settings["pomodoro_break_minutes"],
            on_toggle=lambda active: self.channel.publish(TIMER_BREAK_TOGGLE, {"active": active}),
        )

        # -- Floating widget --
        self.mirror = TimerMirror(self.channel, self)
        self.floating = FloatingWidget(self.mirror, on_show_main=self._raise_main)

        # -- Build UI --
        self._build_ui()
        self._build_shortcuts()
        self._refresh()
        self._update_today()

        # -- Tick timer (1 s) for the local display --
        self._timer = QTimer(self)
        self._timer.timeout.connect(self._tick)
        self._timer.start(1000)

        if self.settings["enable_idle_detection"]:
            self.idle_monitor.start()
        if self.settings["show_floating_widget"]:
            self.floating.show()

    # ------------------------------------------------------------------ #
    #  UI                                                                  #
    # ------------------------------------------------------------------ #

    def _build_ui(self):
        central = QWidget()
        self.setCentralWidget(central)
        lay = QVBoxLayout(central)
        lay.setSpacing(10)

        # Project picker
        picker = QHBoxLayout()
        self._project_combo = QComboBox()
        self._project_combo.setFont(QFont("Calibri", 12))
        self._reload_projects()
        picker.addWidget(self._project_combo, 1)
        add_btn = QPushButton("+")
        add_btn.setToolTip("Add project")
        add_btn.clicked.connect(self._add_project)
        picker.addWidget(add_btn)
        lay.addLayout(picker)

        # Time + status
        self._time_lbl = QLabel("00:00:00")
        self._time_lbl.setFont(QFont("Calibri", 32, QFont.Bold))
        self._time_lbl.setAlignment(Qt.AlignCenter)
        lay.addWidget(self._time_lbl)

        self._status_lbl = QLabel()
        self._status_lbl.setFont(QFont("Calibri", 12))
        self._status_lbl.setAlignment(Qt.AlignCenter)
        lay.addWidget(self._status_lbl)

        # Break reminder banner, only shown while a break is due or running
        self._break_frame = QFrame()
        self._break_frame.setStyleSheet("QFrame { border: 1px solid #f97316; border-radius: 6px; }")
        break_lay = QVBoxLayout(self._break_frame)
        self._break_lbl = QLabel()
        self._break_lbl.setWordWrap(True)
        self._break_lbl.setFont(QFont("Calibri", 11))
        break_lay.addWidget(self._break_lbl)
        break_buttons = QHBoxLayout()
        self._break_btn = QPushButton("Start Break")
        self._break_btn.clicked.connect(self._on_break_action)
        self._dismiss_btn = QPushButton("Dismiss")
        self._dismiss_btn.clicked.connect(self._dismiss_break)
        break_buttons.addWidget(self._break_btn)
        break_buttons.addWidget(self._dismiss_btn)
        break_lay.addLayout(break_buttons)
        self._break_frame.hide()
        lay.addWidget(self._break_frame)

        # Controls
        buttons = QHBoxLayout()
        self._start_btn = QPushButton("Start")
        self._start_btn.clicked.connect(self._start)
        self._pause_btn = QPushButton("Pause")
        self._pause_btn.clicked.connect(self._toggle_pause)
        self._stop_btn = QPushButton("Stop")
        self._stop_btn.clicked.connect(self._stop)
        for btn in (self._start_btn, self._pause_btn, self._stop_btn):
            btn.setFont(QFont("Calibri", 12))
            buttons.addWidget(btn)
        lay.addLayout(buttons)

        # Footer
        footer = QHBoxLayout()
        self._today_lbl = QLabel()
        self._today_lbl.setFont(QFont("Calibri", 10))
        footer.addWidget(self._today_lbl, 1)
        self._widget_btn = QPushButton("Widget")
        self._widget_btn.setCheckable(True)
        self._widget_btn.setChecked(self.settings["show_floating_widget"])
        self._widget_btn.toggled.connect(self._toggle_widget)
        footer.addWidget(self._widget_btn)
        lay.addLayout(footer)

    def _build_shortcuts(self):
        QShortcut(QKeySequence("Ctrl+Return"), self, activated=self._start)
        QShortcut(QKeySequence("Ctrl+Space"), self, activated=self._toggle_pause)
        QShortcut(QKeySequence("Ctrl+Shift+S"), self, activated=self._stop)

    def _reload_projects(self):
        self._project_combo.clear()
        for project in self.projects:
            self._project_combo.addItem(project.name, project.id)

    def _refresh(self):
        state = self.engine.state
        mode = state.mode
        self._time_lbl.setText(format_duration(self.engine.elapsed_seconds()))
        status, color = _STATUS_TEXT[mode]
        if state.project is not None:
            status = f"{status}: {state.project.name}"
        self._status_lbl.setText(status)
        self._status_lbl.setStyleSheet(f"color: {color};")

        self._start_btn.setEnabled(mode is TimerMode.IDLE and bool(self.projects))
        self._project_combo.setEnabled(mode is TimerMode.IDLE)
        self._pause_btn.setEnabled(mode is not TimerMode.IDLE)
        self._pause_btn.setText("Resume" if mode is TimerMode.PAUSED else "Pause")
        self._stop_btn.setEnabled(mode is not TimerMode.IDLE)

    # Sum of today's saved entries, shown in the footer.
    def _update_today(self):
        today = datetime.now().astimezone().date()
        total = 0.0
        for entry in self.entries.all():
            try:
                if datetime.fromisoformat(entry["start_time"]).astimezone().date() == today:
                    total += calculate_duration(entry)
            except (KeyError, TypeError, ValueError):
                log.warning(f"Skipping unreadable time entry {entry.get('id')!r} in today's total")
        self._today_lbl.setText(f"Today: {format_duration(total)}")

    def _refresh_break(self):
        reminder = self.break_reminder
        self._break_frame.setVisible(reminder.active)
        if not reminder.active:
            return
        if reminder.on_break:
            remaining = reminder.break_seconds_remaining()
            if remaining:
                text = f"On break. Time remaining: {format_duration(remaining)}"
            else:
                text = "Break finished! Resume work when you're ready."
            self._break_btn.setText("Resume Work")
            self._break_btn.setEnabled(remaining == 0)
            self._dismiss_btn.setText("Skip Break")
        else:
            text = (f"Time for a break! You've been working for {format_duration_short(reminder.work_seconds)}. "
                    f"Take a {format_duration_short(reminder.break_seconds)} break.")
            self._break_btn.setText("Start Break")
            self._break_btn.setEnabled(True)
            self._dismiss_btn.setText("Dismiss")
        self._break_lbl.setText(text)

    def _tick(self):
        self.break_reminder.check()
        self._refresh_break()
        if self.engine.mode is TimerMode.RUNNING:
            self._time_lbl.setText(format_duration(self.engine.elapsed_seconds()))

    def _raise_main(self):
        self.showNormal()
        self.raise_()
        self.activateWindow()

    # ------------------------------------------------------------------ #
    #  Actions                                                             #
    # ------------------------------------------------------------------ #

    def _selected_project(self):
        project_id = self._project_combo.currentData()
        return next((p for p in self.projects if p.id == project_id), None)

    def _start(self):
        project = self._selected_project()
        if project is None:
            return
        self.controller.start(project)

    def _toggle_pause(self):
        if self.engine.mode is TimerMode.RUNNING:
            self.controller.pause()
        elif self.engine.mode is TimerMode.PAUSED:
            self.controller.resume()

    def _stop(self):
        try:
            self.controller.stop()
        except TimeEntrySaveError as e:
            QMessageBox.warning(self, "Save Error", f"The timer was stopped but its time entry could not be saved:\n{e}")

    def _on_break_action(self):
        if self.break_reminder.on_break:
            self.break_reminder.resume_work()
        else:
            self.break_reminder.start_break()
        self._refresh_break()

    def _dismiss_break(self):
        self.break_reminder.dismiss()
        self._refresh_break()

    def _add_project(self):
        name, ok = QInputDialog.getText(self, "Add Project", "Project name:")
        name = name.strip()
        if not ok or not name:
            return
        project = Project(id=str(uuid.uuid4()), name=name, color=_PROJECT_COLORS[len(self.projects) % len(_PROJECT_COLORS)])
        self.projects.append(project)
        self._state["projects"] = [p.to_dict() for p in self.projects]
        config.save_state(self._state)
        self._reload_projects()
        self._project_combo.setCurrentIndex(len(self.projects) - 1)
        self._refresh()

    def _toggle_widget(self, show):
        self.settings["show_floating_widget"] = show
        self.floating.setVisible(show)
        config.save_state(self._state)

    # ------------------------------------------------------------------ #
    #  Timer events / idle                                                 #
    # ------------------------------------------------------------------ #

    def _on_timer_event(self, event: TimerEvent):
        try:
            config.save_timer_state(event.state)
        except OSError:
            log.exception("Failed to persist timer state for crash recovery")
        self._refresh()

    # IdleMonitor hands over one request at a time, the next one only after request_done().
    def _on_idle_return(self, request):
        dlg = IdleDialog(self, request)
        dlg.finished.connect(lambda _result: self._on_idle_dialog_closed(dlg))
        self._idle_dialog = dlg
        self._raise_main()
        dlg.open()

    def _on_idle_dialog_closed(self, dlg):
        self._idle_dialog = None
        self.reconciler.resolve(dlg.request, dlg.resolution)
        self._refresh()
        self.idle_monitor.request_done()

    # ------------------------------------------------------------------ #
    #  Window close                                                        #
    # ------------------------------------------------------------------ #

    def closeEvent(self, event):
        self._timer.stop()
        self.idle_monitor.stop()
        self.broadcaster.shutdown()
        self.reconciler.close()
        self.break_reminder.close()
        self.mirror.detach()
        self._unsubscribe_saved()
        self.floating.close()
        try:
            config.save_state(self._state)
            config.save_timer_state(self.engine.state)
        except OSError as e:
            QMessageBox.warning(self, "Save Error", f"Failed to save state:\n{e}")
        if self._tray is not None:
            self._tray.hide()
        event.accept()


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main():
    app = QApplication(sys.argv)
    window = MainWindow()
    window.show()
    sys.exit(app.exec())

from PySide6.QtWidgets import QApplication, QSystemTrayIcon
from ff.core.controller import TimerEffects


# Desktop feedback for timer transitions: a system beep for sounds and tray balloons for notifications. Either half
# quietly does nothing when the platform has no tray.
class QtTimerEffects(TimerEffects):

    def __init__(self, tray: QSystemTrayIcon | None = None):
        self._tray = tray

    def _beep(self):
        QApplication.beep()

    def _show(self, title, message):
        if self._tray is None or not QSystemTrayIcon.isSystemTrayAvailable():
            return
        self._tray.showMessage(title, message, QSystemTrayIcon.MessageIcon.Information, 3000)

    def play_start(self): self._beep()
    def play_pause(self): self._beep()
    def play_resume(self): self._beep()
    def play_stop(self): self._beep()
    def play_break(self): self._beep()
    def play_break_over(self): self._beep()

    def notify_started(self, project_name):
        self._show("Timer Started", f"Tracking time for {project_name}")

    def notify_stopped(self, project_name, duration_text):
        self._show("Timer Stopped", f"{project_name}: {duration_text}")

    def notify_break_due(self, work_text, break_text):
        self._show("Time for a Break!", f"You've been working for {work_text}. Take a {break_text} break.")

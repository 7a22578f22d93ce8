"""Cross-window timer sync: main window <-> floating widget.

Everything rides on one in-process Qt signal.  Delivery is at-most-once and
fire-and-forget: while the timer runs a fresh snapshot goes out every second,
so a dropped message is corrected by the next one.
"""

from PySide6.QtCore import QObject, QTimer, Signal
from ff.common.logger import log
from ff.core.controller import TimerController
from ff.core.engine import TimerEngine, TimerEvent
from ff.core.events import (
    COMMAND_ACTIONS,
    TIMER_BREAK_TOGGLE,
    TIMER_COMMAND,
    TIMER_IDLE_TOGGLE,
    TIMER_REQUEST_SYNC,
    TIMER_SYNC,
)
from ff.core.time_entries import TimeEntrySaveError
from ff.core.timer_state import TimerMode

SYNC_INTERVAL_MS = 1000


# Pub/sub over a single Qt signal. Handlers run synchronously on the publishing (GUI) thread.
class SyncChannel(QObject):

    message = Signal(str, object)

    def publish(self, event, payload=None):
        try:
            self.message.emit(event, payload if payload is not None else {})
        except RuntimeError:
            # Underlying C++ object already gone during shutdown.
            log.warning(f"Failed to publish '{event}' on sync channel", exc_info=True)

    # Calls handler(payload) for every message named `event`. Returns a callable that unsubscribes.
    def subscribe(self, event, handler):
        def deliver(name, payload):
            if name != event:
                return
            try:
                handler(payload)
            except Exception:
                log.exception(f"Sync handler for '{event}' failed")
        self.message.connect(deliver)

        def unsubscribe():
            try:
                self.message.disconnect(deliver)
            except (RuntimeError, TypeError):
                log.debug(f"Sync handler for '{event}' was already disconnected")
        return unsubscribe


# Main-window side: publishes engine snapshots and applies the widget's commands through the controller, the same
# way the local buttons do.
class SyncBroadcaster(QObject):

    def __init__(self, engine: TimerEngine, controller: TimerController, channel: SyncChannel,
                 interval_ms=SYNC_INTERVAL_MS, parent=None):
        super().__init__(parent)
        self._engine = engine
        self._controller = controller
        self._channel = channel
        self._active = True

        self._timer = QTimer(self)
        self._timer.setInterval(interval_ms)
        self._timer.timeout.connect(self._tick)

        self._remove_listener = engine.add_listener(self._on_timer_event)
        self._unsubscribers = [
            channel.subscribe(TIMER_COMMAND, self._on_command),
            channel.subscribe(TIMER_REQUEST_SYNC, self._on_request_sync),
        ]

        self._update_ticker()
        self.publish_snapshot()

    @property
    def ticking(self):
        return self._timer.isActive()

    def snapshot(self):
        state = self._engine.state
        return {
            "mode": state.mode.value,
            "project_id": state.project.id if state.project else None,
            "project_name": state.project.name if state.project else "",
            "project_color": state.project.color if state.project else "",
            "elapsed_seconds": self._engine.elapsed_seconds(),
        }

    def publish_snapshot(self):
        if not self._active:
            return
        self._channel.publish(TIMER_SYNC, self.snapshot())

    # Periodic ticks only while running; paused and idle snapshots don't change between transitions.
    def _update_ticker(self):
        if self._engine.mode is TimerMode.RUNNING:
            if not self._timer.isActive():
                self._timer.start()
        elif self._timer.isActive():
            self._timer.stop()

    def _tick(self):
        if not self._active:
            return
        self.publish_snapshot()

    def _on_timer_event(self, event: TimerEvent):
        if not self._active:
            return
        self._update_ticker()
        self.publish_snapshot()

    def _on_request_sync(self, payload):
        log.debug("Widget requested a resync")
        self.publish_snapshot()

    def _on_command(self, payload):
        if not self._active:
            return
        action = payload.get("action") if isinstance(payload, dict) else None
        log.info(f"Received remote timer command '{action}'")
        if action not in COMMAND_ACTIONS:
            log.warning(f"Ignored unknown remote timer command: {payload!r}")
            return
        if action == "pause":
            self._controller.pause()
        elif action == "resume":
            self._controller.resume()
        elif action == "stop":
            try:
                self._controller.stop()
            except TimeEntrySaveError:
                # Already logged by the controller; the widget has no way to show it.
                log.warning("Remote stop could not save its time entry")

    # Stops all further ticks and publishes. Safe to call twice.
    def shutdown(self):
        if not self._active:
            return
        self._active = False
        self._timer.stop()
        self._remove_listener()
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
        log.debug("Sync broadcaster shut down")


# Widget side: a read-only copy of the last snapshot plus the ability to send commands. It never edits its own copy,
# every change comes back through a broadcast.
class TimerMirror(QObject):

    changed = Signal()

    def __init__(self, channel: SyncChannel, parent=None):
        super().__init__(parent)
        self._channel = channel
        self.snapshot = {
            "mode": TimerMode.IDLE.value,
            "project_id": None,
            "project_name": "",
            "project_color": "",
            "elapsed_seconds": 0.0,
        }
        self.idle_paused = False
        self.break_active = False
        self._unsubscribers = [
            channel.subscribe(TIMER_SYNC, self._on_sync),
            channel.subscribe(TIMER_IDLE_TOGGLE, self._on_idle_toggle),
            channel.subscribe(TIMER_BREAK_TOGGLE, self._on_break_toggle),
        ]
        self.request_sync()

    @property
    def mode(self):
        return TimerMode(self.snapshot.get("mode", TimerMode.IDLE.value))

    def _on_sync(self, payload):
        self.snapshot = dict(payload)
        self.changed.emit()

    def _on_idle_toggle(self, payload):
        self.idle_paused = bool(payload.get("active"))
        self.changed.emit()

    def _on_break_toggle(self, payload):
        self.break_active = bool(payload.get("active"))
        self.changed.emit()

    def request_sync(self):
        self._channel.publish(TIMER_REQUEST_SYNC)

    def send_command(self, action):
        if action not in COMMAND_ACTIONS:
            raise ValueError(f"Unknown timer command '{action}'")
        self._channel.publish(TIMER_COMMAND, {"action": action})

    # Pause while running, resume while paused, nothing while idle.
    def toggle_pause(self):
        if self.mode is TimerMode.RUNNING:
            self.send_command("pause")
        elif self.mode is TimerMode.PAUSED:
            self.send_command("resume")

    def detach(self):
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []

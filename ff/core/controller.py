"""Timer actions with side effects: the one path for local and remote commands.

Wraps TimerEngine with sound/notification feedback gated by settings, and
turns a stopped session into a persisted time entry.
"""

from ff.common.logger import log
from ff.core.engine import TimerEngine
from ff.core.events import TIME_ENTRY_SAVED
from ff.core.time_entries import TimeEntrySaveError, TimeEntryStore
from ff.util import format_duration, format_duration_short


class TimerEffects:
    """Feedback hooks fired after a transition applied. The base class does nothing."""

    def play_start(self): pass
    def play_pause(self): pass
    def play_resume(self): pass
    def play_stop(self): pass

    def notify_started(self, project_name): pass
    def notify_stopped(self, project_name, duration_text): pass

    def play_break(self): pass
    def play_break_over(self): pass
    def notify_break_due(self, work_text, break_text): pass


class TimerController:

    def __init__(self, engine: TimerEngine, entries: TimeEntryStore, settings=None, effects=None, publish=None):
        self.engine = engine
        self.entries = entries
        self.effects = effects or TimerEffects()
        self._publish = publish
        self.sound_enabled = True
        self.notifications_enabled = True
        if settings is not None:
            self.apply_settings(settings)

    def apply_settings(self, settings):
        self.sound_enabled = settings.get("enable_sound_feedback", True)
        self.notifications_enabled = settings.get("enable_notifications", True)

    # Runs a feedback hook without letting a broken speaker or tray icon interfere with timing.
    def _effect(self, name, *args):
        try:
            getattr(self.effects, name)(*args)
        except Exception:
            log.warning(f"Timer effect '{name}' failed", exc_info=True)

    def start(self, project) -> bool:
        if not self.engine.start(project):
            return False
        if self.sound_enabled:
            self._effect("play_start")
        if self.notifications_enabled:
            self._effect("notify_started", project.name)
        return True

    def pause(self) -> bool:
        if not self.engine.pause():
            return False
        if self.sound_enabled:
            self._effect("play_pause")
        return True

    def resume(self) -> bool:
        if self.engine.resume() is None:
            return False
        if self.sound_enabled:
            self._effect("play_resume")
        return True

    def reset(self):
        self.engine.reset()

    # Stops the timer and saves the session as a time entry. Returns the entry, or None if nothing was running.
    # The engine is idle once this returns, whether or not the save worked; a failed save raises TimeEntrySaveError.
    def stop(self):
        project = self.engine.state.project
        elapsed = self.engine.elapsed_seconds()
        session = self.engine.stop()
        if session is None:
            return None

        if self.sound_enabled:
            self._effect("play_stop")
        if self.notifications_enabled and project is not None:
            self._effect("notify_stopped", project.name, format_duration(elapsed))

        try:
            entry = self.entries.create(
                project_id=session.project_id,
                start_time=session.start_time,
                end_time=self.engine.now(),
                pause_duration=session.pause_duration,
            )
        except (OSError, TypeError, ValueError) as e:
            log.exception(f"Failed to save time entry for project {session.project_id}, session is lost from the timer")
            raise TimeEntrySaveError(session, f"Failed to save time entry: {e}") from e

        if self._publish is not None:
            self._publish(TIME_ENTRY_SAVED, {"id": entry["id"], "project_id": entry["project_id"]})
        return entry

    #region === Break reminder feedback ===

    def break_due(self, work_seconds, break_seconds):
        if self.sound_enabled:
            self._effect("play_break")
        if self.notifications_enabled:
            self._effect("notify_break_due", format_duration_short(work_seconds), format_duration_short(break_seconds))

    def break_over(self):
        if self.sound_enabled:
            self._effect("play_break_over")

    #endregion === Break reminder feedback ===

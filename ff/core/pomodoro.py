"""Pomodoro break reminder: pure logic, driven by the main window's 1 s tick.

After `work_minutes` of worked time the reminder comes up. Starting the break
pauses the timer and counts `break_minutes` down; work can only be resumed from
the reminder once the countdown has run out. Dismissing (or skipping the break)
starts a new work cycle without touching the timer.
"""

import math
from datetime import timedelta
from ff.common.logger import log
from ff.core.controller import TimerController
from ff.core.engine import TimerEvent
from ff.core.timer_state import TimerMode
from ff.util import now_local

DEFAULT_WORK_MINUTES = 25
DEFAULT_BREAK_MINUTES = 5


def _minutes_to_seconds(minutes, default):
    return int(minutes * 60) if minutes and minutes > 0 else default * 60


class BreakReminder:

    def __init__(self, controller: TimerController, enabled=False, work_minutes=DEFAULT_WORK_MINUTES,
                 break_minutes=DEFAULT_BREAK_MINUTES, clock=None, on_toggle=None):
        self._controller = controller
        self._engine = controller.engine
        self._clock = clock or now_local
        self.on_toggle = on_toggle

        self.reminder_shown = False
        self.on_break = False
        self.break_ends_at = None
        self.last_break_elapsed = 0.0  # worked seconds at the end of the previous cycle
        self._break_over_sent = False
        self._published = False
        self.configure(enabled, work_minutes, break_minutes)

        self._remove_listener = self._engine.add_listener(self._on_timer_event)

    def configure(self, enabled, work_minutes, break_minutes):
        self.enabled = bool(enabled)
        self.work_seconds = _minutes_to_seconds(work_minutes, DEFAULT_WORK_MINUTES)
        self.break_seconds = _minutes_to_seconds(break_minutes, DEFAULT_BREAK_MINUTES)
        log.debug(f"Break reminder configured: enabled={self.enabled}, work={self.work_seconds}s, "
                  f"break={self.break_seconds}s")
        if not self.enabled and self.active:
            self._end_cycle()

    def close(self):
        self._remove_listener()

    # True while the reminder is up or a break is running. This is what the floating widget flashes for.
    @property
    def active(self):
        return self.reminder_shown or self.on_break

    def break_seconds_remaining(self, now=None) -> int:
        if not self.on_break or self.break_ends_at is None:
            return 0
        now = now or self._clock()
        return max(0, math.ceil((self.break_ends_at - now).total_seconds()))

    def _publish(self):
        active = self.active
        if active == self._published:
            return
        self._published = active
        if self.on_toggle is not None:
            self.on_toggle(active)

    #region === Tick ===

    # One tick. Returns True when the reminder came up on this tick.
    def check(self) -> bool:
        if self.on_break:
            if not self._break_over_sent and self.break_seconds_remaining() == 0:
                self._break_over_sent = True
                log.info("Break countdown finished")
                self._controller.break_over()
            return False
        if not self.enabled or self.reminder_shown or self._engine.mode is not TimerMode.RUNNING:
            return False

        worked = self._engine.elapsed_seconds() - self.last_break_elapsed
        if worked < self.work_seconds:
            return False
        self.reminder_shown = True
        log.info(f"Break reminder due after {worked:.0f}s of work")
        self._publish()
        self._controller.break_due(self.work_seconds, self.break_seconds)
        return True

    #endregion === Tick ===

    #region === User actions ===

    def start_break(self) -> bool:
        if not self.reminder_shown or self.on_break:
            return False
        self._controller.pause()
        self.on_break = True
        self.break_ends_at = self._clock() + timedelta(seconds=self.break_seconds)
        self._break_over_sent = False
        log.info(f"Started a {self.break_seconds}s break")
        self._publish()
        return True

    # Only allowed once the countdown has run out.
    def resume_work(self) -> bool:
        if not self.on_break or self.break_seconds_remaining() > 0:
            return False
        self._controller.resume()
        self._end_cycle()
        return True

    # Hides the reminder, or skips the rest of a running break. The timer is left as it is.
    def dismiss(self):
        if not self.active:
            return
        log.info("Break reminder dismissed" if not self.on_break else "Break skipped")
        self._end_cycle()

    def _end_cycle(self):
        self.last_break_elapsed = self._engine.elapsed_seconds()
        self.reminder_shown = False
        self.on_break = False
        self.break_ends_at = None
        self._break_over_sent = False
        self._publish()

    #endregion === User actions ===

    def _on_timer_event(self, event: TimerEvent):
        if event.state.mode is not TimerMode.IDLE:
            return
        self.reminder_shown = False
        self.on_break = False
        self.break_ends_at = None
        self._break_over_sent = False
        self.last_break_elapsed = 0.0
        self._publish()

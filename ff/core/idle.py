"""Idle detection and "welcome back" reconciliation: pure logic, no UI.

The reconciler is polled (see ff.ui.idle_monitor) because the OS idle signal
itself is poll-based.  One tick does at most one of two things:

* auto-pause: the user has been idle past the threshold while the timer runs,
  so the timer is paused and the idle start is remembered;
* return detection: input was seen again after an auto-pause, so a
  ReconciliationRequest is raised for the UI to ask what the away time was.

Resolving a request edits the accumulated pause so that the outcome is the
same whether the user answered the dialog first or pressed Resume first.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from ff.common.logger import log
from ff.core.engine import TimerEngine, TimerEvent
from ff.core.timer_state import TimerMode
from ff.util import now_local
from ff.util.idle_time import IdleTimeUnavailable

DEFAULT_IDLE_THRESHOLD = 300  # seconds
POLL_INTERVAL_SECONDS = 5
MIN_ACTIVE_SECONDS = 10       # below this much idle time the user counts as back


class Resolution(Enum):
    DISCARD = "discard"    # away time was a break
    KEEP_ALL = "keep_all"  # away time was work


@dataclass
class ReconciliationRequest:
    idle_duration: int
    idle_start: datetime
    pause_start: datetime | None      # pause_start_time the auto-pause created
    session_start: datetime | None    # start_time of the session that was auto-paused
    folded_pause: float | None = None  # seconds of that pause already added by a manual resume
    resolution: Resolution | None = None

    @property
    def resolved(self):
        return self.resolution is not None


class IdleReconciler:

    def __init__(self, engine: TimerEngine, idle_source, enabled=True, threshold_seconds=DEFAULT_IDLE_THRESHOLD,
                 clock=None, on_request=None, on_idle_toggle=None):
        self._engine = engine
        self._idle_source = idle_source
        self._clock = clock or now_local
        self.enabled = enabled
        self.threshold_seconds = threshold_seconds
        self.on_request = on_request
        self.on_idle_toggle = on_idle_toggle

        # Current idle episode
        self.auto_paused = False
        self.idle_start = None
        self._pause_start = None
        self._session_start = None
        self._folded = None

        self.pending_request = None
        self._remove_listener = engine.add_listener(self._on_timer_event)

    # Applies the user's idle settings. A missing, zero or negative threshold falls back to the default.
    def configure(self, enabled, threshold_minutes):
        self.enabled = bool(enabled)
        if threshold_minutes and threshold_minutes > 0:
            self.threshold_seconds = int(threshold_minutes * 60)
        else:
            self.threshold_seconds = DEFAULT_IDLE_THRESHOLD
        log.debug(f"Idle detection configured: enabled={self.enabled}, threshold={self.threshold_seconds}s")

    def close(self):
        self._remove_listener()

    def _clear_episode(self):
        self.auto_paused = False
        self.idle_start = None
        self._pause_start = None
        self._session_start = None
        self._folded = None

    def _toggle(self, active):
        if self.on_idle_toggle is not None:
            self.on_idle_toggle(active)

    #region === Polling ===

    # One poll tick. Returns the ReconciliationRequest raised on this tick, if any.
    def check(self) -> ReconciliationRequest | None:
        if not self.enabled:
            return None
        if self._engine.mode is TimerMode.IDLE and not self.auto_paused:
            return None

        try:
            idle_seconds = float(self._idle_source())
        except (IdleTimeUnavailable, OSError):
            log.warning("Idle time query failed, skipping idle check this tick.", exc_info=True)
            return None

        now = self._clock()

        if (idle_seconds >= self.threshold_seconds and self._engine.mode is TimerMode.RUNNING
                and not self.auto_paused):
            self.auto_paused = True
            self.idle_start = now - timedelta(seconds=idle_seconds)
            self._session_start = self._engine.state.start_time
            self._folded = None
            self._engine.pause()
            self._pause_start = self._engine.state.pause_start_time
            log.info(f"Auto-paused timer after {idle_seconds:.0f}s idle (idle since {self.idle_start.isoformat()})")
            self._toggle(True)
            return None

        if idle_seconds < MIN_ACTIVE_SECONDS and self.auto_paused and self.idle_start is not None:
            total_idle = round((now - self.idle_start).total_seconds())
            request = None
            if total_idle >= self.threshold_seconds:
                request = ReconciliationRequest(
                    idle_duration=total_idle,
                    idle_start=self.idle_start,
                    pause_start=self._pause_start,
                    session_start=self._session_start,
                    folded_pause=self._folded,
                )
                self.pending_request = request
                log.info(f"User back after {total_idle}s idle, asking how to count it")
            else:
                # Timer stays paused until the user resumes it by hand.
                log.info(f"User back after a brief {total_idle}s idle, below threshold, leaving timer as is")
                self._toggle(False)
            self._clear_episode()
            if request is not None and self.on_request is not None:
                self.on_request(request)
            return request

        return None

    def _on_timer_event(self, event: TimerEvent):
        if event.state.mode is TimerMode.IDLE:
            if self.auto_paused:
                log.debug("Timer went idle during an idle episode, clearing auto-pause flags")
                self._clear_episode()
                self._toggle(False)
            return
        if event.kind != "resume" or event.folded_from is None:
            return
        # A resume that closed the auto-pause interval: remember how much of it was counted as pause.
        if self.auto_paused and event.folded_from == self._pause_start:
            self._folded = event.folded_pause
        request = self.pending_request
        if request is not None and not request.resolved and event.folded_from == request.pause_start:
            request.folded_pause = event.folded_pause

    #endregion === Polling ===

    #region === Resolution ===

    # Applies the user's answer. Net result on the accumulated pause, relative to before the auto-pause:
    # DISCARD adds the whole idle duration, KEEP_ALL adds nothing. Returns False if nothing was applied.
    def resolve(self, request: ReconciliationRequest, resolution: Resolution) -> bool:
        if request.resolved:
            log.warning(f"Ignored second resolution '{resolution.value}', already resolved as '{request.resolution.value}'")
            return False
        request.resolution = resolution
        if self.pending_request is request:
            self.pending_request = None
        self._toggle(False)

        state = self._engine.state
        if state.mode is TimerMode.IDLE or state.start_time != request.session_start:
            log.info(f"Idle resolution '{resolution.value}' dropped, the idle session is no longer running")
            return False

        idle_as_pause = float(request.idle_duration) if resolution is Resolution.DISCARD else 0.0
        still_auto_paused = (request.folded_pause is None and state.mode is TimerMode.PAUSED
                             and state.pause_start_time == request.pause_start)
        if still_auto_paused:
            self._engine.resume(count_pause=False)
            if idle_as_pause:
                self._engine.adjust_pause_duration(idle_as_pause)
        else:
            # A manual resume already counted part of the away time as pause; correct by the difference.
            delta = idle_as_pause - (request.folded_pause or 0.0)
            if delta:
                self._engine.adjust_pause_duration(delta)
        log.info(f"Resolved idle of {request.idle_duration}s as '{resolution.value}', "
                 f"accumulated pause now {state.accumulated_pause:.1f}s")
        return True

    #endregion === Resolution ===

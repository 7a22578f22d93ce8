"""Timer state machine: transitions and elapsed-time accounting, no UI.

    IDLE --start--> RUNNING --pause--> PAUSED --resume--> RUNNING
    RUNNING/PAUSED --stop--> IDLE (CompletedSession)
    any --reset--> IDLE (no session)

Transitions never raise for misuse: a call that doesn't apply in the current
mode is ignored and reported through the return value, since the same command
can arrive from a button, a shortcut and the floating widget at once.
"""

from dataclasses import dataclass
from datetime import datetime
from ff.common.logger import log
from ff.core.timer_state import CompletedSession, TimerMode, TimerState
from ff.util import now_local


# What listeners receive after a transition has been applied. `state` is a copy, so listeners can't write through it.
# `folded_pause` / `folded_from` are only set by resume: how many pause seconds were moved into the accumulated total,
# and where that pause had started.
@dataclass(frozen=True)
class TimerEvent:
    kind: str
    state: TimerState
    folded_pause: float | None = None
    folded_from: datetime | None = None


class TimerEngine:

    def __init__(self, state: TimerState | None = None, clock=None):
        self.state = state if state is not None else TimerState()
        self._clock = clock or now_local
        self._listeners = []

    @property
    def mode(self) -> TimerMode:
        return self.state.mode

    def now(self) -> datetime:
        return self._clock()

    #region === Listeners ===

    # Registers fn(TimerEvent), called after every applied transition. Returns a callable that removes it again.
    def add_listener(self, fn):
        self._listeners.append(fn)

        def remove():
            if fn in self._listeners:
                self._listeners.remove(fn)
        return remove

    def _notify(self, kind, folded_pause=None, folded_from=None):
        event = TimerEvent(kind, self.state.copy(), folded_pause, folded_from)
        for fn in list(self._listeners):
            try:
                fn(event)
            except Exception:
                # The transition has already committed, a broken observer must not undo or block it.
                log.exception(f"Timer listener {fn!r} failed while handling '{kind}'")

    #endregion === Listeners ===

    #region === Transitions ===

    def start(self, project) -> bool:
        if self.state.mode is not TimerMode.IDLE:
            log.warning(f"Ignored start('{project.name}'), timer is already {self.state.mode.value} "
                        f"on '{self.state.project.name}'")
            return False
        self.state.mode = TimerMode.RUNNING
        self.state.project = project
        self.state.start_time = self.now()
        self.state.pause_start_time = None
        self.state.accumulated_pause = 0.0
        log.info(f"Started timer for project '{project.name}' ({project.id}) at {self.state.start_time.isoformat()}")
        self._notify("start")
        return True

    def pause(self) -> bool:
        if self.state.mode is not TimerMode.RUNNING:
            log.debug(f"Ignored pause(), timer is {self.state.mode.value}")
            return False
        self.state.mode = TimerMode.PAUSED
        self.state.pause_start_time = self.now()
        log.info(f"Paused timer at {self.state.pause_start_time.isoformat()}")
        self._notify("pause")
        return True

    # Ends the current pause. With count_pause=False the paused interval is dropped instead of being added to the
    # accumulated pause, i.e. it counts as work. Returns the seconds folded into the total, or None if ignored.
    def resume(self, count_pause=True) -> float | None:
        if self.state.mode is not TimerMode.PAUSED or self.state.pause_start_time is None:
            log.debug(f"Ignored resume(), timer is {self.state.mode.value}")
            return None
        paused_from = self.state.pause_start_time
        folded = max(0.0, (self.now() - paused_from).total_seconds()) if count_pause else 0.0
        self.state.accumulated_pause += folded
        self.state.mode = TimerMode.RUNNING
        self.state.pause_start_time = None
        log.info(f"Resumed timer, folded {folded:.1f}s of pause (count_pause={count_pause}), "
                 f"accumulated pause now {self.state.accumulated_pause:.1f}s")
        self._notify("resume", folded_pause=folded, folded_from=paused_from)
        return folded

    def stop(self) -> CompletedSession | None:
        if self.state.mode is TimerMode.IDLE or self.state.project is None or self.state.start_time is None:
            log.debug("Ignored stop(), nothing is running")
            return None
        session = CompletedSession(
            project_id=self.state.project.id,
            start_time=self.state.start_time,
            pause_duration=round(self.pause_duration()),
        )
        elapsed = self.elapsed_seconds()
        self.state.clear()
        log.info(f"Stopped timer for project {session.project_id}: {elapsed:.1f}s worked, "
                 f"{session.pause_duration}s paused")
        self._notify("stop")
        return session

    # Drops the session without producing a record. Used for discarding and for crash-recovery cleanup.
    def reset(self):
        self.state.clear()
        log.info("Reset timer to idle")
        self._notify("reset")

    # Retroactively moves time between work and pause. Clamped so the accumulated pause never goes negative.
    def adjust_pause_duration(self, delta) -> float:
        if self.state.mode is TimerMode.IDLE:
            log.debug(f"Ignored adjust_pause_duration({delta}), timer is idle")
            return 0.0
        before = self.state.accumulated_pause
        self.state.accumulated_pause = max(0.0, before + float(delta))
        log.info(f"Adjusted accumulated pause by {delta:+.1f}s: {before:.1f}s -> {self.state.accumulated_pause:.1f}s")
        self._notify("adjust")
        return self.state.accumulated_pause

    # Swaps in a state recovered from disk on launch.
    def restore(self, state: TimerState):
        self.state.mode = state.mode
        self.state.project = state.project
        self.state.start_time = state.start_time
        self.state.pause_start_time = state.pause_start_time
        self.state.accumulated_pause = state.accumulated_pause
        log.info(f"Restored timer state: {state.mode.value}")
        self._notify("restore")

    #endregion === Transitions ===

    #region === Reads ===

    # Total pause so far, including the pause in progress.
    def pause_duration(self, now=None) -> float:
        total = self.state.accumulated_pause
        if self.state.mode is TimerMode.PAUSED and self.state.pause_start_time is not None:
            now = now or self.now()
            total += max(0.0, (now - self.state.pause_start_time).total_seconds())
        return total

    def elapsed_seconds(self, now=None) -> float:
        if self.state.mode is TimerMode.IDLE or self.state.start_time is None:
            return 0.0
        now = now or self.now()
        elapsed = (now - self.state.start_time).total_seconds() - self.pause_duration(now)
        return max(0.0, elapsed)

    #endregion === Reads ===

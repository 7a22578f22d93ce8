"""Timer state container: pure data, no transitions, no UI."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from ff.common.logger import log


class TimerMode(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"


@dataclass(frozen=True)
class Project:
    id: str
    name: str
    color: str = "#007AFF"

    def to_dict(self):
        return {"id": self.id, "name": self.name, "color": self.color}

    @staticmethod
    def from_dict(data):
        return Project(id=str(data["id"]), name=str(data["name"]), color=str(data.get("color") or "#007AFF"))


@dataclass(frozen=True)
class CompletedSession:
    """What stop() hands over for persistence. Not kept by the engine."""
    project_id: str
    start_time: datetime
    pause_duration: int


# Saved timestamps without an offset are read as local time, so they compare cleanly against the aware clock.
def _parse_timestamp(value):
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    return parsed if parsed.tzinfo is not None else parsed.astimezone()


# The one mutable timer state for the process. Only TimerEngine writes to it; everything else reads.
@dataclass
class TimerState:
    mode: TimerMode = TimerMode.IDLE
    project: Project | None = None
    start_time: datetime | None = None
    pause_start_time: datetime | None = None
    accumulated_pause: float = 0.0

    # True when the field combination matches the mode (project/start set iff active, pause start set iff paused).
    def is_consistent(self):
        active = self.mode is not TimerMode.IDLE
        if (self.project is not None) != active or (self.start_time is not None) != active:
            return False
        if (self.pause_start_time is not None) != (self.mode is TimerMode.PAUSED):
            return False
        return self.accumulated_pause >= 0

    def clear(self):
        self.mode = TimerMode.IDLE
        self.project = None
        self.start_time = None
        self.pause_start_time = None
        self.accumulated_pause = 0.0

    def copy(self):
        return TimerState(
            mode=self.mode,
            project=self.project,
            start_time=self.start_time,
            pause_start_time=self.pause_start_time,
            accumulated_pause=self.accumulated_pause,
        )

    #region === Crash recovery serialization ===

    def to_dict(self):
        return {
            "mode": self.mode.value,
            "project": self.project.to_dict() if self.project else None,
            "start_time": self.start_time.isoformat() if self.start_time else None,
            "pause_start_time": self.pause_start_time.isoformat() if self.pause_start_time else None,
            "accumulated_pause": self.accumulated_pause,
        }

    # Rebuilds a state from to_dict() output. Anything unreadable or inconsistent comes back as a fresh idle state,
    # since a half-restored timer is worse than none.
    @staticmethod
    def from_dict(data):
        try:
            state = TimerState(
                mode=TimerMode(data.get("mode", "idle")),
                project=Project.from_dict(data["project"]) if data.get("project") else None,
                start_time=_parse_timestamp(data.get("start_time")),
                pause_start_time=_parse_timestamp(data.get("pause_start_time")),
                accumulated_pause=float(data.get("accumulated_pause", 0.0)),
            )
        except (KeyError, TypeError, ValueError, AttributeError):
            log.warning("Could not parse saved timer state, starting idle.", exc_info=True)
            return TimerState()
        if not state.is_consistent():
            log.warning(f"Saved timer state is inconsistent ({data}), starting idle.")
            return TimerState()
        return state

    #endregion === Crash recovery serialization ===

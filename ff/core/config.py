import json
from ff.common.logger import log
from ff.common.setup import PATHS
from ff.core.timer_state import TimerState
from ff.util import now_iso


_SCHEMA_VERSION = 1

#region === Helpers and Paths ===

STATE_PATH = PATHS.current / "state.json"
TIMER_PATH = PATHS.current / "timer.json"

# Default values just for the settings section of the state dict.
_SETTINGS_DEFAULTS = {
    "show_floating_widget": True,
    "enable_notifications": True,
    "enable_sound_feedback": True,
    "enable_idle_detection": True,
    "idle_threshold_minutes": 5,
    "pomodoro_enabled": False,
    "pomodoro_work_minutes": 25,
    "pomodoro_break_minutes": 5,
}
# Helper to return a truly fresh, default state.
def build_default_state():
    return {
        "meta": {
            "schema_version": _SCHEMA_VERSION,
            "saved_at": now_iso(),
        },
        "settings": dict(_SETTINGS_DEFAULTS),
        "projects": [],
    }

#endregion === Helpers and Paths ===

#region === Saving and Loading State ===

# Loads the current unified state from PATHS.current / state.json, ensuring the schema is valid and handling
# default fallbacks.
def load_state():
    try:
        if not STATE_PATH.exists():
            log.info("No existing state.json found in `current`, loading fresh state dict.")
            return build_default_state()

        with open(STATE_PATH, "r", encoding="utf-8") as f:
            state = json.load(f)
        if not isinstance(state, dict):
            raise TypeError(f"state.json holds a {type(state).__name__}, expected an object")
        defaulted_values = set()

        # Validate the meta dict
        if "meta" not in state or not isinstance(state["meta"], dict):
            defaulted_values.add("meta")
            state["meta"] = {}
        if "schema_version" not in state["meta"] or not isinstance(state["meta"]["schema_version"], int):
            defaulted_values.add("meta.schema_version")
            state["meta"]["schema_version"] = _SCHEMA_VERSION

        # Validate the settings dict, fill in any necessary defaults
        if "settings" not in state or not isinstance(state["settings"],dict):
            defaulted_values.add("settings")
            state["settings"] = dict(_SETTINGS_DEFAULTS)
        else:
            for key, default in _SETTINGS_DEFAULTS.items():
                expected = (int, float) if type(default) is int else type(default)
                if key not in state["settings"] or not isinstance(state["settings"][key], expected):
                    defaulted_values.add(f"settings.{key}")
                    state["settings"][key] = default

        # Validate the project list, dropping entries that can't be started against
        if "projects" not in state or not isinstance(state["projects"],list):
            defaulted_values.add("projects")
            state["projects"] = []
        else:
            valid = [p for p in state["projects"] if isinstance(p, dict) and p.get("id") and p.get("name")]
            if len(valid) != len(state["projects"]):
                defaulted_values.add("projects[]")
                state["projects"] = valid

        # Log results
        if defaulted_values:
            log.warning(f"Successfully loaded current state dict from '{STATE_PATH}', but with missing values that were defaulted: {', '.join(sorted(defaulted_values))}")
        else:
            log.info(f"Successfully loaded current state dict from '{STATE_PATH}'.")
        return state
    # Fall back to a fresh state dict in case of error, but warn in log
    except (json.JSONDecodeError, OSError, TypeError):
        log.warning("Ran into an error while trying to load state.json, falling back to loading a fresh state dict.",exc_info=True)
        return build_default_state()
# Write the given state to disk under PATHS.current / state.json
def save_state(state):
    state["meta"]["saved_at"] = now_iso()
    with open(STATE_PATH, "w", encoding="utf-8") as f:
        json.dump(state, f, indent=2)
    log.info(f"Successfully saved state to '{STATE_PATH}'")

#endregion === Saving and Loading State ===

#region === Timer crash recovery ===

# Only the TimerState fields go here, written on every transition so a crash loses at most the in-progress tick.
def save_timer_state(timer_state: TimerState):
    with open(TIMER_PATH, "w", encoding="utf-8") as f:
        json.dump(timer_state.to_dict(), f, indent=2)
    log.debug(f"Saved timer state ({timer_state.mode.value}) to '{TIMER_PATH}'")

def load_timer_state():
    if not TIMER_PATH.exists():
        return TimerState()
    try:
        with open(TIMER_PATH, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError):
        log.warning(f"Could not read '{TIMER_PATH}', starting with an idle timer.", exc_info=True)
        return TimerState()
    if not isinstance(data, dict):
        log.warning(f"'{TIMER_PATH}' does not hold an object, starting with an idle timer.")
        return TimerState()
    state = TimerState.from_dict(data)
    log.info(f"Recovered timer state from '{TIMER_PATH}': {state.mode.value}")
    return state

#endregion === Timer crash recovery ===

import json
import uuid
from datetime import datetime
from pathlib import Path
from ff.common.setup import PATHS
from ff.common.logger import log
from ff.util import now_iso

ENTRIES_PATH = PATHS.entries / "entries.json"


# Raised by TimerController.stop() when the stopped session could not be written. The timer is already idle by then,
# so the session is carried along for whoever wants to retry or show it.
class TimeEntrySaveError(Exception):
    def __init__(self, session, message="Failed to save time entry"):
        super().__init__(message)
        self.session = session


# Seconds of actual work in an entry: wall time between start and end, minus the pauses. Never negative.
def calculate_duration(entry):
    start = datetime.fromisoformat(entry["start_time"])
    end = datetime.fromisoformat(entry["end_time"]) if entry.get("end_time") else datetime.now().astimezone()
    return max(0.0, (end - start).total_seconds() - entry.get("pause_duration", 0))


# Flat JSON store for completed time entries. Each stop() appends one entry; reads are only for the dashboard side.
class TimeEntryStore:

    def __init__(self, path: Path | None = None):
        self.path = Path(path) if path is not None else ENTRIES_PATH

    # Strict read used before writing. A file that exists but can't be read raises (OSError, or ValueError for bad
    # content) instead of reading as empty, so a save never overwrites history it couldn't load.
    def _read(self):
        if not self.path.exists():
            return []
        with open(self.path, "r", encoding="utf-8") as f:
            entries = json.load(f)
        if not isinstance(entries, list):
            raise ValueError(f"Time entries file '{self.path}' holds a {type(entries).__name__}, expected a list")
        return entries

    def all(self):
        try:
            return self._read()
        except (ValueError, OSError):
            log.warning(f"Could not read time entries from '{self.path}', treating as empty.", exc_info=True)
            return []

    # Writes a new entry and returns it. Lets OSError and ValueError through, the caller decides how to surface a
    # failed save. An unreadable existing file is left untouched.
    def create(self, project_id, start_time, end_time, pause_duration, is_billable=True, is_billed=False, notes=""):
        entry = {
            "id": str(uuid.uuid4()),
            "project_id": project_id,
            "start_time": start_time.isoformat(),
            "end_time": end_time.isoformat() if end_time else None,
            "pause_duration": int(pause_duration),
            "notes": notes,
            "is_billable": is_billable,
            "is_billed": is_billed,
            "created_at": now_iso(),
        }
        entries = self._read()
        entries.append(entry)

        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(".json.tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(entries, f, indent=2)
        tmp_path.replace(self.path)
        log.info(f"Saved time entry {entry['id']} for project {project_id} "
                 f"({entry['start_time']} -> {entry['end_time']}, {entry['pause_duration']}s paused)")
        return entry

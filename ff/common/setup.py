import os
import sys
from pathlib import Path
from dataclasses import dataclass

# Lil helper function to create missing directories if missing, and optionally error out when a path
# doesn't exist.
def ensure_directory(path: Path,must_exist=False):
    if must_exist:
        if not path.exists():
            raise FileNotFoundError(f"Required directory is missing: {path}")
        if not path.is_dir():
            raise NotADirectoryError(f"Expected a directory, got a file: {path}")
    else:
        path.mkdir(parents=True,exist_ok=True)
    return path

# Picks the per-user data folder. An explicit FLOWFORGE_DATA_DIR always wins (tests and portable installs), then
# APPDATA on Windows, then the XDG data home everywhere else.
def _resolve_data_dir() -> Path:
    override = os.getenv("FLOWFORGE_DATA_DIR")
    if override:
        return Path(override)
    appdata = os.getenv("APPDATA")
    if appdata:
        return Path(appdata) / "FlowForge"
    xdg = os.getenv("XDG_DATA_HOME")
    base = Path(xdg) if xdg else Path.home() / ".local" / "share"
    return base / "FlowForge"

# Dataclass for accessing paths across program.
@dataclass(frozen=False)
class ProjectPaths:

    root: Path
    data: Path
    assets: Path

    logs: Path
    current: Path
    entries: Path

    @staticmethod
    def build():
        # Frozen builds keep their assets next to the exe, source runs next to the package.
        if getattr(sys, "frozen", False):
            root = Path(sys.executable).resolve().parent
        else:
            root = Path(__file__).resolve().parents[2]

        # Assets are optional, the UI falls back to a default icon.
        assets = root / "assets"

        data = ensure_directory(_resolve_data_dir())

        # Folders within the data folder
        logs = ensure_directory(data / "logs")
        current = ensure_directory(data / "current")
        entries = ensure_directory(data / "time_entries")

        return ProjectPaths(
            root = root,
            data = data,
            assets = assets,
            logs = logs,
            current = current,
            entries = entries
        )
PATHS = ProjectPaths.build()

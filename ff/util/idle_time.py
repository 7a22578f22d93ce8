"""Platform seconds-since-last-input.

Windows and macOS are queried straight through ctypes, Linux shells out to
``xprintidle``.  Any failure surfaces as :class:`IdleTimeUnavailable` so the
idle poller can log it and skip the tick.
"""

import ctypes
import ctypes.util
import subprocess
import sys
from ff.common.logger import log


class IdleTimeUnavailable(Exception):
    """The platform idle-time query failed or isn't supported here."""


class _LASTINPUTINFO(ctypes.Structure):
    _fields_ = [("cbSize", ctypes.c_uint), ("dwTime", ctypes.c_uint)]


def _windows_idle_seconds():
    info = _LASTINPUTINFO()
    info.cbSize = ctypes.sizeof(_LASTINPUTINFO)
    if not ctypes.windll.user32.GetLastInputInfo(ctypes.byref(info)):
        raise IdleTimeUnavailable("GetLastInputInfo returned 0")
    # GetTickCount wraps every ~49.7 days
    idle_ms = (ctypes.windll.kernel32.GetTickCount() - info.dwTime) & 0xFFFFFFFF
    return idle_ms / 1000.0


_cg_seconds_since = None

def _macos_idle_seconds():
    global _cg_seconds_since
    if _cg_seconds_since is None:
        lib_path = ctypes.util.find_library("CoreGraphics")
        if lib_path is None:
            raise IdleTimeUnavailable("CoreGraphics framework not found")
        fn = ctypes.cdll.LoadLibrary(lib_path).CGEventSourceSecondsSinceLastEventType
        fn.restype = ctypes.c_double
        fn.argtypes = [ctypes.c_int32, ctypes.c_uint32]
        _cg_seconds_since = fn
    # kCGEventSourceStateCombinedSessionState = 0, kCGAnyInputEventType = ~0
    return float(_cg_seconds_since(0, 0xFFFFFFFF))


def _linux_idle_seconds():
    try:
        result = subprocess.run(["xprintidle"], capture_output=True, text=True, timeout=2, check=True)
        return int(result.stdout.strip()) / 1000.0
    except FileNotFoundError as e:
        raise IdleTimeUnavailable("xprintidle is not installed") from e
    except (subprocess.CalledProcessError, subprocess.TimeoutExpired, ValueError) as e:
        raise IdleTimeUnavailable(f"xprintidle failed: {e}") from e


def get_idle_seconds():
    """Seconds since the last keyboard/mouse input, as a float."""
    try:
        if sys.platform == "win32":
            return _windows_idle_seconds()
        if sys.platform == "darwin":
            return _macos_idle_seconds()
        return _linux_idle_seconds()
    except OSError as e:
        log.debug(f"Idle time query raised OSError on '{sys.platform}'")
        raise IdleTimeUnavailable(str(e)) from e

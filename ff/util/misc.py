from datetime import datetime



# Simply returns the current local time as an ISO8601 string with timezone offset.
def now_iso():
    return datetime.now().astimezone().isoformat()

# Current local time as an aware datetime. This is the default clock for the engine and reconciler.
def now_local():
    return datetime.now().astimezone()


# Formats elapsed seconds as HH:MM:SS. Negative values clamp to zero.
def format_duration(seconds):
    seconds = max(0, int(seconds))
    h, rem = divmod(seconds, 3600)
    m, s = divmod(rem, 60)
    return f"{h:02d}:{m:02d}:{s:02d}"

# Compact variant for notifications and the idle dialog, e.g. "1h 5m", "12m", "<1m".
def format_duration_short(seconds):
    seconds = max(0, int(seconds))
    hours, rem = divmod(seconds, 3600)
    minutes = rem // 60
    if hours > 0:
        return f"{hours}h {minutes}m"
    if minutes > 0:
        return f"{minutes}m"
    return "<1m"

from .misc import now_iso, now_local, format_duration, format_duration_short

__all__ = ["now_iso", "now_local", "format_duration", "format_duration_short"]

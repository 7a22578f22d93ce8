# Event names on the cross-window sync channel. The floating widget and the main window only agree on these strings
# and the payload keys documented next to them.

TIMER_SYNC = "timer-sync"                # {mode, project_id, project_name, project_color, elapsed_seconds}
TIMER_COMMAND = "timer-command"          # {action: "pause" | "resume" | "stop"}
TIMER_REQUEST_SYNC = "timer-request-sync"  # {}
TIMER_IDLE_TOGGLE = "timer-idle-toggle"  # {active: bool}
TIMER_BREAK_TOGGLE = "timer-break-toggle"  # {active: bool}, break reminder showing or break running
TIME_ENTRY_SAVED = "time-entry-saved"    # {id, project_id}

COMMAND_ACTIONS = ("pause", "resume", "stop")

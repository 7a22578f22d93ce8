import logging
import os
from pathlib import Path
from logging.handlers import RotatingFileHandler
from ff.common.setup import PATHS
from datetime import datetime

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s:%(filename)s:%(lineno)d] %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

def _attach(logger: logging.Logger, handler_name: str, handler: logging.Handler, level, fmt) -> None:
    handler.setLevel(level)
    handler.setFormatter(fmt)
    handler.set_name(handler_name)
    logger.addHandler(handler)

# Handlers are looked up by name, so repeated get_logger() calls (or module reloads in tests) never double up output.
def _has_handler(logger: logging.Logger, handler_name: str) -> bool:
    return any(h.get_name() == handler_name for h in logger.handlers)

def get_logger(
        name = "flowforge",
        level = logging.INFO,
        log_dir: Path | None = None,
        max_bytes = 2 * 1024 * 1024,
        backup_count = 3,
        persistent = True,
        console = False,
        historical_debugs: int = 10
) -> logging.Logger:
    logger = logging.getLogger(name)
    logger.propagate = False
    logger.setLevel(min(level, logging.DEBUG) if historical_debugs > 0 else level)

    log_dir = log_dir or PATHS.logs
    log_dir.mkdir(parents=True,exist_ok=True)

    fmt = logging.Formatter(LOG_FORMAT,LOG_DATE_FORMAT)

    # Persistent, size-rotated log of every run
    persistent_handler_name = f"{name}:persistent"
    if persistent and not _has_handler(logger, persistent_handler_name):
        _attach(logger, persistent_handler_name, RotatingFileHandler(
            filename=log_dir / f"{name}.log",
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
            delay=True,
        ), level, fmt)

    # Latest-only log, overwritten each run
    latest_handler_name = f"{name}:latest"
    if not _has_handler(logger, latest_handler_name):
        _attach(logger, latest_handler_name, logging.FileHandler(
            filename=log_dir / "latest.log",
            mode="w",
            encoding="utf-8",
            delay=True,
        ), level, fmt)

    # Full debug log per run, only the newest `historical_debugs` runs are kept around. Timer transitions and
    # idle ticks log at debug, so this is where to look when reconciling a weird time entry.
    historical_debug_handler_name = f"{name}:historical_debug"
    if historical_debugs > 0 and not _has_handler(logger, historical_debug_handler_name):
        historical_debug_path = log_dir / "debug"
        historical_debug_path.mkdir(parents=True,exist_ok=True)
        this_run_path = historical_debug_path / f"{name}_{datetime.now():%Y-%m-%d_%H-%M-%S}.log"
        _attach(logger, historical_debug_handler_name, logging.FileHandler(
            filename=this_run_path,
            encoding="utf-8",
            delay=True,
        ), logging.DEBUG, fmt)

        runs = sorted(historical_debug_path.glob(f"{name}_*.log"),key=lambda p: p.stat().st_mtime,reverse=True)
        for run in runs[historical_debugs:]:
            try: run.unlink()
            except OSError: pass

    console_handler_name = f"{name}:console"
    if console and not _has_handler(logger, console_handler_name):
        _attach(logger, console_handler_name, logging.StreamHandler(), level, fmt)

    return logger

log = get_logger(
    level=logging.DEBUG if os.getenv("FLOWFORGE_DEBUG") else logging.INFO,
    console=bool(os.getenv("FLOWFORGE_CONSOLE_LOG")),
    historical_debugs=10,
)
log.info("=== INITIALIZED NEW SESSION ===")

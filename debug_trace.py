"""
debug_trace.py

Trace output for compositing passes and state hub activity.
Enabled by default; ``configure()`` applies the ``[trace]`` settings.
"""

import sys
import traceback
from datetime import datetime
from functools import wraps

# Set to False to silence all tracing
DEBUG_TRACE = True

# Log file (None for stderr only)
LOG_FILE = None

_log_file = None


def configure(enabled: bool = True, log_file: str | None = None):
    """Apply trace settings, closing any previously opened log file."""
    global DEBUG_TRACE, LOG_FILE
    close_log()
    DEBUG_TRACE = enabled
    LOG_FILE = log_file or None


def configure_from_settings():
    """Apply the ``[trace]`` section of the current settings."""
    from settings import get_settings

    trace_settings = get_settings().settings.trace
    configure(trace_settings.enabled, trace_settings.log_file)


def _get_log_file():
    global _log_file
    if LOG_FILE and _log_file is None:
        try:
            _log_file = open(LOG_FILE, "a", encoding="utf-8")
        except OSError as e:
            print(f"Cannot open trace log {LOG_FILE}: {e}", file=sys.stderr)
    return _log_file


def trace(msg: str, category: str = "INFO"):
    """Print a trace message with timestamp."""
    if not DEBUG_TRACE:
        return

    timestamp = datetime.now().strftime("%H:%M:%S.%f")[:-3]
    line = f"[{timestamp}] [{category}] {msg}"

    print(line, file=sys.stderr, flush=True)

    log_file = _get_log_file()
    if log_file:
        log_file.write(line + "\n")
        log_file.flush()


def trace_exception(msg: str = "Exception"):
    """Print exception info."""
    if not DEBUG_TRACE:
        return
    trace(f"{msg}: {traceback.format_exc()}", "ERROR")


def trace_call(category: str = "CALL"):
    """Decorator to trace function calls."""
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            if not DEBUG_TRACE:
                return func(*args, **kwargs)
            func_name = func.__qualname__
            trace(f">>> {func_name}", category)
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                trace(f"!!! {func_name} raised {type(e).__name__}: {e}", "ERROR")
                raise
            trace(f"<<< {func_name}", category)
            return result
        return wrapper
    return decorator


def close_log():
    """Close log file."""
    global _log_file
    if _log_file:
        _log_file.close()
        _log_file = None

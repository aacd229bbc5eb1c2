"""qrstyle structured logging: audit events for each pipeline stage plus debug tracing."""

import contextlib
import functools
import json
import logging
import sys
import time
import traceback
from datetime import datetime, timezone

# Custom AUDIT level (between WARNING=30 and ERROR=40)
AUDIT = 35
logging.addLevelName(AUDIT, "AUDIT")

NAMESPACE = "qrstyle"


def _truncate(value: object, max_len: int = 80) -> str:
    """Truncate a string for safe logging."""
    s = str(value)
    if len(s) > max_len:
        return s[:max_len] + "..."
    return s


def _summarize(value: object) -> str:
    """Short description of a traced argument or return value.

    Images are reduced to their mode and size so pixel buffers never reach the log.
    """
    size = getattr(value, "size", None)
    if isinstance(size, tuple) and len(size) == 2:
        mode = getattr(value, "mode", "")
        return f"<{type(value).__name__} {mode} {size[0]}x{size[1]}>".replace("  ", " ")
    image = getattr(value, "image", None)
    if image is not None and hasattr(image, "size"):
        return f"<{type(value).__name__} {image.size[0]}x{image.size[1]}>"
    if isinstance(value, (bytes, bytearray)):
        return f"<bytes[{len(value)}]>"
    if isinstance(value, (str, int, float, bool)) or value is None:
        return _truncate(repr(value), 80)
    if isinstance(value, (list, tuple)):
        return f"{type(value).__name__}[{len(value)}]"
    if isinstance(value, dict):
        return f"dict[{len(value)} keys]"
    return _truncate(repr(value), 80)


class JsonFormatter(logging.Formatter):
    """Outputs one JSON object per line for machine parsing."""

    def format(self, record):
        entry = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z",
            "level": record.levelname,
            "src": record.name,
        }
        if hasattr(record, "event"):
            entry["event"] = record.event
        if hasattr(record, "duration_ms"):
            entry["duration_ms"] = round(record.duration_ms, 2)
        if hasattr(record, "ctx"):
            entry["ctx"] = record.ctx
        if record.getMessage() and not hasattr(record, "event"):
            entry["msg"] = record.getMessage()
        if record.exc_info and record.exc_info[1]:
            entry["traceback"] = traceback.format_exception(*record.exc_info)
        return json.dumps(entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """Human-readable colored console output."""

    COLORS = {
        "DEBUG": "\033[36m",    # cyan
        "INFO": "\033[32m",     # green
        "AUDIT": "\033[35m",    # magenta
        "WARNING": "\033[33m",  # yellow
        "ERROR": "\033[31m",    # red
    }
    RESET = "\033[0m"

    def __init__(self, use_color: bool = True):
        super().__init__()
        self.use_color = use_color

    def format(self, record):
        ts = datetime.fromtimestamp(record.created, tz=timezone.utc).strftime("%H:%M:%S.%f")[:-3]
        if self.use_color:
            color = self.COLORS.get(record.levelname, "")
            level = f"{color}{record.levelname:5s}{self.RESET}"
        else:
            level = f"{record.levelname:5s}"
        parts = [ts, level, f"[{record.name}]"]

        if hasattr(record, "event"):
            parts.append(record.event)

        if hasattr(record, "duration_ms"):
            parts.append(f"({record.duration_ms:.1f}ms)")

        if hasattr(record, "ctx") and record.ctx:
            parts.append(" ".join(f"{k}={_truncate(v)}" for k, v in record.ctx.items()))
        elif record.getMessage() and not hasattr(record, "event"):
            parts.append(record.getMessage())

        if record.exc_info and record.exc_info[1]:
            parts.append(f"\n{''.join(traceback.format_exception(*record.exc_info))}")

        return " ".join(parts)


def setup_logging(level: str = "INFO", log_file: str | None = None, json_format: bool = False):
    """Configure the root qrstyle logger.

    Args:
        level: Log level string (DEBUG, INFO, WARNING, ERROR, AUDIT).
        log_file: If set, write JSON logs to this file path.
        json_format: If True, use JSON format on the console too.
    """
    root = logging.getLogger(NAMESPACE)
    level_value = logging.getLevelName(level.upper())
    root.setLevel(level_value if isinstance(level_value, int) else logging.INFO)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler()
    if json_format:
        console.setFormatter(JsonFormatter())
    else:
        console.setFormatter(ConsoleFormatter(use_color=sys.stderr.isatty()))
    root.addHandler(console)

    # File handler is always JSON
    if log_file:
        fh = logging.FileHandler(log_file)
        fh.setFormatter(JsonFormatter())
        root.addHandler(fh)


def get_logger(module_name: str) -> logging.Logger:
    """Get a logger scoped under the qrstyle namespace."""
    return logging.getLogger(f"{NAMESPACE}.{module_name}")


def _emit(log: logging.Logger, level: int, event: str, ctx: dict,
          duration_ms: float | None = None, exc_info=None):
    if not log.isEnabledFor(level):
        return
    record = log.makeRecord(
        name=log.name, level=level, fn="", lno=0,
        msg="", args=(), exc_info=exc_info,
    )
    record.event = event
    record.ctx = ctx
    if duration_ms is not None:
        record.duration_ms = duration_ms
    log.handle(record)


def audit(event: str, logger: logging.Logger | None = None, **context):
    """Emit an AUDIT-level structured log entry.

    Args:
        event: Machine-readable event tag (e.g., "gradient.applied").
        logger: Logger to use. Defaults to the qrstyle root.
        **context: Key-value pairs for the event context.
    """
    _emit(logger or logging.getLogger(NAMESPACE), AUDIT, event, context)


@contextlib.contextmanager
def stage(name: str, logger: logging.Logger | None = None, **context):
    """Time one pipeline stage and emit ``stage.<name>`` at AUDIT level once it completes.

    The yielded dict is the event context; the stage body may add keys to it.
    Nothing is emitted when the body raises.
    """
    start = time.perf_counter()
    yield context
    _emit(logger or logging.getLogger(NAMESPACE), AUDIT, f"stage.{name}", context,
          duration_ms=(time.perf_counter() - start) * 1000)


def trace(func=None, *, logger_name: str | None = None):
    """Decorator that auto-logs function entry/exit with timing.

    - DEBUG on entry with arguments
    - INFO on exit with duration
    - ERROR on exception with traceback and duration
    """
    def decorator(fn):
        _logger_name = logger_name or fn.__module__.replace(f"{NAMESPACE}.", "")
        log = get_logger(_logger_name)

        @functools.wraps(fn)
        def wrapper(*args, **kwargs):
            fn_name = fn.__name__

            if log.isEnabledFor(logging.DEBUG):
                _emit(log, logging.DEBUG, f"{fn_name}.enter", {
                    "args": [_summarize(a) for a in args],
                    "kwargs": {k: _summarize(v) for k, v in kwargs.items()},
                })

            start = time.perf_counter()
            try:
                result = fn(*args, **kwargs)
            except Exception:
                elapsed = (time.perf_counter() - start) * 1000
                _emit(log, logging.ERROR, f"{fn_name}.error", {"function": fn_name},
                      duration_ms=elapsed, exc_info=sys.exc_info())
                raise

            elapsed = (time.perf_counter() - start) * 1000
            _emit(log, logging.INFO, f"{fn_name}.done", {"result": _summarize(result)},
                  duration_ms=elapsed)
            return result

        return wrapper

    if func is not None:
        return decorator(func)
    return decorator

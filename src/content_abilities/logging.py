"""Centralized logging configuration.

All entry points (CLI, embedding adapters) should call configure_logging()
early.

Logging Levels:
- DEBUG: Registration details, normalized inputs
- INFO: Completed invocations (one line per invocation, from the invoker)
- WARNING: Denied or invalid invocations, failing permission predicates
- ERROR: Execution failures

Messages are short event names (``ability_invoked``) with structured fields
passed through ``extra``. Fields bound with ``log_context()`` are attached to
every record emitted inside the block.
"""

import json
import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any, TextIO

DEFAULT_LOG_RETENTION_DAYS = 7

LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")

_context: ContextVar[dict[str, Any]] = ContextVar("content_abilities_log_context")

# Attributes every LogRecord has; anything else came from ``extra``.
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", None, None)).keys()
    | {"message", "asctime", "component", "context"}
)


def get_log_context() -> dict[str, Any]:
    return dict(_context.get({}))


@contextmanager
def log_context(**fields: Any) -> Iterator[None]:
    """Bind fields to all log records emitted inside the block.

    None values are dropped; nested blocks inherit and extend the outer one.
    """
    merged = {**_context.get({}), **{k: v for k, v in fields.items() if v is not None}}
    token = _context.set(merged)
    try:
        yield
    finally:
        _context.reset(token)


class ContextFilter(logging.Filter):
    """Copies the active log context onto the record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.context = get_log_context()
        return True


def _component(name: str) -> str:
    parts = name.split(".")
    if len(parts) >= 2 and parts[0] == "content_abilities":
        return parts[1]
    return parts[0]


def _record_extra(record: logging.LogRecord) -> dict[str, Any]:
    return {
        key: value
        for key, value in vars(record).items()
        if key not in _RECORD_ATTRS and not key.startswith("_")
    }


def prune_old_logs(
    logs_dir: Path,
    retention_days: int = DEFAULT_LOG_RETENTION_DAYS,
    suffix: str = ".jsonl",
) -> int:
    """Delete log files older than the retention period.

    Returns:
        Number of files deleted.
    """
    if not logs_dir.exists():
        return 0

    cutoff = datetime.now(UTC) - timedelta(days=retention_days)
    deleted = 0

    for entry in logs_dir.iterdir():
        if not entry.is_file() or not entry.name.endswith(suffix):
            continue
        try:
            mtime = datetime.fromtimestamp(entry.stat().st_mtime, UTC)
            if mtime < cutoff:
                entry.unlink()
                deleted += 1
        except OSError:
            pass  # Ignore errors on individual files

    return deleted


class JSONLHandler(logging.Handler):
    """Writes one JSON object per record to ``<logs_dir>/YYYY-MM-DD.jsonl``.

    Files rotate daily; old files are pruned on rotation.
    """

    def __init__(
        self,
        logs_dir: Path,
        retention_days: int = DEFAULT_LOG_RETENTION_DAYS,
    ):
        super().__init__()
        self._logs_dir = logs_dir
        self._logs_dir.mkdir(parents=True, exist_ok=True)
        self._retention_days = retention_days
        self._current_date: str | None = None
        self._file: TextIO | None = None
        self.addFilter(ContextFilter())

    def _get_log_file(self) -> TextIO:
        today = datetime.now(UTC).strftime("%Y-%m-%d")
        if self._current_date != today or self._file is None:
            if self._file:
                self._file.close()
            self._current_date = today
            log_path = self._logs_dir / f"{today}.jsonl"
            self._file = log_path.open("a", encoding="utf-8")
            prune_old_logs(self._logs_dir, self._retention_days)
        return self._file

    def emit(self, record: logging.LogRecord) -> None:
        try:
            entry: dict[str, Any] = {
                "ts": datetime.now(UTC).isoformat(),
                "level": record.levelname,
                "component": _component(record.name),
                "logger": record.name,
                "message": record.getMessage(),
            }
            context = getattr(record, "context", None)
            if context:
                entry["context"] = context
            extra = _record_extra(record)
            if extra:
                entry["extra"] = extra
            if record.exc_info:
                formatter = self.formatter or logging.Formatter()
                entry["exception"] = formatter.formatException(record.exc_info)

            log_file = self._get_log_file()
            log_file.write(json.dumps(entry, default=str) + "\n")
            log_file.flush()
        except Exception:
            self.handleError(record)

    def close(self) -> None:
        if self._file:
            self._file.close()
            self._file = None
        super().close()


class ComponentFormatter(logging.Formatter):
    """Formatter that shortens logger paths to a component name.

    - content_abilities.abilities.invoker -> abilities
    - content_abilities.content.sql -> content
    """

    def format(self, record: logging.LogRecord) -> str:
        record.component = _component(record.name)
        message = super().format(record)
        extra = _record_extra(record)
        context = getattr(record, "context", None) or {}
        fields = {**context, **extra}
        if fields:
            rendered = " ".join(f"{key}={value}" for key, value in fields.items())
            message = f"{message} {rendered}"
        return message


# Third-party loggers that are too noisy at INFO level
NOISY_LOGGERS = [
    "sqlalchemy.engine",
    "aiosqlite",
]


def configure_logging(
    level: str | None = None,
    use_rich: bool = False,
    log_to_file: bool = False,
    logs_dir: Path | None = None,
    retention_days: int = DEFAULT_LOG_RETENTION_DAYS,
) -> None:
    """Configure logging. Call once at startup.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR).
            If None, uses CONTENT_ABILITIES_LOG_LEVEL or INFO.
        use_rich: Use Rich handler for colorful output.
        log_to_file: Also write JSONL files (default: $CONTENT_ABILITIES_HOME/logs).
        logs_dir: Override the JSONL directory.
        retention_days: Days of JSONL files to keep.
    """
    if level is None:
        level = os.environ.get("CONTENT_ABILITIES_LOG_LEVEL", "INFO").upper()
    level = level.upper()
    if level not in LEVELS:
        level = "INFO"

    log_level = getattr(logging, level)

    handlers: list[logging.Handler] = []

    if use_rich:
        from rich.logging import RichHandler

        console_handler: logging.Handler = RichHandler(
            rich_tracebacks=False,
            show_path=False,
            show_time=True,
            markup=False,
        )
        console_handler.setFormatter(ComponentFormatter("%(component)s | %(message)s"))
    else:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(
            ComponentFormatter(
                "%(asctime)s | %(levelname)-8s | %(component)s | %(message)s",
                datefmt="%H:%M:%S",
            )
        )
    console_handler.addFilter(ContextFilter())
    handlers.append(console_handler)

    if log_to_file:
        if logs_dir is None:
            from content_abilities.config.paths import get_logs_path

            logs_dir = get_logs_path()
        file_handler = JSONLHandler(logs_dir, retention_days=retention_days)
        file_handler.setLevel(log_level)
        handlers.append(file_handler)

    logging.basicConfig(
        level=log_level,
        handlers=handlers,
        force=True,
    )

    for logger_name in NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.WARNING)

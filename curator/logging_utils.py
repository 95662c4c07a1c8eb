"""
Logging helpers shared by the curator entrypoints.

Entrypoints (main_app.py, api/__main__.py) call configure_logging() once at
startup; library modules only ever do ``logging.getLogger(__name__)``.
"""
import logging
import os
import sys
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

_logging_configured = False
_run_id: Optional[str] = None
_HANDLER_TAG = "_curator_handler"
_CONSOLE_FMT = '%(asctime)s | %(levelname)-5s | %(name)s | %(message)s'
_CONSOLE_FMT_RUN_ID = '%(asctime)s | %(levelname)-5s | %(name)s | run_id=%(run_id)s | %(message)s'
_FILE_FMT = '%(asctime)s | %(levelname)-5s | %(name)s | %(funcName)s:%(lineno)d | run_id=%(run_id)s | %(message)s'

# Third-party loggers that are chatty at INFO
_NOISY_LOGGERS = ('urllib3', 'requests', 'httpx', 'uvicorn.access', 'multipart')


class RunIdFilter(logging.Filter):
    """Stamp every record with the current run id."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.run_id = _run_id or "-"
        return True


def set_run_id(run_id: Optional[str]) -> None:
    global _run_id
    _run_id = run_id


def configure_logging(
    level: str = 'INFO',
    log_file: Optional[str] = None,
    file_level: str = 'DEBUG',
    force: bool = False,
    run_id: Optional[str] = None,
    show_run_id: bool = False,
) -> None:
    """
    Configure the root logger for a curator process.

    Repeated calls are no-ops unless force=True. Only handlers installed here
    (tagged) are replaced, so handlers added by pytest or uvicorn survive.

    Args:
        level: Console log level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional path for a DEBUG-level file log
        file_level: Level for the file handler
        force: Reconfigure even if already configured
        run_id: Identifier injected into every record
        show_run_id: Include run_id in console lines

    Environment overrides:
        LOG_LEVEL: replaces ``level``
        LOG_FILE: used when ``log_file`` is not given
    """
    global _logging_configured

    if run_id:
        set_run_id(run_id)

    if _logging_configured and not force:
        return

    level = os.getenv('LOG_LEVEL', level).upper()
    if log_file is None:
        log_file = os.getenv('LOG_FILE')

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    for handler in root.handlers[:]:
        if getattr(handler, _HANDLER_TAG, False):
            root.removeHandler(handler)

    root.filters = [f for f in root.filters if not isinstance(f, RunIdFilter)]
    root.addFilter(RunIdFilter())

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(getattr(logging, level, logging.INFO))
    use_run_id = show_run_id or level == 'DEBUG'
    console.setFormatter(logging.Formatter(
        _CONSOLE_FMT_RUN_ID if use_run_id else _CONSOLE_FMT,
        datefmt='%H:%M:%S',
    ))
    console.addFilter(RunIdFilter())
    setattr(console, _HANDLER_TAG, True)
    root.addHandler(console)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setLevel(getattr(logging, file_level.upper(), logging.DEBUG))
        file_handler.setFormatter(logging.Formatter(_FILE_FMT, datefmt='%Y-%m-%d %H:%M:%S'))
        file_handler.addFilter(RunIdFilter())
        setattr(file_handler, _HANDLER_TAG, True)
        root.addHandler(file_handler)

    for noisy in _NOISY_LOGGERS:
        logging.getLogger(noisy).setLevel(logging.WARNING)

    _logging_configured = True
    logging.getLogger(__name__).debug(
        f"Logging configured: level={level}, file={log_file or 'none'}, run_id={_run_id or '-'}"
    )


def reset_logging() -> None:
    """Drop tagged handlers and forget configuration (used by tests)."""
    global _logging_configured
    root = logging.getLogger()
    for handler in root.handlers[:]:
        if getattr(handler, _HANDLER_TAG, False):
            root.removeHandler(handler)
            handler.close()
    _logging_configured = False


def _format_elapsed(elapsed: float) -> str:
    if elapsed < 1:
        return f"{elapsed * 1000:.0f}ms"
    if elapsed < 60:
        return f"{elapsed:.1f}s"
    minutes = int(elapsed // 60)
    return f"{minutes}m {elapsed % 60:.0f}s"


@contextmanager
def stage_timer(stage_name: str, logger: Optional[logging.Logger] = None):
    """
    Time a pipeline stage.

    Usage:
        with stage_timer("Discovery candidates", logger):
            candidates = build_discovery_candidates(...)
        # Logs: "Discovery candidates completed in 42ms"
    """
    log = logger or logging.getLogger(__name__)
    log.debug(f"{stage_name} starting...")
    start = time.perf_counter()
    try:
        yield
    finally:
        log.info(f"{stage_name} completed in {_format_elapsed(time.perf_counter() - start)}")


def format_count(n: int, singular: str, plural: Optional[str] = None) -> str:
    """Render ``n`` with the right noun form, e.g. "1 track" / "1,204 tracks"."""
    if plural is None:
        plural = singular + 's'
    return f"{n:,} {singular if n == 1 else plural}"


def truncate_list(items: List[Any], max_items: int = 3, format_fn=str) -> str:
    """Render a list for a log line, e.g. "rock, jazz, soul (+5 more)"."""
    if not items:
        return "(none)"
    result = ', '.join(format_fn(item) for item in items[:max_items])
    if len(items) > max_items:
        result += f" (+{len(items) - max_items} more)"
    return result


def add_logging_args(parser) -> None:
    """Add the standard --log-level/--debug/--quiet/--log-file flags."""
    group = parser.add_argument_group('logging')
    group.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        default='INFO',
        help='Set logging level (default: INFO)'
    )
    group.add_argument('--debug', action='store_true', help='Shortcut for --log-level DEBUG')
    group.add_argument('--quiet', action='store_true', help='Shortcut for --log-level WARNING')
    group.add_argument('--log-file', type=str, metavar='PATH', help='Write logs to file')
    group.add_argument(
        '--show-run-id',
        action='store_true',
        help='Include run_id in console logs (always included in file logs)',
    )


def resolve_log_level(args) -> str:
    """--debug wins over --quiet, which wins over --log-level."""
    if getattr(args, 'debug', False):
        return 'DEBUG'
    if getattr(args, 'quiet', False):
        return 'WARNING'
    return getattr(args, 'log_level', 'INFO')


class RunSummary:
    """
    Collect metrics during a run and log them as one block at the end.

    Usage:
        summary = RunSummary("Discovery playlist")
        summary.add("history_entries", 4210)
        summary.increment("fallback_candidates", 12)
        summary.log()
    """

    def __init__(self, title: str, logger: Optional[logging.Logger] = None):
        self.title = title
        self.logger = logger or logging.getLogger(__name__)
        self.metrics: Dict[str, Union[int, float, str]] = {}
        self.start_time = time.perf_counter()

    def add(self, key: str, value: Union[int, float, str]) -> None:
        self.metrics[key] = value

    def increment(self, key: str, amount: int = 1) -> None:
        self.metrics[key] = self.metrics.get(key, 0) + amount

    def log(self, level: int = logging.INFO) -> None:
        elapsed = time.perf_counter() - self.start_time

        self.logger.log(level, "=" * 60)
        self.logger.log(level, f"{self.title.upper()} SUMMARY")
        for key, value in self.metrics.items():
            display_key = key.replace('_', ' ').title()
            if isinstance(value, float):
                self.logger.log(level, f"  {display_key}: {value:.2f}")
            else:
                self.logger.log(level, f"  {display_key}: {value}")
        self.logger.log(level, f"  Total Time: {_format_elapsed(elapsed)}")
        self.logger.log(level, "=" * 60)

import sys
from datetime import datetime
from pathlib import Path
from typing import Optional
from models.enums import LogLevel, LogCategory

# === ANSI COLORS ===
class Colors:
    """ANSI escape codes for colored terminal output"""
    RESET = '\033[0m'
    BOLD = '\033[1m'
    DIM = '\033[2m'

    # Foreground colors
    RED = '\033[31m'
    GREEN = '\033[32m'
    YELLOW = '\033[33m'
    BLUE = '\033[34m'
    MAGENTA = '\033[35m'
    CYAN = '\033[36m'
    WHITE = '\033[37m'

    # Bright foreground colors
    BRIGHT_BLUE = '\033[94m'
    BRIGHT_MAGENTA = '\033[95m'
    BRIGHT_CYAN = '\033[96m'
    BRIGHT_GREEN = '\033[92m'
    BRIGHT_YELLOW = '\033[93m'
    BRIGHT_WHITE = '\033[97m'


CATEGORY_COLORS = {
    LogCategory.CONFIG: Colors.CYAN,
    LogCategory.SYSTEM: Colors.BRIGHT_WHITE,
    LogCategory.DAEMON: Colors.BRIGHT_WHITE,
    LogCategory.STARTUP: Colors.BRIGHT_GREEN,
    LogCategory.BACKUP: Colors.BRIGHT_BLUE,
    LogCategory.MEMORY: Colors.BRIGHT_CYAN,
    LogCategory.HEALTH: Colors.BRIGHT_YELLOW,
    LogCategory.SESSION: Colors.MAGENTA,
    LogCategory.CHAT: Colors.BLUE,
    LogCategory.EVENT: Colors.BRIGHT_MAGENTA,
    LogCategory.SHUTDOWN: Colors.YELLOW,
}

LEVEL_SYMBOLS = {
    LogLevel.DEBUG: '·',
    LogLevel.INFO: '✓',
    LogLevel.WARN: '⚠',
    LogLevel.ERROR: '✗',
}

LEVEL_COLORS = {
    LogLevel.DEBUG: Colors.DIM,
    LogLevel.INFO: Colors.GREEN,
    LogLevel.WARN: Colors.YELLOW,
    LogLevel.ERROR: Colors.RED,
}


# === CORE LOGGER ===
class Logger:
    """
    Structured logger with compact console output and a daily log file

    Console format:
    [HH:MM:SS] CATEGORY · Message
               └─ Detail 1
               └─ Detail 2

    File format (one line per record, <log_dir>/daemon-YYYY-MM-DD.log):
    2024-05-01T14:23:45.123456+00:00 [BACKUP] INFO Chat backed up (file: ..., messages: 3)

    Example:
    [14:23:45] BACKUP    ✓ Chat backed up
               ├─ file: chat-backup-2024-05-01T14-23-45-123456Z.json
               └─ messages: 3
    """

    def __init__(self, min_level: LogLevel = LogLevel.INFO, use_colors: bool = True):
        """
        Initialize logger

        Args:
            min_level: Minimum log level to display
            use_colors: Enable ANSI color codes on the console
        """
        self.min_level = min_level
        self.use_colors = use_colors
        self._level_priority = {
            LogLevel.DEBUG: 0,
            LogLevel.INFO: 1,
            LogLevel.WARN: 2,
            LogLevel.ERROR: 3,
        }
        self._log_dir: Optional[Path] = None

    def _should_log(self, level: LogLevel) -> bool:
        """Check if message should be logged based on level"""
        return self._level_priority[level] >= self._level_priority[self.min_level]

    def _colorize(self, text: str, color: str) -> str:
        """Apply color to text if colors enabled"""
        if not self.use_colors:
            return text
        return f"{color}{text}{Colors.RESET}"

    def _format_timestamp(self, now: datetime) -> str:
        """Format time as [HH:MM:SS]"""
        return now.strftime('[%H:%M:%S]')

    def _format_category(self, category: LogCategory) -> str:
        """Format category name with color"""
        color = CATEGORY_COLORS.get(category, Colors.WHITE)
        return self._colorize(category.name.ljust(9), color)

    def _format_level_symbol(self, level: LogLevel) -> str:
        """Format level symbol with color"""
        symbol = LEVEL_SYMBOLS.get(level, '·')
        return self._colorize(symbol, LEVEL_COLORS.get(level, Colors.WHITE))

    # === Daily log file ===

    def set_log_dir(self, log_dir: Optional[Path]) -> None:
        """
        Attach (or detach with None) the directory for daily log files.

        Args:
            log_dir: Directory receiving daemon-YYYY-MM-DD.log files
        """
        self._log_dir = Path(log_dir) if log_dir is not None else None

    def log_file_for(self, now: datetime) -> Optional[Path]:
        """Path of the log file for the calendar day of `now`"""
        if self._log_dir is None:
            return None
        return self._log_dir / f"daemon-{now.date().isoformat()}.log"

    def _write_file_line(self, now: datetime, category: LogCategory, level: LogLevel, message: str) -> None:
        log_file = self.log_file_for(now)
        if log_file is None:
            return

        line = f"{now.astimezone().isoformat()} [{category.name}] {level.name} {message}\n"
        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            with open(log_file, "a", encoding="utf-8") as f:
                f.write(line)
        except OSError as e:
            # The log file is a sink; losing it must not take the caller down
            print(f"Log file write failed ({log_file}): {e}", file=sys.stderr)

    def log(
        self,
        category: LogCategory,
        message: str,
        level: LogLevel = LogLevel.INFO,
        details: Optional[list] = None,
        exc_info: bool = False,
        **kwargs
    ):
        """
        Log a structured message

        Args:
            category: Log category (BACKUP, STARTUP, etc.)
            message: Main message text
            level: Log level (DEBUG, INFO, WARN, ERROR)
            details: List of detail strings to show below message
            exc_info: Append the exception currently being handled
            **kwargs: Additional key-value pairs to show as details

        Example:
            logger.log(
                LogCategory.BACKUP,
                "Chat backed up",
                file="chat-backup-....json",
                messages=3
            )
        """
        if not self._should_log(level):
            return

        now = datetime.now()

        # Add kwargs as details
        all_details = list(details or [])
        for k, v in kwargs.items():
            all_details.append(f"{k}: {v}")
        if exc_info:
            exc = sys.exc_info()[1]
            if exc is not None:
                all_details.append(f"exception: {type(exc).__name__}: {exc}")

        # Main line
        timestamp = self._format_timestamp(now)
        cat = self._format_category(category)
        sym = self._format_level_symbol(level)
        msg = self._colorize(message, LEVEL_COLORS.get(level, Colors.WHITE))
        print(f"{timestamp} {cat} {sym} {msg}")

        # Details with tree structure
        if all_details:
            indent = " " * 11
            for i, d in enumerate(all_details):
                tree = "└─" if i == len(all_details) - 1 else "├─"
                print(f"{indent}{self._colorize(tree, Colors.DIM)} {d}")

        full_message = message
        if all_details:
            full_message = f"{message} ({', '.join(all_details)})"
        self._write_file_line(now, category, level, full_message)

    # === Level helpers ===
    def debug(self, category: LogCategory, message: str, **kw): self.log(category, message, LogLevel.DEBUG, **kw)
    def info(self, category: LogCategory, message: str, **kw): self.log(category, message, LogLevel.INFO, **kw)
    def warn(self, category: LogCategory, message: str, **kw): self.log(category, message, LogLevel.WARN, **kw)
    def error(self, category: LogCategory, message: str, **kw): self.log(category, message, LogLevel.ERROR, **kw)

    # === Contextual logger creation ===
    def for_category(self, category: LogCategory) -> 'BoundLogger':
        """Return a contextual logger bound to a specific category."""
        return BoundLogger(self, category)


class BoundLogger:
    """Logger bound to a default category, with ability to override if needed."""

    def __init__(self, base: Logger, category: LogCategory):
        self._base = base
        self._category = category

    def log(self, message: str, level: LogLevel = LogLevel.INFO, category: Optional[LogCategory] = None, **kw):
        """Allows overriding category if necessary."""
        self._base.log(category or self._category, message, level, **kw)

    # Shortcut methods
    def debug(self, message: str, **kw): self.log(message, LogLevel.DEBUG, **kw)
    def info(self, message: str, **kw): self.log(message, LogLevel.INFO, **kw)
    def warn(self, message: str, **kw): self.log(message, LogLevel.WARN, **kw)
    def error(self, message: str, **kw): self.log(message, LogLevel.ERROR, **kw)

    def with_category(self, category: LogCategory) -> 'BoundLogger':
        """Create another bound logger from this one."""
        return BoundLogger(self._base, category)


# === Global instance helpers ===
_logger = Logger()

def get_logger() -> Logger:
    return _logger

def configure_logger(
    min_level: LogLevel = LogLevel.INFO,
    use_colors: bool = True,
    log_dir: Optional[Path] = None,
):
    """
    Configure the logger singleton (modify in-place, don't create new instance).

    Bound loggers created at import time keep pointing at the same instance,
    so reconfiguring here affects every module.
    """
    _logger.min_level = min_level
    _logger.use_colors = use_colors
    if log_dir is not None:
        _logger.set_log_dir(log_dir)

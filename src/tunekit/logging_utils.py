# logging_utils.py
import json
import logging
from datetime import datetime, timezone
from pathlib import Path


class JSONFormatter(logging.Formatter):
    """One JSON object per log line."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False)


def setup_logging(
    level: int = logging.INFO,
    to_file: bool = False,
    log_dir: str = "logs",
    use_json: bool = False,
    quiet_libs: bool = True,
    to_console: bool = True,
) -> logging.Logger:
    """
    Configure the root logger for a tuning run.

    Args:
        level: Logging level
        to_file: Also write to ``<log_dir>/tunekit_<timestamp>.log``
        log_dir: Directory for log files
        use_json: JSON lines instead of the plain format
        quiet_libs: Raise matplotlib/joblib loggers to WARNING
        to_console: Log to stderr

    Returns:
        The root logger
    """
    logger = logging.getLogger()
    logger.setLevel(level)
    logger.handlers.clear()

    if use_json:
        formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    if to_console:
        console = logging.StreamHandler()
        console.setFormatter(formatter)
        logger.addHandler(console)

    if to_file:
        path = Path(log_dir)
        path.mkdir(parents=True, exist_ok=True)
        stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        file_handler = logging.FileHandler(path / f"tunekit_{stamp}.log", encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    if quiet_libs:
        for name in ("matplotlib", "PIL", "joblib"):
            logging.getLogger(name).setLevel(logging.WARNING)

    return logger

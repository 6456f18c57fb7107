import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional


def configure_logging(level: str = "WARNING", log_dir: Optional[Path] = None) -> None:
    """Configure root logger with a stderr handler and an optional file handler.

    Command output goes to stdout, so log records are kept on stderr.

    Args:
        level: Log level (WARNING, INFO, DEBUG, ...)
        log_dir: If provided, create a timestamped log file in this directory.
    """
    formatter = logging.Formatter(
        fmt="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
    )

    root = logging.getLogger()
    root.setLevel(level.upper())
    root.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    root.addHandler(console_handler)

    # urllib3 logs every connection at DEBUG
    if root.level > logging.DEBUG:
        logging.getLogger("urllib3").setLevel(logging.WARNING)

    if log_dir:
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
            timestamp = datetime.now().strftime("%Y-%m-%d__%H_%M_%S")
            log_file = log_dir / f"aruba1830_{timestamp}.log"
            file_handler = logging.FileHandler(log_file, mode="w", encoding="utf-8")
            file_handler.setFormatter(formatter)
            root.addHandler(file_handler)
            root.info("Logging to file: %s", log_file)
        except OSError as exc:
            root.error("File logging disabled (cannot create log file under %s): %s", str(log_dir), exc)

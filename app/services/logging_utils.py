"""
Logging setup for the labeling app
"""
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional, Union


def setup_logging(
    log_dir: Optional[Path] = None,
    name: str = "app",
    level: Union[int, str] = logging.INFO,
) -> logging.Logger:
    """
    Set up logging for the labeling session.

    Creates a console handler and, when log_dir is given, a timestamped
    file handler. Module loggers under `name` propagate to it.

    Args:
        log_dir: Directory for log files (no file logging if None)
        name: Logger name
        level: Logging level, as int or name ("INFO")

    Returns:
        Configured logger
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Streamlit reruns the script; don't stack handlers
    logger.handlers = []

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter("%(asctime)s - %(levelname)s - %(message)s"))
    logger.addHandler(console_handler)

    if log_dir is not None:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        log_file = log_dir / f"{name}_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
        logger.addHandler(file_handler)

    return logger

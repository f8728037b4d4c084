"""Logging setup with colored console output and a clean file log."""

import logging
import re
import sys
from pathlib import Path
from typing import Optional

from colorama import Fore, Style, init

logger = logging.getLogger("filterprobe")

STATUS_COLORS = {
    "info": Fore.BLUE,
    "success": Fore.GREEN,
    "warning": Fore.YELLOW,
    "error": Fore.RED,
    "progress": Fore.CYAN,
    "dead": Fore.RED,
    "redirect": Fore.YELLOW,
    "inconclusive": Fore.MAGENTA,
    "active": Fore.GREEN,
}

LOG_LEVELS = {
    "error": logging.ERROR,
    "warning": logging.WARNING,
}


class ColorStrippingFormatter(logging.Formatter):
    """Formatter that removes ANSI color codes for log files."""

    ansi = re.compile(r"\x1B\[[0-?]*[ -/]*[@-~]")

    def format(self, record):
        formatted = super().format(record)
        return self.ansi.sub("", formatted)


class ColorFormatter(logging.Formatter):
    LEVEL_COLORS = {
        logging.DEBUG: Fore.CYAN,
        logging.WARNING: Fore.YELLOW,
        logging.ERROR: Fore.RED,
        logging.CRITICAL: Fore.MAGENTA,
    }

    def format(self, record):
        color = self.LEVEL_COLORS.get(record.levelno, "")
        reset = Style.RESET_ALL if color else ""
        message = super().format(record)
        return f"{color}{message}{reset}"


def configure_logging(log_file: Optional[str] = None, debug: bool = False) -> logging.Logger:
    init()
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.DEBUG if debug else logging.INFO)
    logger.propagate = False

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(ColorFormatter("%(message)s"))
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(Path(log_file), mode="a", encoding="utf-8")
        file_handler.setFormatter(ColorStrippingFormatter("%(asctime)s - %(levelname)s - %(name)s - %(message)s"))
        logger.addHandler(file_handler)
    return logger


def print_status(message: str, status_type: str = "info") -> None:
    """Log a colored status message."""
    level = LOG_LEVELS.get(status_type, logging.INFO)
    logger.log(level, f"{STATUS_COLORS.get(status_type, Fore.WHITE)}{message}{Style.RESET_ALL}")


def print_header(title: str, width: int = 70) -> None:
    print_status("=" * width, "progress")
    print_status(f"{title:^{width}}", "progress")
    print_status("=" * width, "progress")

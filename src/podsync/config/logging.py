"""Logging configuration for podsync."""

import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

# Third-party loggers that log every request at INFO
_NOISY_LOGGERS = ("httpx", "httpcore")


def setup_logging(
    verbose: bool = False,
    log_file: Path | None = None,
    level: str | None = None,
) -> None:
    """Configure the root logger.

    Args:
        verbose: Log DEBUG messages to the console
        log_file: Also write logs (always DEBUG) to this file
        level: Console level name, overridden by ``verbose``
    """
    console_level = logging.DEBUG if verbose else getattr(logging, level or "INFO", logging.INFO)

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    console_handler = RichHandler(
        console=Console(stderr=True),
        level=console_level,
        show_path=verbose,
        rich_tracebacks=verbose,
    )
    console_handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    root.addHandler(console_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        root.addHandler(file_handler)

    root.setLevel(logging.DEBUG if (verbose or log_file is not None) else console_level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

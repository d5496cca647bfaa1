# pyright: standard

"""snapborg: snapborg/__logger__.py
A common logger for displaying diagnostics through rich.

Everything is written to stderr; stdout is reserved for command output
such as dry-run command lines and snapshot listings.
"""

import logging

from rich.console import Console
from rich.logging import RichHandler

# Initialize basic console and handler
cons = Console(stderr=True)
rich_handler = RichHandler(console=cons, show_path=False)
# Package wide logger, used by modules that don't log through __name__
logger = logging.getLogger("snapborg")


def create_logger(level="INFO", log_file=None) -> None:
    """Helper function to setup logging for a command run.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional path of a file receiving a plain copy of the log
    """
    # pylint: disable=global-statement
    global cons, rich_handler

    cons = Console(stderr=True)
    rich_handler = RichHandler(console=cons, show_path=False)

    handlers: list[logging.Handler] = [rich_handler]
    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        handlers.append(file_handler)

    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(level)

    logging.basicConfig(
        format="%(message)s",
        datefmt="%H:%M:%S",
        level=level,
        handlers=handlers,
        force=True,
    )

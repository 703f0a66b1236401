# ABOUTME: Logging configuration for the bookenrich CLI using Rich's log handler.
# ABOUTME: The library modules only create loggers; handlers are installed here, by the CLI.

import logging

from rich.console import Console
from rich.logging import RichHandler

_PACKAGE_LOGGER = "bookenrich"


def setup_logging(verbose: int = 0, console: Console | None = None) -> None:
    """Route bookenrich log records to stderr through Rich.

    verbose 0 shows warnings, 1 shows info, 2 or more shows debug output
    including httpx request lines.
    """
    if verbose >= 2:
        level = logging.DEBUG
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.WARNING

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))

    logger = logging.getLogger(_PACKAGE_LOGGER)
    logger.handlers = [handler]
    logger.setLevel(level)
    logger.propagate = False

    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose >= 2 else logging.WARNING)

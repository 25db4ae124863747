from __future__ import annotations

import logging

from textual.logging import TextualHandler

LOG_FORMAT = "%(asctime)s - %(name)s - [%(levelname)s] - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
QUIET_LOGGERS = ("botocore", "boto3", "urllib3", "httpx", "httpcore")


def setup_logging(level: str = "INFO", tui: bool = False) -> None:
    """Configure the root logger for the backend console or the Textual app.

    Inside the TUI, records go to the Textual devtools console instead of
    stderr so they do not draw over the screen.
    """
    resolved = getattr(logging, str(level).upper(), logging.INFO)
    if tui:
        logging.basicConfig(level=resolved, handlers=[TextualHandler()], force=True)
    else:
        logging.basicConfig(
            level=resolved, format=LOG_FORMAT, datefmt=DATE_FORMAT, force=True
        )
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(resolved, logging.WARNING))

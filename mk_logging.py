"""
Logging setup for mkdemo runs.

Console output at INFO (DEBUG when verbose); the run's execution log
always receives everything.
"""

import logging
from pathlib import Path
from typing import Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

QUIET_LOGGERS = ("urllib3", "httpx", "httpcore", "openai", "asyncio")

_HANDLER_TAG = "_mkdemo_handler"


def setup_logging(verbose: bool = False, log_path: Optional[Path] = None) -> logging.Logger:
    """Configure the root logger for one run and return it."""
    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    # Replace handlers installed by an earlier run in the same process
    for handler in list(root.handlers):
        if getattr(handler, _HANDLER_TAG, False):
            root.removeHandler(handler)
            handler.close()

    formatter = logging.Formatter(LOG_FORMAT)

    console = logging.StreamHandler()
    console.setLevel(logging.DEBUG if verbose else logging.INFO)
    console.setFormatter(formatter)
    setattr(console, _HANDLER_TAG, True)
    root.addHandler(console)

    if log_path is not None:
        log_path = Path(log_path)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        setattr(file_handler, _HANDLER_TAG, True)
        root.addHandler(file_handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root

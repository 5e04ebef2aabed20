"""Logging helpers for the redirector."""

import logging
import sys
from typing import Optional

from interfaces import ILogger


class RedirectLogger(ILogger):
    def __init__(self, log_access_file: Optional[str], log_error_file: Optional[str], quiet: bool = False):
        self.quiet = quiet
        self.logger = logging.getLogger("sitedetour")
        self.error_counter_callback = None
        self._setup_logging(log_access_file, log_error_file)

    def _setup_logging(self, log_access_file, log_error_file):
        if log_error_file:
            error_handler = logging.FileHandler(log_error_file, encoding="utf-8")
            error_handler.setFormatter(logging.Formatter("[%(asctime)s][%(levelname)s]: %(message)s", "%Y-%m-%d %H:%M:%S"))
            error_handler.setLevel(logging.ERROR)
            error_handler.addFilter(lambda r: r.levelno == logging.ERROR)
        else:
            error_handler = logging.NullHandler()

        if log_access_file:
            access_handler = logging.FileHandler(log_access_file, encoding="utf-8")
            access_handler.setFormatter(logging.Formatter("%(message)s"))
            access_handler.setLevel(logging.INFO)
            access_handler.addFilter(lambda r: r.levelno == logging.INFO)
        else:
            access_handler = logging.NullHandler()

        self.logger.propagate = False
        for handler in self.logger.handlers:
            handler.close()
        self.logger.handlers = []
        self.logger.setLevel(logging.INFO)
        self.logger.addHandler(error_handler)
        self.logger.addHandler(access_handler)

    def set_error_counter_callback(self, callback):
        self.error_counter_callback = callback

    def increment_errors(self) -> None:
        if self.error_counter_callback:
            try:
                self.error_counter_callback()
            except Exception:
                pass

    def log_access(self, message: str) -> None:
        try:
            self.logger.info(message)
        except Exception:
            pass

    def log_error(self, message: str) -> None:
        self.increment_errors()
        try:
            self.logger.error(message)
        except Exception:
            pass

    def info(self, *a, **k) -> None:
        if not self.quiet:
            print(*a, file=sys.stderr, **k)

    def error(self, *a, **k) -> None:
        if not self.quiet:
            print(*a, file=sys.stderr, **k)

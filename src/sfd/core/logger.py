"""
Logging and Error Handling System

This module configures the sfd logger hierarchy and provides the tracker that
records per-resource failures (skipped images, stylesheets and scripts) for
the end-of-run summary.
"""

import logging
import logging.handlers
import os
import sys
from datetime import datetime
from typing import Optional, Dict, Any
from pathlib import Path


APP_NAME = "sfd"


class SfdLogger:
    """
    Console logging on stdout, plus rotating log files when a log directory
    is given. Module loggers (logging.getLogger(__name__)) live under the
    "sfd" logger and share its handlers.
    """

    def __init__(self, log_dir: Optional[str] = None, app_name: str = APP_NAME):
        """
        Args:
            log_dir: Directory to store log files (None disables file logging)
            app_name: Root logger name
        """
        self.log_dir = Path(log_dir) if log_dir else None
        self.app_name = app_name

        if self.log_dir is not None:
            self.log_dir.mkdir(parents=True, exist_ok=True)

    def setup_logger(self, level: int = logging.INFO) -> logging.Logger:
        """
        Attach fresh handlers to the application logger.

        Args:
            level: Console logging level (default: INFO)

        Returns:
            Configured logger instance
        """
        logger = logging.getLogger(self.app_name)
        logger.setLevel(logging.DEBUG)
        logger.propagate = False

        # Replace handlers from an earlier initialization
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(logging.Formatter(
            '%(asctime)s | %(levelname)s | %(message)s',
            datefmt='%H:%M:%S'
        ))
        logger.addHandler(console_handler)

        if self.log_dir is None:
            return logger

        detailed_formatter = logging.Formatter(
            '%(asctime)s | %(name)s | %(levelname)s | %(funcName)s:%(lineno)d | %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        # Full run log; skipped resources show up here as WARNING lines
        run_handler = logging.handlers.RotatingFileHandler(
            self.log_dir / f"{self.app_name}.log",
            maxBytes=10*1024*1024,  # 10MB
            backupCount=5,
            encoding='utf-8'
        )
        run_handler.setLevel(logging.DEBUG)
        run_handler.setFormatter(detailed_formatter)
        logger.addHandler(run_handler)

        # Fatal failures only: bad URL, page download, output write
        fatal_handler = logging.handlers.RotatingFileHandler(
            self.log_dir / f"{self.app_name}_errors.log",
            maxBytes=5*1024*1024,  # 5MB
            backupCount=3,
            encoding='utf-8'
        )
        fatal_handler.setLevel(logging.ERROR)
        fatal_handler.setFormatter(detailed_formatter)
        logger.addHandler(fatal_handler)

        return logger

    def log_system_info(self):
        """Log runtime information at DEBUG level."""
        logger = logging.getLogger(f"{self.app_name}.system")
        logger.debug(f"Python version: {sys.version}")
        logger.debug(f"Platform: {sys.platform}")
        logger.debug(f"Working directory: {os.getcwd()}")
        if self.log_dir is not None:
            logger.debug(f"Log directory: {self.log_dir.absolute()}")


class ErrorTracker:
    """
    Records the recoverable failures of a run.

    Every entry is logged as a warning when it happens and kept, grouped by
    context ('images', 'stylesheets', 'scripts'), for the final summary.
    """

    def __init__(self, logger: logging.Logger):
        self.logger = logger
        self.warnings: list = []

    def log_warning(self,
                    message: str,
                    context: str = None,
                    url: str = None) -> str:
        """
        Log a warning and keep it for the end-of-run summary.

        Args:
            message: Warning message shown to the operator
            context: Pass in which the warning occurred
            url: Resource URL concerned

        Returns:
            Warning ID for tracking
        """
        warning_id = f"WARN_{datetime.now().strftime('%Y%m%d_%H%M%S')}_{len(self.warnings):03d}"

        self.warnings.append({
            'id': warning_id,
            'timestamp': datetime.now(),
            'message': message,
            'context': context,
            'url': url
        })

        self.logger.warning(message)
        self.logger.debug(f"[{warning_id}] context={context} url={url}")

        return warning_id

    def get_error_summary(self) -> Dict[str, Any]:
        """
        Returns:
            Dictionary with the warning count, counts per context and the
            last five warnings
        """
        by_context: Dict[str, int] = {}
        for warning in self.warnings:
            key = warning['context'] or 'general'
            by_context[key] = by_context.get(key, 0) + 1

        return {
            'total_warnings': len(self.warnings),
            'warnings_by_context': by_context,
            'recent_warnings': self.warnings[-5:],
        }


def initialize_logging(log_dir: Optional[str] = None, level: int = logging.INFO) -> logging.Logger:
    """
    Initialize the sfd logging system. Safe to call more than once.

    Args:
        log_dir: Directory for log files (None for console only)
        level: Console logging level

    Returns:
        The application logger
    """
    setup = SfdLogger(log_dir)
    logger = setup.setup_logger(level)
    setup.log_system_info()
    return logger

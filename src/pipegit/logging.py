"""Centralized logging configuration for pipegit.

Provides rotating file logs with consistent formatting across all components,
plus helpers that keep credentials out of pipeline logs.
"""

from __future__ import annotations

import logging
import os
import re
from collections import Counter
from logging.handlers import RotatingFileHandler
from pathlib import Path

# Default configuration
DEFAULT_LOG_DIR = "logs"
DEFAULT_LOG_FILE = "pipegit.log"
DEFAULT_MAX_BYTES = 10 * 1024 * 1024  # 10MB
DEFAULT_BACKUP_COUNT = 5
DEFAULT_LOG_LEVEL = "INFO"

# Log format
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

REDACTED = "[REDACTED]"

# Secrets bound at runtime (e.g. credential passwords), masked in every log line
_secrets: Counter[str] = Counter()


def setup_logging(
    log_dir: str | Path | None = None,
    log_file: str = DEFAULT_LOG_FILE,
    max_bytes: int = DEFAULT_MAX_BYTES,
    backup_count: int = DEFAULT_BACKUP_COUNT,
    level: str | None = None,
    console: bool = True,
    log_file_enabled: bool = True,
) -> logging.Logger:
    """Set up logging with rotating file handler.

    Args:
        log_dir: Directory for log files. Defaults to 'logs' in current directory.
                 Can be overridden with PIPEGIT_LOG_DIR environment variable.
        log_file: Log file name. Defaults to 'pipegit.log'.
        max_bytes: Maximum size per log file before rotation. Defaults to 10MB.
        backup_count: Number of backup files to keep. Defaults to 5.
        level: Log level (DEBUG, INFO, WARNING, ERROR). Defaults to INFO.
               Can be overridden with PIPEGIT_LOG_LEVEL environment variable.
        console: Whether to also log to console. Defaults to True.
        log_file_enabled: Whether to write the rotating log file. When False
                          only the console handler is installed and no
                          directory is created. Defaults to True.

    Returns:
        The root pipegit logger.
    """
    if level is None:
        level = os.environ.get("PIPEGIT_LOG_LEVEL", DEFAULT_LOG_LEVEL)
    log_level = getattr(logging, level.upper(), logging.INFO)

    logger = logging.getLogger("pipegit")
    logger.setLevel(log_level)

    # Remove existing handlers to avoid duplicates
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    secret_filter = SecretFilter()

    log_path: Path | None = None
    if log_file_enabled:
        if log_dir is None:
            log_dir = os.environ.get("PIPEGIT_LOG_DIR", DEFAULT_LOG_DIR)
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)

        log_path = log_dir / log_file
        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        file_handler.addFilter(secret_filter)
        logger.addHandler(file_handler)

    if console:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(log_level)
        console_handler.setFormatter(formatter)
        console_handler.addFilter(secret_filter)
        logger.addHandler(console_handler)

    logger.debug("pipegit logging initialized (level=%s, file=%s)", level, log_path)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger for a component.

    Args:
        name: Component name (e.g., 'git', 'shell').
              Will be prefixed with 'pipegit.'.

    Returns:
        Logger instance for the component.
    """
    if not name.startswith("pipegit."):
        name = f"pipegit.{name}"
    return logging.getLogger(name)


def truncate_output(output: str, max_length: int = 5000) -> str:
    """Truncate long output for logging.

    Args:
        output: The output string to truncate.
        max_length: Maximum length before truncation.

    Returns:
        Truncated string with indicator if truncated.
    """
    if len(output) <= max_length:
        return output
    return output[:max_length] + f"\n... [truncated, {len(output) - max_length} more chars]"


def register_secret(secret: str) -> None:
    """Mask a secret value in all subsequent log output."""
    if secret:
        _secrets[secret] += 1


def unregister_secret(secret: str) -> None:
    """Stop masking a secret once every registration of it is undone."""
    if _secrets[secret] <= 1:
        _secrets.pop(secret, None)
    else:
        _secrets[secret] -= 1


def sanitize_for_log(text: str) -> str:
    """Remove sensitive data from log output.

    Args:
        text: Text that may contain sensitive data.

    Returns:
        Sanitized text safe for logging.
    """
    patterns = [
        (r"ghp_[a-zA-Z0-9]{36}", "[GITHUB_TOKEN]"),  # GitHub PAT
        (r"gho_[a-zA-Z0-9]{36}", "[GITHUB_TOKEN]"),  # GitHub OAuth
        (r"github_pat_[a-zA-Z0-9_]{82}", "[GITHUB_TOKEN]"),  # Fine-grained PAT
        (r"Bearer [a-zA-Z0-9._-]+", f"Bearer {REDACTED}"),  # Bearer tokens
        (r"token=[a-zA-Z0-9._-]+", f"token={REDACTED}"),  # Query param tokens
        (r"password=[^\s;'\"]+", f"password={REDACTED}"),  # credential helper output
        (r"(https?://[^/\s:@]+):[^@\s/]+@", rf"\1:{REDACTED}@"),  # user:pass@host URLs
    ]

    result = text
    # Longest first so a secret containing another is masked whole
    for secret in sorted(_secrets, key=len, reverse=True):
        result = result.replace(secret, REDACTED)
    for pat, replacement in patterns:
        result = re.sub(pat, replacement, result)

    return result


class SecretFilter(logging.Filter):
    """Logging filter that sanitizes every record before it is emitted."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.msg = sanitize_for_log(record.getMessage())
        record.args = None
        return True

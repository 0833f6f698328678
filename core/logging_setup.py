"""Logging configuration for conformance runs.

Two handlers are attached to the root logger:

1. **Console** -- :class:`SafeStreamHandler`.  Link labels on the faucet
   pages carry emoji (``💰``, ``🌐``), and check names quote them, so a
   narrow Windows code page must degrade them instead of crashing.
2. **File** -- :class:`CompressedRotatingFileHandler`.  Its location and
   rotation limits come from :class:`~core.config.ConformanceSettings`
   (``log_file``, ``log_max_bytes``, ``log_backups``); by default it writes
   ``logs/conformance.log`` under the project root and keeps five
   gzip-compressed 10 MiB generations.

Usage::

    from core.config import ConformanceSettings
    from core.logging_setup import setup_logging_from_settings

    setup_logging_from_settings(ConformanceSettings())
"""

import gzip
import io
import logging
import os
import shutil
import sys
from logging.handlers import RotatingFileHandler
from typing import List, Optional

from core.config import LOGS_DIR, ConformanceSettings

LOG_FORMAT = '%(asctime)s [%(levelname)s] %(name)s - %(message)s'
DEFAULT_LOG_PATH = str(LOGS_DIR / "conformance.log")
MAX_LOG_BYTES = 10 * 1024 * 1024
LOG_BACKUPS = 5


class CompressedRotatingFileHandler(RotatingFileHandler):
    """RotatingFileHandler that gzip-compresses rotated log files.

    A CI job that runs the suite on every deploy keeps appending to the
    same log; rotated generations are stored as ``.gz`` archives so the
    history stays small enough to upload as a build artifact.
    """

    def rotation_filename(self, default_name: str) -> str:
        """Append ``.gz`` to the rotated file name.

        Args:
            default_name: Rotation path chosen by
                :class:`~logging.handlers.RotatingFileHandler`.

        Returns:
            The same path with a ``.gz`` suffix.
        """
        return f"{default_name}.gz"

    def rotate(self, source: str, dest: str) -> None:
        """Compress *source* into *dest* and remove *source*.

        Args:
            source: Path of the log file being rotated out.
            dest: Compressed archive path (already ``.gz``-suffixed).
        """
        with open(source, 'rb') as f_in:
            with gzip.open(dest, 'wb') as f_out:
                shutil.copyfileobj(f_in, f_out)
        os.remove(source)


class SafeStreamHandler(logging.StreamHandler):
    """StreamHandler that never loses a record to a console encoding error.

    On Windows a :exc:`UnicodeEncodeError` while writing is retried with
    the message re-encoded to ``cp1252`` using replacement characters, so
    a check name containing an emoji still reaches the console as
    ``? Mainnet`` rather than disappearing.  Other platforms write the
    record unchanged.
    """

    def emit(self, record: logging.LogRecord) -> None:
        """Format and write *record*, degrading unencodable characters.

        Args:
            record: The log record to emit.
        """
        try:
            msg = self.format(record)
            stream = self.stream
            if sys.platform == "win32":
                try:
                    stream.write(msg + self.terminator)
                except UnicodeEncodeError:
                    safe_msg = msg.encode(
                        'cp1252', errors='replace',
                    ).decode('cp1252')
                    stream.write(safe_msg + self.terminator)
            else:
                stream.write(msg + self.terminator)
            self.flush()
        except Exception:
            self.handleError(record)


def _force_utf8_console() -> None:
    # Must run before the stream handler captures sys.stdout
    try:
        if hasattr(sys.stdout, 'reconfigure'):
            sys.stdout.reconfigure(encoding='utf-8', errors='replace')
            sys.stderr.reconfigure(encoding='utf-8', errors='replace')
        else:
            sys.stdout = io.TextIOWrapper(
                sys.stdout.buffer, encoding='utf-8',
                errors='replace', line_buffering=True,
            )
            sys.stderr = io.TextIOWrapper(
                sys.stderr.buffer, encoding='utf-8',
                errors='replace', line_buffering=True,
            )
    except (AttributeError, OSError, ValueError):
        os.environ['PYTHONIOENCODING'] = 'utf-8:replace'


def setup_logging(
    log_level: str = "INFO",
    log_path: Optional[str] = DEFAULT_LOG_PATH,
    max_bytes: int = MAX_LOG_BYTES,
    backups: int = LOG_BACKUPS,
) -> None:
    """Configure the root logger for a conformance run.

    Any handlers left by an earlier call are replaced, so running the
    suite twice in one process does not duplicate output.  On Windows the
    console streams are first switched to UTF-8 with replacement.

    Args:
        log_level: Level name such as ``"DEBUG"`` or ``"WARNING"``
            (case-insensitive).  Unknown names fall back to ``INFO``.
        log_path: Rotating log file location; missing parent directories
            are created.  ``None`` or ``""`` logs to the console only.
        max_bytes: Size at which the log file is rotated.
        backups: Number of compressed generations to keep.
    """
    if sys.platform == "win32":
        _force_utf8_console()

    level = getattr(logging, log_level.upper(), logging.INFO)

    handlers: List[logging.Handler] = [SafeStreamHandler(sys.stdout)]
    if log_path:
        directory = os.path.dirname(log_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        handlers.insert(0, CompressedRotatingFileHandler(
            log_path,
            maxBytes=max_bytes,
            backupCount=backups,
            encoding='utf-8',
        ))

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )


def setup_logging_from_settings(settings: ConformanceSettings) -> None:
    """Configure logging from the ``log_*`` fields of *settings*."""
    setup_logging(
        settings.log_level,
        log_path=settings.log_file,
        max_bytes=settings.log_max_bytes,
        backups=settings.log_backups,
    )

"""
Main entry point for the backup verifier.

This module handles:
- Command line argument parsing
- Settings file loading
- Logging configuration
- Running the verification
- Report output and exit status
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, List, TextIO

from backupverify import __version__
from backupverify.core.models import ConfigError, Summary, VerifyOptions
from backupverify.core.verify.comparator import TreeComparator
from backupverify.services.report import ReportRenderer
from backupverify.services.settings import SettingsManager, VerifySettings


# =============================================================================
# Constants
# =============================================================================

APP_NAME = "backup-verify"
APP_VERSION = __version__

# Exit status
EXIT_OK = 0
EXIT_DIFFERENCES = 1      # Threshold exceeded or run cancelled
EXIT_CONFIG_ERROR = 2     # Same status argparse uses for usage errors
EXIT_INTERRUPTED = 130


# =============================================================================
# Data Classes
# =============================================================================

@dataclass
class CommandLineArgs:
    """Parsed command line arguments."""
    original_dir: str = ""
    backup_dir: str = ""
    verbose: bool = False
    machine_readable: bool = False
    follow_symlinks: Optional[bool] = None
    one_filesystem: Optional[bool] = None
    count_unmatched: Optional[bool] = None
    ignore_dirs: list[str] = field(default_factory=list)
    samples: Optional[str] = None
    max_diff_percent: Optional[float] = None
    config_file: Optional[str] = None
    log_file: Optional[str] = None


# =============================================================================
# Logging Setup
# =============================================================================

class LogFormatter(logging.Formatter):
    """Log formatter with optional colors for console output."""

    COLORS = {
        logging.DEBUG: '\033[36m',     # Cyan
        logging.WARNING: '\033[33m',   # Yellow
        logging.ERROR: '\033[31m',     # Red
        logging.CRITICAL: '\033[35m',  # Magenta
    }
    RESET = '\033[0m'

    CONSOLE_FORMAT = '%(message)s'
    FILE_FORMAT = '%(asctime)s | %(levelname)-8s | %(name)s | %(message)s'

    def __init__(self, fmt: str = FILE_FORMAT, use_colors: bool = False, stream: Optional[TextIO] = None):
        super().__init__(fmt=fmt, datefmt='%Y-%m-%d %H:%M:%S')
        self.use_colors = use_colors and stream is not None and stream.isatty()

    def format(self, record: logging.LogRecord) -> str:
        formatted = super().format(record)

        if self.use_colors:
            color = self.COLORS.get(record.levelno, '')
            if color:
                return f"{color}{formatted}{self.RESET}"

        return formatted


_installed_handlers: list[logging.Handler] = []


def setup_logging(
    level: str = "INFO",
    log_file: Optional[Path] = None,
    stream: Optional[TextIO] = None
) -> logging.Logger:
    """
    Configure application logging.

    Per-item lines go to the console as bare messages so their prefix
    (DIR, FILE, SKIP, ...) starts the line.

    Args:
        level: Log level string
        log_file: Optional file path for logging
        stream: Console stream (defaults to stdout)

    Returns:
        Root logger instance
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    stream = stream or sys.stdout

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    # Remove handlers from a previous call
    while _installed_handlers:
        handler = _installed_handlers.pop()
        root_logger.removeHandler(handler)
        handler.close()

    # Console handler
    console_handler = logging.StreamHandler(stream)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(LogFormatter(LogFormatter.CONSOLE_FORMAT, use_colors=True, stream=stream))
    root_logger.addHandler(console_handler)
    _installed_handlers.append(console_handler)

    # File handler
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(
            log_file,
            encoding='utf-8'
        )
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(LogFormatter(LogFormatter.FILE_FORMAT))
        root_logger.addHandler(file_handler)
        _installed_handlers.append(file_handler)

    return root_logger


# =============================================================================
# Command Line Parsing
# =============================================================================

def parse_arguments(args: Optional[List[str]] = None) -> CommandLineArgs:
    """
    Parse command line arguments.

    Args:
        args: Arguments to parse (defaults to sys.argv)

    Returns:
        Parsed arguments
    """
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description=(
            "Compares two directories recursively and reports everything in "
            "<orig_dir> that is missing from or different in <backup_dir>. "
            "Files are compared by size and optionally by a random sample of "
            "their contents. Extra files in the backup are ignored."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Output prefixes:
  DIR      Directory in original missing from backup
  FILE     File in original missing from, or different in, backup
  SKIP     Directory skipped (--ignore or symlink loop)
  SYMMIS   Symlink mismatch
  SYMLINK  Symlink to directory skipped (no --follow)
  DIFFS    Directory on a different filesystem skipped (--one-filesystem)
  ERROR    Error reading file or directory
  DEBUG    Details shown with --verbose

Examples:
  %(prog)s /home /mnt/backup/home
  %(prog)s -x -s 20 -i .cache /srv /mnt/backup/srv
  %(prog)s -m --max-diff 1.5 /data /mnt/backup/data
        """
    )

    # Positional arguments
    parser.add_argument('orig_dir', help='Original directory')
    parser.add_argument('backup_dir', help='Backup directory to verify')

    # Output
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Print what is being done'
    )
    parser.add_argument(
        '-m', '--machine',
        action='store_true',
        help='Output summary in machine-readable format'
    )

    # Traversal
    parser.add_argument(
        '-f', '--follow',
        dest='follow',
        action='store_true',
        default=None,
        help='Follow symlinks to directories'
    )
    parser.add_argument(
        '--no-follow',
        dest='follow',
        action='store_false',
        help='Do not follow symlinks (default)'
    )
    parser.add_argument(
        '-x', '--one-filesystem',
        action='store_true',
        default=None,
        help='Stay on one file system (in <orig_dir>)'
    )
    parser.add_argument(
        '-c', '--count',
        dest='count',
        action='store_true',
        default=None,
        help='Count files in unmatched directories (default)'
    )
    parser.add_argument(
        '--no-count',
        dest='count',
        action='store_false',
        help='Count an unmatched directory as a single item'
    )
    parser.add_argument(
        '-i', '--ignore',
        metavar='DIR',
        action='append',
        default=[],
        help="Don't process DIR (name, relative path or wildcard; repeatable)"
    )
    parser.add_argument(
        '-s', '--samples',
        metavar='COUNT',
        help='Comparison sample count [default: 0]'
    )

    # Health check
    parser.add_argument(
        '--max-diff',
        metavar='PERCENT',
        type=float,
        help='Exit with status 1 if the difference percentage exceeds PERCENT'
    )

    # Configuration
    parser.add_argument(
        '--config',
        metavar='PATH',
        help='Settings file path'
    )
    parser.add_argument(
        '--log-file',
        metavar='PATH',
        help='Also write log lines to PATH'
    )

    # Version
    parser.add_argument(
        '--version',
        action='version',
        version=f'{APP_NAME} {APP_VERSION}'
    )

    parsed = parser.parse_args(args)

    return CommandLineArgs(
        original_dir=parsed.orig_dir,
        backup_dir=parsed.backup_dir,
        verbose=parsed.verbose,
        machine_readable=parsed.machine,
        follow_symlinks=parsed.follow,
        one_filesystem=parsed.one_filesystem,
        count_unmatched=parsed.count,
        ignore_dirs=parsed.ignore,
        samples=parsed.samples,
        max_diff_percent=parsed.max_diff,
        config_file=parsed.config,
        log_file=parsed.log_file,
    )


# =============================================================================
# Option Resolution
# =============================================================================

def build_options(args: CommandLineArgs, settings: VerifySettings) -> VerifyOptions:
    """
    Merge command line arguments over settings file values.

    Raises:
        ConfigError: If the sample count is not a valid number
    """
    sample_count = settings.sample_count
    if args.samples is not None:
        try:
            sample_count = int(args.samples)
        except ValueError as e:
            raise ConfigError(f"The -s argument was bad: {args.samples!r}") from e

    def pick(cli_value: Optional[bool], settings_value: bool) -> bool:
        return settings_value if cli_value is None else cli_value

    options = VerifyOptions(
        verbose=args.verbose,
        one_filesystem=pick(args.one_filesystem, settings.one_filesystem),
        follow_symlinks=pick(args.follow_symlinks, settings.follow_symlinks),
        ignore_dirs=set(settings.ignore_dirs) | set(args.ignore_dirs),
        sample_count=sample_count,
        sample_width=settings.sample_width,
        machine_readable=args.machine_readable,
        count_unmatched=pick(args.count_unmatched, settings.count_unmatched),
    )
    options.validate()
    return options


def resolve_threshold(args: CommandLineArgs, settings: VerifySettings) -> Optional[float]:
    """Get the maximum allowed difference percentage, if any."""
    if args.max_diff_percent is not None:
        return args.max_diff_percent
    if settings.max_diff_percent is None:
        return None
    try:
        return float(settings.max_diff_percent)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid max_diff_percent in settings: {settings.max_diff_percent!r}") from e


def exit_status(summary: Summary, threshold: Optional[float]) -> int:
    """Map a finished run to the process exit status."""
    if summary.cancelled:
        return EXIT_DIFFERENCES
    if threshold is not None and summary.diff_percent > threshold:
        logging.warning(
            f"Difference {summary.diff_percent:.2f}% exceeds the allowed {threshold:.2f}%"
        )
        return EXIT_DIFFERENCES
    return EXIT_OK


# =============================================================================
# Main Function
# =============================================================================

def main(argv: Optional[List[str]] = None) -> int:
    """
    Application main entry point.

    Returns:
        Exit code (0 for success)
    """
    args = parse_arguments(argv)

    settings_path = Path(args.config_file) if args.config_file else None
    settings = SettingsManager(settings_path).settings

    log_file = args.log_file or settings.log_file
    setup_logging(
        "DEBUG" if args.verbose else "INFO",
        Path(log_file) if log_file else None,
        # Keep stdout for the summary record in machine mode
        sys.stderr if args.machine_readable else sys.stdout,
    )
    logging.debug(f"DEBUG Starting {APP_NAME} v{APP_VERSION}")

    try:
        options = build_options(args, settings)
        threshold = resolve_threshold(args, settings)
        summary = TreeComparator(options).compare(args.original_dir, args.backup_dir)
    except ConfigError as e:
        logging.error(f"ERROR {e}")
        return EXIT_CONFIG_ERROR
    except KeyboardInterrupt:
        logging.warning("Interrupted, no summary produced")
        return EXIT_INTERRUPTED

    print(ReportRenderer().render(summary, options.machine_readable))
    return exit_status(summary, threshold)


# =============================================================================
# Entry Point
# =============================================================================

def run() -> None:
    """Console script entry point."""
    sys.exit(main())


if __name__ == '__main__':
    run()

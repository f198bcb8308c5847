"""
Render context logger.

Provides the loguru setup for the service and logging helpers with an
automatic [render] prefix. Pipeline modules import from here rather than
configuring loguru themselves.
"""

import sys

from loguru import logger

from tex_service import config

CONTEXT_PREFIX = "[render]"

LEVEL_COLORS = {
    "WARNING": "<yellow>",
    "ERROR": "<red>",
    "CRITICAL": "<bold><red>",
}


def setup_logging(level: str = config.LOG_LEVEL) -> None:
    """
    Configure loguru for the service.

    Replaces the default handler with a single stderr sink. Safe to call more
    than once (each call starts from a clean handler list).

    Args:
        level: Minimum level for the console sink (e.g. "INFO", "DEBUG")
    """
    logger.remove()
    for level_name, color in LEVEL_COLORS.items():
        logger.level(level_name, color=color)
    logger.add(
        sys.stderr,
        format="{time:YYYY-MM-DD HH:mm:ss} | <level>{level: <7}</level> | <level>{message}</level>",
        level=level,
        colorize=True,
    )


def _log_info(message: str) -> None:
    """Log info message with [render] prefix."""
    logger.info(f"{CONTEXT_PREFIX} {message}")


def _log_success(message: str) -> None:
    """Log success message with [render] prefix."""
    logger.success(f"{CONTEXT_PREFIX} {message}")


def _log_error(message: str) -> None:
    """Log error message with [render] prefix."""
    logger.error(f"{CONTEXT_PREFIX} {message}")


def _log_warning(message: str) -> None:
    """Log warning message with [render] prefix."""
    logger.warning(f"{CONTEXT_PREFIX} {message}")


def _log_debug(message: str) -> None:
    """Log debug message with [render] prefix."""
    logger.debug(f"{CONTEXT_PREFIX} {message}")


def log_stage_start(kind: str, argv: list[str]) -> None:
    _log_info(f"Stage {kind}: starting")
    _log_debug(f"  Command: {' '.join(argv)}")


def log_stage_result(kind: str, result, outcome) -> None:
    """
    Log a finished stage and how it was classified.

    Args:
        kind: Stage kind label
        result: StageResult from the runner
        outcome: StageOutcome from the classifier
    """
    elapsed = f"{result.elapsed:.2f}s" if result.elapsed is not None else "n/a"
    label = type(outcome).__name__
    if label == "Success":
        _log_success(f"Stage {kind}: exit {result.returncode} ({elapsed})")
        return

    _log_error(f"Stage {kind}: {label} (exit {result.returncode}, {elapsed})")
    diagnostic = getattr(outcome, "diagnostic", None)
    if diagnostic is None and hasattr(outcome, "reason"):
        diagnostic = outcome.reason.value
    if diagnostic:
        _log_error(f"  {diagnostic}")

    # opt(raw=True) keeps multi-line tool output readable
    if result.stdout:
        logger.opt(raw=True).debug(f"\n{'=' * 80}\n{kind.upper()} STDOUT:\n{'=' * 80}\n{result.stdout}\n")
    if result.stderr:
        logger.opt(raw=True).debug(f"\n{'=' * 80}\n{kind.upper()} STDERR:\n{'=' * 80}\n{result.stderr}\n")

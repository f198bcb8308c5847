"""Classification of finished stages into Success / KnownFailure / UnknownFailure."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union

from .interfaces import StageResult
from .stages import expected_output
from .workspace import Workspace

# Lines of captured output kept in an UnknownFailure diagnostic
DIAGNOSTIC_TAIL_LINES = 20


class FailureReason(str, Enum):
    DIMENSION_TOO_LARGE = "dimension-too-large"
    TOO_LARGE = "too-large"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Success:
    pass


@dataclass(frozen=True)
class KnownFailure:
    reason: FailureReason


@dataclass(frozen=True)
class UnknownFailure:
    diagnostic: str


StageOutcome = Union[Success, KnownFailure, UnknownFailure]


@dataclass(frozen=True)
class MarkerRule:
    """A known failure mode recognised by a substring of the tool's stdout."""

    marker: str
    reason: FailureReason

    def matches(self, result: StageResult) -> bool:
        return self.marker in result.stdout


# TeX prints "! Dimension too large." when a box exceeds its internal limit,
# sometimes still exiting 0 with a degenerate or missing PDF.
DIMENSION_TOO_LARGE = MarkerRule("Dimension too large", FailureReason.DIMENSION_TOO_LARGE)

KNOWN_FAILURE_RULES: tuple[MarkerRule, ...] = (DIMENSION_TOO_LARGE,)


def _tail(text: str, lines: int = DIAGNOSTIC_TAIL_LINES) -> str:
    return "\n".join(text.strip().splitlines()[-lines:])


def _describe_failure(result: StageResult, output_present: bool, output_name: str) -> str:
    if result.timed_out:
        parts = [f"timed out after {result.elapsed:.1f}s" if result.elapsed is not None else "timed out"]
    elif result.returncode != 0:
        parts = [f"exit status {result.returncode}"]
    else:
        parts = ["exit status 0"]
    if not output_present:
        parts.append(f"{output_name} not produced")
    detail = _tail(result.stderr) or _tail(result.stdout)
    summary = ", ".join(parts)
    return f"{summary}\n{detail}" if detail else summary


def classify(
    kind: str,
    result: StageResult,
    workspace: Workspace,
    rules: tuple[MarkerRule, ...] = KNOWN_FAILURE_RULES,
) -> StageOutcome:
    """Classify a finished stage.

    Known markers win over everything else; otherwise a stage succeeded only if
    it exited cleanly AND produced its declared output file.
    """
    for rule in rules:
        if rule.matches(result):
            return KnownFailure(rule.reason)

    output = expected_output(kind, workspace)
    output_present = output.is_file()
    if not result.exited_cleanly or not output_present:
        return UnknownFailure(_describe_failure(result, output_present, output.name))
    return Success()

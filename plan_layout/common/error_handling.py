"""
Centralized error handling for the layout engine and PDF service.

Hard failures are exceptions; they abort the generation request and
no partial document is produced. Conditions the paginator resolves by
policy (an oversized block, an empty block list) are LayoutIssue records
gathered by an IssueCollector and only logged.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional


class LayoutError(Exception):
    """Base class for all generation failures."""


class MeasurementUnavailable(LayoutError):
    """
    The measurement surface could not be initialized or failed mid-measure.

    Fatal to the current generation request. Retrying belongs to the caller.
    """


class GenerationAborted(LayoutError):
    """The generation request was cancelled or timed out between render steps."""


class PdfExportError(LayoutError):
    """The rendering surface failed to produce a PDF artifact."""


class DeliveryError(LayoutError):
    """The finished artifact could not be dispatched to the webhook."""


# Issue kinds
OVERSIZED_BLOCK = "oversized_block"
OVERSIZED_NOTE = "oversized_note"
EMPTY_INPUT = "empty_input"


@dataclass(frozen=True)
class LayoutIssue:
    """
    Non-fatal layout condition handled by a documented policy.
    """

    kind: str  # oversized_block, oversized_note, empty_input
    message: str
    page_index: Optional[int] = None
    block_index: Optional[int] = None
    measured_height: Optional[float] = None
    budget: Optional[float] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "kind": self.kind,
            "message": self.message,
            "page_index": self.page_index,
            "block_index": self.block_index,
            "measured_height": self.measured_height,
            "budget": self.budget,
        }


class IssueCollector:
    """
    Collects layout issues during one generation request.
    """

    def __init__(self):
        self.issues: List[LayoutIssue] = []

    def add(self, issue: LayoutIssue) -> None:
        self.issues.append(issue)

    def extend(self, issues) -> None:
        self.issues.extend(issues)

    def has_oversized_content(self) -> bool:
        return any(i.kind in (OVERSIZED_BLOCK, OVERSIZED_NOTE) for i in self.issues)

    def summary(self) -> Dict[str, int]:
        """Count issues by kind."""
        by_kind: Dict[str, int] = {}
        for issue in self.issues:
            by_kind[issue.kind] = by_kind.get(issue.kind, 0) + 1
        return {"total": len(self.issues), **by_kind}


def log_on_exception(
    logger: logging.Logger,
    operation: str,
    level: int = logging.WARNING,
    include_traceback: bool = False,
):
    """
    Context manager for logging exceptions without swallowing them silently.

    Usage:
        with log_on_exception(logger, "Chromium launch", level=logging.ERROR):
            browser = playwright.chromium.launch()

    Args:
        logger: Logger instance to use
        operation: Operation description for the log message
        level: Log level (default: WARNING)
        include_traceback: Whether to include stack trace in log
    """

    class ExceptionLogger:
        def __enter__(self):
            return self

        def __exit__(self, exc_type, exc_val, exc_tb):
            if exc_val is not None:
                if include_traceback:
                    logger.log(level, f"[{operation}] Failed: {exc_val}", exc_info=True)
                else:
                    logger.log(level, f"[{operation}] Failed: {exc_val}")
            # Return False to not suppress the exception
            return False

    return ExceptionLogger()

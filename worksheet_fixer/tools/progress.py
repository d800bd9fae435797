"""Progress reporting shared by the validator and the repair orchestrator."""
import logging
from typing import Callable, Optional

from worksheet_fixer.models.outcome import ProgressLevel, ValidationState

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, ProgressLevel], None]

_LOG_LEVELS = {
    "info": logging.INFO,
    "success": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


class ProgressReporter:
    """Logs each message and forwards it to the caller's callback, if any."""

    def __init__(self, callback: Optional[ProgressCallback] = None):
        self._callback = callback

    def __call__(self, message: str, level: ProgressLevel = "info") -> None:
        logger.log(_LOG_LEVELS[level], message)
        if self._callback is not None:
            self._callback(message, level)

    def warn(self, state: ValidationState, message: str) -> None:
        """Record a recoverable inconsistency: one warning entry per finding."""
        state.warnings.append(message)
        self(message, "warning")

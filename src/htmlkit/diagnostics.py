"""Reporting composition failures inline and through reporters."""

import difflib
import logging
import threading
from abc import ABC, abstractmethod
from typing import Iterable, List

from .errors import CompositionError

logger = logging.getLogger(__name__)


def placeholder(error: CompositionError) -> str:
    """Render an error as an HTML comment placed where the failure occurred."""
    message = f"{error.code} {error.message}"
    if error.suggestions:
        message = f"{message} ({'; '.join(error.suggestions)})"
    # "--" would terminate the comment early
    message = message.replace("--", "- -")
    return f"<!-- [htmlkit] {message} -->"


def suggest(name: str, candidates: Iterable[str], limit: int = 3) -> List[str]:
    """Find known template names close to a missing one."""
    return difflib.get_close_matches(name, list(candidates), n=limit, cutoff=0.6)


class DiagnosticsReporter(ABC):
    """Receives every composition error raised during a render."""

    @abstractmethod
    def report(self, error: CompositionError) -> None:
        """Handle a reported error."""
        pass


class LoggingReporter(DiagnosticsReporter):
    """Send diagnostics to the ``htmlkit`` logger."""

    def report(self, error: CompositionError) -> None:
        if error.severity == "warning":
            logger.warning(f"{error.code} {error.message}")
        else:
            logger.error(f"{error.code} {error.message}")


class CollectingReporter(DiagnosticsReporter):
    """Keep diagnostics in memory, e.g. for tests or editor integrations."""

    def __init__(self) -> None:
        self._errors: List[CompositionError] = []
        self._lock = threading.Lock()

    def report(self, error: CompositionError) -> None:
        with self._lock:
            self._errors.append(error)

    @property
    def errors(self) -> List[CompositionError]:
        with self._lock:
            return list(self._errors)

    def codes(self) -> List[str]:
        return [error.code for error in self.errors]

    def clear(self) -> None:
        with self._lock:
            self._errors.clear()

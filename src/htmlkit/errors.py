"""Exception hierarchy for template composition failures."""

from enum import Enum
from typing import List, Optional, Sequence


class ErrorKind(str, Enum):
    """Failure categories carried by composition errors."""

    CYCLE = "cycle"
    DEPTH_EXCEEDED = "depth_exceeded"
    PATH_REJECTED = "path_rejected"
    NOT_FOUND = "not_found"
    MALFORMED = "malformed_directive"
    EXPRESSION = "expression"


class CompositionError(Exception):
    """Base exception for failures while composing a document.

    Every composition error carries a stable code, a kind, the logical path
    that was being processed and the severity used when it is reported.
    """

    code = "E0000"
    kind = ErrorKind.MALFORMED
    severity = "error"

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        suggestions: Optional[Sequence[str]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.path = path
        self.suggestions: List[str] = list(suggestions or [])

    def to_dict(self) -> dict:
        """Serialize the error for logs and machine-readable output."""
        return {
            "code": self.code,
            "kind": self.kind.value,
            "severity": self.severity,
            "message": self.message,
            "path": self.path,
            "suggestions": list(self.suggestions),
        }


class CycleError(CompositionError):
    """A layout or include chain revisits a path already on the stack."""

    kind = ErrorKind.CYCLE

    def __init__(self, chain: Sequence[str], scope: str = "include"):
        self.chain = list(chain)
        self.scope = scope
        self.code = "E1001" if scope == "layout" else "E1002"
        super().__init__(
            f"Circular {scope} detected: {' -> '.join(self.chain)}",
            path=self.chain[-1] if self.chain else None,
            suggestions=[f"Remove one of the {scope} references to break the cycle"],
        )


class DepthExceededError(CompositionError):
    """Nesting went past the configured maximum depth."""

    code = "E1003"
    kind = ErrorKind.DEPTH_EXCEEDED

    def __init__(self, path: str, depth: int, max_depth: int, scope: str = "include"):
        self.depth = depth
        self.max_depth = max_depth
        self.scope = scope
        super().__init__(
            f"{scope.capitalize()} nesting depth {depth} exceeds the maximum of "
            f"{max_depth} at {path}",
            path=path,
            suggestions=["Flatten the nesting or raise max_depth in the configuration"],
        )


class PathRejectedError(CompositionError):
    """A referenced path resolves outside of the partials root."""

    kind = ErrorKind.PATH_REJECTED

    def __init__(self, path: str, root: str, scope: str = "include"):
        self.scope = scope
        self.code = "E2001" if scope == "layout" else "E2002"
        super().__init__(
            f"{scope.capitalize()} path '{path}' resolves outside of {root}",
            path=path,
            suggestions=["Reference templates relative to the partials directory"],
        )


class TemplateNotFoundError(CompositionError):
    """A referenced layout or partial does not exist."""

    kind = ErrorKind.NOT_FOUND
    severity = "warning"

    def __init__(
        self,
        path: str,
        scope: str = "include",
        suggestions: Optional[Sequence[str]] = None,
    ):
        self.scope = scope
        self.code = "E3001" if scope == "layout" else "E3002"
        hints = [f"Did you mean '{name}'?" for name in suggestions or []]
        super().__init__(
            f"{scope.capitalize()} not found: {path}", path=path, suggestions=hints
        )


class MalformedDirectiveError(CompositionError):
    """A directive or tag could not be parsed."""

    code = "E4001"
    kind = ErrorKind.MALFORMED
    severity = "warning"


class ExpressionError(CompositionError):
    """An expression or template body failed to compile or evaluate."""

    kind = ErrorKind.EXPRESSION

    def __init__(self, message: str, path: Optional[str] = None, phase: str = "render"):
        self.phase = phase
        self.code = "E5001" if phase == "compile" else "E5002"
        super().__init__(message, path=path)

"""Per-render state and layered data contexts."""

import re
import secrets
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Optional, Set

from ..diagnostics import DiagnosticsReporter
from ..errors import CompositionError, CycleError, DepthExceededError


def layered(*layers: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Merge context layers, later layers winning on name collisions."""
    merged: Dict[str, Any] = {}
    for layer in layers:
        if layer:
            merged.update(layer)
    return merged


@dataclass
class RenderState:
    """Mutable state owned by exactly one top-level render.

    Holds the layout and include stacks used for cycle and depth detection,
    the keys of ``@once`` blocks already emitted, the diagnostics raised so
    far and the rendered partial output awaiting splicing. A fresh instance
    is created for every render.
    """

    entry_path: str
    max_depth: int = 50
    reporter: Optional[DiagnosticsReporter] = None
    layout_stack: List[str] = field(default_factory=list)
    include_stack: List[str] = field(default_factory=list)
    once_seen: Set[str] = field(default_factory=set)
    diagnostics: List[CompositionError] = field(default_factory=list)
    entry_outputs: List[str] = field(default_factory=list)
    _outputs: List[str] = field(default_factory=list, repr=False)
    _nonce: str = field(default_factory=lambda: secrets.token_hex(8), repr=False)

    @contextmanager
    def entering(self, scope: str, path: str) -> Iterator[int]:
        """Track a layout hop or include while its body is processed.

        Args:
            scope: ``"layout"`` or ``"include"``
            path: Logical path being entered

        Yields:
            Nesting depth of the entered template

        Raises:
            CycleError: If ``path`` is already on the stack
            DepthExceededError: If the nesting limit would be exceeded
        """
        stack = self.layout_stack if scope == "layout" else self.include_stack
        if path in stack:
            raise CycleError(stack + [path], scope=scope)

        # Layout hops count from 1; the include stack holds the entry itself.
        depth = len(stack) + 1 if scope == "layout" else len(stack)
        if depth > self.max_depth:
            raise DepthExceededError(path, depth, self.max_depth, scope=scope)

        stack.append(path)
        try:
            yield depth
        finally:
            stack.pop()

    def report(self, error: CompositionError) -> None:
        """Record an error and forward it to the reporter."""
        self.diagnostics.append(error)
        if self.reporter is not None:
            self.reporter.report(error)

    def stash(self, output: str) -> str:
        """Set rendered output aside and return a token standing in for it.

        The token is plain template data, so the output is never evaluated
        again by an enclosing render. Tokens embed a per-render nonce that
        data values cannot guess.
        """
        if not output:
            return ""
        self._outputs.append(output)
        return f"\x00hk:out:{self._nonce}:{len(self._outputs) - 1}\x00"

    def splice(self, text: str) -> str:
        """Replace stashed-output tokens with the output they stand for."""
        if not self._outputs:
            return text
        pattern = re.compile(r"\x00hk:out:" + self._nonce + r":(\d+)\x00")
        return pattern.sub(lambda match: self._outputs[int(match.group(1))], text)

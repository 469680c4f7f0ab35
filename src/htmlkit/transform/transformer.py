"""Directive transformer turning authoring syntax into engine syntax."""

import logging
from typing import Optional

from ..cache import FingerprintCache, fingerprint
from .passes import (
    escape_markers,
    guard_verbatim,
    restore_markers,
    restore_verbatim,
    rewrite_conditionals,
    rewrite_helpers,
    rewrite_include_directives,
    rewrite_loops,
    rewrite_stack_markers,
    rewrite_switch,
    strip_comments,
)

logger = logging.getLogger(__name__)


class DirectiveTransformer:
    """Rewrite ``@directives`` into engine syntax, memoizing by fingerprint.

    The transform is a pure function of the input text and the configured
    interpolation delimiters, so results are safe to share between renders.
    Transforming already transformed text returns it unchanged.
    """

    def __init__(
        self,
        cache: Optional[FingerprintCache] = None,
        variable_start: str = "{{",
        variable_end: str = "}}",
    ) -> None:
        """Initialize the transformer.

        Args:
            cache: Cache for transformed text; None disables caching
            variable_start: Opening interpolation delimiter
            variable_end: Closing interpolation delimiter
        """
        self.cache = cache
        self.variable_start = variable_start
        self.variable_end = variable_end
        if (variable_start, variable_end) == ("{{", "}}"):
            self._namespace = ""
        else:
            self._namespace = f"{variable_start}|{variable_end}"

    def transform(self, text: str) -> str:
        """Transform template text.

        Args:
            text: Raw template text

        Returns:
            Text in engine syntax
        """
        if "@" not in text and "{{--" not in text:
            return text

        key = fingerprint(text, self._namespace)
        if self.cache is not None:
            cached = self.cache.get(key)
            if cached is not None:
                return cached

        result = self._run_passes(text)

        if self.cache is not None:
            self.cache.set(key, result)
            logger.debug(f"Cached transform {key[:12]} ({len(text)} chars)")

        return result

    def _run_passes(self, text: str) -> str:
        text = strip_comments(text)
        text = escape_markers(text)
        text, regions = guard_verbatim(text)
        text = rewrite_conditionals(text)
        text = rewrite_switch(text)
        text = rewrite_loops(text)
        text = rewrite_helpers(text, self.variable_start, self.variable_end)
        text = rewrite_stack_markers(text)
        text = rewrite_include_directives(text)
        text = restore_verbatim(text, regions)
        return restore_markers(text)

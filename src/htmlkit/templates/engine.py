"""Sandboxed Jinja2 engine used to compile and render transformed templates."""

import logging
import threading
from typing import Any, Dict, Mapping, Optional

from jinja2 import (
    ChainableUndefined,
    Environment,
    Template,
    TemplateSyntaxError,
    sandbox,
    select_autoescape,
)

from ..errors import ExpressionError
from .helpers import register_helpers

logger = logging.getLogger(__name__)


class CompiledTemplate:
    """A compiled template bound to the logical path it came from."""

    def __init__(self, template: Template, path: Optional[str] = None) -> None:
        self.template = template
        self.path = path

    def render(self, context: Mapping[str, Any]) -> str:
        """Render with the given context.

        Raises:
            ExpressionError: If evaluation fails at runtime
        """
        try:
            return self.template.render(dict(context))
        except Exception as e:
            raise ExpressionError(
                f"Template rendering failed: {e}", path=self.path, phase="render"
            ) from e


class TemplateEngine:
    """Secure Jinja2 engine with htmlkit helpers registered.

    Undefined names render as empty text and chain through attribute access,
    so a missing ``user.name`` is falsy rather than an error.
    """

    def __init__(
        self,
        enable_sandbox: bool = True,
        cache_size: int = 128,
        variable_start_string: str = "{{",
        variable_end_string: str = "}}",
        trim_blocks: bool = False,
        lstrip_blocks: bool = False,
        keep_trailing_newline: bool = True,
    ) -> None:
        """Initialize the template engine.

        Args:
            enable_sandbox: Enable sandboxed environment for security
            cache_size: Size of compiled template cache
            variable_start_string: Opening interpolation delimiter
            variable_end_string: Closing interpolation delimiter
            trim_blocks: Remove first newline after block
            lstrip_blocks: Remove leading spaces/tabs from line start
            keep_trailing_newline: Keep trailing newline in templates
        """
        options: Dict[str, Any] = dict(
            trim_blocks=trim_blocks,
            lstrip_blocks=lstrip_blocks,
            keep_trailing_newline=keep_trailing_newline,
            cache_size=cache_size,
            variable_start_string=variable_start_string,
            variable_end_string=variable_end_string,
            undefined=ChainableUndefined,
            autoescape=select_autoescape(
                disabled_extensions=("txt",), default_for_string=False
            ),
        )

        if enable_sandbox:
            self.env = sandbox.SandboxedEnvironment(**options)
        else:
            self.env = Environment(**options)

        register_helpers(self.env)

        # Cache for compiled templates
        self._template_cache: Dict[str, Template] = {}
        self._lock = threading.Lock()
        self.cache_size = cache_size

    def compile(self, text: str, path: Optional[str] = None) -> CompiledTemplate:
        """Compile template text with caching.

        Args:
            text: Template text in engine syntax
            path: Logical path used in error reports

        Returns:
            Compiled template

        Raises:
            ExpressionError: If template syntax is invalid
        """
        with self._lock:
            cached = self._template_cache.get(text)
        if cached is not None:
            return CompiledTemplate(cached, path)

        try:
            template = self.env.from_string(text)
        except TemplateSyntaxError as e:
            raise ExpressionError(
                f"Invalid template syntax at line {e.lineno}: {e.message}",
                path=path,
                phase="compile",
            ) from e

        with self._lock:
            if self.cache_size > 0:
                if len(self._template_cache) >= self.cache_size:
                    # Remove oldest entry (simple FIFO)
                    oldest_key = next(iter(self._template_cache))
                    del self._template_cache[oldest_key]
                self._template_cache[text] = template

        return CompiledTemplate(template, path)

    def render(
        self, text: str, context: Mapping[str, Any], path: Optional[str] = None
    ) -> str:
        """Compile and render template text in one step."""
        return self.compile(text, path).render(context)

    def evaluate(
        self,
        expression: str,
        context: Mapping[str, Any],
        path: Optional[str] = None,
        undefined_to_none: bool = True,
    ) -> Any:
        """Evaluate a single expression against a context.

        Args:
            expression: Expression without delimiters, e.g. ``user.name``
            context: Variables visible to the expression
            path: Logical path used in error reports
            undefined_to_none: Return None for undefined results instead of
                an undefined value that renders as empty text

        Returns:
            The native value of the expression

        Raises:
            ExpressionError: If the expression cannot be parsed or evaluated
        """
        try:
            compiled = self.env.compile_expression(
                expression, undefined_to_none=undefined_to_none
            )
        except TemplateSyntaxError as e:
            raise ExpressionError(
                f"Invalid expression '{expression}': {e.message}",
                path=path,
                phase="compile",
            ) from e

        try:
            return compiled(dict(context))
        except Exception as e:
            raise ExpressionError(
                f"Failed to evaluate '{expression}': {e}", path=path, phase="render"
            ) from e

    def clear_cache(self) -> None:
        """Drop compiled templates."""
        with self._lock:
            self._template_cache.clear()
        logger.debug("Cleared compiled template cache")

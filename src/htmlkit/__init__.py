"""htmlkit - Blade-style directive templates compiled to sandboxed Jinja2."""

__version__ = "0.1.0"

from .cache import FingerprintCache
from .compose import DirectorySource, MemorySource, TemplateSource
from .config import KitConfig, load_config
from .diagnostics import CollectingReporter, DiagnosticsReporter, LoggingReporter
from .errors import (
    CompositionError,
    CycleError,
    DepthExceededError,
    ExpressionError,
    MalformedDirectiveError,
    PathRejectedError,
    TemplateNotFoundError,
)
from .renderer import BatchRenderer, HtmlKit, RenderResult

__all__ = [
    "BatchRenderer",
    "CollectingReporter",
    "CompositionError",
    "CycleError",
    "DepthExceededError",
    "DiagnosticsReporter",
    "DirectorySource",
    "ExpressionError",
    "FingerprintCache",
    "HtmlKit",
    "KitConfig",
    "LoggingReporter",
    "MalformedDirectiveError",
    "MemorySource",
    "PathRejectedError",
    "RenderResult",
    "TemplateNotFoundError",
    "TemplateSource",
    "load_config",
]

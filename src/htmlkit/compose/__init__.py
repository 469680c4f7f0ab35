"""Composition of layouts, partials, slots and stacks."""

from .context import RenderState, layered
from .includes import IncludeResolver
from .layout import LayoutResolver
from .sources import DirectorySource, MemorySource, TemplateSource
from .stacks import ContentCollector

__all__ = [
    "ContentCollector",
    "DirectorySource",
    "IncludeResolver",
    "LayoutResolver",
    "MemorySource",
    "RenderState",
    "TemplateSource",
    "layered",
]

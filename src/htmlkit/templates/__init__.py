"""Template engine and built-in helpers."""

from .engine import CompiledTemplate, TemplateEngine
from .helpers import class_list, register_helpers, to_json
from .loop import LoopMetadata, iterate

__all__ = [
    "CompiledTemplate",
    "LoopMetadata",
    "TemplateEngine",
    "class_list",
    "iterate",
    "register_helpers",
    "to_json",
]

"""Directive transformation for htmlkit templates."""

from .passes import protect
from .scanner import Directive, iter_directives, split_arguments
from .transformer import DirectiveTransformer

__all__ = [
    "Directive",
    "DirectiveTransformer",
    "iter_directives",
    "protect",
    "split_arguments",
]

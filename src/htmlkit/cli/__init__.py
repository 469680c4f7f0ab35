"""Command-line interface for htmlkit."""

from .main import htmlkit

__all__ = ["htmlkit"]

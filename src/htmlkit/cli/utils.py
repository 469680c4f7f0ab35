"""Utility functions for the htmlkit CLI."""

from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence

from rich.markup import escape
from rich.table import Table

from ..config import KitConfig, config_from_mapping, deep_merge, load_config, load_data_file
from ..errors import CompositionError
from ..renderer import RenderResult

SEVERITY_STYLES = {"error": "red", "warning": "yellow"}

DIRECTIVE_REFERENCE = [
    ("@if(expr) / @elseif(expr) / @else / @endif", "Conditional blocks"),
    ("@unless(expr) / @endunless", "Negated conditional"),
    ("@isset(expr) / @endisset", "Defined and not none"),
    ("@empty(expr) / @endempty", "Falsy or missing"),
    ("@switch(expr) / @case(v) / @break / @default / @endswitch", "Value switch"),
    ("@foreach(items as item) / @endforeach", "Loop with loop metadata"),
    ("@forelse(items as item) / @empty / @endforelse", "Loop with empty branch"),
    ("@json(expr[, pretty])", "JSON output"),
    ("@class([...])", "Conditional class attribute"),
    ("@extends('layout') / @section / @yield", "Layout inheritance"),
    ("@include('partial'[, data])", "Partial include"),
    ("@includeIf / @includeWhen / @includeUnless / @includeFirst", "Conditional includes"),
    ("<include src=\"...\"> @slot('name') ... @endslot </include>", "Includes with slots"),
    ("@push / @prepend / @stack('name')", "Content stacks"),
    ("@once ... @endonce", "Emit once per render"),
    ("@verbatim ... @endverbatim", "Literal region"),
    ("{{-- comment --}} / @@", "Comment and escaped @"),
]


def build_config(
    config_path: Optional[Path] = None,
    root: Optional[Path] = None,
    partials_dir: Optional[str] = None,
    data_files: Sequence[Path] = (),
    max_depth: Optional[int] = None,
) -> KitConfig:
    """Build configuration from a file plus command-line overrides.

    Args:
        config_path: Optional YAML configuration file
        root: Project root override
        partials_dir: Partials directory override
        data_files: Extra data files merged over configured data
        max_depth: Maximum nesting override

    Returns:
        Validated KitConfig
    """
    config = load_config(config_path) if config_path else config_from_mapping({})

    overrides: Dict[str, Any] = {}
    if root is not None:
        overrides["root"] = root
    if partials_dir is not None:
        overrides["partials_dir"] = partials_dir
    if max_depth is not None:
        overrides["max_depth"] = max_depth
    if overrides:
        config = config.model_copy(update=overrides)

    data = config.data
    for data_file in data_files:
        data = deep_merge(data, load_data_file(data_file))
    if data_files:
        config = config.model_copy(update={"data": data})

    return config


def collect_diagnostics(results: Iterable[RenderResult]) -> List[CompositionError]:
    diagnostics: List[CompositionError] = []
    for result in results:
        diagnostics.extend(result.diagnostics)
    return diagnostics


def format_diagnostics_table(
    diagnostics: Sequence[CompositionError], title: str = "Diagnostics"
) -> Table:
    """Create a table listing diagnostics.

    Args:
        diagnostics: Errors reported during rendering
        title: Table title

    Returns:
        Rich table
    """
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("Code", style="cyan", no_wrap=True)
    table.add_column("Severity", no_wrap=True)
    table.add_column("Path", style="green")
    table.add_column("Message")

    for error in diagnostics:
        style = SEVERITY_STYLES.get(error.severity, "white")
        message = escape(error.message)
        if error.suggestions:
            message = f"{message}\n[dim]{escape('; '.join(error.suggestions))}[/dim]"
        table.add_row(
            error.code,
            f"[{style}]{error.severity}[/{style}]",
            escape(error.path or "-"),
            message,
        )

    return table


def create_directive_table() -> Table:
    """Create a reference table of supported directives."""
    table = Table(title="Supported Directives", show_header=True, header_style="bold blue")
    table.add_column("Syntax", style="cyan")
    table.add_column("Purpose")

    for syntax, purpose in DIRECTIVE_REFERENCE:
        table.add_row(escape(syntax), purpose)

    return table

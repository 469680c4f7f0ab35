"""Shared pytest fixtures and configuration."""

from pathlib import Path
from typing import Callable, Dict, Optional

from pytest import fixture

from htmlkit import CollectingReporter, HtmlKit, KitConfig, MemorySource


@fixture
def make_kit() -> Callable[..., HtmlKit]:
    """Build a kit over in-memory templates with a collecting reporter.

    Keyword arguments are passed to ``KitConfig``.
    """

    def factory(templates: Optional[Dict[str, str]] = None, **config) -> HtmlKit:
        return HtmlKit(
            KitConfig(**config),
            source=MemorySource(templates or {}),
            reporter=CollectingReporter(),
        )

    return factory


@fixture
def render(make_kit):
    """Render a page over optional templates and return its text."""

    def _render(page: str, templates: Optional[Dict[str, str]] = None, **data) -> str:
        return make_kit(templates).render(page, data=data).text

    return _render


@fixture
def project(tmp_path: Path) -> Path:
    """A project directory with a partials folder on disk."""
    partials = tmp_path / "partials"
    (partials / "layouts").mkdir(parents=True)
    (partials / "layouts" / "base.html").write_text(
        "<html><head><title>@yield('title', 'Site')</title>@stack('head')</head>"
        "<body>@yield('content')</body></html>",
        encoding="utf-8",
    )
    (partials / "header.html").write_text("<h1>{{ title }}</h1>", encoding="utf-8")
    return tmp_path


@fixture
def write_file() -> Callable[[Path, str, str], Path]:
    """Write a file below a directory, creating parents."""

    def _write(directory: Path, name: str, content: str) -> Path:
        path = directory / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    return _write

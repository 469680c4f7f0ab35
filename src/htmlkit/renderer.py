"""High-level rendering entry points."""

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

from .cache import FingerprintCache, get_global_cache
from .compose import (
    ContentCollector,
    DirectorySource,
    IncludeResolver,
    LayoutResolver,
    RenderState,
    TemplateSource,
    layered,
)
from .config.models import KitConfig
from .diagnostics import DiagnosticsReporter, LoggingReporter, placeholder
from .errors import CompositionError, ExpressionError
from .templates.engine import TemplateEngine
from .transform import DirectiveTransformer

logger = logging.getLogger(__name__)


@dataclass
class RenderResult:
    """Output of a top-level render."""

    text: str
    path: str
    diagnostics: List[CompositionError] = field(default_factory=list)
    render_time: float = 0.0
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        """True when nothing at error severity was reported."""
        return not any(error.severity == "error" for error in self.diagnostics)


class HtmlKit:
    """Compose and render directive templates.

    Each call to :meth:`render` owns a fresh :class:`RenderState`, so one kit
    can serve concurrent renders; only the transform cache is shared.
    """

    def __init__(
        self,
        config: Optional[KitConfig] = None,
        source: Optional[TemplateSource] = None,
        engine: Optional[TemplateEngine] = None,
        cache: Optional[FingerprintCache] = None,
        reporter: Optional[DiagnosticsReporter] = None,
    ) -> None:
        """Initialize the kit.

        Args:
            config: Configuration (defaults to ``KitConfig()``)
            source: Where layouts and partials come from (defaults to the
                configured partials directory)
            engine: Template engine (built from the configuration if None)
            cache: Transform cache (built from the configuration if None)
            reporter: Receives every diagnostic (logs them if None)
        """
        self.config = config or KitConfig()
        delimiters = self.config.interpolation

        if cache is None:
            if self.config.cache.shared:
                cache = get_global_cache()
            else:
                cache = FingerprintCache(
                    max_entries=self.config.cache.max_entries,
                    ttl_seconds=self.config.cache.ttl_seconds,
                )
        self.cache = cache

        self.source = source or DirectorySource(self.config.partials_path)
        self.engine = engine or TemplateEngine(
            enable_sandbox=self.config.sandbox,
            variable_start_string=delimiters.start,
            variable_end_string=delimiters.end,
            trim_blocks=self.config.trim_blocks,
            lstrip_blocks=self.config.lstrip_blocks,
        )
        self.transformer = DirectiveTransformer(
            cache=self.cache, variable_start=delimiters.start, variable_end=delimiters.end
        )
        self.layouts = LayoutResolver(self.source, delimiters.start, delimiters.end)
        self.includes = IncludeResolver(
            self.source, self.transformer, self.engine, global_data=self.config.data
        )
        self.collector = ContentCollector()
        self.reporter = reporter or LoggingReporter()

    def render(
        self,
        text: str,
        path: str = "index.html",
        data: Optional[Mapping[str, Any]] = None,
    ) -> RenderResult:
        """Render a page.

        Never raises for composition or expression failures: they are
        reported, and the output carries an inline diagnostic. When the page
        itself fails to render, the output is the diagnostic followed by the
        page in authoring syntax with its include output in place.

        Args:
            text: Page text in authoring syntax
            path: Logical path of the page, used in diagnostics
            data: Page data, layered over the configured global data

        Returns:
            RenderResult with the final text and all diagnostics
        """
        start_time = time.time()
        state = RenderState(
            entry_path=path, max_depth=self.config.max_depth, reporter=self.reporter
        )
        context = layered(self.config.data, data)

        flattened = self.layouts.resolve(text, path, state)

        try:
            resolved = self.includes.resolve(flattened, context, path, state)
        except CompositionError as error:
            state.report(error)
            resolved = state.stash(placeholder(error)) + flattened

        try:
            output = self.engine.compile(resolved, path).render(context)
        except ExpressionError as error:
            state.report(error)
            output = placeholder(error) + self.includes.fallback(flattened, state)

        output = state.splice(output)
        output = self.collector.collect(output, state.once_seen)
        render_time = time.time() - start_time

        logger.info(
            f"Rendered {path} in {render_time:.3f}s "
            f"with {len(state.diagnostics)} diagnostic(s)"
        )
        if self.config.debug:
            logger.info(f"Transform cache: {self.cache.get_stats()}")

        return RenderResult(
            text=output,
            path=path,
            diagnostics=state.diagnostics,
            render_time=render_time,
            metadata={"once_keys": len(state.once_seen)},
        )

    def render_file(
        self, file_path: Union[str, Path], data: Optional[Mapping[str, Any]] = None
    ) -> RenderResult:
        """Read and render a page from disk."""
        page = Path(file_path)
        text = page.read_text(encoding="utf-8")
        return self.render(text, path=page.name, data=data)

    def invalidate(self) -> None:
        """Drop cached transforms and compiled templates."""
        self.cache.clear()
        self.engine.clear_cache()


class BatchRenderer:
    """Render many pages concurrently with a shared kit."""

    def __init__(self, kit: Optional[HtmlKit] = None, max_workers: int = 4) -> None:
        """Initialize the batch renderer.

        Args:
            kit: Kit to render with (creates new if None)
            max_workers: Maximum worker threads for parallel processing
        """
        self.kit = kit or HtmlKit()
        self.max_workers = max_workers

    def render_files(
        self,
        paths: Sequence[Union[str, Path]],
        data: Optional[Mapping[str, Any]] = None,
        progress_callback: Optional[Callable[[int], None]] = None,
    ) -> List[RenderResult]:
        """Render pages from disk, returning results in input order."""
        return self._run(
            [lambda p=p: self.kit.render_file(p, data) for p in paths], progress_callback
        )

    def render_pages(
        self,
        pages: Mapping[str, str],
        data: Optional[Mapping[str, Any]] = None,
        progress_callback: Optional[Callable[[int], None]] = None,
    ) -> List[RenderResult]:
        """Render in-memory pages keyed by logical path."""
        return self._run(
            [
                lambda name=name, text=text: self.kit.render(text, name, data)
                for name, text in pages.items()
            ],
            progress_callback,
        )

    def _run(
        self,
        jobs: List[Callable[[], RenderResult]],
        progress_callback: Optional[Callable[[int], None]],
    ) -> List[RenderResult]:
        results: List[Optional[RenderResult]] = [None] * len(jobs)

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            future_to_index = {executor.submit(job): i for i, job in enumerate(jobs)}

            for future in as_completed(future_to_index):
                results[future_to_index[future]] = future.result()
                if progress_callback:
                    progress_callback(1)

        return [result for result in results if result is not None]

import logging
from pathlib import Path
from typing import Optional, Tuple

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from .. import __version__
from ..renderer import BatchRenderer, HtmlKit
from .utils import (
    build_config,
    collect_diagnostics,
    create_directive_table,
    format_diagnostics_table,
)

console = Console()
err_console = Console(stderr=True)

config_option = click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="YAML configuration file",
)
root_option = click.option(
    "--root",
    type=click.Path(file_okay=False, path_type=Path),
    help="Project root directory",
)
partials_option = click.option(
    "--partials", "partials_dir", help="Partials directory, relative to the root"
)
data_option = click.option(
    "--data",
    "-d",
    "data_files",
    multiple=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="YAML or JSON data file (repeatable)",
)
depth_option = click.option("--max-depth", type=int, help="Maximum nesting depth")


@click.group()
@click.version_option(__version__, prog_name="htmlkit")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def htmlkit(verbose: bool) -> None:
    """htmlkit - Blade-style directive templates for static HTML."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


@htmlkit.command()
@click.argument("page", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@config_option
@root_option
@partials_option
@data_option
@depth_option
@click.option(
    "--output", "-o", type=click.Path(dir_okay=False, path_type=Path), help="Output file"
)
def render(
    page: Path,
    config_path: Optional[Path],
    root: Optional[Path],
    partials_dir: Optional[str],
    data_files: Tuple[Path, ...],
    max_depth: Optional[int],
    output: Optional[Path],
) -> None:
    """Render PAGE and print the result or write it to --output."""
    try:
        config = build_config(config_path, root, partials_dir, data_files, max_depth)
    except (OSError, ValueError) as e:
        err_console.print(f"[red]Error loading configuration: {escape(str(e))}[/red]")
        raise click.Abort()

    result = HtmlKit(config).render_file(page)

    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(result.text, encoding="utf-8")
        console.print(f"[green]✓ Rendered {page} -> {output}[/green]")
    else:
        click.echo(result.text, nl=False)

    if result.diagnostics:
        err_console.print(format_diagnostics_table(result.diagnostics))


@htmlkit.command()
@click.argument(
    "pages", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False, path_type=Path)
)
@config_option
@root_option
@partials_option
@data_option
@depth_option
@click.option("--workers", default=4, show_default=True, help="Parallel renders")
def check(
    pages: Tuple[Path, ...],
    config_path: Optional[Path],
    root: Optional[Path],
    partials_dir: Optional[str],
    data_files: Tuple[Path, ...],
    max_depth: Optional[int],
    workers: int,
) -> None:
    """Render PAGES and report diagnostics, exiting 1 if there are any."""
    try:
        config = build_config(config_path, root, partials_dir, data_files, max_depth)
    except (OSError, ValueError) as e:
        err_console.print(f"[red]Error loading configuration: {escape(str(e))}[/red]")
        raise click.Abort()

    renderer = BatchRenderer(HtmlKit(config), max_workers=workers)
    results = renderer.render_files(list(pages))
    diagnostics = collect_diagnostics(results)

    if not diagnostics:
        console.print(f"[green]✓ {len(results)} page(s) rendered without diagnostics[/green]")
        return

    console.print(format_diagnostics_table(diagnostics))
    flagged = [result.path for result in results if result.diagnostics]
    console.print(f"[red]✗ {len(diagnostics)} diagnostic(s) in: {', '.join(flagged)}[/red]")
    raise SystemExit(1)


@htmlkit.command()
def directives() -> None:
    """List the supported directive syntax."""
    console.print(create_directive_table())


if __name__ == "__main__":
    htmlkit()

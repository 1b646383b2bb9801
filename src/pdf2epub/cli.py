"""Main CLI application."""

import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from pdf2epub.core.errors import ConversionError
from pdf2epub.models.config import ConversionConfig

app = typer.Typer(
    name="pdf2epub",
    help="Convert PDF documents into reflowable EPUB books.",
    add_completion=False,
)

console = Console()


def setup_logging(verbose: bool) -> None:
    """Route library logging through rich."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


@app.callback()
def main(
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Show detailed log output",
        ),
    ] = False,
) -> None:
    """Convert PDF documents into reflowable EPUB books."""
    setup_logging(verbose)


@app.command()
def convert(
    pdf_path: Annotated[
        Path,
        typer.Argument(
            help="Path to the PDF file",
            exists=True,
            file_okay=True,
            dir_okay=False,
            resolve_path=True,
        ),
    ],
    output: Annotated[
        Optional[Path],
        typer.Option(
            "--output",
            "-o",
            help="Output EPUB path (default: {pdf_name}.epub next to the PDF)",
        ),
    ] = None,
    title: Annotated[
        Optional[str],
        typer.Option(
            "--title",
            help="Book title (default: PDF title or file name)",
        ),
    ] = None,
    author: Annotated[
        Optional[str],
        typer.Option(
            "--author",
            help="Book author (default: PDF author or 'Unknown')",
        ),
    ] = None,
    language: Annotated[
        str,
        typer.Option(
            "--language",
            "-l",
            help="Book language code",
        ),
    ] = "en",
    resolution: Annotated[
        int,
        typer.Option(
            "--resolution",
            "-r",
            help="Resolution (DPI) of the rendered page images",
            min=18,
        ),
    ] = 72,
    no_images: Annotated[
        bool,
        typer.Option(
            "--no-images",
            help="Do not include rendered page images",
        ),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Suppress progress output",
        ),
    ] = False,
) -> None:
    """Convert a PDF file into an EPUB book."""
    if pdf_path.suffix.lower() != ".pdf":
        console.print(f"[red]Unsupported file format: {pdf_path.suffix}[/]")
        console.print("[dim]Supported formats: .pdf[/]")
        raise typer.Exit(1)

    config = ConversionConfig(
        render_resolution=resolution,
        include_page_images=not no_images,
        title=title,
        author=author,
        language=language,
    )

    try:
        from pdf2epub.commands.convert import execute_convert

        epub_path = execute_convert(
            pdf_path=pdf_path,
            output_path=output,
            config=config,
            quiet=quiet,
            console=console,
        )
    except ConversionError as e:
        console.print(f"[red]Error: {e}[/]")
        raise typer.Exit(1)

    if quiet:
        console.print(str(epub_path))


@app.command()
def info(
    pdf_path: Annotated[
        Path,
        typer.Argument(
            help="Path to the PDF file",
            exists=True,
            file_okay=True,
            dir_okay=False,
            resolve_path=True,
        ),
    ],
    page: Annotated[
        Optional[int],
        typer.Option(
            "--page",
            "-p",
            help="Show the classified text blocks of this page (1-based)",
            min=1,
        ),
    ] = None,
) -> None:
    """Display PDF metadata and page classification."""
    try:
        from pdf2epub.commands.info import execute_info

        execute_info(
            pdf_path=pdf_path,
            page_number=page,
            config=ConversionConfig(),
            console=console,
        )
    except ConversionError as e:
        console.print(f"[red]Error reading file: {e}[/]")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()

"""Convert command implementation."""

import asyncio
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, TaskProgressColumn, TextColumn

from pdf2epub.core.pipeline import ConversionPipeline, convert_pdf_to_epub
from pdf2epub.models.config import ConversionConfig


def format_file_size(size_bytes: int) -> str:
    """Format file size in human-readable form."""
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    else:
        return f"{size_bytes / (1024 * 1024):.1f} MB"


def execute_convert(
    pdf_path: Path,
    output_path: Path | None,
    config: ConversionConfig,
    quiet: bool,
    console: Console,
) -> Path:
    """Execute the convert command. Returns the EPUB path."""
    if quiet:
        epub_path = convert_pdf_to_epub(pdf_path, output_path, config)
    else:
        with Progress(
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            console=console,
        ) as progress:
            task = progress.add_task(f"Converting {pdf_path.name}...", total=1.0)
            pipeline = ConversionPipeline(
                config=config,
                on_progress=lambda value: progress.update(task, completed=value),
            )
            epub_path = asyncio.run(pipeline.run(pdf_path, output_path))

        summary_lines = [
            "[green]Successfully created EPUB[/]",
            "",
            f"[dim]Title:[/] {pipeline.document.metadata.title}",
            f"[dim]Author:[/] {pipeline.document.metadata.author}",
            f"[dim]Pages:[/] {len(pipeline.document.registered_pages)}",
            f"[dim]Output:[/] {epub_path}",
            f"[dim]Size:[/] {format_file_size(epub_path.stat().st_size)}",
        ]
        if pipeline.skipped_pages:
            skipped = ", ".join(str(i + 1) for i in pipeline.skipped_pages)
            summary_lines.append("")
            summary_lines.append(f"[yellow]Skipped unreadable pages: {skipped}[/]")

        console.print()
        console.print(
            Panel(
                "\n".join(summary_lines),
                title="Complete",
                border_style="green",
            )
        )

    return epub_path

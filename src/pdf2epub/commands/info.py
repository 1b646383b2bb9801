"""Info command implementation."""

from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from pdf2epub.core.classifier import build_rules, classify_runs
from pdf2epub.core.merger import merge_runs
from pdf2epub.core.pdf_source import PdfSource, PlumberPdfSource
from pdf2epub.models.config import ConversionConfig
from pdf2epub.models.content import ContentRole

ROLE_STYLES = {
    ContentRole.TITLE: "bold magenta",
    ContentRole.AUTHOR: "magenta",
    ContentRole.HEADING: "bold cyan",
    ContentRole.PARAGRAPH: "white",
    ContentRole.FOOTER: "dim",
}


def execute_info(
    pdf_path: Path,
    page_number: int | None,
    config: ConversionConfig,
    console: Console,
    source: PdfSource | None = None,
) -> None:
    """Display PDF metadata and, optionally, the classified blocks of a page."""
    source = source or PlumberPdfSource(config.render_resolution)

    with source.open(pdf_path) as pdf:
        info = pdf.metadata()
        info_lines = [
            f"[bold]{info.get('title') or pdf_path.stem}[/]",
            "",
            f"[dim]Author:[/] {info.get('author') or 'Unknown'}",
            f"[dim]Pages:[/] {pdf.page_count}",
        ]

        console.print()
        console.print(
            Panel(
                "\n".join(info_lines),
                title="PDF Information",
                border_style="green",
            )
        )

        if page_number is None:
            return

        if not 1 <= page_number <= pdf.page_count:
            console.print(
                f"[red]Page {page_number} is out of range (1-{pdf.page_count})[/]"
            )
            return

        page = pdf.page(page_number - 1)
        if page is None:
            console.print(f"[yellow]Page {page_number} could not be read[/]")
            return

        rules = build_rules(config.thresholds)
        blocks = merge_runs(classify_runs(page.text_runs(), page.height, rules))

    console.print()
    table = Table(
        title=f"Page {page_number} Blocks", show_header=True, header_style="bold cyan"
    )
    table.add_column("#", style="dim", width=4)
    table.add_column("Role", width=10)
    table.add_column("Text", style="white")

    for i, block in enumerate(blocks):
        text = block.text if len(block.text) < 80 else block.text[:77] + "..."
        table.add_row(
            str(i + 1),
            f"[{ROLE_STYLES[block.role]}]{block.role.value}[/]",
            text,
        )

    if not blocks:
        console.print("[dim]No text content found on this page[/]")
    else:
        console.print(table)
    console.print()

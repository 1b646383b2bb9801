"""PDF to EPUB conversion pipeline: load, scaffold, process pages, package."""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from functools import partial
from pathlib import Path
from typing import Callable

from pdf2epub.core.classifier import build_rules, classify_runs
from pdf2epub.core.document import EpubDocument
from pdf2epub.core.errors import (
    ConversionError,
    ConversionInterrupted,
    DocumentLoadFailed,
    ImageWriteFailed,
    PageUnreadable,
)
from pdf2epub.core.merger import merge_runs
from pdf2epub.core.packer import pack_epub
from pdf2epub.core.pdf_source import (
    PdfDocument,
    PdfPage,
    PdfSource,
    PlumberPdfSource,
)
from pdf2epub.core.renderer import render_page
from pdf2epub.core.text import clean_metadata_value
from pdf2epub.core.workspace import WorkingTree
from pdf2epub.models.config import ConversionConfig
from pdf2epub.models.content import ImageAsset, PageArtifact
from pdf2epub.models.epub import EpubMetadata

log = logging.getLogger(__name__)

# Share of the progress range spent on pages; packaging takes the rest
PAGES_PROGRESS_SHARE = 0.8


class PipelineState(str, Enum):
    """Lifecycle of a conversion run."""

    IDLE = "idle"
    LOADING = "loading"
    SCAFFOLDING = "scaffolding"
    PROCESSING_PAGES = "processing_pages"
    PACKAGING = "packaging"
    DONE = "done"
    FAILED = "failed"


class ProgressReporter:
    """Forward progress to a sink, clamped to [0, 1] and never decreasing.

    `deliver` decides where the sink runs (for example
    `loop.call_soon_threadsafe`); by default it is called inline.
    """

    def __init__(
        self,
        sink: Callable[[float], None] | None = None,
        deliver: Callable[[Callable[[], None]], object] | None = None,
    ):
        self._sink = sink
        self._deliver = deliver
        self.value = 0.0

    def report(self, value: float) -> None:
        value = min(max(value, 0.0), 1.0)
        if value < self.value:
            return
        self.value = value
        if self._sink is None:
            return
        if self._deliver is not None:
            self._deliver(partial(self._sink, value))
        else:
            self._sink(value)


def default_output_path(pdf_path: Path, output_dir: Path | None = None) -> Path:
    """`{output_dir or pdf dir}/{pdf stem}.epub`"""
    directory = output_dir or pdf_path.parent
    return directory / f"{pdf_path.stem}.epub"


class ConversionPipeline:
    """Converts one PDF into one EPUB.

    Pages are processed strictly in order; only page rasterization runs in a
    worker thread. Unreadable pages and images that cannot be written are
    logged and skipped, every other failure is fatal.
    """

    def __init__(
        self,
        config: ConversionConfig | None = None,
        source: PdfSource | None = None,
        on_progress: Callable[[float], None] | None = None,
        check_interrupt: Callable[[], bool] | None = None,
        deliver_progress: Callable[[Callable[[], None]], object] | None = None,
    ):
        self.config = config or ConversionConfig()
        self.source = source or PlumberPdfSource(self.config.render_resolution)
        self.progress = ProgressReporter(on_progress, deliver_progress)
        self.check_interrupt = check_interrupt
        self.rules = build_rules(self.config.thresholds)

        self.state = PipelineState.IDLE
        self.current_page: int | None = None
        self.skipped_pages: list[int] = []
        self.document = EpubDocument()

    def _enter(self, state: PipelineState) -> None:
        log.debug(f"Pipeline state: {self.state.value} -> {state.value}")
        self.state = state

    async def run(self, pdf_path: Path, output_path: Path | None = None) -> Path:
        """Run the whole conversion and return the EPUB path."""
        if self.state != PipelineState.IDLE:
            raise ConversionError("A pipeline instance can only run once")

        pdf_path = Path(pdf_path)
        output_path = Path(output_path) if output_path else default_output_path(
            pdf_path, self.config.output_dir
        )
        log.info(f"Starting EPUB creation from PDF: {pdf_path.name}")

        tree: WorkingTree | None = None
        pdf: PdfDocument | None = None
        try:
            self._enter(PipelineState.LOADING)
            pdf = self.source.open(pdf_path)
            if pdf.page_count == 0:
                raise DocumentLoadFailed(f"PDF has no pages: {pdf_path.name}")

            self._enter(PipelineState.SCAFFOLDING)
            metadata = self._build_metadata(pdf, pdf_path)
            log.info(f"Created metadata with title: {metadata.title}")
            tree = WorkingTree.create()
            tree.scaffold()
            self.document.initialize(metadata)

            self._enter(PipelineState.PROCESSING_PAGES)
            await self._process_pages(pdf, tree)

            self._enter(PipelineState.PACKAGING)
            tree.write_package(self.document.serialize())
            result = pack_epub(tree.root, output_path)
            self.progress.report(1.0)

            self._enter(PipelineState.DONE)
            log.info(f"Successfully created EPUB at: {result}")
            return result
        except ConversionError as e:
            self._enter(PipelineState.FAILED)
            log.error(f"Conversion failed: {e}")
            raise
        except Exception as e:
            self._enter(PipelineState.FAILED)
            log.exception("Unexpected conversion failure")
            raise ConversionError(f"Conversion failed: {e}") from e
        finally:
            if pdf is not None:
                pdf.close()
            if tree is not None:
                tree.cleanup()

    def _build_metadata(self, pdf: PdfDocument, pdf_path: Path) -> EpubMetadata:
        info = pdf.metadata()
        title = clean_metadata_value(self.config.title or info.get("title"))
        author = clean_metadata_value(self.config.author or info.get("author"))
        return EpubMetadata.create(
            title=title or pdf_path.stem,
            author=author,
            language=self.config.language,
        )

    async def _process_pages(self, pdf: PdfDocument, tree: WorkingTree) -> None:
        total_pages = pdf.page_count
        log.info(f"Processing {total_pages} pages")

        for page_index in range(total_pages):
            if self.check_interrupt and self.check_interrupt():
                raise ConversionInterrupted(
                    f"Conversion cancelled before page {page_index + 1}"
                )

            self.current_page = page_index
            try:
                await self._process_page(pdf, page_index, tree)
            except PageUnreadable as e:
                log.warning(f"Skipping page: {e}")
                self.skipped_pages.append(page_index)

            self.progress.report(
                (page_index + 1) / total_pages * PAGES_PROGRESS_SHARE
            )

        self.current_page = None

    async def _process_page(
        self, pdf: PdfDocument, page_index: int, tree: WorkingTree
    ) -> None:
        """Classify, render, write and register one page."""
        log.info(f"Processing page {page_index + 1}/{pdf.page_count}")

        try:
            page = pdf.page(page_index)
            if page is None:
                raise PageUnreadable(page_index, "page could not be loaded")
            runs = page.text_runs()
            page_height = page.height
        except PageUnreadable:
            raise
        except Exception as e:
            raise PageUnreadable(page_index, str(e)) from e

        blocks = merge_runs(classify_runs(runs, page_height, self.rules))
        if not blocks:
            log.info(f"No text content found for page {page_index + 1}")

        images: list[ImageAsset] = []
        if self.config.include_page_images:
            file_name = ImageAsset.file_name_for(page_index, 0)
            try:
                images.append(await self._write_page_image(page, file_name, tree))
            except ImageWriteFailed as e:
                log.warning(f"Omitting image: {e}")

        artifact = PageArtifact(index=page_index, blocks=blocks, images=images)
        rendered = render_page(artifact)
        tree.write_content(artifact.file_name, rendered.markup)

        self.document.register_page(page_index, artifact.file_name, artifact.images)

    async def _write_page_image(
        self, page: PdfPage, file_name: str, tree: WorkingTree
    ) -> ImageAsset:
        try:
            data = await asyncio.to_thread(page.render_bitmap)
        except Exception as e:
            raise ImageWriteFailed(file_name, f"rendering failed: {e}") from e

        asset = ImageAsset(file_name=file_name, data=data)
        try:
            tree.write_content(asset.file_name, asset.data)
        except OSError as e:
            (tree.content_dir / file_name).unlink(missing_ok=True)
            raise ImageWriteFailed(file_name, str(e)) from e

        log.debug(f"Saved image: {file_name}")
        return asset


def convert_pdf_to_epub(
    pdf_path: Path,
    output_path: Path | None = None,
    config: ConversionConfig | None = None,
    on_progress: Callable[[float], None] | None = None,
    check_interrupt: Callable[[], bool] | None = None,
    source: PdfSource | None = None,
) -> Path:
    """Synchronous entry point around ConversionPipeline.run()."""
    pipeline = ConversionPipeline(
        config=config,
        source=source,
        on_progress=on_progress,
        check_interrupt=check_interrupt,
    )
    return asyncio.run(pipeline.run(pdf_path, output_path))

"""Shared fixtures: an in-memory PDF source and blank PDFs built with pypdf."""

from pathlib import Path

import pypdf
import pytest

from pdf2epub.core.errors import DocumentLoadFailed
from pdf2epub.core.pdf_source import PdfDocument, PdfPage, PdfSource
from pdf2epub.models.content import TextRun

# PNG signature plus filler; never decoded
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"page-bitmap" * 8


class FakePage(PdfPage):
    def __init__(
        self,
        runs: list[TextRun] | None = None,
        height: float = 792.0,
        bitmap: bytes | None = PNG_BYTES,
        fail_text: bool = False,
    ):
        self._runs = runs or []
        self._height = height
        self._bitmap = bitmap
        self._fail_text = fail_text

    @property
    def height(self) -> float:
        return self._height

    def text_runs(self) -> list[TextRun]:
        if self._fail_text:
            raise RuntimeError("broken content stream")
        return list(self._runs)

    def render_bitmap(self) -> bytes:
        if self._bitmap is None:
            raise RuntimeError("rasterizer failure")
        return self._bitmap


class FakeDocument(PdfDocument):
    def __init__(self, pages: list[FakePage | None], info: dict | None = None):
        self._pages = pages
        self._info = info or {}
        self.closed = False

    @property
    def page_count(self) -> int:
        return len(self._pages)

    def page(self, index: int) -> PdfPage | None:
        return self._pages[index]

    def metadata(self) -> dict[str, str]:
        return dict(self._info)

    def close(self) -> None:
        self.closed = True


class FakeSource(PdfSource):
    def __init__(self, document: FakeDocument | None):
        self.document = document

    def open(self, path: Path) -> PdfDocument:
        if self.document is None:
            raise DocumentLoadFailed(f"Cannot open {path}")
        return self.document


def paragraph_run(text: str, y: float = 100.0) -> TextRun:
    return TextRun(text=text, font_size=12, is_bold=False, position=(72.0, y))


@pytest.fixture
def make_source():
    def _make(pages, info=None):
        return FakeSource(FakeDocument(pages, info))

    return _make


@pytest.fixture
def three_page_source(make_source):
    pages = [FakePage([paragraph_run(f"Page {n} text")]) for n in (1, 2, 3)]
    return make_source(pages, {"title": "Three Pages", "author": "Tester"})


@pytest.fixture
def pdf_path(tmp_path: Path) -> Path:
    """Placeholder input path for fake sources."""
    path = tmp_path / "book.pdf"
    path.write_bytes(b"%PDF-1.4\n")
    return path


@pytest.fixture
def blank_pdf(tmp_path: Path) -> Path:
    """A real two-page PDF without text."""
    writer = pypdf.PdfWriter()
    writer.add_blank_page(width=612, height=792)
    writer.add_blank_page(width=612, height=792)
    writer.add_metadata({"/Title": "Blank Book", "/Author": "Nobody"})
    path = tmp_path / "blank.pdf"
    with open(path, "wb") as f:
        writer.write(f)
    return path

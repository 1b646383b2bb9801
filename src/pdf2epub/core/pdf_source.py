"""PDF access: collaborator interface plus the pdfplumber/pypdf adapter."""

import io
import logging
from abc import ABC, abstractmethod
from pathlib import Path

# Suppress warnings about malformed PDF object references from PDF libraries
logging.getLogger("pdfminer").setLevel(logging.ERROR)
logging.getLogger("pypdf").setLevel(logging.ERROR)

import pdfplumber
import pypdf
from pypdf.errors import EmptyFileError, FileNotDecryptedError, PdfReadError

from pdf2epub.core.errors import DocumentLoadFailed
from pdf2epub.core.text import clean_metadata_value
from pdf2epub.models.content import TextRun

log = logging.getLogger(__name__)

# Font name fragments that mark a bold face
BOLD_MARKERS = ("bold", "heavy", "black")

# Words whose tops differ by less than this sit on the same line
LINE_TOLERANCE = 3.0


# =============================================================================
# Collaborator Interface
# =============================================================================


class PdfPage(ABC):
    """One page of a source document."""

    @property
    @abstractmethod
    def height(self) -> float:
        """Page height in layout units."""
        pass

    @abstractmethod
    def text_runs(self) -> list[TextRun]:
        """Positioned, font-annotated text runs in reading order."""
        pass

    @abstractmethod
    def render_bitmap(self) -> bytes:
        """Rasterize the page and return PNG bytes."""
        pass


class PdfDocument(ABC):
    """An opened source document."""

    @property
    @abstractmethod
    def page_count(self) -> int:
        pass

    @abstractmethod
    def page(self, index: int) -> PdfPage | None:
        """Return the page at index, or None if it cannot be read."""
        pass

    @abstractmethod
    def metadata(self) -> dict[str, str]:
        """Document info: 'title' and 'author' when present."""
        pass

    def close(self) -> None:
        pass

    def __enter__(self) -> "PdfDocument":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


class PdfSource(ABC):
    """Opens source documents."""

    @abstractmethod
    def open(self, path: Path) -> PdfDocument:
        """Open a document. Raises DocumentLoadFailed."""
        pass


# =============================================================================
# pdfplumber / pypdf Adapter
# =============================================================================


def is_bold_font(fontname: str) -> bool:
    """Detect bold faces from the font name (e.g. 'ABCDEF+Helvetica-Bold')."""
    name = fontname.lower()
    return any(marker in name for marker in BOLD_MARKERS)


def group_words_into_runs(words: list[dict]) -> list[TextRun]:
    """Group consecutive words sharing a line and font style into runs.

    Each run's position is (x0, bottom): left edge and the distance from the
    top of the page to the run's lowest point.
    """
    runs: list[TextRun] = []
    current: dict | None = None

    def flush() -> None:
        if current and current["text"].strip():
            runs.append(
                TextRun(
                    text=current["text"],
                    font_size=current["size"],
                    is_bold=current["bold"],
                    position=(current["x0"], current["bottom"]),
                )
            )

    for word in words:
        text = word.get("text", "")
        size = round(float(word.get("size", 12)), 1)
        bold = is_bold_font(word.get("fontname", ""))

        same_run = (
            current is not None
            and abs(word["top"] - current["top"]) < LINE_TOLERANCE
            and size == current["size"]
            and bold == current["bold"]
        )

        if same_run:
            current["text"] += " " + text
            current["bottom"] = max(current["bottom"], word["bottom"])
        else:
            flush()
            current = {
                "text": text,
                "size": size,
                "bold": bold,
                "top": word["top"],
                "bottom": word["bottom"],
                "x0": word["x0"],
            }

    flush()
    return runs


class PlumberPage(PdfPage):
    """Page backed by a pdfplumber page."""

    def __init__(self, page, resolution: int = 72):
        self._page = page
        self._resolution = resolution

    @property
    def height(self) -> float:
        return float(self._page.height)

    def text_runs(self) -> list[TextRun]:
        words = self._page.extract_words(extra_attrs=["fontname", "size"])
        return group_words_into_runs(words)

    def render_bitmap(self) -> bytes:
        image = self._page.to_image(resolution=self._resolution)
        buffer = io.BytesIO()
        image.original.save(buffer, format="PNG")
        return buffer.getvalue()


class PlumberDocument(PdfDocument):
    """Document opened with pypdf (metadata) and pdfplumber (content)."""

    def __init__(self, path: Path, reader: pypdf.PdfReader, pdf, resolution: int):
        self.path = path
        self._reader = reader
        self._pdf = pdf
        self._resolution = resolution

    @property
    def page_count(self) -> int:
        return len(self._reader.pages)

    def page(self, index: int) -> PdfPage | None:
        if not 0 <= index < self.page_count:
            return None
        try:
            return PlumberPage(self._pdf.pages[index], self._resolution)
        except Exception as e:
            log.warning(f"Could not load page {index + 1}: {e}")
            return None

    def metadata(self) -> dict[str, str]:
        info = self._reader.metadata or {}
        result: dict[str, str] = {}
        for key, name in (("/Title", "title"), ("/Author", "author")):
            value = clean_metadata_value(str(info.get(key) or ""))
            if value:
                result[name] = value
        return result

    def close(self) -> None:
        self._pdf.close()


class PlumberPdfSource(PdfSource):
    """Default source: validates with pypdf, reads content with pdfplumber."""

    def __init__(self, resolution: int = 72):
        self.resolution = resolution

    def open(self, path: Path) -> PdfDocument:
        path = Path(path)
        if not path.is_file():
            raise DocumentLoadFailed(f"File not found: {path}")

        try:
            reader = pypdf.PdfReader(str(path))
            if reader.is_encrypted:
                raise DocumentLoadFailed("PDF is encrypted. Please decrypt first.")
        except FileNotDecryptedError:
            raise DocumentLoadFailed("PDF is encrypted. Please decrypt first.")
        except EmptyFileError:
            raise DocumentLoadFailed("PDF file is empty.")
        except PdfReadError as e:
            raise DocumentLoadFailed(f"PDF appears corrupted: {e}")
        except (OSError, ValueError) as e:
            raise DocumentLoadFailed(f"Could not read PDF: {e}") from e

        try:
            pdf = pdfplumber.open(str(path))
        except Exception as e:
            raise DocumentLoadFailed(f"Could not open PDF: {e}") from e

        log.info(f"Opened {path.name} ({len(reader.pages)} pages)")
        return PlumberDocument(path, reader, pdf, self.resolution)

"""Temporary on-disk EPUB layout used while a conversion runs."""

import logging
import shutil
import tempfile
from pathlib import Path

from pdf2epub.core.document import (
    CONTAINER_PATH,
    CONTENT_DIR,
    MIMETYPE,
    MIMETYPE_FILE_NAME,
    NCX_FILE_NAME,
    PACKAGE_FILE_NAME,
    STYLESHEET_FILE_NAME,
    EpubDocument,
)
from pdf2epub.core.renderer import STYLESHEET
from pdf2epub.models.epub import SerializedPackage

log = logging.getLogger(__name__)


class WorkingTree:
    """Directory holding the uncompressed EPUB layout before packaging."""

    def __init__(self, root: Path):
        self.root = root

    @classmethod
    def create(cls, parent: Path | None = None) -> "WorkingTree":
        """Create an empty working tree in a fresh temporary directory."""
        root = Path(tempfile.mkdtemp(prefix="pdf2epub_", dir=parent))
        log.debug(f"Created working directory at: {root}")
        return cls(root)

    @property
    def content_dir(self) -> Path:
        return self.root / CONTENT_DIR

    def scaffold(self) -> None:
        """Write the fixed files: mimetype, container descriptor, stylesheet."""
        (self.root / "META-INF").mkdir(parents=True, exist_ok=True)
        self.content_dir.mkdir(parents=True, exist_ok=True)

        # No trailing newline: readers sniff these exact bytes
        (self.root / MIMETYPE_FILE_NAME).write_bytes(MIMETYPE.encode("ascii"))
        (self.root / CONTAINER_PATH).write_text(
            EpubDocument.build_container_xml(), encoding="utf-8"
        )
        (self.content_dir / STYLESHEET_FILE_NAME).write_text(
            STYLESHEET, encoding="utf-8"
        )

    def write_content(self, file_name: str, data: str | bytes) -> Path:
        """Write a file next to the page documents."""
        path = self.content_dir / file_name
        if isinstance(data, str):
            path.write_text(data, encoding="utf-8")
        else:
            path.write_bytes(data)
        return path

    def write_package(self, package: SerializedPackage) -> None:
        """Write the serialized package and navigation documents."""
        self.write_content(PACKAGE_FILE_NAME, package.package_opf)
        self.write_content(NCX_FILE_NAME, package.toc_ncx)

    def cleanup(self) -> None:
        """Remove the working tree. Safe to call more than once."""
        if self.root.exists():
            shutil.rmtree(self.root, ignore_errors=True)
            log.debug(f"Removed working directory: {self.root}")

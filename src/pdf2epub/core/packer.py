"""Pack a working tree into an EPUB (ZIP) archive."""

import logging
import os
import tempfile
import zipfile
from pathlib import Path

from pdf2epub.core.document import MIMETYPE_FILE_NAME
from pdf2epub.core.errors import ArchiveCreationFailed

log = logging.getLogger(__name__)

# Fixed entry metadata so identical trees give identical archives
ZIP_EPOCH = (1980, 1, 1, 0, 0, 0)
FILE_PERMISSIONS = 0o644 << 16


def _entry(name: str, compress_type: int) -> zipfile.ZipInfo:
    info = zipfile.ZipInfo(name, date_time=ZIP_EPOCH)
    info.compress_type = compress_type
    info.external_attr = FILE_PERMISSIONS
    return info


def collect_entries(work_dir: Path) -> list[tuple[str, Path]]:
    """List (archive_name, path) for every file except mimetype, sorted."""
    entries = []
    for path in work_dir.rglob("*"):
        if not path.is_file():
            continue
        name = path.relative_to(work_dir).as_posix()
        if name == MIMETYPE_FILE_NAME:
            continue
        entries.append((name, path))
    return sorted(entries)


def pack_epub(work_dir: Path, output_path: Path) -> Path:
    """Write the EPUB archive for work_dir to output_path.

    The mimetype entry is written first and stored uncompressed; everything
    else is deflated in lexicographic order. The archive is built in a
    temporary file and moved into place, so a failure never leaves a partial
    file at output_path.
    """
    mimetype_path = work_dir / MIMETYPE_FILE_NAME
    if not mimetype_path.is_file():
        raise ArchiveCreationFailed(f"Working tree has no mimetype file: {work_dir}")

    output_path = Path(output_path)
    log.info(f"Creating EPUB archive at: {output_path}")

    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{output_path.stem}_", suffix=".tmp", dir=output_path.parent
        )
        os.close(fd)
    except OSError as e:
        raise ArchiveCreationFailed(
            f"Cannot open {output_path} for writing: {e}"
        ) from e

    tmp_path = Path(tmp_name)
    try:
        with zipfile.ZipFile(tmp_path, "w") as archive:
            archive.writestr(
                _entry(MIMETYPE_FILE_NAME, zipfile.ZIP_STORED),
                mimetype_path.read_bytes(),
            )
            for name, path in collect_entries(work_dir):
                archive.writestr(_entry(name, zipfile.ZIP_DEFLATED), path.read_bytes())
                log.debug(f"  Added {name}")

        os.replace(tmp_path, output_path)
    except Exception as e:
        tmp_path.unlink(missing_ok=True)
        raise ArchiveCreationFailed(f"Failed to create EPUB archive: {e}") from e

    log.info("Successfully created EPUB archive")
    return output_path

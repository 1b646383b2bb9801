"""In-memory EPUB 2 document model: metadata, manifest, spine and NCX."""

import bisect
import logging

from lxml import etree

from pdf2epub.core.errors import InvariantViolation
from pdf2epub.models.content import ImageAsset
from pdf2epub.models.epub import (
    EpubMetadata,
    ManifestEntry,
    NavPoint,
    SerializedPackage,
)

log = logging.getLogger(__name__)

# Package layout
MIMETYPE_FILE_NAME = "mimetype"
MIMETYPE = "application/epub+zip"
CONTAINER_PATH = "META-INF/container.xml"
CONTENT_DIR = "OEBPS"
PACKAGE_FILE_NAME = "content.opf"
NCX_FILE_NAME = "toc.ncx"
STYLESHEET_FILE_NAME = "styles.css"

# Media types
XHTML_MEDIA_TYPE = "application/xhtml+xml"
NCX_MEDIA_TYPE = "application/x-dtbncx+xml"
CSS_MEDIA_TYPE = "text/css"
PACKAGE_MEDIA_TYPE = "application/oebps-package+xml"

NCX_ID = "ncx"
STYLE_ID = "style"

# XML namespaces
CONTAINER_NS = "urn:oasis:names:tc:opendocument:xmlns:container"
OPF_NS = "http://www.idpf.org/2007/opf"
DC_NS = "http://purl.org/dc/elements/1.1/"
NCX_NS = "http://www.daisy.org/z3986/2005/ncx/"
NCX_DOCTYPE = (
    '<!DOCTYPE ncx PUBLIC "-//NISO//DTD ncx 2005-1//EN" '
    '"http://www.daisy.org/z3986/2005/ncx-2005-1.dtd">'
)

# Paths that belong to the container, never to the manifest
_RESERVED_HREFS = {MIMETYPE_FILE_NAME, CONTAINER_PATH, PACKAGE_FILE_NAME}


def page_item_id(page_index: int) -> str:
    return f"page{page_index + 1}"


def image_item_id(file_name: str) -> str:
    """Manifest id for an image file ('.' is not allowed in id tokens)."""
    return file_name.replace(".", "_")


class EpubDocument:
    """Incrementally built EPUB package, serialized once at the end.

    Pages are registered one at a time. Registration is a structural merge:
    re-registering a page adds nothing, and entries of other pages are never
    modified.
    """

    def __init__(self) -> None:
        self._metadata: EpubMetadata | None = None
        self._manifest: dict[str, ManifestEntry] = {}
        self._spine: list[tuple[int, str]] = []  # (page_index, idref), page order
        self._nav_points: dict[int, NavPoint] = {}

    # -------------------------------------------------------------------------
    # Read-only views
    # -------------------------------------------------------------------------

    @property
    def metadata(self) -> EpubMetadata:
        if self._metadata is None:
            raise InvariantViolation("Document has not been initialized")
        return self._metadata

    @property
    def initialized(self) -> bool:
        return self._metadata is not None

    @property
    def manifest(self) -> list[ManifestEntry]:
        """Manifest entries in insertion (file creation) order."""
        return list(self._manifest.values())

    @property
    def spine(self) -> list[str]:
        """Spine idrefs in reading order."""
        return [idref for _, idref in self._spine]

    @property
    def nav_points(self) -> list[NavPoint]:
        """Navigation points ordered by page."""
        return [self._nav_points[i] for i in sorted(self._nav_points)]

    @property
    def registered_pages(self) -> list[int]:
        return [page_index for page_index, _ in self._spine]

    # -------------------------------------------------------------------------
    # Mutation
    # -------------------------------------------------------------------------

    def initialize(self, metadata: EpubMetadata) -> None:
        """Seed the model with metadata and the fixed manifest entries."""
        if self._metadata is not None:
            raise InvariantViolation("Document is already initialized")

        self._metadata = metadata
        self._add_manifest_entry(
            ManifestEntry(id=NCX_ID, href=NCX_FILE_NAME, media_type=NCX_MEDIA_TYPE)
        )
        self._add_manifest_entry(
            ManifestEntry(
                id=STYLE_ID, href=STYLESHEET_FILE_NAME, media_type=CSS_MEDIA_TYPE
            )
        )
        log.debug(f"Initialized document model for '{metadata.title}'")

    def register_page(
        self,
        page_index: int,
        page_file_name: str,
        image_assets: list[ImageAsset] | None = None,
    ) -> bool:
        """Register a page document and its images.

        Returns False if the page was already registered (nothing changes
        besides adding images not seen before).
        """
        if self._metadata is None:
            raise InvariantViolation("Cannot register pages before initialize()")
        if page_index < 0:
            raise InvariantViolation(f"Invalid page index: {page_index}")

        page_id = page_item_id(page_index)
        self._add_manifest_entry(
            ManifestEntry(id=page_id, href=page_file_name, media_type=XHTML_MEDIA_TYPE)
        )
        for asset in image_assets or []:
            self._add_manifest_entry(
                ManifestEntry(
                    id=image_item_id(asset.file_name),
                    href=asset.file_name,
                    media_type=asset.media_type,
                )
            )

        if page_index in self._nav_points:
            log.debug(f"Page {page_index + 1} already registered")
            return False

        bisect.insort(self._spine, (page_index, page_id))
        self._nav_points[page_index] = NavPoint(
            id=page_id,
            play_order=page_index + 1,
            label=f"Page {page_index + 1}",
            content_href=page_file_name,
        )
        return True

    def _add_manifest_entry(self, entry: ManifestEntry) -> None:
        """Add an entry once. Same id with a different target is an error."""
        if entry.href in _RESERVED_HREFS:
            raise InvariantViolation(f"'{entry.href}' cannot be a manifest item")

        existing = self._manifest.get(entry.id)
        if existing is None:
            self._manifest[entry.id] = entry
        elif existing != entry:
            raise InvariantViolation(
                f"Manifest id '{entry.id}' already refers to {existing.href}"
            )

    # -------------------------------------------------------------------------
    # Validation & serialization
    # -------------------------------------------------------------------------

    def validate(self) -> None:
        """Check manifest/spine/nav consistency."""
        if self._metadata is None:
            raise InvariantViolation("Document has not been initialized")

        hrefs = [entry.href for entry in self._manifest.values()]
        if len(set(hrefs)) != len(hrefs):
            raise InvariantViolation("Manifest contains duplicate hrefs")

        spine = self.spine
        if len(spine) != len(set(spine)):
            raise InvariantViolation("Spine contains duplicate entries")
        if len(spine) != len(self._nav_points):
            raise InvariantViolation(
                f"Spine has {len(spine)} entries for "
                f"{len(self._nav_points)} registered pages"
            )
        missing = [idref for idref in spine if idref not in self._manifest]
        if missing:
            raise InvariantViolation(f"Spine references unknown ids: {missing}")

        nav_points = self.nav_points
        orders = [point.play_order for point in nav_points]
        if any(b <= a for a, b in zip(orders, orders[1:])):
            raise InvariantViolation(f"Play orders are not increasing: {orders}")
        if [point.id for point in nav_points] != spine:
            raise InvariantViolation("Navigation map does not follow the spine")

    def serialize(self) -> SerializedPackage:
        """Produce container.xml, content.opf and toc.ncx text."""
        self.validate()
        return SerializedPackage(
            container_xml=self.build_container_xml(),
            package_opf=self._build_package(),
            toc_ncx=self._build_ncx(),
        )

    @staticmethod
    def _to_string(root: etree._Element, doctype: str | None = None) -> str:
        return etree.tostring(
            root,
            xml_declaration=True,
            encoding="UTF-8",
            pretty_print=True,
            doctype=doctype,
        ).decode("utf-8")

    @classmethod
    def build_container_xml(cls) -> str:
        """The fixed container descriptor."""
        root = etree.Element(f"{{{CONTAINER_NS}}}container", nsmap={None: CONTAINER_NS})
        root.set("version", "1.0")
        rootfiles = etree.SubElement(root, f"{{{CONTAINER_NS}}}rootfiles")
        rootfile = etree.SubElement(rootfiles, f"{{{CONTAINER_NS}}}rootfile")
        rootfile.set("full-path", f"{CONTENT_DIR}/{PACKAGE_FILE_NAME}")
        rootfile.set("media-type", PACKAGE_MEDIA_TYPE)
        return cls._to_string(root)

    def _build_package(self) -> str:
        meta = self.metadata
        root = etree.Element(f"{{{OPF_NS}}}package", nsmap={None: OPF_NS})
        root.set("unique-identifier", "BookID")
        root.set("version", "2.0")

        metadata = etree.SubElement(
            root, f"{{{OPF_NS}}}metadata", nsmap={"dc": DC_NS, "opf": OPF_NS}
        )
        etree.SubElement(metadata, f"{{{DC_NS}}}title").text = meta.title
        etree.SubElement(metadata, f"{{{DC_NS}}}creator").text = meta.author
        etree.SubElement(metadata, f"{{{DC_NS}}}language").text = meta.language
        identifier = etree.SubElement(metadata, f"{{{DC_NS}}}identifier")
        identifier.set("id", "BookID")
        identifier.text = meta.urn

        manifest = etree.SubElement(root, f"{{{OPF_NS}}}manifest")
        for entry in self._manifest.values():
            item = etree.SubElement(manifest, f"{{{OPF_NS}}}item")
            item.set("id", entry.id)
            item.set("href", entry.href)
            item.set("media-type", entry.media_type)

        spine = etree.SubElement(root, f"{{{OPF_NS}}}spine")
        spine.set("toc", NCX_ID)
        for idref in self.spine:
            etree.SubElement(spine, f"{{{OPF_NS}}}itemref").set("idref", idref)

        return self._to_string(root)

    def _build_ncx(self) -> str:
        meta = self.metadata
        root = etree.Element(f"{{{NCX_NS}}}ncx", nsmap={None: NCX_NS})
        root.set("version", "2005-1")

        head = etree.SubElement(root, f"{{{NCX_NS}}}head")
        for name, content in (
            ("dtb:uid", meta.urn),
            ("dtb:depth", "1"),
            ("dtb:totalPageCount", "0"),
            ("dtb:maxPageNumber", "0"),
        ):
            item = etree.SubElement(head, f"{{{NCX_NS}}}meta")
            item.set("name", name)
            item.set("content", content)

        for tag, value in (("docTitle", meta.title), ("docAuthor", meta.author)):
            wrapper = etree.SubElement(root, f"{{{NCX_NS}}}{tag}")
            etree.SubElement(wrapper, f"{{{NCX_NS}}}text").text = value

        nav_map = etree.SubElement(root, f"{{{NCX_NS}}}navMap")
        # Play orders are emitted densely so skipped pages leave no gaps
        for play_order, point in enumerate(self.nav_points, start=1):
            nav_point = etree.SubElement(nav_map, f"{{{NCX_NS}}}navPoint")
            nav_point.set("id", point.id)
            nav_point.set("playOrder", str(play_order))
            label = etree.SubElement(nav_point, f"{{{NCX_NS}}}navLabel")
            etree.SubElement(label, f"{{{NCX_NS}}}text").text = point.label
            etree.SubElement(nav_point, f"{{{NCX_NS}}}content").set(
                "src", point.content_href
            )

        return self._to_string(root, doctype=NCX_DOCTYPE)

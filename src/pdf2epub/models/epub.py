"""Data models for EPUB package structure."""

import uuid

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_AUTHOR = "Unknown"
DEFAULT_LANGUAGE = "en"


class EpubMetadata(BaseModel):
    """Book-level metadata, fixed for the whole conversion."""

    model_config = ConfigDict(frozen=True)

    title: str
    author: str = DEFAULT_AUTHOR
    language: str = DEFAULT_LANGUAGE
    identifier: str = Field(default_factory=lambda: str(uuid.uuid4()))

    @property
    def urn(self) -> str:
        return f"urn:uuid:{self.identifier}"

    @classmethod
    def create(
        cls,
        title: str,
        author: str | None = None,
        language: str | None = None,
    ) -> "EpubMetadata":
        """Build metadata, falling back to defaults for missing fields."""
        return cls(
            title=title,
            author=author or DEFAULT_AUTHOR,
            language=language or DEFAULT_LANGUAGE,
        )


class ManifestEntry(BaseModel):
    """Single file registered in the package manifest."""

    model_config = ConfigDict(frozen=True)

    id: str
    href: str
    media_type: str


class NavPoint(BaseModel):
    """Entry in the NCX navigation map."""

    model_config = ConfigDict(frozen=True)

    id: str
    play_order: int
    label: str
    content_href: str


class SerializedPackage(BaseModel):
    """Text of the package-level documents, ready to be written."""

    container_xml: str
    package_opf: str
    toc_ncx: str

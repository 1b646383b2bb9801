"""Data models for page content (text runs, blocks, images)."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ContentRole(str, Enum):
    """Semantic role of a piece of page text."""

    TITLE = "title"
    AUTHOR = "author"
    HEADING = "heading"
    PARAGRAPH = "paragraph"
    FOOTER = "footer"


class TextRun(BaseModel):
    """Positioned, font-annotated run of text as extracted from a page."""

    model_config = ConfigDict(frozen=True)

    text: str
    font_size: float = 12.0
    is_bold: bool = False
    position: tuple[float, float] = (0.0, 0.0)


class ContentBlock(BaseModel):
    """Classified unit of text emitted into page markup."""

    model_config = ConfigDict(frozen=True)

    role: ContentRole
    text: str


class ImageAsset(BaseModel):
    """Image file belonging to a page."""

    file_name: str
    data: bytes = b""
    media_type: str = "image/png"

    @staticmethod
    def file_name_for(page_index: int, image_index: int) -> str:
        """Build the file name for an image (both indices 0-based)."""
        return f"page{page_index + 1}_image{image_index + 1}.png"


class PageArtifact(BaseModel):
    """Everything produced for one page before it is written and registered."""

    index: int
    blocks: list[ContentBlock] = Field(default_factory=list)
    images: list[ImageAsset] = Field(default_factory=list)

    @property
    def page_number(self) -> int:
        return self.index + 1

    @property
    def file_name(self) -> str:
        return f"page{self.page_number}.xhtml"

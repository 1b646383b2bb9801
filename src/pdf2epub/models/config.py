"""Conversion configuration."""

from pathlib import Path

from pydantic import BaseModel, Field


class ClassificationThresholds(BaseModel):
    """Font and position thresholds used to classify text runs."""

    footer_margin: float = 50.0  # layout units from the bottom of the page
    title_size: float = 20.0
    heading_size: float = 16.0
    author_size: float = 14.0


class ConversionConfig(BaseModel):
    """Options for a single PDF to EPUB conversion."""

    thresholds: ClassificationThresholds = Field(
        default_factory=ClassificationThresholds
    )
    render_resolution: int = 72
    include_page_images: bool = True
    output_dir: Path | None = None
    # Metadata overrides (None = read from the PDF)
    title: str | None = None
    author: str | None = None
    language: str = "en"

"""Data models."""

from pdf2epub.models.config import ClassificationThresholds, ConversionConfig
from pdf2epub.models.content import (
    ContentBlock,
    ContentRole,
    ImageAsset,
    PageArtifact,
    TextRun,
)
from pdf2epub.models.epub import (
    EpubMetadata,
    ManifestEntry,
    NavPoint,
    SerializedPackage,
)

__all__ = [
    # Content models
    "ContentRole",
    "TextRun",
    "ContentBlock",
    "ImageAsset",
    "PageArtifact",
    # EPUB models
    "EpubMetadata",
    "ManifestEntry",
    "NavPoint",
    "SerializedPackage",
    # Configuration
    "ClassificationThresholds",
    "ConversionConfig",
]

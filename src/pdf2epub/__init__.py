"""Convert PDF documents into reflowable EPUB 2 books."""

__version__ = "0.1.0"

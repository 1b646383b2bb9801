"""Error types raised during conversion."""


class ConversionError(Exception):
    """Base class for all conversion failures."""

    pass


class DocumentLoadFailed(ConversionError):
    """The source PDF could not be opened or parsed."""

    pass


class PageUnreadable(ConversionError):
    """A single page could not be read. Recovered by skipping the page."""

    def __init__(self, page_index: int, reason: str = ""):
        self.page_index = page_index
        message = f"Page {page_index + 1} could not be read"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class ImageWriteFailed(ConversionError):
    """An image could not be produced or persisted. Recovered by omitting it."""

    def __init__(self, file_name: str, reason: str = ""):
        self.file_name = file_name
        message = f"Could not write image {file_name}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class ArchiveCreationFailed(ConversionError):
    """The EPUB archive could not be created."""

    pass


class InvariantViolation(ConversionError):
    """The EPUB document model is inconsistent."""

    pass


class ConversionInterrupted(ConversionError):
    """Raised when a conversion is cancelled at a page boundary."""

    pass

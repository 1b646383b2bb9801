"""Text cleanup shared by classification, rendering and metadata."""

import re

# Code points outside the XML 1.0 Char production
INVALID_XML_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\ud800-\udfff\ufffe\uffff]")


def strip_invalid_xml_chars(text: str) -> str:
    """Drop characters that cannot appear in an XML document."""
    return INVALID_XML_CHARS.sub("", text)


def clean_metadata_value(value: str | None) -> str | None:
    """Return a cleaned metadata string, or None when nothing is left."""
    if value is None:
        return None
    return strip_invalid_xml_chars(value).strip() or None

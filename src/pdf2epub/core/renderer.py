"""Render page artifacts into XHTML content documents."""

from dataclasses import dataclass, field
from xml.sax.saxutils import escape

from pdf2epub.core.text import strip_invalid_xml_chars
from pdf2epub.models.content import ContentBlock, ContentRole, PageArtifact

STYLESHEET_NAME = "styles.css"

EMPTY_PAGE_TEXT = "No text content available for this page."

# Characters beyond the default &, <, > handled by saxutils.escape
_EXTRA_ENTITIES = {'"': "&quot;", "'": "&apos;"}

# Opening/closing markup per role
ROLE_ELEMENTS: dict[ContentRole, tuple[str, str]] = {
    ContentRole.TITLE: ('<h1 class="title">', "</h1>"),
    ContentRole.AUTHOR: ('<h2 class="author">', "</h2>"),
    ContentRole.HEADING: ("<h3>", "</h3>"),
    ContentRole.PARAGRAPH: ("<p>", "</p>"),
    ContentRole.FOOTER: ("<footer>", "</footer>"),
}

STYLESHEET = """body {
    margin: 5%;
    line-height: 1.5;
    font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, Helvetica, Arial, sans-serif;
    position: relative;
    min-height: 100vh;
    padding-bottom: 3rem;
}

h1.title {
    font-size: 2em;
    font-weight: bold;
    text-align: center;
    margin: 1.5em 0 0.5em;
    line-height: 1.2;
}

h2.author {
    font-size: 1.3em;
    font-weight: normal;
    text-align: center;
    margin: 0 0 2em;
    color: #444;
}

h3 {
    font-size: 1.2em;
    font-weight: bold;
    margin: 1.5em 0 0.8em;
    line-height: 1.3;
}

p {
    margin: 0 0 1em 0;
    text-align: justify;
    line-height: 1.6;
    text-indent: 1.5em;
}

img {
    max-width: 100%;
    height: auto;
    display: block;
    margin: 1em auto;
}

footer {
    font-size: 0.9em;
    color: #666;
    text-align: center;
    margin-top: 2em;
    padding: 1em 0;
    border-top: 1px solid #eee;
}
"""


@dataclass
class RenderedPage:
    """Markup for one page plus the image files it references."""

    markup: str
    image_names: list[str] = field(default_factory=list)


def escape_text(text: str) -> str:
    """Escape the five XML-significant characters and drop non-XML ones."""
    return escape(strip_invalid_xml_chars(text), _EXTRA_ENTITIES)


def render_block(block: ContentBlock) -> str:
    """Render a single block as one markup element."""
    open_tag, close_tag = ROLE_ELEMENTS[block.role]
    return f"{open_tag}{escape_text(block.text)}{close_tag}"


def render_page(artifact: PageArtifact) -> RenderedPage:
    """Render a page artifact as a complete XHTML document."""
    page_number = artifact.page_number
    lines = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        "<!DOCTYPE html>",
        '<html xmlns="http://www.w3.org/1999/xhtml">',
        "<head>",
        f"    <title>Page {page_number}</title>",
        f'    <link rel="stylesheet" type="text/css" href="{STYLESHEET_NAME}"/>',
        "</head>",
        "<body>",
    ]

    body_blocks = [b for b in artifact.blocks if b.role != ContentRole.FOOTER]
    footers = [b for b in artifact.blocks if b.role == ContentRole.FOOTER]

    if not artifact.blocks:
        lines.append(f"<p>{escape_text(EMPTY_PAGE_TEXT)}</p>")
    else:
        lines.extend(render_block(block) for block in body_blocks)

    image_names = []
    for index, image in enumerate(artifact.images):
        image_names.append(image.file_name)
        alt = f"Image {index + 1} on page {page_number}"
        lines.append(
            f'<img src="{escape_text(image.file_name)}" alt="{escape_text(alt)}"/>'
        )

    # Footer always closes the page
    if footers:
        lines.append(render_block(footers[-1]))

    lines.append("</body>")
    lines.append("</html>")

    return RenderedPage(markup="\n".join(lines) + "\n", image_names=image_names)

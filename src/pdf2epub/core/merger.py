"""Merge classified runs into content blocks."""

from typing import Iterable

from pdf2epub.models.content import ContentBlock, ContentRole


def merge_runs(classified: Iterable[tuple[ContentRole, str]]) -> list[ContentBlock]:
    """Coalesce consecutive paragraph runs into single blocks.

    Non-paragraph runs flush the pending paragraph and are emitted as-is.
    Only the last footer on a page is kept, and it always comes last.
    """
    blocks: list[ContentBlock] = []
    paragraph = ""
    footer: str | None = None

    def flush() -> None:
        nonlocal paragraph
        if paragraph:
            blocks.append(ContentBlock(role=ContentRole.PARAGRAPH, text=paragraph))
            paragraph = ""

    for role, text in classified:
        if role == ContentRole.PARAGRAPH:
            if paragraph and not paragraph[-1].isspace():
                paragraph += " "
            paragraph += text
        elif role == ContentRole.FOOTER:
            flush()
            footer = text
        else:
            flush()
            blocks.append(ContentBlock(role=role, text=text))

    flush()

    if footer:
        blocks.append(ContentBlock(role=ContentRole.FOOTER, text=footer))

    return blocks

"""Rule-based classification of text runs into content roles."""

from dataclasses import dataclass
from typing import Callable, Iterable, Iterator

from pdf2epub.core.text import strip_invalid_xml_chars
from pdf2epub.models.config import ClassificationThresholds
from pdf2epub.models.content import ContentRole, TextRun

# =============================================================================
# Rule Configuration
# =============================================================================


@dataclass(frozen=True)
class ClassificationRule:
    """Predicate mapping a run (and its page height) to a role."""

    name: str
    role: ContentRole
    predicate: Callable[[TextRun, float], bool]


def build_rules(
    thresholds: ClassificationThresholds | None = None,
) -> list[ClassificationRule]:
    """Build the ordered rule list. First matching rule wins."""
    t = thresholds or ClassificationThresholds()

    return [
        ClassificationRule(
            name="footer",
            role=ContentRole.FOOTER,
            predicate=lambda run, height: (height - run.position[1]) < t.footer_margin,
        ),
        ClassificationRule(
            name="title",
            role=ContentRole.TITLE,
            predicate=lambda run, height: run.font_size >= t.title_size,
        ),
        ClassificationRule(
            name="heading",
            role=ContentRole.HEADING,
            predicate=lambda run, height: run.font_size >= t.heading_size
            and run.is_bold,
        ),
        ClassificationRule(
            name="author",
            role=ContentRole.AUTHOR,
            predicate=lambda run, height: run.font_size >= t.author_size
            and run.is_bold,
        ),
    ]


DEFAULT_RULES: list[ClassificationRule] = build_rules()


# =============================================================================
# Classification
# =============================================================================


def clean_run_text(text: str) -> str:
    """Drop form feeds and other non-XML characters, then trim whitespace."""
    return strip_invalid_xml_chars(text).strip()


def classify_run(
    run: TextRun,
    page_height: float,
    rules: list[ClassificationRule] | None = None,
) -> ContentRole:
    """Return the role of the first rule matching the run, else paragraph."""
    for rule in rules if rules is not None else DEFAULT_RULES:
        if rule.predicate(run, page_height):
            return rule.role
    return ContentRole.PARAGRAPH


def classify_runs(
    runs: Iterable[TextRun],
    page_height: float,
    rules: list[ClassificationRule] | None = None,
) -> Iterator[tuple[ContentRole, str]]:
    """Classify runs in order, dropping runs without visible text.

    Yields (role, cleaned_text) pairs.
    """
    for run in runs:
        text = clean_run_text(run.text)
        if not text:
            continue
        yield classify_run(run, page_height, rules), text

import pytest

from pdf2epub.core.classifier import (
    DEFAULT_RULES,
    build_rules,
    classify_run,
    classify_runs,
    clean_run_text,
)
from pdf2epub.models.config import ClassificationThresholds
from pdf2epub.models.content import ContentRole, TextRun

PAGE_HEIGHT = 792.0


def run(text="Some text", size=12.0, bold=False, y=100.0):
    return TextRun(text=text, font_size=size, is_bold=bold, position=(72.0, y))


@pytest.mark.parametrize(
    "size,bold,expected",
    [
        (20, False, ContentRole.TITLE),
        (36, True, ContentRole.TITLE),
        (16, True, ContentRole.HEADING),
        (19.9, True, ContentRole.HEADING),
        (16, False, ContentRole.PARAGRAPH),
        (14, True, ContentRole.AUTHOR),
        (15.5, True, ContentRole.AUTHOR),
        (14, False, ContentRole.PARAGRAPH),
        (13.9, True, ContentRole.PARAGRAPH),
        (10, False, ContentRole.PARAGRAPH),
    ],
)
def test_font_rules(size, bold, expected):
    assert classify_run(run(size=size, bold=bold), PAGE_HEIGHT) == expected


def test_footer_wins_over_title():
    near_bottom = run(size=24, bold=True, y=PAGE_HEIGHT - 20)
    assert classify_run(near_bottom, PAGE_HEIGHT) == ContentRole.FOOTER


def test_footer_margin_is_strict():
    assert classify_run(run(y=PAGE_HEIGHT - 49.9), PAGE_HEIGHT) == ContentRole.FOOTER
    assert classify_run(run(y=PAGE_HEIGHT - 50), PAGE_HEIGHT) == ContentRole.PARAGRAPH


def test_rules_are_ordered():
    assert [rule.name for rule in DEFAULT_RULES] == [
        "footer",
        "title",
        "heading",
        "author",
    ]


def test_custom_thresholds():
    rules = build_rules(ClassificationThresholds(title_size=30, footer_margin=100))
    assert classify_run(run(size=24), PAGE_HEIGHT, rules) == ContentRole.PARAGRAPH
    assert classify_run(run(size=30), PAGE_HEIGHT, rules) == ContentRole.TITLE
    assert classify_run(run(y=PAGE_HEIGHT - 80), PAGE_HEIGHT, rules) == ContentRole.FOOTER


def test_classify_runs_drops_empty_text():
    runs = [run(text="  "), run(text="\f"), run(text=" Kept \n")]
    assert list(classify_runs(runs, PAGE_HEIGHT)) == [(ContentRole.PARAGRAPH, "Kept")]


def test_clean_run_text_removes_form_feeds():
    assert clean_run_text("\fChapter\f One ") == "Chapter One"


def test_clean_run_text_removes_non_xml_characters():
    assert clean_run_text("fi\x02ne\x00 print\ufffe\x1f") == "fine print"
    assert clean_run_text("tab\tand\nnewline") == "tab\tand\nnewline"
    assert clean_run_text("\x01\x02") == ""

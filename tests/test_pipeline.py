import asyncio
import zipfile

import ebooklib
import pytest
from bs4 import BeautifulSoup
from conftest import PNG_BYTES, FakeDocument, FakePage, FakeSource, paragraph_run
from ebooklib import epub
from lxml import etree

from pdf2epub.core.errors import (
    ConversionError,
    ConversionInterrupted,
    DocumentLoadFailed,
)
from pdf2epub.core.pipeline import (
    ConversionPipeline,
    PipelineState,
    ProgressReporter,
    convert_pdf_to_epub,
    default_output_path,
)
from pdf2epub.core.workspace import WorkingTree
from pdf2epub.models.config import ConversionConfig
from pdf2epub.models.content import TextRun

OPF = "{http://www.idpf.org/2007/opf}"
NCX = "{http://www.daisy.org/z3986/2005/ncx/}"


def read_epub(path):
    with zipfile.ZipFile(path) as archive:
        return {name: archive.read(name) for name in archive.namelist()}


def spine_of(files):
    root = etree.fromstring(files["OEBPS/content.opf"])
    return [ref.get("idref") for ref in root.find(f"{OPF}spine")]


def play_orders_of(files):
    root = etree.fromstring(files["OEBPS/toc.ncx"])
    return [p.get("playOrder") for p in root.iter(f"{NCX}navPoint")]


@pytest.fixture
def tracked_trees(monkeypatch):
    """Record every working tree the pipeline creates."""
    created = []
    original = WorkingTree.create.__func__

    def create(cls, parent=None):
        tree = original(cls, parent)
        created.append(tree)
        return tree

    monkeypatch.setattr(WorkingTree, "create", classmethod(create))
    return created


def test_three_page_round_trip(three_page_source, pdf_path, tmp_path):
    output = convert_pdf_to_epub(
        pdf_path, tmp_path / "out.epub", source=three_page_source
    )
    files = read_epub(output)

    assert list(files)[0] == "mimetype"
    assert spine_of(files) == ["page1", "page2", "page3"]
    assert play_orders_of(files) == ["1", "2", "3"]

    for n in (1, 2, 3):
        soup = BeautifulSoup(files[f"OEBPS/page{n}.xhtml"], "xml")
        assert [p.get_text() for p in soup.find_all("p")] == [f"Page {n} text"]
        assert f"OEBPS/page{n}_image1.png" in files


def test_metadata_from_pdf_and_config(three_page_source, pdf_path, tmp_path):
    output = convert_pdf_to_epub(
        pdf_path, tmp_path / "out.epub", source=three_page_source
    )
    opf = read_epub(output)["OEBPS/content.opf"].decode("utf-8")
    assert "<dc:title>Three Pages</dc:title>" in opf
    assert "<dc:creator>Tester</dc:creator>" in opf

    config = ConversionConfig(title="Override", language="fr")
    pipeline = ConversionPipeline(config=config, source=three_page_source)
    asyncio.run(pipeline.run(pdf_path, tmp_path / "override.epub"))
    assert pipeline.document.metadata.title == "Override"
    assert pipeline.document.metadata.author == "Tester"
    assert pipeline.document.metadata.language == "fr"


def test_title_defaults_to_file_stem(make_source, pdf_path, tmp_path):
    pipeline = ConversionPipeline(source=make_source([FakePage()]))
    asyncio.run(pipeline.run(pdf_path, tmp_path / "out.epub"))
    assert pipeline.document.metadata.title == "book"
    assert pipeline.document.metadata.author == "Unknown"


def test_empty_page_is_still_registered(make_source, pdf_path, tmp_path):
    source = make_source([FakePage(runs=[])])
    config = ConversionConfig(include_page_images=False)
    output = convert_pdf_to_epub(pdf_path, tmp_path / "out.epub", config, source=source)
    files = read_epub(output)

    assert b"No text content available for this page." in files["OEBPS/page1.xhtml"]
    assert spine_of(files) == ["page1"]
    assert play_orders_of(files) == ["1"]
    assert not any(name.endswith(".png") for name in files)


def test_classification_flows_into_markup(make_source, pdf_path, tmp_path):
    runs = [
        TextRun(text="Big Title", font_size=24, position=(72, 100)),
        TextRun(text="Jane Doe", font_size=14, is_bold=True, position=(72, 130)),
        paragraph_run("First line", y=200),
        paragraph_run("second line.", y=215),
        TextRun(text="Section", font_size=16, is_bold=True, position=(72, 300)),
        paragraph_run("42", y=780),
    ]
    source = make_source([FakePage(runs)])
    output = convert_pdf_to_epub(pdf_path, tmp_path / "out.epub", source=source)

    soup = BeautifulSoup(read_epub(output)["OEBPS/page1.xhtml"], "xml")
    body = [(tag.name, tag.get_text()) for tag in soup.find("body").find_all(recursive=False)]
    assert body == [
        ("h1", "Big Title"),
        ("h2", "Jane Doe"),
        ("p", "First line second line."),
        ("h3", "Section"),
        ("img", ""),
        ("footer", "42"),
    ]


def test_unreadable_pages_are_skipped(make_source, pdf_path, tmp_path):
    pages = [
        FakePage([paragraph_run("one")]),
        None,
        FakePage(fail_text=True),
        FakePage([paragraph_run("four")]),
    ]
    pipeline = ConversionPipeline(source=make_source(pages))
    output = asyncio.run(pipeline.run(pdf_path, tmp_path / "out.epub"))
    files = read_epub(output)

    assert pipeline.skipped_pages == [1, 2]
    assert spine_of(files) == ["page1", "page4"]
    assert play_orders_of(files) == ["1", "2"]
    assert "OEBPS/page2.xhtml" not in files
    assert "OEBPS/page3.xhtml" not in files


def test_failed_image_is_omitted(make_source, pdf_path, tmp_path):
    source = make_source([FakePage([paragraph_run("text")], bitmap=None)])
    output = convert_pdf_to_epub(pdf_path, tmp_path / "out.epub", source=source)
    files = read_epub(output)

    assert b"<img" not in files["OEBPS/page1.xhtml"]
    assert b"page1_image1" not in files["OEBPS/content.opf"]
    assert spine_of(files) == ["page1"]


def test_progress_reporting(three_page_source, pdf_path, tmp_path):
    reported = []
    convert_pdf_to_epub(
        pdf_path,
        tmp_path / "out.epub",
        source=three_page_source,
        on_progress=reported.append,
    )
    assert reported == pytest.approx([0.8 / 3, 1.6 / 3, 0.8, 1.0])


def test_progress_delivery_is_injected(three_page_source, pdf_path, tmp_path):
    queued = []
    reported = []
    pipeline = ConversionPipeline(
        source=three_page_source,
        on_progress=reported.append,
        deliver_progress=queued.append,
    )
    asyncio.run(pipeline.run(pdf_path, tmp_path / "out.epub"))

    assert reported == []
    for callback in queued:
        callback()
    assert reported[-1] == 1.0


def test_progress_reporter_is_monotonic_and_clamped():
    reported = []
    reporter = ProgressReporter(reported.append)
    for value in (0.2, 0.1, 1.5, -1):
        reporter.report(value)
    assert reported == [0.2, 1.0]


def test_load_failure(pdf_path, tmp_path, tracked_trees):
    pipeline = ConversionPipeline(source=FakeSource(None))
    output = tmp_path / "out.epub"

    with pytest.raises(DocumentLoadFailed):
        asyncio.run(pipeline.run(pdf_path, output))

    assert pipeline.state == PipelineState.FAILED
    assert not output.exists()
    assert tracked_trees == []


def test_pdf_without_pages_fails(make_source, pdf_path, tmp_path):
    with pytest.raises(DocumentLoadFailed):
        convert_pdf_to_epub(pdf_path, tmp_path / "out.epub", source=make_source([]))


def test_working_tree_removed_on_success(
    three_page_source, pdf_path, tmp_path, tracked_trees
):
    pipeline = ConversionPipeline(source=three_page_source)
    asyncio.run(pipeline.run(pdf_path, tmp_path / "out.epub"))

    assert pipeline.state == PipelineState.DONE
    assert len(tracked_trees) == 1
    assert not tracked_trees[0].root.exists()
    assert three_page_source.document.closed


def test_cancellation_cleans_up(three_page_source, pdf_path, tmp_path, tracked_trees):
    calls = []

    def check_interrupt():
        calls.append(1)
        return len(calls) > 1

    pipeline = ConversionPipeline(
        source=three_page_source, check_interrupt=check_interrupt
    )
    output = tmp_path / "out.epub"
    with pytest.raises(ConversionInterrupted):
        asyncio.run(pipeline.run(pdf_path, output))

    assert pipeline.state == PipelineState.FAILED
    assert pipeline.document.registered_pages == [0]
    assert not output.exists()
    assert not tracked_trees[0].root.exists()


def test_unexpected_errors_are_wrapped(make_source, pdf_path, tmp_path, monkeypatch):
    pipeline = ConversionPipeline(source=make_source([FakePage()]))

    def explode(*args, **kwargs):
        raise RuntimeError("disk on fire")

    monkeypatch.setattr("pdf2epub.core.pipeline.render_page", explode)
    with pytest.raises(ConversionError, match="disk on fire"):
        asyncio.run(pipeline.run(pdf_path, tmp_path / "out.epub"))
    assert pipeline.state == PipelineState.FAILED


def test_pipeline_runs_once(three_page_source, pdf_path, tmp_path):
    pipeline = ConversionPipeline(source=three_page_source)
    asyncio.run(pipeline.run(pdf_path, tmp_path / "out.epub"))
    with pytest.raises(ConversionError):
        asyncio.run(pipeline.run(pdf_path, tmp_path / "again.epub"))


def test_default_output_path(tmp_path):
    pdf = tmp_path / "docs" / "report.pdf"
    assert default_output_path(pdf) == tmp_path / "docs" / "report.epub"
    assert default_output_path(pdf, tmp_path / "out") == tmp_path / "out" / "report.epub"


def test_output_opens_in_epub_reader(three_page_source, pdf_path, tmp_path):
    output = convert_pdf_to_epub(
        pdf_path, tmp_path / "out.epub", source=three_page_source
    )
    book = epub.read_epub(str(output))

    assert book.get_metadata("DC", "title")[0][0] == "Three Pages"
    assert [idref for idref, _ in book.spine] == ["page1", "page2", "page3"]
    documents = [item.get_name() for item in book.get_items_of_type(ebooklib.ITEM_DOCUMENT)]
    assert documents == ["page1.xhtml", "page2.xhtml", "page3.xhtml"]


def test_control_characters_in_metadata(make_source, pdf_path, tmp_path):
    source = make_source(
        [FakePage([paragraph_run("text")])],
        {"title": "My Book\x00", "author": "\x00\x01"},
    )
    pipeline = ConversionPipeline(source=source)
    output = asyncio.run(pipeline.run(pdf_path, tmp_path / "out.epub"))

    assert pipeline.document.metadata.title == "My Book"
    assert pipeline.document.metadata.author == "Unknown"
    ncx = etree.fromstring(read_epub(output)["OEBPS/toc.ncx"])
    assert ncx.find(f"{NCX}docTitle/{NCX}text").text == "My Book"


def test_title_of_only_control_characters_falls_back_to_stem(
    make_source, pdf_path, tmp_path
):
    source = make_source([FakePage()], {"title": "\x00\x00"})
    pipeline = ConversionPipeline(source=source)
    asyncio.run(pipeline.run(pdf_path, tmp_path / "out.epub"))
    assert pipeline.document.metadata.title == "book"


class BrokenPageDocument(FakeDocument):
    def page(self, index):
        if index == 1:
            raise RuntimeError("xref entry broken")
        return super().page(index)


def test_page_lookup_error_skips_page(pdf_path, tmp_path):
    pages = [FakePage([paragraph_run(f"page {n}")]) for n in (1, 2, 3)]
    pipeline = ConversionPipeline(source=FakeSource(BrokenPageDocument(pages)))
    output = asyncio.run(pipeline.run(pdf_path, tmp_path / "out.epub"))

    assert pipeline.skipped_pages == [1]
    assert spine_of(read_epub(output)) == ["page1", "page3"]


def test_page_images_carry_rendered_bytes(make_source, pdf_path, tmp_path):
    source = make_source([FakePage([paragraph_run("text")])])
    output = convert_pdf_to_epub(pdf_path, tmp_path / "out.epub", source=source)
    assert read_epub(output)["OEBPS/page1_image1.png"] == PNG_BYTES


def test_partial_image_write_is_removed(make_source, pdf_path, tmp_path, monkeypatch):
    original = WorkingTree.write_content

    def write_content(self, file_name, data):
        if file_name.endswith(".png"):
            (self.content_dir / file_name).write_bytes(data[:4])
            raise OSError("disk full")
        return original(self, file_name, data)

    monkeypatch.setattr(WorkingTree, "write_content", write_content)
    source = make_source([FakePage([paragraph_run("text")])])
    output = convert_pdf_to_epub(pdf_path, tmp_path / "out.epub", source=source)
    files = read_epub(output)

    assert "OEBPS/page1_image1.png" not in files
    assert b"<img" not in files["OEBPS/page1.xhtml"]
    assert spine_of(files) == ["page1"]

"""Tests for manuscript export and download filenames."""
import io

import pytest
from docx import Document

from draftroom.services.export_service import (
    RULE,
    ChapterForExport,
    ProjectForExport,
    ascii_filename_base,
    build_content_disposition,
    export_project,
    markup_to_plain_text,
    parse_markup_blocks,
    sanitize_filename_base,
    to_docx_bytes,
    to_txt,
)


@pytest.fixture
def manuscript():
    return ProjectForExport(
        title="Moonlight",
        description="A quiet story.",
        genre="Fantasy",
        chapters=[
            ChapterForExport(title="Two", content="<p>Second <strong>part</strong></p>", order_index=1),
            ChapterForExport(title="One", content="<h2>Night</h2><p>First&nbsp;part</p><ul><li>item</li></ul>",
                             order_index=0),
            ChapterForExport(title="Three", content="", order_index=2),
        ],
    )


class TestPlainText:
    def test_markup_conversion(self):
        text = markup_to_plain_text("<p>Hello</p><p>World &amp; more<br>line</p><ul><li>a</li><li>b</li></ul>")
        assert text == "Hello\n\nWorld & more\nline\n\n• a\n• b"

    def test_line_break_inside_paragraph(self):
        assert markup_to_plain_text("<p>line one<br>line two</p>") == "line one\nline two"

    def test_attributes_do_not_hide_tags(self):
        text = markup_to_plain_text('<p class="lead">Intro</p><ul class="x"><li data-id="1">a</li></ul>')
        assert text == "Intro\n\n• a"

    def test_empty_markup(self):
        assert markup_to_plain_text(None) == ""

    def test_layout(self, manuscript):
        lines = to_txt(manuscript).split("\n")
        assert lines[:3] == ["Moonlight", "=========", ""]
        assert "Genre: Fantasy" in lines
        assert lines[lines.index("Synopsis:") + 1] == "A quiet story."
        headings = [line for line in lines if line.startswith("# ")]
        assert headings == ["# One", "# Two", "# Three"]
        # one rule after the header and one between each pair of chapters
        assert lines.count(RULE) == 3

    def test_empty_chapter_placeholder(self, manuscript):
        assert to_txt(manuscript).rstrip().endswith("(No content)")

    def test_optional_header_fields(self):
        text = to_txt(ProjectForExport(title="Bare"))
        assert "Genre:" not in text
        assert "Synopsis:" not in text


class TestDocx:
    def test_structure(self, manuscript):
        doc = Document(io.BytesIO(to_docx_bytes(manuscript)))
        paragraphs = [(p.style.name, p.text) for p in doc.paragraphs]

        assert paragraphs[0] == ("Title", "Moonlight")
        assert ("Heading 2", "Synopsis") in paragraphs
        chapter_headings = [text for style, text in paragraphs if style == "Heading 1"]
        assert chapter_headings == ["One", "Two", "Three"]
        assert ("Heading 2", "Night") in paragraphs
        assert ("List Bullet", "item") in paragraphs

    def test_inline_formatting(self, manuscript):
        doc = Document(io.BytesIO(to_docx_bytes(manuscript)))
        bold_runs = [run.text for p in doc.paragraphs for run in p.runs if run.bold]
        assert "part" in bold_runs

    def test_genre_is_italic(self, manuscript):
        doc = Document(io.BytesIO(to_docx_bytes(manuscript)))
        genre = next(p for p in doc.paragraphs if p.text == "Genre: Fantasy")
        assert genre.runs[0].italic is True

    def test_block_parser(self):
        blocks = parse_markup_blocks("<h1>T</h1><p>a <em>b</em> <u>c</u></p><li>d</li><p></p>")
        assert [b.kind for b in blocks] == ["heading", "paragraph", "bullet"]
        runs = blocks[1].runs
        assert [(r.text, r.italic, r.underline) for r in runs] == [
            ("a ", False, False), ("b", True, False), (" ", False, False), ("c", False, True),
        ]

    def test_formatting_tags_with_attributes(self):
        blocks = parse_markup_blocks('<p>plain <strong class="x">loud</strong> <em style="color: red">soft</em></p>')
        runs = [(r.text, r.bold, r.italic) for r in blocks[0].runs]
        assert ("loud", True, False) in runs
        assert ("soft", False, True) in runs

    def test_nested_formatting_is_inherited(self):
        blocks = parse_markup_blocks("<p><strong>bold <em>both</em></strong></p>")
        assert [(r.text, r.bold, r.italic) for r in blocks[0].runs] == [
            ("bold ", True, False), ("both", True, True),
        ]

    def test_line_break_kept_in_document(self):
        project = ProjectForExport(
            title="Breaks",
            chapters=[ChapterForExport(title="One", content="<p>line one<br>line two</p>", order_index=0)],
        )
        doc = Document(io.BytesIO(to_docx_bytes(project)))
        assert "line one\nline two" in [p.text for p in doc.paragraphs]


class TestFilenames:
    def test_unsafe_characters_removed(self):
        assert sanitize_filename_base('My: "Novel"/Draft?') == "My Novel Draft"

    def test_trailing_dots_removed(self):
        assert sanitize_filename_base("Ending...") == "Ending"

    def test_truncated(self):
        assert len(sanitize_filename_base("a" * 300)) == 100

    def test_empty_falls_back(self):
        assert sanitize_filename_base("???") == "project"

    def test_ascii_fallback(self):
        assert ascii_filename_base("달빛") == "project"
        assert ascii_filename_base("Le Château") == "Le_Chateau"

    def test_content_disposition_carries_both_names(self):
        header = build_content_disposition("달빛.txt", "project.txt")
        assert header.startswith('attachment; filename="project.txt"; ')
        assert "filename*=UTF-8''%EB%8B%AC%EB%B9%9B.txt" in header


class TestExportDispatch:
    def test_txt_payload(self, manuscript):
        payload = export_project(manuscript, "txt")
        assert payload.filename == "Moonlight.txt"
        assert payload.content_type.startswith("text/plain")
        assert payload.data.decode("utf-8").startswith("Moonlight\n")

    def test_docx_payload(self, manuscript):
        payload = export_project(manuscript, "docx")
        assert payload.filename == "Moonlight.docx"
        assert payload.data[:2] == b"PK"

    def test_unknown_format(self, manuscript):
        with pytest.raises(ValueError):
            export_project(manuscript, "pdf")

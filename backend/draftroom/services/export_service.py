"""Export service — render a project as plain text or a Word document.

Both renderers are pure functions of ``ProjectForExport``; chapters are
always emitted in ``order_index`` order regardless of input order.
  - TXT: underlined title, genre/synopsis header, chapters separated by rules
  - DOCX (python-docx): title page, then one Heading 1 per chapter with
    headings, bullet items and bold/italic/underline runs from the markup
"""
from __future__ import annotations

import io
import logging
import re
from dataclasses import dataclass, field
from urllib.parse import quote

from bs4 import BeautifulSoup, Comment, NavigableString, Tag
from docx import Document
from docx.enum.text import WD_ALIGN_PARAGRAPH
from werkzeug.utils import secure_filename

logger = logging.getLogger(__name__)

RULE = "-" * 60


@dataclass
class ChapterForExport:
    title: str
    content: str | None
    order_index: int


@dataclass
class ProjectForExport:
    """Minimal project representation for export."""
    title: str
    description: str | None = None
    genre: str | None = None
    chapters: list[ChapterForExport] = field(default_factory=list)

    @property
    def ordered_chapters(self) -> list[ChapterForExport]:
        return sorted(self.chapters, key=lambda c: c.order_index)

    @classmethod
    def from_model(cls, project) -> "ProjectForExport":
        return cls(
            title=project.title,
            description=project.description,
            genre=project.genre,
            chapters=[
                ChapterForExport(title=c.title, content=c.content, order_index=c.order_index)
                for c in project.chapters
            ],
        )


@dataclass
class ExportPayload:
    filename: str
    ascii_filename: str
    content_type: str
    data: bytes

    @property
    def content_disposition(self) -> str:
        return build_content_disposition(self.filename, self.ascii_filename)


# ── Markup helpers ─────────────────────────────────────────────────────

@dataclass
class _Run:
    text: str
    bold: bool = False
    italic: bool = False
    underline: bool = False


@dataclass
class _Block:
    kind: str  # paragraph | heading | bullet
    runs: list[_Run]
    level: int = 0

    @property
    def text(self) -> str:
        return "".join(run.text for run in self.runs)


_BOLD_TAGS = {"strong", "b"}
_ITALIC_TAGS = {"em", "i"}
_UNDERLINE_TAGS = {"u"}
_HEADING_LEVELS = {"h1": 1, "h2": 2, "h3": 3}
_PARAGRAPH_TAGS = {"p", "div", "blockquote", "pre", "h4", "h5", "h6", "section", "article"}
_LIST_TAGS = {"ul", "ol"}
_BLOCK_TAGS = _PARAGRAPH_TAGS | _LIST_TAGS | set(_HEADING_LEVELS) | {"li"}


def _node_runs(node, bold=False, italic=False, underline=False) -> list[_Run]:
    """Text runs for one node; tags pass their formatting down to descendants."""
    if isinstance(node, Comment):
        return []
    if isinstance(node, NavigableString):
        return [_Run(str(node), bold, italic, underline)] if str(node) else []
    if not isinstance(node, Tag):
        return []
    if node.name == "br":
        return [_Run("\n", bold, italic, underline)]
    bold = bold or node.name in _BOLD_TAGS
    italic = italic or node.name in _ITALIC_TAGS
    underline = underline or node.name in _UNDERLINE_TAGS
    runs: list[_Run] = []
    for child in node.children:
        if isinstance(child, Tag) and child.name in _BLOCK_TAGS and runs:
            runs.append(_Run("\n", bold, italic, underline))
        runs.extend(_node_runs(child, bold, italic, underline))
    return runs


def _is_blank(runs: list[_Run]) -> bool:
    return not "".join(run.text for run in runs).strip()


def _collect_blocks(container: Tag, blocks: list[_Block]) -> None:
    loose: list[_Run] = []

    def flush():
        if not _is_blank(loose):
            blocks.append(_Block(kind="paragraph", runs=list(loose)))
        loose.clear()

    for child in container.children:
        name = child.name if isinstance(child, Tag) else None
        if name in _LIST_TAGS or (
            name in _PARAGRAPH_TAGS
            and any(isinstance(c, Tag) and c.name in _BLOCK_TAGS for c in child.children)
        ):
            flush()
            _collect_blocks(child, blocks)
        elif name in _HEADING_LEVELS or name in _PARAGRAPH_TAGS or name == "li":
            flush()
            runs = _node_runs(child)
            if _is_blank(runs):
                continue
            if name in _HEADING_LEVELS:
                blocks.append(_Block(kind="heading", runs=runs, level=_HEADING_LEVELS[name]))
            else:
                blocks.append(_Block(kind="bullet" if name == "li" else "paragraph", runs=runs))
        else:
            loose.extend(_node_runs(child))
    flush()


def parse_markup_blocks(markup: str | None) -> list[_Block]:
    """Split editor markup into paragraphs, headings and bullet items."""
    blocks: list[_Block] = []
    if markup:
        _collect_blocks(BeautifulSoup(markup, "html.parser"), blocks)
    return blocks


def markup_to_plain_text(markup: str | None) -> str:
    """Convert editor markup to readable text with paragraph breaks."""
    parts: list[str] = []
    previous = None
    for block in parse_markup_blocks(markup):
        text = block.text.strip()
        if block.kind == "bullet":
            text = f"• {text}"
        if parts:
            parts.append("\n" if previous == "bullet" and block.kind == "bullet" else "\n\n")
        parts.append(text)
        previous = block.kind
    return "".join(parts)


# ── Format converters ──────────────────────────────────────────────────

def to_txt(project: ProjectForExport) -> str:
    lines: list[str] = [project.title, "=" * len(project.title), ""]

    if project.genre:
        lines += [f"Genre: {project.genre}", ""]
    if project.description:
        lines += ["Synopsis:", project.description, ""]

    lines += [RULE, ""]

    chapters = project.ordered_chapters
    for index, chapter in enumerate(chapters):
        lines += [f"# {chapter.title}", ""]
        lines.append(markup_to_plain_text(chapter.content) or "(No content)")
        if index < len(chapters) - 1:
            lines += ["", RULE, ""]

    return "\n".join(lines)


def to_docx_bytes(project: ProjectForExport) -> bytes:
    doc = Document()

    title = doc.add_heading(project.title, level=0)
    title.alignment = WD_ALIGN_PARAGRAPH.CENTER

    if project.genre:
        genre = doc.add_paragraph()
        genre.alignment = WD_ALIGN_PARAGRAPH.CENTER
        genre.add_run(f"Genre: {project.genre}").italic = True

    if project.description:
        doc.add_heading("Synopsis", level=2)
        doc.add_paragraph(project.description)

    doc.add_page_break()

    for index, chapter in enumerate(project.ordered_chapters):
        heading = doc.add_heading(chapter.title, level=1)
        if index > 0:
            heading.paragraph_format.page_break_before = True

        blocks = parse_markup_blocks(chapter.content)
        if not blocks:
            doc.add_paragraph("")
        for block in blocks:
            if block.kind == "heading":
                paragraph = doc.add_heading("", level=block.level)
            elif block.kind == "bullet":
                paragraph = doc.add_paragraph(style="List Bullet")
            else:
                paragraph = doc.add_paragraph()
            for run in block.runs:
                r = paragraph.add_run(run.text)
                r.bold = run.bold or None
                r.italic = run.italic or None
                r.underline = run.underline or None

    buf = io.BytesIO()
    doc.save(buf)
    return buf.getvalue()


# ── Filenames ──────────────────────────────────────────────────────────

_UNSAFE_FILENAME_RE = re.compile(r'[<>:"/\\|?*\x00-\x1f\x7f]')


def sanitize_filename_base(title: str, max_length: int = 100) -> str:
    """Title with filesystem-unsafe characters removed; never empty."""
    cleaned = _UNSAFE_FILENAME_RE.sub(" ", title)
    cleaned = re.sub(r"\s+", " ", cleaned).strip()
    cleaned = re.sub(r"[. ]+$", "", cleaned)
    cleaned = re.sub(r"[. ]+$", "", cleaned[:max_length])
    return cleaned or "project"


def ascii_filename_base(base: str) -> str:
    """ASCII-only fallback for clients that ignore ``filename*``."""
    return secure_filename(base) or "project"


def build_content_disposition(filename: str, ascii_fallback: str) -> str:
    safe_ascii = ascii_fallback.replace('"', "")
    return f"attachment; filename=\"{safe_ascii}\"; filename*=UTF-8''{quote(filename, safe='')}"


# ── Dispatcher ─────────────────────────────────────────────────────────

EXPORTERS = {
    "txt": to_txt,
}

BINARY_EXPORTERS = {
    "docx": to_docx_bytes,
}

CONTENT_TYPES = {
    "txt": "text/plain; charset=utf-8",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}


def export_project(project: ProjectForExport, fmt: str, max_filename_length: int = 100) -> ExportPayload:
    """Render *project* in *fmt* and name the result after its title."""
    if fmt in BINARY_EXPORTERS:
        data = BINARY_EXPORTERS[fmt](project)
    elif fmt in EXPORTERS:
        data = EXPORTERS[fmt](project).encode("utf-8")
    else:
        raise ValueError(f"Unsupported export format: {fmt}")

    base = sanitize_filename_base(project.title, max_filename_length)
    payload = ExportPayload(
        filename=f"{base}.{fmt}",
        ascii_filename=f"{ascii_filename_base(base)}.{fmt}",
        content_type=CONTENT_TYPES[fmt],
        data=data,
    )
    logger.info(f"Exported {project.title!r} as {fmt} ({len(data)} bytes, {len(project.chapters)} chapters)")
    return payload

"""PDF rendering of meeting summaries."""

from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Callable, List, Optional

from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.cidfonts import UnicodeCIDFont
from reportlab.pdfgen import canvas

from .errors import RenderError
from .models import PageLayout, PlacedLine, RenderedPage
from .storage import build_document_path, fallback_basename, sanitize_filename

logger = logging.getLogger("voiceminutes")

STYLE_HEADING = "heading"
STYLE_SUB_ITEM = "sub_item"
STYLE_BODY = "body"

HEADING_PREFIX = "■"
SUB_ITEM_PREFIXES = ("・", "-")

# "1. 議題" optionally preceded by the heading mark, then an optional colon.
TITLE_PATTERN = re.compile(
    r"^[ \t　]*■?[ \t　]*1\.[ \t　]*議題[ \t　]*[:：]?[ \t　]*(.+)$",
    re.MULTILINE,
)

Measure = Callable[[str], float]


def ensure_font(font_name: str) -> str:
    if font_name not in pdfmetrics.getRegisteredFontNames():
        pdfmetrics.registerFont(UnicodeCIDFont(font_name))
    return font_name


def text_measure(layout: PageLayout, font_size: Optional[float] = None) -> Measure:
    font_name = ensure_font(layout.font_name)
    size = font_size or layout.body_font_size
    return lambda text: pdfmetrics.stringWidth(text, font_name, size)


def wrap_line(line: str, max_width: float, measure: Measure) -> List[str]:
    """Split ``line`` into pieces no wider than ``max_width``.

    Breaks happen between any two characters, not at word boundaries.
    """
    if measure(line) <= max_width:
        return [line]
    pieces: List[str] = []
    current = ""
    for char in line:
        candidate = current + char
        if current and measure(candidate) > max_width:
            pieces.append(current)
            current = char
        else:
            current = candidate
    if current:
        pieces.append(current)
    return pieces


def wrap_lines(text: str, layout: PageLayout, measure: Optional[Measure] = None) -> List[str]:
    measure = measure or text_measure(layout)
    wrapped: List[str] = []
    for line in text.split("\n"):
        wrapped.extend(wrap_line(line, layout.usable_width, measure))
    return wrapped


def classify_line(line: str) -> str:
    if line.startswith(HEADING_PREFIX):
        return STYLE_HEADING
    if line.startswith(SUB_ITEM_PREFIXES):
        return STYLE_SUB_ITEM
    return STYLE_BODY


def _place(line: str, y: float, layout: PageLayout) -> PlacedLine:
    style = classify_line(line)
    if style == STYLE_HEADING:
        return PlacedLine(line, layout.margin, y, layout.heading_font_size, True, style)
    if style == STYLE_SUB_ITEM:
        x = layout.margin + layout.sub_item_indent
        return PlacedLine(line, x, y, layout.body_font_size, True, style)
    return PlacedLine(line, layout.margin, y, layout.body_font_size, False, style)


def line_spacing(line: str, layout: PageLayout) -> float:
    if classify_line(line) == STYLE_HEADING:
        return layout.heading_spacing
    return layout.body_spacing


def paginate(lines: List[str], layout: PageLayout) -> List[RenderedPage]:
    """Assign already wrapped lines to pages.

    ``y`` is the baseline distance from the top edge. A line that lands
    exactly on the bottom margin stays on the current page.
    """
    pages: List[RenderedPage] = []
    current: List[PlacedLine] = []
    y = layout.margin
    for line in lines:
        spacing = line_spacing(line, layout)
        if y + spacing > layout.bottom_limit:
            pages.append(RenderedPage(len(pages) + 1, tuple(current)))
            current = []
            y = layout.margin
        current.append(_place(line, y, layout))
        y += spacing
    pages.append(RenderedPage(len(pages) + 1, tuple(current)))
    return pages


def layout_pages(
    summary: str,
    layout: Optional[PageLayout] = None,
    measure: Optional[Measure] = None,
) -> List[RenderedPage]:
    layout = layout or PageLayout()
    return paginate(wrap_lines(summary, layout, measure), layout)


def derive_file_name(summary: str, now: Optional[datetime] = None) -> str:
    match = TITLE_PATTERN.search(summary)
    title = match.group(1).strip() if match else ""
    if not title:
        return fallback_basename(now)
    return sanitize_filename(title)


def draw_pages(path: str, pages: List[RenderedPage], layout: PageLayout) -> None:
    font_name = ensure_font(layout.font_name)
    pdf = canvas.Canvas(path, pagesize=(layout.page_width, layout.page_height))
    pdf.setLineWidth(0.4)
    for page in pages:
        for placed in page.lines:
            text = pdf.beginText(placed.x, layout.page_height - placed.y)
            text.setFont(font_name, placed.font_size)
            # Fill+stroke thickens the glyphs; the CID fonts ship no bold face.
            text.setTextRenderMode(2 if placed.bold else 0)
            text.textOut(placed.text)
            pdf.drawText(text)
        pdf.showPage()
    pdf.save()


def render_summary_pdf(
    summary: str,
    output_dir: str,
    layout: Optional[PageLayout] = None,
    now: Optional[datetime] = None,
) -> str:
    """Lay out ``summary`` and write it to ``<title>.pdf`` in ``output_dir``."""
    layout = layout or PageLayout()
    try:
        pages = layout_pages(summary, layout)
        path = build_document_path(output_dir, derive_file_name(summary, now))
        draw_pages(path, pages, layout)
    except Exception as exc:
        logger.exception("PDF generation failed")
        raise RenderError(f"Could not write PDF: {exc}") from exc
    logger.info("PDF written: %s (%d pages)", path, len(pages))
    return path

"""
Small reportlab helpers for the tabular PDF exports (package ledger,
payroll detail, partner invoice). STSong-Light is a built-in CID font,
so Chinese names render without shipping font files.
"""
import io

from django.http import HttpResponse
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.cidfonts import UnicodeCIDFont
from reportlab.pdfgen import canvas

FONT = 'STSong-Light'
PAGE_W, PAGE_H = A4
MARGIN = 15 * mm
ROW_H = 6 * mm

_font_registered = False


def _ensure_font():
    global _font_registered
    if not _font_registered:
        pdfmetrics.registerFont(UnicodeCIDFont(FONT))
        _font_registered = True


def _fit(text, width, size):
    """Trim text so it fits in `width` points."""
    text = '' if text is None else str(text)
    if pdfmetrics.stringWidth(text, FONT, size) <= width:
        return text
    while text and pdfmetrics.stringWidth(text + '…', FONT, size) > width:
        text = text[:-1]
    return text + '…'


def render_table_pdf(title, meta_lines, header, rows, col_widths, footer_lines=None):
    """
    One title, a block of "Label: value" lines, then a paged table.
    col_widths are in mm and should add up to at most the printable width.
    """
    _ensure_font()
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=A4)
    widths = [w * mm for w in col_widths]

    def draw_header_row(y):
        c.setFont(FONT, 9)
        x = MARGIN
        for label, w in zip(header, widths):
            c.drawString(x + 1, y, _fit(label, w - 2, 9))
            x += w
        c.line(MARGIN, y - 2, MARGIN + sum(widths), y - 2)
        return y - ROW_H

    y = PAGE_H - MARGIN
    c.setFont(FONT, 16)
    c.drawString(MARGIN, y, title)
    y -= 10 * mm
    c.setFont(FONT, 10)
    for line in meta_lines:
        c.drawString(MARGIN, y, line)
        y -= 5 * mm
    y -= 3 * mm
    y = draw_header_row(y)

    c.setFont(FONT, 9)
    for row in rows:
        if y < MARGIN + ROW_H:
            c.showPage()
            y = draw_header_row(PAGE_H - MARGIN)
            c.setFont(FONT, 9)
        x = MARGIN
        for value, w in zip(row, widths):
            c.drawString(x + 1, y, _fit(value, w - 2, 9))
            x += w
        y -= ROW_H

    if footer_lines:
        y -= 3 * mm
        c.setFont(FONT, 10)
        for line in footer_lines:
            if y < MARGIN:
                c.showPage()
                c.setFont(FONT, 10)
                y = PAGE_H - MARGIN
            c.drawString(MARGIN, y, line)
            y -= 5 * mm

    c.showPage()
    c.save()
    return buf.getvalue()


def pdf_response(pdf_bytes, filename):
    resp = HttpResponse(pdf_bytes, content_type='application/pdf')
    resp['Content-Disposition'] = f'attachment; filename="{filename}"'
    return resp

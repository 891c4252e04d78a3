"""Print detection, image preloading and PDF generation for quotations."""
import base64
import binascii
import ipaddress
import logging
import re
import socket
from concurrent.futures import ThreadPoolExecutor
from io import BytesIO
from urllib.parse import urlsplit
from xml.sax.saxutils import escape

import requests
from flask import current_app, has_app_context
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.platypus import (
    BaseDocTemplate, Flowable, Frame, Image, PageTemplate, Paragraph, Spacer, Table, TableStyle,
)
from reportlab.platypus.doctemplate import LayoutError

from cotizador.rendering.layout import FALLBACK_COLOR, format_cell, format_currency
from cotizador.services.storage_service import StorageService

logger = logging.getLogger(__name__)

MOBILE_USER_AGENT = re.compile(r'Mobi|Android')
MAX_IMAGE_WORKERS = 8
DEFAULT_IMAGE_TIMEOUT = 10
DEFAULT_MAX_IMAGE_BYTES = 5 * 1024 * 1024
IMAGE_CHUNK_SIZE = 64 * 1024
DEFAULT_MARGIN_MM = 10

GREY = colors.HexColor('#555555')
GREY_LIGHT = colors.HexColor('#888888')
BORDER = colors.HexColor('#cccccc')
ROW_ALT = colors.HexColor('#f9fafb')

# Relative widths of the item table columns.
COLUMN_WEIGHTS = {
    'sequence': 0.6,
    'description': 3.0,
    'quantity': 0.6,
    'availability': 1.1,
    'warranty': 1.0,
    'unit_price': 1.2,
    'iva_percentage': 0.6,
    'iva_amount': 1.1,
    'subtotal': 1.2,
    'total': 1.2,
}


class ExportError(Exception):
    """The quotation could not be converted to a PDF document."""


def is_mobile_user_agent(user_agent):
    return bool(user_agent and MOBILE_USER_AGENT.search(user_agent))


def pdf_filename(number):
    safe_number = "".join(c for c in (number or '') if c.isalnum() or c in '-_')
    return f'Cotizacion-{safe_number or "borrador"}.pdf'


# ----- Image preloading -----

def _read_file(path):
    with open(path, 'rb') as f:
        return f.read()


def _host_addresses(host):
    return {info[4][0] for info in socket.getaddrinfo(host, None)}


def _require_public_host(url):
    """Refuse hosts that resolve to anything but public internet addresses."""
    host = urlsplit(url).hostname
    if not host:
        raise ValueError('URL has no host')
    addresses = _host_addresses(host)
    if not addresses or not all(ipaddress.ip_address(a.split('%', 1)[0]).is_global for a in addresses):
        raise ValueError(f'{host} does not resolve to a public address')


def _fetch(url, timeout, max_bytes):
    _require_public_host(url)
    with requests.get(url, timeout=timeout, stream=True, allow_redirects=False) as response:
        if response.is_redirect:
            raise ValueError('redirects are not followed')
        response.raise_for_status()
        body = bytearray()
        for chunk in response.iter_content(chunk_size=IMAGE_CHUNK_SIZE):
            body.extend(chunk)
            if len(body) > max_bytes:
                raise ValueError(f'image is larger than {max_bytes} bytes')
        return bytes(body)


def _decode_data_url(url):
    header, _, payload = url.partition(',')
    if ';base64' in header:
        return base64.b64decode(payload, validate=True)
    return payload.encode('latin-1')


def _image_loader(url):
    """Pick how ``url`` is loaded; returns (callable, argument) or None."""
    if url.startswith('data:'):
        return _decode_data_url, url
    if has_app_context():
        path = StorageService.local_path(url)
        if path:
            return _read_file, path
    if url.startswith(('http://', 'https://')):
        return _fetch, url
    return None


def _settle(loader, argument, url, timeout, max_bytes):
    try:
        if loader is _fetch:
            return loader(argument, timeout, max_bytes)
        return loader(argument)
    except (requests.RequestException, OSError, ValueError, binascii.Error) as e:
        logger.warning('Image %s could not be loaded: %s', url[:120], e)
        return None


def preload_images(urls, timeout=None, max_bytes=None):
    """Load every referenced image concurrently.

    Returns ``{url: bytes or None}``; every load settles, a failure simply
    means the image is left out of the document.
    Remote images come only from public hosts, without following redirects,
    and are cut off past ``max_bytes``.
    """
    if timeout is None:
        timeout = current_app.config.get('IMAGE_LOAD_TIMEOUT', DEFAULT_IMAGE_TIMEOUT) if has_app_context() \
            else DEFAULT_IMAGE_TIMEOUT
    if max_bytes is None:
        max_bytes = current_app.config.get('IMAGE_MAX_BYTES', DEFAULT_MAX_IMAGE_BYTES) if has_app_context() \
            else DEFAULT_MAX_IMAGE_BYTES
    unique = [u for u in dict.fromkeys(urls) if u]
    results = {}
    jobs = {}
    for url in unique:
        loader = _image_loader(url)
        if loader is None:
            logger.warning('Image %s has an unsupported location', url[:120])
            results[url] = None
        else:
            jobs[url] = loader
    if jobs:
        with ThreadPoolExecutor(max_workers=min(MAX_IMAGE_WORKERS, len(jobs))) as pool:
            futures = {
                url: pool.submit(_settle, loader, argument, url, timeout, max_bytes)
                for url, (loader, argument) in jobs.items()
            }
            for url, future in futures.items():
                results[url] = future.result()
    return results


def layout_image_urls(layout):
    urls = []
    if layout['company'].get('logo_url'):
        urls.append(layout['company']['logo_url'])
    if layout['show_images']:
        urls.extend(item['image_url'] for item in layout['items'] if item.get('image_url'))
    return urls


# ----- PDF -----

class _LineFlowable(Flowable):
    """Horizontal rule across the frame in the brand color."""
    def __init__(self, width_pt, color, thickness=1.5, height_pt=4):
        super().__init__()
        self.width_pt = width_pt
        self.color = color
        self.thickness = thickness
        self.height_pt = height_pt

    def wrap(self, aW, aH):
        return (self.width_pt, self.height_pt)

    def draw(self):
        self.canv.setStrokeColor(self.color)
        self.canv.setLineWidth(self.thickness)
        self.canv.line(0, 0, self.width_pt, 0)


def _hline(width_pt):
    t = Table([['']], colWidths=[width_pt], rowHeights=[2])
    t.setStyle(TableStyle([
        ('LINEBELOW', (0, 0), (-1, -1), 0.5, BORDER),
        ('LEFTPADDING', (0, 0), (-1, -1), 0),
        ('RIGHTPADDING', (0, 0), (-1, -1), 0),
    ]))
    return t


def _brand_color(value):
    try:
        return colors.HexColor(value or FALLBACK_COLOR)
    except ValueError:
        return colors.HexColor(FALLBACK_COLOR)


def _text(value):
    return escape(str(value or '')).replace('\n', '<br/>')


class PdfRenderer:
    """Standard layout; subclasses change the title and the emphasis."""

    title = 'COTIZACIÓN'
    number_label = 'No:'
    logo_box = (22 * mm, 22 * mm)
    image_box = (18 * mm, 18 * mm)
    total_label = 'TOTAL:'
    title_size = 16

    def __init__(self, layout, images, margin_mm=DEFAULT_MARGIN_MM):
        self.layout = layout
        self.images = images or {}
        self.margin = margin_mm * mm
        self.frame_width = A4[0] - 2 * self.margin
        self.color = _brand_color(layout['primary_color'])
        styles = getSampleStyleSheet()
        self.styles = {
            'company': ParagraphStyle('Company', parent=styles['Normal'], fontName='Helvetica-Bold',
                                      fontSize=16, leading=19, spaceAfter=2),
            'title': ParagraphStyle('DocTitle', parent=styles['Normal'], fontName='Helvetica-Bold',
                                    fontSize=self.title_size, leading=self.title_size + 3,
                                    textColor=self.color, alignment=2),
            'small': ParagraphStyle('Small', parent=styles['Normal'], fontSize=9, leading=11, textColor=GREY),
            'small_right': ParagraphStyle('SmallRight', parent=styles['Normal'], fontSize=9, leading=11,
                                          textColor=GREY, alignment=2),
            'heading': ParagraphStyle('Heading', parent=styles['Normal'], fontName='Helvetica-Bold',
                                      fontSize=11, leading=14, spaceAfter=4),
            'body': ParagraphStyle('Body', parent=styles['Normal'], fontSize=9, leading=12),
            'cell': ParagraphStyle('Cell', parent=styles['Normal'], fontSize=8, leading=10),
            'cell_head': ParagraphStyle('CellHead', parent=styles['Normal'], fontName='Helvetica-Bold',
                                        fontSize=8, leading=10),
            'footer': ParagraphStyle('Footer', parent=styles['Normal'], fontSize=8, leading=11,
                                     textColor=GREY_LIGHT, alignment=1),
        }

    # ----- helpers -----

    def _image(self, url, box):
        data = self.images.get(url) if url else None
        if not data:
            return None
        try:
            reader = ImageReader(BytesIO(data))
            iw, ih = reader.getSize()
            scale = min(box[0] / iw, box[1] / ih, 1.0) if iw and ih else 1.0
            img = Image(BytesIO(data), width=(iw * scale) if iw else box[0], height=(ih * scale) if ih else box[1])
        except Exception as e:
            # Corrupt or non-image payloads settle like a failed load.
            logger.warning('Image %s could not be decoded: %s', url[:120], e)
            return None
        img.hAlign = 'LEFT'
        return img

    def _column_widths(self):
        weights = [COLUMN_WEIGHTS[c['key']] for c in self.layout['columns']]
        total = sum(weights)
        return [self.frame_width * w / total for w in weights]

    # ----- sections -----

    def header(self):
        company = self.layout['company']
        logo = self._image(company.get('logo_url'), self.logo_box) or Spacer(1, 1)
        left = [Paragraph(_text(company['name']) or '&nbsp;', self.styles['company'])]
        if company['nit']:
            left.append(Paragraph(f'<b>NIT:</b> {_text(company["nit"])}', self.styles['small']))
        right = [
            Paragraph(self.title, self.styles['title']),
            Paragraph(f'<b>{self.number_label}</b> {_text(self.layout["number"])}', self.styles['small_right']),
            Paragraph(f'<b>Fecha:</b> {_text(self.layout["date"])}', self.styles['small_right']),
        ]
        logo_width = self.logo_box[0] + 4 * mm
        right_width = 70 * mm
        table = Table([[logo, left, right]],
                      colWidths=[logo_width, self.frame_width - logo_width - right_width, right_width])
        table.setStyle(TableStyle([
            ('VALIGN', (0, 0), (-1, -1), 'TOP'),
            ('LEFTPADDING', (0, 0), (0, 0), 0),
            ('RIGHTPADDING', (-1, 0), (-1, 0), 0),
        ]))
        return [table, Spacer(1, 3 * mm), _LineFlowable(self.frame_width, self.color), Spacer(1, 5 * mm)]

    def customer_block(self):
        customer = self.layout['customer']
        lines = [Paragraph('Datos del Cliente', self.styles['heading']),
                 Paragraph(f'<b>Cliente:</b> {_text(customer["name"]) or "N/A"}', self.styles['body'])]
        if customer['company']:
            lines.append(Paragraph(f'<b>Empresa:</b> {_text(customer["company"])}', self.styles['body']))
        lines.append(Paragraph(f'<b>NIT/CC:</b> {_text(customer["document"]) or "N/A"}', self.styles['body']))
        lines.append(Paragraph(f'<b>Email:</b> {_text(customer["email"]) or "N/A"}', self.styles['body']))
        lines.append(Paragraph(f'<b>Teléfono:</b> {_text(customer["phone"]) or "N/A"}', self.styles['body']))
        if customer['address']:
            lines.append(Paragraph(f'<b>Dirección:</b> {_text(customer["address"])}', self.styles['body']))
        lines.append(Spacer(1, 5 * mm))
        return lines

    def description_cell(self, item):
        content = [Paragraph(_text(item['description']) or 'Sin descripción', self.styles['cell'])]
        if self.layout['show_images']:
            img = self._image(item.get('image_url'), self.image_box)
            if img is not None:
                content.extend([Spacer(1, 1.5 * mm), img])
        return content

    def items_table(self):
        columns = self.layout['columns']
        data = [[Paragraph(c['label'], self.styles['cell_head']) for c in columns]]
        for item in self.layout['items']:
            row = []
            for column in columns:
                if column['key'] == 'description':
                    row.append(self.description_cell(item))
                else:
                    row.append(format_cell(item, column))
            data.append(row)
        table = Table(data, colWidths=self._column_widths(), repeatRows=1)
        style = [
            ('BACKGROUND', (0, 0), (-1, 0), colors.Color(self.color.red, self.color.green, self.color.blue, alpha=0.12)),
            ('GRID', (0, 0), (-1, -1), 0.5, BORDER),
            ('VALIGN', (0, 0), (-1, -1), 'TOP'),
            ('FONTSIZE', (0, 1), (-1, -1), 8),
            ('TOPPADDING', (0, 0), (-1, -1), 4),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 4),
        ]
        for index, column in enumerate(columns):
            if column['kind'] == 'money':
                style.append(('ALIGN', (index, 1), (index, -1), 'RIGHT'))
            elif column['kind'] in ('number', 'percent') or column['key'] == 'sequence':
                style.append(('ALIGN', (index, 1), (index, -1), 'CENTER'))
        style.extend(self.row_style(len(data)))
        table.setStyle(TableStyle(style))
        return [Paragraph('Productos y Servicios', self.styles['heading']), table, Spacer(1, 4 * mm)]

    def row_style(self, row_count):
        return []

    def observations(self):
        text = self.layout['observations']
        if not text:
            return []
        return [Paragraph('Observaciones', self.styles['heading']),
                Paragraph(_text(text), self.styles['body']),
                Spacer(1, 4 * mm)]

    def totals_rows(self):
        totals = self.layout['totals']
        return [
            ['Subtotal:', format_currency(totals['subtotal'])],
            ['IVA:', format_currency(totals['total_iva'])],
            [self.total_label, format_currency(totals['total'])],
        ]

    def totals(self):
        rows = self.totals_rows()
        width = 75 * mm
        table = Table([[''] + r for r in rows], colWidths=[self.frame_width - width, width * 0.45, width * 0.55])
        table.setStyle(TableStyle([
            ('GRID', (1, 0), (-1, -1), 0.5, BORDER),
            ('ALIGN', (2, 0), (2, -1), 'RIGHT'),
            ('FONTNAME', (1, 0), (1, -1), 'Helvetica-Bold'),
            ('FONTNAME', (1, -1), (-1, -1), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, -1), 9),
            ('FONTSIZE', (1, -1), (-1, -1), 11),
            ('TEXTCOLOR', (2, -1), (2, -1), self.color),
        ]))
        return [table, Spacer(1, 8 * mm)]

    def footer(self):
        company = self.layout['company']
        contact = [company[k] for k in ('phone', 'email', 'address', 'city') if company[k]]
        story = [_hline(self.frame_width), Spacer(1, 2 * mm)]
        if contact:
            story.append(Paragraph(_text(' | '.join(contact)), self.styles['footer']))
        story.append(Paragraph(
            f'Esta cotización es válida por {self.layout["validity_days"]} días a partir de la fecha de emisión.',
            self.styles['footer'],
        ))
        story.append(Paragraph('Gracias por su confianza en nuestros servicios.', self.styles['footer']))
        return story

    def story(self):
        return (self.header() + self.customer_block() + self.items_table()
                + self.observations() + self.totals() + self.footer())

    def build(self):
        buffer = BytesIO()
        page_width, page_height = A4
        frame = Frame(
            self.margin, self.margin, self.frame_width, page_height - 2 * self.margin,
            id='normal', leftPadding=0, rightPadding=0, topPadding=0, bottomPadding=0,
        )
        doc = BaseDocTemplate(
            buffer, pagesize=A4,
            leftMargin=self.margin, rightMargin=self.margin, topMargin=self.margin, bottomMargin=self.margin,
            title=f'Cotización {self.layout["number"]}',
        )
        doc.addPageTemplates([PageTemplate(id='Page', frames=[frame])])
        doc.build(self.story())
        return buffer.getvalue()


class StandardPdfRenderer(PdfRenderer):
    pass


class CompactPdfRenderer(PdfRenderer):
    """Smaller header, short customer line and no images."""

    logo_box = (16 * mm, 16 * mm)
    title_size = 13

    def customer_block(self):
        customer = self.layout['customer']
        details = ' - '.join(v for v in (customer['document'], customer['phone']) if v)
        lines = [Paragraph(f'Cliente: {_text(customer["name"]) or "N/A"}', self.styles['heading'])]
        if details:
            lines.append(Paragraph(_text(details), self.styles['small']))
        lines.append(Spacer(1, 4 * mm))
        return lines

    def totals_rows(self):
        return [[self.total_label, format_currency(self.layout['totals']['total'])]]


class DetailedPdfRenderer(PdfRenderer):
    """Full column set, zebra rows and a grand total label."""

    title = 'COTIZACIÓN DETALLADA'
    number_label = 'Número:'
    logo_box = (26 * mm, 26 * mm)
    total_label = 'TOTAL GENERAL:'

    def row_style(self, row_count):
        return [('BACKGROUND', (0, r), (-1, r), ROW_ALT) for r in range(2, row_count, 2)]


PDF_RENDERERS = {
    'standard': StandardPdfRenderer,
    'compact': CompactPdfRenderer,
    'detailed': DetailedPdfRenderer,
}


def build_pdf(layout, images=None):
    """Render ``layout`` to PDF bytes with the renderer for its format."""
    margin = current_app.config.get('PDF_MARGIN_MM', DEFAULT_MARGIN_MM) if has_app_context() else DEFAULT_MARGIN_MM
    renderer = PDF_RENDERERS.get(layout['format'], StandardPdfRenderer)(layout, images, margin)
    try:
        return renderer.build()
    except (LayoutError, ValueError, TypeError, OSError) as e:
        raise ExportError(f'No se pudo generar el PDF: {e}') from e


def export_pdf(layout):
    """Preload every image the layout references, then build the PDF."""
    images = preload_images(layout_image_urls(layout))
    pdf_bytes = build_pdf(layout, images)
    logger.info('Generated PDF for %s', layout['number'] or 'unsaved quotation',
                extra={'quotation_number': layout['number'], 'items': len(layout['items'])})
    return pdf_bytes

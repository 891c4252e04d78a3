"""Layout data shared by every quotation renderer (HTML templates and PDF)."""
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP, localcontext

from flask import current_app, has_app_context

from cotizador.models.quotation import Quotation
from cotizador.services.line_items import normalize_items, renumber
from cotizador.services.pricing import calculate_totals, to_decimal

FORMATS = tuple(Quotation.FORMATS)
DEFAULT_FORMAT = 'standard'
FORMAT_LABELS = {
    'standard': 'Estándar',
    'compact': 'Compacto',
    'detailed': 'Detallado',
}
STATUS_LABELS = {
    'draft': 'Borrador',
    'sent': 'Enviada',
    'approved': 'Aprobada',
    'rejected': 'Rechazada',
}
FALLBACK_COLOR = '#2563eb'
FALLBACK_VALIDITY_DAYS = 30

# key, header, kind (text | number | money | percent)
_COLUMN = {
    'sequence': ('ITEM', 'text'),
    'description': ('DESCRIPCIÓN', 'text'),
    'quantity': ('CANT.', 'number'),
    'availability': ('DISPONIBILIDAD', 'text'),
    'warranty': ('GARANTÍA', 'text'),
    'unit_price': ('PRECIO UNIT.', 'money'),
    'iva_percentage': ('IVA %', 'percent'),
    'iva_amount': ('VALOR IVA', 'money'),
    'subtotal': ('SUBTOTAL', 'money'),
    'total': ('TOTAL', 'money'),
}

FORMAT_COLUMNS = {
    'standard': ('sequence', 'description', 'quantity', 'availability',
                 'unit_price', 'iva_percentage', 'subtotal'),
    'compact': ('sequence', 'description', 'quantity', 'total'),
    'detailed': ('sequence', 'description', 'quantity', 'availability', 'warranty',
                 'unit_price', 'iva_percentage', 'iva_amount', 'total'),
}

# Formats that print the item image under its description.
IMAGE_FORMATS = ('standard', 'detailed')


def resolve_format(name):
    """Unknown or missing format names fall back to the standard layout."""
    return name if name in FORMATS else DEFAULT_FORMAT


def columns_for(fmt):
    return [
        {'key': key, 'label': _COLUMN[key][0], 'kind': _COLUMN[key][1]}
        for key in FORMAT_COLUMNS[resolve_format(fmt)]
    ]


def template_for(fmt):
    return f'quotations/formats/{resolve_format(fmt)}.html'


def format_currency(value):
    """Colombian peso amount without decimals, e.g. ``$ 2.975.000``."""
    amount = to_decimal(value)
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, amount.adjusted() + 2)
        amount = amount.quantize(Decimal('1'), rounding=ROUND_HALF_UP)
    sign = '-' if amount < 0 else ''
    digits = f'{abs(int(amount)):,}'.replace(',', '.')
    return f'{sign}$ {digits}'


def format_percentage(value):
    amount = to_decimal(value).normalize()
    text = f'{amount:f}'
    return f'{text}%'


def format_date(value):
    if value is None or value == '':
        return ''
    if isinstance(value, (date, datetime)):
        return value.strftime('%d/%m/%Y')
    try:
        return datetime.strptime(str(value)[:10], '%Y-%m-%d').strftime('%d/%m/%Y')
    except ValueError:
        return str(value)


def format_cell(item, column):
    value = item.get(column['key'])
    kind = column['kind']
    if kind == 'money':
        return format_currency(value)
    if kind == 'percent':
        return format_percentage(value)
    if value is None:
        return ''
    return str(value)


def _as_dict(record, fields):
    if record is None:
        return {f: '' for f in fields}
    if isinstance(record, dict):
        return {f: record.get(f) or '' for f in fields}
    return {f: getattr(record, f, None) or '' for f in fields}


def _config(key, default):
    if has_app_context():
        return current_app.config.get(key, default)
    return default


def build_layout(company, customer, items, number, quotation_date, observations='', fmt=None):
    """Project quotation state into the data every renderer consumes.

    ``company`` and ``customer`` may be model instances, dicts or None; items
    are normalised and recomputed, and the totals always come from them.
    """
    fmt = resolve_format(fmt)
    line_items = renumber(normalize_items(items))
    company_data = _as_dict(company, ['name', 'nit', 'address', 'city', 'phone', 'email', 'logo_url', 'primary_color'])
    customer_data = _as_dict(customer, ['name', 'company', 'document', 'email', 'phone', 'address'])
    primary_color = company_data['primary_color'] or _config('DEFAULT_PRIMARY_COLOR', FALLBACK_COLOR)

    return {
        'format': fmt,
        'format_label': FORMAT_LABELS[fmt],
        'company': company_data,
        'customer': customer_data,
        'items': line_items,
        'totals': calculate_totals(line_items),
        'number': number or '',
        'date': format_date(quotation_date),
        'observations': observations or '',
        'primary_color': primary_color,
        'columns': columns_for(fmt),
        'show_images': fmt in IMAGE_FORMATS,
        'validity_days': _config('QUOTATION_VALIDITY_DAYS', FALLBACK_VALIDITY_DAYS),
    }


def layout_for_quotation(quotation, items, fmt=None):
    """Layout for a stored quotation; ``fmt`` overrides the saved format for this render only."""
    return build_layout(
        quotation.company,
        quotation.customer,
        items,
        quotation.quotation_number,
        quotation.quotation_date,
        quotation.observations,
        fmt or quotation.format,
    )

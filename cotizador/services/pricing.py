"""Line-item arithmetic and quotation totals."""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

DEFAULT_IVA_PERCENTAGE = Decimal('19')
HUNDRED = Decimal('100')
ZERO = Decimal('0')
CENT = Decimal('0.01')

# Money columns are NUMERIC(14, 2). These bounds keep a line total (up to
# 100% IVA) storable.
MAX_QUANTITY = 9999
MAX_UNIT_PRICE = Decimal('49999999.99')

# Fields whose change triggers recomputation, and what they invalidate.
PRICE_FIELDS = ('quantity', 'unit_price')
TAX_FIELDS = ('iva_percentage',)
DERIVED_FIELDS = ('subtotal', 'iva_amount', 'total')


def to_decimal(value, default=ZERO):
    """Parse a number coming from a form, JSON payload, or spreadsheet cell."""
    if value is None:
        return default
    if isinstance(value, Decimal):
        return value if value.is_finite() else default
    if isinstance(value, bool):
        return default
    text = str(value).strip()
    if not text:
        return default
    try:
        result = Decimal(text)
    except (InvalidOperation, ValueError):
        return default
    return result if result.is_finite() else default


def to_cents(value):
    """Round a money amount to what a NUMERIC(14, 2) column stores."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def recompute_item(item, changed_field=None):
    """Return a copy of ``item`` with derived fields consistent with its inputs.

    With ``changed_field`` set to quantity or unit_price the whole cascade runs
    (subtotal, then IVA amount, then total). For iva_percentage the subtotal is
    kept and only IVA amount and total are recomputed. Any other field leaves
    the derived values alone. ``None`` forces a full recomputation.

    Amounts are rounded to cents at each step, so the stored row reloads to
    the same values.
    """
    result = dict(item)
    if changed_field is None or changed_field in PRICE_FIELDS:
        result['subtotal'] = to_cents(Decimal(int(result.get('quantity') or 0)) * to_decimal(result.get('unit_price')))
    if changed_field is None or changed_field in PRICE_FIELDS + TAX_FIELDS:
        subtotal = to_decimal(result.get('subtotal'))
        iva_amount = to_cents(subtotal * (to_decimal(result.get('iva_percentage')) / HUNDRED))
        result['iva_amount'] = iva_amount
        result['total'] = subtotal + iva_amount
    return result


def calculate_totals(items):
    """Sum a sequence of line items into ``subtotal``, ``total_iva`` and ``total``."""
    subtotal = ZERO
    total_iva = ZERO
    for item in items:
        subtotal += to_decimal(item.get('subtotal'))
        total_iva += to_decimal(item.get('iva_amount'))
    return {'subtotal': subtotal, 'total_iva': total_iva, 'total': subtotal + total_iva}


def catalog_pricing(unit_price, iva_percentage=None):
    """Derived fields of a catalog entry, which is always quoted at quantity 1."""
    iva = DEFAULT_IVA_PERCENTAGE if iva_percentage is None else to_decimal(iva_percentage)
    return recompute_item({'quantity': 1, 'unit_price': to_cents(unit_price), 'iva_percentage': to_cents(iva)})

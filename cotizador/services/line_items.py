"""In-progress quotation line items.

Every operation takes the current list and returns a new one; nothing here
touches the database. The editor page posts its list together with an action
and renders whatever comes back.
"""
import uuid

from cotizador.services.pricing import (
    DEFAULT_IVA_PERCENTAGE, DERIVED_FIELDS, HUNDRED, MAX_QUANTITY, MAX_UNIT_PRICE, ZERO,
    recompute_item, to_cents, to_decimal,
)

EDITABLE_FIELDS = (
    'description', 'quantity', 'unit_price', 'iva_percentage',
    'availability', 'warranty', 'image_url',
)
TEXT_FIELDS = ('description', 'availability', 'warranty', 'image_url')
ACTIONS = ('add', 'remove', 'update', 'adopt')


def _coerce_quantity(value):
    quantity = to_decimal(value, default=None)
    if quantity is None or quantity < 1:
        return 1
    return int(min(quantity, MAX_QUANTITY))


def _coerce_price(value):
    price = to_decimal(value)
    return to_cents(min(max(price, ZERO), MAX_UNIT_PRICE))


def _coerce_iva(value):
    iva = to_decimal(value)
    return to_cents(min(max(iva, ZERO), HUNDRED))


def coerce_value(field, value):
    if field == 'quantity':
        return _coerce_quantity(value)
    if field == 'unit_price':
        return _coerce_price(value)
    if field == 'iva_percentage':
        return _coerce_iva(value)
    return '' if value is None else str(value)


def blank_item(sequence):
    return {
        'id': str(uuid.uuid4()),
        'sequence': sequence,
        'description': '',
        'quantity': 1,
        'unit_price': ZERO,
        'iva_percentage': DEFAULT_IVA_PERCENTAGE,
        'subtotal': ZERO,
        'iva_amount': ZERO,
        'total': ZERO,
        'availability': '',
        'warranty': '',
        'image_url': '',
    }


def normalize_item(raw):
    """Coerce an item received from the browser or storage and recompute it."""
    try:
        sequence = int(raw.get('sequence') or 0)
    except (TypeError, ValueError):
        sequence = 0
    item = blank_item(sequence)
    if raw.get('id'):
        item['id'] = str(raw['id'])
    for field in EDITABLE_FIELDS:
        if field in raw:
            item[field] = coerce_value(field, raw[field])
    if raw.get('iva_percentage') in (None, ''):
        item['iva_percentage'] = DEFAULT_IVA_PERCENTAGE
    return recompute_item(item)


def normalize_items(raw_items):
    return [normalize_item(raw) for raw in (raw_items or [])]


def renumber(items):
    return [dict(item, sequence=index + 1) for index, item in enumerate(items)]


def add_item(items):
    return list(items) + [blank_item(len(items) + 1)]


def remove_item(items, item_id):
    return renumber([item for item in items if item['id'] != item_id])


def update_item(items, item_id, field, value):
    if field in DERIVED_FIELDS:
        raise ValueError(f'{field} es un valor calculado y no se puede editar')
    if field not in EDITABLE_FIELDS:
        raise ValueError(f'Campo de ítem desconocido: {field}')
    result = []
    for item in items:
        if item['id'] == item_id:
            item = dict(item)
            item[field] = coerce_value(field, value)
            item = recompute_item(item, field)
        result.append(item)
    return result


def adopt_from_catalog(items, product):
    """Append an independent copy of a catalog entry at quantity 1."""
    item = blank_item(len(items) + 1)
    item.update({
        'description': product.get('description') or '',
        'unit_price': _coerce_price(product.get('unit_price')),
        'iva_percentage': (
            DEFAULT_IVA_PERCENTAGE if product.get('iva_percentage') in (None, '')
            else _coerce_iva(product.get('iva_percentage'))
        ),
        'availability': product.get('availability') or '',
        'warranty': product.get('warranty') or '',
        'image_url': product.get('image_url') or '',
        'quantity': 1,
    })
    return list(items) + [recompute_item(item)]


def apply_action(items, action):
    """Reducer entry point: normalise ``items`` and apply one editor action.

    ``action`` is a dict with a ``type`` of add, remove, update or adopt.
    ``remove`` and ``update`` take ``id``; ``update`` also takes ``field`` and
    ``value``; ``adopt`` takes ``product`` (a catalog dict).
    """
    items = normalize_items(items)
    kind = (action or {}).get('type')
    if kind == 'add':
        return add_item(items)
    if kind == 'remove':
        return remove_item(items, action.get('id'))
    if kind == 'update':
        return update_item(items, action.get('id'), action.get('field'), action.get('value'))
    if kind == 'adopt':
        return adopt_from_catalog(items, action.get('product') or {})
    raise ValueError(f'Acción desconocida: {kind}')

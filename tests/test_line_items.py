from decimal import Decimal

import pytest

from cotizador.services.line_items import (
    add_item, adopt_from_catalog, apply_action, normalize_item, remove_item, update_item,
)


def _priced(items, item_id, price='1000'):
    return update_item(items, item_id, 'unit_price', price)


def test_add_item_defaults():
    items = add_item([])
    assert len(items) == 1
    item = items[0]
    assert item['sequence'] == 1
    assert item['quantity'] == 1
    assert item['iva_percentage'] == 19
    assert item['subtotal'] == item['iva_amount'] == item['total'] == 0
    assert item['id']


def test_add_item_does_not_mutate_input():
    items = add_item([])
    more = add_item(items)
    assert len(items) == 1
    assert [i['sequence'] for i in more] == [1, 2]


def test_remove_renumbers():
    items = add_item(add_item(add_item([])))
    ids = [i['id'] for i in items]
    result = remove_item(items, ids[1])
    assert [i['id'] for i in result] == [ids[0], ids[2]]
    assert [i['sequence'] for i in result] == [1, 2]


def test_remove_first_renumbers_remaining():
    items = add_item(add_item([]))
    result = remove_item(items, items[0]['id'])
    assert len(result) == 1
    assert result[0]['sequence'] == 1


def test_update_quantity_recomputes():
    items = add_item([])
    item_id = items[0]['id']
    items = _priced(items, item_id)
    items = update_item(items, item_id, 'quantity', '3')
    item = items[0]
    assert item['quantity'] == 3
    assert item['subtotal'] == Decimal('3000')
    assert item['iva_amount'] == Decimal('570')
    assert item['total'] == Decimal('3570')


@pytest.mark.parametrize('raw, expected', [('abc', 1), ('0', 1), ('-4', 1), ('2.7', 2), (5, 5), ('1e9', 9999)])
def test_quantity_coercion(raw, expected):
    items = add_item([])
    items = update_item(items, items[0]['id'], 'quantity', raw)
    assert items[0]['quantity'] == expected


def test_negative_price_becomes_zero():
    items = add_item([])
    items = update_item(items, items[0]['id'], 'unit_price', '-5')
    assert items[0]['unit_price'] == 0
    assert items[0]['total'] == 0


@pytest.mark.parametrize('raw, expected', [
    ('0.005', Decimal('0.01')), ('1999.999', Decimal('2000.00')), ('1e30', Decimal('49999999.99')),
])
def test_price_is_rounded_and_bounded(raw, expected):
    items = add_item([])
    items = update_item(items, items[0]['id'], 'unit_price', raw)
    assert items[0]['unit_price'] == expected
    assert items[0]['total'] == items[0]['subtotal'] + items[0]['iva_amount']


@pytest.mark.parametrize('raw, expected', [('150', 100), ('-3', 0), ('x', 0), ('5', 5)])
def test_iva_clamped(raw, expected):
    items = add_item([])
    items = update_item(items, items[0]['id'], 'iva_percentage', raw)
    assert items[0]['iva_percentage'] == expected


def test_iva_change_recomputes_amount():
    items = add_item([])
    item_id = items[0]['id']
    items = _priced(items, item_id, '2000')
    items = update_item(items, item_id, 'iva_percentage', '5')
    assert items[0]['subtotal'] == Decimal('2000')
    assert items[0]['iva_amount'] == Decimal('100')
    assert items[0]['total'] == Decimal('2100')


def test_text_field_is_plain_assignment():
    items = add_item([])
    item_id = items[0]['id']
    items = _priced(items, item_id)
    items = update_item(items, item_id, 'description', 'Monitor 24"')
    assert items[0]['description'] == 'Monitor 24"'
    assert items[0]['total'] == Decimal('1190')


@pytest.mark.parametrize('field', ['subtotal', 'iva_amount', 'total', 'color'])
def test_rejected_fields(field):
    items = add_item([])
    with pytest.raises(ValueError):
        update_item(items, items[0]['id'], field, '1')


def test_adopt_copies_catalog_entry():
    product = {
        'id': 'p1', 'description': 'Laptop', 'unit_price': Decimal('2500000'),
        'iva_percentage': Decimal('19'), 'availability': 'Inmediata', 'warranty': '1 año',
        'image_url': '/uploads/u/products/1.png',
    }
    items = adopt_from_catalog(add_item([]), product)
    adopted = items[1]
    assert adopted['sequence'] == 2
    assert adopted['quantity'] == 1
    assert adopted['id'] != 'p1'
    assert adopted['description'] == 'Laptop'
    assert adopted['total'] == Decimal('2975000')
    assert adopted['image_url'] == '/uploads/u/products/1.png'

    edited = update_item(items, adopted['id'], 'description', 'Laptop usada')
    assert edited[1]['description'] == 'Laptop usada'
    assert product['description'] == 'Laptop'


def test_adopt_missing_iva_defaults_but_zero_is_kept():
    missing = adopt_from_catalog([], {'description': 'a', 'unit_price': '10'})
    zero = adopt_from_catalog([], {'description': 'b', 'unit_price': '10', 'iva_percentage': 0})
    assert missing[0]['iva_percentage'] == 19
    assert zero[0]['iva_percentage'] == 0
    assert zero[0]['total'] == Decimal('10')


def test_normalize_recomputes_stale_values():
    item = normalize_item({'id': 'a', 'sequence': '1', 'quantity': '2', 'unit_price': '50',
                           'iva_percentage': '', 'subtotal': '999', 'total': '1'})
    assert item['iva_percentage'] == 19
    assert item['subtotal'] == Decimal('100')
    assert item['total'] == Decimal('119')


def test_apply_action_dispatch():
    items = apply_action([], {'type': 'add'})
    items = apply_action(items, {'type': 'update', 'id': items[0]['id'], 'field': 'unit_price', 'value': '10'})
    assert items[0]['subtotal'] == Decimal('10')
    items = apply_action(items, {'type': 'adopt', 'product': {'description': 'x', 'unit_price': '5'}})
    assert len(items) == 2
    items = apply_action(items, {'type': 'remove', 'id': items[0]['id']})
    assert len(items) == 1
    assert items[0]['description'] == 'x'
    assert items[0]['sequence'] == 1


def test_apply_action_unknown_type():
    with pytest.raises(ValueError):
        apply_action([], {'type': 'duplicate'})

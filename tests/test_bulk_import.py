import io
from decimal import Decimal

import openpyxl
import pytest

from cotizador.services.bulk_import import (
    COLUMNS, BulkImportError, UnsupportedFileError, build_example_csv, build_example_workbook, process_file,
)

HEADER = ';'.join(COLUMNS)


def _csv(*lines, encoding='utf-8'):
    return '\r\n'.join((HEADER,) + lines).encode(encoding)


def _workbook(*rows):
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.append(COLUMNS)
    for row in rows:
        ws.append(list(row))
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


def test_csv_row_becomes_catalog_product():
    result = process_file('productos.csv', _csv('001;Laptop Dell;2500000;19;Inmediata;1 año;'))
    assert result['total'] == 1
    assert result['errors'] == []
    product = result['products'][0]
    assert product['item_number'] == '001'
    assert product['description'] == 'Laptop Dell'
    assert product['quantity'] == 1
    assert product['unit_price'] == Decimal('2500000')
    assert product['subtotal'] == Decimal('2500000')
    assert product['iva_amount'] == Decimal('475000')
    assert product['total'] == Decimal('2975000')
    assert product['warranty'] == '1 año'
    assert product['image_url'] is None


def test_csv_defaults_for_blank_optional_columns():
    result = process_file('productos.csv', _csv(';Cable HDMI;15000;;;;'))
    product = result['products'][0]
    assert product['iva_percentage'] == 19
    assert product['availability'] == 'Consultar'
    assert product['warranty'] == 'Garantía estándar'
    assert product['item_number'] == ''


def test_csv_with_bom_and_latin1():
    with_bom = b'\xef\xbb\xbf' + _csv('1;Silla;100;0;;;')
    assert process_file('a.csv', with_bom)['products'][0]['iva_percentage'] == 0
    latin1 = _csv('1;Garantía extendida;100;19;;;', encoding='latin-1')
    assert process_file('b.csv', latin1)['products'][0]['description'] == 'Garantía extendida'


def test_mixed_rows_keep_valid_subset():
    result = process_file('p.csv', _csv(
        '1;Teclado;450000;19;;;',
        '2;;1000;19;;;',
        '3;Mouse;0;19;;;',
        '4;Monitor;800000;150;;;',
    ))
    assert result['total'] == 4
    assert [p['description'] for p in result['products']] == ['Teclado']
    assert result['errors'] == [
        'Fila 3: La descripción es obligatoria',
        'Fila 4: El precio unitario debe ser un número mayor a 0',
        'Fila 5: El IVA debe ser un número entre 0 y 100',
    ]


def test_every_rule_reported_for_a_row():
    result = process_file('p.csv', _csv('1;Ok;10;;;;', '2; ;abc;x;;;'))
    assert result['errors'] == [
        'Fila 3: La descripción es obligatoria',
        'Fila 3: El precio unitario debe ser un número mayor a 0',
        'Fila 3: El IVA debe ser un número entre 0 y 100',
    ]


def test_all_rows_invalid_raises_with_errors():
    with pytest.raises(BulkImportError) as exc:
        process_file('p.csv', _csv(';;;;;;x', '2;Mouse;-1;;;;'))
    assert str(exc.value).startswith('Errores de validación:')
    assert len(exc.value.errors) == 3


def test_header_only_file_is_empty():
    with pytest.raises(BulkImportError, match='vacío'):
        process_file('p.csv', HEADER.encode())


def test_blank_rows_are_skipped():
    result = process_file('p.csv', _csv('1;Silla;100;19;;;', ';;;;;;', '2;Mesa;200;19;;;'))
    assert result['total'] == 2


def test_ragged_csv_is_rejected():
    with pytest.raises(BulkImportError, match='más campos'):
        process_file('p.csv', _csv('1;Silla;100;19;;;;extra'))
    with pytest.raises(BulkImportError, match='menos campos'):
        process_file('p.csv', _csv('1;Silla;100'))


def test_unsupported_extension():
    with pytest.raises(UnsupportedFileError, match=r'\.xls \(Excel 97-2003\)'):
        process_file('productos.xls', b'whatever')
    with pytest.raises(UnsupportedFileError, match='Formato de archivo no compatible'):
        process_file('productos', b'whatever')


def test_price_beyond_storable_range_is_rejected():
    result = process_file('p.csv', _csv('1;Silla;100;19;;;', '2;Yate;1e30;19;;;'))
    assert [p['description'] for p in result['products']] == ['Silla']
    assert result['errors'] == ['Fila 3: El precio unitario no puede superar 49999999.99']


def test_xlsx_import():
    data = _workbook(
        ('010', 'Silla ergonómica', 150000, 19, 'Inmediata', '1 año', None),
        (None, None, None, None, None, None, None),
        ('011', 'Mesa', 'abc', None, None, None, None),
    )
    result = process_file('catalogo.xlsx', data)
    assert result['total'] == 2
    assert len(result['products']) == 1
    assert result['products'][0]['total'] == Decimal('178500')
    assert result['errors'] == ['Fila 3: El precio unitario debe ser un número mayor a 0']


def test_corrupt_workbook():
    with pytest.raises(BulkImportError, match='No se pudo leer el archivo de Excel'):
        process_file('catalogo.xlsx', b'not a workbook')


def test_example_csv_imports_cleanly():
    data = build_example_csv()
    assert data.startswith(b'\xef\xbb\xbf')
    assert data.splitlines()[0].decode('utf-8-sig') == HEADER
    result = process_file('plantilla_productos.csv', data)
    assert len(result['products']) == 5
    assert result['errors'] == []


def test_example_workbook_layout():
    wb = openpyxl.load_workbook(io.BytesIO(build_example_workbook()))
    ws = wb.active
    assert ws.title == 'Productos'
    assert [c.value for c in ws[1]] == COLUMNS
    assert ws.max_row == 6
    assert ws.column_dimensions['A'].width == 12
    assert ws.column_dimensions['B'].width == 60

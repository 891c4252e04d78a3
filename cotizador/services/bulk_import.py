"""Catalog bulk import from CSV or Excel files, and the example templates."""
import csv
import io
import logging
import zipfile

import openpyxl
from openpyxl.utils import get_column_letter
from openpyxl.utils.exceptions import InvalidFileException

from cotizador.services.pricing import DEFAULT_IVA_PERCENTAGE, MAX_UNIT_PRICE, catalog_pricing, to_decimal

logger = logging.getLogger(__name__)

COLUMNS = [
    'numero_item', 'descripcion', 'precio_unitario', 'iva_porcentaje',
    'disponibilidad', 'garantia', 'url_imagen',
]
COLUMN_WIDTHS = [12, 60, 15, 12, 15, 10, 30]
CSV_DELIMITER = ';'
SUPPORTED_EXTENSIONS = ('csv', 'xlsx', 'xlsm')
DEFAULT_AVAILABILITY = 'Consultar'
DEFAULT_WARRANTY = 'Garantía estándar'
TEMPLATE_BASENAME = 'plantilla_productos'

EXAMPLE_ROWS = [
    {
        'numero_item': '001',
        'descripcion': 'Laptop Dell Inspiron 15 3000 - Intel Core i5, 8GB RAM, 256GB SSD, Windows 11',
        'precio_unitario': 2500000,
        'iva_porcentaje': 19,
        'disponibilidad': 'Inmediata',
        'garantia': '1 año',
        'url_imagen': 'https://example.com/laptop.jpg',
    },
    {
        'numero_item': '002',
        'descripcion': 'Mouse Inalámbrico Logitech MX Master 3 - Ergonómico, Bluetooth, Recargable',
        'precio_unitario': 350000,
        'iva_porcentaje': 19,
        'disponibilidad': '2-3 días',
        'garantia': '2 años',
        'url_imagen': 'https://example.com/mouse.jpg',
    },
    {
        'numero_item': '003',
        'descripcion': 'Monitor Samsung 24" Full HD - IPS, 75Hz, HDMI, VGA',
        'precio_unitario': 800000,
        'iva_porcentaje': 19,
        'disponibilidad': '1 semana',
        'garantia': '3 años',
        'url_imagen': 'https://example.com/monitor.jpg',
    },
    {
        'numero_item': '004',
        'descripcion': 'Teclado Mecánico Corsair K70 RGB - Cherry MX Red, Retroiluminado',
        'precio_unitario': 450000,
        'iva_porcentaje': 19,
        'disponibilidad': 'Inmediata',
        'garantia': '2 años',
        'url_imagen': '',
    },
    {
        'numero_item': '005',
        'descripcion': 'Impresora HP LaserJet Pro M404n - Monocromática, Red, 38ppm',
        'precio_unitario': 1200000,
        'iva_porcentaje': 19,
        'disponibilidad': '3-5 días',
        'garantia': '1 año',
        'url_imagen': 'https://example.com/printer.jpg',
    },
]


class BulkImportError(Exception):
    """The file as a whole could not be imported; nothing was accepted."""

    def __init__(self, message, errors=None):
        super().__init__(message)
        self.errors = list(errors) if errors else [message]


class UnsupportedFileError(BulkImportError):
    pass


def file_extension(filename):
    if not filename or '.' not in filename:
        return ''
    return filename.rsplit('.', 1)[-1].lower()


def _is_blank(value):
    return value is None or (isinstance(value, str) and not value.strip())


# ----- Readers -----

def _decode(data):
    try:
        return data.decode('utf-8-sig')
    except UnicodeDecodeError:
        # Spreadsheet programs on Windows often save CSV as Latin-1.
        return data.decode('latin-1')


def read_csv_rows(data):
    """Parse semicolon-delimited text with a header row into dicts."""
    text = _decode(data)
    reader = csv.DictReader(io.StringIO(text, newline=''), delimiter=CSV_DELIMITER)
    rows = []
    try:
        for record in reader:
            values = [v for k, v in record.items() if k is not None]
            if all(_is_blank(v) for v in values) and None not in record:
                continue
            if None in record:
                raise BulkImportError(
                    f'No se pudo leer el CSV: la línea {reader.line_num} tiene más campos que el encabezado'
                )
            if any(v is None for v in record.values()):
                raise BulkImportError(
                    f'No se pudo leer el CSV: la línea {reader.line_num} tiene menos campos que el encabezado'
                )
            rows.append({(k or '').strip(): v for k, v in record.items()})
    except csv.Error as e:
        raise BulkImportError(f'No se pudo leer el CSV: {e}')
    return rows


def read_workbook_rows(data):
    """Read the first sheet of an .xlsx workbook; the first row holds the column names."""
    try:
        workbook = openpyxl.load_workbook(io.BytesIO(data), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, ValueError, OSError) as e:
        raise BulkImportError(f'No se pudo leer el archivo de Excel: {e}')
    try:
        if not workbook.worksheets:
            return []
        sheet = workbook.worksheets[0]
        lines = sheet.iter_rows(values_only=True)
        header = next(lines, None)
        if header is None:
            return []
        names = [str(h).strip() if h is not None else '' for h in header]
        rows = []
        for line in lines:
            if all(_is_blank(v) for v in line):
                continue
            row = {}
            for name, value in zip(names, line):
                if name and value is not None:
                    row[name] = value
            rows.append(row)
        return rows
    finally:
        workbook.close()


def read_rows(filename, data):
    extension = file_extension(filename)
    if extension == 'xls':
        raise UnsupportedFileError(
            'Los archivos .xls (Excel 97-2003) no son compatibles. '
            'Guarda el archivo como .xlsx o CSV e inténtalo de nuevo.'
        )
    if extension not in SUPPORTED_EXTENSIONS:
        raise UnsupportedFileError(
            'Formato de archivo no compatible. Usa CSV (.csv) o Excel (.xlsx, .xlsm).'
        )
    if extension == 'csv':
        return read_csv_rows(data)
    return read_workbook_rows(data)


# ----- Validation -----

def validate_row(row, index):
    """Return the error messages for one data row; ``index`` is 0-based, messages use index + 2."""
    errors = []
    line = index + 2

    description = row.get('descripcion')
    if _is_blank(description):
        errors.append(f'Fila {line}: La descripción es obligatoria')

    price = row.get('precio_unitario')
    parsed_price = None if _is_blank(price) else to_decimal(price, default=None)
    if parsed_price is None or parsed_price <= 0:
        errors.append(f'Fila {line}: El precio unitario debe ser un número mayor a 0')
    elif parsed_price > MAX_UNIT_PRICE:
        errors.append(f'Fila {line}: El precio unitario no puede superar {MAX_UNIT_PRICE}')

    iva = row.get('iva_porcentaje')
    if not _is_blank(iva):
        parsed_iva = to_decimal(iva, default=None)
        if parsed_iva is None or parsed_iva < 0 or parsed_iva > 100:
            errors.append(f'Fila {line}: El IVA debe ser un número entre 0 y 100')

    return errors


def build_product(row):
    """Turn a validated row into catalog product data."""
    iva = row.get('iva_porcentaje')
    iva_percentage = DEFAULT_IVA_PERCENTAGE if _is_blank(iva) else to_decimal(iva)
    pricing = catalog_pricing(row.get('precio_unitario'), iva_percentage)
    item_number = row.get('numero_item')
    image_url = row.get('url_imagen')
    return {
        'item_number': '' if _is_blank(item_number) else str(item_number).strip(),
        'description': str(row['descripcion']).strip(),
        'unit_price': pricing['unit_price'],
        'quantity': 1,
        'subtotal': pricing['subtotal'],
        'iva_percentage': pricing['iva_percentage'],
        'iva_amount': pricing['iva_amount'],
        'total': pricing['total'],
        'availability': DEFAULT_AVAILABILITY if _is_blank(row.get('disponibilidad')) else str(row['disponibilidad']).strip(),
        'warranty': DEFAULT_WARRANTY if _is_blank(row.get('garantia')) else str(row['garantia']).strip(),
        'image_url': None if _is_blank(image_url) else str(image_url).strip(),
    }


def process_file(filename, data):
    """Parse and validate an import file.

    Returns ``{'products': [...], 'errors': [...], 'total': n}`` when at least
    one row is valid. Raises BulkImportError when the file cannot be parsed,
    has no data rows, or every row fails validation.
    """
    rows = read_rows(filename, data)
    if not rows:
        raise BulkImportError('El archivo está vacío o no contiene filas de datos')

    products = []
    errors = []
    for index, row in enumerate(rows):
        row_errors = validate_row(row, index)
        if row_errors:
            errors.extend(row_errors)
        else:
            products.append(build_product(row))

    if not products:
        raise BulkImportError('Errores de validación:\n' + '\n'.join(errors), errors)

    logger.info('Parsed %s: %d valid of %d rows, %d errors', filename, len(products), len(rows), len(errors))
    return {'products': products, 'errors': errors, 'total': len(rows)}


# ----- Example templates -----

def build_example_csv():
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=COLUMNS, delimiter=CSV_DELIMITER, lineterminator='\r\n')
    writer.writeheader()
    for row in EXAMPLE_ROWS:
        writer.writerow(row)
    # BOM so spreadsheet programs pick up UTF-8 accents.
    return buffer.getvalue().encode('utf-8-sig')


def build_example_workbook():
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = 'Productos'
    ws.append(COLUMNS)
    for row in EXAMPLE_ROWS:
        ws.append([row[c] for c in COLUMNS])
    for i, width in enumerate(COLUMN_WIDTHS, start=1):
        ws.column_dimensions[get_column_letter(i)].width = width
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()

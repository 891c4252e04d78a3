"""End-to-end request tests through the Flask test client."""
import io
import json
import logging
from datetime import date
from decimal import Decimal

from cotizador.models import User
from cotizador.services import CatalogService, CompanyService, CustomerService, QuotationService
from conftest import PASSWORD

IPHONE = 'Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) Mobile/15E148'


def _post_items(client, items, action):
    return client.post('/quotations/api/items', json={'items': items, 'action': action})


def _saved_quotation(user, fmt='standard'):
    return QuotationService.save_quotation(
        user.id,
        {'quotation_number': 'COT-202501-0001', 'quotation_date': date(2025, 1, 15), 'format': fmt},
        [{'description': 'Laptop', 'quantity': 2, 'unit_price': '1250000', 'iva_percentage': '19'}],
    )


# ----- Auth -----

def test_pages_require_login(client, db_ctx):
    response = client.get('/quotations/')
    assert response.status_code == 302
    assert '/auth/login' in response.headers['Location']


def test_register_then_login(client, db_ctx):
    response = client.post('/auth/register', data={
        'username': 'carla', 'email': 'carla@empresa.co', 'full_name': 'Carla',
        'password': PASSWORD, 'confirm_password': PASSWORD,
    })
    assert response.status_code == 302
    response = client.post('/auth/login', data={'username': 'carla', 'password': PASSWORD},
                           follow_redirects=True)
    assert response.status_code == 200
    assert 'Cotizaciones' in response.get_data(as_text=True)


def test_register_seeds_company_and_rejects_duplicates(client, user):
    response = client.post('/auth/register', data={
        'username': 'dario', 'email': 'Dario@Empresa.co', 'company_name': 'Dario SAS',
        'password': PASSWORD, 'confirm_password': PASSWORD,
    })
    assert response.status_code == 302
    dario = User.query.filter_by(username='dario').first()
    assert dario.email == 'dario@empresa.co'
    assert CompanyService.default_company(dario.id).name == 'Dario SAS'

    response = client.post('/auth/register', data={
        'username': 'ana', 'email': 'otra@empresa.co',
        'password': PASSWORD, 'confirm_password': PASSWORD,
    })
    assert response.status_code == 200
    assert 'Ese nombre de usuario ya está en uso.' in response.get_data(as_text=True)


def test_login_rejects_bad_password(client, user):
    response = client.post('/auth/login', data={'username': 'ana', 'password': 'wrong'}, follow_redirects=True)
    assert 'Usuario o contraseña incorrectos.' in response.get_data(as_text=True)


# ----- Editor reducer -----

def test_items_api_add_and_update(auth_client):
    response = _post_items(auth_client, [], {'type': 'add'})
    assert response.status_code == 200
    items = response.get_json()['items']
    assert len(items) == 1

    response = _post_items(auth_client, items, {
        'type': 'update', 'id': items[0]['id'], 'field': 'unit_price', 'value': '100000',
    })
    body = response.get_json()
    assert Decimal(body['items'][0]['total']) == Decimal('119000')
    assert Decimal(body['totals']['total_iva']) == Decimal('19000')


def test_items_api_rejects_derived_field(auth_client):
    items = _post_items(auth_client, [], {'type': 'add'}).get_json()['items']
    response = _post_items(auth_client, items, {'type': 'update', 'id': items[0]['id'], 'field': 'total', 'value': 5})
    assert response.status_code == 400
    assert 'valor calculado' in response.get_json()['error']


def test_items_api_requires_login(client, db_ctx):
    response = _post_items(client, [], {'type': 'add'})
    assert response.status_code == 401


def test_items_api_adopts_catalog_product(auth_client, user, other_user):
    mine = CatalogService.save_catalog_product(user.id, {'description': 'Monitor', 'unit_price': 800000,
                                                         'warranty': '3 años'})
    theirs = CatalogService.save_catalog_product(other_user.id, {'description': 'Ajeno', 'unit_price': 1})

    response = _post_items(auth_client, [], {'type': 'adopt', 'product_id': mine.id})
    item = response.get_json()['items'][0]
    assert item['description'] == 'Monitor'
    assert item['quantity'] == 1
    assert item['warranty'] == '3 años'
    assert Decimal(item['total']) == Decimal('952000')

    assert _post_items(auth_client, [], {'type': 'adopt', 'product_id': theirs.id}).status_code == 404


# ----- Save -----

def _save_form(**extra):
    data = {
        'quotation_number': 'COT-202501-0007',
        'quotation_date': '2025-01-20',
        'customer_id': '',
        'company_id': '',
        'format': 'compact',
        'status': 'draft',
        'observations': 'Entrega en Bogotá',
        'items_json': json.dumps([{'description': 'Silla', 'quantity': 3, 'unit_price': '150000',
                                   'iva_percentage': '19'}]),
    }
    data.update(extra)
    return data


def test_save_creates_quotation(auth_client, user):
    response = auth_client.post('/quotations/save', data=_save_form())
    assert response.status_code == 302
    quotations = QuotationService.load_quotations(user.id)
    assert len(quotations) == 1
    assert quotations[0].total == 535500
    assert quotations[0].format == 'compact'
    assert f'/quotations/{quotations[0].id}/edit' in response.headers['Location']


def test_save_requires_items(auth_client, user):
    response = auth_client.post('/quotations/save', data=_save_form(items_json='[]'))
    assert response.status_code == 200
    assert 'Agrega al menos un ítem.' in response.get_data(as_text=True)
    assert QuotationService.load_quotations(user.id) == []


def test_save_confirms_with_flash(auth_client, user):
    response = auth_client.post('/quotations/save', data=_save_form(), follow_redirects=True)
    assert response.status_code == 200
    assert 'Cotización guardada.' in response.get_data(as_text=True)


def test_out_of_range_amounts_are_bounded(auth_client, user):
    items = json.dumps([{'description': 'Yate', 'quantity': '1e9', 'unit_price': '1e30', 'iva_percentage': '19'}])
    for output in ('preview', 'print', 'pdf'):
        response = auth_client.post('/quotations/render', data=_save_form(output=output, items_json=items))
        assert response.status_code == 200
    response = auth_client.post('/quotations/save', data=_save_form(items_json=items))
    assert response.status_code == 302
    saved = QuotationService.load_quotations(user.id)[0]
    assert saved.total == Decimal('594940499881.01')


def test_new_suggests_number(auth_client):
    response = auth_client.get('/quotations/new')
    assert response.status_code == 200
    assert b'COT-' in response.data


# ----- Rendering -----

def test_preview_format_override_is_not_saved(auth_client, user):
    quotation = _saved_quotation(user)
    response = auth_client.get(f'/quotations/{quotation.id}/preview?format=detailed')
    assert response.status_code == 200
    assert 'COTIZACIÓN DETALLADA' in response.get_data(as_text=True)
    assert QuotationService.get_quotation(user.id, quotation.id).format == 'standard'


def test_pdf_download(auth_client, user):
    quotation = _saved_quotation(user)
    response = auth_client.get(f'/quotations/{quotation.id}/pdf')
    assert response.status_code == 200
    assert response.mimetype == 'application/pdf'
    assert 'Cotizacion-COT-202501-0001.pdf' in response.headers['Content-Disposition']
    assert response.data.startswith(b'%PDF')


def test_print_page_depends_on_device(auth_client, user):
    quotation = _saved_quotation(user)
    desktop = auth_client.get(f'/quotations/{quotation.id}/print')
    mobile = auth_client.get(f'/quotations/{quotation.id}/print', headers={'User-Agent': IPHONE})
    assert b'data-close-after-print' not in desktop.data
    assert b'data-close-after-print' in mobile.data


def test_render_unsaved_pdf(auth_client):
    response = auth_client.post('/quotations/render', data=_save_form(output='pdf'))
    assert response.status_code == 200
    assert response.data.startswith(b'%PDF')
    assert 'Cotizacion-COT-202501-0007.pdf' in response.headers['Content-Disposition']


def test_render_unsaved_preview(auth_client):
    response = auth_client.post('/quotations/render', data=_save_form(output='preview', format='detailed'))
    text = response.get_data(as_text=True)
    assert 'COTIZACIÓN DETALLADA' in text
    assert 'Entrega en Bogotá' in text


def test_other_users_quotation_is_hidden(client, user, other_user):
    quotation = _saved_quotation(other_user)
    client.post('/auth/login', data={'username': 'ana', 'password': PASSWORD})
    assert client.get(f'/quotations/{quotation.id}/preview').status_code == 404
    assert client.get(f'/quotations/{quotation.id}/pdf').status_code == 404


# ----- Catalog -----

def _csv_upload(text, name='productos.csv'):
    return {'file': (io.BytesIO(text.encode('utf-8')), name)}


def test_catalog_import_accepts_valid_rows(auth_client, user):
    text = (
        'numero_item;descripcion;precio_unitario;iva_porcentaje;disponibilidad;garantia;url_imagen\n'
        '001;Laptop;2500000;19;Inmediata;1 año;\n'
        '002;;100;19;;;\n'
        '003;Cable;5000;0;;;\n'
    )
    response = auth_client.post('/catalog/import', data=_csv_upload(text), content_type='multipart/form-data')
    assert response.status_code == 200
    body = response.get_data(as_text=True)
    assert '2 de 3 filas importadas' in body
    assert 'Fila 3: La descripción es obligatoria' in body
    products = {p.description: p for p in CatalogService.load_catalog(user.id)}
    assert set(products) == {'Laptop', 'Cable'}
    assert products['Cable'].iva_percentage == 0
    assert products['Cable'].warranty == 'Garantía estándar'


def test_catalog_import_rejects_all_invalid(auth_client, user):
    text = 'descripcion;precio_unitario\nSin precio;\n'
    response = auth_client.post('/catalog/import', data=_csv_upload(text), content_type='multipart/form-data')
    assert 'Errores de validación:' in response.get_data(as_text=True)
    assert CatalogService.load_catalog(user.id) == []


def test_catalog_import_rejects_unsupported_file(auth_client, user):
    response = auth_client.post('/catalog/import', data=_csv_upload('x', 'viejo.xls'),
                                content_type='multipart/form-data')
    assert '.xls (Excel 97-2003) no son compatibles' in response.get_data(as_text=True)


def test_rejected_import_is_logged_with_file_name(auth_client, user):
    records = []
    handler = logging.Handler()
    handler.emit = records.append
    route_logger = logging.getLogger('cotizador.blueprints.catalog.routes')
    route_logger.addHandler(handler)
    try:
        response = auth_client.post('/catalog/import', data=_csv_upload('x', 'viejo.xls'),
                                    content_type='multipart/form-data')
    finally:
        route_logger.removeHandler(handler)
    assert response.status_code == 200
    assert [(r.import_file, r.user_id) for r in records] == [('viejo.xls', user.id)]


def test_catalog_csv_template(auth_client):
    response = auth_client.get('/catalog/template.csv')
    assert response.status_code == 200
    assert response.data.startswith(b'\xef\xbb\xbfnumero_item;descripcion')
    assert auth_client.get('/catalog/template.pdf').status_code == 404


def test_catalog_search_api(auth_client, user):
    CatalogService.save_catalog_product(user.id, {'description': 'Teclado mecánico', 'unit_price': 450000})
    CatalogService.save_catalog_product(user.id, {'description': 'Mouse', 'unit_price': 350000})
    results = auth_client.get('/catalog/api/search?q=tecl').get_json()
    assert [r['description'] for r in results] == ['Teclado mecánico']
    assert Decimal(results[0]['iva_percentage']) == Decimal('19')


def test_catalog_form_rejects_price_beyond_range(auth_client, user):
    response = auth_client.post('/catalog/add', data={'description': 'Yate', 'unit_price': '1e30', 'iva_percentage': '19'})
    assert response.status_code == 200
    assert CatalogService.load_catalog(user.id) == []


# ----- Customers and uploads -----

def test_add_customer(auth_client, user):
    response = auth_client.post('/customers/add', data={'name': 'Hotel Central', 'email': 'compras@hotel.co'})
    assert response.status_code == 302
    assert [c.name for c in CustomerService.load_customers(user.id)] == ['Hotel Central']


def test_upload_and_serve_image(auth_client):
    response = auth_client.post('/uploads/image', data={
        'file': (io.BytesIO(b'fake-image'), 'foto.jpg'), 'folder': 'products',
    }, content_type='multipart/form-data')
    assert response.status_code == 200
    url = response.get_json()['url']
    served = auth_client.get(url)
    assert served.status_code == 200
    assert served.data == b'fake-image'
    served.close()


def test_upload_rejects_unknown_type(auth_client):
    response = auth_client.post('/uploads/image', data={'file': (io.BytesIO(b'x'), 'script.sh')},
                                content_type='multipart/form-data')
    assert response.status_code == 400
    assert 'Tipo de imagen no compatible' in response.get_json()['error']


def test_unknown_page_renders_404(auth_client):
    assert auth_client.get('/no-such-page').status_code == 404


def test_company_settings_updates_in_place(auth_client, user):
    for name in ('Tecno', 'Tecno SAS'):
        response = auth_client.post('/company/', data={'name': name, 'nit': '900123456-7', 'primary_color': '#0f766e'})
        assert response.status_code == 302
    companies = CompanyService.load_companies(user.id)
    assert [c.name for c in companies] == ['Tecno SAS']
    assert companies[0].primary_color == '#0f766e'


def test_company_settings_rejects_bad_color(auth_client, user):
    response = auth_client.post('/company/', data={'name': 'Tecno', 'primary_color': 'blue'})
    assert response.status_code == 200
    assert 'Usa un color hexadecimal como #2563eb.' in response.get_data(as_text=True)
    assert CompanyService.load_companies(user.id) == []

"""Product catalog routes."""
import logging
from io import BytesIO

from flask import render_template, redirect, url_for, flash, request, jsonify, send_file, abort
from flask_login import login_required, current_user

from cotizador.blueprints.catalog import catalog_bp
from cotizador.decorators import api_login_required
from cotizador.forms import CatalogProductForm, BulkImportForm
from cotizador.services import CatalogService, StorageService
from cotizador.services.bulk_import import (
    BulkImportError, TEMPLATE_BASENAME, build_example_csv, build_example_workbook, process_file,
)
from cotizador.services.notifications import notify_success

logger = logging.getLogger(__name__)

MAX_LISTED_ERRORS = 10
TEMPLATE_MIMETYPES = {
    'csv': 'text/csv',
    'xlsx': 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
}


def _form_data(form):
    return {
        'item_number': form.item_number.data or None,
        'description': form.description.data.strip(),
        'unit_price': form.unit_price.data,
        'iva_percentage': form.iva_percentage.data,
        'availability': form.availability.data or None,
        'warranty': form.warranty.data or None,
        'image_url': form.image_url.data or None,
    }


def _attach_image(form, data):
    """Store an uploaded image and point the product at it; False when the upload failed."""
    if not form.image.data:
        return True
    url = StorageService.upload_image(current_user.id, form.image.data, 'products')
    if url is None:
        return False
    data['image_url'] = url
    return True


def listed_errors(errors):
    shown = errors[:MAX_LISTED_ERRORS]
    if len(errors) > MAX_LISTED_ERRORS:
        shown = shown + [f'... y {len(errors) - MAX_LISTED_ERRORS} más']
    return shown


@catalog_bp.route('/', endpoint='list')
@login_required
def list_products():
    search = request.args.get('q', '').strip()
    products = CatalogService.load_catalog(current_user.id, search)
    return render_template('catalog/list.html', products=products, search=search)


@catalog_bp.route('/add', methods=['GET', 'POST'])
@login_required
def add():
    form = CatalogProductForm()
    if form.validate_on_submit():
        data = _form_data(form)
        if _attach_image(form, data) and CatalogService.save_catalog_product(current_user.id, data) is not None:
            notify_success('Producto agregado.')
            return redirect(url_for('catalog.list'))
    return render_template('catalog/form.html', form=form, title='Agregar producto')


@catalog_bp.route('/<product_id>/edit', methods=['GET', 'POST'])
@login_required
def edit(product_id):
    product = CatalogService.get_product(current_user.id, product_id)
    if product is None:
        abort(404)
    form = CatalogProductForm(obj=product)
    if form.validate_on_submit():
        data = _form_data(form)
        data['id'] = product.id
        if _attach_image(form, data) and CatalogService.save_catalog_product(current_user.id, data) is not None:
            notify_success('Producto actualizado.')
            return redirect(url_for('catalog.list'))
    return render_template('catalog/form.html', form=form, product=product, title='Editar producto')


@catalog_bp.route('/<product_id>/delete', methods=['POST'])
@login_required
def delete(product_id):
    if CatalogService.delete_catalog_product(current_user.id, product_id):
        notify_success('Producto eliminado.')
    return redirect(url_for('catalog.list'))


@catalog_bp.route('/import', methods=['GET', 'POST'])
@login_required
def bulk_import():
    form = BulkImportForm()
    result = None
    errors = []
    if form.validate_on_submit():
        upload = form.file.data
        try:
            parsed = process_file(upload.filename, upload.read())
        except BulkImportError as e:
            logger.info('Rejected import %s: %s', upload.filename, e,
                        extra={'user_id': current_user.id, 'import_file': upload.filename})
            flash(str(e).split('\n', 1)[0], 'danger')
            errors = listed_errors(e.errors)
        else:
            saved = CatalogService.save_catalog_products(current_user.id, parsed['products'])
            if saved is not None:
                result = {'imported': len(saved), 'total': parsed['total'], 'error_count': len(parsed['errors'])}
                errors = listed_errors(parsed['errors'])
                notify_success(f'{len(saved)} de {parsed["total"]} productos importados.')
    return render_template('catalog/import.html', form=form, result=result, errors=errors)


@catalog_bp.route('/template.<ext>')
@login_required
def template(ext):
    if ext == 'csv':
        data = build_example_csv()
    elif ext == 'xlsx':
        data = build_example_workbook()
    else:
        abort(404)
    return send_file(
        BytesIO(data),
        mimetype=TEMPLATE_MIMETYPES[ext],
        as_attachment=True,
        download_name=f'{TEMPLATE_BASENAME}.{ext}',
    )


@catalog_bp.route('/api/search')
@api_login_required
def search():
    products = CatalogService.load_catalog(current_user.id, request.args.get('q', ''))
    return jsonify([p.to_catalog_dict() for p in products])

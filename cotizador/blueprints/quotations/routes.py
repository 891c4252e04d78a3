"""Quotation routes."""
import json
import logging
from datetime import date
from io import BytesIO

from flask import render_template, redirect, url_for, flash, request, send_file, jsonify, abort
from flask_login import login_required, current_user

from cotizador.blueprints.quotations import quotations_bp
from cotizador.decorators import api_login_required
from cotizador.forms import QuotationForm
from cotizador.models import Quotation
from cotizador.rendering.export import ExportError, export_pdf, is_mobile_user_agent, pdf_filename
from cotizador.rendering.layout import FORMATS, build_layout, layout_for_quotation, template_for
from cotizador.services import CatalogService, CompanyService, CustomerService, NumberingService, QuotationService
from cotizador.services.line_items import add_item, apply_action, normalize_items
from cotizador.services.notifications import notify_success
from cotizador.services.pricing import calculate_totals

logger = logging.getLogger(__name__)


def _parse_items(raw):
    try:
        items = json.loads(raw) if raw else []
    except ValueError:
        return []
    if not isinstance(items, list):
        return []
    return [i for i in items if isinstance(i, dict)]


def _populate_choices(form):
    customers = CustomerService.load_customers(current_user.id)
    companies = CompanyService.load_companies(current_user.id)
    form.customer_id.choices = [('', '-- Sin cliente --')] + [(c.id, c.name) for c in customers]
    form.company_id.choices = [('', '-- Sin empresa --')] + [(c.id, c.name) for c in companies]


def _render_editor(form, items, quotation=None):
    items = normalize_items(items)
    return render_template(
        'quotations/editor.html',
        form=form,
        quotation=quotation,
        items=items,
        totals=calculate_totals(items),
        title='Editar cotización' if quotation else 'Nueva cotización',
    )


def _owned_quotation(quotation_id):
    quotation = QuotationService.get_quotation(current_user.id, quotation_id)
    if quotation is None:
        abort(404)
    return quotation


def _send_pdf(layout, fallback_url):
    try:
        pdf_bytes = export_pdf(layout)
    except ExportError:
        logger.exception('PDF export of %s failed', layout['number'] or 'unsaved quotation')
        flash('No se pudo generar el PDF. Inténtalo de nuevo.', 'danger')
        return redirect(fallback_url)
    return send_file(
        BytesIO(pdf_bytes),
        mimetype='application/pdf',
        as_attachment=True,
        download_name=pdf_filename(layout['number']),
    )


def _print_page(layout):
    if is_mobile_user_agent(request.headers.get('User-Agent')):
        return render_template('quotations/print_mobile.html', layout=layout, format_template=template_for(layout['format']))
    return render_template('quotations/print.html', layout=layout, format_template=template_for(layout['format']))


@quotations_bp.route('/', endpoint='list')
@login_required
def list_quotations():
    status = request.args.get('status', '')
    quotations = QuotationService.load_quotations(current_user.id)
    if status:
        quotations = [q for q in quotations if q.status == status]
    return render_template('quotations/list.html', quotations=quotations, status=status,
                           statuses=Quotation.STATUSES)


@quotations_bp.route('/new')
@login_required
def new():
    form = QuotationForm()
    _populate_choices(form)
    form.quotation_number.data = NumberingService.next_quotation_number(current_user.id)
    form.quotation_date.data = date.today()
    company = CompanyService.default_company(current_user.id)
    if company is not None:
        form.company_id.data = company.id
    return _render_editor(form, add_item([]))


@quotations_bp.route('/<quotation_id>/edit')
@login_required
def edit(quotation_id):
    quotation = _owned_quotation(quotation_id)
    form = QuotationForm(obj=quotation)
    _populate_choices(form)
    form.customer_id.data = quotation.customer_id or ''
    form.company_id.data = quotation.company_id or ''
    items = QuotationService.load_quotation_line_items(current_user.id, quotation.id)
    return _render_editor(form, items, quotation)


@quotations_bp.route('/save', methods=['POST'])
@login_required
def save():
    form = QuotationForm()
    _populate_choices(form)
    items = _parse_items(form.items_json.data)
    quotation = QuotationService.get_quotation(current_user.id, form.id.data) if form.id.data else None
    if not form.validate_on_submit():
        for field, errors in form.errors.items():
            for err in errors:
                flash(err if field == 'csrf_token' else f'{getattr(form, field).label.text}: {err}', 'danger')
        return _render_editor(form, items, quotation)
    if not items:
        flash('Agrega al menos un ítem.', 'danger')
        return _render_editor(form, items, quotation)

    data = {
        'id': form.id.data or None,
        'quotation_number': form.quotation_number.data.strip(),
        'quotation_date': form.quotation_date.data,
        'customer_id': form.customer_id.data or None,
        'company_id': form.company_id.data or None,
        'format': form.format.data,
        'status': form.status.data,
        'observations': form.observations.data or None,
    }
    saved = QuotationService.save_quotation(current_user.id, data, items)
    if saved is None:
        return _render_editor(form, items, quotation)
    notify_success('Cotización guardada.')
    return redirect(url_for('quotations.edit', quotation_id=saved.id))


@quotations_bp.route('/api/items', methods=['POST'])
@api_login_required
def items_api():
    """Apply one editor action to the posted item list and return the new list with its totals."""
    payload = request.get_json(silent=True) or {}
    items = payload.get('items') or []
    action = payload.get('action') or {}
    if not isinstance(action, dict) or not isinstance(items, list) or not all(isinstance(i, dict) for i in items):
        return jsonify({'error': 'Se esperaba una lista de ítems y una acción.'}), 400
    if action.get('type') == 'adopt' and action.get('product_id'):
        product = CatalogService.get_product(current_user.id, action['product_id'])
        if product is None:
            return jsonify({'error': 'Producto no encontrado.'}), 404
        action = dict(action, product=product.to_catalog_dict())
    try:
        items = apply_action(items, action)
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    return jsonify({'items': items, 'totals': calculate_totals(items)})


@quotations_bp.route('/<quotation_id>/preview')
@login_required
def preview(quotation_id):
    quotation = _owned_quotation(quotation_id)
    items = QuotationService.load_quotation_line_items(current_user.id, quotation.id)
    layout = layout_for_quotation(quotation, items, request.args.get('format'))
    return render_template('quotations/preview.html', layout=layout, quotation=quotation,
                           format_template=template_for(layout['format']), formats=FORMATS)


@quotations_bp.route('/<quotation_id>/print')
@login_required
def print_view(quotation_id):
    quotation = _owned_quotation(quotation_id)
    items = QuotationService.load_quotation_line_items(current_user.id, quotation.id)
    return _print_page(layout_for_quotation(quotation, items, request.args.get('format')))


@quotations_bp.route('/<quotation_id>/pdf')
@login_required
def pdf(quotation_id):
    quotation = _owned_quotation(quotation_id)
    items = QuotationService.load_quotation_line_items(current_user.id, quotation.id)
    layout = layout_for_quotation(quotation, items, request.args.get('format'))
    return _send_pdf(layout, url_for('quotations.preview', quotation_id=quotation.id))


@quotations_bp.route('/render', methods=['POST'])
@login_required
def render_unsaved():
    """Preview, print or PDF of the editor's current, possibly unsaved, state."""
    form = request.form
    company = CompanyService.get_company(current_user.id, form.get('company_id'))
    if company is None:
        company = CompanyService.default_company(current_user.id)
    customer = CustomerService.get_customer(current_user.id, form.get('customer_id'))
    layout = build_layout(
        company,
        customer,
        _parse_items(form.get('items_json')),
        form.get('quotation_number', '').strip(),
        form.get('quotation_date') or date.today(),
        form.get('observations', ''),
        form.get('format'),
    )
    output = form.get('output', 'preview')
    if output == 'pdf':
        return _send_pdf(layout, url_for('quotations.new'))
    if output == 'print':
        return _print_page(layout)
    return render_template('quotations/preview.html', layout=layout, quotation=None,
                           format_template=template_for(layout['format']), formats=FORMATS)

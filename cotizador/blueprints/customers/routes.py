"""Customer routes."""
from flask import render_template, redirect, url_for, request, abort
from flask_login import login_required, current_user

from cotizador.blueprints.customers import customers_bp
from cotizador.forms import CustomerForm
from cotizador.models import Customer
from cotizador.services import CustomerService
from cotizador.services.notifications import notify_success


def _form_data(form):
    data = {field: getattr(form, field).data or None for field in Customer.FIELDS}
    data['name'] = form.name.data
    return data


@customers_bp.route('/', endpoint='list')
@login_required
def list_customers():
    customers = CustomerService.load_customers(current_user.id)
    return render_template('customers/list.html', customers=customers)


@customers_bp.route('/add', methods=['GET', 'POST'])
@login_required
def add():
    form = CustomerForm()
    if form.validate_on_submit():
        customer = CustomerService.save_customer(current_user.id, _form_data(form))
        if customer is not None:
            notify_success('Cliente agregado.')
            next_page = request.args.get('next')
            if next_page and next_page.startswith('/'):
                return redirect(next_page)
            return redirect(url_for('customers.list'))
    return render_template('customers/form.html', form=form, title='Agregar cliente')


@customers_bp.route('/<customer_id>/edit', methods=['GET', 'POST'])
@login_required
def edit(customer_id):
    customer = CustomerService.get_customer(current_user.id, customer_id)
    if customer is None:
        abort(404)
    form = CustomerForm(obj=customer)
    if form.validate_on_submit():
        data = _form_data(form)
        data['id'] = customer.id
        if CustomerService.save_customer(current_user.id, data) is not None:
            notify_success('Cliente actualizado.')
            return redirect(url_for('customers.list'))
    return render_template('customers/form.html', form=form, customer=customer, title='Editar cliente')

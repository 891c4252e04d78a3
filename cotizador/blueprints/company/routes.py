"""Company profile routes."""
from flask import render_template, redirect, url_for, flash, request
from flask_login import login_required, current_user

from cotizador.blueprints.company import company_bp
from cotizador.forms import CompanyForm
from cotizador.models import Company
from cotizador.services import CompanyService, StorageService
from cotizador.services.notifications import notify_success


@company_bp.route('/', methods=['GET', 'POST'])
@login_required
def settings():
    company = CompanyService.default_company(current_user.id)
    form = CompanyForm(obj=company)
    if form.validate_on_submit():
        data = {field: getattr(form, field).data or None for field in Company.FIELDS}
        data['name'] = form.name.data
        if company is not None:
            data['id'] = company.id
        if form.logo.data:
            logo_url = StorageService.upload_image(current_user.id, form.logo.data, 'logos')
            if logo_url is None:
                return render_template('company/form.html', form=form, company=company)
            data['logo_url'] = logo_url
        if CompanyService.save_company(current_user.id, data) is not None:
            notify_success('Empresa guardada.')
            return redirect(url_for('company.settings'))
    elif request.method == 'POST' and form.errors:
        for errors in form.errors.values():
            for err in errors:
                flash(err, 'danger')
    return render_template('company/form.html', form=form, company=company)

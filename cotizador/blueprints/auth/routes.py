"""Auth routes."""
import logging

from flask import render_template, redirect, url_for, flash, request
from flask_login import login_user, logout_user, login_required, current_user
from sqlalchemy.exc import IntegrityError

from cotizador import db
from cotizador.blueprints.auth import auth_bp
from cotizador.forms import LoginForm, RegisterForm
from cotizador.models import Company, User

logger = logging.getLogger(__name__)


def _safe_next(target):
    """Only same-site relative paths are followed after login."""
    if target and target.startswith('/') and not target.startswith('//'):
        return target
    return url_for('quotations.list')


@auth_bp.route('/register', methods=['GET', 'POST'])
def register():
    if current_user.is_authenticated:
        return redirect(url_for('quotations.list'))
    form = RegisterForm()
    if form.validate_on_submit():
        user = User(
            username=form.username.data,
            email=form.email.data,
            full_name=form.full_name.data or None,
        )
        user.set_password(form.password.data)
        db.session.add(user)
        if form.company_name.data:
            user.companies.append(Company(name=form.company_name.data))
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            flash('Ese usuario o correo ya está registrado.', 'danger')
            return render_template('auth/register.html', form=form)
        logger.info('Registered user %s', user.username, extra={'user_id': user.id})
        flash('Cuenta creada. Ya puedes iniciar sesión.', 'success')
        return redirect(url_for('auth.login'))
    return render_template('auth/register.html', form=form)


@auth_bp.route('/login', methods=['GET', 'POST'])
def login():
    if current_user.is_authenticated:
        return redirect(url_for('quotations.list'))
    form = LoginForm()
    if form.validate_on_submit():
        user = User.query.filter_by(username=form.username.data).first()
        if user is None or not user.check_password(form.password.data):
            flash('Usuario o contraseña incorrectos.', 'danger')
            return redirect(url_for('auth.login'))
        if not user.is_active:
            flash('La cuenta está desactivada.', 'danger')
            return redirect(url_for('auth.login'))
        login_user(user, remember=form.remember_me.data)
        user.record_login()
        db.session.commit()
        return redirect(_safe_next(request.args.get('next')))
    return render_template('auth/login.html', form=form)


@auth_bp.route('/logout')
@login_required
def logout():
    logout_user()
    flash('Cerraste sesión.', 'info')
    return redirect(url_for('auth.login'))

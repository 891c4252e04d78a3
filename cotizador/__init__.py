"""Flask application factory."""
import os

from flask import Flask, redirect, request, url_for
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_login import LoginManager
from flask_wtf.csrf import CSRFProtect

from config import config

db = SQLAlchemy()
migrate = Migrate()
login_manager = LoginManager()
csrf = CSRFProtect()


def create_app(config_name=None):
    """Create and configure the Flask application."""
    if config_name is None:
        config_name = os.environ.get('FLASK_ENV', 'development')

    app = Flask(__name__, template_folder='templates', static_folder='static')
    app.config.from_object(config[config_name])

    from cotizador.logging_config import setup_logging
    setup_logging(app)

    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    csrf.init_app(app)

    login_manager.login_view = 'auth.login'
    login_manager.login_message = 'Inicia sesión para acceder a esta página.'
    login_manager.login_message_category = 'info'

    from cotizador.models import User

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, user_id)

    # Register blueprints
    from cotizador.blueprints.auth import auth_bp
    from cotizador.blueprints.company import company_bp
    from cotizador.blueprints.customers import customers_bp
    from cotizador.blueprints.catalog import catalog_bp
    from cotizador.blueprints.quotations import quotations_bp
    from cotizador.blueprints.uploads import uploads_bp

    app.register_blueprint(auth_bp, url_prefix='/auth')
    app.register_blueprint(company_bp, url_prefix='/company')
    app.register_blueprint(customers_bp, url_prefix='/customers')
    app.register_blueprint(catalog_bp, url_prefix='/catalog')
    app.register_blueprint(quotations_bp, url_prefix='/quotations')
    app.register_blueprint(uploads_bp, url_prefix='/uploads')

    @app.route('/')
    def index():
        return redirect(url_for('quotations.list'))

    # Error handlers
    from cotizador.blueprints.errors import register_error_handlers
    register_error_handlers(app)

    # Template helpers
    from cotizador.rendering.layout import (
        format_currency, format_date, format_percentage, FORMAT_LABELS, STATUS_LABELS,
    )

    app.add_template_filter(format_currency, 'currency')
    app.add_template_filter(format_percentage, 'percentage')
    app.add_template_filter(format_date, 'date_es')

    @app.context_processor
    def inject_globals():
        return {
            'current_route': request.endpoint if request else None,
            'format_labels': FORMAT_LABELS,
            'status_labels': STATUS_LABELS,
        }

    # Ignore "already exists" so multiple workers or existing DB don't crash the app.
    with app.app_context():
        try:
            db.create_all()
        except Exception as e:
            if "already exists" in str(e).lower() or "duplicate key" in str(e).lower():
                pass
            else:
                raise

    return app

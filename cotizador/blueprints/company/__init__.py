from flask import Blueprint

company_bp = Blueprint('company', __name__)

from cotizador.blueprints.company import routes  # noqa: E402, F401

from flask import Blueprint

catalog_bp = Blueprint('catalog', __name__)

from cotizador.blueprints.catalog import routes  # noqa: E402, F401

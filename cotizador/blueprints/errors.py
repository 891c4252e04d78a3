"""Application-wide error pages."""
import logging

from flask import render_template, request, jsonify

from cotizador import db

logger = logging.getLogger(__name__)


def _wants_json():
    return request.is_json or request.path.startswith(('/quotations/api/', '/catalog/api/', '/uploads/image'))


def _error_response(code, message):
    if _wants_json():
        return jsonify({'error': message}), code
    return render_template(f'errors/{code}.html', message=message), code


def register_error_handlers(app):
    @app.errorhandler(403)
    def forbidden(e):
        return _error_response(403, 'No tienes acceso a esta página.')

    @app.errorhandler(404)
    def not_found(e):
        return _error_response(404, 'Página no encontrada.')

    @app.errorhandler(413)
    def too_large(e):
        return _error_response(413, 'El archivo subido es demasiado grande.')

    @app.errorhandler(500)
    def internal_error(e):
        db.session.rollback()
        logger.error('Unhandled error on %s %s', request.method, request.path)
        return _error_response(500, 'Algo salió mal. Inténtalo de nuevo.')

"""Image upload and serving routes."""
from flask import jsonify, request, send_from_directory, current_app, get_flashed_messages
from flask_login import current_user

from cotizador.blueprints.uploads import uploads_bp
from cotizador.decorators import api_login_required
from cotizador.services import StorageService


@uploads_bp.route('/image', methods=['POST'])
@api_login_required
def image():
    upload = request.files.get('file')
    if upload is None or not upload.filename:
        return jsonify({'error': 'No se seleccionó ningún archivo.'}), 400
    folder = request.form.get('folder', 'products')
    url = StorageService.upload_image(current_user.id, upload, folder)
    if url is None:
        # Report the failure in the response instead of on the next page load.
        messages = get_flashed_messages(category_filter=['danger'])
        return jsonify({'error': ' '.join(messages) or 'No se pudo subir la imagen.'}), 400
    return jsonify({'url': url})


@uploads_bp.route('/<path:filename>')
def file(filename):
    return send_from_directory(current_app.config['UPLOAD_FOLDER'], filename)

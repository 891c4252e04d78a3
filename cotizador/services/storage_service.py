"""Image storage under the upload folder, served back at /uploads/<path>."""
import logging
import os
import time
import uuid

from flask import current_app, url_for
from werkzeug.security import safe_join

from cotizador.services.notifications import notify_error

logger = logging.getLogger(__name__)

IMAGE_FOLDERS = ('logos', 'products')
ALLOWED_IMAGE_EXTENSIONS = {'png', 'jpg', 'jpeg', 'gif', 'webp'}
URL_PREFIX = '/uploads/'


class StorageService:
    @staticmethod
    def upload_folder():
        return current_app.config['UPLOAD_FOLDER']

    @staticmethod
    def upload_image(user_id, file, folder='logos'):
        """Store an uploaded image at ``<user_id>/<folder>/<millis>-<random>.<ext>`` and return its public URL.

        Returns None (after notifying the user) when the folder or extension is
        not allowed, or the file cannot be written.
        """
        if folder not in IMAGE_FOLDERS:
            notify_error('No se pudo subir la imagen.')
            return None
        filename = getattr(file, 'filename', '') or ''
        ext = filename.rsplit('.', 1)[-1].lower() if '.' in filename else ''
        if ext not in ALLOWED_IMAGE_EXTENSIONS:
            notify_error('Tipo de imagen no compatible. Usa PNG, JPG, GIF o WEBP.')
            return None

        relative = f'{user_id}/{folder}/{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}.{ext}'
        path = safe_join(StorageService.upload_folder(), relative)
        if path is None:
            notify_error('No se pudo subir la imagen.')
            return None
        try:
            os.makedirs(os.path.dirname(path), exist_ok=True)
            file.save(path)
        except OSError:
            logger.exception('Writing upload %s failed', relative)
            notify_error('No se pudo subir la imagen.')
            return None
        logger.info('Stored image %s', relative)
        return url_for('uploads.file', filename=relative)

    @staticmethod
    def local_path(url):
        """Filesystem path of an uploaded file referenced by its public URL, or None."""
        if not url:
            return None
        path_part = url.split('://', 1)[-1]
        if '://' in url:
            path_part = '/' + path_part.split('/', 1)[-1] if '/' in path_part else '/'
        if not path_part.startswith(URL_PREFIX):
            return None
        path = safe_join(StorageService.upload_folder(), path_part[len(URL_PREFIX):])
        if path is None or not os.path.isfile(path):
            return None
        return path

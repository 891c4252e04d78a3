"""User-facing notifications for finished operations."""
import logging

from flask import flash, has_request_context

logger = logging.getLogger(__name__)


def notify_error(message):
    """Flash ``message`` to the current user when there is a request to attach it to."""
    logger.warning(message)
    if has_request_context():
        flash(message, 'danger')


def notify_success(message):
    logger.info(message)
    if has_request_context():
        flash(message, 'success')

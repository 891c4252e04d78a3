"""Owner-scoped load and upsert shared by the record services."""
import logging

from sqlalchemy.exc import SQLAlchemyError

from cotizador import db
from cotizador.services.notifications import notify_error

logger = logging.getLogger(__name__)


def load_records(model, user_id, error_message, *criteria):
    """All of the user's rows of ``model``, newest first; [] on failure."""
    try:
        query = model.query.filter(model.user_id == user_id, *criteria)
        return query.order_by(model.created_at.desc()).all()
    except SQLAlchemyError:
        logger.exception('Loading %s for user %s failed', model.__tablename__, user_id)
        db.session.rollback()
        notify_error(error_message)
        return []


def get_record(model, user_id, record_id):
    if not record_id:
        return None
    return model.query.filter_by(id=record_id, user_id=user_id).first()


def save_record(model, user_id, data, fields, error_message, **extra):
    """Update the user's row when ``data`` carries an id, insert otherwise.

    Only ``fields`` (plus ``extra``) are written. Returns the row, or None
    after rolling back and notifying the user.
    """
    try:
        record_id = data.get('id')
        if record_id:
            record = get_record(model, user_id, record_id)
            if record is None:
                notify_error(error_message)
                return None
        else:
            record = model(user_id=user_id)
            db.session.add(record)
        for field in fields:
            if field in data:
                setattr(record, field, data[field])
        for field, value in extra.items():
            setattr(record, field, value)
        db.session.commit()
        logger.info('%s %s %s', 'Updated' if record_id else 'Created', model.__tablename__, record.id)
        return record
    except SQLAlchemyError:
        logger.exception('Saving %s for user %s failed', model.__tablename__, user_id)
        db.session.rollback()
        notify_error(error_message)
        return None

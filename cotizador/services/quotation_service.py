"""Quotation persistence: header plus replace-all line items."""
import logging
from datetime import date

from sqlalchemy.exc import SQLAlchemyError

from cotizador import db
from cotizador.models import Company, Customer, Product, Quotation
from cotizador.services.line_items import normalize_item, normalize_items, renumber
from cotizador.services.notifications import notify_error
from cotizador.services.pricing import calculate_totals
from cotizador.services.records import get_record, load_records

logger = logging.getLogger(__name__)


def _line_item_row(user_id, quotation_id, item):
    return Product(
        user_id=user_id,
        quotation_id=quotation_id,
        position=item['sequence'],
        description=item['description'],
        quantity=item['quantity'],
        unit_price=item['unit_price'],
        iva_percentage=item['iva_percentage'],
        subtotal=item['subtotal'],
        iva_amount=item['iva_amount'],
        total=item['total'],
        availability=item['availability'] or None,
        warranty=item['warranty'] or None,
        image_url=item['image_url'] or None,
    )


class QuotationService:
    @staticmethod
    def load_quotations(user_id):
        return load_records(Quotation, user_id, 'No se pudieron cargar las cotizaciones.')

    @staticmethod
    def get_quotation(user_id, quotation_id):
        return get_record(Quotation, user_id, quotation_id)

    @staticmethod
    def save_quotation(user_id, data, items):
        """Upsert the quotation header and replace all of its stored line items.

        Totals always come from ``items``; any totals in ``data`` are ignored.
        Header and items are committed together or not at all.
        """
        items = renumber(normalize_items(items))
        totals = calculate_totals(items)
        is_update = bool(data.get('id'))
        error = 'No se pudo actualizar la cotización.' if is_update else 'No se pudo crear la cotización.'
        try:
            if is_update:
                quotation = get_record(Quotation, user_id, data['id'])
                if quotation is None:
                    notify_error(error)
                    return None
            else:
                quotation = Quotation(user_id=user_id)
                db.session.add(quotation)

            for field in Quotation.FIELDS:
                if field not in data:
                    continue
                value = data[field]
                if field.endswith('_id'):
                    value = value or None
                setattr(quotation, field, value)
            if quotation.quotation_date is None:
                quotation.quotation_date = date.today()
            if quotation.format not in Quotation.FORMATS:
                quotation.format = 'standard'
            if quotation.status not in Quotation.STATUSES:
                quotation.status = 'draft'
            if quotation.company_id and get_record(Company, user_id, quotation.company_id) is None:
                quotation.company_id = None
            if quotation.customer_id and get_record(Customer, user_id, quotation.customer_id) is None:
                quotation.customer_id = None

            quotation.subtotal = totals['subtotal']
            quotation.total_iva = totals['total_iva']
            quotation.total = totals['total']
            db.session.flush()

            for stored in quotation.items:
                db.session.delete(stored)
            for item in items:
                db.session.add(_line_item_row(user_id, quotation.id, item))
            db.session.commit()
            logger.info(
                'Saved quotation %s with %d items', quotation.quotation_number, len(items),
                extra={'user_id': user_id, 'quotation_number': quotation.quotation_number,
                       'items': len(items), 'total': totals['total']},
            )
            return quotation
        except SQLAlchemyError:
            logger.exception('Saving quotation for user %s failed', user_id)
            db.session.rollback()
            notify_error(error)
            return None

    @staticmethod
    def load_quotation_line_items(user_id, quotation_id):
        """Stored line items in editor form, recomputed from their inputs."""
        try:
            quotation = get_record(Quotation, user_id, quotation_id)
            if quotation is None:
                notify_error('Cotización no encontrada.')
                return []
            return renumber([normalize_item(p.to_line_item()) for p in quotation.items])
        except SQLAlchemyError:
            logger.exception('Loading items of quotation %s failed', quotation_id)
            db.session.rollback()
            notify_error('No se pudieron cargar los productos de la cotización.')
            return []

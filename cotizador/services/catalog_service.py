"""Product catalog persistence."""
import logging

from sqlalchemy.exc import SQLAlchemyError

from cotizador import db
from cotizador.models import Product
from cotizador.services.notifications import notify_error
from cotizador.services.pricing import catalog_pricing
from cotizador.services.records import get_record, load_records, save_record

logger = logging.getLogger(__name__)


def _pricing_fields(data):
    iva = data.get('iva_percentage')
    pricing = catalog_pricing(data.get('unit_price'), None if iva in (None, '') else iva)
    return {
        'quantity': 1,
        'unit_price': pricing['unit_price'],
        'iva_percentage': pricing['iva_percentage'],
        'subtotal': pricing['subtotal'],
        'iva_amount': pricing['iva_amount'],
        'total': pricing['total'],
    }


class CatalogService:
    @staticmethod
    def load_catalog(user_id, search=None):
        criteria = [Product.quotation_id.is_(None)]
        search = (search or '').strip()
        if search:
            criteria.append(db.or_(
                Product.description.ilike(f'%{search}%'),
                Product.item_number.ilike(f'%{search}%'),
            ))
        return load_records(Product, user_id, 'No se pudo cargar el catálogo de productos.', *criteria)

    @staticmethod
    def get_product(user_id, product_id):
        product = get_record(Product, user_id, product_id)
        if product is None or not product.is_catalog_entry:
            return None
        return product

    @staticmethod
    def save_catalog_product(user_id, data):
        if data.get('id') and CatalogService.get_product(user_id, data['id']) is None:
            notify_error('No se pudo actualizar el producto.')
            return None
        error = 'No se pudo actualizar el producto.' if data.get('id') else 'No se pudo crear el producto.'
        fields = [f for f in Product.CATALOG_FIELDS if f not in ('unit_price', 'iva_percentage')]
        return save_record(
            Product, user_id, data, fields, error,
            quotation_id=None, **_pricing_fields(data)
        )

    @staticmethod
    def save_catalog_products(user_id, products):
        """Insert many catalog products in one transaction; None if any insert fails."""
        try:
            saved = []
            for data in products:
                product = Product(user_id=user_id, quotation_id=None)
                for field in Product.CATALOG_FIELDS:
                    if field in data:
                        setattr(product, field, data[field])
                for field, value in _pricing_fields(data).items():
                    setattr(product, field, value)
                db.session.add(product)
                saved.append(product)
            db.session.commit()
            logger.info('Imported %d catalog products for user %s', len(saved), user_id)
            return saved
        except SQLAlchemyError:
            logger.exception('Bulk catalog insert for user %s failed', user_id)
            db.session.rollback()
            notify_error('No se pudieron guardar los productos importados.')
            return None

    @staticmethod
    def delete_catalog_product(user_id, product_id):
        product = CatalogService.get_product(user_id, product_id)
        if product is None:
            notify_error('Producto no encontrado.')
            return False
        try:
            db.session.delete(product)
            db.session.commit()
            return True
        except SQLAlchemyError:
            logger.exception('Deleting catalog product %s failed', product_id)
            db.session.rollback()
            notify_error('No se pudo eliminar el producto.')
            return False

"""Product model.

One table serves both the reusable catalog and quotation line items; a row
with ``quotation_id`` NULL is a catalog entry, otherwise it belongs to that
quotation at ``position``.
"""
import uuid
from datetime import datetime
from decimal import Decimal

from cotizador import db


class Product(db.Model):
    __tablename__ = 'products'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False, index=True)
    quotation_id = db.Column(db.String(36), db.ForeignKey('quotations.id'), nullable=True, index=True)
    position = db.Column(db.Integer, nullable=True)
    item_number = db.Column(db.String(50), nullable=True, index=True)
    description = db.Column(db.Text, nullable=False)
    image_url = db.Column(db.Text, nullable=True)
    quantity = db.Column(db.Integer, default=1, nullable=False)
    unit_price = db.Column(db.Numeric(14, 2), default=0, nullable=False)
    subtotal = db.Column(db.Numeric(14, 2), default=0, nullable=False)
    iva_percentage = db.Column(db.Numeric(5, 2), default=19, nullable=False)
    iva_amount = db.Column(db.Numeric(14, 2), default=0, nullable=False)
    total = db.Column(db.Numeric(14, 2), default=0, nullable=False)
    availability = db.Column(db.String(120), nullable=True)
    warranty = db.Column(db.String(120), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    CATALOG_FIELDS = ['item_number', 'description', 'unit_price', 'iva_percentage',
                      'availability', 'warranty', 'image_url']

    @property
    def is_catalog_entry(self):
        return self.quotation_id is None

    def to_catalog_dict(self):
        return {
            'id': self.id,
            'item_number': self.item_number or '',
            'description': self.description,
            'unit_price': self.unit_price if self.unit_price is not None else Decimal('0'),
            'iva_percentage': self.iva_percentage if self.iva_percentage is not None else Decimal('19'),
            'availability': self.availability or '',
            'warranty': self.warranty or '',
            'image_url': self.image_url or '',
        }

    def to_line_item(self):
        """Editor representation of a stored line item (derived fields are recomputed by the caller)."""
        return {
            'id': self.id,
            'sequence': self.position or 0,
            'description': self.description or '',
            'quantity': self.quantity,
            'unit_price': self.unit_price,
            'iva_percentage': self.iva_percentage,
            'subtotal': self.subtotal,
            'iva_amount': self.iva_amount,
            'total': self.total,
            'availability': self.availability or '',
            'warranty': self.warranty or '',
            'image_url': self.image_url or '',
        }

    def __repr__(self):
        return f'<Product {self.description[:30] if self.description else self.id}>'

"""Quotation model."""
import uuid
from datetime import datetime, date

from cotizador import db


class Quotation(db.Model):
    __tablename__ = 'quotations'
    __table_args__ = (
        db.UniqueConstraint('user_id', 'quotation_number', name='uq_quotations_user_number'),
    )

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False, index=True)
    quotation_number = db.Column(db.String(30), nullable=False, index=True)
    company_id = db.Column(db.String(36), db.ForeignKey('companies.id'), nullable=True)
    customer_id = db.Column(db.String(36), db.ForeignKey('customers.id'), nullable=True)
    quotation_date = db.Column(db.Date, nullable=False, default=date.today)
    observations = db.Column(db.Text, nullable=True)
    format = db.Column(db.String(20), default='standard', nullable=False)
    subtotal = db.Column(db.Numeric(14, 2), default=0, nullable=False)
    total_iva = db.Column(db.Numeric(14, 2), default=0, nullable=False)
    total = db.Column(db.Numeric(14, 2), default=0, nullable=False)
    status = db.Column(db.String(20), default='draft', nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    company = db.relationship('Company', foreign_keys=[company_id])
    customer = db.relationship('Customer', foreign_keys=[customer_id])
    items = db.relationship(
        'Product', backref='quotation', lazy='dynamic',
        cascade='all', order_by='Product.position',
    )

    STATUSES = ['draft', 'sent', 'approved', 'rejected']
    FORMATS = ['standard', 'compact', 'detailed']
    FIELDS = ['quotation_number', 'quotation_date', 'observations', 'format',
              'company_id', 'customer_id', 'status']

    def __repr__(self):
        return f'<Quotation {self.quotation_number}>'

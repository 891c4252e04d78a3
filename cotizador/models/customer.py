"""Customer model."""
import uuid
from datetime import datetime

from cotizador import db


class Customer(db.Model):
    __tablename__ = 'customers'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False, index=True)
    name = db.Column(db.String(200), nullable=False)
    company = db.Column(db.String(200), nullable=True)
    document = db.Column(db.String(50), nullable=True)
    email = db.Column(db.String(120), nullable=True)
    phone = db.Column(db.String(50), nullable=True)
    address = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    FIELDS = ['name', 'company', 'document', 'email', 'phone', 'address']

    def to_dict(self):
        data = {f: getattr(self, f) for f in self.FIELDS}
        data['id'] = self.id
        return data

    def __repr__(self):
        return f'<Customer {self.name}>'

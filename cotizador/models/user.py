"""User model; every other record is owned by a user."""
import uuid
from datetime import datetime
from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash

from cotizador import db


class User(UserMixin, db.Model):
    __tablename__ = 'users'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    username = db.Column(db.String(80), unique=True, nullable=False, index=True)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(256), nullable=False)
    full_name = db.Column(db.String(120), nullable=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    last_login_at = db.Column(db.DateTime, nullable=True)

    companies = db.relationship('Company', backref='owner', lazy='dynamic', cascade='all')
    customers = db.relationship('Customer', backref='owner', lazy='dynamic', cascade='all')
    products = db.relationship('Product', backref='owner', lazy='dynamic', cascade='all')
    quotations = db.relationship('Quotation', backref='owner', lazy='dynamic', cascade='all')

    @property
    def display_name(self):
        return self.full_name or self.username

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    def record_login(self):
        self.last_login_at = datetime.utcnow()

    def __repr__(self):
        return f'<User {self.username}>'

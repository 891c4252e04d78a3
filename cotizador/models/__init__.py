"""Database models."""
from cotizador.models.user import User
from cotizador.models.company import Company
from cotizador.models.customer import Customer
from cotizador.models.product import Product
from cotizador.models.quotation import Quotation

__all__ = [
    'User',
    'Company',
    'Customer',
    'Product',
    'Quotation',
]

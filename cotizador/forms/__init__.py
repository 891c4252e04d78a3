"""Flask-WTF forms."""
from cotizador.forms.base import SpanishForm
from cotizador.forms.auth import LoginForm, RegisterForm
from cotizador.forms.company import CompanyForm
from cotizador.forms.customer import CustomerForm
from cotizador.forms.product import CatalogProductForm, BulkImportForm
from cotizador.forms.quotation import QuotationForm

__all__ = [
    'SpanishForm',
    'LoginForm',
    'RegisterForm',
    'CompanyForm',
    'CustomerForm',
    'CatalogProductForm',
    'BulkImportForm',
    'QuotationForm',
]

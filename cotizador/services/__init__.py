"""Business logic services."""
from cotizador.services.company_service import CompanyService
from cotizador.services.customer_service import CustomerService
from cotizador.services.catalog_service import CatalogService
from cotizador.services.quotation_service import QuotationService
from cotizador.services.numbering_service import NumberingService
from cotizador.services.storage_service import StorageService

__all__ = [
    'CompanyService',
    'CustomerService',
    'CatalogService',
    'QuotationService',
    'NumberingService',
    'StorageService',
]

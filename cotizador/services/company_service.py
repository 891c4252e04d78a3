"""Company profile persistence."""
from cotizador.models import Company
from cotizador.services.records import get_record, load_records, save_record


class CompanyService:
    @staticmethod
    def load_companies(user_id):
        return load_records(Company, user_id, 'No se pudieron cargar las empresas.')

    @staticmethod
    def get_company(user_id, company_id):
        return get_record(Company, user_id, company_id)

    @staticmethod
    def default_company(user_id):
        """The active company is the most recently created one."""
        companies = CompanyService.load_companies(user_id)
        return companies[0] if companies else None

    @staticmethod
    def save_company(user_id, data):
        error = 'No se pudo actualizar la empresa.' if data.get('id') else 'No se pudo crear la empresa.'
        return save_record(Company, user_id, data, Company.FIELDS, error)

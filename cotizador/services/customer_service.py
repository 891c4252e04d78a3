"""Customer persistence."""
from cotizador.models import Customer
from cotizador.services.records import get_record, load_records, save_record


class CustomerService:
    @staticmethod
    def load_customers(user_id):
        return load_records(Customer, user_id, 'No se pudieron cargar los clientes.')

    @staticmethod
    def get_customer(user_id, customer_id):
        return get_record(Customer, user_id, customer_id)

    @staticmethod
    def save_customer(user_id, data):
        error = 'No se pudo actualizar el cliente.' if data.get('id') else 'No se pudo crear el cliente.'
        return save_record(Customer, user_id, data, Customer.FIELDS, error)

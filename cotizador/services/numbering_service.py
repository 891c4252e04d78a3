"""Quotation number suggestions."""
from datetime import datetime

from flask import current_app

from cotizador import db
from cotizador.models import Quotation


class NumberingService:
    @staticmethod
    def _next_sequence(prefix, user_id, date_part):
        pattern = f"{prefix}-{date_part}-%"
        numbers = (
            db.session.query(Quotation.quotation_number)
            .filter(Quotation.user_id == user_id, Quotation.quotation_number.like(pattern))
            .all()
        )
        seq = 0
        for (number,) in numbers:
            tail = number.rsplit("-", 1)[-1]
            if tail.isdigit():
                seq = max(seq, int(tail))
        return f"{prefix}-{date_part}-{seq + 1:04d}"

    @staticmethod
    def next_quotation_number(user_id):
        date_part = datetime.utcnow().strftime("%Y%m")
        prefix = current_app.config.get('QUOTATION_NUMBER_PREFIX', 'COT')
        return NumberingService._next_sequence(prefix, user_id, date_part)

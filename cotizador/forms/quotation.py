"""Quotation form."""
from wtforms import StringField, SelectField, TextAreaField, DateField, HiddenField
from wtforms.validators import DataRequired, Optional, Length

from cotizador.forms.base import SpanishForm
from cotizador.models.quotation import Quotation
from cotizador.rendering.layout import FORMAT_LABELS, STATUS_LABELS

FORMAT_CHOICES = [(f, FORMAT_LABELS[f]) for f in Quotation.FORMATS]
STATUS_CHOICES = [(s, STATUS_LABELS[s]) for s in Quotation.STATUSES]


class QuotationForm(SpanishForm):
    id = HiddenField()
    quotation_number = StringField('Cotización N.º *', validators=[DataRequired(), Length(1, 30)])
    quotation_date = DateField('Fecha *', validators=[DataRequired()], format='%Y-%m-%d')
    customer_id = SelectField('Cliente', choices=[], validators=[Optional()])
    company_id = SelectField('Empresa', choices=[], validators=[Optional()])
    format = SelectField('Formato', choices=FORMAT_CHOICES, default='standard', validators=[DataRequired()])
    status = SelectField('Estado', choices=STATUS_CHOICES, default='draft', validators=[DataRequired()])
    observations = TextAreaField('Observaciones', validators=[Optional()])
    items_json = HiddenField(default='[]')

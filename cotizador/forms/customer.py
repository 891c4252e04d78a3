"""Customer form."""
from wtforms import StringField, HiddenField
from wtforms.validators import DataRequired, Optional, Email, Length

from cotizador.forms.base import SpanishForm


class CustomerForm(SpanishForm):
    id = HiddenField()
    name = StringField('Nombre *', validators=[DataRequired(), Length(1, 200)])
    company = StringField('Empresa', validators=[Optional(), Length(0, 200)])
    document = StringField('NIT / CC', validators=[Optional(), Length(0, 50)])
    email = StringField('Correo *', validators=[DataRequired(), Email()])
    phone = StringField('Teléfono', validators=[Optional(), Length(0, 50)])
    address = StringField('Dirección', validators=[Optional(), Length(0, 255)])

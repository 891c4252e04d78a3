"""Company profile form."""
from flask_wtf.file import FileField, FileAllowed
from wtforms import StringField
from wtforms.validators import DataRequired, Optional, Email, Length, Regexp

from cotizador.forms.base import SpanishForm
from cotizador.services.storage_service import ALLOWED_IMAGE_EXTENSIONS

IMAGE_TYPES = sorted(ALLOWED_IMAGE_EXTENSIONS)


class CompanyForm(SpanishForm):
    name = StringField('Nombre de la empresa *', validators=[DataRequired(), Length(1, 200)])
    nit = StringField('NIT', validators=[Optional(), Length(0, 50)])
    address = StringField('Dirección', validators=[Optional(), Length(0, 255)])
    city = StringField('Ciudad', validators=[Optional(), Length(0, 100)])
    phone = StringField('Teléfono', validators=[Optional(), Length(0, 50)])
    email = StringField('Correo', validators=[Optional(), Email()])
    primary_color = StringField('Color de marca', default='#2563eb', validators=[
        Optional(), Regexp(r'^#[0-9a-fA-F]{6}$', message='Usa un color hexadecimal como #2563eb.'),
    ])
    logo_url = StringField('URL del logo', validators=[Optional()])
    logo = FileField('Subir logo', validators=[FileAllowed(IMAGE_TYPES, 'Solo se permiten imágenes.')])

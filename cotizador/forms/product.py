"""Catalog product forms."""
from flask_wtf.file import FileField, FileAllowed, FileRequired
from wtforms import StringField, DecimalField, TextAreaField
from wtforms.validators import DataRequired, InputRequired, Optional, NumberRange, Length, ValidationError

from cotizador.forms.base import SpanishForm
from cotizador.services.bulk_import import DEFAULT_AVAILABILITY, DEFAULT_WARRANTY
from cotizador.services.pricing import MAX_UNIT_PRICE
from cotizador.services.storage_service import ALLOWED_IMAGE_EXTENSIONS


def positive(form, field):
    if field.data is not None and field.data <= 0:
        raise ValidationError('El precio unitario debe ser mayor a 0.')


class CatalogProductForm(SpanishForm):
    item_number = StringField('Código', validators=[Optional(), Length(0, 50)])
    description = TextAreaField('Descripción *', validators=[DataRequired()])
    unit_price = DecimalField('Precio unitario *', places=2,
                              validators=[InputRequired(), positive, NumberRange(max=MAX_UNIT_PRICE)])
    iva_percentage = DecimalField('IVA %', places=2, default=19,
                                  validators=[Optional(), NumberRange(min=0, max=100)])
    availability = StringField('Disponibilidad', default=DEFAULT_AVAILABILITY, validators=[Optional(), Length(0, 120)])
    warranty = StringField('Garantía', default=DEFAULT_WARRANTY, validators=[Optional(), Length(0, 120)])
    image_url = StringField('URL de la imagen', validators=[Optional()])
    image = FileField('Subir imagen',
                      validators=[FileAllowed(sorted(ALLOWED_IMAGE_EXTENSIONS), 'Solo se permiten imágenes.')])


class BulkImportForm(SpanishForm):
    file = FileField('Archivo (.csv, .xlsx) *', validators=[FileRequired('Selecciona un archivo.')])

"""Authentication forms."""
from wtforms import StringField, PasswordField, BooleanField
from wtforms.validators import DataRequired, Length, Email, EqualTo, Optional, Regexp, ValidationError

from cotizador.forms.base import SpanishForm
from cotizador.models import User


def _strip(value):
    return value.strip() if isinstance(value, str) else value


def _lower(value):
    return value.strip().lower() if isinstance(value, str) else value


class LoginForm(SpanishForm):
    username = StringField('Usuario', validators=[DataRequired()], filters=[_strip])
    password = PasswordField('Contraseña', validators=[DataRequired()])
    remember_me = BooleanField('Mantener la sesión iniciada', default=False)


class RegisterForm(SpanishForm):
    """Sign-up; ``company_name`` optionally seeds the user's first company profile."""
    username = StringField('Usuario *', filters=[_strip], validators=[
        DataRequired(), Length(3, 80),
        Regexp(r'^[A-Za-z0-9_.-]+$', message='Usa letras, números, puntos, guiones o guiones bajos.'),
    ])
    email = StringField('Correo *', filters=[_lower], validators=[DataRequired(), Email(), Length(max=120)])
    full_name = StringField('Nombre completo', filters=[_strip], validators=[Optional(), Length(max=120)])
    company_name = StringField('Empresa', filters=[_strip], validators=[Optional(), Length(max=200)])
    password = PasswordField('Contraseña *', validators=[DataRequired(), Length(min=8)])
    confirm_password = PasswordField(
        'Confirmar contraseña *',
        validators=[DataRequired(), EqualTo('password', message='Las contraseñas no coinciden.')],
    )

    def validate_username(self, field):
        if User.query.filter_by(username=field.data).first() is not None:
            raise ValidationError('Ese nombre de usuario ya está en uso.')

    def validate_email(self, field):
        if User.query.filter_by(email=field.data).first() is not None:
            raise ValidationError('Ese correo ya está registrado.')

"""Base form for every page of the app."""
from flask_wtf import FlaskForm


class SpanishForm(FlaskForm):
    """FlaskForm whose built-in validator messages come out in Spanish."""

    class Meta:
        locales = ('es_ES', 'es')

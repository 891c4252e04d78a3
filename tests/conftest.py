"""Shared fixtures."""
import pytest

from cotizador import create_app, db
from cotizador.models import User

PASSWORD = 'secret-pass'


@pytest.fixture
def app(tmp_path):
    app = create_app('testing')
    app.config['UPLOAD_FOLDER'] = str(tmp_path / 'uploads')
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def app_ctx(app):
    with app.app_context():
        yield


@pytest.fixture
def db_ctx(app, app_ctx):
    db.create_all()
    yield
    db.session.remove()
    db.drop_all()


def make_user(username):
    user = User(username=username, email=f'{username}@empresa.co', full_name=username.title())
    user.set_password(PASSWORD)
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def user(db_ctx):
    return make_user('ana')


@pytest.fixture
def other_user(db_ctx):
    return make_user('bruno')


@pytest.fixture
def auth_client(client, user):
    response = client.post('/auth/login', data={'username': 'ana', 'password': PASSWORD})
    assert response.status_code == 302
    return client

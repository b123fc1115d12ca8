# conftest.py
import os
import sys

import pytest
from sqlalchemy.pool import StaticPool

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from app import create_app
from models import db, Sweet

TEST_CONFIG = {
    'TESTING': True,
    'SQLALCHEMY_DATABASE_URI': 'sqlite://',
    # one shared in-memory connection for the whole app
    'SQLALCHEMY_ENGINE_OPTIONS': {
        'poolclass': StaticPool,
        'connect_args': {'check_same_thread': False},
    },
}


def make_app(**overrides):
    return create_app({**TEST_CONFIG, **overrides})


@pytest.fixture
def app():
    app = make_app()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def sweet_id(app):
    """Look up a seeded sweet's id by name."""
    def lookup(name):
        with app.app_context():
            return db.session.scalar(db.select(Sweet.id).where(Sweet.name == name))
    return lookup


@pytest.fixture
def stock(app):
    """Current quantity of a sweet, read straight from the table."""
    def read(id):
        with app.app_context():
            return db.session.scalar(db.select(Sweet.quantity).where(Sweet.id == id))
    return read

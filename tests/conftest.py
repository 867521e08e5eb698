"""Shared test fixtures."""

import pytest

from config import TestingConfig
from salesflow import create_app
from salesflow.extensions import db
from salesflow.models import User
from salesflow.security import Actor


def _testing_settings(**overrides):
    settings = {name: getattr(TestingConfig, name) for name in dir(TestingConfig) if name.isupper()}
    settings.update(overrides)
    return settings


@pytest.fixture
def app(tmp_path):
    """Application bound to an in-memory database, with an app context pushed."""
    app = create_app(_testing_settings(UPLOAD_DIR=str(tmp_path / "uploads")))
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app):
    """Factory creating a persisted user."""

    def _make(username, password="secret", role="user", permissions=None, is_active=True):
        user = User(
            username=username,
            role=role,
            permissions=permissions if permissions is not None else {"queries": True},
            is_active=is_active,
        )
        user.set_password(password)
        db.session.add(user)
        db.session.commit()
        return user

    return _make


@pytest.fixture
def admin_user(app):
    """The seed admin created by the factory."""
    return User.query.filter_by(username=app.config["ADMIN_USERNAME"]).one()


@pytest.fixture
def admin(admin_user):
    return Actor.from_user(admin_user)


@pytest.fixture
def clerk(make_user):
    """Non-admin user with every document capability but no admin flag."""
    user = make_user(
        "clerk",
        permissions={"queries": True, "quotations": True, "purchase_orders": True, "invoices": True},
    )
    return Actor.from_user(user)


@pytest.fixture
def queries_only(make_user):
    return Actor.from_user(make_user("viewer", permissions={"queries": True}))


def login(client, username, password):
    return client.post("/api/login", json={"username": username, "password": password})


@pytest.fixture
def admin_client(app, client):
    response = login(client, app.config["ADMIN_USERNAME"], app.config["ADMIN_PASSWORD"])
    assert response.status_code == 200
    return client


@pytest.fixture
def sample_items():
    return [
        {"manufacturer_number": "M-1", "description": "Valve", "quantity": 2, "unit_price": "10.00"},
        {"manufacturer_number": "M-2", "description": "Gasket", "quantity": 5, "unit_price": "3.50"},
    ]

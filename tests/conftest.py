"""
Shared fixtures: an in-memory store wired through the real services and the
real Flask app.
"""
from __future__ import annotations

from decimal import Decimal

import pytest

from fakes import FakeDb, FakeStore, fake_repositories
from garagedesk.config import config_from_dict
from garagedesk.domain import NewVehicle
from garagedesk.web.app import create_app
from garagedesk.wiring import build_services

TEST_CONFIG = {
    "app": {"name": "GarageDesk", "environment": "production", "log_level": "DEBUG"},
    "db": {"host": "localhost", "name": "garagedesk_test", "user": "garagedesk", "password": "secret"},
    "auth": {"jwt_secret": "test-secret-key", "jwt_expiration_hours": 1},
    "business": {"default_tax_rate": "16", "default_page_size": 20, "max_page_size": 50},
}

ADMIN_PASSWORD = "Admin1234"


@pytest.fixture
def cfg():
    return config_from_dict(TEST_CONFIG)


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def db(store):
    return FakeDb(store)


@pytest.fixture
def repos():
    return fake_repositories()


@pytest.fixture
def services(repos, cfg):
    return build_services(repos, cfg.auth)


@pytest.fixture
def client_id(db, repos):
    with db.transaction() as conn:
        client = repos.client_repo.create(
            conn, name="Jane Wanjiku", email="jane@example.com", phone="0712000001", address="Nairobi"
        )
    return client["id"]


@pytest.fixture
def vehicle_id(db, services, client_id):
    with db.transaction() as conn:
        vehicle = services.customers.create_vehicle(
            conn, NewVehicle(registration_number="KCA 123A", make_model="Toyota Probox"), client_id=client_id
        )
    return vehicle["id"]


@pytest.fixture
def make_part(db, repos):
    def _make(name="Oil filter", stock=10, price="500.00", part_number=None, reorder_level=5):
        with db.transaction() as conn:
            part = repos.part_repo.create(
                conn,
                name=name,
                part_number=part_number,
                price=Decimal(price),
                stock_quantity=stock,
                reorder_level=reorder_level,
            )
        return part["id"]

    return _make


@pytest.fixture
def app(cfg, db, repos):
    return create_app(cfg, db=db, repos=repos)


@pytest.fixture
def http(app):
    return app.test_client()


@pytest.fixture
def token_for(app, db):
    """Create a user with the given role and return an Authorization header."""

    def _token(role="admin", email=None):
        auth = app.extensions["garagedesk.services"].auth
        with db.transaction() as conn:
            user = auth.create_user(
                conn,
                full_name=f"Test {role.title()}",
                email=email or f"{role}@garage.test",
                password=ADMIN_PASSWORD,
                role=role,
            )
        return {"Authorization": f"Bearer {auth.issue_token(user)}"}

    return _token


@pytest.fixture
def admin_headers(token_for):
    return token_for("admin")

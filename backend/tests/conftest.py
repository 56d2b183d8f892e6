"""
Pytest fixtures for Stockroom backend tests.

Provides test database setup, two-tenant fixtures, bearer tokens and the
Flask test client.
"""

import pytest

from stockroom import create_app
from stockroom.config import TestConfig
from stockroom.extensions import db
from stockroom.models import Company, CompanyUser, Customer, Product, Warehouse
from stockroom.services.auth_service import issue_token

USER_A = "user-a"
USER_B = "user-b"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestConfig)

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


def _make_company(db_session, name: str, email: str, user_id: str) -> Company:
    company = Company(name=name, email=email)
    db_session.add(company)
    db_session.flush()
    db_session.add(CompanyUser(company_id=company.id, user_id=user_id, role="admin"))
    db_session.commit()
    return company


@pytest.fixture(scope='function')
def company_a(db_session):
    """Company A (first tenant), administered by USER_A."""
    return _make_company(db_session, "Company A - Acme Corp", "ops@acme.test", USER_A)


@pytest.fixture(scope='function')
def company_b(db_session):
    """Company B (second tenant), administered by USER_B."""
    return _make_company(db_session, "Company B - Beta Inc", "ops@beta.test", USER_B)


@pytest.fixture(scope='function')
def warehouse_a(db_session, company_a):
    warehouse = Warehouse(company_id=company_a.id, name="Main Warehouse A")
    db_session.add(warehouse)
    db_session.commit()
    return warehouse


@pytest.fixture(scope='function')
def warehouse_b(db_session, company_b):
    warehouse = Warehouse(company_id=company_b.id, name="Main Warehouse B")
    db_session.add(warehouse)
    db_session.commit()
    return warehouse


@pytest.fixture(scope='function')
def product_a(db_session, company_a):
    """Create Product in Company A."""
    product = Product(
        company_id=company_a.id,
        sku="PROD-A-001",
        name="Product A",
        unit_price=10,
        cost_price=6,
        reorder_level=5,
    )
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def product_a2(db_session, company_a):
    """Second product in Company A, for multi-line orders."""
    product = Product(
        company_id=company_a.id,
        sku="PROD-A-002",
        name="Product A2",
        unit_price=4,
        cost_price=2,
    )
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def product_b(db_session, company_b):
    """Create Product in Company B."""
    product = Product(
        company_id=company_b.id,
        sku="PROD-B-001",
        name="Product B",
        unit_price=20,
        cost_price=12,
    )
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def customer_a(db_session, company_a):
    customer = Customer(company_id=company_a.id, name="Customer A", email="buyer@acme.test")
    db_session.add(customer)
    db_session.commit()
    return customer


@pytest.fixture(scope='function')
def customer_b(db_session, company_b):
    customer = Customer(company_id=company_b.id, name="Customer B")
    db_session.add(customer)
    db_session.commit()
    return customer


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def headers_a(app, company_a):
    """Authorization headers for USER_A (linked to Company A)."""
    return auth_headers(issue_token(USER_A))


@pytest.fixture(scope='function')
def headers_b(app, company_b):
    """Authorization headers for USER_B (linked to Company B)."""
    return auth_headers(issue_token(USER_B))

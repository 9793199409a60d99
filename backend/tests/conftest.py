"""
Pytest fixtures for the Globos y Fiesta backend tests.

Provides the app (in-memory SQLite), a test client, a per-test table wipe,
staff/customer accounts with ready-made bearer headers, and factories for
products and clients. Cloudinary and SMTP are replaced with fakes.
"""

from decimal import Decimal

import pytest

from globos import create_app
from globos.config import TestingConfig
from globos.extensions import db
from globos.models import Client, Product, User
from globos.models.auth import EMPLOYEE_DEFAULT_PERMISSIONS, ROLE_CUSTOMER, ROLE_EMPLOYEE, ROLE_OWNER
from globos.services import email_service, image_service, session_service
from globos.services.auth_service import hash_password


TEST_PASSWORD = "secreto123"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestingConfig)

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='session')
def password_hash(app):
    """bcrypt is slow on purpose; hash the shared test password once."""
    return hash_password(TEST_PASSWORD)


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


@pytest.fixture(autouse=True)
def fake_outbound(monkeypatch):
    """
    No network in tests: image uploads succeed with fake ids, deletions
    and emails are recorded.
    """
    calls = {"uploads": [], "deleted": [], "emails": []}

    def fake_upload(file_storage):
        public_id = f"test/{len(calls['uploads']) + 1}"
        calls["uploads"].append(file_storage.filename)
        return {'success': True, 'url': f"https://img.test/{public_id}.png", 'public_id': public_id}

    def fake_delete(public_id):
        if public_id:
            calls["deleted"].append(public_id)

    def fake_send(recipient, subject, html_body):
        calls["emails"].append({"to": recipient, "subject": subject, "body": html_body})
        return {'success': True, 'messageId': f"<{len(calls['emails'])}@test>"}

    monkeypatch.setattr(image_service, "upload_image", fake_upload)
    monkeypatch.setattr(image_service, "delete_image", fake_delete)
    monkeypatch.setattr(email_service, "send_email", fake_send)
    return calls


def make_user(db_session, password_hash, *, email, rol, nombre=None, permissions=None, activo=True):
    user = User(
        nombre=nombre or email.split("@")[0].title(),
        email=email,
        password_hash=password_hash,
        rol=rol,
        activo=activo,
        email_verificado=True,
    )
    if rol == ROLE_EMPLOYEE:
        user.set_permissions(permissions if permissions is not None else EMPLOYEE_DEFAULT_PERMISSIONS)
    db_session.add(user)
    db_session.commit()
    return user


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


def headers_for(user) -> dict:
    _session, token = session_service.create_session(user)
    return auth_headers(token)


@pytest.fixture(scope='function')
def owner(db_session, password_hash):
    return make_user(db_session, password_hash, email="duena@globos.test", rol=ROLE_OWNER, nombre="Dueña")


@pytest.fixture(scope='function')
def employee(db_session, password_hash):
    return make_user(db_session, password_hash, email="empleado@globos.test", rol=ROLE_EMPLOYEE, nombre="Empleado")


@pytest.fixture(scope='function')
def reporting_employee(db_session, password_hash):
    permissions = dict(EMPLOYEE_DEFAULT_PERMISSIONS, reportes=True, productos=True)
    return make_user(
        db_session, password_hash, email="analista@globos.test", rol=ROLE_EMPLOYEE,
        nombre="Analista", permissions=permissions,
    )


@pytest.fixture(scope='function')
def customer(db_session, password_hash):
    return make_user(db_session, password_hash, email="cliente@globos.test", rol=ROLE_CUSTOMER, nombre="Cliente")


@pytest.fixture(scope='function')
def owner_headers(owner):
    return headers_for(owner)


@pytest.fixture(scope='function')
def employee_headers(employee):
    return headers_for(employee)


@pytest.fixture(scope='function')
def reporting_headers(reporting_employee):
    return headers_for(reporting_employee)


@pytest.fixture(scope='function')
def customer_headers(customer):
    return headers_for(customer)


@pytest.fixture(scope='function')
def make_product(db_session):
    """Factory: make_product(nombre=..., stock=..., ...) -> Product."""
    def _make(**overrides):
        values = {
            "nombre": "Globo látex rojo",
            "descripcion": "Paquete de globos",
            "categoria": "globos",
            "precio_compra": Decimal("4.00"),
            "precio_venta": Decimal("10.00"),
            "stock": 20,
            "stock_minimo": 5,
            "tipo_globo": "latex",
            "tamano": "mediano",
            "activo": True,
        }
        if overrides.get("categoria", "globos") != "globos":
            values.update(tipo_globo=None, tamano=None)
        values.update(overrides)
        product = Product(**values)
        product.refresh_search_key()
        db_session.add(product)
        db_session.commit()
        return product

    return _make


@pytest.fixture(scope='function')
def make_client(db_session):
    """Factory: make_client(nombre=..., telefono=..., ...) -> Client."""
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        values = {
            "nombre": f"Cliente {counter['n']}",
            "telefono": f"5550000{counter['n']:03d}",
            "tipo_cliente": "individual",
            "activo": True,
        }
        values.update(overrides)
        client = Client(**values)
        db_session.add(client)
        db_session.commit()
        return client

    return _make

import os
import sys
from decimal import Decimal
import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
os.environ.setdefault('APP_ENV', 'testing')

from models import db
from models.product import Product


@pytest.fixture(scope='session')
def app_instance():
    from app import create_app
    from app.config import TestingConfig
    app = create_app(TestingConfig)
    app.config.update(
        TESTING=True,
        SQLALCHEMY_DATABASE_URI='sqlite:///:memory:',
        SQLALCHEMY_TRACK_MODIFICATIONS=False
    )
    return app

@pytest.fixture(scope='function')
def app(app_instance):
    with app_instance.app_context():
        db.drop_all()
        db.create_all()
        yield app_instance
        db.session.remove()
        db.drop_all()

@pytest.fixture(scope='function')
def client(app):
    return app.test_client()


@pytest.fixture
def make_product(app):
    from app.services.catalog import CatalogProduct

    def _make(name="Apple", price="2.50", category="fruits", in_stock=True, original_price=None, unit="each"):
        row = Product(
            name=name,
            price=Decimal(str(price)),
            original_price=Decimal(str(original_price)) if original_price is not None else None,
            category=category,
            unit=unit,
            in_stock=in_stock,
            rating=4.5,
        )
        db.session.add(row)
        db.session.commit()
        return CatalogProduct.from_model(row)

    return _make


@pytest.fixture
def make_user(app):
    from app.services.identity import register_user

    def _make(email="shopper@example.com", password="secret123", full_name="Sam Shopper"):
        return register_user(email, password, full_name)

    return _make


@pytest.fixture
def mirror(app):
    from app.services.cart_mirror import CartMirror, celery_dispatcher
    return CartMirror(celery_dispatcher(eager=True))


@pytest.fixture
def storefront(app, mirror):
    from app.services.checkout import CheckoutSettings
    from app.services.sessions import StorefrontSession
    return StorefrontSession("test-session", mirror, CheckoutSettings())

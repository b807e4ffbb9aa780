"""Pytest configuration and fixtures for Prep Ledger tests."""

import pytest
from sqlalchemy.orm import sessionmaker, scoped_session

from prep_ledger.models.base import Base
from prep_ledger.services import catalog_service
from prep_ledger.services.access import membership_access_check
from prep_ledger.services.database import create_database_engine
from prep_ledger.utils.config import reset_config

RESTAURANT_ID = "bistro-1"
OTHER_RESTAURANT_ID = "bistro-2"
CHEF = "chef@bistro"


@pytest.fixture(scope="function")
def test_db():
    """Provide a clean test database for each test function.

    This fixture:
    1. Creates an in-memory SQLite database
    2. Creates all tables
    3. Provides the database to the test
    4. Drops all tables after the test completes
    """
    # Create in-memory SQLite database for testing
    engine = create_database_engine("sqlite:///:memory:")

    # Create all tables
    import prep_ledger.models  # noqa: F401

    Base.metadata.create_all(engine)

    # Create session factory
    session_factory = sessionmaker(bind=engine, expire_on_commit=False)
    Session = scoped_session(session_factory)

    # Monkey-patch the global session factory for tests
    import prep_ledger.services.database as db_module

    original_get_session_factory = db_module.get_session_factory
    db_module.get_session_factory = lambda: Session

    # Provide database to test
    yield Session

    # Cleanup
    Session.remove()
    Base.metadata.drop_all(engine)
    engine.dispose()

    # Restore original session factory
    db_module.get_session_factory = original_get_session_factory


@pytest.fixture
def access_check():
    """CHEF may operate RESTAURANT_ID only."""
    return membership_access_check({CHEF: [RESTAURANT_ID]})


@pytest.fixture
def make_product(test_db):
    """Factory creating a product of RESTAURANT_ID through the catalog service."""

    def _make_product(name, purchase_unit, **fields):
        data = {"restaurant_id": RESTAURANT_ID, "name": name, "purchase_unit": purchase_unit}
        data.update(fields)
        return catalog_service.create_product(data)

    return _make_product


@pytest.fixture
def make_recipe(test_db):
    """Factory creating a prep recipe of RESTAURANT_ID.

    Ingredients are (product_id, quantity, unit) tuples.
    """

    def _make_recipe(name, ingredients, default_yield, default_yield_unit, output_product_id=None):
        return catalog_service.create_prep_recipe(
            {
                "restaurant_id": RESTAURANT_ID,
                "name": name,
                "default_yield": default_yield,
                "default_yield_unit": default_yield_unit,
                "output_product_id": output_product_id,
                "ingredients": [
                    {"product_id": product_id, "quantity": quantity, "unit": unit}
                    for product_id, quantity, unit in ingredients
                ],
            }
        )

    return _make_recipe


@pytest.fixture
def file_database(tmp_path, monkeypatch):
    """Point the global engine at a fresh SQLite file.

    Unlike test_db, every session gets its own connection, so threads
    contend on the real database lock.
    """
    import prep_ledger.services.database as db_module

    monkeypatch.setenv("PREP_LEDGER_DATABASE_URL", f"sqlite:///{tmp_path / 'ledger.db'}")
    monkeypatch.setattr(db_module, "_engine", None)
    monkeypatch.setattr(db_module, "_SessionFactory", None)
    reset_config()

    yield tmp_path / "ledger.db"

    if db_module._engine is not None:
        db_module._engine.dispose()
    reset_config()

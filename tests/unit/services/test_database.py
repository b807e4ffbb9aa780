"""Tests for engine setup, table creation and the transactional scope."""

import pytest

import prep_ledger.services.database as db_module
from prep_ledger.main import main
from prep_ledger.models import Product


class TestInitialization:
    """Tables are created on demand and verified."""

    def test_verify_fails_before_init(self, file_database):
        assert db_module.verify_database() is False

    def test_initialize_creates_tables(self, file_database):
        db_module.initialize_app_database()

        assert file_database.exists()
        assert db_module.verify_database() is True

    def test_init_is_repeatable(self, file_database):
        db_module.initialize_app_database()
        db_module.initialize_app_database()
        assert db_module.verify_database() is True

    def test_foreign_keys_enabled(self, file_database):
        with db_module.get_engine().connect() as connection:
            assert connection.exec_driver_sql("PRAGMA foreign_keys").scalar() == 1

    def test_cli_init_db(self, file_database, capsys):
        assert main(["init-db"]) == 0
        assert "Database ready" in capsys.readouterr().out
        assert db_module.verify_database() is True


class TestSessionScope:
    """session_scope commits on success and rolls back on error."""

    def test_commit(self, test_db):
        with db_module.session_scope() as session:
            session.add(Product(restaurant_id="bistro-1", name="Salt", purchase_unit="kg"))

        with db_module.session_scope() as session:
            assert session.query(Product).count() == 1

    def test_rollback(self, test_db):
        with pytest.raises(RuntimeError):
            with db_module.session_scope() as session:
                session.add(Product(restaurant_id="bistro-1", name="Salt", purchase_unit="kg"))
                session.flush()
                raise RuntimeError("boom")

        with db_module.session_scope() as session:
            assert session.query(Product).count() == 0
